import copy
import json
import logging
import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence
from pydantic import ValidationError
from .schemas import RECOMMENDATIONS, AnalysisPayload, CategoryScore, CategoryScores, ScoringResult

logger = logging.getLogger(__name__)

PAYLOAD_KEYS = ("analysis", "metrics")
SCORING_KEYS = ("scores", "recommendation")
CATEGORIES = ("team", "market", "technical", "innovation")
DEFAULT_CONFIDENCE = 0.5

DEFAULT_KEY_INSIGHTS = ["Investment requires further analysis"]
DEFAULT_RISK_FACTORS = ["Insufficient data to fully assess risks"]

SECTION_HEADERS = {
	"executive": "Executive Summary:",
	"team": "Team Analysis:",
	"market": "Market Analysis:",
	"technical": "Technical Analysis:",
	"innovation": "Innovation Assessment:",
}

FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
LINE_COMMENT = re.compile(r"(?<![:\"'\\])//[^\n]*")
TRAILING_COMMA = re.compile(r",(\s*[}\]])")
NUMBER = r"(-?\d+(?:\.\d+)?)"
BULLET = re.compile(r"^\s*(?:[-*\u2022]|\d+[.)])\s+(.*\S)\s*$")

class ShapeCheck(NamedTuple):
	ok: bool
	value: Any = None
	reason: str = ""

def clamp(value: float, low: float, high: float) -> float:
	return min(high, max(low, value))

# --- JSON candidates -------------------------------------------------------

def loads_lenient(text: str) -> Optional[Any]:
	"""Decode JSON, retrying once with // comments and trailing commas removed."""
	try:
		return json.loads(text)
	except ValueError:
		pass
	cleaned = TRAILING_COMMA.sub(r"\1", LINE_COMMENT.sub("", text))
	try:
		return json.loads(cleaned)
	except ValueError:
		return None

def fenced_json(text: str, keys: Sequence[str] = ()) -> Optional[Any]:
	match = FENCED_JSON.search(text)
	if not match:
		return None
	return loads_lenient(match.group(1).strip())

def embedded_json(text: str, keys: Sequence[str]) -> Optional[Any]:
	if "{" not in text or not all(f'"{k}"' in text for k in keys):
		return None
	pattern = r"\{[\s\S]*" + r"[\s\S]*".join(re.escape(f'"{k}"') for k in keys) + r"[\s\S]*\}"
	match = re.search(pattern, text)
	if not match:
		return None
	return loads_lenient(match.group(0))

def decoded_json(text: str, keys: Sequence[str]) -> Optional[Any]:
	decoder = json.JSONDecoder()
	start = text.find("{")
	while start != -1:
		try:
			value, _ = decoder.raw_decode(text, start)
		except ValueError:
			value = None
		if isinstance(value, dict) and all(k in value for k in keys):
			return value
		start = text.find("{", start + 1)
	return None

JSON_EXTRACTORS: List[Callable[[str, Sequence[str]], Optional[Any]]] = [fenced_json, embedded_json, decoded_json]

# --- shape checks ----------------------------------------------------------

def _is_number(value: Any) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool)

def as_number(value: Any, default: float) -> float:
	if _is_number(value):
		return value
	if isinstance(value, str):
		try:
			return float(value)
		except ValueError:
			pass
	return default

def text_items(items: Any) -> List[str]:
	"""Keep string items, flatten object items to their scalar values, drop the rest."""
	if not isinstance(items, list):
		return []
	texts = []
	for item in items:
		if isinstance(item, dict):
			item = " - ".join(str(v) for v in item.values() if isinstance(v, (str, int, float)) and not isinstance(v, bool))
		elif _is_number(item):
			item = str(item)
		if isinstance(item, str) and item.strip():
			texts.append(item)
	return texts

def coerce_category(value: Any) -> CategoryScore:
	"""Build a category from loose JSON, replacing each unusable field with its default."""
	if not isinstance(value, dict):
		return CategoryScore()
	defaults = CategoryScore()
	fields = dict(value)
	fields["score"] = as_number(value.get("score"), defaults.score)
	fields["confidence"] = as_number(value.get("confidence"), defaults.confidence)
	fields["strengths"] = text_items(value.get("strengths"))
	fields["weaknesses"] = text_items(value.get("weaknesses"))
	if not isinstance(value.get("assessment"), str):
		fields["assessment"] = defaults.assessment
	return CategoryScore.model_validate(fields)

def coerce_scoring_result(obj: Dict[str, Any]) -> ScoringResult:
	scores = dict(obj["scores"])
	for name in CATEGORIES:
		scores[name] = coerce_category(scores.get(name))
	fields = dict(obj)
	fields["scores"] = CategoryScores.model_validate(scores)
	fields["key_insights"] = text_items(obj.get("key_insights"))
	fields["risk_factors"] = text_items(obj.get("risk_factors"))
	return ScoringResult.model_validate(fields)

def check_payload_shape(obj: Any) -> ShapeCheck:
	if not isinstance(obj, dict):
		return ShapeCheck(False, reason="not an object")
	if not isinstance(obj.get("analysis"), str):
		return ShapeCheck(False, reason="analysis is not text")
	if not isinstance(obj.get("metrics"), dict):
		return ShapeCheck(False, reason="metrics is not an object")
	try:
		return ShapeCheck(True, AnalysisPayload.model_validate(obj))
	except ValidationError as e:
		return ShapeCheck(False, reason=str(e))

def check_scoring_shape(obj: Any) -> ShapeCheck:
	if not isinstance(obj, dict):
		return ShapeCheck(False, reason="not an object")
	scores = obj.get("scores")
	if not isinstance(scores, dict) or not _is_number(scores.get("overall")):
		return ShapeCheck(False, reason="scores.overall is not a number")
	if not _is_number(obj.get("confidence_level")):
		return ShapeCheck(False, reason="confidence_level is not a number")
	if not isinstance(obj.get("key_insights"), list) or not isinstance(obj.get("risk_factors"), list):
		return ShapeCheck(False, reason="key_insights/risk_factors are not lists")
	if obj.get("recommendation") not in RECOMMENDATIONS:
		return ShapeCheck(False, reason=f"unknown recommendation {obj.get('recommendation')!r}")
	try:
		return ShapeCheck(True, coerce_scoring_result(obj))
	except ValidationError as e:
		return ShapeCheck(False, reason=str(e))

def _structured(text: str, keys: Sequence[str], check: Callable[[Any], ShapeCheck]) -> Optional[Any]:
	for extractor in JSON_EXTRACTORS:
		candidate = extractor(text, keys)
		if candidate is None:
			continue
		result = check(candidate)
		if result.ok:
			logger.debug(f"Structured response accepted via {extractor.__name__}")
			return result.value
		logger.debug(f"{extractor.__name__} candidate rejected: {result.reason}")
	return None

# --- text heuristics -------------------------------------------------------

def split_sections(text: str) -> Dict[str, str]:
	positions = []
	for key, header in SECTION_HEADERS.items():
		match = re.search(re.escape(header), text, re.IGNORECASE)
		if match:
			positions.append((match.start(), match.end(), key))
	positions.sort()
	sections = {}
	for i, (_, body_start, key) in enumerate(positions):
		end = positions[i + 1][0] if i + 1 < len(positions) else len(text)
		sections[key] = text[body_start:end]
	return sections

def extract_number(text: str, label: str) -> Optional[float]:
	match = re.search(label + r"[^:\n]*:\s*\**\s*" + NUMBER, text, re.IGNORECASE)
	return float(match.group(1)) if match else None

def extract_list(text: str, label: str) -> Optional[List[str]]:
	match = re.search(re.escape(label) + r"[^\n]*\n?", text, re.IGNORECASE)
	if not match:
		return None
	items = []
	for line in text[match.end():].splitlines():
		if not line.strip():
			if items:
				break
			continue
		bullet = BULLET.match(line)
		if not bullet:
			break
		items.append(bullet.group(1))
	return items

def extract_text(text: str, label: str) -> Optional[str]:
	match = re.search(re.escape(label) + r"\s*(.+?)(?=\n\s*\n|\n[A-Z][\w ]*:|$)", text, re.IGNORECASE | re.DOTALL)
	if not match:
		return None
	value = " ".join(match.group(1).split())
	return value or None

def extract_recommendation(text: str) -> Optional[str]:
	match = re.search(r"Recommendation[^:\n]*:\s*[\"'*]*([A-Za-z_ ]+)", text, re.IGNORECASE)
	if not match:
		return None
	token = match.group(1).strip().lower().replace(" ", "_")
	for candidate in RECOMMENDATIONS:
		if token == candidate or token.startswith(candidate + "_"):
			return candidate
	logger.warning(f"Unrecognized recommendation {match.group(1).strip()!r}, defaulting to needs_review")
	return None

def first_match(extractor: Callable[..., Optional[Any]], texts: Sequence[Optional[str]], *args) -> Optional[Any]:
	for text in texts:
		if not text:
			continue
		value = extractor(text, *args)
		if value is not None:
			return value
	return None

def extract_category(text: Optional[str]) -> CategoryScore:
	if not text:
		return CategoryScore()
	defaults = CategoryScore()
	score = extract_number(text, r"Score")
	confidence = extract_number(text, r"Confidence(?: level)?")
	return CategoryScore(
		score=score if score is not None else defaults.score,
		confidence=confidence if confidence is not None else defaults.confidence,
		strengths=extract_list(text, "Strengths:") or [],
		weaknesses=extract_list(text, "Weaknesses:") or [],
		assessment=extract_text(text, "Assessment:") or defaults.assessment,
	)

def scoring_from_sections(text: str) -> ScoringResult:
	sections = split_sections(text)
	scopes = (sections.get("executive"), text)
	overall = first_match(extract_number, scopes, r"Overall score")
	confidence_level = first_match(extract_number, scopes, r"Confidence level")
	return ScoringResult(
		scores=CategoryScores(
			overall=overall if overall is not None else 50,
			team=extract_category(sections.get("team")),
			market=extract_category(sections.get("market")),
			technical=extract_category(sections.get("technical")),
			innovation=extract_category(sections.get("innovation")),
		),
		recommendation=first_match(extract_recommendation, scopes) or "needs_review",
		confidence_level=confidence_level if confidence_level is not None else 0.5,
		key_insights=first_match(extract_list, scopes, "Key highlights:") or list(DEFAULT_KEY_INSIGHTS),
		risk_factors=first_match(extract_list, scopes, "Key concerns:") or list(DEFAULT_RISK_FACTORS),
	)

# --- entry points ----------------------------------------------------------

def parse_payload(text: str, default_metrics: Dict[str, Any]) -> AnalysisPayload:
	"""Best-effort narrative + metrics extraction; never raises."""
	text = text if isinstance(text, str) else str(text or "")
	payload = _structured(text, PAYLOAD_KEYS, check_payload_shape)
	if payload is not None:
		confidence = payload.metrics.get("confidence_score")
		if _is_number(confidence):
			return payload
		fallback = default_metrics.get("confidence_score", DEFAULT_CONFIDENCE)
		metrics = dict(payload.metrics, confidence_score=as_number(confidence, fallback))
		return payload.model_copy(update={"metrics": metrics})
	logger.debug("No structured payload found, using raw text with default metrics")
	return AnalysisPayload(analysis=text, metrics=copy.deepcopy(default_metrics))

def parse_scoring_result(text: str) -> ScoringResult:
	"""Best-effort scoring extraction: structured JSON first, then section scraping."""
	text = text if isinstance(text, str) else str(text or "")
	result = _structured(text, SCORING_KEYS, check_scoring_shape)
	if result is not None:
		return result
	logger.debug("No structured scoring result found, extracting from sections")
	return scoring_from_sections(text)

def clamp_category(category: CategoryScore) -> CategoryScore:
	return category.model_copy(update={
		"score": clamp(category.score, 0, 100),
		"confidence": clamp(category.confidence, 0, 1),
	})

def clamp_scoring_result(result: ScoringResult) -> ScoringResult:
	scores = result.scores
	clamped = scores.model_copy(update={
		"overall": clamp(scores.overall, 0, 100),
		"team": clamp_category(scores.team),
		"market": clamp_category(scores.market),
		"technical": clamp_category(scores.technical),
		"innovation": clamp_category(scores.innovation),
	})
	return result.model_copy(update={
		"scores": clamped,
		"confidence_level": clamp(result.confidence_level, 0, 1),
	})

def clamp_payload(payload: AnalysisPayload) -> AnalysisPayload:
	confidence = as_number(payload.metrics.get("confidence_score"), DEFAULT_CONFIDENCE)
	metrics = dict(payload.metrics, confidence_score=clamp(confidence, 0, 1))
	return payload.model_copy(update={"metrics": metrics})
