"""Tests for structured extraction, section heuristics and clamping."""

import json

from investify.parser import (
	DEFAULT_KEY_INSIGHTS, DEFAULT_RISK_FACTORS, check_payload_shape, check_scoring_shape, clamp,
	clamp_payload, clamp_scoring_result, decoded_json, embedded_json, extract_list, extract_number,
	extract_recommendation, fenced_json, loads_lenient, parse_payload, parse_scoring_result, split_sections,
)
from investify.schemas import AnalysisPayload, CategoryScore, InvestmentMetrics

from conftest import fenced

DEFAULT_METRICS = InvestmentMetrics().model_dump()

SECTIONED_RESPONSE = """Executive Summary:
- Overall score (0-100): 68
- Recommendation: strong_consider
- Confidence level (0-1): 0.8
Key highlights:
- Repeat founders
- Fast revenue growth

Key concerns:
- Crowded market

Team Analysis:
Team score (0-100): 82
Confidence level (0-1): 0.9
Strengths:
- Prior exit
- Deep domain expertise
Weaknesses:
- No CFO
Assessment: Strong operators with a gap in finance.

Market Analysis:
Market score: 140
Confidence level: -0.3

Technical Analysis:
Assessment: Little technical detail was provided.
"""

class TestJsonExtractors:
	"""Tests for the individual JSON candidate extractors."""

	def test_fenced_json_with_tag(self) -> None:
		assert fenced_json('text ```json\n{"a": 1}\n``` more') == {"a": 1}

	def test_fenced_json_without_tag(self) -> None:
		assert fenced_json('```\n{"a": {"b": 2}}\n```') == {"a": {"b": 2}}

	def test_fenced_json_missing(self) -> None:
		assert fenced_json("no code here") is None

	def test_embedded_json_requires_both_keys(self) -> None:
		text = 'Result: {"analysis": "x", "metrics": {}} done'
		assert embedded_json(text, ("analysis", "metrics")) == {"analysis": "x", "metrics": {}}
		assert embedded_json('{"analysis": "x"}', ("analysis", "metrics")) is None

	def test_decoded_json_skips_trailing_braces(self) -> None:
		text = 'Answer {"analysis": "x", "metrics": {}} and a stray {brace}'
		assert embedded_json(text, ("analysis", "metrics")) is None
		assert decoded_json(text, ("analysis", "metrics")) == {"analysis": "x", "metrics": {}}

	def test_loads_lenient_strips_comments_and_trailing_commas(self) -> None:
		text = '{\n  "overall": 72, // 0-100\n  "url": "https://example.com",\n}'
		assert loads_lenient(text) == {"overall": 72, "url": "https://example.com"}

	def test_loads_lenient_gives_up(self) -> None:
		assert loads_lenient("{not json") is None

class TestShapeChecks:
	"""Tests for payload and scoring shape validation."""

	def test_payload_ok(self, investment_payload) -> None:
		result = check_payload_shape(investment_payload)
		assert result.ok
		assert isinstance(result.value, AnalysisPayload)

	def test_payload_rejects_non_text_analysis(self) -> None:
		result = check_payload_shape({"analysis": 3, "metrics": {}})
		assert not result.ok
		assert "analysis" in result.reason

	def test_payload_rejects_missing_metrics(self) -> None:
		assert not check_payload_shape({"analysis": "x"}).ok

	def test_scoring_ok(self, scoring_payload) -> None:
		assert check_scoring_shape(scoring_payload).ok

	def test_scoring_rejects_unknown_recommendation(self, scoring_payload) -> None:
		scoring_payload["recommendation"] = "buy"
		assert not check_scoring_shape(scoring_payload).ok

	def test_scoring_rejects_string_overall(self, scoring_payload) -> None:
		scoring_payload["scores"]["overall"] = "72"
		assert not check_scoring_shape(scoring_payload).ok

	def test_scoring_rejects_bool_confidence(self, scoring_payload) -> None:
		scoring_payload["confidence_level"] = True
		assert not check_scoring_shape(scoring_payload).ok

	def test_scoring_missing_category_defaults(self, scoring_payload) -> None:
		del scoring_payload["scores"]["innovation"]
		result = check_scoring_shape(scoring_payload)
		assert result.ok
		assert result.value.scores.innovation == CategoryScore()

class TestParsePayload:
	"""Tests for the payload fallback chain."""

	def test_fenced_json_round_trip(self, investment_payload) -> None:
		payload = parse_payload(fenced(investment_payload), DEFAULT_METRICS)
		assert payload.model_dump() == investment_payload

	def test_unfenced_json(self, investment_payload) -> None:
		payload = parse_payload("Sure: " + json.dumps(investment_payload), DEFAULT_METRICS)
		assert payload.model_dump() == investment_payload

	def test_invalid_fenced_block_falls_through_to_embedded(self, investment_payload) -> None:
		text = "```json\n{\"oops\": }\n```\n" + json.dumps(investment_payload)
		assert parse_payload(text, DEFAULT_METRICS).model_dump() == investment_payload

	def test_plain_prose_uses_defaults(self) -> None:
		text = "This company looks promising but the data is thin."
		payload = parse_payload(text, DEFAULT_METRICS)
		assert payload.analysis == text
		assert payload.metrics == DEFAULT_METRICS
		assert payload.metrics["key_metrics"]["risk_assessment"]["overall_risk"] == "medium"

	def test_defaults_are_copied(self) -> None:
		payload = parse_payload("prose", DEFAULT_METRICS)
		payload.metrics["confidence_score"] = 0.1
		assert DEFAULT_METRICS["confidence_score"] == 0.5

	def test_missing_confidence_gets_default(self) -> None:
		payload = parse_payload(fenced({"analysis": "x", "metrics": {}}), DEFAULT_METRICS)
		assert payload.analysis == "x"
		assert payload.metrics == {"confidence_score": 0.5}

	def test_string_confidence_is_coerced(self, investment_payload) -> None:
		investment_payload["metrics"]["confidence_score"] = "0.8"
		payload = parse_payload(fenced(investment_payload), DEFAULT_METRICS)
		assert payload.metrics["confidence_score"] == 0.8
		assert payload.metrics["key_metrics"] == investment_payload["metrics"]["key_metrics"]

	def test_wrong_shape_json_uses_defaults(self) -> None:
		text = fenced({"summary": "no analysis key"})
		payload = parse_payload(text, DEFAULT_METRICS)
		assert payload.analysis == text
		assert payload.metrics == DEFAULT_METRICS

class TestSectionExtractors:
	"""Tests for the independent text extractors."""

	def test_split_sections(self) -> None:
		sections = split_sections(SECTIONED_RESPONSE)
		assert set(sections) == {"executive", "team", "market", "technical"}
		assert "Prior exit" in sections["team"]
		assert "Prior exit" not in sections["market"]

	def test_extract_number_handles_sign_and_markdown(self) -> None:
		assert extract_number("Score: -12", "Score") == -12
		assert extract_number("**Score:** 85", "Score") == 85
		assert extract_number("Team score (0-100): 7.5", "Score") == 7.5
		assert extract_number("nothing", "Score") is None

	def test_extract_list(self) -> None:
		text = "Strengths:\n- One\n* Two\n1. Three\nWeaknesses:\n- Four"
		assert extract_list(text, "Strengths:") == ["One", "Two", "Three"]
		assert extract_list(text, "Weaknesses:") == ["Four"]
		assert extract_list(text, "Risks:") is None

	def test_extract_recommendation(self) -> None:
		assert extract_recommendation('Recommendation: "pass"') == "pass"
		assert extract_recommendation("Recommendation: Strong Consider") == "strong_consider"
		assert extract_recommendation("Recommendation: needs review before committing") == "needs_review"
		assert extract_recommendation("Recommendation: buy now") is None
		assert extract_recommendation("no token") is None

class TestParseScoringResult:
	"""Tests for the scoring fallback chain."""

	def test_fenced_json_round_trip(self, scoring_payload) -> None:
		result = parse_scoring_result(fenced(scoring_payload))
		assert result.model_dump() == scoring_payload

	def test_structured_path_is_not_clamped(self, scoring_payload) -> None:
		scoring_payload["scores"]["overall"] = 140
		assert parse_scoring_result(fenced(scoring_payload)).scores.overall == 140

	def test_null_strengths_keep_structured_result(self, scoring_payload) -> None:
		scoring_payload["scores"]["team"]["strengths"] = None
		result = parse_scoring_result(fenced(scoring_payload))
		assert result.scores.overall == 72
		assert result.recommendation == "consider"
		assert result.key_insights == ["Strong founding team"]
		assert result.scores.team.strengths == []
		assert result.scores.team.score == 80
		assert result.scores.team.weaknesses == ["Thin sales team"]

	def test_object_insights_are_flattened(self, scoring_payload) -> None:
		scoring_payload["key_insights"] = [{"insight": "Strong team"}, None, 3]
		result = parse_scoring_result(fenced(scoring_payload))
		assert result.scores.overall == 72
		assert result.recommendation == "consider"
		assert result.key_insights == ["Strong team", "3"]

	def test_bad_category_fields_default_individually(self, scoring_payload) -> None:
		scoring_payload["scores"]["market"] = {"score": "75", "confidence": None, "assessment": 4}
		scoring_payload["scores"]["technical"] = "strong"
		result = parse_scoring_result(fenced(scoring_payload))
		market = result.scores.market
		assert (market.score, market.confidence) == (75, 0.5)
		assert market.assessment == "Insufficient data for detailed assessment"
		assert result.scores.technical == CategoryScore()
		assert result.scores.innovation.score == 65

	def test_sections(self) -> None:
		result = parse_scoring_result(SECTIONED_RESPONSE)
		assert result.scores.overall == 68
		assert result.recommendation == "strong_consider"
		assert result.confidence_level == 0.8
		assert result.key_insights == ["Repeat founders", "Fast revenue growth"]
		assert result.risk_factors == ["Crowded market"]
		team = result.scores.team
		assert (team.score, team.confidence) == (82, 0.9)
		assert team.strengths == ["Prior exit", "Deep domain expertise"]
		assert team.weaknesses == ["No CFO"]
		assert team.assessment == "Strong operators with a gap in finance."
		assert result.scores.market.score == 140
		assert result.scores.market.confidence == -0.3
		technical = result.scores.technical
		assert technical.score == 50
		assert technical.assessment == "Little technical detail was provided."
		assert result.scores.innovation == CategoryScore()

	def test_plain_prose_defaults(self) -> None:
		result = parse_scoring_result("I could not evaluate this opportunity.")
		assert result.scores.overall == 50
		assert result.recommendation == "needs_review"
		assert result.confidence_level == 0.5
		assert result.key_insights == DEFAULT_KEY_INSIGHTS
		assert result.risk_factors == DEFAULT_RISK_FACTORS
		for name in ("team", "market", "technical", "innovation"):
			category = getattr(result.scores, name)
			assert category.score == 50
			assert category.confidence == 0.5
			assert category.strengths == [] and category.weaknesses == []
			assert category.assessment == "Insufficient data for detailed assessment"

	def test_overall_score_found_outside_sections(self) -> None:
		result = parse_scoring_result("Having read everything, Overall score: 150. Recommendation: pass")
		assert result.scores.overall == 150
		assert result.recommendation == "pass"

	def test_unrecognized_recommendation_defaults(self) -> None:
		result = parse_scoring_result("Executive Summary:\nRecommendation: maybe later")
		assert result.recommendation == "needs_review"

class TestClamping:
	"""Tests for range clamping."""

	def test_clamp(self) -> None:
		assert clamp(150, 0, 100) == 100
		assert clamp(-4, 0, 100) == 0
		assert clamp(0.4, 0, 1) == 0.4

	def test_clamp_scoring_result(self) -> None:
		raw = parse_scoring_result(SECTIONED_RESPONSE)
		raw = raw.model_copy(update={"confidence_level": 7})
		result = clamp_scoring_result(raw)
		assert result.scores.market.score == 100
		assert result.scores.market.confidence == 0
		assert result.confidence_level == 1
		assert result.scores.team.score == 82
		# input model is left untouched
		assert raw.scores.market.score == 140

	def test_every_field_in_range(self) -> None:
		text = "\n".join([
			"Executive Summary:", "Overall score: 9999", "Confidence level: 42", "",
			"Team Analysis:", "Score: -5", "Confidence level: 3", "",
			"Market Analysis:", "Score: 101", "Confidence level: -1", "",
			"Technical Analysis:", "Score: 1000000", "Confidence level: 1.5", "",
			"Innovation Assessment:", "Score: -0.5", "Confidence level: 99",
		])
		result = clamp_scoring_result(parse_scoring_result(text))
		assert 0 <= result.scores.overall <= 100
		assert 0 <= result.confidence_level <= 1
		for name in ("team", "market", "technical", "innovation"):
			category = getattr(result.scores, name)
			assert 0 <= category.score <= 100
			assert 0 <= category.confidence <= 1

	def test_clamp_payload(self, investment_payload) -> None:
		investment_payload["metrics"]["confidence_score"] = 1.8
		payload = clamp_payload(AnalysisPayload.model_validate(investment_payload))
		assert payload.metrics["confidence_score"] == 1

	def test_clamp_payload_coerces_confidence(self) -> None:
		payload = AnalysisPayload(analysis="x", metrics={"confidence_score": "1.4"})
		assert clamp_payload(payload).metrics["confidence_score"] == 1

	def test_clamp_payload_defaults_unusable_confidence(self) -> None:
		payload = AnalysisPayload(analysis="x", metrics={"confidence_score": "high"})
		assert clamp_payload(payload).metrics["confidence_score"] == 0.5
		assert payload.metrics["confidence_score"] == "high"
