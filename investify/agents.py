import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from . import prompts
from .config import get_settings, require_key
from .exceptions import InvalidInputError, UpstreamError
from .parser import clamp_payload, clamp_scoring_result, parse_payload, parse_scoring_result
from .schemas import (
	AnalysisPayload, AnalysisRequest, FounderMetrics, InvestmentMetrics, MarketMetrics,
	ScoringResult, StepOutcome, StepSuccess, ToolSpec,
)
from .tools import PERPLEXITY_TOOL, WEB_SEARCH_TOOL, run_tool

logger = logging.getLogger(__name__)

# (prompt, tools, system_prompt) -> raw text
CompletionCall = Callable[[str, List[ToolSpec], str], Awaitable[str]]

_openai_client: Optional[AsyncOpenAI] = None
_claude_client: Optional[AsyncAnthropic] = None

def get_openai_client() -> AsyncOpenAI:
	global _openai_client
	if _openai_client is None:
		key = require_key(get_settings().openai_api_key, "OPENAI_API_KEY")
		_openai_client = AsyncOpenAI(api_key=key, max_retries=0)
	return _openai_client

def get_claude_client() -> AsyncAnthropic:
	global _claude_client
	if _claude_client is None:
		key = require_key(get_settings().anthropic_api_key, "ANTHROPIC_API_KEY")
		_claude_client = AsyncAnthropic(api_key=key, max_retries=0)
	return _claude_client

async def _openai_chat(prompt: str, tools: List[ToolSpec], system_prompt: str) -> str:
	settings = get_settings()
	client = get_openai_client()
	messages: List[Dict[str, Any]] = [
		{"role": "system", "content": system_prompt},
		{"role": "user", "content": prompt},
	]
	extra = {"tools": [t.to_openai() for t in tools]} if tools else {}
	for _ in range(settings.max_tool_iterations):
		response = await client.chat.completions.create(
			model=settings.openai_model,
			messages=messages,
			temperature=settings.temperature,
			max_tokens=settings.max_tokens,
			**extra
		)
		if not response.choices:
			raise UpstreamError("Completion returned no choices")
		message = response.choices[0].message
		if not message.tool_calls:
			return message.content or ""
		messages.append({
			"role": "assistant",
			"content": message.content,
			"tool_calls": [call.model_dump() for call in message.tool_calls],
		})
		for call in message.tool_calls:
			try:
				arguments = json.loads(call.function.arguments or "{}")
			except ValueError:
				arguments = {}
			logger.info(f"Tool call: {call.function.name}({arguments})")
			result = await run_tool(call.function.name, arguments)
			messages.append({"role": "tool", "tool_call_id": call.id, "content": result})
	raise UpstreamError("Maximum tool iterations reached without completion")

async def _claude_chat(prompt: str, tools: List[ToolSpec], system_prompt: str) -> str:
	settings = get_settings()
	client = get_claude_client()
	messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
	extra = {"tools": [t.to_anthropic() for t in tools]} if tools else {}
	for _ in range(settings.max_tool_iterations):
		response = await client.messages.create(
			model=settings.claude_model,
			max_tokens=settings.max_tokens,
			temperature=settings.temperature,
			system=system_prompt,
			messages=messages,
			**extra
		)
		tool_uses = [block for block in response.content if block.type == "tool_use"]
		if response.stop_reason != "tool_use" or not tool_uses:
			return "".join(block.text for block in response.content if block.type == "text")
		assistant_blocks = []
		for block in response.content:
			if block.type == "text":
				assistant_blocks.append({"type": "text", "text": block.text})
			elif block.type == "tool_use":
				assistant_blocks.append({"type": "tool_use", "id": block.id, "name": block.name, "input": block.input})
		messages.append({"role": "assistant", "content": assistant_blocks})
		results = []
		for block in tool_uses:
			logger.info(f"Tool call: {block.name}({block.input})")
			result = await run_tool(block.name, block.input)
			results.append({"type": "tool_result", "tool_use_id": block.id, "content": result})
		messages.append({"role": "user", "content": results})
	raise UpstreamError("Maximum tool iterations reached without completion")

async def _guarded(call: Awaitable[str], provider: str) -> str:
	try:
		return await asyncio.wait_for(call, timeout=get_settings().request_timeout)
	except asyncio.TimeoutError as e:
		raise UpstreamError(f"{provider} completion timed out") from e
	except (openai.OpenAIError, anthropic.AnthropicError) as e:
		raise UpstreamError(f"{provider} completion failed: {e}") from e

async def openai_completion(prompt: str, tools: List[ToolSpec], system_prompt: str) -> str:
	return await _guarded(_openai_chat(prompt, tools, system_prompt), "OpenAI")

async def claude_completion(prompt: str, tools: List[ToolSpec], system_prompt: str) -> str:
	return await _guarded(_claude_chat(prompt, tools, system_prompt), "Claude")

COMPLETIONS: Dict[str, CompletionCall] = {
	"openai": openai_completion,
	"anthropic": claude_completion,
}

def get_completion(provider: str) -> CompletionCall:
	if provider not in COMPLETIONS:
		raise ValueError(f"Unknown completion provider: {provider}")
	return COMPLETIONS[provider]

# --- step descriptors ------------------------------------------------------

def validate_request(request: Any, agent_results: Any = None) -> bool:
	return isinstance(request, AnalysisRequest) and isinstance(request.content, str) and len(request.content) > 0

def validate_scoring_request(request: Any, agent_results: Any = None) -> bool:
	return validate_request(request) and isinstance(agent_results, dict)

def validate_payload(payload: Any) -> bool:
	return isinstance(payload, AnalysisPayload) and isinstance(payload.analysis, str) and payload.metrics is not None

def validate_scoring_output(result: Any) -> bool:
	return isinstance(result, ScoringResult)

def _content_prompt(template: str) -> Callable[[AnalysisRequest, Optional[dict]], str]:
	def build(request, agent_results=None):
		return prompts.fill(template, request.content)
	return build

def _scoring_prompt(request: AnalysisRequest, agent_results: Optional[dict] = None) -> str:
	return prompts.fill(prompts.SCORING_PROMPT, request.content, json.dumps(agent_results or {}, indent=2))

def _payload_parser(default_metrics: Dict[str, Any]) -> Callable[[str], AnalysisPayload]:
	def parse(text):
		return parse_payload(text, default_metrics)
	return parse

@dataclass(frozen=True)
class AnalysisStep:
	name: str
	label: str
	system_prompt: str
	build_prompt: Callable[[AnalysisRequest, Optional[dict]], str]
	parse: Callable[[str], Any]
	finalize: Callable[[Any], Any] = clamp_payload
	tools: List[ToolSpec] = field(default_factory=list)
	validate: Callable[..., bool] = validate_request
	validate_output: Callable[[Any], bool] = validate_payload

INVESTMENT_STEP = AnalysisStep(
	name="investment",
	label="Investment",
	system_prompt=prompts.INVESTMENT_SYSTEM,
	build_prompt=_content_prompt(prompts.INVESTMENT_PROMPT),
	parse=_payload_parser(InvestmentMetrics().model_dump()),
	tools=[WEB_SEARCH_TOOL],
)

FOUNDER_STEP = AnalysisStep(
	name="founder",
	label="Founder",
	system_prompt=prompts.FOUNDER_SYSTEM,
	build_prompt=_content_prompt(prompts.FOUNDER_PROMPT),
	parse=_payload_parser(FounderMetrics().model_dump()),
	tools=[PERPLEXITY_TOOL],
)

MARKET_STEP = AnalysisStep(
	name="market",
	label="Market",
	system_prompt=prompts.MARKET_SYSTEM,
	build_prompt=_content_prompt(prompts.MARKET_PROMPT),
	parse=_payload_parser(MarketMetrics().model_dump()),
	tools=[PERPLEXITY_TOOL],
)

# Scoring always clamps, including on the structured JSON path
SCORING_STEP = AnalysisStep(
	name="scoring",
	label="Scoring",
	system_prompt=prompts.SCORING_SYSTEM,
	build_prompt=_scoring_prompt,
	parse=parse_scoring_result,
	finalize=clamp_scoring_result,
	validate=validate_scoring_request,
	validate_output=validate_scoring_output,
)

ANALYSIS_STEPS = (INVESTMENT_STEP, FOUNDER_STEP, MARKET_STEP)

def build_agent_results(outcomes: Mapping[str, StepOutcome]) -> Dict[str, Any]:
	"""Reduced view for the scoring prompt: successful steps only, failed ones omitted."""
	view = {}
	for name, outcome in outcomes.items():
		if isinstance(outcome, StepSuccess):
			data = outcome.data
			view[f"{name}_analysis"] = data.model_dump() if hasattr(data, "model_dump") else data
	return view

async def execute_step(step: AnalysisStep, request: AnalysisRequest, complete: CompletionCall, agent_results: Optional[dict] = None) -> Any:
	if not step.validate(request, agent_results):
		raise InvalidInputError(f"Invalid input for {step.label} agent")
	prompt = step.build_prompt(request, agent_results)
	raw = await complete(prompt, list(step.tools), step.system_prompt)
	return step.finalize(step.parse(raw))
