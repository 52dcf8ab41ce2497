import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from .agents import (
	ANALYSIS_STEPS, SCORING_STEP, AnalysisStep, CompletionCall,
	build_agent_results, execute_step, get_completion,
)
from .config import get_settings
from .schemas import AnalysisMeta, AnalysisPayload, AnalysisRequest, AnalyzeOptions, CombinedResult, StepFailure, StepOutcome, StepSuccess, ScoringResult

logger = logging.getLogger(__name__)

SCORING_SKIPPED = "Scoring agent skipped: No successful agent analyses available"

Emit = Callable[..., None]

def _notify(emit: Optional[Emit], event_type: str, request_id: str, message: str, agent: str, data: Optional[Dict] = None, level: int = logging.INFO):
	logger.log(level, f"[{request_id}] {agent}: {message}")
	if emit is not None:
		emit(event_type, request_id, message, agent, data)

def _coerce_options(options: Union[AnalyzeOptions, Mapping[str, Any], None]) -> AnalyzeOptions:
	if options is None:
		return AnalyzeOptions()
	if isinstance(options, AnalyzeOptions):
		return options
	return AnalyzeOptions.model_validate(options)

def _resolve_completion(step: AnalysisStep, completions: Optional[Mapping[str, CompletionCall]]) -> CompletionCall:
	if completions and step.name in completions:
		return completions[step.name]
	return get_completion(get_settings().provider_for(step.name))

async def _run_step(step: AnalysisStep, request: AnalysisRequest, completions, emit: Optional[Emit], agent_results: Optional[dict] = None) -> Tuple[StepOutcome, Optional[str]]:
	"""Run one step in isolation. Returns the outcome and, on failure, the error-list entry."""
	_notify(emit, "step_start", request.request_id, f"Running {step.name} agent", step.name)
	try:
		complete = _resolve_completion(step, completions)
		data = await execute_step(step, request, complete, agent_results)
		if not step.validate_output(data):
			raise ValueError(f"Invalid output from {step.label} agent")
	except Exception as e:
		message = str(e) or type(e).__name__
		_notify(emit, "step_failure", request.request_id, f"{step.label} agent failed: {message}", step.name, level=logging.ERROR)
		return StepFailure(error=message), f"{step.label} agent error: {message}"
	_notify(emit, "step_success", request.request_id, f"{step.label} agent completed", step.name, _summary(data))
	return StepSuccess(data=data), None

def _summary(data: Any) -> Dict[str, Any]:
	if isinstance(data, ScoringResult):
		return {"overall": data.scores.overall, "recommendation": data.recommendation, "confidence_level": data.confidence_level}
	if isinstance(data, AnalysisPayload):
		return {"confidence_score": data.metrics.get("confidence_score"), "analysis_length": len(data.analysis)}
	return {}

async def analyze(content: str, options: Union[AnalyzeOptions, Mapping[str, Any], None] = None, emit: Optional[Emit] = None, completions: Optional[Mapping[str, CompletionCall]] = None) -> CombinedResult:
	start_time = time.time()
	opts = _coerce_options(options)
	request_id = opts.request_id or f"investment-{int(start_time * 1000)}"
	request = AnalysisRequest(content=content, request_id=request_id)
	enabled = {
		"investment": opts.run_investment,
		"founder": opts.run_founder,
		"market": opts.run_market,
	}
	errors: List[str] = []
	agents_run: List[str] = []
	outcomes: Dict[str, StepOutcome] = {}
	_notify(emit, "log", request_id, f"Starting analysis ({len(content or '')} chars)", "system", opts.model_dump())

	steps = [step for step in ANALYSIS_STEPS if enabled[step.name]]
	agents_run.extend(step.name for step in steps)
	if opts.run_parallel:
		settled = await asyncio.gather(*(_run_step(step, request, completions, emit) for step in steps))
	else:
		settled = []
		for step in steps:
			settled.append(await _run_step(step, request, completions, emit))
	for step, (outcome, error) in zip(steps, settled):
		outcomes[step.name] = outcome
		if error:
			errors.append(error)

	scoring = None
	if opts.run_scoring:
		if any(isinstance(o, StepSuccess) for o in outcomes.values()):
			agents_run.append(SCORING_STEP.name)
			outcome, error = await _run_step(SCORING_STEP, request, completions, emit, build_agent_results(outcomes))
			if error:
				errors.append(error)
			else:
				scoring = outcome.data
		else:
			_notify(emit, "skipped", request_id, SCORING_SKIPPED, SCORING_STEP.name, level=logging.WARNING)
			errors.append(SCORING_SKIPPED)

	def payload(name):
		outcome = outcomes.get(name)
		return outcome.data if isinstance(outcome, StepSuccess) else None

	execution_time_ms = int((time.time() - start_time) * 1000)
	result = CombinedResult(
		investment=payload("investment"),
		founder=payload("founder"),
		market=payload("market"),
		scoring=scoring,
		errors=errors,
		meta=AnalysisMeta(
			request_id=request_id,
			timestamp=datetime.now(timezone.utc).isoformat(),
			agents_run=agents_run,
			execution_time_ms=execution_time_ms,
		),
	)
	_notify(emit, "log", request_id, f"Analysis completed in {execution_time_ms}ms with {len(errors)} error(s)", "system", {"agents_run": agents_run, "errors": len(errors)})
	return result

async def analyze_batch(contents: List[str], options: Union[AnalyzeOptions, Mapping[str, Any], None] = None, emit: Optional[Emit] = None, completions: Optional[Mapping[str, CompletionCall]] = None) -> List[CombinedResult]:
	opts = _coerce_options(options)
	_notify(emit, "log", "batch", f"Starting batch analysis of {len(contents)} investment(s)", "system")
	base_id = opts.request_id or f"batch-{int(time.time() * 1000)}"
	tasks = []
	for i, content in enumerate(contents):
		item_opts = opts.model_copy(update={"request_id": f"{base_id}-{i + 1}"})
		tasks.append(analyze(content, item_opts, emit, completions))
	return await asyncio.gather(*tasks)
