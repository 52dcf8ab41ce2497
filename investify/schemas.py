from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

Level = Literal["high", "medium", "low"]
Recommendation = Literal["strong_consider", "consider", "needs_review", "pass"]
RECOMMENDATIONS = ("strong_consider", "consider", "needs_review", "pass")

class AnalysisRequest(BaseModel):
	model_config = ConfigDict(frozen=True)
	content: str
	request_id: str

class StepSuccess(BaseModel):
	model_config = ConfigDict(frozen=True)
	success: Literal[True] = True
	data: Any

class StepFailure(BaseModel):
	model_config = ConfigDict(frozen=True)
	success: Literal[False] = False
	error: str

StepOutcome = Union[StepSuccess, StepFailure]

# Investment metrics
class MarketSize(BaseModel):
	tam_usd: float = 0
	growth_rate_percent: float = 0

class RiskAssessment(BaseModel):
	overall_risk: Level = "medium"
	key_risks: List[str] = []

class ReturnPotential(BaseModel):
	estimated_roi_percent: float = 0
	time_horizon_years: float = 5

class InvestmentKeyMetrics(BaseModel):
	market_size: MarketSize = Field(default_factory=MarketSize)
	risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
	return_potential: ReturnPotential = Field(default_factory=ReturnPotential)

class InvestmentMetrics(BaseModel):
	confidence_score: float = 0.5
	key_metrics: InvestmentKeyMetrics = Field(default_factory=InvestmentKeyMetrics)

# Founder metrics
class FounderKeyMetrics(BaseModel):
	team_size: int = 0
	technical_expertise_level: Level = "medium"
	business_expertise_level: Level = "medium"
	industry_experience_years: float = 0
	previous_ventures: int = 0
	team_completeness: float = 50  # 0-100
	risk_level: Level = "medium"

class FounderMetrics(BaseModel):
	confidence_score: float = 0.5
	key_metrics: FounderKeyMetrics = Field(default_factory=FounderKeyMetrics)

# Market metrics
class AddressableMarket(BaseModel):
	tam_usd: float = 0
	sam_usd: float = 0
	growth_rate_percent: float = 0

class CompetitionMetrics(BaseModel):
	competitor_count: int = 0
	market_concentration: Level = "medium"
	barrier_to_entry: Level = "medium"

class MarketDynamics(BaseModel):
	market_stage: Literal["emerging", "growth", "mature", "declining"] = "emerging"
	risk_level: Level = "medium"

class MarketKeyMetrics(BaseModel):
	market_size: AddressableMarket = Field(default_factory=AddressableMarket)
	competition_metrics: CompetitionMetrics = Field(default_factory=CompetitionMetrics)
	market_dynamics: MarketDynamics = Field(default_factory=MarketDynamics)

class MarketMetrics(BaseModel):
	confidence_score: float = 0.5
	key_metrics: MarketKeyMetrics = Field(default_factory=MarketKeyMetrics)

class AnalysisPayload(BaseModel):
	model_config = ConfigDict(extra="allow")
	analysis: str  # markdown narrative
	metrics: Dict[str, Any]

# Scoring
class CategoryScore(BaseModel):
	model_config = ConfigDict(extra="allow")
	score: float = 50  # 0-100
	confidence: float = 0.5  # 0-1
	strengths: List[str] = []
	weaknesses: List[str] = []
	assessment: str = "Insufficient data for detailed assessment"

class CategoryScores(BaseModel):
	model_config = ConfigDict(extra="allow")
	overall: float = 50
	team: CategoryScore = Field(default_factory=CategoryScore)
	market: CategoryScore = Field(default_factory=CategoryScore)
	technical: CategoryScore = Field(default_factory=CategoryScore)
	innovation: CategoryScore = Field(default_factory=CategoryScore)

class ScoringResult(BaseModel):
	model_config = ConfigDict(extra="allow")
	scores: CategoryScores = Field(default_factory=CategoryScores)
	recommendation: Recommendation = "needs_review"
	confidence_level: float = 0.5
	key_insights: List[str] = []
	risk_factors: List[str] = []

class AnalysisMeta(BaseModel):
	request_id: str
	timestamp: str  # ISO-8601, UTC
	agents_run: List[str]
	execution_time_ms: int

class CombinedResult(BaseModel):
	investment: Optional[AnalysisPayload] = None
	founder: Optional[AnalysisPayload] = None
	market: Optional[AnalysisPayload] = None
	scoring: Optional[ScoringResult] = None
	errors: List[str] = []
	meta: AnalysisMeta

class AnalyzeOptions(BaseModel):
	model_config = ConfigDict(extra="forbid")
	request_id: Optional[str] = None
	run_investment: bool = True
	run_founder: bool = True
	run_market: bool = True
	run_scoring: bool = True
	run_parallel: bool = False

class ToolSpec(BaseModel):
	model_config = ConfigDict(frozen=True)
	name: str
	description: str
	parameters: Dict[str, Any]  # JSON schema

	def to_openai(self) -> Dict[str, Any]:
		return {
			"type": "function",
			"function": {"name": self.name, "description": self.description, "parameters": self.parameters},
		}

	def to_anthropic(self) -> Dict[str, Any]:
		return {"name": self.name, "description": self.description, "input_schema": self.parameters}

class LogEvent(BaseModel):
	type: str  # "log", "step_start", "step_success", "step_failure", "skipped", "complete"
	request_id: Optional[str] = None
	message: Optional[str] = None
	agent: Optional[str] = None  # "investment", "founder", "market", "scoring", "system"
	data: Optional[Dict] = None

class AnalyzeBody(BaseModel):
	content: str
	options: Optional[AnalyzeOptions] = None

class BatchBody(BaseModel):
	contents: List[str]
	options: Optional[AnalyzeOptions] = None
