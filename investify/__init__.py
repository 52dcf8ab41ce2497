from .exceptions import InvalidInputError, UpstreamError
from .pipeline import analyze, analyze_batch
from .schemas import AnalyzeOptions, CombinedResult

__all__ = ["analyze", "analyze_batch", "AnalyzeOptions", "CombinedResult", "InvalidInputError", "UpstreamError"]
