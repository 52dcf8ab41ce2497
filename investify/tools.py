import logging
from typing import Any, Awaitable, Callable, Dict, Optional
import openai
from openai import AsyncOpenAI
from .config import get_settings
from .exceptions import UpstreamError
from .schemas import ToolSpec

logger = logging.getLogger(__name__)

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"
RESEARCH_SYSTEM_PROMPT = (
	"You are a research assistant focused on finding accurate, verifiable information about companies, "
	"markets, investments, and financial data. Provide detailed, factual responses with relevant dates "
	"and specifics when available."
)
RESEARCH_UNAVAILABLE = "Research unavailable - Perplexity API key not configured."

QUERY_PARAMETERS = {
	"type": "object",
	"properties": {
		"query": {"type": "string", "description": "The search query to find information"},
	},
	"required": ["query"],
}

WEB_SEARCH_TOOL = ToolSpec(
	name="web_search",
	description="Searches the web for recent information related to investments, markets and companies",
	parameters=QUERY_PARAMETERS,
)

PERPLEXITY_TOOL = ToolSpec(
	name="perplexity",
	description="Research current information about investments, markets, companies and financial data",
	parameters=QUERY_PARAMETERS,
)

_research_client: Optional[AsyncOpenAI] = None

def get_research_client() -> Optional[AsyncOpenAI]:
	global _research_client
	settings = get_settings()
	if not settings.perplexity_api_key:
		return None
	if _research_client is None:
		_research_client = AsyncOpenAI(api_key=settings.perplexity_api_key, base_url=PERPLEXITY_BASE_URL, max_retries=0)
	return _research_client

async def _research(query: str, model: str) -> str:
	client = get_research_client()
	if client is None:
		logger.warning(f"Skipping research for {query!r}: no Perplexity key")
		return RESEARCH_UNAVAILABLE
	try:
		response = await client.chat.completions.create(
			model=model,
			messages=[
				{"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
				{"role": "user", "content": query},
			],
			max_tokens=1000,
			temperature=0.2,
			top_p=0.9,
		)
	except openai.OpenAIError as e:
		raise UpstreamError(f"Perplexity API error: {e}") from e
	content = response.choices[0].message.content if response.choices else None
	if not content:
		raise UpstreamError("Invalid response format from Perplexity API")
	logger.debug(f"Research for {query!r} returned {len(content)} chars")
	return content

async def web_search(query: str) -> str:
	return await _research(query, get_settings().search_model)

async def perplexity_research(query: str) -> str:
	return await _research(query, get_settings().perplexity_model)

TOOL_HANDLERS: Dict[str, Callable[[str], Awaitable[str]]] = {
	WEB_SEARCH_TOOL.name: web_search,
	PERPLEXITY_TOOL.name: perplexity_research,
}

async def run_tool(name: str, arguments: Dict[str, Any]) -> str:
	handler = TOOL_HANDLERS.get(name)
	if handler is None:
		return f"Tool '{name}' not found"
	query = arguments.get("query") if isinstance(arguments, dict) else None
	if not isinstance(query, str) or not query.strip():
		return f"Tool '{name}' requires a non-empty 'query' argument"
	return await handler(query)
