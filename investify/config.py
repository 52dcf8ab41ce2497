from functools import lru_cache
from typing import Literal, Optional
from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
load_dotenv()

from .exceptions import UpstreamError

Provider = Literal["openai", "anthropic"]

class Settings(BaseSettings):
	"""Runtime configuration. Resolution order: keyword arguments, environment, .env, defaults."""

	model_config = SettingsConfigDict(env_prefix="INVESTIFY_", env_ignore_empty=True, extra="ignore")

	# Provider keys keep their conventional unprefixed names
	openai_api_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("openai_api_key", "OPENAI_API_KEY"))
	anthropic_api_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("anthropic_api_key", "ANTHROPIC_API_KEY"))
	perplexity_api_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("perplexity_api_key", "PERPLEXITY_API_KEY"))
	openai_model: str = "gpt-4o"
	claude_model: str = "claude-3-5-haiku-20241022"
	perplexity_model: str = "sonar-reasoning-pro"
	search_model: str = "sonar"
	temperature: float = 0.2
	max_tokens: int = 4000
	max_tool_iterations: int = 5
	request_timeout: float = 120.0
	investment_provider: Provider = "openai"
	founder_provider: Provider = "openai"
	market_provider: Provider = "openai"
	scoring_provider: Provider = "openai"
	log_level: str = "INFO"

	@field_validator("investment_provider", "founder_provider", "market_provider", "scoring_provider", mode="before")
	@classmethod
	def _lower_provider(cls, value):
		return value.lower() if isinstance(value, str) else value

	@field_validator("log_level", mode="before")
	@classmethod
	def _upper_level(cls, value):
		return value.upper() if isinstance(value, str) else value

	def provider_for(self, step: str) -> Provider:
		return getattr(self, f"{step}_provider", "openai")

@lru_cache()
def get_settings() -> Settings:
	return Settings()

def require_key(value: Optional[str], name: str) -> str:
	# Checked per call: a missing key fails only the step that needs it
	if not value:
		raise UpstreamError(f"Required environment variable '{name}' is not set")
	return value
