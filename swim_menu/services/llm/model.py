"""LLM model construction for the supported providers.

Provider clients are built per call from the caller's credentials; nothing is
kept alive between requests.
"""

from dataclasses import dataclass

from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from swim_menu.config.settings import settings


@dataclass(frozen=True)
class ProviderConfig:
    """Static configuration of one LLM provider.

    Attributes:
        key: Provider identifier used in requests ("openai", "google", "anthropic")
        model_name: Provider model name
        temperature: Sampling temperature
        max_tokens: Optional output token limit
        key_prefix: Expected API key prefix, empty when unknown
        min_key_length: Minimum plausible API key length
        strips_fences: Whether responses may arrive fenced and must be unwrapped
    """

    key: str
    model_name: str
    temperature: float
    max_tokens: int | None = None
    key_prefix: str = ""
    min_key_length: int = 10
    strips_fences: bool = True

    def check_credentials(self, credentials: str | None) -> str | None:
        """Return a problem description, or None when the key looks well-formed."""
        if not credentials or not credentials.strip():
            return "API key is required"
        key = credentials.strip()
        if self.key_prefix and not key.startswith(self.key_prefix):
            return f"{self.key} API key must start with '{self.key_prefix}'"
        if len(key) < self.min_key_length:
            return f"{self.key} API key is malformed"
        return None

    def model_settings(self) -> ModelSettings:
        model_settings = ModelSettings(temperature=self.temperature)
        if self.max_tokens:
            model_settings["max_tokens"] = self.max_tokens
        return model_settings


def builtin_provider_configs() -> list[ProviderConfig]:
    """Return configurations for the built-in providers from settings."""
    return [
        ProviderConfig(
            key="openai",
            model_name=settings.openai_model,
            temperature=settings.openai_temperature,
            key_prefix="sk-",
            min_key_length=20,
            strips_fences=False,
        ),
        ProviderConfig(
            key="google",
            model_name=settings.google_model,
            temperature=settings.google_temperature,
            key_prefix="AIza",
            min_key_length=30,
        ),
        ProviderConfig(
            key="anthropic",
            model_name=settings.anthropic_model,
            temperature=settings.anthropic_temperature,
            max_tokens=settings.anthropic_max_tokens,
            key_prefix="sk-ant-",
            min_key_length=40,
        ),
    ]


def get_model(config: ProviderConfig, api_key: str) -> Model:
    """Build a pydantic_ai model for ``config`` authenticated with ``api_key``."""
    if config.key == "openai":
        return OpenAIChatModel(config.model_name, provider=OpenAIProvider(api_key=api_key))
    if config.key == "google":
        return GoogleModel(config.model_name, provider=GoogleProvider(api_key=api_key))
    if config.key == "anthropic":
        return AnthropicModel(config.model_name, provider=AnthropicProvider(api_key=api_key))

    raise ValueError(f"Unsupported LLM provider: {config.key}")
