"""Model invocation behind a single provider contract.

Every provider exposes ``generate(user_prompt, system_prompt, credentials)``
and returns raw text. Provider failures are mapped to ``ProviderErrorKind``
so callers never see SDK-specific exceptions. There is no retry here; a failed
call surfaces immediately.
"""

from collections.abc import Callable, Iterable
from typing import Protocol

from loguru import logger
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.models import Model

from swim_menu.menus.errors import InvalidRequestError, ModelProviderError, ProviderErrorKind
from swim_menu.menus.sanitize import strip_code_fence
from swim_menu.services.llm.model import ProviderConfig, builtin_provider_configs, get_model

ModelFactory = Callable[[ProviderConfig, str], Model]


class ModelProvider(Protocol):
    config: ProviderConfig

    async def generate(self, user_prompt: str, system_prompt: str, credentials: str) -> str: ...


# Order matters: quota before rate limit, since quota errors also arrive as 429.
_ERROR_SUBSTRINGS: list[tuple[ProviderErrorKind, tuple[str, ...]]] = [
    (
        ProviderErrorKind.INVALID_CREDENTIALS,
        ("invalid_api_key", "invalid api key", "incorrect api key", "api key not valid", "authentication", "unauthorized", "permission_denied"),
    ),
    (ProviderErrorKind.QUOTA_EXCEEDED, ("insufficient_quota", "quota", "billing", "credit balance")),
    (ProviderErrorKind.RATE_LIMITED, ("rate limit", "rate_limit", "too many requests", "resource_exhausted")),
    (ProviderErrorKind.OVERLOADED, ("overloaded", "unavailable", "capacity")),
    (ProviderErrorKind.MODEL_NOT_FOUND, ("model_not_found", "not_found", "not found", "does not exist")),
]

_STATUS_KINDS: dict[int, ProviderErrorKind] = {
    401: ProviderErrorKind.INVALID_CREDENTIALS,
    403: ProviderErrorKind.INVALID_CREDENTIALS,
    404: ProviderErrorKind.MODEL_NOT_FOUND,
    429: ProviderErrorKind.RATE_LIMITED,
    503: ProviderErrorKind.OVERLOADED,
    529: ProviderErrorKind.OVERLOADED,
}


def classify_provider_error(error: Exception) -> ProviderErrorKind:
    """Map a provider exception to a domain error kind.

    Message substrings win over the HTTP status so that, for example, a 429
    carrying "insufficient_quota" is reported as quota exhaustion.
    """
    text = str(error).lower()
    if isinstance(error, ModelHTTPError) and error.body is not None:
        text = f"{text} {error.body}".lower()

    for kind, needles in _ERROR_SUBSTRINGS:
        if any(needle in text for needle in needles):
            return kind

    if isinstance(error, ModelHTTPError):
        return _STATUS_KINDS.get(error.status_code, ProviderErrorKind.UPSTREAM_ERROR)
    return ProviderErrorKind.UPSTREAM_ERROR


class PydanticAIProvider:
    """Provider implementation running a plain-text pydantic_ai Agent."""

    def __init__(self, config: ProviderConfig, model_factory: ModelFactory = get_model):
        """Initialize provider.

        Args:
            config: Provider configuration
            model_factory: Builds the pydantic_ai model for a call from config and API key
        """
        self.config = config
        self.model_factory = model_factory

    async def generate(self, user_prompt: str, system_prompt: str, credentials: str) -> str:
        """Run one completion and return its raw text.

        Raises:
            ModelProviderError: If the call fails or returns no text
        """
        logger.debug(
            "Calling LLM for menu generation",
            provider=self.config.key,
            model=self.config.model_name,
            prompt_chars=len(user_prompt),
        )

        try:
            agent = Agent(
                model=self.model_factory(self.config, credentials),
                system_prompt=system_prompt,
                model_settings=self.config.model_settings(),
            )
            result = await agent.run(user_prompt)
        except Exception as e:
            kind = classify_provider_error(e)
            logger.error(
                "LLM call failed",
                provider=self.config.key,
                model=self.config.model_name,
                kind=kind.value,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise ModelProviderError(kind, self.config.key) from e

        content = result.output if isinstance(result.output, str) else ""
        if self.config.strips_fences:
            content = strip_code_fence(content)

        if not content or not content.strip():
            logger.error("LLM returned an empty response", provider=self.config.key, model=self.config.model_name)
            raise ModelProviderError(ProviderErrorKind.EMPTY_RESPONSE, self.config.key)

        return content


class ProviderRegistry:
    """Model providers keyed by provider identifier."""

    def __init__(self, providers: Iterable[ModelProvider] = ()):
        self._providers: dict[str, ModelProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: ModelProvider) -> None:
        self._providers[provider.config.key] = provider

    def keys(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    def get(self, key: str) -> ModelProvider:
        """Return the provider for ``key``.

        Raises:
            InvalidRequestError: If no provider is registered under ``key``
        """
        provider = self._providers.get(key)
        if provider is None:
            raise InvalidRequestError(f"Unsupported AI model '{key}'. Choose one of: {', '.join(self.keys())}")
        return provider


def default_registry(model_factory: ModelFactory = get_model) -> ProviderRegistry:
    """Build a registry with the built-in OpenAI, Google and Anthropic providers."""
    return ProviderRegistry(PydanticAIProvider(config, model_factory) for config in builtin_provider_configs())
