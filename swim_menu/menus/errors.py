"""Error types for menu generation.

Only three kinds ever escape ``generate_menu``:
- InvalidRequestError: the request itself is unusable (client fault)
- ModelProviderError: the upstream LLM call failed
- InvalidMenuResponseError: the LLM answered, but not with a usable menu

Retrieval and persistence failures are handled where they occur and never
surface through these types.
"""

from enum import StrEnum


class MenuGenerationError(RuntimeError):
    """Base exception for menu generation errors."""

    pass


class InvalidRequestError(MenuGenerationError):
    """Raised before any network call when the request violates an invariant."""

    pass


class ProviderErrorKind(StrEnum):
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    OVERLOADED = "overloaded"
    MODEL_NOT_FOUND = "model_not_found"
    EMPTY_RESPONSE = "empty_response"
    UPSTREAM_ERROR = "upstream_error"


PROVIDER_ERROR_MESSAGES: dict[ProviderErrorKind, str] = {
    ProviderErrorKind.INVALID_CREDENTIALS: "The API key was rejected by the AI provider. Check the key and try again.",
    ProviderErrorKind.RATE_LIMITED: "The AI provider rate limit was reached. Wait a moment and try again.",
    ProviderErrorKind.QUOTA_EXCEEDED: "The AI provider quota for this API key is exhausted.",
    ProviderErrorKind.OVERLOADED: "The AI provider is temporarily overloaded. Try again shortly.",
    ProviderErrorKind.MODEL_NOT_FOUND: "The configured AI model is not available for this API key.",
    ProviderErrorKind.EMPTY_RESPONSE: "The AI provider returned an empty response.",
    ProviderErrorKind.UPSTREAM_ERROR: "The AI provider request failed.",
}


class ModelProviderError(MenuGenerationError):
    """Raised when an LLM provider call fails.

    Attributes:
        kind: Domain error kind the provider failure was mapped to
        provider: Provider identifier (e.g. "openai")
    """

    def __init__(self, kind: ProviderErrorKind, provider: str, message: str | None = None) -> None:
        self.kind = kind
        self.provider = provider
        super().__init__(message or PROVIDER_ERROR_MESSAGES[kind])


class InvalidMenuResponseError(MenuGenerationError):
    """Raised when the model output cannot be turned into a menu.

    The message stays generic for external callers; ``details`` names the
    failing step or field for diagnosis.
    """

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__("AI response is not a valid menu")
