"""Tests for LLM provider invocation and error mapping."""

import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.openai import OpenAIChatModel

from swim_menu.menus.errors import InvalidRequestError, ModelProviderError, ProviderErrorKind
from swim_menu.services.llm.model import ProviderConfig, builtin_provider_configs, get_model
from swim_menu.services.llm.providers import (
    ProviderRegistry,
    PydanticAIProvider,
    classify_provider_error,
    default_registry,
)

MENU_JSON = '{"title": "T", "menu": [], "totalTime": 0}'


def _config(key: str = "google", strips_fences: bool = True, max_tokens: int | None = None) -> ProviderConfig:
    return ProviderConfig(key=key, model_name="test-model", temperature=0.4, max_tokens=max_tokens, strips_fences=strips_fences)


def _provider(fn, **config_kwargs) -> PydanticAIProvider:
    return PydanticAIProvider(_config(**config_kwargs), model_factory=lambda config, api_key: FunctionModel(fn))


def _reply(text: str):
    def fn(messages, info: AgentInfo) -> ModelResponse:
        return ModelResponse(parts=[TextPart(text)])

    return fn


def _fail_with(status_code: int, body: object = None):
    def fn(messages, info: AgentInfo) -> ModelResponse:
        raise ModelHTTPError(status_code=status_code, model_name="test-model", body=body)

    return fn


@pytest.mark.asyncio
async def test_generate_returns_raw_text_and_passes_settings():
    seen = {}

    def fn(messages, info: AgentInfo) -> ModelResponse:
        seen["settings"] = info.model_settings
        seen["parts"] = [part for message in messages for part in message.parts]
        return ModelResponse(parts=[TextPart(MENU_JSON)])

    provider = _provider(fn, max_tokens=4000)

    raw = await provider.generate("user prompt", "system prompt", "key")

    assert raw == MENU_JSON
    assert seen["settings"]["temperature"] == 0.4
    assert seen["settings"]["max_tokens"] == 4000
    contents = [getattr(part, "content", None) for part in seen["parts"]]
    assert "system prompt" in contents
    assert "user prompt" in contents


@pytest.mark.asyncio
async def test_generate_strips_fences_when_configured():
    provider = _provider(_reply(f"```json\n{MENU_JSON}\n```"))

    assert await provider.generate("u", "s", "key") == MENU_JSON


@pytest.mark.asyncio
async def test_generate_keeps_fences_when_not_configured():
    fenced = f"```json\n{MENU_JSON}\n```"
    provider = _provider(_reply(fenced), key="openai", strips_fences=False)

    assert await provider.generate("u", "s", "key") == fenced


@pytest.mark.asyncio
async def test_empty_response_is_an_error():
    provider = _provider(_reply("   "))

    with pytest.raises(ModelProviderError) as exc_info:
        await provider.generate("u", "s", "key")

    assert exc_info.value.kind == ProviderErrorKind.EMPTY_RESPONSE
    assert exc_info.value.provider == "google"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "body", "kind"),
    [
        (401, {"message": "bad key"}, ProviderErrorKind.INVALID_CREDENTIALS),
        (429, {"error": {"code": "insufficient_quota"}}, ProviderErrorKind.QUOTA_EXCEEDED),
        (429, None, ProviderErrorKind.RATE_LIMITED),
        (529, {"type": "overloaded_error"}, ProviderErrorKind.OVERLOADED),
        (404, None, ProviderErrorKind.MODEL_NOT_FOUND),
        (500, None, ProviderErrorKind.UPSTREAM_ERROR),
    ],
)
async def test_http_errors_are_mapped(status_code, body, kind):
    provider = _provider(_fail_with(status_code, body))

    with pytest.raises(ModelProviderError) as exc_info:
        await provider.generate("u", "s", "key")

    assert exc_info.value.kind == kind
    assert isinstance(exc_info.value.__cause__, ModelHTTPError)


def test_classify_plain_exceptions_by_message():
    assert classify_provider_error(RuntimeError("Incorrect API key provided")) == ProviderErrorKind.INVALID_CREDENTIALS
    assert classify_provider_error(RuntimeError("Rate limit reached")) == ProviderErrorKind.RATE_LIMITED
    assert classify_provider_error(RuntimeError("connection reset")) == ProviderErrorKind.UPSTREAM_ERROR


def test_registry_rejects_unknown_provider():
    registry = default_registry()

    assert registry.keys() == ["anthropic", "google", "openai"]
    assert "openai" in registry
    with pytest.raises(InvalidRequestError, match="Unsupported AI model 'mistral'"):
        registry.get("mistral")


def test_registry_register_replaces_by_key():
    registry = ProviderRegistry()
    first = _provider(_reply("a"))
    second = _provider(_reply("b"))

    registry.register(first)
    registry.register(second)

    assert registry.get("google") is second


@pytest.mark.parametrize(
    ("key", "credentials", "ok"),
    [
        ("openai", "sk-0123456789abcdefghij", True),
        ("openai", "sk-short", False),
        ("openai", "AIza0123456789abcdefghijklmnopqrstu", False),
        ("google", "AIza0123456789abcdefghijklmnopqrstu", True),
        ("google", "AIzashort", False),
        ("anthropic", "sk-ant-" + "x" * 40, True),
        ("anthropic", "sk-0123456789abcdefghijklmnopqrstuvwxyz0123", False),
        ("openai", "", False),
        ("openai", "   ", False),
    ],
)
def test_builtin_credential_checks(key, credentials, ok):
    config = next(config for config in builtin_provider_configs() if config.key == key)
    assert (config.check_credentials(credentials) is None) is ok


def test_get_model_builds_openai_chat_model():
    config = next(config for config in builtin_provider_configs() if config.key == "openai")
    assert isinstance(get_model(config, "sk-0123456789abcdefghij"), OpenAIChatModel)


def test_get_model_rejects_unknown_provider():
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        get_model(_config(key="mistral"), "key")
