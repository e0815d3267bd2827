"""Tests for the menu generation pipeline.

Tests cover:
- Full pipeline with in-process collaborators
- Reconciliation of over-budget responses
- Request checks before any network call
- Invalid model output
- Best-effort retrieval and persistence
"""

import json

import pytest
from conftest import OPENAI_KEY, RETRIEVAL_KEY, FakeEmbedder, FakeMenuStore, FakeProvider, make_menu_dict

from swim_menu.menus.errors import InvalidMenuResponseError, InvalidRequestError, ModelProviderError, ProviderErrorKind
from swim_menu.menus.service import MenuGenerator, build_menu_metadata, default_title, generate_menu
from swim_menu.menus.types import GenerationRequest, LoadLevel
from swim_menu.services.llm.providers import ProviderRegistry


def _request(**overrides) -> GenerationRequest:
    fields = {
        "load_levels": [LoadLevel.MEDIUM],
        "duration": 25,
        "notes": None,
        "model": "openai",
        "credentials": OPENAI_KEY,
    }
    fields.update(overrides)
    return GenerationRequest(**fields)


def _generator(provider, embedder=None, retrieval_store=None, menu_store=None) -> MenuGenerator:
    return MenuGenerator(
        registry=ProviderRegistry([provider]),
        embedder=embedder or FakeEmbedder(),
        retrieval_store=retrieval_store,
        menu_store=menu_store or FakeMenuStore(),
    )


@pytest.mark.asyncio
async def test_generates_estimated_menu(fake_provider, fake_embedder, fake_retrieval_store, fake_menu_store):
    generator = _generator(fake_provider, fake_embedder, fake_retrieval_store, fake_menu_store)

    result = await generator.generate_menu(_request())

    assert result.menu_id.startswith("menu_")
    assert result.saved is True
    assert result.within_duration is True
    assert result.menu.total_time == 20
    assert result.remaining_time == 5
    assert [section.total_time for section in result.menu.sections] == [10, 10]

    saved = fake_menu_store.saved[0]
    assert saved["menu_id"] == result.menu_id
    assert saved["metadata"]["aiModel"] == "openai"
    assert saved["metadata"]["totalTime"] == 20
    assert saved["embedding"] == [1.0, 0.0, 0.0]


@pytest.mark.asyncio
async def test_over_budget_response_is_reconciled(fake_menu_store):
    provider = FakeProvider(json.dumps(make_menu_dict(main_sets=10)))

    result = await _generator(provider, menu_store=fake_menu_store).generate_menu(_request())

    assert result.menu.total_time == 25
    assert result.within_duration is True
    assert result.remaining_time == 0
    assert fake_menu_store.saved[0]["menu"].total_time == 25


@pytest.mark.asyncio
async def test_unreducible_response_is_returned_over_budget():
    menu = make_menu_dict(main_sets=1, with_warm_up=False)
    menu["menu"][0]["items"][0]["distance"] = "2000m"
    provider = FakeProvider(json.dumps(menu))

    result = await _generator(provider).generate_menu(_request(duration=10))

    assert result.within_duration is False
    assert result.menu.total_time == 50
    assert result.remaining_time == -40


@pytest.mark.asyncio
async def test_retrieval_context_reaches_prompt(fake_provider, fake_embedder, fake_retrieval_store):
    generator = _generator(fake_provider, fake_embedder, fake_retrieval_store)

    await generator.generate_menu(_request(use_retrieval=True, retrieval_credentials=RETRIEVAL_KEY, notes="turns"))

    user_prompt, system_prompt, credentials = fake_provider.calls[0]
    assert "Previous menus to use as reference:\nTitle: Previous sprint day" in user_prompt
    assert "Special notes: turns" in user_prompt
    assert "MUST NOT exceed 25 minutes" in system_prompt
    assert credentials == OPENAI_KEY
    assert fake_embedder.calls[0] == ("medium 25 min turns", RETRIEVAL_KEY)


@pytest.mark.asyncio
async def test_disabled_retrieval_leaves_prompt_without_context(fake_provider, fake_embedder, fake_retrieval_store):
    generator = _generator(fake_provider, fake_embedder, fake_retrieval_store)

    await generator.generate_menu(_request(use_retrieval=False, retrieval_credentials=RETRIEVAL_KEY))

    assert "Previous menus" not in fake_provider.calls[0][0]
    assert fake_retrieval_store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"load_levels": []},
        {"duration": 0},
        {"duration": -5},
        {"model": "mistral"},
        {"credentials": ""},
        {"credentials": "sk-short"},
    ],
)
async def test_invalid_requests_fail_before_any_call(fake_provider, fake_menu_store, overrides):
    generator = _generator(fake_provider, menu_store=fake_menu_store)

    with pytest.raises(InvalidRequestError):
        await generator.generate_menu(_request(**overrides))

    assert fake_provider.calls == []
    assert fake_menu_store.saved == []


@pytest.mark.asyncio
async def test_response_wrapped_in_prose_is_accepted(menu_dict):
    raw = f"Here you go:\n```json\n{json.dumps(menu_dict)}\n```\nEnjoy!"

    result = await _generator(FakeProvider(raw)).generate_menu(_request())

    assert result.menu.title == menu_dict["title"]


@pytest.mark.asyncio
async def test_non_json_response_is_rejected(fake_menu_store):
    generator = _generator(FakeProvider("I cannot create that menu."), menu_store=fake_menu_store)

    with pytest.raises(InvalidMenuResponseError) as exc_info:
        await generator.generate_menu(_request())

    assert "not JSON" in exc_info.value.details
    assert fake_menu_store.saved == []


@pytest.mark.asyncio
async def test_structurally_invalid_response_names_field(menu_dict):
    menu_dict["menu"][1]["items"][0]["sets"] = "four"

    with pytest.raises(InvalidMenuResponseError) as exc_info:
        await _generator(FakeProvider(json.dumps(menu_dict))).generate_menu(_request())

    assert exc_info.value.details.startswith("menu[1].items[0].sets")
    assert str(exc_info.value) == "AI response is not a valid menu"


@pytest.mark.asyncio
async def test_missing_title_gets_default(menu_dict):
    del menu_dict["title"]

    result = await _generator(FakeProvider(json.dumps(menu_dict))).generate_menu(_request(load_levels=[LoadLevel.HIGH]))

    assert result.menu.title == "High load 25-minute training menu"


@pytest.mark.asyncio
async def test_provider_errors_propagate():
    provider = FakeProvider("", error=ModelProviderError(ProviderErrorKind.RATE_LIMITED, "openai"))

    with pytest.raises(ModelProviderError) as exc_info:
        await _generator(provider).generate_menu(_request())

    assert exc_info.value.kind == ProviderErrorKind.RATE_LIMITED


@pytest.mark.asyncio
async def test_persistence_failure_still_returns_menu(fake_provider):
    store = FakeMenuStore(error=RuntimeError("disk full"))

    result = await _generator(fake_provider, menu_store=store).generate_menu(_request())

    assert result.saved is False
    assert result.menu.total_time == 20


@pytest.mark.asyncio
async def test_embedding_failure_saves_without_vector(fake_provider, fake_menu_store):
    embedder = FakeEmbedder(error=ValueError("Failed to generate embedding"))

    result = await _generator(fake_provider, embedder, menu_store=fake_menu_store).generate_menu(_request())

    assert result.saved is True
    assert fake_menu_store.saved[0]["embedding"] is None


@pytest.mark.asyncio
async def test_non_openai_provider_without_retrieval_key_skips_embedding(menu_dict, fake_menu_store):
    provider = FakeProvider(json.dumps(menu_dict), key="anthropic")
    embedder = FakeEmbedder()

    await _generator(provider, embedder, menu_store=fake_menu_store).generate_menu(_request(model="anthropic"))

    assert embedder.calls == []
    assert fake_menu_store.saved[0]["embedding"] is None


@pytest.mark.asyncio
async def test_retrieval_key_used_for_embedding(menu_dict, fake_retrieval_store, fake_menu_store):
    provider = FakeProvider(json.dumps(menu_dict), key="anthropic")
    embedder = FakeEmbedder()
    generator = _generator(provider, embedder, fake_retrieval_store, fake_menu_store)

    await generator.generate_menu(_request(model="anthropic", use_retrieval=True, retrieval_credentials=RETRIEVAL_KEY))

    assert {credentials for _, credentials in embedder.calls} == {RETRIEVAL_KEY}
    assert fake_menu_store.saved[0]["embedding"] is not None


@pytest.mark.asyncio
async def test_module_level_generate_menu(fake_provider, fake_menu_store):
    result = await generate_menu(
        _request(),
        registry=ProviderRegistry([fake_provider]),
        embedder=FakeEmbedder(),
        menu_store=fake_menu_store,
        retrieval_store=None,
    )

    assert result.saved is True


@pytest.mark.asyncio
async def test_search_similar(fake_provider, fake_embedder, fake_retrieval_store):
    generator = _generator(fake_provider, fake_embedder, fake_retrieval_store)

    hits = await generator.search_similar("easy aerobic", 30, RETRIEVAL_KEY, top_k=2)

    assert [hit.id for hit in hits] == ["menu_prev"]
    _, top_k, window = fake_retrieval_store.calls[0]
    assert top_k == 2
    assert (window.min, window.max) == (24, 36)


@pytest.mark.asyncio
async def test_search_similar_requires_query_and_key(fake_provider):
    generator = _generator(fake_provider)

    with pytest.raises(InvalidRequestError):
        await generator.search_similar("  ", None, RETRIEVAL_KEY)
    with pytest.raises(InvalidRequestError):
        await generator.search_similar("easy", None, "")


def test_metadata_and_default_title(sample_menu):
    request = _request(load_levels=[LoadLevel.LOW, LoadLevel.MEDIUM], notes="turns")

    metadata = build_menu_metadata(request, sample_menu, "2026-01-05T10:00:00+00:00")

    assert default_title(request) == "Low load / Medium load 25-minute training menu"
    assert metadata["loadLevels"] == ["low", "medium"]
    assert metadata["description"] == "AI generated menu: Low load / Medium load 25 min"
    assert metadata["notes"] == "turns"
    assert metadata["createdAt"] == "2026-01-05T10:00:00+00:00"
