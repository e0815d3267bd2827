"""Menu generation pipeline.

Sequence for one request:
request check -> retrieval context (optional) -> prompts -> model call ->
sanitize -> JSON parse -> default title -> structural check -> estimate ->
reconcile (when over budget) -> persistence stage.

Every step is awaited in order; there is no state shared between requests.
The persistence stage has its own error boundary so a storage failure never
costs the caller the generated menu.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from swim_menu.config.settings import settings
from swim_menu.db.menu_repository import MenuStore, SqlMenuStore
from swim_menu.menus.errors import InvalidMenuResponseError, InvalidRequestError
from swim_menu.menus.prompts import build_prompts
from swim_menu.menus.reconcile import reconcile
from swim_menu.menus.sanitize import sanitize
from swim_menu.menus.timing import estimate_menu
from swim_menu.menus.types import GeneratedMenu, GenerationRequest, GenerationResult, load_level_label
from swim_menu.menus.validate import check_menu, parse_menu
from swim_menu.rag.embed.embedder import OpenAIEmbedder, menu_embedding_text
from swim_menu.rag.retrieve.assembler import assemble_context
from swim_menu.rag.types import DurationWindow, EmbeddingProvider, RetrievalHit, RetrievalStore
from swim_menu.services.llm.providers import ModelProvider, ProviderRegistry, default_registry


def new_menu_id() -> str:
    return f"menu_{uuid.uuid4().hex}"


def default_title(request: GenerationRequest) -> str:
    return f"{load_level_label(request.load_levels)} {request.duration}-minute training menu"


def build_menu_metadata(request: GenerationRequest, menu: GeneratedMenu, created_at: str) -> dict[str, Any]:
    """Searchable metadata stored next to a generated menu."""
    return {
        "title": menu.title,
        "description": f"AI generated menu: {load_level_label(request.load_levels)} {request.duration} min",
        "loadLevels": [level.value for level in request.load_levels],
        "duration": request.duration,
        "notes": request.notes or "",
        "totalTime": menu.total_time,
        "intensity": menu.intensity or "",
        "targetSkills": menu.target_skills or [],
        "aiModel": request.model,
        "createdAt": created_at,
    }


class MenuGenerator:
    """Generation orchestrator with injected collaborators."""

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        embedder: EmbeddingProvider | None = None,
        retrieval_store: RetrievalStore | None = None,
        menu_store: MenuStore | None = None,
        max_iterations: int | None = None,
    ):
        """Initialize generator.

        Args:
            registry: Model providers by id; defaults to the built-in providers
            embedder: Embedding provider; defaults to OpenAI embeddings
            retrieval_store: Similarity search; defaults to the SQL store
            menu_store: Persistence; defaults to the SQL store
            max_iterations: Reconciliation iteration cap; defaults to settings
        """
        sql_store = SqlMenuStore() if retrieval_store is None or menu_store is None else None
        self.registry = registry or default_registry()
        self.embedder = embedder or OpenAIEmbedder()
        self.retrieval_store = retrieval_store or sql_store
        self.menu_store = menu_store or sql_store
        self.max_iterations = max_iterations or settings.reconcile_max_iterations

    def _check_request(self, request: GenerationRequest) -> ModelProvider:
        if not request.load_levels:
            raise InvalidRequestError("At least one load level is required")
        if request.duration <= 0:
            raise InvalidRequestError("Duration must be a positive number of minutes")

        provider = self.registry.get(request.model)
        problem = provider.config.check_credentials(request.credentials)
        if problem:
            raise InvalidRequestError(problem)
        return provider

    async def generate_menu(self, request: GenerationRequest) -> GenerationResult:
        """Generate, fit and store a training menu.

        Args:
            request: Generation parameters and credentials

        Returns:
            GenerationResult with the menu and its identifier

        Raises:
            InvalidRequestError: If the request is unusable (before any network call)
            ModelProviderError: If the model call fails
            InvalidMenuResponseError: If the model output is not a valid menu
        """
        provider = self._check_request(request)

        logger.info(
            "Generating menu",
            provider=request.model,
            load_levels=[level.value for level in request.load_levels],
            duration=request.duration,
            use_retrieval=request.use_retrieval,
        )

        context = await assemble_context(
            request.load_levels,
            request.duration,
            request.notes,
            request.retrieval_credentials,
            embedder=self.embedder,
            store=self.retrieval_store,
            use_retrieval=request.use_retrieval,
        )
        prompts = build_prompts(request.load_levels, request.duration, request.notes, context or None)

        raw = await provider.generate(prompts.user, prompts.system, request.credentials)
        menu = self._parse_response(raw, request)

        menu = estimate_menu(menu)
        if menu.total_time > request.duration:
            logger.warning(
                "Generated menu exceeds requested duration",
                total_time=menu.total_time,
                duration=request.duration,
            )
            menu = estimate_menu(reconcile(menu, request.duration, max_iterations=self.max_iterations))

        menu_id = new_menu_id()
        saved = await self._persist(menu_id, menu, request)

        return GenerationResult(
            menu_id=menu_id,
            menu=menu,
            saved=saved,
            within_duration=menu.total_time <= request.duration,
            remaining_time=request.duration - menu.total_time,
        )

    def _parse_response(self, raw: str, request: GenerationRequest) -> GeneratedMenu:
        cleaned = sanitize(raw)
        try:
            candidate = json.loads(cleaned)
        except ValueError as e:
            logger.error("Model output is not valid JSON", error=str(e), preview=cleaned[:200])
            raise InvalidMenuResponseError(f"response is not JSON: {e}") from e

        if isinstance(candidate, dict) and not candidate.get("title"):
            candidate["title"] = default_title(request)

        check = check_menu(candidate)
        if not check.ok:
            raise InvalidMenuResponseError(f"{check.field}: {check.reason}")

        try:
            return parse_menu(candidate)
        except ValueError as e:
            raise InvalidMenuResponseError(f"menu could not be parsed: {e}") from e

    def _embedding_credentials(self, request: GenerationRequest) -> str | None:
        if request.use_retrieval and request.retrieval_credentials:
            return request.retrieval_credentials
        if request.model == "openai":
            return request.credentials
        return None

    async def _persist(self, menu_id: str, menu: GeneratedMenu, request: GenerationRequest) -> bool:
        """Store the menu; failures are logged and reported as False."""
        created_at = datetime.now(timezone.utc).isoformat()
        metadata = build_menu_metadata(request, menu, created_at)

        embedding: list[float] | None = None
        credentials = self._embedding_credentials(request)
        if credentials:
            try:
                embedding = await self.embedder.embed(menu_embedding_text(menu), credentials)
            except Exception as e:
                logger.warning(
                    "Embedding failed, saving menu without vector",
                    menu_id=menu_id,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )

        try:
            await self.menu_store.save(menu_id, menu, embedding, metadata)
        except Exception as e:
            logger.error(
                "Menu could not be saved, returning generated menu anyway",
                menu_id=menu_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False
        return True

    async def search_similar(self, query: str, duration: int | None, credentials: str, top_k: int | None = None) -> list[RetrievalHit]:
        """Find stored menus similar to a free-text query.

        Raises:
            InvalidRequestError: If the query or credentials are missing
        """
        if not query or not query.strip():
            raise InvalidRequestError("Search query is required")
        if not credentials:
            raise InvalidRequestError("An OpenAI API key is required for similarity search")

        window = DurationWindow.around(duration, settings.retrieval_duration_window) if duration else None
        vector = await self.embedder.embed(query.strip(), credentials)
        return await self.retrieval_store.query_nearest(vector, top_k or settings.retrieval_top_k, window)


async def generate_menu(request: GenerationRequest, **collaborators: Any) -> GenerationResult:
    """Generate a menu with a one-off MenuGenerator.

    Keyword arguments are passed to MenuGenerator (registry, embedder, stores).
    """
    return await MenuGenerator(**collaborators).generate_menu(request)
