"""Context assembly from previously generated menus.

Retrieval is best-effort: any failure degrades to an empty context and
generation continues without it.
"""

from typing import Any

from loguru import logger

from swim_menu.config.settings import settings
from swim_menu.menus.types import LoadLevel
from swim_menu.rag.types import DurationWindow, EmbeddingProvider, RetrievalHit, RetrievalStore


def build_query_text(load_levels: list[LoadLevel], duration: int, notes: str | None = None) -> str:
    query = " ".join(level.value for level in load_levels) + f" {duration} min"
    if notes:
        query += f" {notes}"
    return query


def format_hit(hit: RetrievalHit) -> str:
    """Format one hit as a single context line; hits without metadata give ""."""
    metadata: dict[str, Any] = hit.metadata or {}
    if not metadata:
        return ""
    title = metadata.get("title") or "Untitled"
    description = metadata.get("description") or ""
    total_time = metadata.get("totalTime") or metadata.get("duration") or ""
    return f"Title: {title} / Summary: {description} / Total time: {total_time} / Similarity: {hit.similarity:.2f}"


def format_context_for_llm(hits: list[RetrievalHit]) -> str:
    return "\n".join(line for line in (format_hit(hit) for hit in hits) if line)


async def assemble_context(
    load_levels: list[LoadLevel],
    duration: int,
    notes: str | None,
    retrieval_credentials: str | None,
    *,
    embedder: EmbeddingProvider,
    store: RetrievalStore,
    use_retrieval: bool = True,
    top_k: int | None = None,
) -> str:
    """Build the retrieved-menus block for the generation prompt.

    Args:
        load_levels: Requested load levels
        duration: Requested duration in minutes
        notes: Optional coach notes, appended to the query
        retrieval_credentials: Embedding API key; retrieval is skipped without it
        embedder: Embedding collaborator
        store: Retrieval collaborator
        use_retrieval: Whether retrieval was requested
        top_k: Number of menus to retrieve; defaults to settings.retrieval_top_k

    Returns:
        One line per similar menu joined by newlines, or "" when disabled or failed
    """
    if not use_retrieval or not retrieval_credentials:
        return ""

    query = build_query_text(load_levels, duration, notes)
    window = DurationWindow.around(duration, settings.retrieval_duration_window)

    try:
        vector = await embedder.embed(query, retrieval_credentials)
        hits = await store.query_nearest(vector, top_k or settings.retrieval_top_k, window)
    except Exception as e:
        logger.warning(
            "Retrieval failed, generating without context",
            error_type=type(e).__name__,
            error_message=str(e),
        )
        return ""

    context = format_context_for_llm(hits)
    logger.debug("Assembled retrieval context", hits=len(hits), chars=len(context))
    return context
