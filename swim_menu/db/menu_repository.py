"""Menu storage and similarity search on SQLAlchemy.

``SqlMenuStore`` implements both the persistence contract used after
generation and the retrieval contract used by the context assembler. The
database calls are synchronous and run in a worker thread from async callers.
"""

import asyncio
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Protocol

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from swim_menu.db.models import MenuData, StoredMenu
from swim_menu.db.session import get_session
from swim_menu.menus.types import GeneratedMenu
from swim_menu.rag.index.vector_index import VectorIndex
from swim_menu.rag.types import DurationWindow, RetrievalHit

SessionScope = Callable[[], AbstractContextManager[Session]]

# Request fields copied from metadata into the stored menu document.
_DOCUMENT_FIELDS = ("createdAt", "loadLevels", "duration", "notes", "aiModel")


class MenuStore(Protocol):
    async def save(
        self,
        menu_id: str,
        menu: GeneratedMenu,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None: ...


def _coerce_duration(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SqlMenuStore:
    """Relational menu store with exact cosine similarity search."""

    def __init__(self, session_scope: SessionScope = get_session):
        """Initialize store.

        Args:
            session_scope: Context manager factory yielding a session that commits on exit
        """
        self.session_scope = session_scope

    # ---- persistence ----

    def save_sync(
        self,
        menu_id: str,
        menu: GeneratedMenu,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace a menu and its searchable record."""
        metadata = dict(metadata or {})
        document = {"menuId": menu_id, **menu.to_wire()}
        for key in _DOCUMENT_FIELDS:
            if key in metadata:
                document[key] = metadata[key]

        with self.session_scope() as session:
            session.merge(MenuData(id=menu_id, menu_data=document))
            session.merge(
                StoredMenu(
                    id=menu_id,
                    title=metadata.get("title") or menu.title or "Untitled",
                    description=metadata.get("description") or "",
                    duration=_coerce_duration(metadata.get("duration")),
                    menu_metadata=metadata,
                    embedding=[float(value) for value in embedding] if embedding else None,
                    updated_at=datetime.now(timezone.utc),
                )
            )

        logger.info("Menu saved", menu_id=menu_id, has_embedding=bool(embedding))

    async def save(
        self,
        menu_id: str,
        menu: GeneratedMenu,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await asyncio.to_thread(self.save_sync, menu_id, menu, embedding, metadata)

    # ---- retrieval ----

    def query_nearest_sync(
        self,
        vector: list[float],
        top_k: int,
        duration_filter: DurationWindow | None = None,
    ) -> list[RetrievalHit]:
        """Return the ``top_k`` stored menus most similar to ``vector``.

        Rows whose embedding dimension differs from the query are skipped.
        """
        stmt = select(StoredMenu.id, StoredMenu.menu_metadata, StoredMenu.embedding).where(
            StoredMenu.embedding.is_not(None)
        )
        if duration_filter is not None:
            stmt = stmt.where(StoredMenu.duration.between(duration_filter.min, duration_filter.max))

        with self.session_scope() as session:
            rows = session.execute(stmt).all()

        entries = []
        for menu_id, metadata, embedding in rows:
            if not embedding or len(embedding) != len(vector):
                logger.debug("Skipping menu with incompatible embedding", menu_id=menu_id)
                continue
            entries.append((menu_id, metadata or {}, embedding))

        return VectorIndex(entries).search(vector, top_k)

    async def query_nearest(
        self,
        vector: list[float],
        top_k: int,
        duration_filter: DurationWindow | None = None,
    ) -> list[RetrievalHit]:
        return await asyncio.to_thread(self.query_nearest_sync, vector, top_k, duration_filter)

    # ---- lookup ----

    def get_menu(self, menu_id: str) -> dict[str, Any] | None:
        """Return the stored menu document, or None if unknown."""
        with self.session_scope() as session:
            row = session.get(MenuData, menu_id)
            return dict(row.menu_data) if row is not None else None

    def list_history(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return stored menus, newest first."""
        stmt = (
            select(StoredMenu.id, StoredMenu.title, StoredMenu.description, StoredMenu.created_at)
            .order_by(StoredMenu.created_at.desc())
            .limit(limit)
        )
        with self.session_scope() as session:
            rows = session.execute(stmt).all()

        return [
            {
                "id": menu_id,
                "title": title,
                "description": description,
                "createdAt": created_at.isoformat() if created_at else None,
            }
            for menu_id, title, description, created_at in rows
        ]
