import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class StoredMenu(Base):
    """Searchable record of a generated menu.

    Holds the metadata shown in history and used for retrieval filtering, plus
    the embedding vector. The embedding is stored as a JSON float list and
    searched with exact cosine similarity; rows without an embedding are
    listed in history but never retrieved.
    """

    __tablename__ = "menus"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=lambda: f"menu_{uuid.uuid4().hex}")
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="Untitled")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration: Mapped[int | None] = mapped_column(nullable=True, index=True)
    menu_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    embedding: Mapped[list[float] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class MenuData(Base):
    """Full menu document as returned to clients."""

    __tablename__ = "menu_data"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    menu_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
