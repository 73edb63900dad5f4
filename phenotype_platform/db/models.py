"""
SQLAlchemy 2.0 ORM models for the PostgreSQL catalog.

Tables:
    phenotypes -- Reference catalog of phenotypes matched against uploads.
                  The health check requires it to be non-empty.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """Timezone-aware UTC now -- avoids deprecated datetime.utcnow()."""
    return datetime.now(timezone.utc)


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all PostgreSQL ORM models."""

    pass


class Phenotype(Base):
    """A catalog phenotype with its reference image and free-form metadata."""

    __tablename__ = "phenotypes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_new_uuid
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes; keep the column name.
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Phenotype(id={self.id!r}, name={self.name!r})>"


def include_in_autogenerate(
    obj: Any,
    name: Optional[str],
    type_: str,
    reflected: bool,
    compare_to: Any,
) -> bool:
    """Alembic ``include_object`` hook limiting autogenerate to these models.

    The database is shared with the web application, whose tables
    (``subscriptions``, ``user_profiles``, ...) exist in the schema but not
    in ``Base.metadata``; those are left alone instead of being dropped.
    """
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True
