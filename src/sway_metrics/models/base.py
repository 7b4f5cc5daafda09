"""Declarative base and shared column mixins for the read-only ORM models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all models."""


def _new_id() -> str:
    return str(uuid.uuid4())


class UUIDMixin:
    """String primary key holding a UUID.

    Identifiers are treated as opaque strings everywhere in the engine, so
    they are stored and compared as text.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)


class TimestampMixin:
    """created_at / updated_at columns maintained by upstream ingestion."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
