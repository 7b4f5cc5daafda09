"""Profile and person ORM models."""

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sway_metrics.models.base import Base, TimestampMixin, UUIDMixin


class Person(Base, UUIDMixin, TimestampMixin):
    """A real-world person, optionally linked to an application user."""

    __tablename__ = "persons"

    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(300), nullable=True)


class Profile(Base, UUIDMixin, TimestampMixin):
    """Public-facing profile; belongs to at most one person."""

    __tablename__ = "profiles"

    person_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("persons.id", ondelete="SET NULL"), nullable=True, index=True
    )
    display_name_long: Mapped[str | None] = mapped_column(String(300), nullable=True)
    display_name_short: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_disabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
