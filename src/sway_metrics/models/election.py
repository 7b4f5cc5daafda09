"""Jurisdiction, election, and ballot ORM models.

The attribution chain runs Jurisdiction -> BallotItem -> Race -> OfficeTerm
-> Office, with BallotItem also pointing at its Election.
"""

from datetime import date

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from sway_metrics.models.base import Base, TimestampMixin, UUIDMixin


class Jurisdiction(Base, UUIDMixin, TimestampMixin):
    """A geographic or administrative voting area."""

    __tablename__ = "jurisdictions"

    name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True, index=True)
    level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ocdid: Mapped[str | None] = mapped_column(String(300), nullable=True)


class Election(Base, UUIDMixin, TimestampMixin):
    """An election with its poll date."""

    __tablename__ = "elections"

    name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    poll_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)


class BallotItem(Base, UUIDMixin, TimestampMixin):
    """A votable item scoped to one jurisdiction and one election."""

    __tablename__ = "ballot_items"

    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    jurisdiction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jurisdictions.id", ondelete="CASCADE"), nullable=False, index=True
    )


class Office(Base, UUIDMixin, TimestampMixin):
    """An elected office."""

    __tablename__ = "offices"

    name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    level: Mapped[str | None] = mapped_column(String(50), nullable=True)


class OfficeTerm(Base, UUIDMixin, TimestampMixin):
    """A term of an office that a race fills."""

    __tablename__ = "office_terms"

    office_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("offices.id", ondelete="CASCADE"), nullable=False, index=True
    )


class Race(Base, UUIDMixin, TimestampMixin):
    """A race on a ballot item for an office term."""

    __tablename__ = "races"

    ballot_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ballot_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    office_term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("office_terms.id", ondelete="CASCADE"), nullable=False
    )
