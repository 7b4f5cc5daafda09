"""Voter verification and jurisdiction registration ORM models."""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sway_metrics.models.base import Base, TimestampMixin, UUIDMixin


class VoterVerification(Base, UUIDMixin, TimestampMixin):
    """A voter-verification attempt for a person.

    Only rows with ``is_fully_verified`` set count toward any metric.
    """

    __tablename__ = "voter_verifications"

    person_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_fully_verified: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    has_confirmed_voted: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    needs_manual_review: Mapped[bool | None] = mapped_column(Boolean, nullable=True)


class VoterVerificationJurisdictionRel(Base, UUIDMixin, TimestampMixin):
    """Registration of a verified voter in a jurisdiction."""

    __tablename__ = "voter_verification_jurisdiction_rels"

    voter_verification_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("voter_verifications.id", ondelete="CASCADE"), nullable=False
    )
    jurisdiction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jurisdictions.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("idx_vvjr_voter_verification_id", "voter_verification_id"),
        Index("idx_vvjr_jurisdiction_id", "jurisdiction_id"),
    )
