"""Viewpoint group and profile membership ORM models."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from sway_metrics.models.base import Base, TimestampMixin, UUIDMixin


class MembershipType(enum.StrEnum):
    """Kind of relation a profile holds with a viewpoint group."""

    DEFAULT = "default"
    ADMINISTRATOR = "administrator"
    LEADER = "leader"
    BOOKMARKER = "bookmarker"
    SUPPORTER = "supporter"


class ViewpointGroup(Base, UUIDMixin, TimestampMixin):
    """A leader's following."""

    __tablename__ = "viewpoint_groups"

    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool | None] = mapped_column(Boolean, nullable=True)


class ProfileViewpointGroupRel(Base, UUIDMixin):
    """Membership relation linking a profile to a viewpoint group."""

    __tablename__ = "profile_viewpoint_group_rels"

    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    viewpoint_group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("viewpoint_groups.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('default', 'administrator', 'leader', 'bookmarker', 'supporter')",
            name="ck_profile_viewpoint_group_rel_type",
        ),
        Index("idx_pvgr_group_type", "viewpoint_group_id", "type"),
        Index("idx_pvgr_profile_type", "profile_id", "type"),
    )
