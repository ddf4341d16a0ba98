"""
UserStats — per-user progression totals.
Pure schema only.
"""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import JSON, BigInteger, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, IdMixin, TimestampMixin

_JSON = JSON().with_variant(JSONB(), "postgresql")


class UserStats(Base, IdMixin, TimestampMixin):
    """
    Cumulative progression state for one marketplace user.

    Schema-only:
    - user_id: external user identifier (one row per user)
    - trust_score / rwis_score / xp_points: cumulative totals
    - current_level: stored level, never decreases
    - category_stats: JSONB mapping category -> work metrics
    - unlocked_zones: JSONB list of zone ids in unlock order
    - version: bumped on every committed write
    """

    __tablename__ = "user_stats"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_stats_user_id"),
        Index("ix_user_stats_trust_score", "trust_score"),
        Index("ix_user_stats_rwis_score", "rwis_score"),
        Index("ix_user_stats_xp_points", "xp_points"),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Optimistic locking version",
    )

    trust_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rwis_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    category_stats: Mapped[Dict[str, Dict[str, Any]]] = mapped_column(
        _JSON,
        nullable=False,
        default=dict,
    )

    unlocked_zones: Mapped[List[str]] = mapped_column(
        _JSON,
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        return (
            f"<UserStats(user_id='{self.user_id}', xp={self.xp_points}, "
            f"trust={self.trust_score}, rwis={self.rwis_score}, "
            f"level={self.current_level}, version={self.version})>"
        )
