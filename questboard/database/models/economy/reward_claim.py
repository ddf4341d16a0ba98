"""
RewardClaim — idempotency guard for reward grants.
Pure schema only.

Every grant (task completion, milestone) inserts one row with
``INSERT ... ON CONFLICT DO NOTHING``; a zero rowcount means the grant was
already made and nothing else in the transaction may apply.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from questboard.core.database.base import Base, utc_now


class RewardClaim(Base):
    """
    Tracks all reward claims to prevent double-claiming.

    Composite Primary Key: (user_id, claim_type, claim_key)
    - Ensures each unique claim can only be recorded once
    - Enables ON CONFLICT DO NOTHING for atomic idempotency checks
    """

    __tablename__ = "reward_claims"

    # ========================================================================
    # PRIMARY KEY COMPONENTS
    # ========================================================================

    user_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="User receiving the reward",
    )

    claim_type: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        comment="Type of claim (task_completion, milestone)",
    )

    claim_key: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="Unique identifier for this claim (task id, milestone id)",
    )

    # ========================================================================
    # AUDIT FIELDS
    # ========================================================================

    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        comment="Timestamp when reward was claimed",
    )

    # ========================================================================
    # INDEXES
    # ========================================================================

    __table_args__ = (
        Index("idx_reward_claims_user", "user_id", "claimed_at"),
        Index("idx_reward_claims_type", "claim_type", "claimed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<RewardClaim("
            f"user_id='{self.user_id}', "
            f"claim_type='{self.claim_type}', "
            f"claim_key='{self.claim_key}', "
            f"claimed_at={self.claimed_at}"
            f")>"
        )
