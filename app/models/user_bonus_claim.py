from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from app.db.base import Base


class UserBonusClaim(Base):
    """One row per (user, code) claim. Never updated; history feeds streak computation."""

    __tablename__ = "user_bonus_claims"
    __table_args__ = (
        UniqueConstraint("user_id", "code_id", name="uq_user_bonus_claims_user_code"),
        Index("ix_user_bonus_claims_user_claimed_at", "user_id", "claimed_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    # Code rows are purged by cleanup; the claim keeps the code string.
    code_id = Column(String, ForeignKey("daily_codes.id", ondelete="SET NULL"), nullable=True)
    code = Column(String, nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    streak_position = Column(Integer, nullable=False)
    bonus_received = Column(Integer, nullable=False)
