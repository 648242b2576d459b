from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from app.db.base import Base


class CoinRule(Base):
    """Earning rule for generic actions (default branch of the action endpoint)."""

    __tablename__ = "coin_rules"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    action = Column(String, unique=True, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    max_per_day = Column(Integer, nullable=True)  # null = unlimited
    cooldown_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
