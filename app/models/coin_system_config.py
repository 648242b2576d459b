from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text

from app.db.base import Base, JSONType


class CoinSystemConfig(Base):
    """Key/value tunables edited from admin (daily_bonus_*, system_enabled, test_mode_enabled)."""

    __tablename__ = "coin_system_config"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    setting_key = Column(String, unique=True, nullable=False, index=True)
    setting_value = Column(JSONType, nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
