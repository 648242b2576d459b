from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, text

from app.db.base import Base


CODE_STATUS_ACTIVE = "active"
CODE_STATUS_CLOSED = "closed"


class DailyCode(Base):
    """Globally shared claimable code. At most one row is `active` at a time."""

    __tablename__ = "daily_codes"
    __table_args__ = (
        Index(
            "uq_daily_codes_single_active",
            "status",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    code = Column(String, unique=True, nullable=False, index=True)
    status = Column(String, nullable=False, default=CODE_STATUS_ACTIVE)
    generated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    claimable_until = Column(DateTime(timezone=True), nullable=False, index=True)
    valid_until = Column(DateTime(timezone=True), nullable=False, index=True)
    # Snapshot of base amount at generation; claims recalculate per user.
    base_bonus_amount = Column(Integer, nullable=False, default=0)
    is_test_mode = Column(Boolean, nullable=False, default=False)
