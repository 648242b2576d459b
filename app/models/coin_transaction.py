from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.db.base import Base, JSONType


TX_TYPE_EARNED = "earned"
TX_TYPE_SPENT = "spent"


class CoinTransaction(Base):
    """Append-only coin ledger. Sum of amounts per user equals UserBalance.balance."""

    __tablename__ = "coin_transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    type = Column(String, nullable=False, default=TX_TYPE_EARNED)
    reason = Column(String, nullable=False, index=True)  # daily_code_claim, daily_login, daily_bonus_claim, <action>
    description = Column(Text, nullable=False, default="")
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
