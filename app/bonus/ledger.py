"""
ClaimLedger (user_bonus_claims), CoinLedger (coin_transactions) and BalanceStore (user_balances).

Writes only flush; the caller owns the transaction and commits or rolls back.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.coin_transaction import TX_TYPE_EARNED, TX_TYPE_SPENT, CoinTransaction
from app.models.daily_code import DailyCode
from app.models.user_balance import UserBalance
from app.models.user_bonus_claim import UserBonusClaim

logger = logging.getLogger(__name__)


class ClaimLedger:
    def __init__(self, db: Session):
        self.db = db

    def history(self, user_id: str, limit: int | None = None) -> list[UserBonusClaim]:
        """Most recent first."""
        return (
            self.db.query(UserBonusClaim)
            .filter(UserBonusClaim.user_id == user_id)
            .order_by(UserBonusClaim.claimed_at.desc())
            .limit(limit or settings.bonus_streak_history_limit)
            .all()
        )

    def exists(self, user_id: str, code_id: str) -> bool:
        row = (
            self.db.query(UserBonusClaim.id)
            .filter(UserBonusClaim.user_id == user_id, UserBonusClaim.code_id == code_id)
            .first()
        )
        return row is not None

    def valid_claims(self, user_id: str, now: datetime) -> list[UserBonusClaim]:
        """Claims whose code validity has not passed, lowest streak position first."""
        return (
            self.db.query(UserBonusClaim)
            .filter(UserBonusClaim.user_id == user_id, UserBonusClaim.expires_at > now)
            .order_by(UserBonusClaim.streak_position.asc(), UserBonusClaim.claimed_at.asc())
            .all()
        )

    def record_claim(
        self,
        user_id: str,
        code: DailyCode,
        claimed_at: datetime,
        streak_position: int,
        bonus_received: int,
    ) -> UserBonusClaim:
        """Flushes immediately: the (user_id, code_id) unique constraint fails here for a race loser."""
        claim = UserBonusClaim(
            user_id=user_id,
            code_id=code.id,
            code=code.code,
            claimed_at=claimed_at,
            expires_at=code.valid_until,
            streak_position=streak_position,
            bonus_received=bonus_received,
        )
        self.db.add(claim)
        self.db.flush()
        return claim


class CoinLedger:
    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: str,
        amount: int,
        reason: str,
        description: str,
        metadata: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> CoinTransaction:
        tx = CoinTransaction(
            user_id=user_id,
            amount=amount,
            type=TX_TYPE_EARNED if amount >= 0 else TX_TYPE_SPENT,
            reason=reason,
            description=description,
            metadata_=metadata or {},
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.db.add(tx)
        self.db.flush()
        return tx

    def count_since(self, user_id: str, reason: str, since: datetime) -> int:
        return (
            self.db.query(func.count(CoinTransaction.id))
            .filter(
                CoinTransaction.user_id == user_id,
                CoinTransaction.reason == reason,
                CoinTransaction.created_at >= since,
            )
            .scalar()
            or 0
        )

    def last(self, user_id: str, reason: str) -> CoinTransaction | None:
        return (
            self.db.query(CoinTransaction)
            .filter(CoinTransaction.user_id == user_id, CoinTransaction.reason == reason)
            .order_by(CoinTransaction.created_at.desc())
            .first()
        )

    def total(self, user_id: str) -> int:
        return (
            self.db.query(func.coalesce(func.sum(CoinTransaction.amount), 0))
            .filter(CoinTransaction.user_id == user_id)
            .scalar()
            or 0
        )


class BalanceStore:
    """Balance changes are one server-side statement: balance = balance + :amount."""

    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, user_id: str) -> int:
        row = self.db.query(UserBalance.balance).filter(UserBalance.user_id == user_id).first()
        return row[0] if row else 0

    def increment(self, user_id: str, amount: int) -> int:
        """Atomically add `amount` (negative = spend). Returns the new balance."""
        earned = max(amount, 0)
        spent = max(-amount, 0)
        now = datetime.now(timezone.utc)
        dialect = self.db.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(UserBalance).values(
                user_id=user_id,
                balance=amount,
                total_earned=earned,
                total_spent=spent,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[UserBalance.user_id],
                set_={
                    "balance": UserBalance.balance + stmt.excluded.balance,
                    "total_earned": UserBalance.total_earned + stmt.excluded.total_earned,
                    "total_spent": UserBalance.total_spent + stmt.excluded.total_spent,
                    "updated_at": stmt.excluded.updated_at,
                },
            ).returning(UserBalance.balance)
            return self.db.execute(stmt).scalar_one()

        result = self.db.execute(
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values(
                balance=UserBalance.balance + amount,
                total_earned=UserBalance.total_earned + earned,
                total_spent=UserBalance.total_spent + spent,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            self.db.add(UserBalance(user_id=user_id, balance=amount, total_earned=earned, total_spent=spent))
        self.db.flush()
        return self.get_balance(user_id)
