"""
CoinActionService — generic "earn coins for action X" driven by coin_rules.
The amount always comes from the rule; whatever the client sends is ignored.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.bonus.clock import as_utc, day_bounds, utcnow
from app.bonus.errors import EarnLimitError, InvalidActionError, PersistenceError
from app.bonus.ledger import BalanceStore, CoinLedger
from app.models.coin_rule import CoinRule
from app.utils.metrics import metrics

logger = logging.getLogger(__name__)


class CoinActionService:
    def __init__(self, db: Session):
        self.db = db
        self.coins = CoinLedger(db)
        self.balances = BalanceStore(db)

    def get_rule(self, action: str) -> CoinRule | None:
        return (
            self.db.query(CoinRule)
            .filter(CoinRule.action == action, CoinRule.is_active.is_(True))
            .one_or_none()
        )

    def earn(
        self,
        user_id: str,
        action: str,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        action = (action or "").strip()
        rule = self.get_rule(action) if action else None
        if rule is None:
            metrics.inc_coin_action(action or "-", "invalid")
            raise InvalidActionError()

        self._check_limits(user_id, rule, now)

        extra = dict(metadata or {})
        extra.pop("amount", None)
        try:
            self.coins.record(
                user_id=user_id,
                amount=rule.amount,
                reason=rule.action,
                description=rule.description or rule.action,
                metadata=extra,
                created_at=now,
            )
            balance = self.balances.increment(user_id, rule.amount)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            metrics.inc_coin_action(rule.action, "error")
            logger.exception("coin_action_failed", extra={"user_id": user_id, "action": rule.action})
            raise PersistenceError()

        metrics.inc_coin_action(rule.action, "success")
        logger.info(
            "coin_action_earned",
            extra={"user_id": user_id, "action": rule.action, "amount": rule.amount, "balance": balance},
        )
        return {"action": rule.action, "coins_earned": rule.amount, "balance": balance}

    def _check_limits(self, user_id: str, rule: CoinRule, now: datetime) -> None:
        if rule.max_per_day:
            day_start, _ = day_bounds(now)
            if self.coins.count_since(user_id, rule.action, day_start) >= rule.max_per_day:
                metrics.inc_coin_action(rule.action, "limited")
                raise EarnLimitError("Daily limit reached for this action")

        if rule.cooldown_minutes:
            last = self.coins.last(user_id, rule.action)
            if last is not None and now - as_utc(last.created_at) < timedelta(minutes=rule.cooldown_minutes):
                metrics.inc_coin_action(rule.action, "limited")
                raise EarnLimitError("Action is cooling down, try again later")
