"""Tests for CoinActionService — rule-driven earning with daily caps and cooldowns."""
from datetime import datetime, timedelta, timezone

import pytest

from app.bonus.errors import EarnLimitError, InvalidActionError
from app.models.coin_rule import CoinRule
from app.models.coin_transaction import CoinTransaction
from app.services.coins.service import CoinActionService

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _rule(db, **kwargs):
    db.add(CoinRule(**{"action": "share_post", "amount": 3, "description": "Shared a post", **kwargs}))
    db.commit()


def test_earn_writes_ledger_and_balance(db_session):
    _rule(db_session)

    result = CoinActionService(db_session).earn("user-1", "share_post", {"amount": 999, "post": "p1"}, NOW)

    assert result == {"action": "share_post", "coins_earned": 3, "balance": 3}
    tx = db_session.query(CoinTransaction).one()
    assert tx.reason == "share_post"
    assert tx.metadata_ == {"post": "p1"}


def test_unknown_or_inactive_action(db_session):
    _rule(db_session, is_active=False)
    svc = CoinActionService(db_session)

    with pytest.raises(InvalidActionError):
        svc.earn("user-1", "share_post", now=NOW)
    with pytest.raises(InvalidActionError):
        svc.earn("user-1", "", now=NOW)


def test_daily_cap(db_session):
    _rule(db_session, max_per_day=2)
    svc = CoinActionService(db_session)

    svc.earn("user-1", "share_post", now=NOW)
    svc.earn("user-1", "share_post", now=NOW + timedelta(minutes=1))
    with pytest.raises(EarnLimitError):
        svc.earn("user-1", "share_post", now=NOW + timedelta(minutes=2))

    # next claim day
    assert svc.earn("user-1", "share_post", now=NOW + timedelta(days=1))["balance"] == 9


def test_cooldown(db_session):
    _rule(db_session, cooldown_minutes=30)
    svc = CoinActionService(db_session)

    svc.earn("user-1", "share_post", now=NOW)
    with pytest.raises(EarnLimitError):
        svc.earn("user-1", "share_post", now=NOW + timedelta(minutes=10))
    assert svc.earn("user-1", "share_post", now=NOW + timedelta(minutes=31))["coins_earned"] == 3
