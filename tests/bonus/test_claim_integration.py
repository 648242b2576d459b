"""Claim transaction against a real (SQLite) database: exclusivity, balance consistency, rollback."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.bonus.config import ConfigStore
from app.bonus.errors import AlreadyClaimedError, BalanceUpdateError, SameDayClaimError
from app.bonus.models import BonusConfig
from app.bonus.service import DailyBonusService, ExplicitCode, LatestActiveCode
from app.models.coin_transaction import CoinTransaction
from app.models.daily_code import CODE_STATUS_ACTIVE, DailyCode
from app.models.user_balance import UserBalance
from app.models.user_bonus_claim import UserBonusClaim

DAY_ONE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
USER = "user-1"


@pytest.fixture
def svc(db_session):
    return DailyBonusService(db_session, ConfigStore(db_session))


def _claim_day(svc, day, config=None, at=None):
    now = at or DAY_ONE + timedelta(days=day)
    return svc.claim(USER, LatestActiveCode(generate=True), config or BonusConfig(), now)


def _balance(db):
    row = db.query(UserBalance).filter(UserBalance.user_id == USER).one_or_none()
    return row.balance if row else 0


def test_week_cycle_then_wrap(svc, db_session):
    amounts = [_claim_day(svc, day).bonus_earned for day in range(8)]

    assert amounts == [10, 25, 40, 55, 70, 85, 100, 10]
    assert _balance(db_session) == sum(amounts)
    assert db_session.query(CoinTransaction).filter(CoinTransaction.user_id == USER).count() == 8
    assert sum(c.bonus_received for c in db_session.query(UserBonusClaim).all()) == sum(amounts)


def test_one_active_code_at_a_time(svc, db_session):
    for day in range(3):
        _claim_day(svc, day)

    assert db_session.query(DailyCode).filter(DailyCode.status == CODE_STATUS_ACTIVE).count() == 1
    assert db_session.query(DailyCode).count() == 3


def test_gap_resets_position(svc):
    _claim_day(svc, 0)
    result = _claim_day(svc, 5)

    assert result.cycle_position == 1
    assert result.continuing_streak is False


def test_second_claim_of_same_code(svc, db_session):
    first = _claim_day(svc, 0)

    with pytest.raises(AlreadyClaimedError):
        svc.claim(USER, ExplicitCode(first.code), BonusConfig(), DAY_ONE + timedelta(hours=1))

    assert _balance(db_session) == first.bonus_earned


def test_concurrent_claim_loses_on_unique_constraint(svc, db_session):
    first = _claim_day(svc, 0)

    # both requests passed the read-only checks before either inserted
    with patch.object(svc.claims, "exists", return_value=False), patch.object(svc.claims, "history", return_value=[]):
        with pytest.raises(AlreadyClaimedError):
            svc.claim(USER, ExplicitCode(first.code), BonusConfig(), DAY_ONE + timedelta(minutes=1))

    assert db_session.query(UserBonusClaim).count() == 1
    assert db_session.query(CoinTransaction).count() == 1
    assert _balance(db_session) == first.bonus_earned


def test_same_day_with_new_test_mode_code(svc):
    config = BonusConfig(test_mode_enabled=True)
    _claim_day(svc, 0, config)

    with pytest.raises(SameDayClaimError):
        _claim_day(svc, 0, config, at=DAY_ONE + timedelta(seconds=30))


def test_balance_failure_leaves_no_rows(svc, db_session):
    with patch.object(svc.balances, "increment", side_effect=OperationalError("UPDATE", {}, Exception("down"))):
        with pytest.raises(BalanceUpdateError):
            _claim_day(svc, 0)

    assert db_session.query(UserBonusClaim).count() == 0
    assert db_session.query(CoinTransaction).count() == 0
    assert _balance(db_session) == 0

    # the user can retry the same code afterwards
    assert _claim_day(svc, 0, at=DAY_ONE + timedelta(minutes=5)).bonus_earned == 10


def test_balance_upsert_accumulates(db_session):
    from app.bonus.ledger import BalanceStore

    store = BalanceStore(db_session)
    assert store.increment(USER, 10) == 10
    assert store.increment(USER, 25) == 35
    assert store.increment(USER, -5) == 30
    db_session.commit()

    row = db_session.query(UserBalance).filter(UserBalance.user_id == USER).one()
    assert (row.balance, row.total_earned, row.total_spent) == (30, 35, 5)


def test_streak_status_lists_valid_claims(svc):
    for day in range(3):
        _claim_day(svc, day)

    status = svc.streak_status(USER, DAY_ONE + timedelta(days=2, hours=1))

    assert status["streak_count"] == 3
    assert [c["streak_position"] for c in status["codes"]] == [1, 2, 3]


def test_cleanup_keeps_claim_history(svc, db_session):
    _claim_day(svc, 0)

    deleted = svc.cleanup(DAY_ONE + timedelta(days=10))

    assert deleted == 1
    assert db_session.query(DailyCode).count() == 0
    assert db_session.query(UserBonusClaim).count() == 1
    # ON DELETE SET NULL detaches the claim from the purged code
    assert db_session.query(UserBonusClaim.code_id).scalar() is None
    assert db_session.query(UserBonusClaim.code).scalar() is not None


def test_cleanup_keeps_claimable_code(svc, db_session):
    _claim_day(svc, 0)

    assert svc.cleanup(DAY_ONE + timedelta(hours=1)) == 0
    assert db_session.query(DailyCode).count() == 1
