"""
DailyBonusService — claim orchestration and the read-only status views.

A claim is one database transaction: claim row, ledger row and balance increment are
flushed in order and committed together. Any failure after the claim insert rolls the
whole transaction back, so a failed attempt leaves no claim, no ledger row and no credit.
The (user_id, code_id) unique constraint is the only guard against concurrent claims;
the checks before the insert are read-only and racy by construction.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.bonus.clock import as_utc, day_bounds, next_boundary, utcnow
from app.bonus.codes import CodeRegistry
from app.bonus.config import ConfigStore
from app.bonus.errors import (
    AlreadyClaimedError,
    BalanceUpdateError,
    CodeExpiredError,
    CodeNotFoundError,
    DailyBonusError,
    PersistenceError,
    SystemDisabledError,
)
from app.bonus.ledger import BalanceStore, ClaimLedger, CoinLedger
from app.bonus.models import BonusConfig, ClaimResult
from app.bonus.reward import amount_for_claim, amount_for_display
from app.bonus.streak import claimed_today, compute_streak, count_current_streak, next_cycle_position
from app.core.config import settings
from app.models.daily_code import DailyCode
from app.utils.metrics import claim_duration_seconds, metrics

logger = logging.getLogger(__name__)

REASON_CODE_CLAIM = "daily_code_claim"
REASON_BONUS_CLAIM = "daily_bonus_claim"
REASON_DAILY_LOGIN = "daily_login"


# ----------------------------------------------------------------------
# Code resolution strategies
# ----------------------------------------------------------------------


class ExplicitCode:
    """Code string typed by the user."""

    def __init__(self, code: str, reason: str = REASON_CODE_CLAIM) -> None:
        self.code = code
        self.reason = reason

    def resolve(self, registry: CodeRegistry, config: BonusConfig, now: datetime) -> DailyCode:
        code = registry.get_by_code(self.code)
        if code is None:
            raise CodeNotFoundError()
        return code

    def describe(self, code: DailyCode, position: int, cycle: int) -> str:
        return f"Code claimed: {code.code} (streak {position}/{cycle})"


class LatestActiveCode:
    """Today's code, resolved on the server (claim_daily_bonus, daily_login)."""

    def __init__(self, reason: str = REASON_BONUS_CLAIM, generate: bool | None = None) -> None:
        self.reason = reason
        self.generate = settings.bonus_lazy_code_generation if generate is None else generate

    def resolve(self, registry: CodeRegistry, config: BonusConfig, now: datetime) -> DailyCode:
        if self.generate:
            return registry.ensure_active_code(config, now)
        code = registry.get_active_code(now)
        if code is None:
            raise CodeNotFoundError("No daily bonus available right now")
        return code

    def describe(self, code: DailyCode, position: int, cycle: int) -> str:
        if self.reason == REASON_DAILY_LOGIN:
            return f"Daily Bonus - Streak {position}"
        return f"Daily bonus claimed (streak {position}/{cycle})"


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------


class DailyBonusService:
    def __init__(self, db: Session, config_store: ConfigStore | None = None):
        self.db = db
        self.config_store = config_store or ConfigStore(db)
        self.codes = CodeRegistry(db)
        self.claims = ClaimLedger(db)
        self.coins = CoinLedger(db)
        self.balances = BalanceStore(db)

    def load_config(self) -> BonusConfig:
        return self.config_store.load()

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim(
        self,
        user_id: str,
        resolution: ExplicitCode | LatestActiveCode,
        config: BonusConfig | None = None,
        now: datetime | None = None,
    ) -> ClaimResult:
        config = config or self.load_config()
        now = now or utcnow()
        started = time.monotonic()
        try:
            result = self._claim(user_id, resolution, config, now)
        except DailyBonusError as e:
            metrics.inc_claim(resolution.reason, type(e).__name__)
            logger.info(
                "daily_bonus_claim_rejected",
                extra={"user_id": user_id, "reason": resolution.reason, "error": type(e).__name__},
            )
            raise
        finally:
            claim_duration_seconds.observe(time.monotonic() - started)

        metrics.inc_claim(resolution.reason, "success")
        metrics.inc_coins_awarded(resolution.reason, result.bonus_earned)
        return result

    def _claim(
        self,
        user_id: str,
        resolution: ExplicitCode | LatestActiveCode,
        config: BonusConfig,
        now: datetime,
    ) -> ClaimResult:
        if not config.system_enabled:
            raise SystemDisabledError()

        code = resolution.resolve(self.codes, config, now)
        if now > as_utc(code.claimable_until):
            raise CodeExpiredError()
        if self.claims.exists(user_id, code.id):
            raise AlreadyClaimedError()

        history = self.claims.history(user_id)
        streak = compute_streak(history, now, config.cycle_length_days)
        amount = amount_for_claim(streak.cycle_position, config)
        log_ctx = {
            "user_id": user_id,
            "code": code.code,
            "code_id": code.id,
            "cycle_position": streak.cycle_position,
            "bonus_amount": amount,
            "reason": resolution.reason,
        }

        try:
            self.claims.record_claim(user_id, code, now, streak.cycle_position, amount)
        except IntegrityError:
            # lost the race against a concurrent claim for the same code
            self.db.rollback()
            logger.info("daily_bonus_claim_conflict", extra=log_ctx)
            raise AlreadyClaimedError()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("daily_bonus_claim_insert_failed", extra=log_ctx)
            raise PersistenceError()

        try:
            self.coins.record(
                user_id=user_id,
                amount=amount,
                reason=resolution.reason,
                description=resolution.describe(code, streak.cycle_position, config.cycle_length_days),
                metadata={
                    "code": code.code,
                    "code_id": code.id,
                    "streak_position": streak.cycle_position,
                    "streak_days": config.cycle_length_days,
                    "continuing_streak": streak.continuing,
                    "increment_type": config.increment_type,
                    "auto_claimed": isinstance(resolution, LatestActiveCode),
                    "config_used": config.snapshot(),
                },
                created_at=now,
            )
        except SQLAlchemyError:
            self._compensate(log_ctx, "transaction_insert_failed")
            raise PersistenceError()

        try:
            balance = self.balances.increment(user_id, amount)
        except SQLAlchemyError:
            self._compensate(log_ctx, "balance_update_failed")
            raise BalanceUpdateError()

        try:
            self.db.commit()
        except SQLAlchemyError:
            self._compensate(log_ctx, "commit_failed")
            raise PersistenceError()

        logger.info("daily_bonus_claimed", extra={**log_ctx, "continuing": streak.continuing})
        return ClaimResult(
            bonus_earned=amount,
            cycle_position=streak.cycle_position,
            cycle_length=config.cycle_length_days,
            continuing_streak=streak.continuing,
            code=code.code,
            increment_type=config.increment_type,
            reason=resolution.reason,
            balance=balance,
            next_bonus_at=as_utc(code.claimable_until),
        )

    def _compensate(self, log_ctx: dict[str, Any], stage: str) -> None:
        """Undo the claim and ledger rows written so far in this attempt."""
        self.db.rollback()
        metrics.inc_compensation()
        logger.exception("daily_bonus_compensated", extra={**log_ctx, "error": stage})

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def current_code(self, user_id: str | None, now: datetime | None = None) -> dict[str, Any] | None:
        """Latest code with this user's claim state; None when no code was ever generated."""
        now = now or utcnow()
        code = self.codes.get_latest_code()
        if code is None:
            return None
        claimable_until = as_utc(code.claimable_until)
        valid_until = as_utc(code.valid_until)
        already_claimed = bool(user_id) and self.claims.exists(user_id, code.id)
        return {
            "code": code.code,
            "generated_at": as_utc(code.generated_at).isoformat(),
            "claimable_until": claimable_until.isoformat(),
            "valid_until": valid_until.isoformat(),
            "can_claim": now <= claimable_until and not already_claimed,
            "is_valid": now <= valid_until,
            "already_claimed": already_claimed,
            "hours_until_claim_expires": _whole_hours(claimable_until, now),
            "hours_until_validity_expires": _whole_hours(valid_until, now),
        }

    def streak_status(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        now = now or utcnow()
        streak = count_current_streak(self.claims.history(user_id), now)
        valid = self.claims.valid_claims(user_id, now)
        codes = [
            {
                "code": c.code,
                "claimed_at": as_utc(c.claimed_at).isoformat(),
                "expires_at": as_utc(c.expires_at).isoformat(),
                "streak_position": c.streak_position,
                "hours_until_expiry": _whole_hours(as_utc(c.expires_at), now),
            }
            for c in valid
        ]
        return {
            "has_active_streak": streak > 0,
            "streak_count": streak,
            "valid_codes_count": len(codes),
            "codes": codes,
        }

    def eligibility(
        self, user_id: str, config: BonusConfig | None = None, now: datetime | None = None
    ) -> dict[str, Any]:
        """Whether a daily bonus claim would currently succeed. Never writes."""
        config = config or self.load_config()
        now = now or utcnow()
        history = self.claims.history(user_id)
        current_streak = count_current_streak(history, now)
        next_position = next_cycle_position(history, now, config.cycle_length_days)
        code = self.codes.get_active_code(now)

        if code is not None:
            already_claimed = self.claims.exists(user_id, code.id) or claimed_today(history, now)
            next_reset = as_utc(code.claimable_until)
        else:
            already_claimed = claimed_today(history, now)
            next_reset = self.codes.claim_window_end(now, config.test_mode_enabled)

        code_available = code is not None or settings.bonus_lazy_code_generation
        can_claim = config.system_enabled and code_available and not already_claimed
        seconds = 0 if can_claim else max(0, int((next_reset - now).total_seconds()))

        if can_claim:
            message = "Bonus available"
        elif config.test_mode_enabled:
            message = f"Wait {seconds} seconds"
        else:
            message = "Wait for the next period"

        return {
            "canClaim": can_claim,
            "alreadyClaimed": already_claimed,
            "currentStreak": current_streak,
            "validatedStreak": current_streak,
            "nextBonusAmount": amount_for_display(next_position, config),
            "secondsUntilNextClaim": seconds,
            "nextReset": next_reset.isoformat(),
            "testMode": config.test_mode_enabled,
            "totalStreakDays": config.cycle_length_days,
            "message": message,
        }

    def daily_timer(
        self, user_id: str, config: BonusConfig | None = None, now: datetime | None = None
    ) -> dict[str, Any]:
        config = config or self.load_config()
        now = now or utcnow()
        status = self.eligibility(user_id, config, now)
        period_start, period_end = day_bounds(now)
        history = self.claims.history(user_id, limit=1)
        return {
            "canClaim": status["canClaim"],
            "alreadyClaimed": status["alreadyClaimed"],
            "periodStart": period_start.isoformat(),
            "periodEnd": period_end.isoformat(),
            "nextReset": next_boundary(now).isoformat(),
            "lastClaim": as_utc(history[0].claimed_at).isoformat() if history else None,
        }

    # ------------------------------------------------------------------
    # Scheduler entry points
    # ------------------------------------------------------------------

    def tick(self, now: datetime | None = None) -> tuple[DailyCode, bool]:
        """Make sure exactly one claimable code exists. Returns (code, created)."""
        return self.codes.generate_if_missing(self.load_config(), now)

    def cleanup(self, now: datetime | None = None) -> int:
        return self.codes.cleanup_expired(now)


def _whole_hours(until: datetime, now: datetime) -> int:
    return max(0, int((until - now).total_seconds() // 3600))


def code_to_dict(code: DailyCode) -> dict[str, Any]:
    return {
        "id": code.id,
        "code": code.code,
        "status": code.status,
        "generated_at": as_utc(code.generated_at).isoformat(),
        "claimable_until": as_utc(code.claimable_until).isoformat(),
        "valid_until": as_utc(code.valid_until).isoformat(),
        "base_bonus_amount": code.base_bonus_amount,
        "is_test_mode": code.is_test_mode,
    }
