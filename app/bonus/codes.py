"""
CodeRegistry — the single globally shared claimable code.

At most one daily_codes row has status='active' (partial unique index). Generation
closes an expired active code and inserts the next one; when two callers race, the
loser's insert violates the index, it rolls back and returns the winner's code.
"""
from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.bonus.clock import as_utc, next_boundary, utcnow
from app.bonus.errors import PersistenceError
from app.bonus.models import BonusConfig
from app.core.config import settings
from app.models.daily_code import CODE_STATUS_ACTIVE, CODE_STATUS_CLOSED, DailyCode
from app.utils.metrics import metrics

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
GENERATE_ATTEMPTS = 3


class CodeRegistry:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_latest_code(self) -> DailyCode | None:
        return self.db.query(DailyCode).order_by(DailyCode.generated_at.desc()).first()

    def get_by_code(self, code: str) -> DailyCode | None:
        return self.db.query(DailyCode).filter(DailyCode.code == code.strip().upper()).one_or_none()

    def get_active_code(self, now: datetime | None = None) -> DailyCode | None:
        """Active code whose claim window is still open."""
        now = now or utcnow()
        return (
            self.db.query(DailyCode)
            .filter(DailyCode.status == CODE_STATUS_ACTIVE, DailyCode.claimable_until >= now)
            .order_by(DailyCode.generated_at.desc())
            .first()
        )

    def list_recent(self, limit: int = 30) -> list[DailyCode]:
        return self.db.query(DailyCode).order_by(DailyCode.generated_at.desc()).limit(limit).all()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_code_string(self) -> str:
        length = settings.bonus_code_length
        for _ in range(10):
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
            exists = self.db.query(DailyCode.id).filter(DailyCode.code == code).first()
            if not exists:
                return code
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length + 4))

    def claim_window_end(self, now: datetime, test_mode: bool) -> datetime:
        if test_mode:
            return now + timedelta(seconds=settings.bonus_test_mode_window_seconds)
        return next_boundary(now)

    def ensure_active_code(self, config: BonusConfig, now: datetime | None = None) -> DailyCode:
        """Current claimable code, generating one when none is active."""
        code, _ = self.generate_if_missing(config, now)
        return code

    def generate_if_missing(
        self, config: BonusConfig, now: datetime | None = None
    ) -> tuple[DailyCode, bool]:
        """Returns (code, created)."""
        now = now or utcnow()
        for attempt in range(GENERATE_ATTEMPTS):
            active = (
                self.db.query(DailyCode)
                .filter(DailyCode.status == CODE_STATUS_ACTIVE)
                .order_by(DailyCode.generated_at.desc())
                .first()
            )
            if active and as_utc(active.claimable_until) >= now:
                return active, False

            if active:
                active.status = CODE_STATUS_CLOSED
                self.db.add(active)
                self.db.flush()

            claimable_until = self.claim_window_end(now, config.test_mode_enabled)
            code = DailyCode(
                code=self.generate_code_string(),
                status=CODE_STATUS_ACTIVE,
                generated_at=now,
                claimable_until=claimable_until,
                valid_until=claimable_until + timedelta(hours=settings.bonus_code_validity_hours),
                base_bonus_amount=config.base_amount,
                is_test_mode=config.test_mode_enabled,
            )
            self.db.add(code)
            try:
                self.db.flush()
                self.db.commit()
            except IntegrityError:
                # another instance generated first
                self.db.rollback()
                logger.info("daily_code_generation_lost_race", extra={"attempt": attempt + 1})
                winner = self.get_active_code(now)
                if winner is not None:
                    return winner, False
                continue

            self.db.refresh(code)
            metrics.inc_code_generated(test_mode=config.test_mode_enabled)
            logger.info(
                "daily_code_generated",
                extra={
                    "code": code.code,
                    "code_id": code.id,
                    "closed_code_id": active.id if active else None,
                    "claimable_until": claimable_until.isoformat(),
                    "test_mode": config.test_mode_enabled,
                },
            )
            return code, True

        logger.error("daily_code_generation_failed", extra={"attempt": GENERATE_ATTEMPTS})
        raise PersistenceError()

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup_expired(self, now: datetime | None = None) -> int:
        """Delete codes past valid_until. Codes still inside their claim window are never touched."""
        now = now or utcnow()
        deleted = (
            self.db.query(DailyCode)
            .filter(DailyCode.valid_until < now, DailyCode.claimable_until < now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        metrics.inc_codes_deleted(deleted)
        logger.info("daily_codes_cleaned_up", extra={"deleted": deleted})
        return deleted
