"""
Celery periodic tasks: keep one claimable daily code alive and purge expired codes.
"""
import logging

from app.bonus.config import ConfigStore, get_config_cache
from app.bonus.service import DailyBonusService
from app.core.celery_app import celery_app
from app.db.session import SessionLocal

logger = logging.getLogger(__name__)


@celery_app.task(name="app.bonus.tasks.ensure_daily_code")
def ensure_daily_code() -> dict:
    """Generate the day's code when the active one's claim window has closed."""
    db = SessionLocal()
    try:
        svc = DailyBonusService(db, ConfigStore(db, get_config_cache()))
        code, created = svc.tick()
        logger.info("ensure_daily_code_done", extra={"code_id": code.id, "code_created": created})
        return {"code": code.code, "created": created}
    except Exception:
        db.rollback()
        logger.exception("ensure_daily_code_error")
        return {"code": None, "created": False, "error": "exception"}
    finally:
        db.close()


@celery_app.task(name="app.bonus.tasks.cleanup_expired_codes")
def cleanup_expired_codes() -> dict:
    """Delete codes whose validity window has passed."""
    db = SessionLocal()
    try:
        deleted = DailyBonusService(db).cleanup()
        return {"deleted": deleted}
    except Exception:
        db.rollback()
        logger.exception("cleanup_expired_codes_error")
        return {"deleted": 0, "error": "exception"}
    finally:
        db.close()
