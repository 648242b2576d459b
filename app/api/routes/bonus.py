"""
Coin action endpoint: one POST with an `action` discriminator, mirroring the mobile
client contract. Responses are {"success", "message", "data"}; DailyBonusError is
rendered by the handler in app.main.
"""
import logging

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.bonus.config import ConfigStore, get_config_cache
from app.bonus.errors import AuthenticationError, DailyBonusError, MissingCodeError, SystemDisabledError
from app.bonus.service import (
    REASON_DAILY_LOGIN,
    DailyBonusService,
    ExplicitCode,
    LatestActiveCode,
    code_to_dict,
)
from app.db.session import get_db
from app.schemas.bonus import ActionRequest
from app.services.auth.jwt import get_current_user_id, is_admin_key
from app.services.coins.service import CoinActionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["coins"])

ADMIN_ACTIONS = ("generate_daily_code", "cleanup_old_codes")


def get_bonus_service(db: Session = Depends(get_db)) -> DailyBonusService:
    return DailyBonusService(db, ConfigStore(db, get_config_cache()))


def get_coin_action_service(db: Session = Depends(get_db)) -> CoinActionService:
    return CoinActionService(db)


def _ok(data=None, message: str | None = None) -> dict:
    return {"success": True, "message": message, "data": data}


@router.post("/coin-actions")
def coin_action(
    body: ActionRequest,
    authorization: str | None = Header(default=None),
    x_admin_key: str | None = Header(default=None),
    svc: DailyBonusService = Depends(get_bonus_service),
    coins: CoinActionService = Depends(get_coin_action_service),
):
    action = (body.action or "").strip()
    try:
        if action in ADMIN_ACTIONS:
            if not is_admin_key(x_admin_key):
                raise AuthenticationError("Admin credentials required")
            return _run_admin_action(svc, action)

        user_id = get_current_user_id(authorization)
        config = svc.load_config()
        if not config.system_enabled:
            raise SystemDisabledError()
        return _run_client_action(svc, coins, config, user_id, action, body)
    except DailyBonusError:
        raise
    except Exception:
        logger.exception("coin_action_unhandled", extra={"action": action})
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def _run_admin_action(svc: DailyBonusService, action: str) -> dict:
    if action == "generate_daily_code":
        code, created = svc.tick()
        message = "Daily code generated" if created else "Active code already exists"
        return _ok({**code_to_dict(code), "created": created}, message)
    deleted = svc.cleanup()
    return _ok({"deleted": deleted}, f"{deleted} expired codes removed")


def _run_client_action(svc, coins, config, user_id: str, action: str, body: ActionRequest) -> dict:
    if action == "get_current_code":
        data = svc.current_code(user_id)
        if data is None:
            return _ok(None, "No code available")
        return _ok(data)

    if action == "claim_code":
        code = body.code or body.metadata.get("code")
        if not code or not str(code).strip():
            raise MissingCodeError()
        result = svc.claim(user_id, ExplicitCode(str(code)), config)
        return _ok(result.as_response(), f"+{result.bonus_earned} coins")

    if action == "claim_daily_bonus":
        result = svc.claim(user_id, LatestActiveCode(), config)
        return _ok(result.as_response(), f"+{result.bonus_earned} coins")

    if action == "daily_login" or action.startswith("process_daily_login"):
        result = svc.claim(user_id, LatestActiveCode(reason=REASON_DAILY_LOGIN), config)
        return _ok(result.as_response(), f"+{result.bonus_earned} coins")

    if action == "get_streak_status":
        return _ok(svc.streak_status(user_id))

    if action.startswith("can_claim_daily_bonus"):
        return _ok(svc.eligibility(user_id, config))

    if action == "get_daily_timer":
        return _ok(svc.daily_timer(user_id, config))

    result = coins.earn(user_id, action, body.metadata)
    return _ok(result, f"+{result['coins_earned']} coins")
