"""
Admin API for the daily bonus: config, codes, per-user claims.
Guarded by X-Admin-Key; the scheduler uses the same endpoints when Celery beat is not running.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.bonus.clock import as_utc
from app.bonus.config import ConfigStore, get_config_cache
from app.bonus.ledger import BalanceStore, ClaimLedger
from app.bonus.service import DailyBonusService, code_to_dict
from app.db.session import get_db
from app.schemas.bonus import BonusConfigUpdate
from app.services.auth.jwt import require_admin

router = APIRouter(prefix="/admin/bonus", tags=["admin"], dependencies=[Depends(require_admin)])


def get_config_store(db: Session = Depends(get_db)) -> ConfigStore:
    return ConfigStore(db, get_config_cache())


# ---------- Config ----------
@router.get("/config")
def config_get(store: ConfigStore = Depends(get_config_store)):
    return store.as_dict()


@router.put("/config")
def config_update(payload: BonusConfigUpdate, store: ConfigStore = Depends(get_config_store)):
    config = store.update(payload.model_dump(exclude_none=True))
    return {"settings": store.as_dict(), "effective": config.model_dump()}


# ---------- Codes ----------
@router.get("/codes")
def codes_list(db: Session = Depends(get_db), limit: int = Query(30, ge=1, le=200)):
    svc = DailyBonusService(db)
    return {"items": [code_to_dict(c) for c in svc.codes.list_recent(limit)]}


@router.post("/codes/generate")
def codes_generate(db: Session = Depends(get_db), store: ConfigStore = Depends(get_config_store)):
    code, created = DailyBonusService(db, store).tick()
    return {"created": created, "code": code_to_dict(code)}


@router.post("/codes/cleanup")
def codes_cleanup(db: Session = Depends(get_db)):
    return {"deleted": DailyBonusService(db).cleanup()}


# ---------- Users ----------
@router.get("/users/{user_id}/claims")
def user_claims(user_id: str, db: Session = Depends(get_db), limit: int = Query(50, ge=1, le=400)):
    claims = ClaimLedger(db).history(user_id, limit=limit)
    return {
        "user_id": user_id,
        "balance": BalanceStore(db).get_balance(user_id),
        "items": [
            {
                "id": c.id,
                "code": c.code,
                "code_id": c.code_id,
                "claimed_at": as_utc(c.claimed_at).isoformat(),
                "expires_at": as_utc(c.expires_at).isoformat(),
                "streak_position": c.streak_position,
                "bonus_received": c.bonus_received,
            }
            for c in claims
        ],
    }
