"""
ConfigStore — daily bonus tunables from coin_system_config, loaded once per request
as a frozen BonusConfig and cached in Redis until an admin update invalidates it.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis
from sqlalchemy.orm import Session

from app.bonus.models import INCREMENT_CALCULATED, INCREMENT_FIXED, BonusConfig
from app.core.config import settings
from app.models.coin_system_config import CoinSystemConfig

logger = logging.getLogger(__name__)

CACHE_KEY = "daily_bonus:config"

DEFAULTS: dict[str, Any] = {
    "daily_bonus_base_amount": 10,
    "daily_bonus_max_amount": 100,
    "daily_bonus_streak_days": 7,
    "daily_bonus_increment_type": INCREMENT_CALCULATED,
    "daily_bonus_fixed_increment": 10,
    "system_enabled": True,
    "test_mode_enabled": False,
}

DESCRIPTIONS = {
    "daily_bonus_base_amount": "Coins for the first day of the cycle",
    "daily_bonus_max_amount": "Upper bound of a single daily bonus",
    "daily_bonus_streak_days": "Cycle length in days before the progression repeats",
    "daily_bonus_increment_type": "fixed | calculated",
    "daily_bonus_fixed_increment": "Per-day increment when increment type is fixed",
    "system_enabled": "Master switch for all client coin actions",
    "test_mode_enabled": "Codes expire after a few seconds instead of at the daily boundary",
}


def _unwrap(value: Any) -> Any:
    # setting_value is JSON; legacy rows hold string-encoded values ("10", "\"true\"")
    if isinstance(value, str):
        return value.strip().strip('"')
    return value


def parse_int(value: Any, default: int) -> int:
    value = _unwrap(value)
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_bool(value: Any, default: bool) -> bool:
    value = _unwrap(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.lower() in ("true", "1", "yes", "on"):
            return True
        if value.lower() in ("false", "0", "no", "off"):
            return False
    return default


def build_config(raw: dict[str, Any]) -> BonusConfig:
    """Normalize raw key/value rows into a BonusConfig, clamping inconsistent values."""
    base = max(0, parse_int(raw.get("daily_bonus_base_amount"), DEFAULTS["daily_bonus_base_amount"]))
    max_amount = max(base, parse_int(raw.get("daily_bonus_max_amount"), DEFAULTS["daily_bonus_max_amount"]))
    cycle = max(1, parse_int(raw.get("daily_bonus_streak_days"), DEFAULTS["daily_bonus_streak_days"]))
    increment = str(_unwrap(raw.get("daily_bonus_increment_type")) or "").lower()
    # legacy "progressive" and anything unknown mean linear interpolation
    increment_type = INCREMENT_FIXED if increment == INCREMENT_FIXED else INCREMENT_CALCULATED
    fixed = max(0, parse_int(raw.get("daily_bonus_fixed_increment"), DEFAULTS["daily_bonus_fixed_increment"]))
    return BonusConfig(
        base_amount=base,
        max_amount=max_amount,
        cycle_length_days=cycle,
        increment_type=increment_type,
        fixed_increment=fixed,
        system_enabled=parse_bool(raw.get("system_enabled"), DEFAULTS["system_enabled"]),
        test_mode_enabled=parse_bool(raw.get("test_mode_enabled"), DEFAULTS["test_mode_enabled"]),
    )


def get_config_cache() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


class ConfigStore:
    def __init__(self, db: Session, cache: redis.Redis | None = None) -> None:
        self.db = db
        self.cache = cache

    def raw(self) -> dict[str, Any]:
        rows = (
            self.db.query(CoinSystemConfig)
            .filter(CoinSystemConfig.setting_key.in_(list(DEFAULTS.keys())))
            .all()
        )
        return {row.setting_key: row.setting_value for row in rows}

    def load(self) -> BonusConfig:
        cached = self._cache_get()
        if cached is not None:
            return cached
        config = build_config(self.raw())
        self._cache_set(config)
        return config

    def as_dict(self) -> dict[str, Any]:
        raw = self.raw()
        return {key: raw.get(key, default) for key, default in DEFAULTS.items()}

    def update(self, data: dict[str, Any]) -> BonusConfig:
        """Upsert known keys, commit and drop the cached snapshot."""
        now = datetime.now(timezone.utc)
        existing = {
            row.setting_key: row
            for row in self.db.query(CoinSystemConfig)
            .filter(CoinSystemConfig.setting_key.in_(list(DEFAULTS.keys())))
            .all()
        }
        for key, value in data.items():
            if key not in DEFAULTS or value is None:
                continue
            row = existing.get(key)
            if row is None:
                row = CoinSystemConfig(setting_key=key, description=DESCRIPTIONS.get(key))
            row.setting_value = value
            row.updated_at = now
            self.db.add(row)
        self.db.commit()
        self.invalidate()
        config = build_config(self.raw())
        logger.info("daily_bonus_config_updated", extra={"keys": sorted(k for k in data if k in DEFAULTS)})
        return config

    def seed_defaults(self) -> int:
        """Insert rows for missing keys. Returns the number of rows created."""
        present = set(self.raw().keys())
        created = 0
        for key, value in DEFAULTS.items():
            if key in present:
                continue
            self.db.add(CoinSystemConfig(setting_key=key, setting_value=value, description=DESCRIPTIONS.get(key)))
            created += 1
        if created:
            self.db.commit()
            self.invalidate()
        return created

    def invalidate(self) -> None:
        if self.cache is None:
            return
        try:
            self.cache.delete(CACHE_KEY)
        except redis.RedisError as e:
            logger.warning("daily_bonus_config_cache_error", extra={"error": str(e)})

    def _cache_get(self) -> BonusConfig | None:
        if self.cache is None:
            return None
        try:
            payload = self.cache.get(CACHE_KEY)
        except redis.RedisError as e:
            logger.warning("daily_bonus_config_cache_error", extra={"error": str(e)})
            return None  # fail open: read from the database
        if not payload:
            return None
        try:
            return BonusConfig(**json.loads(payload))
        except (ValueError, TypeError):
            return None

    def _cache_set(self, config: BonusConfig) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(CACHE_KEY, config.model_dump_json(), ex=settings.bonus_config_cache_ttl)
        except redis.RedisError as e:
            logger.warning("daily_bonus_config_cache_error", extra={"error": str(e)})
