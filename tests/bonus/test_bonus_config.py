"""Tests for config normalisation and the Redis-cached ConfigStore."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import redis

from app.bonus.config import CACHE_KEY, ConfigStore, build_config
from app.bonus.models import BonusConfig


def test_defaults_when_empty():
    config = build_config({})
    assert config == BonusConfig()
    assert config.increment_type == "calculated"
    assert config.system_enabled is True
    assert config.test_mode_enabled is False


def test_string_encoded_values():
    config = build_config(
        {
            "daily_bonus_base_amount": "25",
            "daily_bonus_max_amount": '"200"',
            "daily_bonus_streak_days": "5",
            "daily_bonus_increment_type": '"fixed"',
            "system_enabled": "false",
            "test_mode_enabled": '"true"',
        }
    )
    assert config.base_amount == 25
    assert config.max_amount == 200
    assert config.cycle_length_days == 5
    assert config.increment_type == "fixed"
    assert config.system_enabled is False
    assert config.test_mode_enabled is True


def test_legacy_progressive_means_calculated():
    assert build_config({"daily_bonus_increment_type": "progressive"}).increment_type == "calculated"


def test_inconsistent_values_are_clamped():
    config = build_config(
        {
            "daily_bonus_base_amount": -5,
            "daily_bonus_max_amount": -1,
            "daily_bonus_streak_days": 0,
            "daily_bonus_fixed_increment": -3,
        }
    )
    assert config.base_amount == 0
    assert config.max_amount == 0
    assert config.cycle_length_days == 1
    assert config.fixed_increment == 0


def test_max_below_base_raised_to_base():
    config = build_config({"daily_bonus_base_amount": 50, "daily_bonus_max_amount": 20})
    assert config.max_amount == 50


def test_garbage_falls_back_to_defaults():
    config = build_config({"daily_bonus_base_amount": "abc", "system_enabled": "maybe"})
    assert config.base_amount == 10
    assert config.system_enabled is True


class TestConfigStore:
    def test_load_uses_cache(self):
        db = MagicMock()
        cache = MagicMock()
        cache.get.return_value = BonusConfig(base_amount=33).model_dump_json()

        config = ConfigStore(db, cache).load()

        assert config.base_amount == 33
        db.query.assert_not_called()

    def test_load_falls_back_to_db_when_redis_down(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [
            SimpleNamespace(setting_key="daily_bonus_base_amount", setting_value=15),
        ]
        cache = MagicMock()
        cache.get.side_effect = redis.ConnectionError("down")
        cache.set.side_effect = redis.ConnectionError("down")

        config = ConfigStore(db, cache).load()

        assert config.base_amount == 15

    def test_load_populates_cache(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = []
        cache = MagicMock()
        cache.get.return_value = None

        ConfigStore(db, cache).load()

        cache.set.assert_called_once()
        assert cache.set.call_args[0][0] == CACHE_KEY

    def test_update_invalidates_cache(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = []
        cache = MagicMock()

        ConfigStore(db, cache).update({"daily_bonus_base_amount": 20, "unknown_key": 1})

        db.commit.assert_called_once()
        cache.delete.assert_called_once_with(CACHE_KEY)
        added = [c[0][0] for c in db.add.call_args_list]
        assert [row.setting_key for row in added] == ["daily_bonus_base_amount"]

    def test_seed_defaults_skips_present_keys(self, db_session):
        store = ConfigStore(db_session)
        store.update({"daily_bonus_base_amount": 40})

        created = store.seed_defaults()

        assert created == 6
        assert store.as_dict()["daily_bonus_base_amount"] == 40
        assert store.load().base_amount == 40
