"""Tests for the reward progression (fixed and calculated increments)."""
import pytest

from app.bonus.models import BonusConfig
from app.bonus.reward import amount_for_claim, amount_for_display, calculate_bonus_amount


def _calculated(**kwargs):
    return BonusConfig(**{"base_amount": 10, "max_amount": 100, "cycle_length_days": 7, "increment_type": "calculated", **kwargs})


def _fixed(**kwargs):
    return BonusConfig(
        **{"base_amount": 10, "max_amount": 100, "cycle_length_days": 15, "increment_type": "fixed", "fixed_increment": 10, **kwargs}
    )


class TestCalculated:
    def test_week_cycle_scenario(self):
        config = _calculated()
        assert calculate_bonus_amount(1, config) == 10
        assert calculate_bonus_amount(4, config) == 55
        assert calculate_bonus_amount(7, config) == 100

    def test_full_week_progression(self):
        config = _calculated()
        assert [calculate_bonus_amount(p, config) for p in range(1, 8)] == [10, 25, 40, 55, 70, 85, 100]

    def test_rounds_half_up(self):
        config = _calculated(base_amount=0, max_amount=3, cycle_length_days=3)
        # 3 * 1 / 2 = 1.5
        assert calculate_bonus_amount(2, config) == 2

    def test_rounds_down_below_half(self):
        config = _calculated(base_amount=10, max_amount=15, cycle_length_days=5)
        assert calculate_bonus_amount(2, config) == 11
        assert calculate_bonus_amount(3, config) == 13

    def test_single_day_cycle_pays_base(self):
        config = _calculated(cycle_length_days=1)
        assert calculate_bonus_amount(1, config) == 10

    def test_position_beyond_cycle_is_clamped(self):
        assert calculate_bonus_amount(12, _calculated()) == 100


class TestFixed:
    def test_linear_steps(self):
        config = _fixed()
        assert [calculate_bonus_amount(p, config) for p in range(1, 6)] == [10, 20, 30, 40, 50]

    def test_reaches_max_on_day_ten(self):
        assert calculate_bonus_amount(10, _fixed()) == 100

    def test_never_exceeds_max(self):
        config = _fixed()
        assert all(calculate_bonus_amount(p, config) <= 100 for p in range(1, 16))
        assert calculate_bonus_amount(12, config) == 100


@pytest.mark.parametrize("increment_type", ["fixed", "calculated"])
def test_amount_within_bounds(increment_type):
    config = BonusConfig(base_amount=5, max_amount=42, cycle_length_days=9, increment_type=increment_type, fixed_increment=7)
    for position in range(0, 12):
        assert 5 <= calculate_bonus_amount(position, config) <= 42


def test_max_below_base_pays_base():
    config = BonusConfig(base_amount=10, max_amount=5, cycle_length_days=7)
    assert {calculate_bonus_amount(p, config) for p in range(1, 8)} == {10}


def test_display_pays_what_the_claim_pays():
    config = _calculated()
    for position in range(1, 8):
        assert amount_for_display(position, config) == amount_for_claim(position, config)
