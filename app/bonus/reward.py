"""
RewardCalculator: cycle position -> bonus amount. Pure, no I/O.
Claim and display share one formula and differ only in the position passed in.
"""
from __future__ import annotations

from app.bonus.models import INCREMENT_FIXED, BonusConfig


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def calculate_bonus_amount(cycle_position: int, config: BonusConfig) -> int:
    """Amount for a cycle position, always within [base_amount, max_amount]."""
    cycle = max(1, config.cycle_length_days)
    position = min(max(1, cycle_position), cycle)
    base = config.base_amount
    top = max(base, config.max_amount)

    if config.increment_type == INCREMENT_FIXED:
        amount = base + (position - 1) * config.fixed_increment
    elif cycle > 1:
        amount = base + _round_half_up((top - base) * (position - 1), cycle - 1)
    else:
        amount = base

    return max(base, min(amount, top))


def amount_for_claim(cycle_position: int, config: BonusConfig) -> int:
    return calculate_bonus_amount(cycle_position, config)


def amount_for_display(next_position: int, config: BonusConfig) -> int:
    """Amount shown before claiming; `next_position` comes from streak.next_cycle_position."""
    return calculate_bonus_amount(next_position, config)
