"""
Daily bonus: one shared claimable code per claim day, streak cycle, reward progression
and the single-transaction claim. Pure calculators (streak, reward) take a BonusConfig
snapshot by value; DailyBonusService owns all writes.
"""
from app.bonus.errors import DailyBonusError
from app.bonus.models import BonusConfig, ClaimResult, StreakResult
from app.bonus.reward import amount_for_claim, amount_for_display, calculate_bonus_amount
from app.bonus.service import DailyBonusService, ExplicitCode, LatestActiveCode
from app.bonus.streak import compute_streak, count_current_streak, next_cycle_position

__all__ = [
    "BonusConfig",
    "ClaimResult",
    "DailyBonusError",
    "DailyBonusService",
    "ExplicitCode",
    "LatestActiveCode",
    "StreakResult",
    "amount_for_claim",
    "amount_for_display",
    "calculate_bonus_amount",
    "compute_streak",
    "count_current_streak",
    "next_cycle_position",
]
