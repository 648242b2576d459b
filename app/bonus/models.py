"""
DTOs for the daily bonus: Config snapshot (input of the calculators), StreakResult, ClaimResult.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


INCREMENT_FIXED = "fixed"
INCREMENT_CALCULATED = "calculated"


class BonusConfig(BaseModel):
    """Per-request snapshot of coin_system_config. Passed by value into the calculators."""

    base_amount: int = 10
    max_amount: int = 100
    cycle_length_days: int = 7
    increment_type: Literal["fixed", "calculated"] = INCREMENT_CALCULATED
    fixed_increment: int = 10
    system_enabled: bool = True
    test_mode_enabled: bool = False

    model_config = {"frozen": True}

    def snapshot(self) -> dict:
        """Config subset recorded in the transaction metadata."""
        return {
            "base_amount": self.base_amount,
            "max_amount": self.max_amount,
            "streak_days": self.cycle_length_days,
            "increment_type": self.increment_type,
            "fixed_increment": self.fixed_increment,
        }


class StreakResult(BaseModel):
    cycle_position: int = Field(..., ge=1, description="Position of the day being claimed, 1..cycle_length")
    continuing: bool = Field(..., description="True if the previous claim was on the previous claim day")

    model_config = {"frozen": True}


class ClaimResult(BaseModel):
    bonus_earned: int
    cycle_position: int
    cycle_length: int
    continuing_streak: bool
    code: str
    increment_type: str
    reason: str
    balance: int
    next_bonus_at: datetime

    model_config = {"frozen": True}

    def as_response(self) -> dict:
        return {
            "coins_earned": self.bonus_earned,
            "streak_position": self.cycle_position,
            "streak_days": self.cycle_length,
            "continuing_streak": self.continuing_streak,
            "increment_type": self.increment_type,
            "code": self.code,
            "balance": self.balance,
            "next_bonus_at": self.next_bonus_at.isoformat(),
        }
