from typing import Any

from pydantic import BaseModel, Field


class ActionRequest(BaseModel):
    action: str = ""
    code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    success: bool
    message: str | None = None
    data: Any = None


class BonusConfigUpdate(BaseModel):
    """Partial update of coin_system_config keys; omitted fields are left unchanged."""

    daily_bonus_base_amount: int | None = Field(None, ge=0)
    daily_bonus_max_amount: int | None = Field(None, ge=0)
    daily_bonus_streak_days: int | None = Field(None, ge=1)
    daily_bonus_increment_type: str | None = None
    daily_bonus_fixed_increment: int | None = Field(None, ge=0)
    system_enabled: bool | None = None
    test_mode_enabled: bool | None = None
