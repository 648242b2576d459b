"""
Daily bonus error taxonomy. Each error carries the HTTP status and a user-facing
message; the action endpoint renders them as {"success": false, "message": ...}.
"""


class DailyBonusError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(DailyBonusError):
    status_code = 401
    default_message = "Authentication required"


class SystemDisabledError(DailyBonusError):
    status_code = 503
    default_message = "Coin system is currently disabled"


class CodeNotFoundError(DailyBonusError):
    status_code = 404
    default_message = "Code not found"


class CodeExpiredError(DailyBonusError):
    default_message = "Code can no longer be claimed (claim window closed)"


class AlreadyClaimedError(DailyBonusError):
    default_message = "Code was already claimed"


class SameDayClaimError(DailyBonusError):
    default_message = "Daily bonus already claimed today"


class MissingCodeError(DailyBonusError):
    default_message = "Code is required"


class InvalidActionError(DailyBonusError):
    default_message = "Invalid action"


class EarnLimitError(DailyBonusError):
    status_code = 429
    default_message = "Action limit reached, try again later"


class PersistenceError(DailyBonusError):
    """Claim or ledger write failed. Details go to the log, not to the caller."""

    status_code = 500
    default_message = "Internal server error"


class BalanceUpdateError(PersistenceError):
    """Balance increment failed; the claim transaction has been rolled back."""

    default_message = "Internal server error"
