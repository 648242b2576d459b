"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
bonus_claims_total = Counter(
    "bonus_claims_total",
    "Daily bonus claim attempts by outcome",
    ["reason", "result"],  # result: success or error class name
)

bonus_coins_awarded_total = Counter(
    "bonus_coins_awarded_total",
    "Coins credited by daily bonus claims",
    ["reason"],
)

bonus_compensations_total = Counter(
    "bonus_compensations_total",
    "Claim transactions rolled back after a ledger or balance failure",
)

daily_codes_generated_total = Counter(
    "daily_codes_generated_total",
    "Daily codes generated",
    ["test_mode"],
)

daily_codes_deleted_total = Counter(
    "daily_codes_deleted_total",
    "Expired daily codes deleted by cleanup",
)

coin_actions_total = Counter(
    "coin_actions_total",
    "Generic earn actions by outcome",
    ["action", "result"],
)

# Histograms
claim_duration_seconds = Histogram(
    "bonus_claim_duration_seconds",
    "Claim transaction duration",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


class Metrics:
    """Thin wrapper so services do not touch label plumbing."""

    def inc_claim(self, reason: str, result: str) -> None:
        bonus_claims_total.labels(reason=reason, result=result).inc()

    def inc_coins_awarded(self, reason: str, amount: int) -> None:
        bonus_coins_awarded_total.labels(reason=reason).inc(amount)

    def inc_compensation(self) -> None:
        bonus_compensations_total.inc()

    def inc_code_generated(self, test_mode: bool = False) -> None:
        daily_codes_generated_total.labels(test_mode=str(bool(test_mode)).lower()).inc()

    def inc_codes_deleted(self, count: int) -> None:
        if count > 0:
            daily_codes_deleted_total.inc(count)

    def inc_coin_action(self, action: str, result: str) -> None:
        coin_actions_total.labels(action=action, result=result).inc()


metrics = Metrics()
