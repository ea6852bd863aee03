"""Readiness scoring — pure function of the four check-in metrics.

Each metric is normalized to 0–100 (stress inverted so that high stress
lowers the score) and weighted equally. The weighted sum is rounded half
up and bucketed: ``>= 70`` green, ``>= 40`` yellow, otherwise red.
"""

from __future__ import annotations

from decimal import Decimal

from teamready.checkins.schemas import CheckinMetrics, ReadinessResult
from teamready.common.constants import (
    GREEN_THRESHOLD,
    METRIC_MAX,
    METRIC_MIN,
    YELLOW_THRESHOLD,
    ReadinessStatus,
)
from teamready.common.exceptions import ValidationException
from teamready.common.utils import round_half_up

WEIGHTS = {
    "mood": Decimal("0.25"),
    "stress": Decimal("0.25"),
    "sleep": Decimal("0.25"),
    "physical_health": Decimal("0.25"),
}


def validate_metrics(metrics: CheckinMetrics) -> None:
    errors: dict[str, list[str]] = {}
    for field in WEIGHTS:
        value = getattr(metrics, field)
        if isinstance(value, bool) or not isinstance(value, int):
            errors[field] = ["Must be an integer."]
        elif not METRIC_MIN <= value <= METRIC_MAX:
            errors[field] = [f"Must be between {METRIC_MIN} and {METRIC_MAX}."]
    if errors:
        raise ValidationException(errors)


def readiness_status(score: int) -> ReadinessStatus:
    if score >= GREEN_THRESHOLD:
        return ReadinessStatus.green
    if score >= YELLOW_THRESHOLD:
        return ReadinessStatus.yellow
    return ReadinessStatus.red


def calculate_readiness(metrics: CheckinMetrics) -> ReadinessResult:
    validate_metrics(metrics)

    normalized = {
        "mood": Decimal(metrics.mood) * 10,
        "stress": Decimal(METRIC_MAX - metrics.stress) * 10,
        "sleep": Decimal(metrics.sleep) * 10,
        "physical_health": Decimal(metrics.physical_health) * 10,
    }
    weighted = sum(normalized[k] * w for k, w in WEIGHTS.items())
    score = round_half_up(weighted)
    return ReadinessResult(score=score, status=readiness_status(score))
