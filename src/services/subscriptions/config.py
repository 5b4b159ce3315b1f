"""
Configuration classes for subscription detection.

Centralizes all configuration parameters and thresholds used in the
detection pipeline.
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, TypeVar

from models.subscription import BillingCycle, ACTIVE_DAYS, PENDING_DAYS

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class CadenceThresholds:
    """
    Day windows for billing cycle classification.

    Each cycle is matched when the mean interval lies within
    ``target +/- max_day_variance * multiplier``. Windows widen with the
    period to absorb calendar drift.
    """

    max_day_variance: int = 5
    """Base tolerance in days; the monthly window is +/- this value."""

    monthly_multiplier: int = 1
    quarterly_multiplier: int = 2
    semi_annual_multiplier: int = 3
    annual_multiplier: int = 5

    def to_dict(self) -> Dict[BillingCycle, Tuple[float, float]]:
        """
        Convert thresholds to an ordered mapping of cycle to (min_days, max_days).

        Order matters: shorter periods are checked first.
        """
        windows = (
            (BillingCycle.MONTHLY, self.monthly_multiplier),
            (BillingCycle.QUARTERLY, self.quarterly_multiplier),
            (BillingCycle.SEMI_ANNUAL, self.semi_annual_multiplier),
            (BillingCycle.ANNUAL, self.annual_multiplier),
        )
        return {
            cycle: (cycle.days - self.max_day_variance * mult, cycle.days + self.max_day_variance * mult)
            for cycle, mult in windows
        }


class DetectionConfig:
    """
    Master configuration for subscription detection.

    Aggregates the cadence thresholds with the scalar knobs used by the
    grouping, consistency and status stages.
    """

    def __init__(
        self,
        cadence_thresholds: Optional[CadenceThresholds] = None,
        min_occurrences: int = 2,
        amount_tolerance_pct: float = 5.0,
        consistency_ratio: float = 0.8,
        active_days: int = ACTIVE_DAYS,
        pending_days: int = PENDING_DAYS,
        cancellation_days: int = ACTIVE_DAYS,
        upcoming_days: int = 7
    ):
        """
        Initialize detection configuration.

        Args:
            cadence_thresholds: Cycle windows (creates default if None)
            min_occurrences: Groups with fewer transactions are skipped
            amount_tolerance_pct: Allowed deviation from the representative amount, in percent
            consistency_ratio: Fraction of amounts that must be within tolerance
            active_days: Max days since last charge for ACTIVE
            pending_days: Max days since last charge for PENDING
            cancellation_days: Staleness threshold for cancellation candidates
            upcoming_days: Horizon for upcoming payments in summaries
        """
        if min_occurrences < 1:
            raise ValueError("min_occurrences must be at least 1")
        if amount_tolerance_pct < 0:
            raise ValueError("amount_tolerance_pct must not be negative")
        if not (0.0 < consistency_ratio <= 1.0):
            raise ValueError("consistency_ratio must be in (0, 1]")
        if pending_days < active_days:
            raise ValueError("pending_days must not be smaller than active_days")

        self.cadence_thresholds = cadence_thresholds or CadenceThresholds()
        self.min_occurrences = min_occurrences
        self.amount_tolerance_pct = amount_tolerance_pct
        self.consistency_ratio = consistency_ratio
        self.active_days = active_days
        self.pending_days = pending_days
        self.cancellation_days = cancellation_days
        self.upcoming_days = upcoming_days

    @classmethod
    def from_env(cls) -> "DetectionConfig":
        """
        Build a configuration from environment variables.

        Reads SUBSCRIPTION_MIN_OCCURRENCE, SUBSCRIPTION_AMOUNT_TOLERANCE and
        SUBSCRIPTION_MAX_DAY_VARIANCE. Malformed or out-of-range values log a
        warning and fall back to defaults.
        """
        min_occurrences = _env_value('SUBSCRIPTION_MIN_OCCURRENCE', int, 2, lambda v: v >= 1)
        amount_tolerance = _env_value('SUBSCRIPTION_AMOUNT_TOLERANCE', float, 5.0, lambda v: v >= 0)
        max_day_variance = _env_value('SUBSCRIPTION_MAX_DAY_VARIANCE', int, 5, lambda v: v >= 0)

        logger.info(
            f"Detection config - min occurrences: {min_occurrences}, "
            f"amount tolerance: {amount_tolerance}%, day variance: {max_day_variance} days"
        )
        return cls(
            cadence_thresholds=CadenceThresholds(max_day_variance=max_day_variance),
            min_occurrences=min_occurrences,
            amount_tolerance_pct=amount_tolerance,
        )


def _env_value(
    name: str,
    parse: Callable[[str], T],
    default: T,
    is_valid: Callable[[T], bool] = lambda value: True
) -> T:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = parse(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using default {default}")
        return default
    if not is_valid(value):
        logger.warning(f"Out-of-range value for {name}: {raw!r}, using default {default}")
        return default
    return value


# Default configuration instance
DEFAULT_CONFIG = DetectionConfig()
