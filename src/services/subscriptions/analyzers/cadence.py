"""
Cadence classifier for subscription detection.

Analyzes the intervals between charges to infer the billing cycle.
"""

import logging
from typing import Dict, List, Tuple

import numpy as np

from models.transaction import Transaction
from models.subscription import BillingCycle

logger = logging.getLogger(__name__)


class CadenceClassifier:
    """
    Classifies the billing cycle of a transaction group.

    Calculates the mean interval between consecutive distinct charge dates
    and matches it against the configured cycle windows, shortest cycle
    first.
    """

    def __init__(self, cycle_thresholds: Dict[BillingCycle, Tuple[float, float]]):
        """
        Initialize the cadence classifier.

        Args:
            cycle_thresholds: Ordered mapping of BillingCycle to (min_days, max_days)
        """
        self.cycle_thresholds = cycle_thresholds

    def classify(self, transactions: List[Transaction]) -> BillingCycle:
        """
        Detect the billing cycle of a group.

        Args:
            transactions: Group members in any order

        Returns:
            Matching BillingCycle, or UNKNOWN when there are fewer than two
            transactions, no positive gaps, or no window matches
        """
        if not transactions or len(transactions) < 2:
            return BillingCycle.UNKNOWN

        intervals = self.calculate_intervals(transactions)
        if not intervals:
            return BillingCycle.UNKNOWN

        mean_interval = float(np.mean(intervals))
        cycle = self._match_to_cycle(mean_interval)
        logger.debug(f"Mean interval {mean_interval:.2f} days classified as {cycle.value}")
        return cycle

    @staticmethod
    def calculate_intervals(transactions: List[Transaction]) -> List[int]:
        """
        Day gaps between consecutive transactions sorted by date.

        Same-day duplicates produce zero gaps, which are excluded.
        """
        ordered = sorted(transactions, key=lambda t: t.transaction_date)
        intervals = []
        for previous, current in zip(ordered, ordered[1:]):
            days = (current.transaction_date - previous.transaction_date).days
            if days > 0:
                intervals.append(days)
        return intervals

    def _match_to_cycle(self, mean_interval: float) -> BillingCycle:
        for cycle, (min_days, max_days) in self.cycle_thresholds.items():
            if min_days <= mean_interval <= max_days:
                return cycle
        return BillingCycle.UNKNOWN

    def get_interval_statistics(self, transactions: List[Transaction]) -> Dict[str, float]:
        """
        Calculate interval statistics for a group.

        Returns:
            Dictionary with mean, std, min, max intervals
        """
        intervals = self.calculate_intervals(transactions or [])
        if not intervals:
            return {'mean': 0.0, 'std': 0.0, 'min': 0.0, 'max': 0.0}

        return {
            'mean': float(np.mean(intervals)),
            'std': float(np.std(intervals)),
            'min': float(min(intervals)),
            'max': float(max(intervals))
        }
