"""
Amount consistency checker for subscription detection.

Decides whether the charges in a merchant group are close enough to one
another to be a fixed-price subscription.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from models.transaction import Transaction

logger = logging.getLogger(__name__)


class AmountConsistencyChecker:
    """
    Checks that charges cluster around a representative amount.

    Only positive amounts (charges) are considered. The representative
    amount is the element at index ``len // 2`` of the sorted charges, i.e.
    the upper median for even counts.
    """

    def __init__(self, tolerance_pct: float = 5.0, consistency_ratio: float = 0.8):
        """
        Args:
            tolerance_pct: Allowed deviation from the representative amount, in percent
            consistency_ratio: Minimum fraction of charges within tolerance
        """
        self.tolerance_pct = Decimal(str(tolerance_pct))
        self.consistency_ratio = Decimal(str(consistency_ratio))

    def is_consistent(self, transactions: List[Transaction]) -> bool:
        """
        Return True if at least ``consistency_ratio`` of the charges lie within
        tolerance of the representative amount.

        Groups with fewer than two charges are never consistent.
        """
        amounts = self.charge_amounts(transactions)
        if len(amounts) < 2:
            return False

        representative = self.representative_amount(amounts)
        tolerance = representative * self.tolerance_pct / Decimal(100)
        consistent = sum(1 for amount in amounts if abs(amount - representative) <= tolerance)

        ratio = Decimal(consistent) / Decimal(len(amounts))
        logger.debug(
            f"Amount consistency: {consistent}/{len(amounts)} within {self.tolerance_pct}% "
            f"of {representative}"
        )
        return ratio >= self.consistency_ratio

    @staticmethod
    def charge_amounts(transactions: List[Transaction]) -> List[Decimal]:
        return [txn.amount for txn in transactions or [] if txn.amount > 0]

    @staticmethod
    def representative_amount(amounts: List[Decimal]) -> Optional[Decimal]:
        if not amounts:
            return None
        ordered = sorted(amounts)
        return ordered[len(ordered) // 2]
