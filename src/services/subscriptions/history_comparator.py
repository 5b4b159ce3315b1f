"""
Comparison of two analysis snapshots.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from models.analysis_history import AnalysisHistory
from models.comparison import ComparisonResult, DiffType, SubscriptionDiff
from models.subscription import Subscription

logger = logging.getLogger(__name__)

PERCENT_QUANTUM = Decimal("0.0001")


def percent_change(old: Decimal, new: Decimal) -> float:
    """Percentage change from old to new; 0 when old is not positive."""
    if old is None or old <= 0:
        return 0.0
    ratio = ((new - old) / old).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    return float(ratio * 100)


class HistoryComparator:
    """
    Computes scalar deltas and per-service diffs between two snapshots.

    Arguments are taken literally: swapping them negates every scalar
    delta and swaps the new and removed lists.
    """

    def compare(self, older: AnalysisHistory, newer: AnalysisHistory) -> ComparisonResult:
        old_by_name = _by_service_name(older.subscriptions)
        new_by_name = _by_service_name(newer.subscriptions)

        new_subscriptions: List[SubscriptionDiff] = []
        changed_subscriptions: List[SubscriptionDiff] = []
        for name, sub in new_by_name.items():
            old = old_by_name.get(name)
            if old is None:
                new_subscriptions.append(SubscriptionDiff(
                    serviceName=name,
                    changeType=DiffType.NEW,
                    newAmount=sub.monthly_amount,
                    newStatus=sub.status.value,
                ))
            elif old.monthly_amount != sub.monthly_amount or old.status != sub.status:
                changed_subscriptions.append(SubscriptionDiff(
                    serviceName=name,
                    changeType=DiffType.CHANGED,
                    oldAmount=old.monthly_amount,
                    newAmount=sub.monthly_amount,
                    oldStatus=old.status.value,
                    newStatus=sub.status.value,
                ))

        removed_subscriptions = [
            SubscriptionDiff(
                serviceName=name,
                changeType=DiffType.REMOVED,
                oldAmount=old.monthly_amount,
                oldStatus=old.status.value,
            )
            for name, old in old_by_name.items()
            if name not in new_by_name
        ]

        result = ComparisonResult(
            oldHistoryId=older.history_id,
            newHistoryId=newer.history_id,
            oldAnalysisDate=older.analysis_date,
            newAnalysisDate=newer.analysis_date,
            oldSubscriptionCount=older.subscription_count,
            newSubscriptionCount=newer.subscription_count,
            subscriptionCountDiff=newer.subscription_count - older.subscription_count,
            oldMonthlyTotal=older.monthly_total,
            newMonthlyTotal=newer.monthly_total,
            monthlyTotalDiff=newer.monthly_total - older.monthly_total,
            monthlyTotalChangePercent=percent_change(older.monthly_total, newer.monthly_total),
            oldAnnualProjection=older.annual_projection,
            newAnnualProjection=newer.annual_projection,
            annualProjectionDiff=newer.annual_projection - older.annual_projection,
            newSubscriptions=new_subscriptions,
            removedSubscriptions=removed_subscriptions,
            changedSubscriptions=changed_subscriptions,
        )
        logger.info(
            f"Compared {older.history_id} -> {newer.history_id}: "
            f"{len(new_subscriptions)} new, {len(removed_subscriptions)} removed, "
            f"{len(changed_subscriptions)} changed"
        )
        return result


def _by_service_name(subscriptions: List[Subscription]) -> Dict[str, Subscription]:
    return {sub.service_name: sub for sub in subscriptions}
