"""
Change tracking between consecutive detection runs.

Subscriptions are matched across runs by service name only.
"""

import logging
from typing import Dict, List, Optional

from models.money import format_amount
from models.subscription import Subscription, subscription_key
from models.subscription_change import ChangeType, SubscriptionChange

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Emits change events for the delta between two runs' subscriptions."""

    def track_changes(
        self,
        previous: Optional[List[Subscription]],
        current: List[Subscription]
    ) -> List[SubscriptionChange]:
        """
        Compute change events from the previous run to the current one.

        Args:
            previous: Subscriptions of the immediately preceding snapshot, or
                None when there is no prior snapshot
            current: Subscriptions of the current run

        Returns:
            CREATED/AMOUNT_CHANGED/STATUS_CHANGED/CYCLE_CHANGED events in
            current-run order, followed by CANCELLED events in previous-run order
        """
        current = current or []
        if previous is None:
            changes = [self._created(sub) for sub in current]
            logger.info(f"No previous analysis; recorded {len(changes)} new subscriptions")
            return changes

        previous_by_name = self._by_service_name(previous)
        current_by_name = self._by_service_name(current)
        changes: List[SubscriptionChange] = []

        for name, sub in current_by_name.items():
            old = previous_by_name.get(name)
            if old is None:
                changes.append(self._created(sub))
            else:
                changes.extend(self._compare(old, sub))

        for name, old in previous_by_name.items():
            if name not in current_by_name:
                changes.append(SubscriptionChange(
                    subscriptionId=subscription_key(name),
                    serviceName=name,
                    changeType=ChangeType.CANCELLED,
                    oldValue=name,
                    newValue=None,
                    notes="subscription no longer detected",
                ))

        logger.info(f"Tracked {len(changes)} subscription changes")
        return changes

    @staticmethod
    def _by_service_name(subscriptions: List[Subscription]) -> Dict[str, Subscription]:
        # Last one wins if a run ever holds two subscriptions with one name
        return {sub.service_name: sub for sub in subscriptions}

    @staticmethod
    def _created(sub: Subscription) -> SubscriptionChange:
        return SubscriptionChange(
            subscriptionId=sub.key,
            serviceName=sub.service_name,
            changeType=ChangeType.CREATED,
            oldValue=None,
            newValue=sub.service_name,
            notes="new subscription",
        )

    def _compare(self, old: Subscription, new: Subscription) -> List[SubscriptionChange]:
        changes = []
        key = new.key

        if old.monthly_amount != new.monthly_amount:
            direction = "increase" if new.monthly_amount > old.monthly_amount else "decrease"
            changes.append(SubscriptionChange(
                subscriptionId=key,
                serviceName=new.service_name,
                changeType=ChangeType.AMOUNT_CHANGED,
                oldValue=format_amount(old.monthly_amount),
                newValue=format_amount(new.monthly_amount),
                notes=f"amount {direction}",
            ))

        if old.status != new.status:
            changes.append(SubscriptionChange(
                subscriptionId=key,
                serviceName=new.service_name,
                changeType=ChangeType.STATUS_CHANGED,
                oldValue=old.status.label,
                newValue=new.status.label,
                notes="status changed",
            ))

        if old.billing_cycle != new.billing_cycle:
            changes.append(SubscriptionChange(
                subscriptionId=key,
                serviceName=new.service_name,
                changeType=ChangeType.CYCLE_CHANGED,
                oldValue=old.billing_cycle.label,
                newValue=new.billing_cycle.label,
                notes="billing cycle changed",
            ))

        return changes
