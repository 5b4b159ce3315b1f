"""
Subscription builder.

Materializes a Subscription from a merchant group that passed the amount
consistency and cadence checks.
"""

import logging
from datetime import date
from typing import List, Optional

from models.money import divide_amount, sum_amounts
from models.subscription import (
    BillingCycle,
    Subscription,
    status_for_last_charge,
    ACTIVE_DAYS,
    PENDING_DAYS,
)
from models.transaction import Transaction

logger = logging.getLogger(__name__)


class SubscriptionBuilder:
    """Builds Subscription records from qualifying transaction groups."""

    def __init__(self, active_days: int = ACTIVE_DAYS, pending_days: int = PENDING_DAYS):
        self.active_days = active_days
        self.pending_days = pending_days

    def build(
        self,
        service_name: str,
        transactions: List[Transaction],
        cycle: BillingCycle,
        today: Optional[date] = None
    ) -> Subscription:
        """
        Build a subscription for one group.

        Args:
            service_name: Group key, used as the service name
            transactions: Group members; at least one must be a charge
            cycle: Billing cycle from the cadence classifier
            today: Reference date for status derivation (defaults to today)

        Returns:
            Subscription with status and next charge date derived
        """
        ordered = sorted(transactions, key=lambda t: t.transaction_date)
        charges = [txn for txn in ordered if txn.is_charge]
        if not charges:
            raise ValueError(f"Cannot build subscription for {service_name}: no charges in group")

        total_spent = sum_amounts(txn.amount for txn in charges)
        raw_average = divide_amount(total_spent, len(charges))
        monthly_amount = divide_amount(raw_average, cycle.months)

        last_charge_date = ordered[-1].transaction_date
        subscription = Subscription(
            serviceName=service_name,
            monthlyAmount=monthly_amount,
            lastAmount=charges[-1].amount,
            billingCycle=cycle,
            firstDetectedDate=ordered[0].transaction_date,
            lastChargeDate=last_charge_date,
            status=status_for_last_charge(
                last_charge_date, today, self.active_days, self.pending_days
            ),
            transactionCount=len(transactions),
            totalSpent=total_spent,
            transactions=ordered,
        )
        subscription.calculate_next_charge_date()

        logger.debug(
            f"Built subscription {service_name}: {cycle.value}, monthly {monthly_amount}, "
            f"status {subscription.status.value}"
        )
        return subscription
