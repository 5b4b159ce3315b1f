"""
Test fixtures and factory functions for subscription detection.

Provides factory functions for transactions, charge series, subscriptions
and analysis snapshots.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from models.transaction import Transaction
from models.subscription import (
    BillingCycle,
    Subscription,
    SubscriptionStatus,
    next_charge_date_for,
)
from models.analysis_history import AnalysisHistory

TEST_USER_ID = "test-user-id"
REFERENCE_DATE = date(2024, 6, 1)


def create_transaction(
    merchant: str,
    amount,
    transaction_date: date,
    category: Optional[str] = None
) -> Transaction:
    """Create a single transaction; amount may be a number or string."""
    return Transaction(
        transactionDate=transaction_date,
        merchant=merchant,
        amount=Decimal(str(amount)),
        category=category,
    )


def create_charge_series(
    merchant: str,
    amounts: List,
    interval_days: int,
    last_date: date = REFERENCE_DATE
) -> List[Transaction]:
    """
    Create charges ending on last_date, one every interval_days.

    The amounts are applied oldest first.

    Example:
        create_charge_series("넷플릭스", [17000, 17000, 17000], 30)
        # 2024-04-02, 2024-05-02, 2024-06-01
    """
    count = len(amounts)
    return [
        create_transaction(
            merchant,
            amount,
            last_date - timedelta(days=interval_days * (count - 1 - index))
        )
        for index, amount in enumerate(amounts)
    ]


def create_subscription(
    service_name: str = "NETFLIX",
    monthly_amount="17000",
    billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    last_charge_date: date = REFERENCE_DATE,
    transaction_count: int = 3
) -> Subscription:
    """Create a subscription with derived fields filled in consistently."""
    monthly = Decimal(str(monthly_amount))
    return Subscription(
        serviceName=service_name,
        monthlyAmount=monthly,
        lastAmount=monthly * billing_cycle.months,
        billingCycle=billing_cycle,
        firstDetectedDate=last_charge_date - timedelta(days=billing_cycle.days * (transaction_count - 1)),
        lastChargeDate=last_charge_date,
        nextChargeDate=next_charge_date_for(last_charge_date, billing_cycle),
        status=status,
        transactionCount=transaction_count,
        totalSpent=monthly * billing_cycle.months * transaction_count,
    )


def create_history(
    subscriptions: List[Subscription],
    user_id: str = TEST_USER_ID,
    analysis_date: int = 1717200000000,
    history_id: Optional[str] = None,
    file_name: str = "card.csv"
) -> AnalysisHistory:
    """Create a snapshot whose totals match its ACTIVE subscriptions."""
    active = [sub for sub in subscriptions if sub.is_active]
    monthly_total = sum((sub.monthly_amount for sub in active), Decimal(0))
    kwargs = {}
    if history_id:
        kwargs['historyId'] = history_id
    return AnalysisHistory(
        userId=user_id,
        analysisDate=analysis_date,
        fileName=file_name,
        transactionCount=sum(sub.transaction_count for sub in subscriptions),
        subscriptionCount=len(subscriptions),
        monthlyTotal=monthly_total,
        annualProjection=monthly_total * 12,
        subscriptions=subscriptions,
        createdAt=analysis_date,
        **kwargs
    )
