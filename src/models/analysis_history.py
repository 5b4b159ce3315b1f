"""
Analysis snapshot models.

An AnalysisHistory is the immutable record of one detection run. A
SubscriptionSummary is the in-memory aggregate computed from a run's
subscriptions and used to build the snapshot.
"""

import uuid
import logging
from collections import defaultdict
from datetime import date, datetime, timezone, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

from models.money import sum_amounts, to_decimal
from models.subscription import BillingCycle, Subscription, ACTIVE_DAYS

logger = logging.getLogger(__name__)

UPCOMING_PAYMENT_DAYS = 7


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class SubscriptionSummary(BaseModel):
    """Aggregate view of one run's subscriptions."""
    analysis_date: date = Field(alias="analysisDate")
    total_subscriptions: int = Field(alias="totalSubscriptions", ge=0)
    active_subscriptions: int = Field(alias="activeSubscriptions", ge=0)
    monthly_total: Decimal = Field(alias="monthlyTotal")
    annual_projection: Decimal = Field(alias="annualProjection")
    subscriptions: List[Subscription] = Field(default_factory=list)
    cancellation_candidates: List[Subscription] = Field(default_factory=list, alias="cancellationCandidates")
    upcoming_payments: List[Subscription] = Field(default_factory=list, alias="upcomingPayments")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str}
    )

    @classmethod
    def from_subscriptions(
        cls,
        subscriptions: List[Subscription],
        today: Optional[date] = None,
        cancellation_days: int = ACTIVE_DAYS,
        upcoming_days: int = UPCOMING_PAYMENT_DAYS
    ) -> "SubscriptionSummary":
        """
        Build a summary from detected subscriptions.

        Monthly total and annual projection only count ACTIVE subscriptions;
        the subscription count covers all of them.
        """
        today = today or date.today()
        active = [sub for sub in subscriptions if sub.is_active]
        horizon = today + timedelta(days=upcoming_days)

        return cls(
            analysisDate=today,
            totalSubscriptions=len(subscriptions),
            activeSubscriptions=len(active),
            monthlyTotal=sum_amounts(sub.monthly_amount for sub in active),
            annualProjection=sum_amounts(sub.calculate_annual_cost() for sub in active),
            subscriptions=list(subscriptions),
            cancellationCandidates=[
                sub for sub in subscriptions
                if sub.is_cancellation_candidate(cancellation_days, today=today)
            ],
            upcomingPayments=[
                sub for sub in active
                if sub.next_charge_date is not None and sub.next_charge_date <= horizon
            ],
        )

    def group_by_billing_cycle(self) -> Dict[BillingCycle, List[Subscription]]:
        """Group active subscriptions by billing cycle."""
        groups: Dict[BillingCycle, List[Subscription]] = defaultdict(list)
        for sub in self.subscriptions:
            if sub.is_active:
                groups[sub.billing_cycle].append(sub)
        return dict(groups)

    def top_expensive_subscriptions(self, limit: int = 5) -> List[Subscription]:
        """Active subscriptions ordered by monthly amount, most expensive first."""
        active = [sub for sub in self.subscriptions if sub.is_active]
        return sorted(active, key=lambda s: s.monthly_amount, reverse=True)[:limit]


class AnalysisHistory(BaseModel):
    """
    Immutable snapshot of one detection run.

    Owns the subscriptions detected in that run; deleting the snapshot
    deletes them with it.
    """
    history_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="historyId")
    user_id: str = Field(alias="userId")
    analysis_date: int = Field(default_factory=_now_ms, alias="analysisDate")
    file_name: str = Field(alias="fileName", max_length=500)
    transaction_count: int = Field(alias="transactionCount", ge=0)
    subscription_count: int = Field(alias="subscriptionCount", ge=0)
    monthly_total: Decimal = Field(alias="monthlyTotal")
    annual_projection: Decimal = Field(alias="annualProjection")
    subscriptions: List[Subscription] = Field(default_factory=list)
    created_at: int = Field(default_factory=_now_ms, alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_encoders={Decimal: str},
        use_enum_values=False
    )

    @field_validator('analysis_date', 'created_at')
    @classmethod
    def check_positive_timestamp(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Timestamp must be a positive integer representing milliseconds since epoch")
        return v

    @classmethod
    def from_summary(
        cls,
        summary: SubscriptionSummary,
        file_name: str,
        transaction_count: int,
        user_id: str
    ) -> "AnalysisHistory":
        """Create the snapshot for a run from its summary."""
        now = _now_ms()
        return cls(
            userId=user_id,
            analysisDate=now,
            fileName=file_name,
            transactionCount=transaction_count,
            subscriptionCount=summary.total_subscriptions,
            monthlyTotal=summary.monthly_total,
            annualProjection=summary.annual_projection,
            subscriptions=list(summary.subscriptions),
            createdAt=now,
        )

    def find_subscription(self, service_name: str) -> Optional[Subscription]:
        return next((s for s in self.subscriptions if s.service_name == service_name), None)

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item format with subscriptions embedded."""
        data = self.model_dump(by_alias=True, exclude_none=True, exclude={'subscriptions'})
        data['subscriptions'] = [sub.to_dynamodb_item() for sub in self.subscriptions]
        return data

    @classmethod
    def from_dynamodb_item(cls, data: Dict[str, Any]) -> "AnalysisHistory":
        """Create from DynamoDB item data."""
        converted_data = data.copy()

        int_fields = ['analysisDate', 'createdAt', 'transactionCount', 'subscriptionCount']
        for field in int_fields:
            if field in converted_data and isinstance(converted_data[field], Decimal):
                converted_data[field] = int(converted_data[field])

        for field in ('monthlyTotal', 'annualProjection'):
            if field in converted_data and converted_data[field] is not None:
                converted_data[field] = to_decimal(converted_data[field])

        converted_data['subscriptions'] = [
            Subscription.from_dynamodb_item(item) for item in converted_data.get('subscriptions') or []
        ]
        return cls.model_validate(converted_data)
