"""
Subscription Models.

This module provides the Pydantic model for an inferred subscription together
with the billing cycle and status enums and the derived-metric helpers
(status derivation, next charge projection, annual cost, cancellation
candidacy).
"""

import uuid
import logging
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from models.money import to_decimal
from models.transaction import Transaction

logger = logging.getLogger(__name__)

# Recency thresholds (days since last charge) used for status derivation
ACTIVE_DAYS = 60
PENDING_DAYS = 90

# Namespace for service-name-scoped subscription keys
SUBSCRIPTION_KEY_NAMESPACE = uuid.UUID("6f1c3a52-9b0e-4f7a-8d3c-2a5e4b7c9d10")


class BillingCycle(str, Enum):
    """Billing cadence of a subscription."""
    MONTHLY = "monthly"           # ~30 day intervals
    QUARTERLY = "quarterly"       # ~90 day intervals
    SEMI_ANNUAL = "semi_annual"   # ~180 day intervals
    ANNUAL = "annual"             # ~365 day intervals
    UNKNOWN = "unknown"           # No recognised cadence

    @property
    def days(self) -> int:
        """Canonical period length in days (0 for UNKNOWN)."""
        return _CYCLE_DAYS[self]

    @property
    def months(self) -> int:
        """Number of months one charge covers; used as the monthly divisor."""
        return _CYCLE_MONTHS[self]

    @property
    def label(self) -> str:
        return _CYCLE_LABELS[self]


_CYCLE_DAYS = {
    BillingCycle.MONTHLY: 30,
    BillingCycle.QUARTERLY: 90,
    BillingCycle.SEMI_ANNUAL: 180,
    BillingCycle.ANNUAL: 365,
    BillingCycle.UNKNOWN: 0,
}

_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.SEMI_ANNUAL: 6,
    BillingCycle.ANNUAL: 12,
    BillingCycle.UNKNOWN: 1,
}

_CYCLE_LABELS = {
    BillingCycle.MONTHLY: "월간",
    BillingCycle.QUARTERLY: "분기",
    BillingCycle.SEMI_ANNUAL: "반기",
    BillingCycle.ANNUAL: "연간",
    BillingCycle.UNKNOWN: "미확인",
}


class SubscriptionStatus(str, Enum):
    """Recency-derived status of a subscription."""
    ACTIVE = "active"          # Charged within the last 60 days
    PENDING = "pending"        # Last charge 61-90 days ago
    INACTIVE = "inactive"      # No charge for more than 90 days
    CANCELLED = "cancelled"    # Only ever set by change tracking

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    SubscriptionStatus.ACTIVE: "활성",
    SubscriptionStatus.PENDING: "대기중",
    SubscriptionStatus.INACTIVE: "비활성",
    SubscriptionStatus.CANCELLED: "취소됨",
}


def status_for_last_charge(
    last_charge_date: date,
    today: Optional[date] = None,
    active_days: int = ACTIVE_DAYS,
    pending_days: int = PENDING_DAYS
) -> SubscriptionStatus:
    """
    Derive a subscription status from the days elapsed since its last charge.

    With the default thresholds <= 60 days is ACTIVE, 61-90 is PENDING and
    anything older is INACTIVE.
    """
    today = today or date.today()
    days_since = (today - last_charge_date).days
    if days_since <= active_days:
        return SubscriptionStatus.ACTIVE
    if days_since <= pending_days:
        return SubscriptionStatus.PENDING
    return SubscriptionStatus.INACTIVE


def next_charge_date_for(last_charge_date: Optional[date], cycle: BillingCycle) -> Optional[date]:
    """Project the next charge date, or None when the cycle or last charge is unknown."""
    if last_charge_date is None or cycle == BillingCycle.UNKNOWN:
        return None
    return last_charge_date + timedelta(days=cycle.days)


def subscription_key(service_name: str) -> str:
    """Deterministic identifier shared by every run's subscription for one service."""
    return str(uuid.uuid5(SUBSCRIPTION_KEY_NAMESPACE, service_name))


class Subscription(BaseModel):
    """
    A subscription inferred from a cluster of recurring transactions.

    Subscriptions are created fresh on every detection run. Continuity across
    runs is established by matching on ``service_name`` only.
    """
    subscription_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="subscriptionId")
    service_name: str = Field(alias="serviceName")
    monthly_amount: Decimal = Field(alias="monthlyAmount")
    last_amount: Decimal = Field(alias="lastAmount")
    billing_cycle: BillingCycle = Field(alias="billingCycle")
    first_detected_date: date = Field(alias="firstDetectedDate")
    last_charge_date: Optional[date] = Field(default=None, alias="lastChargeDate")
    next_charge_date: Optional[date] = Field(default=None, alias="nextChargeDate")
    status: SubscriptionStatus
    transaction_count: int = Field(alias="transactionCount", ge=0)
    total_spent: Decimal = Field(alias="totalSpent")

    # Only populated for the originating detection run; never persisted
    transactions: List[Transaction] = Field(default_factory=list, exclude=True, repr=False)

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={
            Decimal: str,
        },
        use_enum_values=False
    )

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def key(self) -> str:
        return subscription_key(self.service_name)

    def calculate_next_charge_date(self) -> None:
        """Set next_charge_date from last_charge_date and the billing cycle."""
        self.next_charge_date = next_charge_date_for(self.last_charge_date, self.billing_cycle)

    def calculate_annual_cost(self) -> Decimal:
        """Annual projection of the monthly-equivalent amount (0 for UNKNOWN cycles)."""
        if self.monthly_amount is None or self.billing_cycle == BillingCycle.UNKNOWN:
            return Decimal(0)
        return self.monthly_amount * 12

    def is_cancellation_candidate(self, days_threshold: int = ACTIVE_DAYS, today: Optional[date] = None) -> bool:
        """True when no charge has been seen for more than days_threshold days."""
        if self.last_charge_date is None:
            return True
        today = today or date.today()
        return today - timedelta(days=days_threshold) > self.last_charge_date

    def days_since_last_charge(self, today: Optional[date] = None) -> Optional[int]:
        if self.last_charge_date is None:
            return None
        return ((today or date.today()) - self.last_charge_date).days

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to a DynamoDB map (dates as ISO strings, enums as values)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data['billingCycle'] = self.billing_cycle.value
        data['status'] = self.status.value
        for field in ('firstDetectedDate', 'lastChargeDate', 'nextChargeDate'):
            if field in data and isinstance(data[field], date):
                data[field] = data[field].isoformat()
        return data

    @classmethod
    def from_dynamodb_item(cls, data: Dict[str, Any]) -> "Subscription":
        """Create from a DynamoDB map."""
        converted_data = data.copy()

        if 'transactionCount' in converted_data and isinstance(converted_data['transactionCount'], Decimal):
            converted_data['transactionCount'] = int(converted_data['transactionCount'])

        for field in ('monthlyAmount', 'lastAmount', 'totalSpent'):
            if field in converted_data and converted_data[field] is not None:
                converted_data[field] = to_decimal(converted_data[field])

        if 'billingCycle' in converted_data and isinstance(converted_data['billingCycle'], str):
            try:
                converted_data['billingCycle'] = BillingCycle(converted_data['billingCycle'])
            except ValueError:
                logger.warning(f"Invalid BillingCycle value: {converted_data['billingCycle']}")
                converted_data['billingCycle'] = BillingCycle.UNKNOWN

        if 'status' in converted_data and isinstance(converted_data['status'], str):
            try:
                converted_data['status'] = SubscriptionStatus(converted_data['status'])
            except ValueError:
                logger.warning(f"Invalid SubscriptionStatus value: {converted_data['status']}")
                converted_data['status'] = SubscriptionStatus.INACTIVE

        return cls.model_validate(converted_data)
