"""
Comparison result models.

A ComparisonResult is computed on demand from two analysis snapshots and is
never persisted.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


class DiffType(str, Enum):
    NEW = "new"
    REMOVED = "removed"
    CHANGED = "changed"


class SubscriptionDiff(BaseModel):
    """Per-service difference between two snapshots."""
    service_name: str = Field(alias="serviceName")
    change_type: DiffType = Field(alias="changeType")
    old_amount: Optional[Decimal] = Field(default=None, alias="oldAmount")
    new_amount: Optional[Decimal] = Field(default=None, alias="newAmount")
    old_status: Optional[str] = Field(default=None, alias="oldStatus")
    new_status: Optional[str] = Field(default=None, alias="newStatus")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str}
    )


class ComparisonResult(BaseModel):
    """Scalar deltas and per-service diffs between an older and a newer snapshot."""
    old_history_id: str = Field(alias="oldHistoryId")
    new_history_id: str = Field(alias="newHistoryId")
    old_analysis_date: int = Field(alias="oldAnalysisDate")
    new_analysis_date: int = Field(alias="newAnalysisDate")

    old_subscription_count: int = Field(alias="oldSubscriptionCount")
    new_subscription_count: int = Field(alias="newSubscriptionCount")
    subscription_count_diff: int = Field(alias="subscriptionCountDiff")

    old_monthly_total: Decimal = Field(alias="oldMonthlyTotal")
    new_monthly_total: Decimal = Field(alias="newMonthlyTotal")
    monthly_total_diff: Decimal = Field(alias="monthlyTotalDiff")
    monthly_total_change_percent: float = Field(default=0.0, alias="monthlyTotalChangePercent")

    old_annual_projection: Decimal = Field(alias="oldAnnualProjection")
    new_annual_projection: Decimal = Field(alias="newAnnualProjection")
    annual_projection_diff: Decimal = Field(alias="annualProjectionDiff")

    new_subscriptions: List[SubscriptionDiff] = Field(default_factory=list, alias="newSubscriptions")
    removed_subscriptions: List[SubscriptionDiff] = Field(default_factory=list, alias="removedSubscriptions")
    changed_subscriptions: List[SubscriptionDiff] = Field(default_factory=list, alias="changedSubscriptions")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str}
    )

    @property
    def has_changes(self) -> bool:
        return bool(self.new_subscriptions or self.removed_subscriptions or self.changed_subscriptions)

    @property
    def period(self) -> tuple:
        """(older, newer) analysis datetimes in UTC."""
        return (
            datetime.fromtimestamp(self.old_analysis_date / 1000, tz=timezone.utc),
            datetime.fromtimestamp(self.new_analysis_date / 1000, tz=timezone.utc),
        )
