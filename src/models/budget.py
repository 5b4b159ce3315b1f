"""
Budget alert models.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

DEFAULT_WARNING_THRESHOLD = Decimal(80)
DEFAULT_CRITICAL_THRESHOLD = Decimal(90)


class AlertType(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"


class RecommendationType(str, Enum):
    REDUCE = "reduce"
    MAINTAIN = "maintain"


class BudgetAlert(BaseModel):
    """Monthly subscription budget and the spending measured against it."""
    alert_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="alertId")
    monthly_budget: Decimal = Field(alias="monthlyBudget")
    current_spending: Decimal = Field(alias="currentSpending")
    warning_threshold: Decimal = Field(default=DEFAULT_WARNING_THRESHOLD, alias="warningThreshold")
    critical_threshold: Decimal = Field(default=DEFAULT_CRITICAL_THRESHOLD, alias="criticalThreshold")
    alert_type: AlertType = Field(default=AlertType.SAFE, alias="alertType")
    active: bool = True
    created_at: int = Field(
        default_factory=lambda: int(datetime.now(timezone.utc).timestamp() * 1000),
        alias="createdAt"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str},
        use_enum_values=False
    )

    def check_budget_status(self, spending: Decimal) -> AlertType:
        """Classify spending as a percentage of the monthly budget."""
        if self.monthly_budget is None or self.monthly_budget <= 0:
            return AlertType.SAFE

        percentage = (spending * 100 / self.monthly_budget).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        if percentage >= 100:
            return AlertType.EXCEEDED
        if percentage >= self.critical_threshold:
            return AlertType.CRITICAL
        if percentage >= self.warning_threshold:
            return AlertType.WARNING
        return AlertType.SAFE

    @property
    def remaining_budget(self) -> Decimal:
        return self.monthly_budget - self.current_spending

    @property
    def usage_percentage(self) -> float:
        if self.monthly_budget <= 0:
            return 0.0
        return float((self.current_spending * 100 / self.monthly_budget).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class BudgetPrediction(BaseModel):
    current_spending: Decimal = Field(alias="currentSpending")
    projected_spending: Decimal = Field(alias="projectedSpending")
    additional_spending: Decimal = Field(alias="additionalSpending")
    current_status: AlertType = Field(alias="currentStatus")
    projected_status: AlertType = Field(alias="projectedStatus")
    will_exceed_budget: bool = Field(alias="willExceedBudget")

    model_config = ConfigDict(populate_by_name=True, json_encoders={Decimal: str})


class BudgetRecommendation(BaseModel):
    recommendation_type: RecommendationType = Field(alias="recommendationType")
    message: str
    target_service: Optional[str] = Field(default=None, alias="targetService")
    potential_saving: Optional[Decimal] = Field(default=None, alias="potentialSaving")

    model_config = ConfigDict(populate_by_name=True, json_encoders={Decimal: str})
