"""
Budget alerts for subscription spending.
"""

import logging
from decimal import Decimal
from typing import List

from models.budget import (
    AlertType,
    BudgetAlert,
    BudgetPrediction,
    BudgetRecommendation,
    RecommendationType,
)
from models.money import format_amount, sum_amounts
from models.subscription import Subscription

logger = logging.getLogger(__name__)


class BudgetService:
    """Measures subscription spending against a monthly budget."""

    def create_budget_alert(
        self,
        monthly_budget: Decimal,
        subscriptions: List[Subscription]
    ) -> BudgetAlert:
        """Build an alert from the monthly amounts of the ACTIVE subscriptions."""
        current_spending = self.calculate_monthly_spending(subscriptions)
        alert = BudgetAlert(monthlyBudget=monthly_budget, currentSpending=current_spending)
        alert = alert.model_copy(update={'alert_type': alert.check_budget_status(current_spending)})

        logger.info(
            f"Budget alert created: budget {monthly_budget}, spending {current_spending}, "
            f"status {alert.alert_type.value}"
        )
        return alert

    @staticmethod
    def calculate_monthly_spending(subscriptions: List[Subscription]) -> Decimal:
        return sum_amounts(sub.monthly_amount for sub in subscriptions or [] if sub.is_active)

    def predict_budget_status(
        self,
        alert: BudgetAlert,
        upcoming_payments: List[Subscription]
    ) -> BudgetPrediction:
        """Re-evaluate the alert with the upcoming payments added to current spending."""
        additional = sum_amounts(sub.monthly_amount for sub in upcoming_payments or [])
        projected = alert.current_spending + additional
        projected_status = alert.check_budget_status(projected)

        return BudgetPrediction(
            currentSpending=alert.current_spending,
            projectedSpending=projected,
            additionalSpending=additional,
            currentStatus=alert.alert_type,
            projectedStatus=projected_status,
            willExceedBudget=projected_status == AlertType.EXCEEDED,
        )

    def generate_recommendation(
        self,
        alert: BudgetAlert,
        subscriptions: List[Subscription]
    ) -> BudgetRecommendation:
        """
        REDUCE, targeting the most expensive active subscription, when over
        budget; otherwise MAINTAIN with the remaining budget.
        """
        deficit = alert.current_spending - alert.monthly_budget
        if deficit > 0:
            active = [sub for sub in subscriptions or [] if sub.is_active]
            target = max(active, key=lambda sub: sub.monthly_amount) if active else None
            return BudgetRecommendation(
                recommendationType=RecommendationType.REDUCE,
                message=f"Over budget by {format_amount(deficit)}; consider cancelling a subscription.",
                targetService=target.service_name if target else None,
                potentialSaving=target.monthly_amount if target else None,
            )

        return BudgetRecommendation(
            recommendationType=RecommendationType.MAINTAIN,
            message=f"Within budget with {format_amount(alert.remaining_budget)} remaining.",
        )
