"""
Models package for the subscription tracker.
"""

from .transaction import Transaction

from .subscription import (
    BillingCycle,
    Subscription,
    SubscriptionStatus,
    status_for_last_charge,
    next_charge_date_for,
    subscription_key,
)

from .analysis_history import (
    AnalysisHistory,
    SubscriptionSummary,
)

from .subscription_change import (
    ChangeType,
    SubscriptionChange,
)

from .comparison import (
    ComparisonResult,
    DiffType,
    SubscriptionDiff,
)

from .category import (
    CategoryStats,
    SubscriptionCategory,
)

from .budget import (
    AlertType,
    BudgetAlert,
    BudgetPrediction,
    BudgetRecommendation,
    RecommendationType,
)

__all__ = [
    'Transaction',
    'BillingCycle',
    'Subscription',
    'SubscriptionStatus',
    'status_for_last_charge',
    'next_charge_date_for',
    'subscription_key',
    'AnalysisHistory',
    'SubscriptionSummary',
    'ChangeType',
    'SubscriptionChange',
    'ComparisonResult',
    'DiffType',
    'SubscriptionDiff',
    'CategoryStats',
    'SubscriptionCategory',
    'AlertType',
    'BudgetAlert',
    'BudgetPrediction',
    'BudgetRecommendation',
    'RecommendationType',
]
