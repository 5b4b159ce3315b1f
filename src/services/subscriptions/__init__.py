"""
Subscription Detection and Tracking Services.

This package provides rule-based subscription detection over card
transactions, change tracking between runs and snapshot comparison.

Public API:
    - SubscriptionDetectionService: grouping, consistency and cadence pipeline
    - ChangeTracker: change events between consecutive runs
    - HistoryComparator: deltas between two snapshots
    - DetectionConfig: Configuration for detection parameters
    - DEFAULT_CONFIG: Default configuration instance
"""

from services.subscriptions.detection_service import SubscriptionDetectionService
from services.subscriptions.change_tracker import ChangeTracker
from services.subscriptions.history_comparator import HistoryComparator, percent_change
from services.subscriptions.builder import SubscriptionBuilder
from services.subscriptions.config import (
    DetectionConfig,
    DEFAULT_CONFIG,
    CadenceThresholds,
)
from services.subscriptions.analyzers import (
    MerchantGrouper,
    AmountConsistencyChecker,
    CadenceClassifier,
    normalize_merchant,
)

__all__ = [
    'SubscriptionDetectionService',
    'ChangeTracker',
    'HistoryComparator',
    'percent_change',
    'SubscriptionBuilder',
    'DetectionConfig',
    'DEFAULT_CONFIG',
    'CadenceThresholds',
    'MerchantGrouper',
    'AmountConsistencyChecker',
    'CadenceClassifier',
    'normalize_merchant',
]
