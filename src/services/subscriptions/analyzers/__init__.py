"""
Pattern analyzers for subscription detection.

Each analyzer covers one stage of the pipeline: merchant grouping, amount
consistency and cadence classification.
"""

from services.subscriptions.analyzers.merchant import (
    MerchantGrouper,
    normalize_merchant,
    substring_match,
)
from services.subscriptions.analyzers.amount import AmountConsistencyChecker
from services.subscriptions.analyzers.cadence import CadenceClassifier

__all__ = [
    'MerchantGrouper',
    'normalize_merchant',
    'substring_match',
    'AmountConsistencyChecker',
    'CadenceClassifier',
]
