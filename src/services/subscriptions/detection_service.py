"""
Subscription Detection Service.

This module orchestrates rule-based subscription detection over parsed
card transactions.

## Detection Pipeline

```mermaid
graph TD
    A[Transactions] --> B[MerchantGrouper]
    B --> C{>= min occurrences?}
    C -->|No| X[Skip group]
    C -->|Yes| D[AmountConsistencyChecker]
    D -->|Fail| X
    D -->|Pass| E[CadenceClassifier]
    E -->|UNKNOWN| X
    E -->|Known cycle| F[SubscriptionBuilder]
    F --> G[Subscriptions]
```

Groups that cannot be inferred are dropped silently; the detector never
raises for data-quality reasons.
"""

import logging
from datetime import date
from typing import List, Optional

from models.subscription import BillingCycle, Subscription
from models.transaction import Transaction
from services.subscriptions.analyzers import (
    AmountConsistencyChecker,
    CadenceClassifier,
    MerchantGrouper,
)
from services.subscriptions.builder import SubscriptionBuilder
from services.subscriptions.config import DetectionConfig, DEFAULT_CONFIG
from utils.detection_performance import DetectionPerformanceTracker

logger = logging.getLogger(__name__)


class SubscriptionDetectionService:
    """
    Orchestrates subscription detection using specialized analyzers.

    Stateless between calls: the same input always yields the same
    subscriptions (for a fixed reference date).
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        grouper: Optional[MerchantGrouper] = None
    ):
        """
        Initialize the detection service.

        Args:
            config: Optional detection configuration. If None, uses DEFAULT_CONFIG.
            grouper: Optional merchant grouper, e.g. with a custom matcher
        """
        self.config = config or DEFAULT_CONFIG

        self.grouper = grouper or MerchantGrouper()
        self.amount_checker = AmountConsistencyChecker(
            tolerance_pct=self.config.amount_tolerance_pct,
            consistency_ratio=self.config.consistency_ratio
        )
        self.cadence_classifier = CadenceClassifier(
            cycle_thresholds=self.config.cadence_thresholds.to_dict()
        )
        self.builder = SubscriptionBuilder(
            active_days=self.config.active_days,
            pending_days=self.config.pending_days
        )

    def detect_subscriptions(
        self,
        transactions: Optional[List[Transaction]],
        today: Optional[date] = None
    ) -> List[Subscription]:
        """
        Detect subscriptions in a list of transactions.

        Args:
            transactions: Parsed transactions; None or empty yields an empty list
            today: Reference date for status derivation (defaults to today)

        Returns:
            Subscriptions in the insertion order of their merchant groups
        """
        if not transactions:
            logger.info("No transactions supplied for subscription detection")
            return []

        with DetectionPerformanceTracker("subscription_detection") as tracker:
            tracker.set_transaction_count(len(transactions))

            with tracker.stage("grouping"):
                groups = self.grouper.group(transactions)
                tracker.set_groups_identified(len(groups))

            with tracker.stage("analysis"):
                subscriptions = []
                for service_name, members in groups.items():
                    subscription = self._analyze_group(service_name, members, today)
                    if subscription is not None:
                        subscriptions.append(subscription)
                tracker.set_subscriptions_detected(len(subscriptions))

        logger.info(
            f"Detection complete: {len(subscriptions)} subscriptions from "
            f"{len(transactions)} transactions"
        )
        return subscriptions

    def _analyze_group(
        self,
        service_name: str,
        members: List[Transaction],
        today: Optional[date]
    ) -> Optional[Subscription]:
        if len(members) < self.config.min_occurrences:
            logger.debug(f"Skipping {service_name}: {len(members)} transactions below minimum")
            return None

        if not self.amount_checker.is_consistent(members):
            logger.debug(f"Skipping {service_name}: inconsistent amounts")
            return None

        cycle = self.cadence_classifier.classify(members)
        if cycle == BillingCycle.UNKNOWN:
            logger.debug(f"Skipping {service_name}: no recognised billing cycle")
            return None

        return self.builder.build(service_name, members, cycle, today=today)
