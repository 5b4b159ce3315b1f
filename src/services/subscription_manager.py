"""
Application service for subscription analysis.

Coordinates detection, snapshot persistence, change tracking and history
queries for one user at a time. All persistence goes through utils.db.
"""

import logging
from datetime import date
from typing import List, Optional

from models.analysis_history import AnalysisHistory, SubscriptionSummary
from models.comparison import ComparisonResult
from models.subscription import Subscription
from models.subscription_change import SubscriptionChange
from models.transaction import Transaction
from services.subscriptions import (
    ChangeTracker,
    DetectionConfig,
    HistoryComparator,
    SubscriptionDetectionService,
)
from utils.db import (
    AnalysisUnitOfWork,
    checked_mandatory_history,
    get_analysis_history,
    list_recent_histories,
    delete_analysis_history,
    list_subscription_history,
    list_changes_by_service,
    list_recent_changes,
    validate_params,
    is_valid_limit,
    is_non_empty_string,
)
from utils.transaction_parser import parse_transactions_file

logger = logging.getLogger(__name__)


class InputQualityError(ValueError):
    """Raised when the input holds nothing to analyze (e.g. zero transactions)."""
    pass


class SubscriptionManager:
    """
    Public surface of the subscription tracker.

    Collaborators are injectable for testing; by default the detector uses
    DetectionConfig.from_env().
    """

    def __init__(
        self,
        detector: Optional[SubscriptionDetectionService] = None,
        tracker: Optional[ChangeTracker] = None,
        comparator: Optional[HistoryComparator] = None,
        config: Optional[DetectionConfig] = None
    ):
        self.config = config or (detector.config if detector else DetectionConfig.from_env())
        self.detector = detector or SubscriptionDetectionService(config=self.config)
        self.tracker = tracker or ChangeTracker()
        self.comparator = comparator or HistoryComparator()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def detect_subscriptions(
        self,
        transactions: List[Transaction],
        today: Optional[date] = None
    ) -> List[Subscription]:
        return self.detector.detect_subscriptions(transactions, today=today)

    def track_changes(
        self,
        previous: Optional[List[Subscription]],
        current: List[Subscription]
    ) -> List[SubscriptionChange]:
        return self.tracker.track_changes(previous, current)

    def analyze_and_persist(
        self,
        user_id: str,
        transactions: List[Transaction],
        source_name: str,
        today: Optional[date] = None
    ) -> AnalysisHistory:
        """
        Detect subscriptions, save the snapshot and record its change events
        atomically.

        Raises:
            InputQualityError: If transactions is empty
            ValueError: If source_name is empty
            ConflictError: If another analysis or delete for the user committed first
        """
        if not transactions:
            raise InputQualityError("No transactions to analyze")
        if not is_non_empty_string(source_name):
            raise ValueError("Source name is required")

        logger.info(f"Starting analysis of {source_name} for user {user_id}")
        subscriptions = self.detect_subscriptions(transactions, today=today)

        summary = SubscriptionSummary.from_subscriptions(
            subscriptions,
            today=today,
            cancellation_days=self.config.cancellation_days,
            upcoming_days=self.config.upcoming_days
        )
        history = AnalysisHistory.from_summary(summary, source_name, len(transactions), user_id)

        with AnalysisUnitOfWork(user_id) as uow:
            previous = uow.previous_history()
            changes = self.track_changes(
                previous.subscriptions if previous is not None else None,
                subscriptions
            )
            uow.register_history(history)
            uow.register_changes(changes)

        logger.info(
            f"Analysis {history.history_id} saved: {history.subscription_count} subscriptions, "
            f"{len(changes)} changes"
        )
        return history

    def analyze_file(
        self,
        user_id: str,
        file_path: str,
        file_name: str,
        has_header: bool = True,
        today: Optional[date] = None
    ) -> AnalysisHistory:
        """
        Parse a CSV file and analyze it.

        Raises:
            ValueError: If file_path or file_name is empty
            InputQualityError: If the file yields no transactions
        """
        if not is_non_empty_string(file_path):
            raise ValueError("File path is required")
        if not is_non_empty_string(file_name):
            raise ValueError("File name is required")

        transactions = parse_transactions_file(file_path, has_header=has_header)
        if not transactions:
            raise InputQualityError(f"No transactions could be parsed from {file_name}")
        return self.analyze_and_persist(user_id, transactions, file_name, today=today)

    # ------------------------------------------------------------------
    # History queries
    # ------------------------------------------------------------------

    @validate_params(limit=is_valid_limit)
    def get_recent_history(self, user_id: str, limit: int = 10) -> List[AnalysisHistory]:
        return list_recent_histories(user_id, limit)

    def get_history(self, user_id: str, history_id: str) -> AnalysisHistory:
        """
        Raises:
            NotFound: If the snapshot doesn't exist
            NotAuthorized: If it belongs to another user
        """
        return checked_mandatory_history(history_id, user_id)

    def delete_history(self, user_id: str, history_id: str) -> bool:
        if not is_non_empty_string(history_id):
            raise ValueError("History ID is required")
        return delete_analysis_history(history_id, user_id)

    def get_subscription_history(self, user_id: str, service_name: str) -> List[Subscription]:
        if not is_non_empty_string(service_name):
            raise ValueError("Service name is required")
        return list_subscription_history(user_id, service_name)

    def get_subscription_changes(self, user_id: str, service_name: str) -> List[SubscriptionChange]:
        if not is_non_empty_string(service_name):
            raise ValueError("Service name is required")
        return list_changes_by_service(user_id, service_name)

    @validate_params(limit=is_valid_limit)
    def get_recent_changes(self, user_id: str, limit: int = 20) -> List[SubscriptionChange]:
        return list_recent_changes(user_id, limit)

    def compare_history(
        self,
        user_id: str,
        older_id: str,
        newer_id: str
    ) -> Optional[ComparisonResult]:
        """
        Compare two of the user's snapshots; argument order does not matter.

        Returns None when either snapshot doesn't exist.
        """
        if not is_non_empty_string(older_id) or not is_non_empty_string(newer_id):
            raise ValueError("Both history IDs are required")

        older = get_analysis_history(older_id, user_id)
        newer = get_analysis_history(newer_id, user_id)
        if older is None or newer is None:
            logger.warning(f"Cannot compare {older_id} and {newer_id}: snapshot not found")
            return None
        if older.analysis_date > newer.analysis_date:
            logger.debug(f"Reordering snapshots {older_id} and {newer_id} by analysis date")
            older, newer = newer, older
        return self.comparator.compare(older, newer)

    def get_summary(
        self,
        user_id: str,
        history_id: str,
        today: Optional[date] = None
    ) -> SubscriptionSummary:
        history = self.get_history(user_id, history_id)
        return SubscriptionSummary.from_subscriptions(
            history.subscriptions,
            today=today,
            cancellation_days=self.config.cancellation_days,
            upcoming_days=self.config.upcoming_days
        )
