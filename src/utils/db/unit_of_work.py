"""
Transactional save of an analysis run.

AnalysisUnitOfWork collects a new snapshot and the change events derived
from it and commits them, together with the user's head update, in one
TransactWriteItems call. Either everything is written or nothing is.
"""

import logging
from typing import Any, Dict, List, Optional

from models.analysis_history import AnalysisHistory
from models.subscription_change import SubscriptionChange
from .base import tables, dynamodb_operation
from .heads import AnalysisHead, get_analysis_head, head_update_action, execute_transaction
from .helpers import serialize_item
from .analysis_history import _get_analysis_history

logger = logging.getLogger(__name__)


class AnalysisUnitOfWork:
    """
    Context manager scoping one "read previous snapshot, write new snapshot"
    sequence for a user.

    Usage:
        with AnalysisUnitOfWork(user_id) as uow:
            previous = uow.previous_history()
            changes = tracker.track_changes(previous and previous.subscriptions, current)
            uow.register_history(history)
            uow.register_changes(changes)
        # committed on clean exit; discarded if the block raised

    A concurrent save or delete for the same user between entering the block
    and committing makes the commit fail with ConflictError.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.head: Optional[AnalysisHead] = None
        self.history: Optional[AnalysisHistory] = None
        self.changes: List[SubscriptionChange] = []
        self.committed = False

    def __enter__(self) -> "AnalysisUnitOfWork":
        self.head = get_analysis_head(self.user_id)
        logger.debug(f"Unit of work opened for user {self.user_id} at version {self.head.version}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.warning(
                f"Unit of work for user {self.user_id} discarded: {exc_type.__name__}: {exc_val}"
            )
            return False
        if not self.committed:
            self.commit()
        return False

    def previous_history(self) -> Optional[AnalysisHistory]:
        """The user's most recent snapshot as of entering the block."""
        if self.head is None:
            raise RuntimeError("Unit of work is not open")
        if not self.head.latest_history_id:
            return None
        return _get_analysis_history(self.head.latest_history_id)

    def register_history(self, history: AnalysisHistory) -> None:
        if history.user_id != self.user_id:
            raise ValueError("Snapshot belongs to a different user")
        self.history = history

    def register_changes(self, changes: List[SubscriptionChange]) -> None:
        """Changes are bound to this user and the registered snapshot at commit."""
        self.changes.extend(changes)

    @dynamodb_operation("commit_analysis")
    def commit(self) -> None:
        """
        Write the snapshot, its change events and the head update atomically.

        Raises:
            ValueError: If no snapshot was registered or the run has too many changes
            ConflictError: If the head moved since the block was entered
        """
        if self.head is None:
            raise RuntimeError("Unit of work is not open")
        if self.history is None:
            raise ValueError("No analysis history registered")

        actions = [self._put_history_action()]
        actions.extend(self._put_change_action(change) for change in self.changes)
        actions.append(head_update_action(self.user_id, self.head.version, self.history.history_id))

        execute_transaction(actions, f"analysis {self.history.history_id}")
        self.committed = True
        logger.info(
            f"DB: Analysis {self.history.history_id} committed for user {self.user_id} "
            f"with {len(self.changes)} changes"
        )

    def _put_history_action(self) -> Dict[str, Any]:
        return {
            'Put': {
                'TableName': tables.table_name('analysis_history'),
                'Item': serialize_item(self.history.to_dynamodb_item()),
                'ConditionExpression': 'attribute_not_exists(historyId)',
            }
        }

    def _put_change_action(self, change: SubscriptionChange) -> Dict[str, Any]:
        bound = change.bind(self.user_id, self.history.history_id)
        return {
            'Put': {
                'TableName': tables.table_name('subscription_changes'),
                'Item': serialize_item(bound.to_dynamodb_item()),
                'ConditionExpression': 'attribute_not_exists(changeId)',
            }
        }
