"""
Analysis history (snapshot store) database operations.

Snapshots embed the subscriptions detected in their run, so deleting a
snapshot removes its subscriptions with it.
"""

import logging
from typing import List, Optional

from boto3.dynamodb.conditions import Key

from models.analysis_history import AnalysisHistory
from models.subscription import Subscription
from .base import (
    tables,
    dynamodb_operation,
    retry_on_throttle,
    monitor_performance,
    validate_params,
    is_valid_limit,
    checked_mandatory_resource,
    checked_optional_resource,
)
from .helpers import paginated_query, serialize_item
from .heads import get_analysis_head, head_update_action, execute_transaction

logger = logging.getLogger(__name__)

# Constants
DB_TABLE_NOT_INITIALIZED_ERROR = "Database table not initialized"
USER_ANALYSIS_DATE_INDEX = 'UserIdAnalysisDateIndex'


def _history_table():
    table = tables.analysis_history
    if not table:
        logger.error("DB: AnalysisHistory table not initialized")
        raise ConnectionError(DB_TABLE_NOT_INITIALIZED_ERROR)
    return table


# ============================================================================
# Internal Getter (not exported)
# ============================================================================

@monitor_performance(warn_threshold_ms=200)
@retry_on_throttle(max_attempts=3)
@dynamodb_operation("_get_analysis_history")
def _get_analysis_history(history_id: str) -> Optional[AnalysisHistory]:
    """
    Retrieve a snapshot by ID (no user validation).
    INTERNAL USE ONLY - external code should use checked_mandatory_history.
    """
    response = _history_table().get_item(Key={'historyId': history_id}, ConsistentRead=True)
    item = response.get('Item')
    if item:
        return AnalysisHistory.from_dynamodb_item(item)
    return None


def checked_mandatory_history(history_id: Optional[str], user_id: str) -> AnalysisHistory:
    """
    Check that a snapshot exists and belongs to the user.

    Raises:
        NotFound: If the snapshot doesn't exist
        NotAuthorized: If the user doesn't own the snapshot
    """
    return checked_mandatory_resource(history_id, user_id, _get_analysis_history, "Analysis history")


def get_analysis_history(history_id: Optional[str], user_id: str) -> Optional[AnalysisHistory]:
    """Return the user's snapshot, or None if it doesn't exist."""
    return checked_optional_resource(history_id, user_id, _get_analysis_history, "Analysis history")


# ============================================================================
# Snapshot Operations
# ============================================================================

@dynamodb_operation("save_analysis_history")
def save_analysis_history(history: AnalysisHistory) -> AnalysisHistory:
    """
    Persist a snapshot on its own, outside any unit of work.

    Snapshots are immutable, so an existing history ID is never overwritten.
    """
    _history_table().put_item(
        Item=history.to_dynamodb_item(),
        ConditionExpression='attribute_not_exists(historyId)'
    )
    logger.info(f"DB: Analysis history {history.history_id} saved for user {history.user_id}")
    return history


@monitor_performance(operation_type="query", warn_threshold_ms=500)
@retry_on_throttle(max_attempts=3)
@validate_params(limit=is_valid_limit)
@dynamodb_operation("list_recent_histories")
def list_recent_histories(user_id: str, limit: int = 10) -> List[AnalysisHistory]:
    """
    List the user's most recent snapshots, newest first.

    Raises:
        ValueError: If limit is outside 1..100
    """
    histories, _ = paginated_query(
        table=_history_table(),
        query_params={
            'IndexName': USER_ANALYSIS_DATE_INDEX,
            'KeyConditionExpression': Key('userId').eq(user_id),
            'ScanIndexForward': False,
            'Limit': limit,
        },
        max_items=limit,
        transform=AnalysisHistory.from_dynamodb_item
    )
    logger.info(f"DB: Found {len(histories)} recent histories for user {user_id}")
    return histories


@monitor_performance(operation_type="query", warn_threshold_ms=1000)
@retry_on_throttle(max_attempts=3)
@dynamodb_operation("list_subscription_history")
def list_subscription_history(user_id: str, service_name: str) -> List[Subscription]:
    """
    Subscriptions whose service name contains ``service_name`` across all of
    the user's snapshots, newest snapshot first. Matching is case-insensitive.
    """
    histories, _ = paginated_query(
        table=_history_table(),
        query_params={
            'IndexName': USER_ANALYSIS_DATE_INDEX,
            'KeyConditionExpression': Key('userId').eq(user_id),
            'ScanIndexForward': False,
        },
        transform=AnalysisHistory.from_dynamodb_item
    )
    needle = service_name.upper()
    return [
        sub
        for history in histories
        for sub in history.subscriptions
        if needle in sub.service_name.upper()
    ]


@dynamodb_operation("delete_analysis_history")
def delete_analysis_history(history_id: str, user_id: str) -> bool:
    """
    Delete a snapshot together with its embedded subscriptions.

    The delete advances the user's head in the same transaction; if the
    deleted snapshot was the latest, the head moves to the next most recent.

    Raises:
        NotFound: If the snapshot doesn't exist
        NotAuthorized: If the user doesn't own the snapshot
        ConflictError: If a concurrent analysis or delete won the race
    """
    checked_mandatory_history(history_id, user_id)
    head = get_analysis_head(user_id)

    latest_history_id = head.latest_history_id
    if latest_history_id == history_id:
        remaining = [h for h in list_recent_histories(user_id, 2) if h.history_id != history_id]
        latest_history_id = remaining[0].history_id if remaining else None

    execute_transaction(
        [
            {
                'Delete': {
                    'TableName': tables.table_name('analysis_history'),
                    'Key': serialize_item({'historyId': history_id}),
                    'ConditionExpression': 'attribute_exists(historyId)',
                }
            },
            head_update_action(user_id, head.version, latest_history_id),
        ],
        f"delete of analysis history {history_id}"
    )
    logger.info(f"DB: Analysis history {history_id} deleted for user {user_id}")
    return True
