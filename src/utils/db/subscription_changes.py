"""
Subscription change (change store) database operations.

Change events are append-only; they are written in the same transaction
as the snapshot that produced them (see unit_of_work) or one at a time
through save_subscription_change.
"""

import logging
from typing import List

from boto3.dynamodb.conditions import Key, Attr

from models.subscription import subscription_key
from models.subscription_change import SubscriptionChange
from .base import (
    tables,
    dynamodb_operation,
    retry_on_throttle,
    monitor_performance,
    validate_params,
    is_valid_limit,
)
from .helpers import paginated_query

logger = logging.getLogger(__name__)

# Constants
DB_TABLE_NOT_INITIALIZED_ERROR = "Database table not initialized"
USER_CHANGE_DATE_INDEX = 'UserIdChangeDateIndex'


def _changes_table():
    table = tables.subscription_changes
    if not table:
        logger.error("DB: SubscriptionChanges table not initialized")
        raise ConnectionError(DB_TABLE_NOT_INITIALIZED_ERROR)
    return table


@dynamodb_operation("save_subscription_change")
def save_subscription_change(change: SubscriptionChange) -> SubscriptionChange:
    """
    Append a single change event.

    Raises:
        ValueError: If the event is not bound to a user
    """
    if not change.user_id:
        raise ValueError("Subscription change must be bound to a user before saving")

    _changes_table().put_item(
        Item=change.to_dynamodb_item(),
        ConditionExpression='attribute_not_exists(changeId)'
    )
    logger.info(f"DB: Change {change.change_id} ({change.change_type.value}) saved for {change.service_name}")
    return change


@monitor_performance(operation_type="query", warn_threshold_ms=500)
@retry_on_throttle(max_attempts=3)
@dynamodb_operation("list_changes_by_service")
def list_changes_by_service(user_id: str, service_name: str) -> List[SubscriptionChange]:
    """
    All of the user's change events for one service, newest first.

    Events carry the service-name-scoped subscription key, so the full
    trail across runs is returned.
    """
    changes, _ = paginated_query(
        table=_changes_table(),
        query_params={
            'IndexName': USER_CHANGE_DATE_INDEX,
            'KeyConditionExpression': Key('userId').eq(user_id),
            'FilterExpression': Attr('subscriptionId').eq(subscription_key(service_name)),
            'ScanIndexForward': False,
        },
        transform=SubscriptionChange.from_dynamodb_item
    )
    logger.info(f"DB: Found {len(changes)} changes for service {service_name}")
    return changes


@monitor_performance(operation_type="query", warn_threshold_ms=500)
@retry_on_throttle(max_attempts=3)
@validate_params(limit=is_valid_limit)
@dynamodb_operation("list_recent_changes")
def list_recent_changes(user_id: str, limit: int = 20) -> List[SubscriptionChange]:
    """
    The user's most recent change events, newest first.

    Raises:
        ValueError: If limit is outside 1..100
    """
    changes, _ = paginated_query(
        table=_changes_table(),
        query_params={
            'IndexName': USER_CHANGE_DATE_INDEX,
            'KeyConditionExpression': Key('userId').eq(user_id),
            'ScanIndexForward': False,
            'Limit': limit,
        },
        max_items=limit,
        transform=SubscriptionChange.from_dynamodb_item
    )
    logger.info(f"DB: Found {len(changes)} recent changes for user {user_id}")
    return changes
