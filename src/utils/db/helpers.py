"""
Helper functions for database operations.

This module provides:
- Pagination helpers
- Low-level attribute serialization for transactional writes
- Timestamp helpers
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple, Callable, TypeVar

from boto3.dynamodb.types import TypeSerializer

logger = logging.getLogger(__name__)

# Type variable for generic functions
T = TypeVar('T')

_serializer = TypeSerializer()


# ============================================================================
# Pagination Helper
# ============================================================================

def paginated_query(
    table: Any,
    query_params: Dict[str, Any],
    max_items: Optional[int] = None,
    transform: Optional[Callable[[Dict], T]] = None
) -> Tuple[List[T], Optional[Dict[str, Any]]]:
    """
    Run a query page by page until it is exhausted or max_items are collected.

    Returns the (optionally transformed) items and the LastEvaluatedKey of
    the last page read, which is None once the query is exhausted.
    query_params is left untouched.

    Example:
        histories, _ = paginated_query(
            tables.analysis_history,
            {
                'IndexName': 'UserIdAnalysisDateIndex',
                'KeyConditionExpression': Key('userId').eq(user_id),
                'ScanIndexForward': False,
            },
            max_items=10,
            transform=AnalysisHistory.from_dynamodb_item
        )
    """
    params = dict(query_params)
    convert = transform or (lambda item: item)
    items: List[T] = []
    pages = 0

    while True:
        page = table.query(**params)
        pages += 1
        items.extend(convert(item) for item in page.get('Items', []))
        last_key = page.get('LastEvaluatedKey')

        if max_items and len(items) >= max_items:
            del items[max_items:]
            break
        if last_key is None:
            break
        params['ExclusiveStartKey'] = last_key

    logger.debug(f"Query collected {len(items)} items from {pages} page(s)")
    return items, last_key


# ============================================================================
# Transactional Write Helpers
# ============================================================================

def serialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a resource-style item into low-level attribute values.

    Example:
        serialize_item({'historyId': 'abc', 'subscriptionCount': 2})
        -> {'historyId': {'S': 'abc'}, 'subscriptionCount': {'N': '2'}}
    """
    return {key: _serializer.serialize(value) for key, value in item.items()}


def serialize_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize ExpressionAttributeValues for the low-level client."""
    return {key: _serializer.serialize(value) for key, value in values.items()}


def transaction_cancellation_reasons(error: Any) -> List[str]:
    """Cancellation reason codes of a TransactionCanceledException, in action order."""
    reasons = error.response.get('CancellationReasons') or []
    return [reason.get('Code', 'None') for reason in reasons]


# ============================================================================
# Timestamp Helpers
# ============================================================================

def current_timestamp() -> int:
    """Milliseconds since epoch, UTC; the format of analysisDate and changeDate."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def datetime_from_timestamp(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
