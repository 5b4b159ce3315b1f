"""
Per-user analysis head operations.

The head item records, for one user, the version of their snapshot
sequence and the id of their most recent snapshot. Every write that
changes the sequence (save or delete) bumps the version inside the same
DynamoDB transaction, conditioned on the version read beforehand.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError
from pydantic import BaseModel, Field, ConfigDict

from .base import (
    tables,
    dynamodb_operation,
    retry_on_throttle,
    monitor_performance,
    ConflictError,
)
from .helpers import serialize_item, serialize_values, transaction_cancellation_reasons

logger = logging.getLogger(__name__)

# DynamoDB limit on actions in one TransactWriteItems call
MAX_TRANSACTION_ACTIONS = 100


class AnalysisHead(BaseModel):
    user_id: str = Field(alias="userId")
    version: int = 0
    latest_history_id: Optional[str] = Field(default=None, alias="latestHistoryId")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_dynamodb_item(cls, data: Dict[str, Any]) -> "AnalysisHead":
        converted_data = data.copy()
        if isinstance(converted_data.get('version'), Decimal):
            converted_data['version'] = int(converted_data['version'])
        return cls.model_validate(converted_data)


@monitor_performance(warn_threshold_ms=200)
@retry_on_throttle(max_attempts=3)
@dynamodb_operation("get_analysis_head")
def get_analysis_head(user_id: str) -> AnalysisHead:
    """
    Read a user's head with a strongly consistent read.

    Returns a version-0 head when the user has never saved a snapshot.
    """
    table = tables.analysis_heads
    if not table:
        logger.error("DB: AnalysisHeads table not initialized")
        raise ConnectionError("Database table not initialized")

    response = table.get_item(Key={'userId': user_id}, ConsistentRead=True)
    item = response.get('Item')
    if not item:
        return AnalysisHead(userId=user_id)
    return AnalysisHead.from_dynamodb_item(item)


def head_update_action(
    user_id: str,
    expected_version: int,
    latest_history_id: Optional[str]
) -> Dict[str, Any]:
    """
    Build the TransactWriteItems action that advances a user's head.

    The action fails with ConditionalCheckFailed when another writer has
    advanced the head since ``expected_version`` was read.
    """
    values: Dict[str, Any] = {':next': expected_version + 1}
    if expected_version == 0:
        condition = 'attribute_not_exists(version)'
    else:
        condition = 'version = :expected'
        values[':expected'] = expected_version

    if latest_history_id:
        update = 'SET version = :next, latestHistoryId = :latest'
        values[':latest'] = latest_history_id
    else:
        update = 'SET version = :next REMOVE latestHistoryId'

    return {
        'Update': {
            'TableName': tables.table_name('analysis_heads'),
            'Key': serialize_item({'userId': user_id}),
            'UpdateExpression': update,
            'ConditionExpression': condition,
            'ExpressionAttributeValues': serialize_values(values),
        }
    }


def execute_transaction(actions: List[Dict[str, Any]], description: str) -> None:
    """
    Commit actions in a single TransactWriteItems call.

    Raises:
        ValueError: If there are no actions or more than DynamoDB allows
        ConflictError: If a condition failed (a concurrent writer won)
        ClientError: For any other DynamoDB failure; nothing is written
    """
    if not actions:
        raise ValueError(f"No actions to commit for {description}")
    if len(actions) > MAX_TRANSACTION_ACTIONS:
        raise ValueError(
            f"{description} needs {len(actions)} writes; a transaction allows at most "
            f"{MAX_TRANSACTION_ACTIONS}"
        )

    try:
        tables.client.transact_write_items(TransactItems=actions)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code')
        if error_code == 'TransactionCanceledException':
            reasons = transaction_cancellation_reasons(e)
            if 'ConditionalCheckFailed' in reasons:
                logger.warning(f"Concurrent modification detected during {description}: {reasons}")
                raise ConflictError(
                    f"Concurrent modification detected during {description}; retry the operation"
                ) from e
        raise
    logger.debug(f"Committed {len(actions)} actions for {description}")
