"""
Subscription change event model.

Change events are append-only records of one detected delta between two
runs' subscriptions for the same service name.
"""

import uuid
import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Kind of delta recorded by a change event."""
    CREATED = "created"
    AMOUNT_CHANGED = "amount_changed"
    STATUS_CHANGED = "status_changed"
    CYCLE_CHANGED = "cycle_changed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _CHANGE_LABELS[self]


_CHANGE_LABELS = {
    ChangeType.CREATED: "신규 구독",
    ChangeType.AMOUNT_CHANGED: "금액 변경",
    ChangeType.STATUS_CHANGED: "상태 변경",
    ChangeType.CYCLE_CHANGED: "주기 변경",
    ChangeType.CANCELLED: "구독 취소",
}


class SubscriptionChange(BaseModel):
    """
    One change event.

    ``subscription_id`` is the service-name-scoped key (see
    ``models.subscription.subscription_key``), stable across runs.
    ``old_value``/``new_value`` are display strings.
    """
    change_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="changeId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    history_id: Optional[str] = Field(default=None, alias="historyId")
    subscription_id: str = Field(alias="subscriptionId")
    service_name: str = Field(alias="serviceName")
    change_type: ChangeType = Field(alias="changeType")
    old_value: Optional[str] = Field(default=None, alias="oldValue")
    new_value: Optional[str] = Field(default=None, alias="newValue")
    change_date: int = Field(
        default_factory=lambda: int(datetime.now(timezone.utc).timestamp() * 1000),
        alias="changeDate"
    )
    notes: Optional[str] = Field(default=None, max_length=1000)

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        use_enum_values=False
    )

    @field_validator('change_date')
    @classmethod
    def check_positive_timestamp(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Timestamp must be a positive integer representing milliseconds since epoch")
        return v

    def bind(self, user_id: str, history_id: str) -> "SubscriptionChange":
        """Return a copy attached to the owning user and the snapshot that produced it."""
        return self.model_copy(update={'user_id': user_id, 'history_id': history_id})

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item format."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data['changeType'] = self.change_type.value
        return data

    @classmethod
    def from_dynamodb_item(cls, data: Dict[str, Any]) -> "SubscriptionChange":
        """Create from DynamoDB item data."""
        converted_data = data.copy()
        if 'changeDate' in converted_data and isinstance(converted_data['changeDate'], Decimal):
            converted_data['changeDate'] = int(converted_data['changeDate'])
        if 'changeType' in converted_data and isinstance(converted_data['changeType'], str):
            converted_data['changeType'] = ChangeType(converted_data['changeType'])
        return cls.model_validate(converted_data)
