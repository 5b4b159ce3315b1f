import uuid
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

logger = logging.getLogger(__name__)


class Transaction(BaseModel):
    """
    Represents a single card or bank transaction read from a CSV export.

    Transactions are immutable facts: they are created once by the CSV reader
    and never mutated. A positive amount is a charge, a negative amount is a
    refund or credit.
    """
    transaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="transactionId")
    transaction_date: date = Field(alias="transactionDate")
    merchant: str = Field(max_length=500)
    amount: Decimal
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    card_number: Optional[str] = Field(default=None, alias="cardNumber", max_length=50)

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_encoders={
            Decimal: str,
        },
    )

    @field_validator('amount', mode='before')
    @classmethod
    def ensure_amount_is_decimal(cls, v: Any) -> Decimal:
        if not isinstance(v, Decimal):
            try:
                return Decimal(str(v))
            except Exception as e:
                raise ValueError(f"Invalid amount value: {v}. Could not convert to Decimal.") from e
        return v

    @property
    def is_charge(self) -> bool:
        """Returns True for positive amounts (refunds and credits are negative)."""
        return self.amount > 0

    def is_within_period(self, start_date: date, end_date: date) -> bool:
        """Check whether the transaction falls inside [start_date, end_date]."""
        return start_date <= self.transaction_date <= end_date

    def is_same_merchant(self, other_merchant: Optional[str]) -> bool:
        """Case- and whitespace-insensitive merchant comparison."""
        if other_merchant is None:
            return False
        return "".join(self.merchant.split()).lower() == "".join(other_merchant.split()).lower()

    def is_similar_amount(self, other_amount: Optional[Decimal], tolerance_percent: float) -> bool:
        """Check whether other_amount is within tolerance_percent of this amount."""
        if other_amount is None:
            return False
        tolerance = abs(self.amount) * Decimal(str(tolerance_percent)) / Decimal(100)
        return abs(self.amount - other_amount) <= tolerance

