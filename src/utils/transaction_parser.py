import csv
import io
import re
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from models.transaction import Transaction

logger = logging.getLogger(__name__)

__all__ = [
    'TransactionParseError',
    'parse_csv_transactions',
    'parse_transactions_file',
    'parse_date',
    'parse_amount',
    'clean_merchant_name',
    'mask_card_number',
]

# Tried in order; the first format that parses wins
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y.%m.%d",
    "%Y%m%d",
]

REFUND_MARKERS = ("환불", "취소")
MIN_FIELDS = 3


class TransactionParseError(ValueError):
    """Raised when a single CSV record cannot be turned into a Transaction."""
    pass


def parse_date(date_str: str) -> date:
    """Try to parse a date string in the supported formats."""
    value = date_str.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise TransactionParseError(f"Invalid date format: {date_str}")


def parse_amount(amount_str: str) -> Decimal:
    """
    Parse an amount, dropping currency symbols and thousands separators.

    Amounts with a minus sign or a refund/cancel marker are negative.
    """
    clean_amount = re.sub(r'[^0-9.\-]', '', amount_str)
    if clean_amount.startswith('-') or any(marker in amount_str for marker in REFUND_MARKERS):
        clean_amount = '-' + clean_amount.replace('-', '')
    try:
        return Decimal(clean_amount)
    except InvalidOperation:
        raise TransactionParseError(f"Invalid amount: {amount_str}")


def clean_merchant_name(merchant: str) -> str:
    """Strip asterisks and collapse runs of whitespace."""
    return re.sub(r'\s+', ' ', merchant.replace('*', '')).strip()


def mask_card_number(card_number: str) -> str:
    """Mask a card number to 1234-****-****-5678; short values are returned unchanged."""
    digits = re.sub(r'[^0-9]', '', card_number)
    if len(digits) < 8:
        return card_number
    return f"{digits[:4]}-****-****-{digits[-4:]}"


def _optional(record: List[str], index: int) -> Optional[str]:
    if len(record) > index and record[index].strip():
        return record[index].strip()
    return None


def parse_record(record: List[str], line_number: int) -> Optional[Transaction]:
    """
    Convert one CSV record to a Transaction.

    Column order: date, merchant, amount[, category[, description[, card]]].
    Returns None (with a warning) for records with fewer than three fields.
    """
    if len(record) < MIN_FIELDS:
        logger.warning(f"Skipping line {line_number}: at least {MIN_FIELDS} fields required")
        return None

    card_number = _optional(record, 5)
    return Transaction(
        transactionDate=parse_date(record[0]),
        merchant=clean_merchant_name(record[1]),
        amount=parse_amount(record[2].strip()),
        category=_optional(record, 3),
        description=_optional(record, 4),
        cardNumber=mask_card_number(card_number) if card_number else None,
    )


def parse_csv_transactions(content: str, has_header: bool = True) -> List[Transaction]:
    """
    Parse transactions from CSV text.

    Malformed rows are skipped with a warning; the caller decides whether
    an empty result is an error.

    Args:
        content: CSV text (a leading UTF-8 BOM is tolerated)
        has_header: Whether the first row is a header

    Returns:
        List of Transaction objects in file order
    """
    if content.startswith('\ufeff'):
        content = content[1:]

    reader = csv.reader(io.StringIO(content), skipinitialspace=True)
    transactions: List[Transaction] = []
    skipped = 0

    for index, record in enumerate(reader):
        line_number = index + 1
        if has_header and index == 0:
            continue
        if not record or not any(field.strip() for field in record):
            continue
        try:
            transaction = parse_record(record, line_number)
        except ValueError as e:
            # pydantic ValidationError is a ValueError too
            logger.warning(f"Skipping line {line_number}: {e}")
            transaction = None
        if transaction is None:
            skipped += 1
            continue
        transactions.append(transaction)

    logger.info(f"Parsed {len(transactions)} transactions ({skipped} rows skipped)")
    return transactions


def parse_transactions_file(file_path: str, has_header: bool = True) -> List[Transaction]:
    """
    Read a UTF-8 CSV file and parse its transactions.

    Raises:
        ValueError: If file_path is empty
        OSError: If the file cannot be read
    """
    if not file_path or not file_path.strip():
        raise ValueError("File path is required")

    with open(file_path, encoding='utf-8-sig', newline='') as f:
        content = f.read()
    logger.info(f"Reading transactions from {file_path}")
    return parse_csv_transactions(content, has_header=has_header)
