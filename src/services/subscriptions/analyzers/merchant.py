"""
Merchant grouper for subscription detection.

Groups transactions whose normalized merchant names match, so that
"NETFLIX.COM" and "Netflix" land in the same group.
"""

import re
import logging
from typing import Callable, Dict, List

from models.transaction import Transaction

logger = logging.getLogger(__name__)

# Anything that is not an ASCII letter, a digit or a Hangul syllable is dropped
_NON_NAME_CHARS = re.compile(r'[^A-Z0-9가-힣]')

MerchantMatcher = Callable[[str, str], bool]


def normalize_merchant(merchant: str) -> str:
    """
    Normalize a merchant name for grouping.

    Uppercases and keeps only A-Z, 0-9 and Hangul syllables. The result may
    be empty.
    """
    if not merchant:
        return ""
    return _NON_NAME_CHARS.sub('', merchant.upper())


def substring_match(existing_key: str, normalized: str) -> bool:
    """True if either normalized name is equal to or contains the other."""
    return existing_key == normalized or existing_key in normalized or normalized in existing_key


class MerchantGrouper:
    """
    Greedy, order-dependent merchant grouping.

    Each transaction joins the first existing group (in creation order)
    whose key matches its normalized name; otherwise it starts a new group
    keyed by its own normalized name. Group keys never change after
    creation. Swap ``matcher`` to change the similarity rule.
    """

    def __init__(self, matcher: MerchantMatcher = substring_match):
        self.matcher = matcher

    def group(self, transactions: List[Transaction]) -> Dict[str, List[Transaction]]:
        """
        Group transactions by merchant.

        Args:
            transactions: Transactions in input order

        Returns:
            Insertion-ordered mapping of group key to member transactions
        """
        groups: Dict[str, List[Transaction]] = {}
        if not transactions:
            return groups

        for txn in transactions:
            normalized = normalize_merchant(txn.merchant)
            key = self._find_group(groups, normalized)
            if key is None:
                groups[normalized] = [txn]
            else:
                groups[key].append(txn)

        logger.debug(f"Grouped {len(transactions)} transactions into {len(groups)} merchant groups")
        return groups

    def _find_group(self, groups: Dict[str, List[Transaction]], normalized: str):
        for key in groups:
            if self.matcher(key, normalized):
                return key
        return None
