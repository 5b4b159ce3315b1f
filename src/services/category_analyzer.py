"""
Category analysis for detected subscriptions.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from models.category import CategoryStats, SubscriptionCategory
from models.money import MONEY_QUANTUM, sum_amounts
from models.subscription import Subscription

logger = logging.getLogger(__name__)

# Keys are matched as case-insensitive substrings of the service name
DEFAULT_CATEGORY_MAP: Mapping[str, SubscriptionCategory] = MappingProxyType({
    "넷플릭스": SubscriptionCategory.ENTERTAINMENT,
    "netflix": SubscriptionCategory.ENTERTAINMENT,
    "왓챠": SubscriptionCategory.ENTERTAINMENT,
    "디즈니": SubscriptionCategory.ENTERTAINMENT,
    "disney": SubscriptionCategory.ENTERTAINMENT,
    "웨이브": SubscriptionCategory.ENTERTAINMENT,
    "티빙": SubscriptionCategory.ENTERTAINMENT,
    "스포티파이": SubscriptionCategory.MUSIC,
    "spotify": SubscriptionCategory.MUSIC,
    "멜론": SubscriptionCategory.MUSIC,
    "애플뮤직": SubscriptionCategory.MUSIC,
    "유튜브뮤직": SubscriptionCategory.MUSIC,
    "youtubemusic": SubscriptionCategory.MUSIC,
    "유튜브": SubscriptionCategory.VIDEO,
    "youtube": SubscriptionCategory.VIDEO,
    "쿠팡": SubscriptionCategory.SHOPPING,
    "네이버": SubscriptionCategory.SHOPPING,
    "아마존": SubscriptionCategory.SHOPPING,
    "amazon": SubscriptionCategory.SHOPPING,
    "어도비": SubscriptionCategory.SOFTWARE,
    "adobe": SubscriptionCategory.SOFTWARE,
    "마이크로소프트": SubscriptionCategory.SOFTWARE,
    "microsoft": SubscriptionCategory.SOFTWARE,
    "노션": SubscriptionCategory.SOFTWARE,
    "notion": SubscriptionCategory.SOFTWARE,
    "슬랙": SubscriptionCategory.SOFTWARE,
    "slack": SubscriptionCategory.SOFTWARE,
    "드롭박스": SubscriptionCategory.STORAGE,
    "dropbox": SubscriptionCategory.STORAGE,
    "구글드라이브": SubscriptionCategory.STORAGE,
    "아이클라우드": SubscriptionCategory.STORAGE,
    "icloud": SubscriptionCategory.STORAGE,
    "애플피트니스": SubscriptionCategory.FITNESS,
    "나이키": SubscriptionCategory.FITNESS,
})

KEYWORD_FALLBACKS = (
    (("tv", "영화"), SubscriptionCategory.VIDEO),
    (("music", "음악"), SubscriptionCategory.MUSIC),
    (("cloud", "드라이브"), SubscriptionCategory.STORAGE),
)


class CategoryAnalyzer:
    """Assigns categories to subscriptions and summarizes spending per category."""

    def __init__(self, category_map: Optional[Mapping[str, SubscriptionCategory]] = None):
        mapping = category_map if category_map is not None else DEFAULT_CATEGORY_MAP
        # Longest key first, so "유튜브뮤직" wins over "유튜브"
        self._entries = sorted(
            ((key.lower(), category) for key, category in mapping.items()),
            key=lambda entry: len(entry[0]),
            reverse=True
        )

    def detect_category(self, service_name: Optional[str]) -> SubscriptionCategory:
        if not service_name:
            return SubscriptionCategory.OTHER

        lower_name = service_name.lower()
        for key, category in self._entries:
            if key in lower_name:
                return category

        for keywords, category in KEYWORD_FALLBACKS:
            if any(keyword in lower_name for keyword in keywords):
                return category

        return SubscriptionCategory.OTHER

    def analyze_category_distribution(
        self,
        subscriptions: List[Subscription]
    ) -> Dict[SubscriptionCategory, CategoryStats]:
        """
        Group ACTIVE subscriptions by category.

        Percentages are relative to the total monthly amount of all active
        subscriptions, or 0 when that total is zero.
        """
        active = [sub for sub in subscriptions or [] if sub.is_active]
        if not active:
            return {}

        total_amount = sum_amounts(sub.monthly_amount for sub in active)

        grouped: Dict[SubscriptionCategory, List[Subscription]] = {}
        for sub in active:
            grouped.setdefault(self.detect_category(sub.service_name), []).append(sub)

        stats = {}
        for category, subs in grouped.items():
            category_total = sum_amounts(sub.monthly_amount for sub in subs)
            percentage = 0.0
            if total_amount > 0:
                ratio = (category_total / total_amount).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
                percentage = float(ratio * 100)

            stats[category] = CategoryStats(
                category=category,
                count=len(subs),
                totalAmount=category_total,
                percentage=percentage,
                displayName=f"{category.emoji} {category.label}",
            )

        logger.info(f"Category analysis complete: {len(stats)} categories")
        return stats

    @staticmethod
    def get_top_spending_category(
        stats: Dict[SubscriptionCategory, CategoryStats]
    ) -> Optional[CategoryStats]:
        if not stats:
            return None
        return max(stats.values(), key=lambda stat: stat.total_amount)

    @staticmethod
    def calculate_potential_savings(
        stats: Dict[SubscriptionCategory, CategoryStats],
        category: SubscriptionCategory,
        reduction_percent: int
    ) -> Decimal:
        """Monthly saving from cutting a category's spending by reduction_percent."""
        stat = stats.get(category)
        if stat is None:
            return Decimal(0)
        saving = stat.total_amount * Decimal(reduction_percent) / Decimal(100)
        return saving.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
