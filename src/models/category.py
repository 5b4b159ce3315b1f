from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, ConfigDict


class SubscriptionCategory(str, Enum):
    """Service category used for spending distribution."""
    ENTERTAINMENT = "entertainment"
    MUSIC = "music"
    VIDEO = "video"
    SHOPPING = "shopping"
    SOFTWARE = "software"
    EDUCATION = "education"
    FITNESS = "fitness"
    STORAGE = "storage"
    NEWS = "news"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _CATEGORY_DISPLAY[self][0]

    @property
    def emoji(self) -> str:
        return _CATEGORY_DISPLAY[self][1]


_CATEGORY_DISPLAY = {
    SubscriptionCategory.ENTERTAINMENT: ("엔터테인먼트", "🎬"),
    SubscriptionCategory.MUSIC: ("음악", "🎵"),
    SubscriptionCategory.VIDEO: ("동영상", "📺"),
    SubscriptionCategory.SHOPPING: ("쇼핑", "🛒"),
    SubscriptionCategory.SOFTWARE: ("소프트웨어", "💻"),
    SubscriptionCategory.EDUCATION: ("교육", "📚"),
    SubscriptionCategory.FITNESS: ("운동/건강", "💪"),
    SubscriptionCategory.STORAGE: ("클라우드", "☁️"),
    SubscriptionCategory.NEWS: ("뉴스/잡지", "📰"),
    SubscriptionCategory.OTHER: ("기타", "📦"),
}


class CategoryStats(BaseModel):
    """Spending statistics for one category of active subscriptions."""
    category: SubscriptionCategory
    count: int = Field(ge=0)
    total_amount: Decimal = Field(alias="totalAmount")
    percentage: float = Field(ge=0.0, le=100.0)
    display_name: str = Field(alias="displayName")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str},
        use_enum_values=False
    )
