"""
Menu and Shopping List Records
==============================

Plain dataclasses shared by the scraper, the aggregator, the orchestrator and
the store. Each record serializes to the camelCase JSON shape used on the wire
(``dayOfWeek``, ``imageUrl``, ``usedDays``, ``rawIngredients``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any


# Fixed shopping categories. The aggregator prompt embeds this list verbatim
# and every AI-assigned category is expected to match one entry exactly.
SHOPPING_CATEGORIES = (
    '野菜・きのこ',
    '肉・ハム・ベーコン',
    '魚・海鮮',
    '卵・豆腐・納豆',
    '乳製品（牛乳・ヨーグルト・チーズ）',
    '調味料・油',
    '米・パン・麺類・シリアル',
    '冷凍食品',
    '缶詰・瓶詰め・乾物',
    '飲料・お菓子',
)

# Category assigned by the line-based fallback when every model failed
FALLBACK_CATEGORY = 'その他（AI生成失敗）'

# Monday first, matching date.weekday()
WEEKDAY_LABELS = ('月', '火', '水', '木', '金', '土', '日')


class DishType(str, Enum):
    MAIN = "main"
    SIDE = "side"
    SOUP = "soup"
    OTHER = "other"


class MenuStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class Dish:
    """One dish of a day's menu."""
    type: DishType
    title: str
    url: str = ""
    image_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "url": self.url,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dish":
        try:
            dish_type = DishType(data.get("type", "other"))
        except ValueError:
            dish_type = DishType.OTHER
        return cls(
            type=dish_type,
            title=data.get("title", ""),
            url=data.get("url") or "",
            image_url=data.get("imageUrl") or "",
        )


@dataclass(frozen=True)
class ScrapedPage:
    """Everything extracted from one menu page. Immutable once built."""
    url: str
    date_str: str
    title: str
    raw_ingredients: str
    dishes: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "dateStr": self.date_str,
            "title": self.title,
            "rawIngredients": self.raw_ingredients,
            "dishes": [d.to_dict() for d in self.dishes],
        }


@dataclass
class DayMenu:
    """
    Per-day result of a batch run.

    ``raw_ingredients`` holds the formatted block that was fed to the
    aggregator, so a later recompute can reuse it without re-scraping.
    """
    date: str
    day_of_week: str
    url: str
    status: MenuStatus
    dishes: List[Dish] = field(default_factory=list)
    raw_ingredients: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == MenuStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "date": self.date,
            "dayOfWeek": self.day_of_week,
            "url": self.url,
            "status": self.status.value,
            "dishes": [d.to_dict() for d in self.dishes],
        }
        if self.raw_ingredients:
            data["rawIngredients"] = self.raw_ingredients
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayMenu":
        try:
            status = MenuStatus(data.get("status", "failed"))
        except ValueError:
            status = MenuStatus.FAILED
        return cls(
            date=data.get("date", ""),
            day_of_week=data.get("dayOfWeek", ""),
            url=data.get("url", ""),
            status=status,
            dishes=[Dish.from_dict(d) for d in data.get("dishes") or []],
            raw_ingredients=data.get("rawIngredients") or "",
        )


@dataclass
class Ingredient:
    """One consolidated shopping list entry."""
    name: str
    amount: str = ""
    category: str = FALLBACK_CATEGORY
    used_days: List[str] = field(default_factory=list)

    @property
    def is_known_category(self) -> bool:
        """False for anything outside SHOPPING_CATEGORIES (fallback included)."""
        return self.category in SHOPPING_CATEGORIES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "category": self.category,
            "usedDays": list(self.used_days),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        return cls(
            name=str(data.get("name", "")),
            amount=str(data.get("amount") or ""),
            category=str(data.get("category") or FALLBACK_CATEGORY),
            used_days=list(data.get("usedDays") or []),
        )


@dataclass
class ShoppingList:
    """A week's menus and the ingredient list built from them."""
    week_key: str
    menus: List[DayMenu] = field(default_factory=list)
    ingredients: List[Ingredient] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekKey": self.week_key,
            "menus": [m.to_dict() for m in self.menus],
            "ingredients": [i.to_dict() for i in self.ingredients],
        }
