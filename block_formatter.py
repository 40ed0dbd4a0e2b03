"""
Ingredient block formatting.

Turns a scraped page into the day-labeled text block the aggregator reads:

    【月 曜日: 鶏の照り焼き献立】
    鶏もも肉 1枚
    ...

The bracketed header tells the model which weekday the following lines belong
to; the aggregator fallback drops header lines by their opening bracket.
"""

from datetime import date
from typing import Iterable

from menu_models import ScrapedPage, WEEKDAY_LABELS

BLOCK_HEADER_MARKER = "【"
BLOCK_SEPARATOR = "\n\n"


def weekday_label(date_str: str) -> str:
    """
    Convert an 8-digit YYYYMMDD string to its weekday label.

    Returns an empty string for anything that is not a real 8-digit date.
    """
    if not date_str or len(date_str) != 8 or not date_str.isdigit():
        return ""
    try:
        day = date(int(date_str[:4]), int(date_str[4:6]), int(date_str[6:]))
    except ValueError:
        return ""
    return WEEKDAY_LABELS[day.weekday()]


def format_ingredient_block(page: ScrapedPage, weekday: str) -> str:
    """Header line plus the raw ingredient text, or "" when there is none."""
    if not page.raw_ingredients:
        return ""
    return f"{BLOCK_HEADER_MARKER}{weekday} 曜日: {page.title}】\n{page.raw_ingredients}"


def join_blocks(blocks: Iterable[str]) -> str:
    """Join non-empty blocks with a blank line between them."""
    return BLOCK_SEPARATOR.join(b for b in blocks if b and b.strip())
