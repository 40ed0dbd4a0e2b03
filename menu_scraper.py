"""
Menu Page Scraper
=================

Extracts one day's menu (title, dishes, ingredient block) from a published
daily-menu page.

Two selector strategies are applied in order:
1. Current markup: every <h2> ending in "の作り方" names a dish. The nearest
   enclosing tab/section container supplies the dish image and detail link.
2. Older markup: elements with class "item_main" / "item_sub".

Dish type is positional in the current markup: the first distinct dish on the
page is treated as the main dish and every later one as a side. This is an
approximation; the page does not label dishes semantically.

The ingredient block sits in the element that follows the parent of the
"献立の材料" heading. Any structural miss yields empty fields, never an error.

Usage:
    from menu_scraper import scrape_menu_page

    page = scrape_menu_page("https://www.lettuceclub.net/recipe/kondate/detail/k20260216/")
    if page is None:
        ...  # fetch or parse failed; record the day as failed
"""

from typing import List, Optional

import requests
from requests.exceptions import RequestException
from bs4 import BeautifulSoup

from config import SCRAPER_CONFIG, USER_AGENT
from menu_models import Dish, DishType, ScrapedPage
from tools.logging_utils import get_logger
from utils.url_utils import extract_date_str, to_absolute_url

logger = get_logger(__name__)

DISH_HEADING_SUFFIX = "の作り方"
INGREDIENTS_HEADING_TEXT = "献立の材料"
DISH_CONTAINER_CLASSES = ("js-tab-content", "section-content")
DISH_LINK_MARKER = "/recipe/dish/"
EXCLUDED_IMAGE_MARKERS = ("icon", "logo")
LEGACY_MAIN_CLASS = "item_main"
LEGACY_SUB_CLASS = "item_sub"


class PageFetchError(Exception):
    """Raised when the page could not be fetched."""


class MenuPageScraper:
    """Fetches one menu page and extracts its structured data."""

    def __init__(self, url: str, html: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url

        if html is None:
            try:
                response = requests.get(
                    url=self.url,
                    headers={"User-Agent": USER_AGENT},
                    timeout=timeout or SCRAPER_CONFIG["timeout"],
                )
            except RequestException as e:
                raise PageFetchError(f"Request failed: {e}") from e

            if not response.ok:
                raise PageFetchError(f"HTTP {response.status_code} {response.reason} for {url}")
            html = response.text

        self.soup = BeautifulSoup(html, "html.parser")

    def scrape(self) -> ScrapedPage:
        return ScrapedPage(
            url=self.url,
            date_str=extract_date_str(self.url, SCRAPER_CONFIG["date_pattern"]),
            title=self.title(),
            raw_ingredients=self.raw_ingredients(),
            dishes=tuple(self.dishes()),
        )

    def title(self) -> str:
        heading = self.soup.select_one("h1.main_tit")
        return heading.get_text().strip() if heading else ""

    def dishes(self) -> List[Dish]:
        dishes = self._dishes_from_headings()
        if not dishes:
            dishes = self._dishes_from_legacy_items()
        return dishes

    def _dishes_from_headings(self) -> List[Dish]:
        dishes: List[Dish] = []
        seen = set()

        for heading in self.soup.find_all("h2"):
            text = heading.get_text().strip()
            if not text.endswith(DISH_HEADING_SUFFIX):
                continue

            title = text[:-len(DISH_HEADING_SUFFIX)].strip()
            if not title or title in seen:
                continue
            seen.add(title)

            container = heading.find_parent(class_=list(DISH_CONTAINER_CLASSES))
            link = ""
            image = ""
            if container is not None:
                anchor = container.find(
                    "a", href=lambda href: href and DISH_LINK_MARKER in href)
                if anchor is not None:
                    link = anchor["href"]
                image = self._find_image(container)

            dishes.append(Dish(
                type=DishType.MAIN if not dishes else DishType.SIDE,
                title=title,
                url=to_absolute_url(link, self.url),
                image_url=to_absolute_url(image, self.url),
            ))

        return dishes

    def _dishes_from_legacy_items(self) -> List[Dish]:
        dishes: List[Dish] = []
        seen = set()

        for item in self.soup.select(f".{LEGACY_MAIN_CLASS}, .{LEGACY_SUB_CLASS}"):
            title_el = item.select_one(".w_tit")
            title = title_el.get_text().strip() if title_el else ""
            if not title or title in seen:
                continue
            seen.add(title)

            anchor = item.find("a", href=True)
            img = item.find("img", src=True)
            is_main = LEGACY_MAIN_CLASS in (item.get("class") or [])

            dishes.append(Dish(
                type=DishType.MAIN if is_main else DishType.SIDE,
                title=title,
                url=to_absolute_url(anchor["href"] if anchor else "", self.url),
                image_url=to_absolute_url(img["src"] if img else "", self.url),
            ))

        return dishes

    @staticmethod
    def _find_image(container) -> str:
        """First non-icon image in the container; lazy-load data-src wins over src."""
        for img in container.find_all("img"):
            src = img.get("data-src") or img.get("src")
            if not src:
                continue
            if any(marker in src for marker in EXCLUDED_IMAGE_MARKERS):
                continue
            return src
        return ""

    def raw_ingredients(self) -> str:
        heading = None
        for h2 in self.soup.find_all("h2"):
            if INGREDIENTS_HEADING_TEXT in h2.get_text():
                heading = h2
                break
        if heading is None or heading.parent is None:
            return ""

        block = heading.parent.find_next_sibling()
        if block is None:
            return ""

        lines = (line.strip() for line in block.get_text().splitlines())
        return "\n".join(line for line in lines if line)


def parse_menu_html(url: str, html: str) -> ScrapedPage:
    """Extract a menu page from an already-fetched document."""
    return MenuPageScraper(url, html=html).scrape()


def scrape_menu_page(url: str) -> Optional[ScrapedPage]:
    """
    Fetch and extract one menu page.

    Returns:
        ScrapedPage on success, None when the page could not be fetched or
        parsed. Never raises; the caller records the day as failed.
    """
    try:
        page = MenuPageScraper(url).scrape()
    except PageFetchError as e:
        logger.error(f"❌ Failed to fetch {url}: {e}")
        return None
    except Exception as e:
        logger.error(f"❌ Error scraping {url}: {e}", exc_info=True)
        return None

    logger.info(
        f"✅ Scraped {url}: {len(page.dishes)} dishes, "
        f"{'with' if page.raw_ingredients else 'no'} ingredient block"
    )
    return page
