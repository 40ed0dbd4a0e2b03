#!/usr/bin/env python3
"""
Kondate Orchestrator - Weekly Shopping List Pipeline
====================================================

Main entry point for building a week's shopping list.

Full mode:
1. Fetches every daily menu page (concurrently, output kept in input order)
2. Formats each page's ingredients into a day-labeled block
3. Aggregates all blocks once with the LLM (cascade + fallback)

Recompute mode:
    Skips scraping and re-aggregates a caller-selected subset of blocks
    (e.g. after switching some days off).

A page that fails to load is recorded as a failed day; it never aborts the
batch.

USAGE:
    python orchestrator.py                          # Monday-Friday of this week
    python orchestrator.py --week-start 2026-02-16  # Specific week
    python orchestrator.py --url URL --url URL      # Explicit pages
    python orchestrator.py --save                   # Persist the result
    python orchestrator.py --help                   # Show all options
"""

import sys
import time
import json
import asyncio
import argparse
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional

from config import SCRAPER_CONFIG
from tools.logging_utils import get_logger

logger = get_logger(__name__)

from block_formatter import format_ingredient_block, join_blocks, weekday_label
from menu_models import DayMenu, Ingredient, MenuStatus, ScrapedPage, ShoppingList
from menu_scraper import scrape_menu_page
from shopping_aggregator import aggregate_ingredients, group_by_category
from utils.url_utils import menu_url_for_date

NOTHING_TO_AGGREGATE = "No ingredients found to aggregate"

Aggregate = Callable[[str], Awaitable[List[Ingredient]]]
Scrape = Callable[[str], Optional[ScrapedPage]]


@dataclass
class BatchOutcome:
    """Result of one batch run (menus are empty in recompute mode)."""
    menus: List[DayMenu] = field(default_factory=list)
    ingredients: List[Ingredient] = field(default_factory=list)
    nothing_to_aggregate: bool = False

    def to_dict(self) -> dict:
        data = {
            "ingredients": [i.to_dict() for i in self.ingredients],
            "menus": [m.to_dict() for m in self.menus],
        }
        if self.nothing_to_aggregate:
            data["error"] = NOTHING_TO_AGGREGATE
        return data

    def to_shopping_list(self, week_key: str) -> ShoppingList:
        return ShoppingList(week_key=week_key, menus=list(self.menus), ingredients=list(self.ingredients))


# =============================================================================
# DATE / URL HELPERS
# =============================================================================

def week_start_for(day: Optional[date] = None) -> date:
    """Monday of the week containing `day` (default: today)."""
    day = day or date.today()
    return day - timedelta(days=day.weekday())


def week_menu_urls(week_start: date, days: Optional[int] = None,
                   template: Optional[str] = None) -> List[str]:
    """Menu page URLs for consecutive days starting at week_start (Mon-Fri by default)."""
    if days is None:
        days = SCRAPER_CONFIG["days_per_week"]
    if template is None:
        template = SCRAPER_CONFIG["menu_url_template"]
    return [menu_url_for_date(week_start + timedelta(days=i), template) for i in range(days)]


def blocks_for_active_days(menus: Iterable[DayMenu], active_day_keys: Iterable[str]) -> List[str]:
    """Formatted blocks of the days still switched on, in menu order."""
    active = set(active_day_keys)
    return [m.raw_ingredients for m in menus
            if m.succeeded and m.date in active and m.raw_ingredients]


# =============================================================================
# PAGE PROCESSING
# =============================================================================

def build_day_menu(url: str, page: Optional[ScrapedPage]) -> DayMenu:
    """Turn one scrape result (or the None sentinel) into a DayMenu."""
    if page is None:
        return DayMenu(date="", day_of_week="", url=url, status=MenuStatus.FAILED, dishes=[])

    weekday = weekday_label(page.date_str)
    return DayMenu(
        date=page.date_str,
        day_of_week=weekday,
        url=page.url,
        status=MenuStatus.SUCCESS,
        dishes=list(page.dishes),
        raw_ingredients=format_ingredient_block(page, weekday),
    )


async def _scrape_all(urls: List[str], scrape: Scrape) -> List[Optional[ScrapedPage]]:
    """Fetch all pages concurrently; results are returned in input order."""
    loop = asyncio.get_running_loop()
    semaphore = asyncio.Semaphore(max(1, SCRAPER_CONFIG["max_concurrent"]))
    polite_delay = SCRAPER_CONFIG["polite_delay"]

    async def fetch(url: str) -> Optional[ScrapedPage]:
        async with semaphore:
            if polite_delay:
                await asyncio.sleep(polite_delay)
            try:
                # requests is blocking; keep it off the event loop
                return await loop.run_in_executor(None, scrape, url)
            except Exception as e:
                logger.error(f"❌ Scraper crashed on {url}: {e}", exc_info=True)
                return None

    return await asyncio.gather(*(fetch(url) for url in urls))


# =============================================================================
# BATCH MODES
# =============================================================================

async def run_full_batch(urls: List[str], aggregate: Aggregate = aggregate_ingredients,
                         scrape: Scrape = scrape_menu_page) -> BatchOutcome:
    """
    Scrape every URL and aggregate the combined ingredient blocks once.

    Returns:
        BatchOutcome with one DayMenu per URL (input order). When no page
        produced ingredient text, nothing_to_aggregate is set and the
        aggregator is not called.
    """
    logger.info(f"🚀 Building shopping list from {len(urls)} menu pages")
    pages = await _scrape_all(list(urls), scrape)
    menus = [build_day_menu(url, page) for url, page in zip(urls, pages)]

    failed = sum(1 for m in menus if not m.succeeded)
    if failed:
        logger.warning(f"⚠️  {failed}/{len(menus)} menu pages failed")

    corpus = join_blocks(m.raw_ingredients for m in menus)
    if not corpus.strip():
        logger.warning(f"⚠️  {NOTHING_TO_AGGREGATE}")
        return BatchOutcome(menus=menus, nothing_to_aggregate=True)

    ingredients = await aggregate(corpus)
    logger.info(f"📊 {len(ingredients)} ingredients from {len(menus) - failed} days")
    return BatchOutcome(menus=menus, ingredients=ingredients)


async def recompute_ingredients(blocks: List[str],
                                aggregate: Aggregate = aggregate_ingredients) -> BatchOutcome:
    """Re-aggregate caller-selected blocks without scraping; menus stay untouched."""
    corpus = join_blocks(blocks)
    if not corpus.strip():
        logger.warning(f"⚠️  {NOTHING_TO_AGGREGATE}")
        return BatchOutcome(nothing_to_aggregate=True)

    logger.info(f"🔄 Recomputing ingredients from {len([b for b in blocks if b and b.strip()])} blocks")
    ingredients = await aggregate(corpus)
    return BatchOutcome(ingredients=ingredients)


# =============================================================================
# CLI
# =============================================================================

def print_outcome(outcome: BatchOutcome):
    """Render menus and the grouped shopping list with rich."""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    menu_table = Table(title="献立")
    menu_table.add_column("日付")
    menu_table.add_column("曜日")
    menu_table.add_column("状態")
    menu_table.add_column("料理")
    for menu in outcome.menus:
        dishes = ", ".join(f"{d.title} ({d.type.value})" for d in menu.dishes)
        status = "[green]success[/green]" if menu.succeeded else "[red]failed[/red]"
        menu_table.add_row(menu.date or "-", menu.day_of_week or "-", status, dishes or menu.url)
    if outcome.menus:
        console.print(menu_table)

    if outcome.nothing_to_aggregate:
        console.print(f"[yellow]{NOTHING_TO_AGGREGATE}[/yellow]")
        return

    for category, items in group_by_category(outcome.ingredients).items():
        table = Table(title=category)
        table.add_column("食材")
        table.add_column("分量")
        table.add_column("曜日")
        for item in items:
            table.add_row(item.name, item.amount, "".join(item.used_days))
        console.print(table)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Build a weekly shopping list from daily menu pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python orchestrator.py                          # This week, Monday-Friday
  python orchestrator.py --week-start 2026-02-16
  python orchestrator.py --url https://www.lettuceclub.net/recipe/kondate/detail/k20260216/
  python orchestrator.py --save --json
        """
    )
    parser.add_argument(
        "--week-start",
        help="Any date in the target week, YYYY-MM-DD (default: this week)"
    )
    parser.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="Menu page URL (repeatable; overrides the generated week URLs)"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help=f"Number of days from the week start (default: {SCRAPER_CONFIG['days_per_week']})"
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the result as this week's shopping list (replaces any saved list)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of tables"
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    start_time = time.time()

    if args.week_start:
        try:
            week_start = week_start_for(datetime.strptime(args.week_start, "%Y-%m-%d").date())
        except ValueError:
            print(f"❌ Invalid date format: {args.week_start} (use YYYY-MM-DD)")
            return 1
    else:
        week_start = week_start_for()

    urls = args.urls or week_menu_urls(week_start, args.days)
    outcome = await run_full_batch(urls)

    if args.save and not outcome.nothing_to_aggregate:
        from shopping_store import ShoppingListStore
        week_key = week_start.isoformat()
        active_days = [m.date for m in outcome.menus if m.succeeded]
        ShoppingListStore.instance().save_week(outcome.to_shopping_list(week_key), active_days)
        print(f"💾 Saved shopping list for week {week_key}")

    if args.json:
        print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
    else:
        print_outcome(outcome)

    logger.info(f"✅ Done in {time.time() - start_time:.1f}s")
    return 2 if outcome.nothing_to_aggregate else 0


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
