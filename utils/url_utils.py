"""URL utility functions shared by the scraper and the orchestrator."""

import re
from datetime import date
from typing import Optional
from urllib.parse import urljoin, urlparse


def to_absolute_url(link: Optional[str], base_url: str) -> str:
    """
    Resolve a link found on a page against the page URL.

    Args:
        link: href/src value as found in the document (may be relative)
        base_url: URL of the page the link was found on

    Returns:
        Absolute URL, or empty string if link is None/empty
    """
    if not link:
        return ""
    link = link.strip()
    if not link:
        return ""
    return urljoin(base_url, link)


def extract_date_str(url: str, pattern: str = r"k(\d{8})") -> str:
    """
    Pull the 8-digit YYYYMMDD token out of a menu page URL path.

    Returns:
        The date string, or empty string when the path carries no token
    """
    if not url:
        return ""
    match = re.search(pattern, urlparse(url).path)
    return match.group(1) if match else ""


def menu_url_for_date(day: date, template: str) -> str:
    """Build the menu page URL for one day, e.g. .../k20260216/."""
    return template.format(date=day.strftime("%Y%m%d"))
