"""
Search Result Parser
Turns a palegis.us keyword search results page into bill stubs.
"""

import re
import logging
from typing import Dict, List

from pa_bill_tracker.scraping.utils import (
    DEFAULT_SESSION_YEAR,
    bill_url_from_slug,
    normalize_bill_id,
    strip_markup,
)

logger = logging.getLogger(__name__)

_RE_RESULT_COUNT = re.compile(r'returned <strong>([\d,]+)</strong> results')
_RE_RESULT_CARD = re.compile(
    r'href="/legislation/bills/\d+/(\w+)"[^>]*>(\w+)\s*&nbsp;\s*P\.N\.\s*&nbsp;(\d+)'
)
_RE_SHORT_TITLE = re.compile(
    r'<strong>Short Title:</strong>[\s\S]*?<div class="col-lg-10 flex-grow-1">\s*([\s\S]*?)\s*</div>'
)
_RE_LAST_ACTION = re.compile(
    r'<strong>Last Action:</strong>[\s\S]*?<div class="col-lg-10 flex-grow-1">\s*([\s\S]*?)\s*</div>'
)


def extract_result_count(html: str) -> int:
    """Number of results the page reports; 0 when the marker is missing."""
    match = _RE_RESULT_COUNT.search(html or '')
    return int(match.group(1).replace(',', '')) if match else 0


def _field_between(pattern: re.Pattern, html: str, start: int, end: int) -> str:
    match = pattern.search(html, start, end)
    return strip_markup(match.group(1)) if match else ''


def parse_search_results(html: str, session_year: str = DEFAULT_SESSION_YEAR) -> List[Dict]:
    """
    Parse keyword search results HTML into a list of bill stubs.

    Each stub is a dict with billId, slug, url, shortTitle and lastAction.
    Bills are deduplicated by id within the page, first occurrence wins.
    Missing short titles or last actions become empty strings.
    """
    bills = []
    if extract_result_count(html) == 0:
        return bills

    cards = list(_RE_RESULT_CARD.finditer(html))
    seen = set()
    for i, card in enumerate(cards):
        # A card's fields never extend into the next card
        end = cards[i + 1].start() if i + 1 < len(cards) else len(html)
        slug = card.group(1)
        bill_id = normalize_bill_id(card.group(2))

        if bill_id in seen:
            continue
        seen.add(bill_id)

        bills.append({
            'billId': bill_id,
            'slug': slug,
            'url': bill_url_from_slug(slug, session_year),
            'shortTitle': _field_between(_RE_SHORT_TITLE, html, card.start(), end),
            'lastAction': _field_between(_RE_LAST_ACTION, html, card.start(), end),
        })

    logger.debug(f"Parsed {len(bills)} bills from search results")
    return bills
