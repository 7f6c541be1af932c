#!/usr/bin/env python3
"""
Shared utilities for the palegis.us scrapers.
Provides site constants, URL builders, bill id normalization,
markup cleaning and last-action date parsing.
"""

import re
import logging
from typing import Optional, Dict
from datetime import datetime
from urllib.parse import urlencode
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

BASE_URL = 'https://www.palegis.us'

# Browser user agent for web scraping (mimics real browser)
BROWSER_USER_AGENT = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'

PHOTO_URL_TEMPLATE = BASE_URL + '/resources/images/members/300/{member_id}.jpg'

DEFAULT_SESSION_YEAR = '2025'

_RE_BILL_ID = re.compile(r'^(S|H)(B|R)(\d+)$', re.IGNORECASE)
_RE_PADDED_BILL_ID = re.compile(r'^([A-Z]{2})0*(\d+)$')
_RE_WHITESPACE = re.compile(r'\s+')
_RE_ACTION_DATE = re.compile(r'(\w+\.?\s+\d{1,2},\s*\d{4})')


class InvalidBillIdError(ValueError):
    """Raised when a bill id does not look like chamber + type + number."""


def get_browser_headers() -> Dict[str, str]:
    """Headers sent with every request to the legislature site."""
    return {
        'User-Agent': BROWSER_USER_AGENT,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
    }


def normalize_bill_id(bill_id: str) -> str:
    """
    Normalize a bill identifier by dropping zero padding.

    Examples:
        'SB0123' -> 'SB123'
        'SB123'  -> 'SB123'
        'hb0007' -> 'HB7'
    """
    cleaned = (bill_id or '').strip().upper()
    return _RE_PADDED_BILL_ID.sub(r'\1\2', cleaned)


def bill_url(bill_id: str, session_year: str = DEFAULT_SESSION_YEAR) -> str:
    """
    Build the detail page URL for a bill.

    Raises:
        InvalidBillIdError: if the id is not chamber letter + type letter + number
    """
    match = _RE_BILL_ID.match(bill_id or '')
    if not match:
        raise InvalidBillIdError(f"Invalid bill ID: {bill_id}")
    chamber, bill_type, number = match.groups()
    slug = f"{chamber.lower()}{bill_type.lower()}{number}"
    return f"{BASE_URL}/legislation/bills/{session_year}/{slug}"


def bill_url_from_slug(slug: str, session_year: str = DEFAULT_SESSION_YEAR) -> str:
    return f"{BASE_URL}/legislation/bills/{session_year}/{slug}"


def search_url(keyword: str, session_year: str = DEFAULT_SESSION_YEAR) -> str:
    """Build the keyword search URL (text search, bills only, current printer's number)."""
    params = {
        'sessYr': session_year,
        'sessInd': '0',
        'keyword': keyword,
        'searchType': 'text',
        'billBody': '',
        'billType': 'B',
        'currPNOnly': 'true',
    }
    return f"{BASE_URL}/legislation/bills/bill-keyword-search?{urlencode(params)}"


def member_bio_url(bio_path: str) -> str:
    return f"{BASE_URL}{bio_path}"


def photo_url(member_id: str) -> str:
    return PHOTO_URL_TEMPLATE.format(member_id=member_id)


def collapse_whitespace(text: Optional[str]) -> str:
    if not text:
        return ''
    return _RE_WHITESPACE.sub(' ', text.replace('\xa0', ' ')).strip()


def strip_markup(fragment: Optional[str]) -> str:
    """
    Strip tags from an HTML fragment, decode entities and collapse whitespace.
    Non-breaking spaces become plain spaces.
    """
    if not fragment:
        return ''
    text = BeautifulSoup(fragment, 'html.parser').get_text()
    return collapse_whitespace(text)


def parse_action_date(last_action: Optional[str]) -> Optional[datetime]:
    """
    Parse the date embedded in a last-action string.

    Handles abbreviated and full month names:
        'Referred to Education, Feb. 4, 2026' -> 2026-02-04
        'Laid on the table, November 18, 2025' -> 2025-11-18

    Returns:
        datetime if a date was found and parsed, None otherwise
    """
    if not last_action:
        return None

    match = _RE_ACTION_DATE.search(last_action)
    if not match:
        return None

    date_str = match.group(1).replace('.', '')
    try:
        return date_parser.parse(date_str)
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse action date: {date_str}")
        return None
