"""
Sponsor Contact Fetcher
Fetches a member bio page and extracts email and phone numbers.
Contact enrichment is best-effort: failures yield an empty contact.
"""

import re
import logging
from typing import Optional, Dict, List, Any, Callable, Tuple

from pa_bill_tracker.scraping.page_fetcher import FetchFailure, fetch_page
from pa_bill_tracker.scraping.utils import member_bio_url

logger = logging.getLogger(__name__)

# Email is often obfuscated via JS, so try progressively looser patterns
EMAIL_PATTERNS = [
    re.compile(r'mailto:([^"\']+)'),
    re.compile(r'[\'"]([a-zA-Z0-9._%+-]+@(?:pasen|pahouse|pahousegop)\.gov)[\'"]'),
    re.compile(r'([a-zA-Z0-9._%+-]+@(?:pasen|pahouse|pahousegop)\.gov)'),
]

_RE_CONTACT_AREA = re.compile(r'District Address([\s\S]*?)(?=<footer|<script|$)')
_RE_PHONE = re.compile(r'\(\d{3}\)\s*\d{3}[-.]?\d{4}')

CAPITOL_AREA_CODE = '(717)'


def empty_contact() -> Dict[str, Any]:
    return {'email': None, 'phone': None, 'districtPhone': None, 'offices': []}


def extract_email(html: str) -> Optional[str]:
    for pattern in EMAIL_PATTERNS:
        match = pattern.search(html)
        if match:
            email = match.group(1).split('?')[0].strip()
            if email:
                return email
    return None


def extract_phones(html: str) -> List[str]:
    """Distinct phone numbers from the district address area, in page order."""
    match = _RE_CONTACT_AREA.search(html)
    if not match:
        return []
    phones = []
    for phone in _RE_PHONE.findall(match.group(1)):
        if phone not in phones:
            phones.append(phone)
    return phones


def parse_member_contact(html: str) -> Dict[str, Any]:
    """
    Extract contact info from a member bio page.

    The capitol number (717 area code) is preferred as the primary phone;
    the first other number becomes the district phone.
    """
    contact = empty_contact()
    html = html or ''
    contact['email'] = extract_email(html)

    phones = extract_phones(html)
    capitol_phone = next((p for p in phones if p.startswith(CAPITOL_AREA_CODE)), None)
    district_phone = next((p for p in phones if not p.startswith(CAPITOL_AREA_CODE)), None)
    contact['phone'] = capitol_phone or district_phone
    contact['districtPhone'] = district_phone
    return contact


def scrape_member_contact(bio_path: str, fetcher: Callable[[str], str] = fetch_page) -> Dict[str, Any]:
    """
    Fetch and parse a member bio page.

    Raises:
        FetchFailure: if the bio page cannot be fetched
    """
    html = fetcher(member_bio_url(bio_path))
    return parse_member_contact(html)


def fetch_member_contact(bio_path: str,
                         fetcher: Callable[[str], str] = fetch_page) -> Tuple[Dict[str, Any], bool]:
    """
    Fetch contact info for a member.

    Returns:
        (contact, fetched). A failed fetch is logged and yields an empty
        contact with fetched=False.
    """
    try:
        return scrape_member_contact(bio_path, fetcher), True
    except FetchFailure as e:
        logger.warning(f"Couldn't fetch contact for {bio_path}: {e}")
        return empty_contact(), False


def get_member_contact(bio_path: str, cache, fetcher: Callable[[str], str] = fetch_page) -> Dict[str, Any]:
    """
    Resolve contact info from the cache, fetching on a miss.

    Only successful fetches are cached, so failures are retried next run.
    """
    cached = cache.get(bio_path)
    if cached is not None:
        logger.debug(f"Contact cache hit for {bio_path}")
        return cached

    contact, fetched = fetch_member_contact(bio_path, fetcher)
    if fetched:
        cache.put(bio_path, contact)
    return contact
