"""
Bill Detail Parser
Extracts structured data (title, sponsors, chamber, committee, last action,
timeline) from a palegis.us bill page.

Each field has its own extraction rule. A rule that finds nothing returns an
empty value; it never raises and never affects the other rules.
"""

import re
import html as html_lib
import logging
from typing import Optional, Dict, List, Any
from bs4 import BeautifulSoup

from pa_bill_tracker.scraping.utils import collapse_whitespace, photo_url, strip_markup

logger = logging.getLogger(__name__)

_RE_PAGE_TITLE = re.compile(r'<title>([^<]+)</title>')
_RE_SHORT_TITLE = re.compile(r'id="shortTitle-wrapper">\s*([\s\S]*?)\s*</div>')
_RE_LAST_ACTION = re.compile(r'<strong>Last Action:\s*</strong>([\s\S]*?)(?=\n\s*<span)')
_RE_CHAMBER = re.compile(r'Legislation is currently in the <strong>(\w+)</strong>')
_RE_COMMITTEE = re.compile(r"class='committee[^']*'>([^<]+)</a>")
_RE_PRIME_SECTION = re.compile(
    r'Prime Sponsor<hr></div>([\s\S]*?)(?=<div class="h3|<div class="accordion)'
)
_RE_COSPONSOR_SECTION = re.compile(
    r'Co-Sponsors<hr></div>([\s\S]*?)(?=<div[^>]*id="section-pn"|$)'
)
_RE_SPONSOR = re.compile(
    r"<a href='(/(?:senate|house)/members/bio/(\d+)/[^']*)' [^>]*>([^<]+)</a>"
    r'[\s\S]*?<span class="badge bg-party-(\w)">'
    r'[\s\S]*?(?:Senate|House) District(?:&nbsp;|\s)+(\d+)'
)
_RE_TIMELINE_ELEMENT = re.compile(
    r'<div class="timeline-Element\s+(bg-color-\w+)">([\s\S]*?)(?=<div class="timeline-Element|$)'
)
_RE_TOOLTIP = re.compile(r'data-(?:bs-)?toggle="tooltip"[^>]*title="([\s\S]*?)"')
_RE_TOOLTIP_DIV = re.compile(r'<div[^>]*>')
_RE_TOOLTIP_BREAK = re.compile(r'</?p>|<br\s*/?>')

TIMELINE_START_MARKER = 'timeline timeline-big'
TIMELINE_END_MARKER = 'section-pn'
COMPLETED_CLASS = 'bg-color-success'
PENDING_PHRASE = 'has not yet reached this milestone'


def extract_page_title(html: str) -> str:
    match = _RE_PAGE_TITLE.search(html)
    if not match:
        return ''
    title = re.sub(r'\s*Information;.*$', '', match.group(1))
    title = re.sub(r' - The Official.*$', '', title)
    return collapse_whitespace(html_lib.unescape(title))


def extract_short_title(html: str) -> str:
    """Short title from the collapsible block, with hidden text expanded."""
    match = _RE_SHORT_TITLE.search(html)
    if not match:
        return ''
    soup = BeautifulSoup(match.group(1), 'html.parser')
    for button in soup.find_all('button'):
        button.decompose()
    text = soup.get_text(' ').replace('. . .', '')
    return collapse_whitespace(text)


def extract_last_action(html: str) -> str:
    match = _RE_LAST_ACTION.search(html)
    return strip_markup(match.group(1)) if match else ''


def extract_chamber(html: str) -> str:
    match = _RE_CHAMBER.search(html)
    return match.group(1) if match else ''


def extract_committee(html: str) -> str:
    match = _RE_COMMITTEE.search(html)
    return collapse_whitespace(html_lib.unescape(match.group(1))) if match else ''


def extract_sponsors(section_html: str) -> List[Dict[str, Any]]:
    """
    Extract sponsor entries from a sponsor-list block.

    Each sponsor has name, party (single letter), district, memberId,
    bioPath, photoUrl and chamber ('Senate' or 'House', from the bio link).
    """
    sponsors = []
    for match in _RE_SPONSOR.finditer(section_html or ''):
        bio_path, member_id, name, party, district = match.groups()
        sponsors.append({
            'name': collapse_whitespace(html_lib.unescape(name)),
            'party': party,
            'district': district,
            'memberId': member_id,
            'bioPath': bio_path,
            'photoUrl': photo_url(member_id),
            'chamber': 'Senate' if bio_path.startswith('/senate') else 'House',
        })
    return sponsors


def extract_prime_sponsor(html: str) -> Optional[Dict[str, Any]]:
    match = _RE_PRIME_SECTION.search(html)
    if not match:
        return None
    sponsors = extract_sponsors(match.group(1))
    return sponsors[0] if sponsors else None


def extract_cosponsors(html: str) -> List[Dict[str, Any]]:
    match = _RE_COSPONSOR_SECTION.search(html)
    return extract_sponsors(match.group(1)) if match else []


def clean_tooltip(raw_title: str) -> str:
    """Tooltip text with markup stripped; sub-blocks joined with an em-dash."""
    text = html_lib.unescape(raw_title or '')
    text = _RE_TOOLTIP_DIV.sub(' — ', text)
    text = text.replace('</div>', '')
    text = _RE_TOOLTIP_BREAK.sub('\n', text)
    text = BeautifulSoup(text, 'html.parser').get_text()
    return collapse_whitespace(text)


def _is_step_label(tooltip: str) -> bool:
    return bool(tooltip) and not tooltip.startswith('Navigate to')


def extract_timeline(html: str) -> List[Dict[str, Any]]:
    """
    Extract the raw procedural timeline as a list of {label, completed}.

    Completion comes from the step's color class. When no classed step
    elements are present, every tooltip in the container is used and
    completion is inferred from the "not yet reached" phrase.
    """
    start = html.find(TIMELINE_START_MARKER)
    if start == -1:
        return []
    end = html.find(TIMELINE_END_MARKER, start)
    if end == -1:
        return []
    timeline_html = html[start:end]

    steps = []
    for element in _RE_TIMELINE_ELEMENT.finditer(timeline_html):
        color_class, element_html = element.groups()
        tooltip_match = _RE_TOOLTIP.search(element_html)
        if not tooltip_match:
            continue
        tooltip = clean_tooltip(tooltip_match.group(1))
        if _is_step_label(tooltip):
            steps.append({'label': tooltip, 'completed': color_class == COMPLETED_CLASS})

    if steps:
        return steps

    for tooltip_match in _RE_TOOLTIP.finditer(timeline_html):
        tooltip = clean_tooltip(tooltip_match.group(1))
        if _is_step_label(tooltip):
            steps.append({'label': tooltip, 'completed': PENDING_PHRASE not in tooltip})

    return steps


def parse_bill_page(html: str) -> Dict[str, Any]:
    """
    Parse a bill detail page into structured data.

    Returns:
        Dict with title, shortTitle, primeSponsor (or None), coSponsors,
        lastAction, chamber, committee and timeline
    """
    html = html or ''
    result = {
        'title': extract_page_title(html),
        'shortTitle': extract_short_title(html),
        'primeSponsor': extract_prime_sponsor(html),
        'coSponsors': extract_cosponsors(html),
        'lastAction': extract_last_action(html),
        'chamber': extract_chamber(html),
        'committee': extract_committee(html),
        'timeline': extract_timeline(html),
    }

    missing = [key for key in ('title', 'lastAction', 'chamber', 'timeline') if not result[key]]
    if missing:
        logger.debug(f"Bill page missing fields: {', '.join(missing)}")

    return result
