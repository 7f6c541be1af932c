"""
Status Synthesizer
Builds the one-line status shown for a bill, e.g.
"In House Education Committee — Referred Feb. 4, 2026".
"""

import re
from typing import Optional, Dict, Any

STATUS_SEPARATOR = ' — '

_RE_TRAILING_DATE = re.compile(r',\s*(\w+\.?\s+\d{1,2},\s*\d{4})')
_RE_DATE_CLAUSE = re.compile(r',\s*\w+\.?\s+\d{1,2},\s*\d{4}')
_RE_TRAILING_COMMA = re.compile(r',\s*$')
_RE_CHAMBER_REFERRAL = re.compile(r'\s+to\s+[\w\s&]+\[(?:Senate|House)\]$', re.IGNORECASE)


def location_phrase(chamber: Optional[str], committee: Optional[str]) -> str:
    if chamber and committee:
        return f"In {chamber} {committee} Committee"
    if chamber:
        return f"In the {chamber}"
    return ''


def action_phrase(last_action: Optional[str], committee: Optional[str] = None) -> str:
    """
    Condense a last-action string to "{action} {date}".

    Examples:
        'Referred to Education, Feb. 4, 2026' (committee 'Education')
            -> 'Referred Feb. 4, 2026'
        'Laid on the table, Nov. 18, 2025' -> 'Laid on the table Nov. 18, 2025'

    Falls back to the raw text when no action or date can be extracted.
    """
    if not last_action:
        return ''

    date_match = _RE_TRAILING_DATE.search(last_action)
    date = date_match.group(1) if date_match else ''

    action = _RE_DATE_CLAUSE.sub('', last_action, count=1).strip()
    action = _RE_TRAILING_COMMA.sub('', action)

    # The location phrase already names the committee
    if committee:
        escaped = re.escape(committee)
        action = re.sub(rf'\s+to\s+{escaped}.*$', '', action, flags=re.IGNORECASE)
        action = re.sub(rf'\s+from\s+{escaped}.*$', '', action, flags=re.IGNORECASE)
        action = _RE_CHAMBER_REFERRAL.sub('', action).strip()

    if action and date:
        return f"{action} {date}"
    return last_action


def build_status(detail: Dict[str, Any], last_action: Optional[str]) -> str:
    """
    Build a status string from bill detail (chamber, committee) and last action.

    Location and action phrases are joined with an em-dash when both exist.
    """
    detail = detail or {}
    committee = detail.get('committee')
    parts = [
        location_phrase(detail.get('chamber'), committee),
        action_phrase(last_action, committee),
    ]
    return STATUS_SEPARATOR.join(part for part in parts if part) or last_action or ''
