"""
Timeline Normalizer
Maps the raw palegis.us procedural steps onto six fixed stages.

Raw steps (nominally nine):
    0 introduced, 1 referred, 2 reported from committee, 3 vote,
    4 crosses to second chamber, 5 referred, 6 reported, 7 vote, 8 governor
"""

import re
from typing import Optional, Dict, List, Any

_RE_VOTE_TALLY = re.compile(r'\((\d+-\d+)\)')
_RE_SENATE = re.compile(r'senate', re.IGNORECASE)

# (label template, raw step index, is a vote)
STAGE_MAP = [
    ('Introduced', 0, False),
    ('{origin} Committee', 1, False),
    ('{origin} Vote', 3, True),
    ('{other} Committee', 5, False),
    ('{other} Vote', 7, True),
    ('Governor', 8, False),
]


def get_vote_detail(step: Optional[Dict[str, Any]]) -> Optional[str]:
    """'Passed N-M' when the step label carries a parenthesized tally."""
    if not step or not step.get('label'):
        return None
    match = _RE_VOTE_TALLY.search(step['label'])
    return f"Passed {match.group(1)}" if match else None


def origin_chamber(steps: List[Dict[str, Any]]) -> str:
    label = (steps[0].get('label') or '') if steps else ''
    return 'Senate' if _RE_SENATE.search(label) else 'House'


def normalize_timeline(steps: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Normalize raw steps into Introduced, origin Committee/Vote, other
    chamber Committee/Vote and Governor.

    Short timelines leave the missing stages incomplete. An empty raw
    timeline yields no stages.
    """
    if not steps:
        return []

    origin = origin_chamber(steps)
    other = 'House' if origin == 'Senate' else 'Senate'

    stages = []
    for template, index, is_vote in STAGE_MAP:
        step = steps[index] if index < len(steps) else None
        stages.append({
            'label': template.format(origin=origin, other=other),
            'completed': bool(step and step.get('completed')),
            'vote': is_vote,
            'detail': get_vote_detail(step) if is_vote else None,
        })
    return stages
