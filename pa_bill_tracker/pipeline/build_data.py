"""
Build data pipeline.
Scans keyword searches per topic, fetches bill details, enriches prime
sponsors with contact info, and assembles the dashboard JSON document.

Requests are strictly sequential. Per-item failures (one keyword, one bill,
one sponsor) are logged and degrade that item only.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any, Callable

from pa_bill_tracker.scraping.bill_parser import parse_bill_page
from pa_bill_tracker.scraping.member_contact import get_member_contact
from pa_bill_tracker.scraping.page_fetcher import FetchFailure, RequestPacer, fetch_page
from pa_bill_tracker.scraping.search_parser import parse_search_results
from pa_bill_tracker.scraping.utils import (
    InvalidBillIdError,
    bill_url,
    parse_action_date,
    search_url,
)
from pa_bill_tracker.pipeline.contact_cache import ContactCache, write_json_atomic
from pa_bill_tracker.pipeline.status import build_status
from pa_bill_tracker.pipeline.timeline import normalize_timeline

logger = logging.getLogger(__name__)

MAX_COSPONSORS = 5

Fetcher = Callable[[str], str]


def _merge_keywords(existing: List[str], new: List[str]) -> None:
    for keyword in new:
        if keyword not in existing:
            existing.append(keyword)


def scan_issue(issue: Dict[str, Any], session_year: str, fetcher: Fetcher,
               pacer: RequestPacer) -> List[Dict[str, Any]]:
    """
    Run every keyword search for one topic.

    Returns:
        Bill stubs in discovery order, each with the matchedKeywords that found it
    """
    all_bills: Dict[str, Dict[str, Any]] = {}

    for keyword in issue['keywords']:
        pacer.wait()
        url = search_url(keyword, session_year)
        try:
            html = fetcher(url)
        except FetchFailure as e:
            logger.warning(f"Search for \"{keyword}\" ({issue['name']}) failed: {e}")
            continue

        for bill in parse_search_results(html, session_year):
            if bill['billId'] not in all_bills:
                bill['matchedKeywords'] = [keyword]
                all_bills[bill['billId']] = bill
            else:
                _merge_keywords(all_bills[bill['billId']]['matchedKeywords'], [keyword])

    return list(all_bills.values())


def discover_bills(issues_config: Dict[str, Any], known_bills: Dict[str, Any],
                   fetcher: Fetcher, pacer: RequestPacer) -> Dict[str, Dict[str, Any]]:
    """
    Scan all topics and merge their bills.

    Returns:
        Mapping billId -> {'issues': [topic names in scan order], 'stub': stub},
        in discovery order. Hidden bills are dropped.
    """
    discovered: Dict[str, Dict[str, Any]] = {}
    hidden = known_bills.get('hide') or set()

    for issue in issues_config['issues']:
        logger.info(f"Scanning: {issue['name']}...")
        bills = scan_issue(issue, issues_config['session_year'], fetcher, pacer)
        logger.info(f"  Found {len(bills)} bills")

        for bill in bills:
            bill_id = bill['billId']
            if bill_id in hidden:
                logger.debug(f"Skipping hidden bill {bill_id}")
                continue

            if bill_id not in discovered:
                discovered[bill_id] = {'issues': [issue['name']], 'stub': bill}
            else:
                entry = discovered[bill_id]
                if issue['name'] not in entry['issues']:
                    entry['issues'].append(issue['name'])
                _merge_keywords(entry['stub']['matchedKeywords'], bill['matchedKeywords'])

    logger.info(f"Total unique bills: {len(discovered)}")
    return discovered


def _annotations(bill_id: str, known_bills: Dict[str, Any]) -> Dict[str, Optional[str]]:
    return {
        'nickname': (known_bills.get('nicknames') or {}).get(bill_id) or None,
        'description': (known_bills.get('descriptions') or {}).get(bill_id) or None,
        'note': (known_bills.get('notes') or {}).get(bill_id) or None,
    }


def build_bill_record(bill_id: str, issue_names: List[str], stub: Dict[str, Any],
                      detail: Dict[str, Any], prime_contact: Optional[Dict[str, Any]],
                      known_bills: Dict[str, Any]) -> Dict[str, Any]:
    """Assemble the full record for a bill whose detail page was parsed."""
    last_action = detail.get('lastAction') or stub.get('lastAction') or ''
    prime = detail.get('primeSponsor')
    contact = prime_contact or {}
    co_sponsors = detail.get('coSponsors') or []

    record = {
        'id': bill_id,
        'url': stub.get('url'),
        'title': detail.get('shortTitle') or detail.get('title') or stub.get('shortTitle') or '',
    }
    record.update(_annotations(bill_id, known_bills))
    record.update({
        'issues': list(issue_names),
        'lastAction': last_action,
        'status': build_status(detail, last_action),
        'chamber': detail.get('chamber') or None,
        'committee': detail.get('committee') or None,
        'timeline': normalize_timeline(detail.get('timeline')),
        'primeSponsor': {
            **prime,
            'email': contact.get('email'),
            'phone': contact.get('phone'),
            'districtPhone': contact.get('districtPhone'),
            'offices': contact.get('offices') or [],
        } if prime else None,
        'coSponsorCount': len(co_sponsors),
        'coSponsors': co_sponsors[:MAX_COSPONSORS],
        'matchedKeywords': list(stub.get('matchedKeywords') or []),
    })
    return record


def build_degraded_record(bill_id: str, issue_names: List[str], stub: Dict[str, Any],
                          known_bills: Dict[str, Any]) -> Dict[str, Any]:
    """Record built from the search stub alone when the detail page is unavailable."""
    last_action = stub.get('lastAction') or ''
    record = {
        'id': bill_id,
        'url': stub.get('url'),
        'title': stub.get('shortTitle') or '',
    }
    record.update(_annotations(bill_id, known_bills))
    record.update({
        'issues': list(issue_names),
        'lastAction': last_action,
        'status': build_status({}, last_action),
        'chamber': None,
        'committee': None,
        'timeline': [],
        'primeSponsor': None,
        'coSponsorCount': 0,
        'coSponsors': [],
        'matchedKeywords': list(stub.get('matchedKeywords') or []),
    })
    return record


def enrich_bill(bill_id: str, issue_names: List[str], stub: Dict[str, Any],
                session_year: str, known_bills: Dict[str, Any], contact_cache: ContactCache,
                fetcher: Fetcher) -> Dict[str, Any]:
    """Fetch and parse one bill's detail page; degrade to the stub on failure."""
    try:
        url = bill_url(bill_id, session_year)
    except InvalidBillIdError as e:
        logger.error(f"Skipping detail fetch for {bill_id}: {e}")
        return build_degraded_record(bill_id, issue_names, stub, known_bills)

    try:
        html = fetcher(url)
    except FetchFailure as e:
        logger.warning(f"Error fetching {bill_id}: {e}")
        return build_degraded_record(bill_id, issue_names, stub, known_bills)

    detail = parse_bill_page(html)

    prime_contact = None
    prime = detail.get('primeSponsor')
    if prime and prime.get('bioPath'):
        prime_contact = get_member_contact(prime['bioPath'], contact_cache, fetcher)

    return build_bill_record(bill_id, issue_names, stub, detail, prime_contact, known_bills)


def _sort_key(record: Dict[str, Any]) -> datetime:
    return parse_action_date(record.get('lastAction')) or datetime.min


def group_bills(records: List[Dict[str, Any]], topic_names: List[str]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Group records by primary topic (the first matched) in topic order.

    Within a topic, bills are sorted by last-action date, most recent first;
    bills without a parseable date sort last. Empty topics are dropped.
    """
    grouped: Dict[str, List[Dict[str, Any]]] = {name: [] for name in topic_names}

    for record in records:
        primary = record['issues'][0] if record.get('issues') else None
        if primary in grouped:
            grouped[primary].append(record)
        else:
            logger.warning(f"Bill {record.get('id')} has unknown primary topic {primary!r}")

    for bills in grouped.values():
        bills.sort(key=_sort_key, reverse=True)

    return {name: bills for name, bills in grouped.items() if bills}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def build_dataset(issues_config: Dict[str, Any], known_bills: Dict[str, Any],
                  contact_cache: ContactCache, fetcher: Fetcher = fetch_page,
                  pacer: Optional[RequestPacer] = None) -> Dict[str, Any]:
    """
    Run discovery, detail enrichment and grouping.

    Args:
        issues_config: {'session_year': str, 'issues': [{'name', 'keywords'}]}
        known_bills: {'hide', 'nicknames', 'descriptions', 'notes'}
        contact_cache: Loaded contact cache (mutated with fresh contacts)
        fetcher: Callable returning page HTML or raising FetchFailure
        pacer: Spacing policy applied before each search and detail request

    Returns:
        Output document: generated, sessionYear, totalBills, issues
    """
    pacer = pacer or RequestPacer(0)
    session_year = issues_config['session_year']

    discovered = discover_bills(issues_config, known_bills, fetcher, pacer)

    records = []
    for bill_id, entry in discovered.items():
        logger.info(f"Fetching: {bill_id}...")
        pacer.wait()
        records.append(enrich_bill(
            bill_id, entry['issues'], entry['stub'], session_year,
            known_bills, contact_cache, fetcher,
        ))

    topic_names = [issue['name'] for issue in issues_config['issues']]
    grouped = group_bills(records, topic_names)

    return {
        'generated': utc_timestamp(),
        'sessionYear': session_year,
        'totalBills': len(records),
        'issues': grouped,
    }


def write_output(document: Dict[str, Any], path: str) -> None:
    write_json_atomic(path, document)
    logger.info(f"Wrote {path}: {document['totalBills']} bills across {len(document['issues'])} issues")
