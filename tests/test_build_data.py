import json
from datetime import datetime

import pytest

from pa_bill_tracker.pipeline.build_data import (
    MAX_COSPONSORS,
    build_dataset,
    build_degraded_record,
    discover_bills,
    enrich_bill,
    group_bills,
    scan_issue,
    write_output,
)
from pa_bill_tracker.pipeline.config import empty_known_bills
from pa_bill_tracker.pipeline.contact_cache import ContactCache
from pa_bill_tracker.scraping.page_fetcher import FetchFailure, RequestPacer
from pa_bill_tracker.scraping.utils import bill_url, member_bio_url, parse_action_date, search_url

from sample_pages import BIO_PAGE, HOUSE_COSPONSORS, PRIME_SENATOR, bill_page, search_page

YEAR = '2025'


class FakeSite:
    """Serves canned pages by URL and records every request."""

    def __init__(self, pages):
        self.pages = pages
        self.requests = []

    def __call__(self, url):
        self.requests.append(url)
        if url not in self.pages:
            raise FetchFailure(url, status_code=404, reason='Not Found')
        return self.pages[url]


ISSUES = {
    'session_year': YEAR,
    'issues': [
        {'name': 'Education', 'keywords': ['school', 'teacher']},
        {'name': 'Housing', 'keywords': ['zoning']},
        {'name': 'Transportation', 'keywords': ['transit']},
    ],
}


def _site():
    return FakeSite({
        search_url('school', YEAR): search_page([
            ('sb123', 'SB0123', 'School safety', 'Referred to EDUCATION, Feb. 4, 2026'),
            ('hb42', 'HB0042', 'School meals', 'Laid on the table, Nov. 18, 2025'),
        ]),
        search_url('teacher', YEAR): search_page([
            ('sb123', 'SB0123', 'School safety', 'Referred to EDUCATION, Feb. 4, 2026'),
            ('hb7', 'HB0007', 'Teacher pay', 'Referred to EDUCATION, Jan. 9, 2026'),
        ]),
        search_url('zoning', YEAR): search_page([
            ('hb300', 'HB0300', 'Zoning reform', 'Removed from table'),
            ('sb123', 'SB0123', 'School safety', 'Referred to EDUCATION, Feb. 4, 2026'),
        ]),
        bill_url('SB123', YEAR): bill_page(prime=PRIME_SENATOR, cosponsors=HOUSE_COSPONSORS),
        bill_url('HB300', YEAR): bill_page(
            prime=None, cosponsors=(), steps=None, last_action=None, chamber='House', committee=None,
        ),
        member_bio_url('/senate/members/bio/1234/jane-doe'): BIO_PAGE,
    })


def _known(hide=()):
    known = empty_known_bills()
    known['hide'] = set(hide)
    return known


def test_scan_issue_merges_keywords_and_skips_failed_searches(caplog):
    site = _site()
    issue = {'name': 'Education', 'keywords': ['school', 'transit', 'teacher']}

    bills = scan_issue(issue, YEAR, site, RequestPacer(0))

    assert [b['billId'] for b in bills] == ['SB123', 'HB42', 'HB7']
    assert bills[0]['matchedKeywords'] == ['school', 'teacher']
    assert bills[1]['matchedKeywords'] == ['school']
    assert '"transit"' in caplog.text


def test_scan_issue_requests_are_sequential_in_keyword_order():
    site = _site()
    scan_issue({'name': 'Education', 'keywords': ['teacher', 'school']}, YEAR, site, RequestPacer(0))
    assert site.requests == [search_url('teacher', YEAR), search_url('school', YEAR)]


def test_scan_issue_paces_each_keyword_request():
    calls = []

    class CountingPacer(RequestPacer):
        def wait(self):
            calls.append(1)

    scan_issue({'name': 'Education', 'keywords': ['school', 'teacher']}, YEAR, _site(), CountingPacer())
    assert len(calls) == 2


def test_discover_bills_records_topics_in_scan_order_and_hides():
    discovered = discover_bills(ISSUES, _known(hide={'HB7'}), _site(), RequestPacer(0))

    assert list(discovered) == ['SB123', 'HB42', 'HB300']
    assert discovered['SB123']['issues'] == ['Education', 'Housing']
    assert discovered['SB123']['stub']['matchedKeywords'] == ['school', 'teacher', 'zoning']
    assert discovered['HB300']['issues'] == ['Housing']


def test_enrich_bill_builds_full_record():
    site = _site()
    stub = {'billId': 'SB123', 'url': 'https://www.palegis.us/legislation/bills/2025/sb123',
            'shortTitle': 'School safety', 'lastAction': 'stub action', 'matchedKeywords': ['school']}
    known = _known()
    known['nicknames'] = {'SB123': 'Safe Schools Act'}
    known['notes'] = {'SB123': 'Hearing scheduled'}

    record = enrich_bill('SB123', ['Education'], stub, YEAR, known, ContactCache(None), site)

    assert record['title'] == \
        'An Act amending the Public School Code of 1949, further providing for school safety'
    assert record['nickname'] == 'Safe Schools Act'
    assert record['description'] is None
    assert record['note'] == 'Hearing scheduled'
    assert record['lastAction'] == 'Referred to EDUCATION, Feb. 4, 2026'
    assert record['status'] == 'In Senate Education Committee — Referred Feb. 4, 2026'
    assert record['chamber'] == 'Senate'
    assert record['committee'] == 'Education'
    assert [s['label'] for s in record['timeline']] == [
        'Introduced', 'Senate Committee', 'Senate Vote', 'House Committee', 'House Vote', 'Governor',
    ]
    assert record['timeline'][2]['detail'] == 'Passed 46-1'

    prime = record['primeSponsor']
    assert prime['name'] == 'Jane Doe'
    assert prime['email'] == 'jdoe@pasen.gov'
    assert prime['phone'] == '(717) 787-1000'
    assert prime['districtPhone'] == '(610) 555-1234'
    assert prime['offices'] == []

    assert record['coSponsorCount'] == 7
    assert len(record['coSponsors']) == MAX_COSPONSORS
    assert record['matchedKeywords'] == ['school']


def test_enrich_bill_degrades_when_detail_fetch_fails(caplog):
    stub = {'billId': 'HB42', 'url': 'u', 'shortTitle': 'School meals',
            'lastAction': 'Laid on the table, Nov. 18, 2025', 'matchedKeywords': ['school']}

    record = enrich_bill('HB42', ['Education'], stub, YEAR, _known(), ContactCache(None), _site())

    assert record['title'] == 'School meals'
    assert record['chamber'] is None
    assert record['committee'] is None
    assert record['timeline'] == []
    assert record['primeSponsor'] is None
    assert record['coSponsorCount'] == 0
    assert record['coSponsors'] == []
    assert record['status'] == 'Laid on the table Nov. 18, 2025'
    assert 'HB42' in caplog.text


def test_enrich_bill_rejects_malformed_id_without_requesting():
    site = _site()
    stub = {'billId': 'XX9', 'url': None, 'shortTitle': 'Odd', 'lastAction': '', 'matchedKeywords': []}

    record = enrich_bill('XX9', ['Education'], stub, YEAR, _known(), ContactCache(None), site)

    assert site.requests == []
    assert record['timeline'] == []


def test_degraded_record_uses_stub_fields():
    stub = {'billId': 'HB1', 'url': 'u', 'shortTitle': 'T', 'lastAction': '', 'matchedKeywords': ['k']}
    record = build_degraded_record('HB1', ['Education', 'Housing'], stub, _known())
    assert record['issues'] == ['Education', 'Housing']
    assert record['matchedKeywords'] == ['k']
    assert record['status'] == ''


def _record(bill_id, issues, last_action):
    return {'id': bill_id, 'issues': issues, 'lastAction': last_action}


def test_group_bills_sorts_descending_with_undated_last():
    records = [
        _record('A', ['Education'], 'Referred to Education, Jan. 9, 2026'),
        _record('B', ['Education'], 'Removed from table'),
        _record('C', ['Education', 'Housing'], 'Signed in House, Mar. 1, 2026'),
        _record('D', ['Education'], 'Laid on the table, November 18, 2025'),
        _record('E', ['Housing'], 'Referred to Urban Affairs, Feb. 2, 2026'),
    ]

    grouped = group_bills(records, ['Education', 'Housing', 'Transportation'])

    assert list(grouped) == ['Education', 'Housing']
    assert [r['id'] for r in grouped['Education']] == ['C', 'A', 'D', 'B']
    assert [r['id'] for r in grouped['Housing']] == ['E']

    dates = [parse_action_date(r['lastAction']) or datetime.min for r in grouped['Education']]
    assert dates == sorted(dates, reverse=True)


def test_build_dataset_end_to_end():
    site = _site()
    cache = ContactCache(None)

    document = build_dataset(ISSUES, _known(hide={'HB7'}), cache, fetcher=site, pacer=RequestPacer(0))

    assert document['sessionYear'] == YEAR
    assert document['generated'].endswith('Z')
    assert document['totalBills'] == 3
    assert list(document['issues']) == ['Education', 'Housing']
    assert 'Transportation' not in document['issues']

    education = document['issues']['Education']
    assert [r['id'] for r in education] == ['SB123', 'HB42']
    assert education[0]['issues'] == ['Education', 'Housing']
    assert education[1]['chamber'] is None

    housing = document['issues']['Housing']
    assert [r['id'] for r in housing] == ['HB300']
    assert housing[0]['status'] == 'In the House — Removed from table'
    assert housing[0]['timeline'] == []

    all_ids = [r['id'] for bills in document['issues'].values() for r in bills]
    assert len(all_ids) == len(set(all_ids))
    assert all(len(r['coSponsors']) <= MAX_COSPONSORS for bills in document['issues'].values() for r in bills)
    assert '/senate/members/bio/1234/jane-doe' in cache


def test_build_dataset_uses_cached_contacts():
    site = _site()
    cache = ContactCache(None)
    cache.put('/senate/members/bio/1234/jane-doe', {
        'email': 'cached@pasen.gov', 'phone': None, 'districtPhone': None, 'offices': [],
    })

    document = build_dataset(ISSUES, _known(), cache, fetcher=site, pacer=RequestPacer(0))

    assert member_bio_url('/senate/members/bio/1234/jane-doe') not in site.requests
    assert document['issues']['Education'][0]['primeSponsor']['email'] == 'cached@pasen.gov'


def test_build_dataset_with_every_search_failing():
    document = build_dataset(ISSUES, _known(), ContactCache(None), fetcher=FakeSite({}))
    assert document['totalBills'] == 0
    assert document['issues'] == {}


def test_write_output_creates_parent_dirs(tmp_path):
    path = tmp_path / 'public' / 'data' / 'bills.json'
    document = {'generated': 'now', 'sessionYear': YEAR, 'totalBills': 0, 'issues': {}}

    write_output(document, str(path))

    assert json.loads(path.read_text(encoding='utf-8')) == document
