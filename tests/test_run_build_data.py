import json

import pytest

from pa_bill_tracker.pipeline import run_build_data
from pa_bill_tracker.scraping.page_fetcher import FetchFailure
from pa_bill_tracker.scraping.utils import bill_url, member_bio_url, search_url

from sample_pages import BIO_PAGE, PRIME_SENATOR, bill_page, search_page

ENV_VARS = [
    'ISSUES_CONFIG_PATH', 'KNOWN_BILLS_PATH', 'OUTPUT_PATH', 'MEMBER_CACHE_PATH',
    'REQUEST_DELAY_SECONDS', 'REQUEST_TIMEOUT_SECONDS', 'LOG_LEVEL', 'ACTIVITY_LOG_PATH',
]

PAGES = {
    search_url('school', '2025'): search_page([
        ('sb123', 'SB0123', 'School safety', 'Referred to EDUCATION, Feb. 4, 2026'),
    ]),
    bill_url('SB123', '2025'): bill_page(prime=PRIME_SENATOR),
    member_bio_url('/senate/members/bio/1234/jane-doe'): BIO_PAGE,
}


def _fake_fetcher(session, timeout=30):
    def fetch(url):
        if url not in PAGES:
            raise FetchFailure(url, status_code=404, reason='Not Found')
        return PAGES[url]
    return fetch


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(run_build_data, 'make_fetcher', _fake_fetcher)

    issues = tmp_path / 'issues.json'
    issues.write_text(json.dumps({
        'session_year': '2025',
        'issues': [{'name': 'Education', 'keywords': ['school']}],
    }), encoding='utf-8')
    known = tmp_path / 'known-bills.json'
    known.write_text(json.dumps({'nicknames': {'SB0123': 'Safe Schools'}}), encoding='utf-8')
    return tmp_path


def _argv(workspace, *extra):
    return [
        '--issues', str(workspace / 'issues.json'),
        '--known-bills', str(workspace / 'known-bills.json'),
        '--output', str(workspace / 'out' / 'bills.json'),
        '--cache', str(workspace / 'member-cache.json'),
        '--delay', '0',
        *extra,
    ]


def test_main_writes_output_and_cache(workspace):
    with pytest.raises(SystemExit) as exc:
        run_build_data.main(_argv(workspace))
    assert exc.value.code == 0

    document = json.loads((workspace / 'out' / 'bills.json').read_text(encoding='utf-8'))
    assert document['sessionYear'] == '2025'
    assert document['totalBills'] == 1
    bill = document['issues']['Education'][0]
    assert bill['id'] == 'SB123'
    assert bill['nickname'] == 'Safe Schools'
    assert bill['primeSponsor']['email'] == 'jdoe@pasen.gov'

    cache = json.loads((workspace / 'member-cache.json').read_text(encoding='utf-8'))
    assert '/senate/members/bio/1234/jane-doe' in cache


def test_dry_run_writes_nothing(workspace):
    with pytest.raises(SystemExit) as exc:
        run_build_data.main(_argv(workspace, '--dry-run'))
    assert exc.value.code == 0
    assert not (workspace / 'out' / 'bills.json').exists()
    assert not (workspace / 'member-cache.json').exists()


def test_missing_issues_config_exits_nonzero(workspace):
    (workspace / 'issues.json').unlink()
    with pytest.raises(SystemExit) as exc:
        run_build_data.main(_argv(workspace))
    assert exc.value.code == 1
    assert not (workspace / 'out' / 'bills.json').exists()


def test_bad_delay_setting_exits_nonzero(workspace, monkeypatch):
    monkeypatch.setenv('REQUEST_DELAY_SECONDS', 'fast')
    with pytest.raises(SystemExit) as exc:
        run_build_data.main(_argv(workspace))
    assert exc.value.code == 1
