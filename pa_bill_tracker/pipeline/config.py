"""
Configuration loading.

Settings come from environment variables (a .env file is loaded first).
Topic and known-bills configuration are JSON files.
"""

import os
import json
import logging
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from pa_bill_tracker.scraping.utils import normalize_bill_id

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'issues_path': 'data/issues.json',
    'known_bills_path': 'data/known-bills.json',
    'output_path': 'public/data/bills.json',
    'cache_path': '.member-cache.json',
    'request_delay': 0.3,
    'request_timeout': 30,
    'log_level': 'INFO',
    'activity_log_path': None,
}


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


def initialize_environment(dotenv_path: Optional[str] = None) -> None:
    """Load environment variables from a .env file if one exists."""
    load_dotenv(dotenv_path)


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Dict[str, Any]:
    """Settings from the environment, falling back to defaults."""
    return {
        'issues_path': os.getenv('ISSUES_CONFIG_PATH', DEFAULT_SETTINGS['issues_path']),
        'known_bills_path': os.getenv('KNOWN_BILLS_PATH', DEFAULT_SETTINGS['known_bills_path']),
        'output_path': os.getenv('OUTPUT_PATH', DEFAULT_SETTINGS['output_path']),
        'cache_path': os.getenv('MEMBER_CACHE_PATH', DEFAULT_SETTINGS['cache_path']),
        'request_delay': _env_number('REQUEST_DELAY_SECONDS', DEFAULT_SETTINGS['request_delay']),
        'request_timeout': _env_number('REQUEST_TIMEOUT_SECONDS', DEFAULT_SETTINGS['request_timeout']),
        'log_level': os.getenv('LOG_LEVEL', DEFAULT_SETTINGS['log_level']).upper(),
        'activity_log_path': os.getenv('ACTIVITY_LOG_PATH') or None,
    }


def _read_json(path: str, what: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"{what} not found: {path}")
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read {what} {path}: {e}")


def load_issues_config(path: str) -> Dict[str, Any]:
    """
    Load topic configuration.

    Expected shape:
        {"session_year": "2025",
         "issues": [{"name": "Education", "keywords": ["school", "teacher"]}]}

    Returns:
        Dict with session_year (str) and issues (list of {name, keywords})
    """
    data = _read_json(path, 'Issues config')
    if not isinstance(data, dict) or not isinstance(data.get('issues'), list):
        raise ConfigError(f"Issues config {path} must contain an 'issues' list")

    issues = []
    for i, issue in enumerate(data['issues']):
        if not isinstance(issue, dict) or not issue.get('name'):
            raise ConfigError(f"Issue #{i} in {path} has no name")
        keywords = issue.get('keywords')
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ConfigError(f"Issue '{issue['name']}' in {path} needs a list of keywords")
        issues.append({'name': issue['name'], 'keywords': keywords})

    session_year = data.get('session_year')
    if session_year is None:
        raise ConfigError(f"Issues config {path} has no session_year")

    return {'session_year': str(session_year), 'issues': issues}


def load_known_bills(path: str) -> Dict[str, Any]:
    """
    Load hand-maintained bill annotations.

    Every key is optional:
        {"hide": ["HB100"], "nicknames": {"SB123": "..."},
         "descriptions": {...}, "notes": {...}}
    """
    data = _read_json(path, 'Known bills config')
    if not isinstance(data, dict):
        raise ConfigError(f"Known bills config {path} must be a JSON object")

    known = {
        'hide': {normalize_bill_id(bill_id) for bill_id in data.get('hide') or []},
    }
    for key in ('nicknames', 'descriptions', 'notes'):
        mapping = data.get(key) or {}
        if not isinstance(mapping, dict):
            raise ConfigError(f"'{key}' in {path} must be an object")
        known[key] = {normalize_bill_id(bill_id): value for bill_id, value in mapping.items()}
    return known


def empty_known_bills() -> Dict[str, Any]:
    return {'hide': set(), 'nicknames': {}, 'descriptions': {}, 'notes': {}}
