"""Rewriting of meeting URLs to select the configured Google or Zoom account."""
import logging
import re
from typing import Iterable, Optional
from urllib.parse import urlencode, urlsplit

from processor.models import Event
from processor.rules import first_matching
from processor.url_classifier import is_zoom_host
from settings.config_loader import AccountRule, Configuration

logger = logging.getLogger(__name__)

GOOGLE = 'google'
ZOOM = 'zoom'

GOOGLE_MEET_HOST = 'meet.google.com'
ZOOM_ID_PATH_RE = re.compile(r'^/(j|s)/(\d+)')
ZOOM_ACTIONS = {'j': 'join', 's': 'start'}


def resolve_account(event: Event, account_rules: Iterable[AccountRule],
                    url: Optional[str] = None) -> Optional[str]:
    """
    Find the account whose rules first match the event and meeting URL.

    Args:
        event: Event owning the meeting URL
        account_rules: Account rules in configuration order
        url: Meeting URL, tested against the rules' url patterns

    Returns:
        Account identifier or None
    """
    match = first_matching(account_rules, event, url)
    return match.account if match else None


def accounts_for(configuration: Configuration, account_type: str):
    if account_type == GOOGLE:
        return configuration.google_accounts
    if account_type == ZOOM:
        return configuration.zoom_accounts
    raise ValueError(f"Unknown account type: {account_type}")


def add_google_account(url: str, account: str) -> str:
    parts = urlsplit(url)
    if (parts.hostname or '').lower() != GOOGLE_MEET_HOST:
        return url

    param = urlencode({'authuser': account})
    base, _, fragment = url.partition('#')
    separator = '&' if parts.query else ('' if base.endswith('?') else '?')
    augmented = f"{base}{separator}{param}"
    return f"{augmented}#{fragment}" if fragment else augmented


def add_zoom_account(url: str, account: str) -> str:
    """
    Rewrite a Zoom join/start link into a zoommtg:// deep link for the account.

    Links without a /j/<id> or /s/<id> path are returned unchanged.
    """
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    match = ZOOM_ID_PATH_RE.match(parts.path)
    if not is_zoom_host(host) or not match:
        return url

    action = ZOOM_ACTIONS[match.group(1)]
    params = urlencode({'action': action, 'confno': match.group(2), 'uname': account})
    deep_link = f"zoommtg://{host}/{action}?{params}"
    if parts.query:
        deep_link = f"{deep_link}&{parts.query}"
    return deep_link


def augment_url(url: str, event: Event, configuration: Configuration) -> str:
    """
    Add account selection to a meeting URL when an account rule matches the event.

    Args:
        url: Meeting-classified URL
        event: Event owning the URL
        configuration: Loaded configuration with account rules

    Returns:
        Augmented URL, or the original URL when no account applies
    """
    host = (urlsplit(url).hostname or '').lower()

    if host == GOOGLE_MEET_HOST:
        account = resolve_account(event, accounts_for(configuration, GOOGLE), url)
        if account:
            return add_google_account(url, account)
    elif is_zoom_host(host):
        account = resolve_account(event, accounts_for(configuration, ZOOM), url)
        if account:
            augmented = add_zoom_account(url, account)
            if augmented != url:
                logger.debug(f"Rewrote Zoom URL for account '{account}' on '{event.title}'")
            return augmented

    return url
