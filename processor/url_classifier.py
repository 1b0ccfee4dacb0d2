"""URL extraction from event text fields and meeting/other classification."""
import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from requests.exceptions import RequestException
from requests.models import PreparedRequest

from processor.models import Event
from processor.rules import Rule, any_rule_matches

logger = logging.getLogger(__name__)

MEETING = 'meeting'
OTHER = 'other'

URL_RE = re.compile(r'https?://[^\s<>"\']+')
HTML_TAG_RE = re.compile(r'<\s*(a|br|p|div|span|b|i|u|ul|li|html|body)\b[^>]*>', re.IGNORECASE)

SCANNED_FIELDS = ('url', 'location', 'notes')
ZOOM_DOMAINS = ('zoom.us', 'zoom.com')
SLACK_DOMAIN = 'slack.com'
DROPPED_HOSTS = ('tel.meet', 'www.getclockwise.com')


def is_zoom_host(host: str) -> bool:
    return any(host == domain or host.endswith('.' + domain) for domain in ZOOM_DOMAINS)


def is_slack_host(host: str) -> bool:
    return host == SLACK_DOMAIN or host.endswith('.' + SLACK_DOMAIN)


# Ordered (host predicate, path predicate, bucket); first match wins.
CLASSIFICATION_TABLE = [
    (is_slack_host, lambda path: path.startswith('/team/'), None),
    (lambda host: host in DROPPED_HOSTS, lambda path: True, None),
    (is_zoom_host, lambda path: True, MEETING),
    (lambda host: host == 'meet.google.com', lambda path: True, MEETING),
    (lambda host: host == 'whereby.com', lambda path: True, MEETING),
]


def classify_url(url: str) -> Optional[str]:
    """
    Classify a URL by host and path.

    Args:
        url: Absolute http(s) URL

    Returns:
        MEETING, OTHER, or None for URLs that are dropped entirely
    """
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    path = parts.path or '/'

    for host_matches, path_matches, bucket in CLASSIFICATION_TABLE:
        if host_matches(host) and path_matches(path):
            return bucket

    return OTHER


def _plain_text(value: str) -> str:
    """Flatten HTML markup, keeping each link target ahead of its text."""
    if not HTML_TAG_RE.search(value):
        return value

    soup = BeautifulSoup(value, 'html.parser')
    for anchor in soup.find_all('a', href=True):
        anchor.insert_before(f" {anchor['href']} ")
    return soup.get_text(' ')


def extract_urls(event: Event) -> List[str]:
    """
    Collect http(s) URLs from the event's url, location and notes, in that order.

    Duplicates are kept; deduplication happens after selection.
    """
    urls = []
    for field_name in SCANNED_FIELDS:
        value = getattr(event, field_name)
        if value:
            urls.extend(URL_RE.findall(_plain_text(value)))
    return urls


def is_valid_url(url: str) -> bool:
    """Check that the URL parses as a URI the way an HTTP client would."""
    try:
        PreparedRequest().prepare_url(url, None)
    except (RequestException, ValueError) as e:
        logger.warning(f"Skipping invalid URL {url!r}: {e}")
        return False
    return True


def is_ignored(url: str, event: Event, ignore_rules: Iterable[Rule]) -> bool:
    if any_rule_matches(ignore_rules, event, url):
        logger.debug(f"Ignoring URL {url} on '{event.title}'")
        return True
    return False
