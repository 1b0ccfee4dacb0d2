"""Scoring of meeting URLs and selection of the best one per event."""
import re
from typing import Iterable, List, Optional
from urllib.parse import parse_qs, urlsplit

from processor.url_classifier import is_zoom_host

ZOOM_JOIN_PATH_RE = re.compile(r'^/(?:[js]/|wc/(?:join|start)\b|(?:join|start)$)')
ZOOM_PASSWORD_PARAM = 'pwd'
MEET_CODE_PATH_RE = re.compile(r'^/[a-z]+(?:-[a-z]+){2,}$')
WHEREBY_ROOM_PATH_RE = re.compile(r'^/[^/]+/?$')

BEST_SCORE = 10
JOIN_SCORE = 9
GENERIC_SCORE = 1


def score_meeting_url(url: str) -> int:
    """
    Score a meeting URL; higher means more likely to be the actual meeting link.

    Args:
        url: Meeting-classified URL, possibly augmented

    Returns:
        Score between 0 and 10
    """
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    path = parts.path

    if is_zoom_host(host):
        if not ZOOM_JOIN_PATH_RE.match(path):
            return GENERIC_SCORE
        has_password = ZOOM_PASSWORD_PARAM in parse_qs(parts.query, keep_blank_values=True)
        return BEST_SCORE if has_password else JOIN_SCORE

    if host == 'meet.google.com':
        return JOIN_SCORE if MEET_CODE_PATH_RE.match(path) else GENERIC_SCORE

    if host == 'whereby.com':
        return JOIN_SCORE if WHEREBY_ROOM_PATH_RE.match(path) else GENERIC_SCORE

    return 0


def select_meeting_url(urls: Iterable[str]) -> Optional[str]:
    """Pick the highest scoring URL; the first one wins ties."""
    best, best_score = None, -1
    for url in urls:
        score = score_meeting_url(url)
        if score > best_score:
            best, best_score = url, score
    return best


def combine_urls(meeting_url: Optional[str], other_urls: Iterable[str]) -> List[str]:
    """Put the meeting URL first and drop repeated URLs, keeping first occurrences."""
    candidates = ([meeting_url] if meeting_url else []) + list(other_urls)
    return list(dict.fromkeys(str(url) for url in candidates))
