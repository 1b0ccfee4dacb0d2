"""URL pipeline: extract, filter, classify, augment and select event URLs."""
import logging
from typing import List

from processor.accounts import augment_url
from processor.meeting_selector import combine_urls, select_meeting_url
from processor.models import Event
from processor.url_classifier import (
    MEETING,
    OTHER,
    classify_url,
    extract_urls,
    is_ignored,
    is_valid_url,
)
from settings.config_loader import Configuration

logger = logging.getLogger(__name__)


class UrlProcessor:
    """Populates Event.urls from the URLs found in each event's text fields."""

    def __init__(self, configuration: Configuration):
        """
        Initialize the URL processor.

        Args:
            configuration: Compiled configuration with ignore and account rules
        """
        self.configuration = configuration

    def process_events(self, events: List[Event]) -> List[Event]:
        """
        Fill in the urls of each event.

        Args:
            events: Parsed Event objects

        Returns:
            The same events, with urls populated
        """
        with_meeting = 0

        for event in events:
            try:
                event.urls = self._process_single_event(event)
                if event.urls and classify_url(event.urls[0]) == MEETING:
                    with_meeting += 1
            except Exception as e:
                logger.warning(f"Failed to process URLs of event '{event.title}': {e}")
                event.urls = []
                continue

        logger.info(
            f"Processed URLs of {len(events)} events, "
            f"{with_meeting} with a meeting URL"
        )
        return events

    def _process_single_event(self, event: Event) -> List[str]:
        meeting_urls = []
        other_urls = []

        for url in extract_urls(event):
            if not is_valid_url(url):
                continue
            if is_ignored(url, event, self.configuration.ignore_rules):
                continue

            bucket = classify_url(url)
            if bucket == MEETING:
                meeting_urls.append(augment_url(url, event, self.configuration))
            elif bucket == OTHER:
                other_urls.append(url)

        return combine_urls(select_meeting_url(meeting_urls), other_urls)
