"""Parser for icalBuddy's bullet/property listing output."""
import logging
import re
from datetime import datetime, time, timedelta
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from processor.models import Calendar, Event

logger = logging.getLogger(__name__)

BULLET = '• '
PROPERTY_INDENT = 4

CALENDAR_PROPERTY_RE = re.compile(r'^  (\w+): ?(.*)$')
EVENT_PROPERTY_RE = re.compile(r'^    (\w+): ?(.*)$')
DATE_LINE_RE = re.compile(r'^    \d{4}-\d{2}-\d{2}')
DATE_RANGE_RE = re.compile(r'^(\d{4}-\d{2}-\d{2}(?:T\S+)?)(?: - (\S+))?$')
CONTINUATION_RE = re.compile(r'^ {5,}\S')
BLANK_LINE_RE = re.compile(r'^\s*$')
ANY_CALENDAR_RE = re.compile(r'^(.*) \((.+)\)$')

TIMESTAMP_FORMATS = [
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M%z',
]
DATE_FORMATS = ['%Y-%m-%d']

EventFilter = Callable[[Event], bool]


def _set_text(name: str):
    def setter(event: Event, value: str) -> None:
        setattr(event, name, value)
    return setter


def _append_text(name: str):
    def appender(event: Event, value: str) -> None:
        current = getattr(event, name)
        setattr(event, name, value if current is None else f"{current}\n{value}")
    return appender


def _split_attendees(value: str) -> List[str]:
    return [name.strip() for name in value.split(',') if name.strip()]


def _set_attendees(event: Event, value: str) -> None:
    event.attendees = _split_attendees(value)


def _append_attendees(event: Event, value: str) -> None:
    event.attendees = (event.attendees or []) + _split_attendees(value)


# property name -> (setter, continuation appender)
EVENT_PROPERTIES = {
    'location': (_set_text('location'), _append_text('location')),
    'notes': (_set_text('notes'), _append_text('notes')),
    'url': (_set_text('url'), _append_text('url')),
    'attendees': (_set_attendees, _append_attendees),
}
TEXT_PROPERTIES = ('location', 'notes')


def accept_all(event: Event) -> bool:
    return True


def events_in_range(start: datetime, end: datetime) -> EventFilter:
    """
    Build an inclusion filter for events overlapping [start, end).

    Args:
        start: Window start (timezone-aware)
        end: Window end, exclusive (timezone-aware)

    Returns:
        Predicate usable as the parser's include argument
    """
    def in_range(event: Event) -> bool:
        if event.start_at is not None:
            event_end = event.end_at or event.start_at
            if event_end <= event.start_at:
                return start <= event.start_at < end
            return event.start_at < end and event_end > start

        if event.start_on is not None:
            # All-day events span [start_on 00:00, day after end_on 00:00)
            end_on = event.end_on or event.start_on
            day_start = datetime.combine(event.start_on, time.min, tzinfo=end.tzinfo)
            day_end = datetime.combine(end_on + timedelta(days=1), time.min,
                                       tzinfo=end.tzinfo)
            return day_start < end and day_end > start

        return True

    return in_range


class IcalBuddyOutputParser:
    """Line-oriented state machine over icalBuddy output."""

    def parse_calendars(self, lines: Iterable[str]) -> List[Calendar]:
        """
        Parse the output of `icalBuddy calendars`.

        Args:
            lines: Output lines, with or without trailing newlines

        Returns:
            List of Calendar objects in listing order
        """
        calendars = []
        current: Optional[Dict[str, str]] = None

        for raw_line in lines:
            line = raw_line.rstrip('\r\n')

            if line.startswith(BULLET):
                if current is not None:
                    calendars.append(Calendar(**current))
                current = {'title': line[len(BULLET):].strip()}
                continue

            match = CALENDAR_PROPERTY_RE.match(line)
            if current is None or not match:
                continue

            name, value = match.group(1).lower(), match.group(2).strip()
            if name in ('type', 'uid'):
                current[name] = value

        if current is not None:
            calendars.append(Calendar(**current))

        logger.info(f"Parsed {len(calendars)} calendars")
        return calendars

    def parse_events(self, lines: Iterable[str], calendars: Iterable[Calendar],
                     include: Optional[EventFilter] = None) -> List[Event]:
        """
        Parse event listing output into Event objects.

        Args:
            lines: Output lines of the events listing
            calendars: Known calendars, used to split "title (calendar)" bullets
            include: Filter applied to each completed event (default: accept all)

        Returns:
            List of included Event objects in listing order
        """
        events = list(self.iter_events(lines, calendars, include))
        logger.info(f"Parsed {len(events)} events")
        return events

    def iter_events(self, lines: Iterable[str], calendars: Iterable[Calendar],
                    include: Optional[EventFilter] = None) -> Iterator[Event]:
        """Yield events one bullet at a time as the listing is read."""
        include = include or accept_all
        bullet_re = self._bullet_pattern([calendar.title for calendar in calendars])

        event: Optional[Event] = None
        active_property: Optional[str] = None
        # Blank lines inside a multi-line value, kept only if more text follows
        pending_blank_lines = 0

        for raw_line in lines:
            line = raw_line.rstrip('\r\n')

            if line.startswith(BULLET):
                if event is not None and include(event):
                    yield event
                event, active_property = self._start_event(line, bullet_re), None
                pending_blank_lines = 0
                continue

            if event is None:
                continue

            if BLANK_LINE_RE.match(line):
                if active_property in TEXT_PROPERTIES:
                    pending_blank_lines += 1
                continue

            if active_property and CONTINUATION_RE.match(line):
                _, appender = EVENT_PROPERTIES[active_property]
                for _ in range(pending_blank_lines):
                    appender(event, '')
                appender(event, self._strip_indent(line, active_property))
                pending_blank_lines = 0
                continue

            pending_blank_lines = 0

            if DATE_LINE_RE.match(line):
                self._apply_date_range(event, line.strip())
                active_property = None
                continue

            match = EVENT_PROPERTY_RE.match(line)
            if match:
                name, value = match.group(1).lower(), match.group(2)
                if name in EVENT_PROPERTIES:
                    setter, _ = EVENT_PROPERTIES[name]
                    setter(event, value)
                    active_property = name
                else:
                    logger.debug(f"Ignoring unknown property '{name}' on '{event.title}'")
                    active_property = None
                continue

        if event is not None and include(event):
            yield event

    def _bullet_pattern(self, titles: List[str]) -> 're.Pattern[str]':
        if not titles:
            return ANY_CALENDAR_RE
        # Longest title first so "Work (Shared)" wins over "Shared"
        alternatives = '|'.join(
            re.escape(title) for title in sorted(titles, key=len, reverse=True)
        )
        return re.compile(rf'^(.*) \(({alternatives})\)$')

    def _start_event(self, line: str, bullet_re) -> Optional[Event]:
        match = bullet_re.match(line[len(BULLET):])
        if not match:
            logger.debug(f"Skipping bullet without a known calendar: {line!r}")
            return None
        return Event(title=match.group(1), calendar=match.group(2))

    def _strip_indent(self, line: str, property_name: str) -> str:
        width = PROPERTY_INDENT + len(property_name) + 2
        stripped = line.lstrip(' ')
        indent = len(line) - len(stripped)
        return ' ' * max(indent - width, 0) + stripped

    def _apply_date_range(self, event: Event, text: str) -> None:
        match = DATE_RANGE_RE.match(text.replace(' at ', ''))
        if not match:
            logger.warning(f"Invalid date/time range for '{event.title}': {text}")
            return

        start_text, end_text = match.group(1), match.group(2)
        start = self._parse_boundary(start_text, event)

        if end_text is None:
            end = start
        else:
            if end_text.startswith('T'):
                # Same-day end: only the time is printed
                end_text = start_text[:10] + end_text
            end = self._parse_boundary(end_text, event)

        if start is not None:
            event.start_at, event.start_on = start
        if end is not None:
            event.end_at, event.end_on = end

    def _parse_boundary(self, text: str, event: Event) -> Optional[Tuple]:
        """
        Parse one side of a date/time range.

        Returns:
            (timestamp or None, date) tuple, or None if the text is neither shape
        """
        for fmt in TIMESTAMP_FORMATS:
            try:
                timestamp = datetime.strptime(text, fmt)
                return timestamp, timestamp.date()
            except ValueError:
                continue

        for fmt in DATE_FORMATS:
            try:
                return None, datetime.strptime(text, fmt).date()
            except ValueError:
                continue

        logger.warning(f"Invalid date/time range for '{event.title}': {text}")
        return None
