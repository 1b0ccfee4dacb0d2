"""Data models for calendar listings and events."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S%z'
DATE_FORMAT = '%Y-%m-%d'


@dataclass(frozen=True)
class Calendar:
    """Calendar source as listed by the listing tool."""
    title: str
    type: Optional[str] = None
    uid: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'title': self.title, 'type': self.type, 'uid': self.uid}


@dataclass
class Event:
    """Single calendar occurrence parsed from the listing tool output."""
    title: str
    calendar: str
    start_at: Optional[datetime] = None
    start_on: Optional[date] = None
    end_at: Optional[datetime] = None
    end_on: Optional[date] = None
    attendees: Optional[List[str]] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    url: Optional[str] = None
    urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the event for JSON output.

        Returns:
            Dictionary with timestamps and dates rendered as strings
        """
        return {
            'title': self.title,
            'calendar': self.calendar,
            'start_at': _format(self.start_at, TIMESTAMP_FORMAT),
            'start_on': _format(self.start_on, DATE_FORMAT),
            'end_at': _format(self.end_at, TIMESTAMP_FORMAT),
            'end_on': _format(self.end_on, DATE_FORMAT),
            'attendees': list(self.attendees) if self.attendees is not None else None,
            'location': self.location,
            'notes': self.notes,
            'url': self.url,
            'urls': [str(url) for url in self.urls],
        }


def _format(value, fmt: str) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(fmt)
