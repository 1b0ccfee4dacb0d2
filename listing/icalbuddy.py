"""Client for the icalBuddy command-line calendar listing tool."""
import logging
import shutil
import subprocess
import tempfile
import threading
from datetime import datetime
from typing import Iterable, List, Optional

from listing.output_parser import BULLET, EventFilter, IcalBuddyOutputParser
from processor.models import Calendar, Event

logger = logging.getLogger(__name__)


class ListingError(RuntimeError):
    """Raised when icalBuddy is unavailable or fails."""


class IcalBuddyClient:
    """Runs icalBuddy and feeds its output to the listing parser."""

    DATE_FORMAT = '%Y-%m-%d'
    TIME_FORMAT = 'T%H:%M:%S%z'
    EVENT_PROPERTIES = 'title,datetime,location,url,notes,attendees'
    RANGE_FORMAT = '%Y-%m-%d %H:%M:%S %z'

    def __init__(self, executable: str = 'icalBuddy', timeout: int = 30,
                 parser: Optional[IcalBuddyOutputParser] = None):
        """
        Initialize the icalBuddy client.

        Args:
            executable: icalBuddy command name or path (default: icalBuddy)
            timeout: Seconds to wait for icalBuddy to finish (default: 30)
            parser: Output parser (default: a new IcalBuddyOutputParser)
        """
        self.executable = executable
        self.timeout = timeout
        self.parser = parser or IcalBuddyOutputParser()

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def calendars_command(self) -> List[str]:
        return [self.executable, 'calendars']

    def events_command(self, calendars: Iterable[Calendar], start: datetime,
                       end: datetime) -> List[str]:
        """
        Build the icalBuddy command line listing events between start and end.

        Args:
            calendars: Calendars to include; identified by UID when known
            start: Window start
            end: Window end

        Returns:
            Command line as an argument list
        """
        command = [
            self.executable,
            '--noRelativeDates',
            '--bullet', BULLET,
            '--dateFormat', self.DATE_FORMAT,
            '--timeFormat', self.TIME_FORMAT,
            '--includeEventProps', self.EVENT_PROPERTIES,
            '--propertyOrder', self.EVENT_PROPERTIES,
        ]

        identifiers = [calendar.uid or calendar.title for calendar in calendars]
        if identifiers:
            command.extend(['--includeCals', ','.join(identifiers)])

        command.extend([
            f"eventsFrom:{start.strftime(self.RANGE_FORMAT)}",
            f"to:{end.strftime(self.RANGE_FORMAT)}",
        ])
        return command

    def fetch_calendars(self) -> List[Calendar]:
        """
        List the calendars known to icalBuddy.

        Raises:
            ListingError: If icalBuddy is missing or fails
        """
        logger.info("Fetching calendar list from icalBuddy")
        return self._run(self.calendars_command(), self.parser.parse_calendars)

    def fetch_events(self, calendars: List[Calendar], start: datetime,
                     end: datetime, include: Optional[EventFilter] = None) -> List[Event]:
        """
        List events of the given calendars between start and end.

        Args:
            calendars: Calendars to list events from
            start: Window start
            end: Window end
            include: Filter applied to each parsed event

        Returns:
            List of parsed Event objects

        Raises:
            ListingError: If icalBuddy is missing or fails
        """
        logger.info(
            f"Fetching events from {len(calendars)} calendars "
            f"between {start.isoformat()} and {end.isoformat()}"
        )
        command = self.events_command(calendars, start, end)
        return self._run(
            command,
            lambda lines: self.parser.parse_events(lines, calendars, include),
        )

    def _run(self, command: List[str], parse):
        if not self.is_available():
            raise ListingError(f"icalBuddy executable not found: {self.executable}")

        logger.debug(f"Running {command}")
        # stderr goes to a file so a chatty icalBuddy cannot block on a full pipe
        with tempfile.TemporaryFile(mode='w+', encoding='utf-8') as stderr:
            try:
                process = subprocess.Popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=stderr,
                    text=True,
                    encoding='utf-8',
                )
            except OSError as e:
                raise ListingError(f"Failed to start icalBuddy: {e}") from e

            expired = threading.Event()

            def expire():
                expired.set()
                process.kill()

            timer = threading.Timer(self.timeout, expire)
            timer.start()
            try:
                with process:
                    result = parse(process.stdout)
            finally:
                timer.cancel()

            if process.returncode != 0:
                if expired.is_set():
                    raise ListingError(
                        f"icalBuddy did not finish within {self.timeout} seconds"
                    )
                stderr.seek(0)
                raise ListingError(
                    f"icalBuddy exited with status {process.returncode}: {stderr.read().strip()}"
                )

        return result
