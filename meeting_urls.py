"""Command-line entry point listing calendar events with their meeting URLs."""
import argparse
import json
import logging
import os
import subprocess
import sys
import time
from datetime import datetime, time as dt_time, timedelta
from typing import Any, List, Optional, Tuple

from listing.icalbuddy import IcalBuddyClient, ListingError
from listing.output_parser import events_in_range
from processor.opener import OpenerResolver, build_command
from processor.rules import ConfigurationError
from processor.url_processor import UrlProcessor
from settings.config_loader import Configuration, load_configuration

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'WARNING') -> None:
    """
    Configure logging with JSON formatter on stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='meeting-urls',
        description='List calendar events and their meeting URLs using icalBuddy.',
    )
    parser.add_argument(
        '--config',
        default=os.environ.get('MEETING_URLS_CONFIG'),
        help='Path to the YAML configuration file',
    )
    parser.add_argument(
        '--log-level',
        default=os.environ.get('LOG_LEVEL', 'WARNING'),
        help='Logging level (default: WARNING)',
    )

    subcommands = parser.add_subparsers(dest='command', required=True)
    subcommands.add_parser('calendars', help='List calendars as JSON')

    for name, help_text in (
        ('events', 'List events in a time window as JSON'),
        ('open', 'Open the meeting URL of the first event in a time window'),
    ):
        subcommand = subcommands.add_parser(name, help=help_text)
        subcommand.add_argument('--from', dest='start', type=_parse_datetime,
                                help='Window start, ISO 8601 (default: now)')
        subcommand.add_argument('--to', dest='end', type=_parse_datetime,
                                help='Window end, ISO 8601 (default: end of today)')
        if name == 'open':
            subcommand.add_argument('--dry-run', action='store_true',
                                    help='Print the command instead of running it')

    return parser


def _parse_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date/time: {value}") from e
    return parsed if parsed.tzinfo else parsed.astimezone()


def time_window(start: Optional[datetime] = None,
                end: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Default window: from now until the end of the current day."""
    start = start or datetime.now().astimezone()
    if end is None:
        end = datetime.combine(start.date() + timedelta(days=1), dt_time.min,
                               tzinfo=start.tzinfo)
    return start, end


def list_calendars(client: IcalBuddyClient, configuration: Configuration):
    calendars = client.fetch_calendars()
    return [c for c in calendars if configuration.includes_calendar(c.title)]


def list_events(client: IcalBuddyClient, configuration: Configuration,
                start: datetime, end: datetime):
    """
    Fetch events overlapping [start, end) and populate their URLs.

    Args:
        client: icalBuddy client
        configuration: Loaded configuration
        start: Window start
        end: Window end

    Returns:
        List of Event objects with urls populated
    """
    calendars = list_calendars(client, configuration)
    if not calendars:
        return []

    events = client.fetch_events(calendars, start, end,
                                 include=events_in_range(start, end))
    return UrlProcessor(configuration).process_events(events)


def open_first_meeting(events, configuration: Configuration,
                       dry_run: bool = False) -> Optional[str]:
    """
    Open the first URL of the first event that has one.

    Returns:
        The executed (or, with dry_run, printed) command, or None if no event has URLs
    """
    resolver = OpenerResolver(configuration.open_rules)

    for event in events:
        if not event.urls:
            continue

        url = event.urls[0]
        command = build_command(resolver.resolve(url, event), url)
        logging.getLogger(__name__).info(f"Opening {url} for '{event.title}'")

        if not dry_run:
            subprocess.run(command, shell=True, check=True)
        return command

    return None


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main command-line handler.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        configuration = load_configuration(args.config)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR

    try:
        timeout = int(os.environ.get('ICALBUDDY_TIMEOUT', '30'))
    except ValueError:
        logger.error(f"Invalid ICALBUDDY_TIMEOUT: {os.environ['ICALBUDDY_TIMEOUT']!r}")
        return EXIT_CONFIGURATION_ERROR

    client = IcalBuddyClient(
        executable=os.environ.get('ICALBUDDY_PATH', 'icalBuddy'),
        timeout=timeout,
    )

    try:
        if args.command == 'calendars':
            calendars = list_calendars(client, configuration)
            _print_json([calendar.to_dict() for calendar in calendars])
            return EXIT_OK

        start, end = time_window(args.start, args.end)
        events = list_events(client, configuration, start, end)

        if args.command == 'events':
            _print_json([event.to_dict() for event in events])
            return EXIT_OK

        command = open_first_meeting(events, configuration, dry_run=args.dry_run)
        if command is None:
            logger.warning("No event with a URL found in the time window")
            return EXIT_FAILURE
        if args.dry_run:
            print(command)
        return EXIT_OK

    except ListingError as e:
        logger.error(f"Failed to list calendar data: {e}")
        return EXIT_FAILURE
    except subprocess.CalledProcessError as e:
        logger.error(f"Open command failed with status {e.returncode}: {e.cmd}")
        return EXIT_FAILURE
    finally:
        logger.info(
            f"Command '{args.command}' finished in "
            f"{round(time.time() - start_time, 2)} seconds"
        )


if __name__ == '__main__':
    sys.exit(main())
