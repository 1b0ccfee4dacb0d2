"""Selection of the shell command template used to open a URL."""
import logging
import shlex
import sys
from typing import Iterable, Optional

from processor.models import Event
from processor.rules import first_matching
from settings.config_loader import URL_PLACEHOLDER, OpenRule

logger = logging.getLogger(__name__)


def default_template(platform: str = sys.platform) -> str:
    """Generic opener command of the platform."""
    if platform == 'darwin':
        return f"open {URL_PLACEHOLDER}"
    return f"xdg-open {URL_PLACEHOLDER}"


def build_command(template: str, url: str) -> str:
    return template.replace(URL_PLACEHOLDER, shlex.quote(url), 1)


class OpenerResolver:
    """Resolves the first configured open rule matching a URL and its event."""

    def __init__(self, open_rules: Iterable[OpenRule],
                 default: Optional[str] = None):
        self.open_rules = tuple(open_rules)
        self.default = default or default_template()

    def resolve(self, url: str, event: Event) -> str:
        """
        Return the command template for opening the URL.

        Args:
            url: URL to open
            event: Event the URL belongs to

        Returns:
            Template containing a single %s placeholder
        """
        match = first_matching(self.open_rules, event, url)
        if match is None:
            logger.debug(f"No open rule matched {url}, using default opener")
            return self.default
        return match.template
