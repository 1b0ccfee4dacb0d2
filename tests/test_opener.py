"""Unit tests for OpenerResolver."""
import pytest

from processor.models import Event
from processor.opener import OpenerResolver, build_command, default_template
from settings.config_loader import parse_configuration


@pytest.fixture
def open_rules():
    """Create open rules for the Work calendar and for Zoom URLs."""
    configuration = parse_configuration({
        'urls': {
            'open': [
                {'with': 'firefox %s', 'if': [{'calendar': 'Work'}]},
                {'with': 'zoom-launcher %s', 'if': [{'url': {'type': 'regexp', 'pattern': '^zoommtg:'}}]},
            ],
        },
    })
    return configuration.open_rules


class TestOpenerResolver:
    """Test cases for OpenerResolver class."""

    def test_matching_calendar_rule(self, open_rules):
        """Test resolution by event calendar."""
        resolver = OpenerResolver(open_rules, default='open %s')
        event = Event('Standup', 'Work')

        assert resolver.resolve('https://meet.google.com/abc-defg-hij', event) == 'firefox %s'

    def test_no_match_uses_default(self, open_rules):
        """Test fallback to the default template."""
        resolver = OpenerResolver(open_rules, default='open %s')
        event = Event('Dinner', 'Home')

        assert resolver.resolve('https://meet.google.com/abc-defg-hij', event) == 'open %s'

    def test_url_rule(self, open_rules):
        """Test resolution by URL."""
        resolver = OpenerResolver(open_rules, default='open %s')
        event = Event('Dinner', 'Home')

        assert resolver.resolve('zoommtg://zoom.us/join?confno=1', event) == 'zoom-launcher %s'

    def test_first_rule_wins(self, open_rules):
        """Test that configuration order decides between matching rules."""
        resolver = OpenerResolver(open_rules, default='open %s')
        event = Event('Standup', 'Work')

        assert resolver.resolve('zoommtg://zoom.us/join?confno=1', event) == 'firefox %s'

    def test_no_rules_configured(self):
        """Test resolution without any open rules."""
        resolver = OpenerResolver((), default='open %s')

        assert resolver.resolve('https://example.com', Event('x', 'Work')) == 'open %s'

    def test_platform_default(self):
        """Test the generic opener for each platform."""
        assert default_template('darwin') == 'open %s'
        assert default_template('linux') == 'xdg-open %s'
        assert OpenerResolver(()).default == default_template()


class TestBuildCommand:
    """Test cases for build_command."""

    def test_url_is_shell_quoted(self):
        """Test that the URL is quoted for the shell."""
        command = build_command('firefox %s', 'https://example.com/?a=1&b=2')

        assert command == "firefox 'https://example.com/?a=1&b=2'"
