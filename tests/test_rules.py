"""Unit tests for pattern compilation and rule matching."""
import pytest

from processor.models import Event
from processor.rules import (
    AnyPattern,
    ConfigurationError,
    LiteralPattern,
    Rule,
    RuleField,
    compile_pattern,
    compile_rule,
    compile_rules,
    first_matching,
)
from settings.config_loader import AccountRule


@pytest.fixture
def event():
    """Create a sample event."""
    return Event(
        title='Weekly Sync',
        calendar='Work',
        location='Room 4',
        notes='Agenda in doc',
        attendees=['alice@example.com', 'bob@example.com'],
    )


class TestCompilePattern:
    """Test cases for compile_pattern."""

    def test_none_matches_everything(self):
        """Test that an absent value matches any string, including empty."""
        pattern = compile_pattern(None)

        assert isinstance(pattern, AnyPattern)
        assert pattern.matches('')
        assert pattern.matches('anything at all')

    def test_literal_matches_exact_string_only(self):
        """Test that a literal string matches only itself."""
        pattern = compile_pattern('Work')

        assert isinstance(pattern, LiteralPattern)
        assert pattern.matches('Work')
        assert not pattern.matches('work')
        assert not pattern.matches('Work 2')
        assert not pattern.matches('')

    def test_literal_is_not_a_regexp(self):
        """Test that regexp metacharacters in literals are taken literally."""
        pattern = compile_pattern('a.c')

        assert pattern.matches('a.c')
        assert not pattern.matches('abc')

    def test_regexp_is_unanchored_search(self):
        """Test regexp descriptors."""
        starts_with_a = compile_pattern({'type': 'regexp', 'pattern': '^a'})
        contains_zoom = compile_pattern({'type': 'regexp', 'pattern': 'zoom'})

        assert starts_with_a.matches('apple')
        assert starts_with_a.matches('a')
        assert not starts_with_a.matches('banana')
        assert not starts_with_a.matches('')
        assert contains_zoom.matches('https://us02web.zoom.us/j/1')

    @pytest.mark.parametrize('value', [
        42,
        ['Work'],
        {'type': 'glob', 'pattern': '*'},
        {'pattern': 'x'},
        {'type': 'regexp'},
        {'type': 'regexp', 'pattern': '('},
    ])
    def test_unsupported_values_raise(self, value):
        """Test that unsupported shapes raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            compile_pattern(value)

    def test_error_names_unsupported_type(self):
        """Test that the error message names the offending type."""
        with pytest.raises(ConfigurationError, match='glob'):
            compile_pattern({'type': 'glob', 'pattern': '*'})


class TestRule:
    """Test cases for Rule matching."""

    def test_empty_rule_matches_everything(self, event):
        """Test that a rule without fields is unconstrained."""
        assert Rule().matches(event)
        assert Rule().matches(event, 'https://example.com')

    def test_calendar_mismatch_never_matches(self, event):
        """Test that a calendar mismatch fails regardless of other fields."""
        rule = compile_rule({
            'calendar': 'Personal',
            'title': 'Weekly Sync',
            'location': None,
        })

        assert not rule.matches(event)

    def test_all_fields_must_match(self, event):
        """Test conjunction of fields."""
        rule = compile_rule({
            'calendar': 'Work',
            'title': {'type': 'regexp', 'pattern': 'Sync$'},
        })

        assert rule.matches(event)

    def test_missing_event_field_does_not_match(self, event):
        """Test that a constrained field absent on the event is a mismatch."""
        event.location = None
        rule = compile_rule({'location': None})

        assert not rule.matches(event)

    def test_attendee_matches_any_attendee(self, event):
        """Test attendee matching against the attendee list."""
        bob = compile_rule({'attendee': 'bob@example.com'})
        carol = compile_rule({'attendee': 'carol@example.com'})

        assert bob.matches(event)
        assert not carol.matches(event)

    def test_attendee_without_attendees_does_not_match(self, event):
        """Test that an event without attendees fails an attendee rule."""
        event.attendees = None
        rule = compile_rule({'attendee': None})

        assert not rule.matches(event)

    def test_url_field_tests_candidate_url(self, event):
        """Test that the url field is compared with the candidate URL."""
        rule = compile_rule({'url': {'type': 'regexp', 'pattern': 'docs\\.google'}})

        assert rule.matches(event, 'https://docs.google.com/document/d/1')
        assert not rule.matches(event, 'https://meet.google.com/abc-defg-hij')
        assert not rule.matches(event)

    def test_compile_rule_builds_field_patterns(self):
        """Test that rule keys map onto RuleField members."""
        rule = compile_rule({'calendar': 'Work', 'notes': None})

        assert set(rule.patterns) == {RuleField.CALENDAR, RuleField.NOTES}

    def test_compile_rule_rejects_unknown_field(self):
        """Test that unknown rule keys raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match='organizer'):
            compile_rule({'organizer': 'me'})

    def test_compile_rule_rejects_non_mapping(self):
        """Test that a non-mapping rule raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            compile_rule('Work')

    def test_compile_rules_none_is_unconditional(self, event):
        """Test that an absent rule list compiles to one unconditional rule."""
        rules = compile_rules(None)

        assert rules == (Rule(),)
        assert rules[0].matches(event)

    def test_compile_rules_empty_list(self):
        """Test that an empty rule list stays empty."""
        assert compile_rules([]) == ()


class TestFirstMatching:
    """Test cases for first-match-wins resolution."""

    def test_returns_first_match_in_order(self, event):
        """Test that configuration order decides between matching entries."""
        entries = [
            AccountRule('personal@example.com', compile_rules([{'calendar': 'Home'}])),
            AccountRule('work@example.com', compile_rules([{'calendar': 'Work'}])),
            AccountRule('any@example.com', compile_rules(None)),
        ]

        assert first_matching(entries, event).account == 'work@example.com'

    def test_returns_none_without_match(self, event):
        """Test that no matching entry yields None."""
        entries = [AccountRule('x@example.com', compile_rules([]))]

        assert first_matching(entries, event) is None
