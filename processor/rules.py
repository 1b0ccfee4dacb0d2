"""Pattern compiler and rule predicates shared by ignore, account and open rules."""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from processor.models import Event


class ConfigurationError(ValueError):
    """Raised when the configuration contains an unsupported value or shape."""


class RuleField(Enum):
    """Event fields a rule can constrain."""
    CALENDAR = 'calendar'
    TITLE = 'title'
    LOCATION = 'location'
    NOTES = 'notes'
    URL = 'url'
    ATTENDEE = 'attendee'


@dataclass(frozen=True)
class AnyPattern:
    """Matches every string."""

    def matches(self, text: str) -> bool:
        return True


@dataclass(frozen=True)
class LiteralPattern:
    """Matches one exact string."""
    value: str

    def matches(self, text: str) -> bool:
        return text == self.value


@dataclass(frozen=True)
class RegexpPattern:
    """Matches strings containing a match of a regular expression."""
    regex: 're.Pattern[str]'

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None


def compile_pattern(value: Any):
    """
    Compile a configuration value into a text pattern.

    Args:
        value: None, a literal string, or a {type: regexp, pattern: ...} mapping

    Returns:
        Pattern object exposing matches(text)

    Raises:
        ConfigurationError: If the value has an unsupported shape
    """
    if value is None:
        return AnyPattern()

    if isinstance(value, str):
        return LiteralPattern(value)

    if isinstance(value, dict):
        pattern_type = value.get('type')
        if pattern_type != 'regexp':
            raise ConfigurationError(f"Unsupported pattern type: {pattern_type!r}")

        source = value.get('pattern')
        if not isinstance(source, str):
            raise ConfigurationError(
                f"Regexp pattern must be a string, got: {source!r}"
            )

        try:
            return RegexpPattern(re.compile(source))
        except re.error as e:
            raise ConfigurationError(
                f"Invalid regexp pattern {source!r}: {e}"
            ) from e

    raise ConfigurationError(
        f"Unsupported pattern value of type {type(value).__name__}: {value!r}"
    )


@dataclass(frozen=True)
class Rule:
    """Conjunction of field patterns an event (and optionally a URL) must match."""
    patterns: Dict[RuleField, Any] = field(default_factory=dict)

    def matches(self, event: Event, url: Optional[str] = None) -> bool:
        """
        Check whether the event and candidate URL satisfy every field of the rule.

        Args:
            event: Event the URL belongs to
            url: Candidate URL, tested against the rule's url pattern

        Returns:
            True if all constrained fields match
        """
        for rule_field in RuleField:
            pattern = self.patterns.get(rule_field)
            if pattern is None:
                continue

            if rule_field is RuleField.URL:
                if url is None or not pattern.matches(url):
                    return False
            elif rule_field is RuleField.ATTENDEE:
                attendees = event.attendees or []
                if not any(pattern.matches(attendee) for attendee in attendees):
                    return False
            else:
                value = getattr(event, rule_field.value)
                if value is None or not pattern.matches(value):
                    return False

        return True


def compile_rule(data: Any) -> Rule:
    """
    Compile a rule mapping such as {calendar: Work, url: {type: regexp, ...}}.

    Raises:
        ConfigurationError: If the rule is not a mapping or names an unknown field
    """
    if data is None:
        return Rule()

    if not isinstance(data, dict):
        raise ConfigurationError(f"Rule must be a mapping, got: {data!r}")

    patterns = {}
    for key, value in data.items():
        try:
            rule_field = RuleField(key)
        except ValueError:
            raise ConfigurationError(f"Unsupported rule field: {key!r}") from None
        patterns[rule_field] = compile_pattern(value)

    return Rule(patterns)


def compile_rules(data: Any) -> Tuple[Rule, ...]:
    """
    Compile a list of rules; None stands for a single unconditional rule.

    Raises:
        ConfigurationError: If the value is not a list of rule mappings
    """
    if data is None:
        return (Rule(),)

    if not isinstance(data, list):
        raise ConfigurationError(f"Rules must be a list, got: {data!r}")

    return tuple(compile_rule(item) for item in data)


def any_rule_matches(rules: Iterable[Rule], event: Event,
                     url: Optional[str] = None) -> bool:
    return any(rule.matches(event, url) for rule in rules)


def first_matching(entries: Iterable, event: Event, url: Optional[str] = None):
    """
    Return the first entry whose rules match, in configuration order.

    Args:
        entries: Objects exposing a `rules` tuple
        event: Event to test
        url: Candidate URL, if any

    Returns:
        Matching entry or None
    """
    for entry in entries:
        if any_rule_matches(entry.rules, event, url):
            return entry
    return None
