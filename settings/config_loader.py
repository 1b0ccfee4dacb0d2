"""YAML configuration loading and rule compilation."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from processor.rules import (
    ConfigurationError,
    Rule,
    compile_pattern,
    compile_rule,
    compile_rules,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.config' / 'meeting-urls' / 'config.yml'
URL_PLACEHOLDER = '%s'


@dataclass(frozen=True)
class AccountRule:
    """Account identifier selected when any of its rules matches an event."""
    account: str
    rules: Tuple[Rule, ...]


@dataclass(frozen=True)
class OpenRule:
    """Command template selected when any of its rules matches a URL and event."""
    template: str
    rules: Tuple[Rule, ...]


@dataclass(frozen=True)
class Configuration:
    """Compiled configuration, loaded once per run."""
    calendars: Tuple[Any, ...] = ()
    ignore_rules: Tuple[Rule, ...] = ()
    google_accounts: Tuple[AccountRule, ...] = ()
    zoom_accounts: Tuple[AccountRule, ...] = ()
    open_rules: Tuple[OpenRule, ...] = ()
    source: Optional[str] = field(default=None, compare=False)

    def includes_calendar(self, title: str) -> bool:
        """True if the calendar passes the `calendars` filter (no filter = all)."""
        if not self.calendars:
            return True
        return any(pattern.matches(title) for pattern in self.calendars)


def load_configuration(path: Optional[str] = None) -> Configuration:
    """
    Load and compile the YAML configuration file.

    Args:
        path: Path to the configuration file (default: DEFAULT_CONFIG_PATH)

    Returns:
        Compiled Configuration; empty when the file is missing or empty

    Raises:
        ConfigurationError: If the file is not valid YAML or has an unsupported shape
    """
    config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.info(f"Configuration file not found, using defaults: {config_path}")
        return Configuration(source=str(config_path))

    text = config_path.read_text(encoding='utf-8')
    if not text.strip():
        return Configuration(source=str(config_path))

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in configuration file {config_path}: {e}"
        ) from e

    configuration = parse_configuration(data, source=str(config_path))
    logger.info(
        f"Loaded configuration from {config_path}: "
        f"{len(configuration.ignore_rules)} ignore rules, "
        f"{len(configuration.open_rules)} open rules"
    )
    return configuration


def parse_configuration(data: Any, source: Optional[str] = None) -> Configuration:
    """
    Compile a configuration structure into patterns and rules.

    Args:
        data: Parsed YAML document (mapping or None)
        source: Where the data came from, for diagnostics

    Returns:
        Compiled Configuration

    Raises:
        ConfigurationError: If any section has an unsupported shape
    """
    if data is None:
        return Configuration(source=source)

    root = _mapping(data, 'configuration')
    urls = _mapping(root.get('urls'), 'urls')
    accounts = _mapping(urls.get('account'), 'urls.account')

    return Configuration(
        calendars=tuple(
            compile_pattern(value)
            for value in _sequence(root.get('calendars'), 'calendars')
        ),
        ignore_rules=tuple(
            compile_rule(item)
            for item in _sequence(urls.get('ignore'), 'urls.ignore')
        ),
        google_accounts=_account_rules(accounts.get('google'), 'urls.account.google'),
        zoom_accounts=_account_rules(accounts.get('zoom'), 'urls.account.zoom'),
        open_rules=_open_rules(urls.get('open')),
        source=source,
    )


def _account_rules(data: Any, name: str) -> Tuple[AccountRule, ...]:
    return tuple(
        AccountRule(account=str(account), rules=compile_rules(rules))
        for account, rules in _mapping(data, name).items()
    )


def _open_rules(data: Any) -> Tuple[OpenRule, ...]:
    open_rules = []

    for entry in _sequence(data, 'urls.open'):
        entry = _mapping(entry, 'urls.open entry')
        template = entry.get('with')

        if not isinstance(template, str):
            raise ConfigurationError(
                f"Open rule requires a 'with' command template, got: {template!r}"
            )
        if template.count(URL_PLACEHOLDER) != 1:
            raise ConfigurationError(
                f"Open command template must contain exactly one "
                f"{URL_PLACEHOLDER!r} placeholder: {template!r}"
            )

        conditions = entry.get('if')
        # An empty `if` list behaves like an absent one for open rules
        rules = compile_rules(conditions if conditions else None)
        open_rules.append(OpenRule(template=template, rules=rules))

    return tuple(open_rules)


def _mapping(data: Any, name: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{name}' must be a mapping, got: {data!r}")
    return data


def _sequence(data: Any, name: str) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigurationError(f"'{name}' must be a list, got: {data!r}")
    return data
