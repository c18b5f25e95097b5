"""
Loading and validation of cleanup rules.

Rules are defined in a YAML file::

    rules:
      - name: old-snapshots
        description: Remove snapshots not touched for a month
        action: delete
        filters:
          versions: ["*-SNAPSHOT"]
          updated: 30d
      - name: protect-releases
        action: keep
        filters:
          repositories: ["releases-*"]

Validation happens once, before any network activity; every problem is
reported as a ``RuleValidationError``.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import yaml

from nxclean.errors import InvalidExpression, RuleValidationError
from nxclean.rules import dates
from nxclean.rules.models import CleanupAction, CleanupFilters, CleanupRule, CleanupRuleSet

logger = logging.getLogger(__name__)

VALID_ACTIONS = tuple(action.value for action in CleanupAction)

_RULE_SET_KEYS = {"rules"}
_RULE_KEYS = {"name", "description", "enabled", "action", "filters"}
_PATTERN_KEYS = ("repositories", "formats", "groups", "names", "versions")
_FILTER_KEYS = set(_PATTERN_KEYS) | {"updated", "downloaded"}


class CleanupRuleParser:
    """Parses and validates cleanup rule sets from YAML."""

    def parse_file(self, path: Union[str, Path]) -> CleanupRuleSet:
        """
        Parse a cleanup rule set from a YAML file.

        Raises:
            RuleValidationError: If the file is missing, unreadable or invalid
        """
        rules_path = Path(path)
        try:
            with open(rules_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise RuleValidationError(f"Cannot read rules file {rules_path}: {e}") from e

        rule_set = self.parse_string(content)
        logger.info(f"Loaded {len(rule_set)} cleanup rules from {rules_path}")
        return rule_set

    def parse_string(self, content: str) -> CleanupRuleSet:
        """Parse a cleanup rule set from YAML text."""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise RuleValidationError(f"Invalid YAML in rules: {e}") from e

        return self.parse_data(data)

    def parse_data(self, data: Any) -> CleanupRuleSet:
        """Build a validated rule set from already deserialized data."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise RuleValidationError("Rules document must be a mapping with a 'rules' list")
        _reject_unknown_keys(data, _RULE_SET_KEYS, "rule set")

        raw_rules = data.get("rules")
        if raw_rules is None or (isinstance(raw_rules, list) and not raw_rules):
            raise RuleValidationError("Rule set must contain at least one rule")
        if not isinstance(raw_rules, list):
            raise RuleValidationError("'rules' must be a list")

        rules: List[CleanupRule] = []
        seen_names = set()
        for raw_rule in raw_rules:
            rule = self._parse_rule(raw_rule)
            if rule.name in seen_names:
                raise RuleValidationError(f"Duplicate rule name found: '{rule.name}'")
            seen_names.add(rule.name)
            rules.append(rule)

        return CleanupRuleSet(tuple(rules))

    def _parse_rule(self, raw: Any) -> CleanupRule:
        if not isinstance(raw, dict):
            raise RuleValidationError("Each rule must be a mapping")

        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise RuleValidationError("Rule must have a non-empty name")
        _reject_unknown_keys(raw, _RULE_KEYS, f"rule '{name}'")

        raw_action = raw.get("action", CleanupAction.DELETE.value)
        try:
            action = CleanupAction.parse(raw_action)
        except (AttributeError, ValueError):
            raise RuleValidationError(
                f"Invalid action '{raw_action}'. Must be one of: {', '.join(VALID_ACTIONS)}"
            ) from None

        enabled = raw.get("enabled", True)
        if not isinstance(enabled, bool):
            raise RuleValidationError(f"Rule '{name}': 'enabled' must be true or false")

        description = raw.get("description")
        if description is not None and not isinstance(description, str):
            raise RuleValidationError(f"Rule '{name}': 'description' must be a string")

        raw_filters = raw.get("filters")
        if raw_filters is None:
            raise RuleValidationError(f"Rule '{name}' must have filters")
        if not isinstance(raw_filters, dict):
            raise RuleValidationError(f"Rule '{name}': 'filters' must be a mapping")

        filters = _parse_filters(raw_filters, name)
        if not filters.has_at_least_one_filter():
            raise RuleValidationError(f"Rule '{name}' must have at least one filter specified")

        return CleanupRule(
            name=name,
            description=description,
            enabled=enabled,
            action=action,
            filters=filters,
        )


def _parse_filters(raw: Dict[str, Any], rule_name: str) -> CleanupFilters:
    _reject_unknown_keys(raw, _FILTER_KEYS, f"filters of rule '{rule_name}'")

    patterns = {key: _parse_patterns(raw.get(key), key, rule_name) for key in _PATTERN_KEYS}
    updated = _parse_age(raw.get("updated"), "updated", rule_name, allow_never=False)
    downloaded = _parse_age(raw.get("downloaded"), "downloaded", rule_name, allow_never=True)

    return CleanupFilters(updated=updated, downloaded=downloaded, **patterns)


def _parse_patterns(value: Any, key: str, rule_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise RuleValidationError(f"Rule '{rule_name}': '{key}' must be a list of patterns")
    for pattern in value:
        if not isinstance(pattern, str):
            raise RuleValidationError(
                f"Rule '{rule_name}': pattern {pattern!r} in '{key}' must be a string (quote it)"
            )
    return tuple(value)


def _parse_age(value: Any, key: str, rule_name: str, allow_never: bool):
    if value is None:
        return None
    # YAML turns an unquoted 2025-03-01 into a date object
    if isinstance(value, (date, datetime)):
        value = value.isoformat()
    try:
        dates.resolve(value, allow_never=allow_never)
    except InvalidExpression as e:
        raise RuleValidationError(f"Invalid {key} filter in rule '{rule_name}': {e}") from e
    return value.strip()


def _reject_unknown_keys(data: Dict[str, Any], allowed: set, where: str):
    unknown = sorted(str(key) for key in data if key not in allowed)
    if unknown:
        raise RuleValidationError(f"Unknown keys in {where}: {', '.join(unknown)}")
