"""
Rule compilation and component matching.

A rule set is compiled once per run: wildcard patterns become regular
expressions and age expressions become cutoffs. The compiled form answers two
questions for the pipeline:

- ``RepositoryGate.matches(name)``: can any enabled rule touch this repository?
- ``ComponentMatcher.is_selected(component)``: should this component be removed?

A rule matches when every constrained dimension matches (patterns within one
dimension are OR-ed). Age filters must hold for *every* asset of the
component. A matching keep rule always wins over matching delete rules,
independent of rule order.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Pattern, Tuple

from nxclean.connectors.base import Component
from nxclean.rules import dates
from nxclean.rules.models import CleanupAction, CleanupRule, CleanupRuleSet


def compile_wildcard(pattern: str) -> Pattern:
    """Translate a ``*``/``?`` wildcard into an anchored regular expression."""
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


class PatternSet:
    """OR-combination of wildcard patterns. An empty set places no constraint."""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns: Tuple[str, ...] = tuple(patterns)
        self._compiled = [compile_wildcard(pattern) for pattern in self.patterns]

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, value: Optional[str]) -> bool:
        if not self.patterns:
            return True
        if not value:
            return False
        return any(regex.fullmatch(value) for regex in self._compiled)


@dataclass(frozen=True)
class CompiledRule:
    """A rule with its patterns compiled and its age filters resolved."""
    name: str
    action: CleanupAction
    repositories: PatternSet
    formats: PatternSet
    groups: PatternSet
    names: PatternSet
    versions: PatternSet
    updated: Optional[dates.Before] = None
    downloaded: Optional[dates.AgeCriterion] = None

    @classmethod
    def from_rule(cls, rule: CleanupRule, now: Optional[datetime] = None) -> "CompiledRule":
        filters = rule.filters
        updated = None
        if filters.updated is not None:
            updated = dates.resolve(filters.updated, now=now)
        downloaded = None
        if filters.downloaded is not None:
            downloaded = dates.resolve(filters.downloaded, now=now, allow_never=True)

        return cls(
            name=rule.name,
            action=rule.action,
            repositories=PatternSet(filters.repositories),
            formats=PatternSet(filters.formats),
            groups=PatternSet(filters.groups),
            names=PatternSet(filters.names),
            versions=PatternSet(filters.versions),
            updated=updated,
            downloaded=downloaded,
        )

    def matches(self, component: Component) -> bool:
        if not (self.repositories.matches(component.repository)
                and self.groups.matches(component.group)
                and self.names.matches(component.name)
                and self.formats.matches(component.format)
                and self.versions.matches(component.version)):
            return False

        assets = component.assets
        if not assets:
            return False

        if self.updated is not None:
            if not all(self.updated.includes(asset.created_at) for asset in assets):
                return False

        if isinstance(self.downloaded, dates.NeverHappened):
            return all(asset.last_downloaded_at is None for asset in assets)
        if isinstance(self.downloaded, dates.Before):
            return all(
                asset.last_downloaded_at is None or self.downloaded.includes(asset.last_downloaded_at)
                for asset in assets
            )

        return True


class ComponentMatcher:
    """Decides whether a component is selected for removal."""

    def __init__(self, rules: Iterable[CompiledRule]):
        rules = list(rules)
        self.keep_rules: List[CompiledRule] = [r for r in rules if r.action is CleanupAction.KEEP]
        self.delete_rules: List[CompiledRule] = [r for r in rules if r.action is CleanupAction.DELETE]

    def is_selected(self, component: Component) -> bool:
        if component is None or not component.assets:
            return False
        if any(rule.matches(component) for rule in self.keep_rules):
            return False
        return any(rule.matches(component) for rule in self.delete_rules)

    def __call__(self, component: Component) -> bool:
        return self.is_selected(component)


class RepositoryGate:
    """Pre-filter that skips repositories no enabled rule can touch."""

    def __init__(self, patterns: Iterable[str] = ()):
        # dict keeps first-seen order while dropping duplicates
        self.patterns = PatternSet(dict.fromkeys(patterns))

    @classmethod
    def from_rule_set(cls, rule_set: CleanupRuleSet) -> "RepositoryGate":
        patterns = []
        for rule in rule_set.enabled_rules:
            patterns.extend(rule.filters.repositories)
        return cls(patterns)

    def matches(self, repository_name: Optional[str]) -> bool:
        return self.patterns.matches(repository_name)


@dataclass(frozen=True)
class CompiledRuleSet:
    """Everything the pipeline needs from a rule set."""
    matcher: ComponentMatcher
    gate: RepositoryGate
    rules: Tuple[CompiledRule, ...]


def compile_rules(rule_set: CleanupRuleSet, now: Optional[datetime] = None) -> CompiledRuleSet:
    """
    Compile the enabled rules of a rule set.

    Args:
        rule_set: Validated rule set
        now: Reference time for relative age filters (defaults to current UTC time)
    """
    compiled = tuple(CompiledRule.from_rule(rule, now) for rule in rule_set.enabled_rules)
    return CompiledRuleSet(
        matcher=ComponentMatcher(compiled),
        gate=RepositoryGate.from_rule_set(rule_set),
        rules=compiled,
    )
