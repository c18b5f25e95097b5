"""
Data models for cleanup rules.

This module contains the data classes and enums that describe a rule set as
loaded from the rules file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class CleanupAction(Enum):
    """Action applied to components matched by a rule."""
    DELETE = "delete"
    KEEP = "keep"

    @classmethod
    def parse(cls, value: str) -> "CleanupAction":
        """Parse an action name, ignoring case and surrounding whitespace."""
        return cls(value.strip().lower())


@dataclass(frozen=True)
class CleanupFilters:
    """Filters of a single rule. Empty pattern tuples mean no constraint."""
    repositories: Tuple[str, ...] = ()
    formats: Tuple[str, ...] = ()
    groups: Tuple[str, ...] = ()
    names: Tuple[str, ...] = ()
    versions: Tuple[str, ...] = ()
    updated: Optional[str] = None
    downloaded: Optional[str] = None

    def has_at_least_one_filter(self) -> bool:
        """Check if at least one filter dimension is constrained."""
        return bool(
            self.repositories or self.formats or self.groups or self.names or self.versions
            or self.updated is not None
            or self.downloaded is not None
        )


@dataclass(frozen=True)
class CleanupRule:
    """A named cleanup policy."""
    name: str
    filters: CleanupFilters
    action: CleanupAction = CleanupAction.DELETE
    enabled: bool = True
    description: Optional[str] = None


@dataclass(frozen=True)
class CleanupRuleSet:
    """Ordered collection of cleanup rules."""
    rules: Tuple[CleanupRule, ...] = field(default_factory=tuple)

    @property
    def enabled_rules(self) -> Tuple[CleanupRule, ...]:
        return tuple(rule for rule in self.rules if rule.enabled)

    def __len__(self) -> int:
        return len(self.rules)
