"""
Report accumulators for the cleanup job.

Counters only ever grow during a run. "component_count"/"size_bytes" hold what
was (or in dry-run would be) removed, the "remaining" counters what stays.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class SortBy(Enum):
    """Sort order for report tables."""
    COMPONENTS = "components"
    SIZE = "size"
    NAME = "name"

    @classmethod
    def parse(cls, value: str) -> "SortBy":
        return cls(value.strip().lower())


@dataclass
class GroupStats:
    """Stats for a single component group."""
    component_count: int = 0
    size_bytes: int = 0
    remaining_component_count: int = 0
    remaining_size_bytes: int = 0

    def add_components(self, component_count: int, size_bytes: int):
        self.component_count += component_count
        self.size_bytes += size_bytes

    def add_remaining(self, component_count: int, size_bytes: int):
        self.remaining_component_count += component_count
        self.remaining_size_bytes += size_bytes


@dataclass
class RepositoryStats(GroupStats):
    """Stats for a single repository."""
    format: str = ""


def _sort_key(sort_by: SortBy):
    if sort_by is SortBy.SIZE:
        return lambda entry: (-entry[1].size_bytes, -entry[1].remaining_size_bytes, entry[0])
    if sort_by is SortBy.NAME:
        return lambda entry: entry[0]
    return lambda entry: (-entry[1].component_count, -entry[1].remaining_component_count, entry[0])


@dataclass
class _Summary:
    enabled: bool = False
    total_components: int = 0
    total_size_bytes: int = 0
    total_remaining_components: int = 0
    total_remaining_size_bytes: int = 0

    def _add_totals(self, component_count: int, size_bytes: int,
                    remaining_component_count: int, remaining_size_bytes: int):
        self.total_components += component_count
        self.total_size_bytes += size_bytes
        self.total_remaining_components += remaining_component_count
        self.total_remaining_size_bytes += remaining_size_bytes


@dataclass
class RepositoryComponentsSummary(_Summary):
    """Removed/remaining components per repository."""
    repository_stats: Dict[str, RepositoryStats] = field(default_factory=dict)

    def add_repository_stats(self, repository_name: str, repository_format: str,
                             component_count: int, size_bytes: int,
                             remaining_component_count: int, remaining_size_bytes: int):
        if repository_name is None:
            raise ValueError("Repository name cannot be None")
        stats = self.repository_stats.get(repository_name)
        if stats is None:
            stats = self.repository_stats[repository_name] = RepositoryStats(format=repository_format or "")
        stats.add_components(component_count, size_bytes)
        stats.add_remaining(remaining_component_count, remaining_size_bytes)
        self._add_totals(component_count, size_bytes, remaining_component_count, remaining_size_bytes)

    def sorted_entries(self, sort_by: SortBy = SortBy.COMPONENTS) -> List[Tuple[str, RepositoryStats]]:
        return sorted(self.repository_stats.items(), key=_sort_key(sort_by))


@dataclass
class GroupsSummary(_Summary):
    """Removed/remaining components per group (Maven groupId, npm scope, ...)."""
    group_stats: Dict[str, GroupStats] = field(default_factory=dict)

    def add_group_stats(self, group_name: str, component_count: int, size_bytes: int,
                        remaining_component_count: int, remaining_size_bytes: int):
        if group_name is None:
            raise ValueError("Group name cannot be None")
        stats = self.group_stats.setdefault(group_name, GroupStats())
        stats.add_components(component_count, size_bytes)
        stats.add_remaining(remaining_component_count, remaining_size_bytes)
        self._add_totals(component_count, size_bytes, remaining_component_count, remaining_size_bytes)

    def sorted_entries(self, sort_by: SortBy = SortBy.COMPONENTS,
                       limit: int = None) -> List[Tuple[str, GroupStats]]:
        entries = sorted(self.group_stats.items(), key=_sort_key(sort_by))
        return entries[:limit] if limit is not None else entries
