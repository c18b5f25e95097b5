"""
Console tables for repository and group summaries.
"""

import sys
from typing import TextIO

from nxclean.reporting.summary import GroupsSummary, RepositoryComponentsSummary, SortBy

RULE_LINE = "=" * 116
MIN_NAME_WIDTH = 30
SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size_bytes: int) -> str:
    """Format a size in bytes as a human-readable string (e.g. "2.10 GB")."""
    if size_bytes < 1024:
        return f"{size_bytes} B"

    value = float(size_bytes)
    unit_index = 0
    while value >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.2f} {SIZE_UNITS[unit_index]}"


def _mode(dry_run: bool) -> str:
    return "Dry Run" if dry_run else "Removal"


def _name_width(names) -> int:
    return max(MIN_NAME_WIDTH, max((len(name) for name in names), default=MIN_NAME_WIDTH) + 2)


def print_repositories_summary(summary: RepositoryComponentsSummary, sort_by: SortBy,
                               dry_run: bool, out: TextIO = None):
    """Print the per-repository table followed by a TOTAL row."""
    out = out or sys.stdout
    width = _name_width(summary.repository_stats)

    print(f"\nRepository Report Summary ({_mode(dry_run)}):", file=out)
    print(RULE_LINE, file=out)
    print(f"{'Repository':<{width}} {'Format':<10} {'Removed #':<12} {'Removed Size':<15} "
          f"{'Remaining #':<15} {'Remaining Size':<15}", file=out)
    print(f"{'-' * width} {'-' * 10} {'-' * 12} {'-' * 15} {'-' * 15} {'-' * 15}", file=out)

    def row(name, fmt, count, size, remaining_count, remaining_size):
        return (f"{name:<{width}} {fmt:<10} {count:>12} {format_size(size):>15} "
                f"{remaining_count:>15} {format_size(remaining_size):>15}")

    for name, stats in summary.sorted_entries(sort_by):
        print(row(name, stats.format, stats.component_count, stats.size_bytes,
                  stats.remaining_component_count, stats.remaining_size_bytes), file=out)

    print("", file=out)
    print(row("TOTAL", "-", summary.total_components, summary.total_size_bytes,
              summary.total_remaining_components, summary.total_remaining_size_bytes), file=out)


def print_groups_summary(summary: GroupsSummary, sort_by: SortBy, top_groups: int,
                         dry_run: bool, out: TextIO = None):
    """Print the top N groups table."""
    out = out or sys.stdout
    width = _name_width(summary.group_stats)
    sort_description = "Size" if sort_by is SortBy.SIZE else "Components"

    print(f"\nTop Consuming Groups (by {sort_description}, {_mode(dry_run)}):", file=out)
    print(RULE_LINE, file=out)
    print(f"{'Group':<{width}} {'Removed #':<12} {'Removed Size':<15} "
          f"{'Remaining #':<15} {'Remaining Size':<15}", file=out)
    print(f"{'-' * width} {'-' * 12} {'-' * 15} {'-' * 15} {'-' * 15}", file=out)

    for name, stats in summary.sorted_entries(sort_by, limit=top_groups):
        print(f"{name:<{width}} {stats.component_count:>12} {format_size(stats.size_bytes):>15} "
              f"{stats.remaining_component_count:>15} {format_size(stats.remaining_size_bytes):>15}",
              file=out)
