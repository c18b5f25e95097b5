"""
File report writers.

The output format is chosen from the file extension: ``.csv`` or ``.json``.
"""

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from nxclean.connectors.base import Component
from nxclean.errors import ReportWriteError
from nxclean.reporting.summary import GroupsSummary, RepositoryComponentsSummary, SortBy


class ReportWriter(ABC):
    """Base class for report writers."""

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, 'w', newline='', encoding='utf-8')
        except OSError as e:
            raise ReportWriteError(f"Cannot open report file {self.path}: {e}") from e

    @abstractmethod
    def write_repositories_summary(self, summary: RepositoryComponentsSummary, sort_by: SortBy):
        pass

    @abstractmethod
    def write_groups_summary(self, summary: GroupsSummary, sort_by: SortBy, top_groups: int):
        pass

    @abstractmethod
    def write_component(self, component: Component):
        pass

    def close(self):
        try:
            self._file.close()
        except OSError as e:
            raise ReportWriteError(f"Cannot close report file {self.path}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class CsvReportWriter(ReportWriter):
    """Writes report sections as CSV tables, one header per section."""

    def __init__(self, path: Path):
        super().__init__(path)
        self._writer = csv.writer(self._file)
        self._section: Optional[str] = None

    def _start_section(self, section: str, header: List[str]):
        if self._section == section:
            return
        if self._section is not None:
            self._write([])
        self._write(header)
        self._section = section

    def _write(self, row: List[Any]):
        try:
            self._writer.writerow(row)
        except OSError as e:
            raise ReportWriteError(f"Failed to write {self.path}: {e}") from e

    def write_repositories_summary(self, summary: RepositoryComponentsSummary, sort_by: SortBy):
        self._start_section("repositories", ["Repository", "Format", "Components", "Total Size"])
        for name, stats in summary.sorted_entries(sort_by):
            self._write([name, stats.format, stats.component_count, stats.size_bytes])
        self._write(["TOTAL", "-", summary.total_components, summary.total_size_bytes])

    def write_groups_summary(self, summary: GroupsSummary, sort_by: SortBy, top_groups: int):
        self._start_section("groups", ["Group", "Components", "Total Size"])
        for name, stats in summary.sorted_entries(sort_by, limit=top_groups):
            self._write([name, stats.component_count, stats.size_bytes])

    def write_component(self, component: Component):
        self._start_section("components", ["Repository", "Group", "Name", "Version", "Size"])
        self._write([component.repository, component.group or "", component.name,
                     component.version or "", component.size_bytes])


class JsonReportWriter(ReportWriter):
    """Collects all sections and writes a single JSON document on close."""

    def __init__(self, path: Path):
        super().__init__(path)
        self._document: Dict[str, Any] = {}

    def write_repositories_summary(self, summary: RepositoryComponentsSummary, sort_by: SortBy):
        self._document["repositories"] = {
            "repositories": [
                {
                    "name": name,
                    "format": stats.format,
                    "componentCount": stats.component_count,
                    "sizeBytes": stats.size_bytes,
                    "remainingComponentCount": stats.remaining_component_count,
                    "remainingSizeBytes": stats.remaining_size_bytes,
                }
                for name, stats in summary.sorted_entries(sort_by)
            ],
            "totalComponents": summary.total_components,
            "totalSizeBytes": summary.total_size_bytes,
            "totalRemainingComponents": summary.total_remaining_components,
            "totalRemainingSizeBytes": summary.total_remaining_size_bytes,
        }

    def write_groups_summary(self, summary: GroupsSummary, sort_by: SortBy, top_groups: int):
        self._document["groups"] = {
            "groups": [
                {
                    "name": name,
                    "componentCount": stats.component_count,
                    "sizeBytes": stats.size_bytes,
                    "remainingComponentCount": stats.remaining_component_count,
                    "remainingSizeBytes": stats.remaining_size_bytes,
                }
                for name, stats in summary.sorted_entries(sort_by, limit=top_groups)
            ],
            "totalComponents": summary.total_components,
            "totalSizeBytes": summary.total_size_bytes,
            "totalRemainingComponents": summary.total_remaining_components,
            "totalRemainingSizeBytes": summary.total_remaining_size_bytes,
        }

    def write_component(self, component: Component):
        self._document.setdefault("components", []).append({
            "id": component.id,
            "repository": component.repository,
            "format": component.format,
            "group": component.group,
            "name": component.name,
            "version": component.version,
            "sizeBytes": component.size_bytes,
            "assets": [asset.path for asset in component.assets],
        })

    def close(self):
        try:
            json.dump(self._document, self._file, indent=2)
        except (OSError, TypeError) as e:
            raise ReportWriteError(f"Failed to write {self.path}: {e}") from e
        finally:
            super().close()


WRITERS = {
    ".csv": CsvReportWriter,
    ".json": JsonReportWriter,
}


def ensure_supported(path: Optional[Union[str, Path]]):
    """Raise ReportWriteError unless ``path`` is empty or has a supported extension."""
    if path and Path(path).suffix.lower() not in WRITERS:
        raise ReportWriteError(
            f"Unsupported report format '{Path(path).suffix}' for {path} (use .csv or .json)"
        )


def create_report_writer(path: Optional[Union[str, Path]]) -> Optional[ReportWriter]:
    """
    Create a writer for ``path`` based on its extension.

    Returns:
        ReportWriter, or None when no path is given

    Raises:
        ReportWriteError: If the extension is not supported or the file cannot be opened
    """
    if not path:
        return None
    ensure_supported(path)
    path = Path(path)
    return WRITERS[path.suffix.lower()](path)
