"""
Prometheus metrics for cleanup runs.

Metrics live on a private registry so that several jobs (or tests) in one
process do not collide. At the end of a run the registry can be written in
the text exposition format for the node-exporter textfile collector.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, write_to_textfile

from nxclean.errors import ReportWriteError

logger = logging.getLogger(__name__)


class JobMetrics:
    """Counters and timings of a single cleanup run."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, dry_run: bool = False):
        self.registry = registry or CollectorRegistry()
        self.mode = "dry_run" if dry_run else "removal"

        self.repositories_scanned = Counter(
            'nxclean_repositories_scanned_total',
            'Repositories whose components were listed',
            ['mode'],
            registry=self.registry
        )
        self.pages_fetched = Counter(
            'nxclean_component_pages_fetched_total',
            'Component pages fetched',
            ['mode'],
            registry=self.registry
        )
        self.page_failures = Counter(
            'nxclean_component_page_failures_total',
            'Component page fetches that failed',
            ['mode'],
            registry=self.registry
        )
        self.components_scanned = Counter(
            'nxclean_components_scanned_total',
            'Components evaluated against the rules',
            ['mode'],
            registry=self.registry
        )
        self.components_selected = Counter(
            'nxclean_components_selected_total',
            'Components selected for removal',
            ['mode'],
            registry=self.registry
        )
        self.components_deleted = Counter(
            'nxclean_components_deleted_total',
            'Components deleted',
            ['mode'],
            registry=self.registry
        )
        self.deletion_failures = Counter(
            'nxclean_component_deletion_failures_total',
            'Component deletions that failed',
            ['mode'],
            registry=self.registry
        )
        self.bytes_removed = Counter(
            'nxclean_removed_bytes_total',
            'Bytes removed (or that would be removed in dry-run)',
            ['mode'],
            registry=self.registry
        )
        self.run_duration = Histogram(
            'nxclean_run_duration_seconds',
            'Duration of a cleanup run',
            ['mode'],
            buckets=(1, 5, 15, 60, 300, 900, 1800, 3600, 7200),
            registry=self.registry
        )

    def record_page(self, component_count: int):
        self.pages_fetched.labels(mode=self.mode).inc()
        self.components_scanned.labels(mode=self.mode).inc(component_count)

    def record_page_failure(self):
        self.page_failures.labels(mode=self.mode).inc()

    def record_repository(self):
        self.repositories_scanned.labels(mode=self.mode).inc()

    def record_selected(self, count: int):
        self.components_selected.labels(mode=self.mode).inc(count)

    def record_removed(self, count: int, size_bytes: int):
        if count:
            self.components_deleted.labels(mode=self.mode).inc(count)
        if size_bytes:
            self.bytes_removed.labels(mode=self.mode).inc(size_bytes)

    def record_deletion_failure(self):
        self.deletion_failures.labels(mode=self.mode).inc()

    def record_duration(self, seconds: float):
        self.run_duration.labels(mode=self.mode).observe(seconds)

    def sample(self, name: str) -> float:
        """Current value of a sample of this job, e.g. ``nxclean_components_deleted_total``."""
        return self.registry.get_sample_value(name, {"mode": self.mode}) or 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def write(self, path: Union[str, Path]):
        """Write the registry to ``path`` in Prometheus text format."""
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            write_to_textfile(str(path), self.registry)
        except OSError as e:
            raise ReportWriteError(f"Cannot write metrics file {path}: {e}") from e
        logger.info(f"Metrics written to {path}")
