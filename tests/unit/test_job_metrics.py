"""
Unit tests for cleanup run metrics.
"""

import pytest
from prometheus_client import CollectorRegistry

from nxclean.errors import ReportWriteError
from nxclean.monitoring.job_metrics import JobMetrics


class TestJobMetrics:
    """Test counters and the textfile export."""

    def test_registries_are_isolated(self):
        """Test two jobs in one process keep separate counts."""
        first = JobMetrics()
        second = JobMetrics()

        first.record_repository()

        assert first.sample('nxclean_repositories_scanned_total') == 1.0
        assert second.sample('nxclean_repositories_scanned_total') == 0.0

    def test_page_recording(self):
        """Test pages and scanned components are counted together."""
        metrics = JobMetrics()
        metrics.record_page(3)
        metrics.record_page(0)

        assert metrics.sample('nxclean_component_pages_fetched_total') == 2.0
        assert metrics.sample('nxclean_components_scanned_total') == 3.0

    def test_removal_recording(self):
        """Test removed components and bytes."""
        metrics = JobMetrics()
        metrics.record_selected(4)
        metrics.record_removed(3, 1500)
        metrics.record_removed(0, 0)
        metrics.record_deletion_failure()

        assert metrics.sample('nxclean_components_selected_total') == 4.0
        assert metrics.sample('nxclean_components_deleted_total') == 3.0
        assert metrics.sample('nxclean_removed_bytes_total') == 1500.0
        assert metrics.sample('nxclean_component_deletion_failures_total') == 1.0

    def test_mode_label(self):
        """Test dry-run samples are labelled separately."""
        registry = CollectorRegistry()
        metrics = JobMetrics(registry=registry, dry_run=True)
        metrics.record_page_failure()

        assert metrics.mode == "dry_run"
        assert registry.get_sample_value(
            'nxclean_component_page_failures_total', {'mode': 'dry_run'}
        ) == 1.0
        assert registry.get_sample_value(
            'nxclean_component_page_failures_total', {'mode': 'removal'}
        ) is None

    def test_duration(self):
        """Test the run duration histogram."""
        metrics = JobMetrics()
        metrics.record_duration(2.5)

        assert metrics.sample('nxclean_run_duration_seconds_count') == 1.0
        assert metrics.sample('nxclean_run_duration_seconds_sum') == 2.5

    def test_render(self):
        """Test the exposition output contains the metric families."""
        metrics = JobMetrics()
        metrics.record_removed(1, 10)

        output = metrics.render().decode('utf-8')
        assert 'nxclean_components_deleted_total{mode="removal"} 1.0' in output
        assert '# TYPE nxclean_run_duration_seconds histogram' in output

    def test_write_textfile(self, tmp_path):
        """Test the registry is written for the textfile collector."""
        metrics = JobMetrics()
        metrics.record_repository()
        path = tmp_path / "metrics" / "nxclean.prom"

        metrics.write(path)

        assert 'nxclean_repositories_scanned_total{mode="removal"} 1.0' in path.read_text()

    def test_write_failure(self, tmp_path):
        """Test an unwritable metrics file raises ReportWriteError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(ReportWriteError):
            JobMetrics().write(blocker / "nxclean.prom")
