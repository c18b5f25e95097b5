"""
Unit tests for the command-line interface.
"""

import io
from pathlib import Path
from unittest.mock import patch

import pytest

from nxclean import cli
from nxclean.reporting.summary import SortBy
from nxclean.rules.models import CleanupAction, CleanupFilters, CleanupRule, CleanupRuleSet

VALID_RULES = """
rules:
  - name: old-snapshots
    description: Remove stale snapshots
    filters:
      versions: ["*-SNAPSHOT"]
      updated: 30d
  - name: protect-prod
    action: keep
    enabled: false
    filters:
      names: ["prod-*"]
"""


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(VALID_RULES)
    return path


class TestParser:
    """Test argument parsing."""

    def test_run_defaults(self):
        """Test defaults of the run command."""
        args = cli.build_parser().parse_args(["run", "--rules", "rules.yaml"])

        assert args.command == "run"
        assert args.rules == Path("rules.yaml")
        assert args.dry_run is False
        assert args.repo_sort is SortBy.COMPONENTS
        assert args.group_sort is SortBy.COMPONENTS
        assert args.top_groups == 10
        assert args.concurrency == 4
        assert args.report_output_file is None

    def test_run_options(self):
        """Test every reporting option is parsed."""
        args = cli.build_parser().parse_args([
            "run", "--rules", "r.yaml", "--dry-run", "--report-repositories-summary",
            "--report-top-groups", "--repo-sort", "SIZE", "--group-sort", "name", "--top-groups", "3",
            "--report-output-file", "out/report.csv", "--output-component", "components.json",
            "--concurrency", "8", "--metrics-file", "nxclean.prom",
        ])

        assert args.dry_run is True
        assert args.report_repositories_summary is True
        assert args.report_top_groups is True
        assert args.repo_sort is SortBy.SIZE
        assert args.group_sort is SortBy.NAME
        assert args.top_groups == 3
        assert args.report_output_file == Path("out/report.csv")
        assert args.output_component == Path("components.json")
        assert args.concurrency == 8
        assert args.metrics_file == Path("nxclean.prom")

    @pytest.mark.parametrize("argv", [
        ["run", "--rules", "r.yaml", "--repo-sort", "weight"],
        ["run", "--rules", "r.yaml", "--top-groups", "0"],
        ["run", "--rules", "r.yaml", "--concurrency", "many"],
        ["run"],
    ])
    def test_invalid_arguments(self, argv, capsys):
        """Test invalid arguments exit with a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(argv)
        assert exc_info.value.code == 2

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        assert cli.main([]) == cli.EXIT_FAILURE
        assert "usage: nxclean" in capsys.readouterr().out


class TestValidate:
    """Test the validate command."""

    def test_valid_rules(self, rules_file, capsys):
        """Test a valid file is summarised and accepted."""
        assert cli.main(["validate", "--rules", str(rules_file)]) == cli.EXIT_OK

        out = capsys.readouterr().out
        assert "Cleanup Rules (2)" in out
        assert "old-snapshots (ENABLED, delete)" in out
        assert "protect-prod (DISABLED, keep)" in out
        assert "Versions: *-SNAPSHOT" in out
        assert f"{rules_file}: OK" in out

    def test_invalid_rules(self, tmp_path, capsys):
        """Test an invalid file exits with the configuration error code."""
        path = tmp_path / "bad.yaml"
        path.write_text("rules:\n  - name: r1\n    filters:\n      updated: soon\n")

        assert cli.main(["validate", "--rules", str(path)]) == cli.EXIT_CONFIG_ERROR
        assert "Invalid updated filter in rule 'r1'" in capsys.readouterr().err

    def test_missing_rules_file(self, tmp_path):
        """Test a missing file exits with the configuration error code."""
        assert cli.main(["validate", "--rules", str(tmp_path / "none.yaml")]) == cli.EXIT_CONFIG_ERROR


class TestRun:
    """Test the run command wiring."""

    def test_missing_url(self, rules_file, monkeypatch, tmp_path, capsys):
        """Test a missing server URL fails before any connection."""
        monkeypatch.setenv("NEXUS_URL", "")
        monkeypatch.chdir(tmp_path)

        with patch("nxclean.cli.NexusCatalogClient") as client_class:
            assert cli.main(["run", "--rules", str(rules_file)]) == cli.EXIT_CONFIG_ERROR

        client_class.assert_not_called()
        assert "Nexus server URL is required" in capsys.readouterr().err

    def test_bad_report_extension(self, rules_file, capsys):
        """Test an unsupported report format is a configuration error."""
        with patch("nxclean.cli.NexusCatalogClient"):
            code = cli.main(["run", "--rules", str(rules_file), "--url", "http://nexus",
                             "--report-output-file", "report.xml"])

        assert code == cli.EXIT_CONFIG_ERROR
        assert "Unsupported report format" in capsys.readouterr().err

    def test_runs_job(self, rules_file, capsys):
        """Test the job is built from the arguments and its exit code returned."""
        async def finished():
            return 0

        with patch("nxclean.cli.CleanupJob") as job_class, \
                patch("nxclean.cli.NexusCatalogClient") as client_class:
            job_class.return_value.execute.side_effect = finished
            code = cli.main(["run", "--rules", str(rules_file), "--url", "https://nexus.example.com",
                             "--token", "tok", "--dry-run", "--concurrency", "2"])

        assert code == cli.EXIT_OK
        config = client_class.call_args[0][0]
        assert config.url == "https://nexus.example.com"
        assert config.token == "tok"
        _, rule_set, options = job_class.call_args[0]
        assert len(rule_set) == 2
        assert options.dry_run is True
        assert options.concurrency == 2
        assert "(Dry Run) starting - Scanning server: https://nexus.example.com" in capsys.readouterr().out


class TestPrintRules:
    """Test the rule summary."""

    def test_print_rules(self):
        """Test filters are listed per rule."""
        rule_set = CleanupRuleSet((
            CleanupRule(name="r1", action=CleanupAction.KEEP,
                        filters=CleanupFilters(repositories=("a", "b"), downloaded="never")),
        ))
        out = io.StringIO()
        cli.print_rules(rule_set, out=out)

        text = out.getvalue()
        assert "r1 (ENABLED, keep)" in text
        assert "Repositories: a, b" in text
        assert "Downloaded before: never" in text
