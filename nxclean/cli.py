"""
Command-line interface for nxclean.

This module provides the ``nxclean`` command: running a cleanup pass against a
Nexus Repository Manager and validating a rules file offline.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from nxclean import __version__
from nxclean.cleanup.job import CleanupJob
from nxclean.config.nexus_config import JobOptions, load_nexus_config
from nxclean.connectors.nexus import NexusCatalogClient
from nxclean.errors import ConfigurationError, ReportWriteError
from nxclean.reporting.summary import SortBy
from nxclean.rules.models import CleanupRuleSet
from nxclean.rules.parser import CleanupRuleParser

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(verbose: bool = False):
    """Setup stdlib logging and route structlog through it."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s',
        stream=sys.stderr,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _sort_by(value: str) -> SortBy:
    try:
        return SortBy.parse(value)
    except ValueError:
        choices = ", ".join(option.value for option in SortBy)
        raise argparse.ArgumentTypeError(f"invalid sort '{value}' (choose from {choices})")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"'{value}' must be at least 1")
    return number


def print_rules(rule_set: CleanupRuleSet, out=None):
    """Print a one-line summary per rule."""
    out = out or sys.stdout
    print(f"Cleanup Rules ({len(rule_set)})", file=out)
    print("=" * 50, file=out)
    for rule in rule_set.rules:
        status = "ENABLED" if rule.enabled else "DISABLED"
        print(f"\n{rule.name} ({status}, {rule.action.value})", file=out)
        if rule.description:
            print(f"  Description: {rule.description}", file=out)
        filters = rule.filters
        for label, patterns in (("Repositories", filters.repositories), ("Formats", filters.formats),
                                ("Groups", filters.groups), ("Names", filters.names),
                                ("Versions", filters.versions)):
            if patterns:
                print(f"  {label}: {', '.join(patterns)}", file=out)
        if filters.updated:
            print(f"  Updated before: {filters.updated}", file=out)
        if filters.downloaded:
            print(f"  Downloaded before: {filters.downloaded}", file=out)


def run_cleanup(args) -> int:
    """Run a cleanup pass."""
    try:
        rule_set = CleanupRuleParser().parse_file(args.rules)
        config = load_nexus_config(
            url=args.url,
            username=args.username,
            password=args.password,
            token=args.token,
            proxy=args.proxy,
        )
        options = JobOptions(
            rules_file=args.rules,
            dry_run=args.dry_run,
            report_repositories_summary=args.report_repositories_summary,
            report_top_groups=args.report_top_groups,
            repo_sort=args.repo_sort,
            group_sort=args.group_sort,
            top_groups=args.top_groups,
            report_output_file=args.report_output_file,
            output_component_file=args.output_component,
            concurrency=args.concurrency,
            metrics_file=args.metrics_file,
        )
        job = CleanupJob(NexusCatalogClient(config), rule_set, options)
    except (ConfigurationError, ReportWriteError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.dry_run:
        print(f"Nexus Repository Cleanup Job (Dry Run) starting - Scanning server: {config.url} "
              f"(no deletions will be performed)")
    else:
        print(f"Nexus Repository Cleanup Job starting - Scanning server: {config.url}")

    return asyncio.run(job.execute())


def validate_rules(args) -> int:
    """Validate a rules file without contacting the server."""
    try:
        rule_set = CleanupRuleParser().parse_file(args.rules)
    except ConfigurationError as e:
        print(f"Invalid rules: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print_rules(rule_set)
    print(f"\n{args.rules}: OK")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nxclean",
        description="Nexus Repository Cleanup Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show what would be removed, with a per-repository summary
  nxclean run --rules rules.yaml --url https://nexus.example.com --dry-run --report-repositories-summary

  # Remove components and save the summary and the removed components
  nxclean run --rules rules.yaml --report-repositories-summary --report-output-file report.csv \\
      --output-component removed.json

  # Check a rules file
  nxclean validate --rules rules.yaml
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Run a cleanup pass')
    run_parser.add_argument('--rules', required=True, type=Path,
                            help='Path to the cleanup rules YAML file')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Skip components removal, only report what is going to be removed')
    run_parser.add_argument('--url', help='Nexus Repository Manager URL (default: $NEXUS_URL)')
    run_parser.add_argument('--username', help='Nexus username (default: $NEXUS_USERNAME)')
    run_parser.add_argument('--password', help='Nexus password (default: $NEXUS_PASSWORD)')
    run_parser.add_argument('--token', help='Nexus token (default: $NEXUS_TOKEN)')
    run_parser.add_argument('--proxy', help='Proxy server URL, e.g. proxy.example.com:8081')
    run_parser.add_argument('--report-repositories-summary', action='store_true',
                            help='Report repositories summary')
    run_parser.add_argument('--report-top-groups', action='store_true',
                            help='Report top groups')
    run_parser.add_argument('--repo-sort', type=_sort_by, default=SortBy.COMPONENTS,
                            help='Sort repositories by: components, size, name (default: components)')
    run_parser.add_argument('--group-sort', type=_sort_by, default=SortBy.COMPONENTS,
                            help='Sort groups by: components, size, name (default: components)')
    run_parser.add_argument('--top-groups', type=_positive_int, default=10,
                            help='Show only the top N groups (default: 10)')
    run_parser.add_argument('--report-output-file', type=Path,
                            help='Save report to a file (report.json or report.csv)')
    run_parser.add_argument('--output-component', type=Path,
                            help='Save all selected components to a file (components.json or components.csv)')
    run_parser.add_argument('--concurrency', type=_positive_int, default=4,
                            help='Repositories processed in parallel (default: 4)')
    run_parser.add_argument('--metrics-file', type=Path,
                            help='Write Prometheus metrics of the run to this file')

    validate_parser = subparsers.add_parser('validate', help='Validate a rules file')
    validate_parser.add_argument('--rules', required=True, type=Path,
                                 help='Path to the cleanup rules YAML file')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    setup_logging(args.verbose)

    try:
        if args.command == 'run':
            return run_cleanup(args)
        elif args.command == 'validate':
            return validate_rules(args)
        else:
            print(f"Unknown command: {args.command}")
            return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
