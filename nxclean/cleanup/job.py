"""
Traversal-and-deletion pipeline.

For every non-group repository that passes the repository gate the job walks
the component listing page by page, selects components with the compiled
rules and deletes them (or only records them in dry-run). Each repository is
handled by a single coroutine, so deletions within a repository happen one at
a time and in listing order; different repositories run concurrently up to
``JobOptions.concurrency``.

Failures are isolated: a failed page fetch stops only its repository and a
failed deletion only skips its component.
"""

import asyncio
import contextlib
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, TextIO

import structlog

from nxclean.config.nexus_config import JobOptions
from nxclean.connectors.base import CatalogClient, Component, Repository
from nxclean.errors import ReportWriteError
from nxclean.monitoring.job_metrics import JobMetrics
from nxclean.reporting import console
from nxclean.reporting.summary import GroupsSummary, RepositoryComponentsSummary
from nxclean.reporting.writers import ReportWriter, create_report_writer, ensure_supported
from nxclean.rules.matcher import compile_rules
from nxclean.rules.models import CleanupRuleSet

logger = structlog.get_logger(__name__)


@dataclass
class JobResult:
    """Outcome counters of a cleanup run."""
    repositories_scanned: int = 0
    repositories_aborted: List[str] = field(default_factory=list)
    pages_processed: int = 0
    components_scanned: int = 0
    components_selected: int = 0
    components_removed: int = 0
    bytes_removed: int = 0
    failed_deletions: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def total_size(components: List[Component]) -> int:
    return sum(component.size_bytes for component in components)


class CleanupJob:
    """
    Runs one cleanup pass over a catalog.

    The job owns the report accumulators; they are only updated under
    ``self._lock`` so concurrent repositories never interleave an update.
    """

    def __init__(self, client: CatalogClient, rule_set: CleanupRuleSet, options: JobOptions,
                 metrics: Optional[JobMetrics] = None, now: Optional[datetime] = None,
                 out: Optional[TextIO] = None):
        # Report paths are checked up front so a bad extension fails before any network call
        ensure_supported(options.report_output_file)
        ensure_supported(options.output_component_file)

        self.client = client
        self.options = options
        self.compiled = compile_rules(rule_set, now)
        self.metrics = metrics or JobMetrics(dry_run=options.dry_run)
        self.out = out

        self.repository_summary = RepositoryComponentsSummary(enabled=options.report_repositories_summary)
        self.groups_summary = GroupsSummary(enabled=options.report_top_groups)
        self.result = JobResult()

        self._lock = asyncio.Lock()
        self._component_writer: Optional[ReportWriter] = None
        self._report_failed = False

    async def execute(self) -> int:
        """
        Run the job and write the reports.

        Returns:
            0 when the pipeline and reporting completed, 1 otherwise
        """
        start_time = time.monotonic()
        try:
            self._component_writer = create_report_writer(self.options.output_component_file)
        except ReportWriteError as e:
            logger.error("component_output_unavailable", error=str(e))
            return 1

        try:
            async with self.client:
                await self.run()
        except Exception as e:
            logger.error("cleanup_failed", error=str(e), exc_info=True)
            self._close_component_writer()
            return 1

        self.result.duration_seconds = time.monotonic() - start_time
        self.metrics.record_duration(self.result.duration_seconds)

        try:
            self._close_component_writer()
            self.write_reports()
        except ReportWriteError as e:
            logger.error("report_write_failed", error=str(e))
            return 1

        logger.info(
            "cleanup_completed",
            dry_run=self.options.dry_run,
            repositories=self.result.repositories_scanned,
            components_scanned=self.result.components_scanned,
            components_removed=self.result.components_removed,
            failed_deletions=len(self.result.failed_deletions),
            duration_seconds=round(self.result.duration_seconds, 2),
        )
        return 1 if self._report_failed else 0

    async def run(self) -> JobResult:
        """List repositories and process every one that can be affected by the rules."""
        repositories = await self.client.list_repositories()
        targets = []
        for repository in repositories:
            logger.debug("repository_found", repository=repository.name, type=repository.type.value)
            if repository.is_aggregate:
                continue
            if not self.compiled.gate.matches(repository.name):
                continue
            targets.append(repository)

        logger.info("repositories_selected", selected=len(targets), total=len(repositories))

        semaphore = asyncio.Semaphore(self.options.concurrency)

        async def bounded(repository: Repository):
            async with semaphore:
                await self.process_repository(repository)

        tasks = [asyncio.ensure_future(bounded(repository)) for repository in targets]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            # no repository task may outlive the client context
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return self.result

    async def process_repository(self, repository: Repository):
        """Walk the continuation-token chain of one repository."""
        log = logger.bind(repository=repository.name)
        self.result.repositories_scanned += 1
        self.metrics.record_repository()

        token: Optional[str] = None
        while True:
            log.debug("fetching_page", token=token)
            try:
                page = await self.client.list_components(repository.name, token)
            except Exception as e:
                log.warning("page_fetch_failed", token=token, error=str(e))
                self.metrics.record_page_failure()
                self.result.repositories_aborted.append(repository.name)
                return

            await self.process_page(repository, page.items)

            token = page.next_token
            if not token:
                break

        log.debug("repository_done")

    async def process_page(self, repository: Repository, components: List[Component]):
        """Select, delete and account for the components of one page."""
        self.metrics.record_page(len(components))
        selected = [component for component in components if self.compiled.matcher.is_selected(component)]

        logger.debug("page_filtered", repository=repository.name,
                     selected=len(selected), total=len(components))

        if self.options.dry_run:
            removed = selected
            if selected:
                logger.debug("dry_run_skip_delete", repository=repository.name, count=len(selected))
        else:
            removed = await self._delete_sequentially(repository, selected)

        removed_ids = {component.id for component in removed}
        remaining = [component for component in components if component.id not in removed_ids]

        async with self._lock:
            self.result.pages_processed += 1
            self.result.components_scanned += len(components)
            self.result.components_selected += len(selected)
            self.result.components_removed += len(removed)
            self.result.bytes_removed += total_size(removed)
            self.metrics.record_selected(len(selected))
            self.metrics.record_removed(len(removed), total_size(removed))
            self._add_to_reports(repository, selected, removed, remaining)

    async def _delete_sequentially(self, repository: Repository,
                                   components: List[Component]) -> List[Component]:
        removed = []
        for component in components:
            try:
                await self.client.delete_component(component.id)
            except Exception as e:
                logger.error("delete_failed", repository=repository.name,
                             component_id=component.id, name=component.name,
                             version=component.version, error=str(e))
                self.metrics.record_deletion_failure()
                self.result.failed_deletions.append(component.id)
                continue
            logger.debug("deleted", repository=repository.name, component_id=component.id)
            removed.append(component)
        return removed

    def _add_to_reports(self, repository: Repository, selected: List[Component],
                        removed: List[Component], remaining: List[Component]):
        if self.repository_summary.enabled:
            self.repository_summary.add_repository_stats(
                repository.name, repository.format,
                len(removed), total_size(removed),
                len(remaining), total_size(remaining),
            )

        if self.groups_summary.enabled:
            removed_by_group: Dict[str, List[Component]] = defaultdict(list)
            remaining_by_group: Dict[str, List[Component]] = defaultdict(list)
            for component in removed:
                if component.group is not None:
                    removed_by_group[component.group].append(component)
            for component in remaining:
                if component.group is not None:
                    remaining_by_group[component.group].append(component)

            for group in set(removed_by_group) | set(remaining_by_group):
                group_removed = removed_by_group.get(group, [])
                group_remaining = remaining_by_group.get(group, [])
                self.groups_summary.add_group_stats(
                    group,
                    len(group_removed), total_size(group_removed),
                    len(group_remaining), total_size(group_remaining),
                )

        if self._component_writer is not None:
            try:
                for component in selected:
                    self._component_writer.write_component(component)
            except ReportWriteError as e:
                logger.error("component_output_failed", error=str(e))
                self._report_failed = True
                with contextlib.suppress(ReportWriteError):
                    self._close_component_writer()

    def _close_component_writer(self):
        writer, self._component_writer = self._component_writer, None
        if writer is not None:
            writer.close()

    def write_reports(self):
        """Print the enabled summaries and write the report and metrics files."""
        dry_run = self.options.dry_run
        printed = False
        if self.repository_summary.enabled:
            console.print_repositories_summary(self.repository_summary, self.options.repo_sort,
                                               dry_run, out=self.out)
            printed = True
        if self.groups_summary.enabled:
            if printed:
                print("", file=self.out)
            console.print_groups_summary(self.groups_summary, self.options.group_sort,
                                         self.options.top_groups, dry_run, out=self.out)

        writer = create_report_writer(self.options.report_output_file)
        if writer is not None:
            with writer:
                if self.repository_summary.enabled:
                    writer.write_repositories_summary(self.repository_summary, self.options.repo_sort)
                if self.groups_summary.enabled:
                    writer.write_groups_summary(self.groups_summary, self.options.group_sort,
                                                self.options.top_groups)

        if self.options.metrics_file:
            self.metrics.write(self.options.metrics_file)
