"""
Example script showing how to run a cleanup pass from Python.

This script demonstrates how to:
1. Load and validate a rules file
2. Connect to Nexus with settings from the environment
3. Run a dry-run pass and inspect the result

Note: Set NEXUS_URL (and NEXUS_TOKEN or NEXUS_USERNAME/NEXUS_PASSWORD) first.
"""

import asyncio
import logging
from pathlib import Path

from nxclean.cleanup.job import CleanupJob
from nxclean.config.nexus_config import JobOptions, load_nexus_config
from nxclean.connectors.nexus import NexusCatalogClient
from nxclean.rules.parser import CleanupRuleParser

RULES_FILE = Path(__file__).parent / "cleanup_rules.yaml"


async def main():
    """Main example function."""
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    rule_set = CleanupRuleParser().parse_file(RULES_FILE)
    logger.info(f"Enabled rules: {[rule.name for rule in rule_set.enabled_rules]}")

    config = load_nexus_config()
    options = JobOptions(
        rules_file=RULES_FILE,
        dry_run=True,
        report_repositories_summary=True,
        report_top_groups=True,
        top_groups=5,
    )

    job = CleanupJob(NexusCatalogClient(config), rule_set, options)
    exit_code = await job.execute()

    result = job.result
    logger.info(f"Scanned {result.components_scanned} components in {result.repositories_scanned} repositories")
    logger.info(f"{result.components_selected} components ({result.bytes_removed} bytes) would be removed")
    if result.repositories_aborted:
        logger.warning(f"Incomplete repositories: {', '.join(result.repositories_aborted)}")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
