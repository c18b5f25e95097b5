"""
Nexus connection and job configuration loader.
"""

import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from nxclean.errors import ConfigurationError
from nxclean.reporting.summary import SortBy

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


class NexusConfig(BaseModel):
    """Nexus Repository Manager connection configuration."""
    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    proxy: Optional[str] = None
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)

    @property
    def api_base_url(self) -> str:
        return self.url.rstrip("/") + "/service/rest"

    def effective_proxy(self) -> Optional[str]:
        """Proxy URL to use for the server, or None for a direct connection."""
        if not self.proxy:
            return None
        host = urlparse(self.url).hostname or ""
        if host in LOCAL_HOSTS or host.startswith("127."):
            return None
        if "://" not in self.proxy:
            return f"http://{self.proxy}"
        return self.proxy


class JobOptions(BaseModel):
    """Options controlling a single cleanup run."""
    rules_file: Path
    dry_run: bool = False
    report_repositories_summary: bool = False
    report_top_groups: bool = False
    repo_sort: SortBy = SortBy.COMPONENTS
    group_sort: SortBy = SortBy.COMPONENTS
    top_groups: int = Field(default=10, ge=1)
    report_output_file: Optional[Path] = None
    output_component_file: Optional[Path] = None
    concurrency: int = Field(default=4, ge=1)
    metrics_file: Optional[Path] = None


def load_nexus_config(url: Optional[str] = None,
                      username: Optional[str] = None,
                      password: Optional[str] = None,
                      token: Optional[str] = None,
                      proxy: Optional[str] = None,
                      env_file: Optional[Path] = None) -> NexusConfig:
    """
    Build the connection configuration.

    Explicit arguments win; missing values are taken from the NEXUS_*
    environment variables (a .env file is loaded first if present).
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    url = url or os.getenv("NEXUS_URL")
    if not url:
        raise ConfigurationError("Nexus server URL is required (--url or NEXUS_URL)")

    try:
        return NexusConfig(
            url=url,
            username=username or os.getenv("NEXUS_USERNAME"),
            password=password or os.getenv("NEXUS_PASSWORD"),
            token=token or os.getenv("NEXUS_TOKEN"),
            proxy=proxy or os.getenv("NEXUS_PROXY"),
            timeout_seconds=os.getenv("NEXUS_TIMEOUT_SECONDS", "30"),
            max_retries=os.getenv("NEXUS_MAX_RETRIES", "3"),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid Nexus configuration: {e}") from e
