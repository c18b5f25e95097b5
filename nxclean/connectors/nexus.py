"""
Nexus Repository Manager REST connector.

This module implements CatalogClient on top of the Nexus 3 REST API
(``/service/rest/v1``): repository listing, paginated component listing and
component deletion.
"""

import base64
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from nxclean.config.nexus_config import NexusConfig
from nxclean.connectors.base import (
    Asset, CatalogClient, Component, ComponentPage, Repository, RepositoryType
)
from nxclean.errors import CatalogError
from nxclean.rules.dates import as_utc

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = {429, 502, 503, 504}

# Zone id suffix written by some server versions, e.g. "...+00:00[UTC]"
_ZONE_ID_SUFFIX = re.compile(r"\[[^\]]*\]$")


class _RetryableStatus(Exception):
    """Transient HTTP status, retried before being reported."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def build_auth_header(config: NexusConfig) -> Optional[str]:
    """Bearer token when configured, otherwise Basic credentials."""
    if config.token:
        return f"Bearer {config.token}"
    if config.username is None and config.password is None:
        return None
    credentials = f"{config.username or ''}:{config.password or ''}"
    return "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the API.

    Returns None only when the value is absent; a present but unreadable
    value raises CatalogError so the page is rejected as a whole.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise CatalogError(f"Unparseable timestamp {value!r} in component listing")

    text = _ZONE_ID_SUFFIX.sub("", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.warning("unparseable_timestamp", value=value)
        raise CatalogError(f"Unparseable timestamp '{value}' in component listing") from None


def parse_asset(data: Dict[str, Any]) -> Asset:
    size = data.get("fileSize")
    return Asset(
        path=data.get("path") or "",
        created_at=parse_timestamp(data.get("blobCreated")),
        last_downloaded_at=parse_timestamp(data.get("lastDownloaded")),
        size_bytes=int(size) if size is not None else None,
    )


def parse_component(data: Dict[str, Any]) -> Component:
    return Component(
        id=data["id"],
        repository=data.get("repository") or "",
        format=data.get("format") or "",
        group=data.get("group"),
        name=data.get("name") or "",
        version=data.get("version"),
        assets=tuple(parse_asset(asset) for asset in data.get("assets") or []),
    )


def parse_repository(data: Dict[str, Any]) -> Repository:
    return Repository(
        name=data.get("name") or "",
        format=data.get("format") or "",
        type=RepositoryType.parse(data.get("type")),
    )


class NexusCatalogClient(CatalogClient):
    """CatalogClient for Nexus Repository Manager 3."""

    def __init__(self, config: NexusConfig,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 retry_wait=None):
        """
        Initialize the Nexus client.

        Args:
            config: Connection configuration
            transport: Optional httpx transport (used by tests)
            retry_wait: Optional tenacity wait strategy between retries
        """
        self.config = config
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    async def connect(self):
        """Initialize the HTTP client."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        auth_header = build_auth_header(self.config)
        if auth_header:
            headers["Authorization"] = auth_header

        kwargs: Dict[str, Any] = {
            "base_url": self.config.api_base_url,
            "headers": headers,
            "timeout": self.config.timeout_seconds,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        else:
            proxy = self.config.effective_proxy()
            if proxy:
                kwargs["proxy"] = proxy
                logger.debug("using_proxy", proxy=proxy)

        self.client = httpx.AsyncClient(**kwargs)
        logger.debug("connected", url=self.config.url)

    async def disconnect(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transport failures and transient statuses."""
        if not self.client:
            raise RuntimeError("Client not connected. Call connect() first.")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries),
                wait=self._retry_wait,
                retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.request(method, endpoint, **kwargs)
                    if response.status_code in RETRYABLE_STATUS_CODES:
                        logger.warning("transient_status", method=method, endpoint=endpoint,
                                       status=response.status_code)
                        raise _RetryableStatus(response)
        except _RetryableStatus as e:
            response = e.response
        except httpx.TransportError as e:
            raise CatalogError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 401:
            raise CatalogError("Authentication failed - check credentials or token", 401)
        if response.status_code >= 400:
            raise CatalogError(
                f"{method} {endpoint} returned HTTP {response.status_code}: {response.text[:200]}",
                response.status_code,
            )
        return response

    async def list_repositories(self) -> List[Repository]:
        response = await self._request("GET", "/v1/repositories")
        return [parse_repository(item) for item in response.json()]

    async def list_components(self, repository: str,
                              continuation_token: Optional[str] = None) -> ComponentPage:
        params = {"repository": repository}
        if continuation_token:
            params["continuationToken"] = continuation_token

        response = await self._request("GET", "/v1/components", params=params)
        data = response.json()
        return ComponentPage(
            items=[parse_component(item) for item in data.get("items") or []],
            continuation_token=data.get("continuationToken"),
        )

    async def delete_component(self, component_id: str) -> None:
        await self._request("DELETE", f"/v1/components/{component_id}")
