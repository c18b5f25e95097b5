"""
Shared fixtures for nxclean tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from nxclean.connectors.base import (
    Asset, CatalogClient, Component, ComponentPage, Repository, RepositoryType
)
from nxclean.errors import CatalogError

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


class FakeCatalog(CatalogClient):
    """In-memory catalog recording every call made by the pipeline."""

    def __init__(self, repositories: List[Repository], pages: Dict[str, List[ComponentPage]]):
        self.repositories = repositories
        self.pages = pages
        self.failing_pages: Dict[str, int] = {}
        self.failing_deletes = set()
        self.list_calls: List[tuple] = []
        self.deleted: List[str] = []
        self.delete_attempts: List[str] = []
        self.connected = False
        self.disconnected = False

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.disconnected = True

    async def list_repositories(self):
        return list(self.repositories)

    async def list_components(self, repository: str, continuation_token: Optional[str] = None):
        self.list_calls.append((repository, continuation_token))
        index = 0 if continuation_token is None else int(continuation_token)
        if self.failing_pages.get(repository) == index:
            raise CatalogError(f"page {index} of {repository} unavailable", 500)
        return self.pages[repository][index]

    async def delete_component(self, component_id: str):
        self.delete_attempts.append(component_id)
        if component_id in self.failing_deletes:
            raise CatalogError(f"cannot delete {component_id}", 500)
        self.deleted.append(component_id)


def chain(*pages: List[Component]) -> List[ComponentPage]:
    """Build a continuation-token chain where token N points at page N."""
    result = []
    for index, items in enumerate(pages):
        token = str(index + 1) if index + 1 < len(pages) else None
        result.append(ComponentPage(items=list(items), continuation_token=token))
    return result


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_component():
    counter = {"value": 0}

    def factory(name: str = "lib", *, repository: str = "maven-snapshots", format: str = "maven2",
                group: Optional[str] = "com.example", version: str = "1.0.0-SNAPSHOT",
                ages=(60,), downloaded=(None,), size: Optional[int] = 100, id: Optional[str] = None):
        counter["value"] += 1
        assets = []
        for index, age in enumerate(ages):
            last = downloaded[index] if index < len(downloaded) else None
            assets.append(Asset(
                path=f"{name}/{version}/{name}-{index}.jar",
                created_at=days_ago(age) if age is not None else None,
                last_downloaded_at=days_ago(last) if last is not None else None,
                size_bytes=size,
            ))
        return Component(
            id=id or f"c{counter['value']}",
            repository=repository,
            format=format,
            group=group,
            name=name,
            version=version,
            assets=tuple(assets),
        )

    return factory


@pytest.fixture
def hosted():
    def factory(name: str, format: str = "maven2", type: RepositoryType = RepositoryType.HOSTED):
        return Repository(name=name, format=format, type=type)
    return factory


@pytest.fixture
def fake_catalog():
    return FakeCatalog


@pytest.fixture
def page_chain():
    return chain


@pytest.fixture(name="days_ago")
def days_ago_fixture():
    return days_ago
