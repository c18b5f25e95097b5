"""
Abstract base class for artifact catalog clients.

This module defines the CatalogClient abstract base class that the cleanup
pipeline talks to, together with the read-only records it returns. Any
repository manager backend (or a fake one in tests) can be plugged in by
implementing the three abstract methods.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class RepositoryType(Enum):
    """Repository type enumeration."""
    HOSTED = "hosted"
    PROXY = "proxy"
    GROUP = "group"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RepositoryType":
        try:
            return cls((value or "").lower())
        except ValueError:
            # Unknown types are scanned like hosted repositories
            return cls.HOSTED


@dataclass(frozen=True)
class Repository:
    """Represents a repository on the server."""
    name: str
    format: str
    type: RepositoryType = RepositoryType.HOSTED

    @property
    def is_aggregate(self) -> bool:
        return self.type is RepositoryType.GROUP


@dataclass(frozen=True)
class Asset:
    """Represents one stored file of a component."""
    path: str
    created_at: Optional[datetime] = None
    last_downloaded_at: Optional[datetime] = None
    size_bytes: Optional[int] = None


@dataclass(frozen=True)
class Component:
    """Represents a versioned artifact and its assets."""
    id: str
    repository: str
    format: str
    name: str
    version: Optional[str] = None
    group: Optional[str] = None
    assets: Tuple[Asset, ...] = ()

    @property
    def size_bytes(self) -> int:
        """Total size of all assets; missing sizes count as zero."""
        return sum(asset.size_bytes or 0 for asset in self.assets)


@dataclass(frozen=True)
class ComponentPage:
    """One page of a component listing."""
    items: List[Component] = field(default_factory=list)
    continuation_token: Optional[str] = None

    @property
    def next_token(self) -> Optional[str]:
        """Token for the next page, or None when this is the last page."""
        return self.continuation_token or None


class CatalogClient(ABC):
    """
    Abstract base class for catalog clients.

    Implementations raise ``CatalogError`` for any failed call.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying connection."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the underlying connection."""
        pass

    @abstractmethod
    async def list_repositories(self) -> List[Repository]:
        """
        List all repositories on the server.

        Returns:
            List of Repository objects
        """
        pass

    @abstractmethod
    async def list_components(self, repository: str,
                              continuation_token: Optional[str] = None) -> ComponentPage:
        """
        Fetch one page of components of a repository.

        Args:
            repository: Repository name
            continuation_token: Token returned by the previous page, None for the first page

        Returns:
            ComponentPage with the items and the next continuation token
        """
        pass

    @abstractmethod
    async def delete_component(self, component_id: str) -> None:
        """
        Delete a component.

        Args:
            component_id: ID of the component to delete
        """
        pass

    # Context manager support
    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
