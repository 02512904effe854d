"""Protocol definitions for OData services and offline stores.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import ActionRequest, ActionResult, DefiningRequest
    from .query import ODataQuery
    from .types import JsonDict

__all__ = ("ODataService", "OfflineStore")


@runtime_checkable
class ODataService(Protocol):
    """Protocol for anything that serves the Mirata entity sets.

    Implementations are async-first. Every mutation is described by an
    ``ActionRequest`` passed as an argument; implementations must not read
    parameters from shared state.

    Example Implementation:
        >>> class ReadOnlyService:
        ...     async def read(self, entity_set, query=None):
        ...         return query.evaluate(self._rows[entity_set]) if query else list(self._rows[entity_set])
        ...     async def execute(self, action):
        ...         raise NotImplementedError
    """

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Identifier used in logs and errors."""
        ...

    @abstractmethod
    async def read(self, entity_set: str, query: ODataQuery | None = None) -> list[JsonDict]:
        """Read entities from an entity set.

        Args:
            entity_set: Name of the entity set.
            query: Optional filter, ordering, top and select options.

        Returns:
            Matching entities; an empty list when nothing matches.
        """
        ...

    @abstractmethod
    async def execute(self, action: ActionRequest) -> ActionResult:
        """Execute a create, update, delete or undo action.

        Raises:
            EntityNotFoundError: If an update target does not exist.
            ServiceError: If the service rejects the action.
        """
        ...


@runtime_checkable
class OfflineStore(ODataService, Protocol):
    """Protocol for the local offline store synchronized with the service."""

    @property
    @abstractmethod
    def has_downloaded(self) -> bool:
        """Whether the store completed at least one download (not an initial sync)."""
        ...

    @abstractmethod
    async def reinitialize(self) -> None:
        """Re-open the store before a routine sync, keeping local rows and pending changes."""
        ...

    @abstractmethod
    async def upload(self) -> int:
        """Upload pending local changes in order.

        Returns:
            Number of changes uploaded.
        """
        ...

    @abstractmethod
    async def download(self, defining_requests: list[DefiningRequest] | None = None) -> dict[str, int]:
        """Download entity sets from the service.

        Args:
            defining_requests: Entity sets to download; defaults to the sets
                registered at the last download.

        Returns:
            Row count per downloaded entity set.
        """
        ...

    @abstractmethod
    async def undo_pending_changes(self, entity_set: str, edit_link: str) -> None:
        """Discard a local entity and any pending change recorded for it."""
        ...
