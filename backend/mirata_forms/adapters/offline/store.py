"""In-memory offline OData store.

The store keeps a local copy of the Mirata entity sets, applies actions
locally and queues them for upload. Entity sets listed in
``LOCAL_ONLY_ENTITY_SETS`` are never queued; their rows only live on the
device until the next routine sync clears them.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from mirata_forms.core.constants import (
    ACTION_UNDO_PENDING_CHANGES,
    ENTITY_KEYS,
    HEADER_REMOVE_AFTER_UPLOAD,
    LOCAL_ONLY_ENTITY_SETS,
    VERSIONED_ENTITY_SETS,
)
from mirata_forms.core.exceptions import EntityNotFoundError, OfflineStoreError, QueryError
from mirata_forms.core.models import ActionRequest, ActionResult, DefiningRequest, default_defining_requests
from mirata_forms.core.protocols import OfflineStore
from mirata_forms.core.query import entity_link
from mirata_forms.infra.instrumentation import operation_span

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mirata_forms.core.protocols import ODataService
    from mirata_forms.core.query import ODataQuery
    from mirata_forms.core.types import EntityKey, JsonDict

__all__ = ('OfflineODataStore', 'PendingChange')

_OFFLINE_HEADER_PREFIX = 'OfflineOData.'


@dataclass(frozen=True, slots=True)
class PendingChange:
    """A local change waiting to be uploaded."""

    action: ActionRequest
    link: str


@dataclass
class OfflineODataStore(OfflineStore):
    """Local offline store that synchronizes with a remote ODataService.

    Example:
        >>> store = OfflineODataStore(remote=adapter)
        >>> await store.download(default_defining_requests())
        >>> rows = await store.read('Submissions', query)
    """

    remote: ODataService
    _sets: dict[str, dict[EntityKey, JsonDict]] = field(default_factory=dict, init=False, repr=False)
    _pending: list[PendingChange] = field(default_factory=list, init=False, repr=False)
    _defining_requests: list[DefiningRequest] = field(default_factory=list, init=False, repr=False)
    _downloaded: bool = field(default=False, init=False)
    _open: bool = field(default=True, init=False)

    @property
    def service_name(self) -> str:
        return f'offline:{self.remote.service_name}'

    @property
    def has_downloaded(self) -> bool:
        return self._downloaded

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def pending_changes(self) -> tuple[PendingChange, ...]:
        return tuple(self._pending)

    # =========================================================================
    # ODataService
    # =========================================================================
    async def read(self, entity_set: str, query: ODataQuery | None = None) -> list[JsonDict]:
        """Read rows from the local copy of ``entity_set``."""
        self._ensure_open('read')
        rows = [dict(row) for row in self._sets.get(entity_set, {}).values()]
        if query is None:
            return rows
        return query.evaluate(rows)

    async def execute(self, action: ActionRequest) -> ActionResult:
        """Apply an action locally and queue it for upload."""
        self._ensure_open(action.name)
        with logfire.span('offline.execute', action=action.name, kind=action.kind, entity_set=action.entity_set):
            if action.kind == 'create':
                row = self._store_row(action.entity_set, dict(action.properties))
                self._queue(action, row['@odata.readLink'])
                return ActionResult(action=action.name, entity=dict(row))

            target_set, key, current = self._resolve(action)
            if action.kind == 'update':
                updated = {k: v for k, v in current.items() if not k.startswith('@odata.')}
                updated.update(action.properties)
                if action.entity_set not in VERSIONED_ENTITY_SETS:
                    del self._sets[target_set][key]
                row = self._store_row(target_set, updated)
                self._queue(action, current['@odata.readLink'])
                return ActionResult(action=action.name, entity=dict(row))

            del self._sets[target_set][key]
            link = current['@odata.readLink']
            if action.kind == 'undo':
                self._pending = [change for change in self._pending if change.link != link]
            else:
                self._queue(action, link)
            return ActionResult(action=action.name, entity=None)

    # =========================================================================
    # OfflineStore
    # =========================================================================
    async def reinitialize(self) -> None:
        """Re-open the store before a routine sync.

        Local rows and pending changes are kept. A closed store is opened
        again. The defining requests registered by the last download are
        checked so that a routine download never loads one entity set twice.

        Raises:
            OfflineStoreError: If two registered defining requests name the
                same entity set.
        """
        with logfire.span('offline.reinitialize', pending=len(self._pending), was_open=self._open):
            names = [request.name for request in self._defining_requests]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                raise OfflineStoreError('reinitialize', f'duplicate defining requests: {", ".join(duplicates)}')
            self._open = True

    async def close(self) -> None:
        self._open = False

    async def upload(self) -> int:
        """Replay pending changes against the remote service in order.

        A failed change stops the upload; it and every later change stay queued.
        """
        self._ensure_open('upload')
        uploaded = 0
        with operation_span('offline.upload', pending=len(self._pending)) as span:
            while self._pending:
                change = self._pending[0]
                remote_action = change.action.model_copy(
                    update={
                        'headers': {
                            k: v for k, v in change.action.headers.items() if not k.startswith(_OFFLINE_HEADER_PREFIX)
                        }
                    }
                )
                await self.remote.execute(remote_action)
                self._pending.pop(0)
                uploaded += 1
                if change.action.headers.get(HEADER_REMOVE_AFTER_UPLOAD):
                    self._drop_link(change.action.entity_set, change.link)
            span.set_attribute('uploaded', uploaded)
        return uploaded

    async def download(self, defining_requests: list[DefiningRequest] | None = None) -> dict[str, int]:
        """Refresh each defining-request entity set from the remote service."""
        self._ensure_open('download')
        requests = defining_requests or self._defining_requests or default_defining_requests()
        counts: dict[str, int] = {}
        with operation_span('offline.download', sets=len(requests)):
            for request in requests:
                rows = await self.remote.read(request.query)
                counts[request.name] = self.load(request.name, rows)
        self._defining_requests = list(requests)
        self._downloaded = True
        return counts

    async def undo_pending_changes(self, entity_set: str, edit_link: str) -> None:
        """Discard a local entity and the pending changes recorded for it."""
        await self.execute(
            ActionRequest(name=ACTION_UNDO_PENDING_CHANGES, kind='undo', entity_set=entity_set, read_link=edit_link)
        )

    # =========================================================================
    # Loading
    # =========================================================================
    def load(self, entity_set: str, rows: Iterable[JsonDict]) -> int:
        """Replace ``entity_set`` with ``rows`` as received from the service.

        Rows with changes still waiting for upload are kept.
        """
        pending_links = {change.link for change in self._pending}
        kept = {
            key: row
            for key, row in self._sets.get(entity_set, {}).items()
            if row.get('@odata.readLink') in pending_links
        }
        self._sets[entity_set] = {}
        count = 0
        for row in rows:
            try:
                self._store_row(entity_set, {k: v for k, v in row.items() if not k.startswith('@odata.')})
            except QueryError as exc:
                logfire.warning('offline_row_skipped', entity_set=entity_set, error=str(exc))
                continue
            count += 1
        self._sets[entity_set].update(kept)
        return count

    # =========================================================================
    # Private Methods
    # =========================================================================
    def _ensure_open(self, operation: str) -> None:
        if not self._open:
            raise OfflineStoreError(operation, 'store is closed')

    def _key(self, entity_set: str, row: JsonDict) -> EntityKey:
        return tuple(row.get(name) for name in ENTITY_KEYS.get(entity_set, ('id',)))

    def _store_row(self, entity_set: str, row: dict[str, Any]) -> JsonDict:
        link = entity_link(entity_set, row)
        row['@odata.readLink'] = link
        row['@odata.editLink'] = link
        self._sets.setdefault(entity_set, {})[self._key(entity_set, row)] = row
        return row

    def _queue(self, action: ActionRequest, link: str) -> None:
        if action.entity_set in LOCAL_ONLY_ENTITY_SETS:
            return
        self._pending.append(PendingChange(action=action, link=link))

    def _resolve(self, action: ActionRequest) -> tuple[str, EntityKey, JsonDict]:
        if not action.read_link:
            raise OfflineStoreError(action.name, 'action requires a read link')
        for key, row in self._sets.get(action.entity_set, {}).items():
            if row.get('@odata.readLink') == action.read_link:
                return action.entity_set, key, row
        raise EntityNotFoundError(action.entity_set, action.read_link)

    def _drop_link(self, entity_set: str, link: str) -> None:
        rows = self._sets.get(entity_set, {})
        for key, row in list(rows.items()):
            if row.get('@odata.readLink') == link:
                del rows[key]
