"""Two-phase forms synchronization.

The base application syncs first; the forms entity sets sync only after it
succeeded. Ordering comes from awaiting one before starting the other, and
the in-progress flag refuses overlapping requests.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

# Local imports (core first, then alphabetical)
from ..core.constants import COMPONENT_SYNC
from ..core.exceptions import SyncInProgressError
from ..core.models import DefiningRequest, SyncReport, default_defining_requests
from ..infra.instrumentation import Metrics, get_logger, operation_span
from .images import SubmissionImageService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..core.deps import SyncDeps
    from ..core.types import SyncMode

__all__ = ('SyncSequencer',)

_log = get_logger('services.sync')


class SyncSequencer:
    """Runs the forms synchronization against the offline store.

    A routine sync re-initializes the store, uploads pending changes,
    downloads and then clears the transient client images. The first sync
    of a store only downloads the defining requests.

    Example:
        >>> sequencer = SyncSequencer(SyncDeps(service=store, store=store, reporter=reporter))
        >>> report = await sequencer.sync_application(base_app.sync)
    """

    def __init__(self, deps: SyncDeps, defining_requests: list[DefiningRequest] | None = None) -> None:
        self.deps = deps
        self.defining_requests = defining_requests or default_defining_requests()
        self.images = SubmissionImageService(deps.store, deps.reporter)
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def sync_application(self, base_sync: Callable[[], Awaitable[Any]]) -> SyncReport:
        """Sync the base application, then the forms entity sets.

        Raises:
            SyncInProgressError: If a sync is already running.
        """
        if self._in_progress:
            raise SyncInProgressError()
        self._in_progress = True
        try:
            with operation_span('sync.application'):
                await base_sync()
        except Exception as exc:
            self._in_progress = False
            self.deps.reporter.report(exc, {'component': COMPONENT_SYNC})
            raise
        return await self._sync_forms()

    async def sync_forms(self) -> SyncReport:
        """Sync the forms entity sets only.

        Raises:
            SyncInProgressError: If a sync is already running.
        """
        if self._in_progress:
            raise SyncInProgressError()
        return await self._sync_forms()

    async def _sync_forms(self) -> SyncReport:
        store = self.deps.store
        mode: SyncMode = 'routine' if store.has_downloaded else 'initial'
        self._in_progress = True
        report = SyncReport(mode=mode)
        started = time.perf_counter()
        try:
            with operation_span('sync.forms', mode=mode):
                if mode == 'initial':
                    report.downloaded = await store.download(self.defining_requests)
                else:
                    await store.reinitialize()
                    report.uploaded = await store.upload()
                    report.downloaded = await store.download()
                    report.cleared_images = await self.images.clear_client_images(store)
        except Exception as exc:
            self._in_progress = False
            error_info = f'Exception during Mirata Forms {mode} synchronization'
            self.deps.reporter.report(exc, {'component': COMPONENT_SYNC, 'mdkInfo': {'errorInfo': error_info}})
            raise

        self._in_progress = False
        report.completed_at = datetime.now(UTC)
        duration_ms = (time.perf_counter() - started) * 1000
        Metrics.record_sync(mode, report.uploaded, sum(report.downloaded.values()), duration_ms)
        _log.info('forms_sync_complete', mode=mode, cleared_images=report.cleared_images)
        return report
