"""Ordered, non-blocking error reporting to the Mirata logging facility.

Each report is logged locally right away and queued as a ``LogEntries``
create action. A single writer task per reporter drains the queue, so log
writes reach the service in the order they were reported and callers never
wait on them. Reporting never raises.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import asyncio
import json
import traceback
from typing import TYPE_CHECKING, Any

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.constants import (
    ACTION_LOG_INFO_CREATE,
    HEADER_REMOVE_AFTER_UPLOAD,
    HEADER_TRANSACTION_ID,
    LOG_ENTRIES,
    LOG_SOURCE,
)
from ..core.exceptions import ClientDataError
from ..core.helpers import to_odata_datetime
from ..core.models import ActionRequest, LogEntry, SessionInfo
from ..infra.instrumentation import get_logger

if TYPE_CHECKING:
    from ..core.protocols import ODataService
    from ..core.types import JsonDict

__all__ = ('ErrorReporter', 'normalize_error')

_log = get_logger('services.error_reporter')


def normalize_error(error: Any) -> BaseException:
    """Exceptions pass through; strings become Exceptions; anything else is described."""
    if isinstance(error, BaseException):
        return error
    if isinstance(error, str):
        return Exception(error)
    return Exception(f'Caught a non-error: {json.dumps(error, default=str)}')


class ErrorReporter:
    """Per-session error sink.

    Example:
        >>> async with ErrorReporter(store, session) as reporter:
        ...     reporter.report(exc, {'component': 'DataTables'})
    """

    def __init__(self, service: ODataService, session: SessionInfo | None = None) -> None:
        self.service = service
        self.session = session or SessionInfo()
        self.failed_writes = 0
        self._queue: asyncio.Queue[ActionRequest | None] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    async def __aenter__(self) -> ErrorReporter:
        self._ensure_writer()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def pending(self) -> int:
        """Log writes queued but not yet completed."""
        return self._queue.qsize()

    def report(self, error: Any, data: Any = None) -> LogEntry | None:
        """Record ``error`` locally and queue it for the Mirata log.

        Args:
            error: Exception, message string or any other value.
            data: Context mapping; anything else is replaced by an empty dict.

        Returns:
            The queued log entry, or None if reporting itself failed.
        """
        try:
            exc = normalize_error(error)
            payload = self._enrich(data)
            serialized = json.dumps(payload, default=str)
            entry = LogEntry(
                message=_message(exc),
                event_time=to_odata_datetime(),
                data=serialized,
                stack=''.join(traceback.format_exception(exc)),
            )
            action = ActionRequest(
                name=ACTION_LOG_INFO_CREATE,
                kind='create',
                entity_set=LOG_ENTRIES,
                properties=entry.model_dump(by_alias=True),
                headers={HEADER_REMOVE_AFTER_UPLOAD: True, HEADER_TRANSACTION_ID: entry.id},
            )
            if self._closed:
                _log.warning('error_reporter_closed', entry_id=entry.id)
            else:
                self._queue.put_nowait(action)
                self._ensure_writer()
            _log.error(
                '[{source}] Error: {message}; data: {data}',
                source=LOG_SOURCE,
                message=entry.message,
                data=serialized,
            )
            return entry
        except Exception as secondary:
            _log_secondary(secondary)
            return None

    def log_info(self, info: str, data: Any = None) -> None:
        """Log an informational event locally.

        The Mirata logging facility does not accept info events, so nothing
        is queued for upload.
        """
        if not info:
            raise ClientDataError('log_info() called with no information provided', fields=['info'])
        details = f'Data: {data};' if data else ''
        _log.info(
            '[{source}] {info}; {details} Page: {page}',
            source=LOG_SOURCE,
            info=info,
            details=details,
            page=self.session.page_path,
        )

    async def drain(self) -> None:
        """Wait until every queued log write has been attempted."""
        self._ensure_writer()
        await self._queue.join()

    async def aclose(self) -> None:
        """Drain the queue and stop the writer."""
        if self._closed:
            return
        await self.drain()
        self._closed = True
        if self._writer is not None:
            self._queue.put_nowait(None)
            await self._writer
            self._writer = None

    # =========================================================================
    # Private Methods
    # =========================================================================
    def _enrich(self, data: Any) -> JsonDict:
        payload: JsonDict = dict(data) if isinstance(data, dict) else {}
        mdk_info = payload.get('mdkInfo')
        mdk_info = dict(mdk_info) if isinstance(mdk_info, dict) else {}
        mdk_info['mdkPage'] = self.session.page_path
        mdk_info['sapUserId'] = self.session.user_id
        mdk_info['platform'] = self.session.platform
        payload['mdkInfo'] = mdk_info
        return payload

    def _ensure_writer(self) -> None:
        if self._closed or (self._writer is not None and not self._writer.done()):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Started by the next report or drain made from a running loop
            return
        self._writer = loop.create_task(self._write_loop(), name='mirata-error-reporter')

    async def _write_loop(self) -> None:
        while True:
            action = await self._queue.get()
            try:
                if action is None:
                    return
                with logfire.span('error_reporter.write', entry_id=action.properties.get('id')):
                    await self.service.execute(action)
            except Exception as exc:
                self.failed_writes += 1
                _log_secondary(exc)
            finally:
                self._queue.task_done()


def _message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _log_secondary(exc: BaseException) -> None:
    _log.error(
        '[{source}] Error during LogError processing: {message}; stack: {stack}',
        source=LOG_SOURCE,
        message=_message(exc),
        stack=''.join(traceback.format_exception(exc)),
    )
