"""Exception hierarchy for mirata-forms.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types import ErrorCategory, RecoveryStrategy

__all__ = (
    'MirataFormsError',
    'ClientDataError',
    'ImageDataError',
    'QueryError',
    'ServiceError',
    'ServiceConnectionError',
    'AuthenticationError',
    'EntityNotFoundError',
    'ODataRequestError',
    'DataTableError',
    'SyncError',
    'SyncInProgressError',
    'OfflineStoreError',
    'classify_error',
)


class MirataFormsError(Exception):
    """Base exception for all mirata-forms errors.

    All exceptions in the package inherit from this class, enabling
    catch-all handling at application boundaries.

    Attributes:
        context: Additional context for debugging.
        recoverable: Whether the error can potentially be recovered.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None, recoverable: bool = True) -> None:
        self.context = context or {}
        self.recoverable = recoverable
        super().__init__(message)


# =============================================================================
# Input Validation Exceptions
# =============================================================================
class ClientDataError(MirataFormsError):
    """Raised when required client data is missing or malformed."""

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__(message, context={'fields': self.fields}, recoverable=False)


class ImageDataError(MirataFormsError):
    """Raised when a submission image data URL cannot be used."""

    def __init__(self, message: str, *, image_id: str | None = None) -> None:
        self.image_id = image_id
        super().__init__(message, context={'image_id': image_id}, recoverable=False)


class QueryError(MirataFormsError):
    """Raised when a query cannot be built or evaluated."""


# =============================================================================
# Service Exceptions
# =============================================================================
class ServiceError(MirataFormsError):
    """Base exception for OData service errors."""


class ServiceConnectionError(ServiceError):
    """Raised when the OData service cannot be reached."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f'[{service}] Connection failed: {message}', context={'service': service})


class AuthenticationError(ServiceError):
    """Raised when the OData service rejects the credentials."""

    def __init__(self, service: str, message: str = 'Authentication failed') -> None:
        self.service = service
        super().__init__(f'[{service}] {message}', context={'service': service}, recoverable=False)


class EntityNotFoundError(ServiceError):
    """Raised when a read link does not resolve to an entity."""

    def __init__(self, entity_set: str, read_link: str) -> None:
        self.entity_set = entity_set
        self.read_link = read_link
        super().__init__(
            f'Entity not found: {read_link}',
            context={'entity_set': entity_set, 'read_link': read_link},
            recoverable=False,
        )


class ODataRequestError(ServiceError):
    """Raised when the OData service answers with an error status."""

    def __init__(self, method: str, path: str, status_code: int, message: str) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        super().__init__(
            f'{method} {path} failed ({status_code}): {message}',
            context={'method': method, 'path': path, 'status_code': status_code},
            recoverable=status_code >= 500,
        )


class DataTableError(MirataFormsError):
    """Raised when a data table lookup fails."""

    def __init__(self, message: str, *, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(message, context={'table_name': table_name})


# =============================================================================
# Synchronization Exceptions
# =============================================================================
class SyncError(MirataFormsError):
    """Base exception for synchronization errors."""


class SyncInProgressError(SyncError):
    """Raised when a sync is requested while another one is running."""

    def __init__(self) -> None:
        super().__init__('A synchronization is already in progress')


class OfflineStoreError(SyncError):
    """Raised when the offline store rejects an operation."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f'Offline store {operation} failed: {message}', context={'operation': operation})


def classify_error(exc: Exception) -> tuple[ErrorCategory, RecoveryStrategy]:
    """Classify errors into recovery categories and strategies."""
    if isinstance(exc, ServiceConnectionError):
        return 'transient', 'retry'
    if isinstance(exc, AuthenticationError):
        return 'fatal', 'abort'
    if isinstance(exc, SyncInProgressError):
        return 'recoverable', 'skip'
    if isinstance(exc, MirataFormsError):
        return ('recoverable', 'retry') if exc.recoverable else ('fatal', 'abort')
    return 'transient', 'retry'
