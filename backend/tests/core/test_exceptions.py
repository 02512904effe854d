"""Tests for core exceptions.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

from mirata_forms.core.exceptions import (
    AuthenticationError,
    ClientDataError,
    DataTableError,
    EntityNotFoundError,
    MirataFormsError,
    ODataRequestError,
    ServiceConnectionError,
    ServiceError,
    SyncInProgressError,
    classify_error,
)

__all__ = ()


class TestMirataFormsError:
    """Tests for the base MirataFormsError."""

    def test_basic_creation(self) -> None:
        """Error should be created with message."""
        error = MirataFormsError("Test error")

        assert str(error) == "Test error"
        assert error.context == {}
        assert error.recoverable is True


class TestServiceErrors:
    """Tests for service errors."""

    def test_entity_not_found(self) -> None:
        error = EntityNotFoundError("Submissions", "Submissions(id='s1',version=1)")

        assert isinstance(error, ServiceError)
        assert error.read_link == "Submissions(id='s1',version=1)"
        assert error.recoverable is False

    def test_request_error_server_side_is_recoverable(self) -> None:
        """5xx answers may succeed on retry; 4xx answers will not."""
        assert ODataRequestError("GET", "/Submissions", 503, "busy").recoverable is True
        assert ODataRequestError("GET", "/Submissions", 400, "bad").recoverable is False

    def test_request_error_message(self) -> None:
        error = ODataRequestError("PATCH", "/Submissions('x')", 409, "conflict")

        assert str(error) == "PATCH /Submissions('x') failed (409): conflict"
        assert error.context == {"method": "PATCH", "path": "/Submissions('x')", "status_code": 409}

    def test_data_table_error(self) -> None:
        error = DataTableError("missing", table_name="SSAM UX Configuration")

        assert error.table_name == "SSAM UX Configuration"


class TestClassifyError:
    """Tests for error classification."""

    def test_connection_error_is_transient(self) -> None:
        assert classify_error(ServiceConnectionError("mirata", "timeout")) == ("transient", "retry")

    def test_authentication_error_is_fatal(self) -> None:
        assert classify_error(AuthenticationError("mirata")) == ("fatal", "abort")

    def test_sync_in_progress_is_skipped(self) -> None:
        assert classify_error(SyncInProgressError()) == ("recoverable", "skip")

    def test_client_data_error_is_fatal(self) -> None:
        assert classify_error(ClientDataError("bad", fields=["formUser"])) == ("fatal", "abort")

    def test_unknown_error_is_transient(self) -> None:
        assert classify_error(RuntimeError("x")) == ("transient", "retry")
