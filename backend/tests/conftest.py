"""Shared test fixtures and helpers for mirata-forms tests.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest

from mirata_forms.adapters.offline import OfflineODataStore
from mirata_forms.core.deps import FormsDeps, SyncDeps
from mirata_forms.core.exceptions import EntityNotFoundError
from mirata_forms.core.models import ActionRequest, ActionResult, SessionInfo
from mirata_forms.core.query import ODataQuery, entity_link, eq
from mirata_forms.services.error_reporter import ErrorReporter

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

__all__ = ("TestEnv", "RecordingService")


class TestEnv:
    """Helper for managing environment variables in tests."""

    __test__ = False  # Prevent pytest from collecting this class

    def __init__(self) -> None:
        self.envars: dict[str, str | None] = {}

    def set(self, name: str, value: str) -> None:
        """Set an environment variable, saving the original value."""
        self.envars[name] = os.getenv(name)
        os.environ[name] = value

    def remove(self, name: str) -> None:
        """Remove an environment variable, saving the original value."""
        self.envars[name] = os.environ.pop(name, None)

    def reset(self) -> None:
        """Reset all modified environment variables to original values."""
        for name, value in self.envars.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value


@dataclass
class RecordingService:
    """In-memory stand-in for the remote Mirata service.

    Reads evaluate queries over ``rows``; executed actions are recorded and
    can be made to fail by name.
    """

    rows: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    executed: list[ActionRequest] = field(default_factory=list)
    reads: list[tuple[str, ODataQuery | None]] = field(default_factory=list)
    fail_actions: dict[str, Exception] = field(default_factory=dict)
    fail_reads: dict[str, Exception] = field(default_factory=dict)

    @property
    def service_name(self) -> str:
        return "recording"

    async def read(self, entity_set: str, query: ODataQuery | None = None) -> list[dict[str, Any]]:
        self.reads.append((entity_set, query))
        if entity_set in self.fail_reads:
            raise self.fail_reads[entity_set]
        rows = [dict(row) for row in self.rows.get(entity_set, [])]
        return query.evaluate(rows) if query is not None else rows

    async def execute(self, action: ActionRequest) -> ActionResult:
        if action.name in self.fail_actions:
            raise self.fail_actions[action.name]
        self.executed.append(action)
        if action.kind == "create":
            self.rows.setdefault(action.entity_set, []).append(dict(action.properties))
            return ActionResult(action=action.name, entity=dict(action.properties))
        rows = self.rows.get(action.entity_set, [])
        for index, row in enumerate(rows):
            if entity_link(action.entity_set, row) == action.read_link:
                if action.kind == "update":
                    rows.append({**row, **action.properties})
                else:
                    del rows[index]
                return ActionResult(action=action.name)
        raise EntityNotFoundError(action.entity_set, action.read_link or "")


def _client_data(**metadata: Any) -> dict[str, Any]:
    instance = {"id": "sub-1", "status": "in-progress", "headerInfo": {"workOrderId": "4711"}}
    instance.update(metadata)
    return {
        "definition": {"id": "org1.form.inspection", "version": 3, "organizationId": "org1", "formType": "inspection"},
        "formUser": {"id": "JSMITH"},
        "formSubmissionData": {"apiFormInstanceMetadata": instance, "formData": {"answer": 42}},
        "submissionQuery": ODataQuery().filter(eq("id", "sub-1")).order_by("version", descending=True).top(1),
    }


@pytest.fixture
def env() -> Iterator[TestEnv]:
    """Fixture for managing environment variables in tests."""
    test_env = TestEnv()
    yield test_env
    test_env.reset()


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def session() -> SessionInfo:
    return SessionInfo(page_path="/Pages/Forms/FormsExtension.page", user_id="JSMITH", platform="Android")


@pytest.fixture
def remote() -> RecordingService:
    """Remote service with no rows."""
    return RecordingService()


@pytest.fixture
def store(remote: RecordingService) -> OfflineODataStore:
    """Offline store on top of the recording remote."""
    return OfflineODataStore(remote=remote)


@pytest.fixture
def reporter(store: OfflineODataStore, session: SessionInfo) -> ErrorReporter:
    return ErrorReporter(store, session)


@pytest.fixture
def forms_deps(store: OfflineODataStore, reporter: ErrorReporter, session: SessionInfo) -> FormsDeps:
    return FormsDeps(service=store, reporter=reporter, session=session)


@pytest.fixture
def sync_deps(store: OfflineODataStore, reporter: ErrorReporter, session: SessionInfo) -> SyncDeps:
    return SyncDeps(service=store, store=store, reporter=reporter, session=session)


@pytest.fixture
def make_client_data() -> Callable[..., dict[str, Any]]:
    """Factory for raw client data of one form save; keyword arguments override instance metadata."""
    return _client_data


@pytest.fixture
def client_data() -> dict[str, Any]:
    return _client_data()
