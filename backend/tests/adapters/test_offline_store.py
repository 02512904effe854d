"""Tests for the in-memory offline store.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

from typing import TYPE_CHECKING

import pytest
from dirty_equals import IsPartialDict

from mirata_forms.adapters.offline import OfflineODataStore
from mirata_forms.core.constants import ACTION_UNDO_PENDING_CHANGES
from mirata_forms.core.exceptions import EntityNotFoundError, OfflineStoreError, ServiceConnectionError
from mirata_forms.core.models import ActionRequest, DefiningRequest
from mirata_forms.core.protocols import OfflineStore
from mirata_forms.core.query import ODataQuery, eq

if TYPE_CHECKING:
    from conftest import RecordingService

__all__ = ()

pytestmark = pytest.mark.anyio


def _create(entity_set: str, **properties: object) -> ActionRequest:
    return ActionRequest(name=f"{entity_set}Create", kind="create", entity_set=entity_set, properties=properties)


class TestOfflineStoreExecute:
    """Tests for local action handling."""

    def test_implements_protocol(self, store: OfflineODataStore) -> None:
        assert isinstance(store, OfflineStore)
        assert store.service_name == "offline:recording"

    async def test_create_assigns_links(self, store: OfflineODataStore) -> None:
        result = await store.execute(_create("LogEntries", id="a", message="boom"))

        assert result.entity == IsPartialDict({"@odata.readLink": "LogEntries('a')", "@odata.editLink": "LogEntries('a')"})
        assert await store.read("LogEntries") == [IsPartialDict(id="a", message="boom")]
        assert [change.link for change in store.pending_changes] == ["LogEntries('a')"]

    async def test_versioned_update_keeps_prior_row(self, store: OfflineODataStore) -> None:
        """An update to a submission writes a new version next to the old one."""
        await store.execute(_create("Submissions", id="s1", version=1, status="draft"))
        await store.execute(
            ActionRequest(
                name="FormSubmissionUpdate",
                kind="update",
                entity_set="Submissions",
                read_link="Submissions(id='s1',version=1)",
                properties={"version": 2, "status": "complete"},
            )
        )

        rows = await store.read("Submissions", ODataQuery().order_by("version"))

        assert [(row["version"], row["status"]) for row in rows] == [(1, "draft"), (2, "complete")]
        assert rows[1]["@odata.readLink"] == "Submissions(id='s1',version=2)"
        assert store.pending_changes[1].link == "Submissions(id='s1',version=1)"

    async def test_update_replaces_unversioned_row(self, store: OfflineODataStore) -> None:
        await store.execute(_create("LogEntries", id="a", message="one"))
        await store.execute(
            ActionRequest(
                name="Update", kind="update", entity_set="LogEntries", read_link="LogEntries('a')", properties={"message": "two"}
            )
        )

        assert await store.read("LogEntries") == [IsPartialDict(id="a", message="two")]

    async def test_local_only_set_is_not_queued(self, store: OfflineODataStore) -> None:
        await store.execute(_create("SubmissionImagesClient", submissionId="s1", imageId="i1", dataURL="data:x"))

        assert len(await store.read("SubmissionImagesClient")) == 1
        assert store.pending_changes == ()

    async def test_delete_is_queued(self, store: OfflineODataStore) -> None:
        await store.execute(_create("LogEntries", id="a"))
        await store.execute(ActionRequest(name="Delete", kind="delete", entity_set="LogEntries", read_link="LogEntries('a')"))

        assert await store.read("LogEntries") == []
        assert [change.action.kind for change in store.pending_changes] == ["create", "delete"]

    async def test_undo_drops_pending_changes(self, store: OfflineODataStore) -> None:
        await store.execute(_create("LogEntries", id="a"))
        await store.execute(_create("LogEntries", id="b"))

        await store.undo_pending_changes("LogEntries", "LogEntries('a')")

        assert [row["id"] for row in await store.read("LogEntries")] == ["b"]
        assert [change.link for change in store.pending_changes] == ["LogEntries('b')"]

    async def test_undo_sends_undo_action(self, store: OfflineODataStore, monkeypatch: pytest.MonkeyPatch) -> None:
        await store.execute(_create("LogEntries", id="a"))
        sent: list[ActionRequest] = []
        execute = store.execute

        async def recording_execute(action: ActionRequest) -> object:
            sent.append(action)
            return await execute(action)

        monkeypatch.setattr(store, "execute", recording_execute)
        await store.undo_pending_changes("LogEntries", "LogEntries('a')")

        assert [(action.name, action.kind) for action in sent] == [(ACTION_UNDO_PENDING_CHANGES, "undo")]

    async def test_unknown_link(self, store: OfflineODataStore) -> None:
        with pytest.raises(EntityNotFoundError):
            await store.execute(
                ActionRequest(name="Update", kind="update", entity_set="LogEntries", read_link="LogEntries('nope')")
            )

    async def test_update_requires_link(self, store: OfflineODataStore) -> None:
        with pytest.raises(OfflineStoreError, match="requires a read link"):
            await store.execute(ActionRequest(name="Update", kind="update", entity_set="LogEntries"))

    async def test_closed_store(self, store: OfflineODataStore) -> None:
        await store.close()

        assert store.is_open is False
        with pytest.raises(OfflineStoreError, match="store is closed"):
            await store.read("LogEntries")


class TestOfflineStoreUpload:
    """Tests for replaying pending changes."""

    async def test_upload_in_order(self, store: OfflineODataStore, remote: RecordingService) -> None:
        await store.execute(_create("Submissions", id="s1", version=1))
        await store.execute(
            ActionRequest(
                name="FormSubmissionUpdate",
                kind="update",
                entity_set="Submissions",
                read_link="Submissions(id='s1',version=1)",
                properties={"version": 2},
            )
        )

        uploaded = await store.upload()

        assert uploaded == 2
        assert [action.kind for action in remote.executed] == ["create", "update"]
        assert store.pending_changes == ()

    async def test_offline_headers_are_stripped(self, store: OfflineODataStore, remote: RecordingService) -> None:
        """Headers meant for the offline store are not sent to the service."""
        await store.execute(
            ActionRequest(
                name="FormLogInfoCreate",
                kind="create",
                entity_set="LogEntries",
                properties={"id": "a"},
                headers={"OfflineOData.RemoveAfterUpload": True, "OfflineOData.TransactionID": "a", "X-Trace": "1"},
            )
        )

        await store.upload()

        assert remote.executed[0].headers == {"X-Trace": "1"}
        # Removed locally once uploaded
        assert await store.read("LogEntries") == []

    async def test_failure_stops_upload(self, store: OfflineODataStore, remote: RecordingService) -> None:
        await store.execute(_create("LogEntries", id="a"))
        await store.execute(
            ActionRequest(name="Broken", kind="create", entity_set="Events", properties={"id": "e"})
        )
        await store.execute(_create("LogEntries", id="b"))
        remote.fail_actions["Broken"] = ServiceConnectionError("recording", "offline")

        with pytest.raises(ServiceConnectionError):
            await store.upload()

        assert [action.properties["id"] for action in remote.executed] == ["a"]
        assert [change.link for change in store.pending_changes] == ["Events('e')", "LogEntries('b')"]


class TestOfflineStoreDownload:
    """Tests for refreshing entity sets."""

    async def test_download_replaces_sets(self, store: OfflineODataStore, remote: RecordingService) -> None:
        remote.rows["Definitions"] = [{"id": "d1", "version": 1}, {"id": "d1", "version": 2}]
        remote.rows["Submissions"] = [{"id": "s1", "version": 1}]
        requests = [
            DefiningRequest(name="Definitions", query="Definitions"),
            DefiningRequest(name="Submissions", query="Submissions"),
        ]

        counts = await store.download(requests)

        assert counts == {"Definitions": 2, "Submissions": 1}
        assert store.has_downloaded is True
        latest = await store.read("Definitions", ODataQuery().filter(eq("id", "d1")).order_by("version", descending=True).top(1))
        assert latest == [IsPartialDict(version=2, **{"@odata.readLink": "Definitions(id='d1',version=2)"})]

    async def test_download_reuses_registered_requests(self, store: OfflineODataStore, remote: RecordingService) -> None:
        await store.download([DefiningRequest(name="Events", query="Events")])
        remote.reads.clear()

        await store.download()

        assert [entity_set for entity_set, _ in remote.reads] == ["Events"]

    async def test_download_keeps_pending_rows(self, store: OfflineODataStore, remote: RecordingService) -> None:
        await store.execute(_create("LogEntries", id="local"))
        remote.rows["LogEntries"] = [{"id": "remote"}]

        await store.download([DefiningRequest(name="LogEntries", query="LogEntries")])

        assert sorted(row["id"] for row in await store.read("LogEntries")) == ["local", "remote"]

    def test_load_skips_keyless_rows(self, store: OfflineODataStore) -> None:
        count = store.load("Submissions", [{"id": "s1", "version": 1}, {"id": "s2"}])

        assert count == 1

    async def test_reinitialize_keeps_state(self, store: OfflineODataStore) -> None:
        await store.execute(_create("LogEntries", id="a"))

        await store.reinitialize()

        assert store.is_open is True
        assert len(store.pending_changes) == 1

    async def test_reinitialize_reopens_closed_store(self, store: OfflineODataStore) -> None:
        await store.execute(_create("LogEntries", id="a"))
        await store.close()

        await store.reinitialize()

        assert store.is_open is True
        assert [row["id"] for row in await store.read("LogEntries")] == ["a"]

    async def test_reinitialize_rejects_duplicate_defining_requests(self, store: OfflineODataStore) -> None:
        request = DefiningRequest(name="LogEntries", query="LogEntries")
        await store.download([request, request])

        with pytest.raises(OfflineStoreError, match="duplicate defining requests: LogEntries"):
            await store.reinitialize()
