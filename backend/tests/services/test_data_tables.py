"""Tests for data table lookups.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import json
from typing import TYPE_CHECKING

import pytest
from dirty_equals import IsPartialDict

from mirata_forms.core.exceptions import DataTableError
from mirata_forms.services.data_tables import DataTableService

if TYPE_CHECKING:
    from mirata_forms.adapters.offline import OfflineODataStore
    from mirata_forms.core.deps import FormsDeps
    from mirata_forms.services.error_reporter import ErrorReporter

__all__ = ()

pytestmark = pytest.mark.anyio


@pytest.fixture
def tables(forms_deps: FormsDeps, store: OfflineODataStore) -> DataTableService:
    store.load(
        "DataTableMasters",
        [
            {"id": "m1", "name": "SSAM UX Configuration", "organizationId": "org1"},
            {"id": "m2", "name": "Plants", "organizationId": "org2"},
        ],
    )
    store.load(
        "DataTableData",
        [
            {"id": "r1", "dataTableId": "m1", "key": "WorkOrder", "value": '{"Initial": "inspection"}'},
            {"id": "r2", "dataTableId": "m1", "key": "Notification", "value": '{"Initial": "org1.form.notice"}'},
            {"id": "r3", "dataTableId": "m1", "key": "Equipment", "value": '{"Initial": ""}'},
            {"id": "r4", "dataTableId": "m2", "key": "1000", "value": "not json"},
        ],
    )
    return DataTableService(forms_deps)


class TestDataTableLookups:
    """Tests for row and value lookups."""

    async def test_org_id(self, tables: DataTableService) -> None:
        assert await tables.get_data_table_org_id("Plants") == "org2"

    async def test_row_adds_key(self, tables: DataTableService) -> None:
        assert await tables.get_data_table_row("SSAM UX Configuration", "WorkOrder") == {
            "Initial": "inspection",
            "Key": "WorkOrder",
        }

    async def test_missing_row(self, tables: DataTableService) -> None:
        assert await tables.get_data_table_row("SSAM UX Configuration", "Unknown") is None
        assert await tables.get_data_table_row_value("SSAM UX Configuration", "Unknown", "Initial") is None

    async def test_row_value(self, tables: DataTableService) -> None:
        assert await tables.get_data_table_row_value("SSAM UX Configuration", "WorkOrder", "Initial") == "inspection"

    async def test_missing_table(self, tables: DataTableService) -> None:
        with pytest.raises(DataTableError, match="Error getting organization ID for data table 'Nope'") as exc_info:
            await tables.get_data_table_org_id("Nope")

        assert str(exc_info.value.__cause__) == "Error data table 'Nope' was not found"

    async def test_unparseable_row(self, tables: DataTableService) -> None:
        with pytest.raises(DataTableError, match="Error getting row with key '1000' from data table 'Plants'") as exc_info:
            await tables.get_data_table_row("Plants", "1000")

        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    async def test_value_error_names_column(self, tables: DataTableService) -> None:
        with pytest.raises(DataTableError, match="Error getting value of column 'Initial'") as exc_info:
            await tables.get_data_table_row_value("Plants", "1000", "Initial")

        assert exc_info.value.table_name == "Plants"


class TestInitialUxForm:
    """Tests for the initial UX form lookup."""

    async def test_abbreviated_id_is_prefixed(self, tables: DataTableService) -> None:
        assert await tables.get_initial_ux_form("WorkOrder") == "org1.form.inspection"

    async def test_full_id_is_kept(self, tables: DataTableService) -> None:
        assert await tables.get_initial_ux_form("Notification") == "org1.form.notice"

    @pytest.mark.parametrize("bus_obj_type", ["Equipment", "Unknown"])
    async def test_missing_form_is_reported(
        self, tables: DataTableService, store: OfflineODataStore, reporter: ErrorReporter, bus_obj_type: str
    ) -> None:
        with pytest.raises(DataTableError, match=f"Business object type '{bus_obj_type}' not found"):
            await tables.get_initial_ux_form(bus_obj_type)
        await reporter.drain()

        rows = await store.read("LogEntries")
        assert json.loads(rows[0]["data"]) == IsPartialDict(
            component="DataTables",
            mdkInfo=IsPartialDict(
                errorInfo=f"Error retrieving initial UX form ID for business object type '{bus_obj_type}'"
            ),
        )
