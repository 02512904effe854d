"""Lookups in Mirata data tables.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import json
from typing import TYPE_CHECKING, Any

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.constants import (
    COMPONENT_DATA_TABLES,
    DATA_TABLE_DATA,
    DATA_TABLE_MASTERS,
    UX_CONFIGURATION_TABLE,
    UX_INITIAL_COLUMN,
)
from ..core.exceptions import DataTableError
from ..core.query import ODataQuery, and_, eq
from ..infra.instrumentation import traced

if TYPE_CHECKING:
    from ..core.deps import FormsDeps
    from ..core.types import JsonDict

__all__ = ('DataTableService',)


class DataTableService:
    """Reads rows and values from the data tables synced with the forms."""

    def __init__(self, deps: FormsDeps) -> None:
        self.deps = deps

    async def get_data_table_org_id(self, table_name: str) -> str | None:
        """Organization id that owns ``table_name``.

        Raises:
            DataTableError: If the table does not exist or cannot be read.
        """
        try:
            master = await self._master(table_name, 'organizationId')
            return master.get('organizationId')
        except Exception as exc:
            raise DataTableError(
                f"Error getting organization ID for data table '{table_name}'", table_name=table_name
            ) from exc

    @traced('data_tables.row', record_result=False)
    async def get_data_table_row(self, table_name: str, key: str) -> JsonDict | None:
        """Parsed row ``key`` of ``table_name`` with the key added as ``Key``.

        Returns:
            The row, or None if the table has no row with that key.

        Raises:
            DataTableError: If the table does not exist or the row cannot be parsed.
        """
        try:
            master = await self._master(table_name, 'id')
            query = ODataQuery().filter(and_(eq('dataTableId', master['id']), eq('key', key))).select('value')
            rows = await self.deps.service.read(DATA_TABLE_DATA, query)
            if not rows:
                return None
            row = json.loads(rows[0]['value'])
            row['Key'] = key
            return row
        except Exception as exc:
            raise DataTableError(
                f"Error getting row with key '{key}' from data table '{table_name}'", table_name=table_name
            ) from exc

    async def get_data_table_row_value(self, table_name: str, key: str, column: str) -> Any:
        """Value of ``column`` in row ``key``; None when the row is missing."""
        try:
            row = await self.get_data_table_row(table_name, key)
            if row is None:
                return None
            return row.get(column)
        except Exception as exc:
            raise DataTableError(
                f"Error getting value of column '{column}' in row with key '{key}' from data table '{table_name}'",
                table_name=table_name,
            ) from exc

    async def get_initial_ux_form(self, bus_obj_type: str) -> str:
        """Form id to open first for a business object type.

        Abbreviated ids in the UX configuration table get the
        ``<organization id>.form.`` prefix shared by all definitions.
        """
        try:
            with logfire.span('data_tables.initial_ux_form', bus_obj_type=bus_obj_type):
                form_id = await self.get_data_table_row_value(UX_CONFIGURATION_TABLE, bus_obj_type, UX_INITIAL_COLUMN)
                if not form_id:
                    raise DataTableError(
                        f"Business object type '{bus_obj_type}' not found in the "
                        f'"{UX_CONFIGURATION_TABLE}" data table',
                        table_name=UX_CONFIGURATION_TABLE,
                    )
                org_id = await self.get_data_table_org_id(UX_CONFIGURATION_TABLE)
                prefix = f'{org_id}.form.'
                if not form_id.startswith(prefix):
                    form_id = f'{prefix}{form_id}'
                return form_id
        except Exception as exc:
            error_info = f"Error retrieving initial UX form ID for business object type '{bus_obj_type}'"
            self.deps.reporter.report(exc, {'component': COMPONENT_DATA_TABLES, 'mdkInfo': {'errorInfo': error_info}})
            raise

    async def _master(self, table_name: str, field_name: str) -> JsonDict:
        query = ODataQuery().filter(eq('name', table_name)).select(field_name)
        rows = await self.deps.service.read(DATA_TABLE_MASTERS, query)
        if not rows:
            raise DataTableError(f"Error data table '{table_name}' was not found", table_name=table_name)
        return rows[0]
