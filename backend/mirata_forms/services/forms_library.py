"""Helpers linking business objects to Mirata forms and their submissions.

Form ids are assigned to a business object in its note text:

* ``form: <form id>`` at the start of a line assigns a single form;
* ``forms: <id>, <id>, ...;`` at the start of a line assigns a list. Ids are
  comma separated, the list ends with a semicolon, and whitespace (including
  line breaks) between ids is ignored.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import json
import re
from typing import TYPE_CHECKING, Any, Final

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.constants import COMPONENT_FORMS_LIBRARY, DEFINITIONS, SUBMISSIONS, WORK_ORDER_KEY_SPELLINGS
from ..core.exceptions import ClientDataError
from ..core.models import FormInfo
from ..core.query import ODataQuery, eq, or_, substringof_lower

if TYPE_CHECKING:
    from ..core.deps import FormsDeps
    from ..core.types import JsonDict

__all__ = (
    'FormsLibrary',
    'context_data_for_operation',
    'form_id_from_note',
    'form_id_list_from_note',
    'is_form_enabled',
    'is_form_list_enabled',
    'submission_query_for_operation',
)

_FORM_ID: Final[re.Pattern[str]] = re.compile(r'^form:\s*(\S+)', re.IGNORECASE | re.MULTILINE)
_FORM_ID_LIST: Final[re.Pattern[str]] = re.compile(r'^forms:([^;]+);', re.IGNORECASE | re.MULTILINE)
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r'\s')


# =============================================================================
# Note Parsing
# =============================================================================
def form_id_from_note(note: str | None) -> str | None:
    """Form id assigned with ``form:`` in ``note``."""
    if not note:
        return None
    match = _FORM_ID.search(note)
    return match.group(1) if match else None


def form_id_list_from_note(note: str | None) -> list[str] | None:
    """Form ids assigned with ``forms:`` in ``note``; ids are not validated."""
    if not note:
        return None
    match = _FORM_ID_LIST.search(note)
    if match is None or not match.group(1):
        return None
    return _WHITESPACE.sub('', match.group(1)).split(',')


def is_form_enabled(note: str | None) -> bool:
    return form_id_from_note(note) is not None or form_id_list_from_note(note) is not None


def is_form_list_enabled(note: str | None) -> bool:
    return form_id_list_from_note(note) is not None


# =============================================================================
# Operation Queries
# =============================================================================
def submission_query_for_operation(order_id: str | None, operation_no: str | None = None) -> ODataQuery:
    """Query for the latest submission of a work order operation.

    Submissions are matched on the work order id found in their header info
    under any of the accepted key spellings. ``operation_no`` is not part of
    the filter.

    Raises:
        ClientDataError: If ``order_id`` is missing.
    """
    if not order_id:
        raise ClientDataError(f"'OrderId' ({order_id}) not found in data binding", fields=['OrderId'])
    matches = [substringof_lower(f'"{spelling}":"{order_id}"', 'headerInfo') for spelling in WORK_ORDER_KEY_SPELLINGS]
    return ODataQuery().filter(or_(*matches)).order_by('version', descending=True).top(1)


def context_data_for_operation(order_id: str | None, operation_no: str | None) -> str:
    """Identifying text for a work order operation."""
    return f'Workorder#: {order_id}; Operation#: {operation_no}'


# =============================================================================
# Library
# =============================================================================
class FormsLibrary:
    """Form definition and submission lookups backed by the forms service."""

    def __init__(self, deps: FormsDeps) -> None:
        self.deps = deps

    async def is_form_id_valid(self, form_id: str) -> bool:
        """Whether ``form_id`` has a definition in ``Definitions``."""
        try:
            rows = await self.deps.service.read(DEFINITIONS, _latest_definition(form_id))
            return bool(rows)
        except Exception as exc:
            self._report(exc, f"Exception determining if Form ID '{form_id}' exists in the 'Definitions' entity set")
            raise

    async def get_form_info_list(self, note: str | None) -> list[FormInfo]:
        """Latest version of every form listed in ``note``, sorted by name.

        Ids without a definition are skipped.
        """
        form_ids = form_id_list_from_note(note)
        if not form_ids:
            return []
        infos: list[FormInfo] = []
        with logfire.span('forms_library.form_info_list', count=len(form_ids)):
            for form_id in form_ids:
                query = _latest_definition(form_id).select('id', 'name', 'description', 'version')
                rows = await self.deps.service.read(DEFINITIONS, query)
                if rows:
                    infos.append(FormInfo.model_validate(rows[0]))
        return sorted(infos, key=lambda info: str(info.name))

    async def get_latest_submission_entity_for_operation(
        self, order_id: str | None, operation_no: str | None = None
    ) -> JsonDict | None:
        """Latest ``Submissions`` row for the operation, or None."""
        try:
            query = submission_query_for_operation(order_id, operation_no)
            rows = await self.deps.service.read(SUBMISSIONS, query)
            return rows[0] if rows else None
        except Exception as exc:
            self._report(exc, 'Exception querying latest submission for operation from entity set')
            raise

    async def get_latest_submission_for_operation(
        self, order_id: str | None, operation_no: str | None = None
    ) -> Any:
        """Parsed form data of the latest submission for the operation, or None."""
        entity = await self.get_latest_submission_entity_for_operation(order_id, operation_no)
        if entity is None:
            return None
        try:
            return json.loads(entity['submission'])
        except Exception as exc:
            self._report(exc, 'Exception querying latest submission for operation from entity set')
            raise

    async def get_latest_submission_status_for_operation(
        self, order_id: str | None, operation_no: str | None = None
    ) -> Any:
        submission = await self.get_latest_submission_for_operation(order_id, operation_no)
        if isinstance(submission, dict):
            return submission.get('status')
        return None

    async def is_latest_submission_mobile_complete_for_operation(
        self, order_id: str | None, operation_no: str | None = None
    ) -> bool:
        submission = await self.get_latest_submission_for_operation(order_id, operation_no)
        if isinstance(submission, dict):
            return submission.get('mobile-complete') is True
        return False

    def _report(self, exc: Exception, error_info: str) -> None:
        self.deps.reporter.report(exc, {'component': COMPONENT_FORMS_LIBRARY, 'mdkInfo': {'errorInfo': error_info}})


def _latest_definition(form_id: str) -> ODataQuery:
    return ODataQuery().filter(eq('id', form_id)).order_by('version', descending=True).top(1)
