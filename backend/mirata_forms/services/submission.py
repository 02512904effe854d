"""Submission upsert and versioning.

Saving a form either creates version 1 of its submission or writes the next
version of the latest one found by the caller's submission query. The prior
version row is never modified.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import json
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.constants import (
    ACTION_SUBMISSION_CREATE,
    ACTION_SUBMISSION_UPDATE,
    COMPONENT_CREATE,
    COMPONENT_CREATE_UPDATE,
    COMPONENT_UPDATE,
    SUBMISSIONS,
)
from ..core.helpers import to_odata_datetime
from ..core.models import ActionRequest, Assignment, FormsClientData, SubmissionRecord
from ..core.query import entity_link
from ..infra.instrumentation import Metrics
from .assignment import did_assignment_change
from .images import SubmissionImageService

if TYPE_CHECKING:
    from ..core.deps import FormsDeps
    from ..core.types import JsonDict

__all__ = ('SubmissionService', 'build_create_record', 'build_update_record')


# =============================================================================
# Record Builders
# =============================================================================
def _dumps(value: Any) -> str:
    return json.dumps(value)


def _is_blank(value: Any) -> bool:
    # Empty containers are not blank
    if value is None or value is False or value == '':
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return False


def _dumps_or_empty_list(value: Any) -> str:
    return '[]' if _is_blank(value) else json.dumps(value)


def _common_fields(client_data: FormsClientData, now: str) -> dict[str, Any]:
    metadata = client_data.form_submission_data.api_form_instance_metadata
    images = [image.model_dump(by_alias=True) for image in metadata.images] if metadata.images else None
    return {
        'definition_version': client_data.definition.version,
        'form_type': client_data.definition.form_type,
        'status': metadata.status,
        'header_info': _dumps(metadata.header_info),
        'response_data': _dumps(metadata.response_data),
        'backend_update_list': _dumps(metadata.backend_update_list),
        'transition_log_entry': _dumps_or_empty_list(metadata.transition_log_entry),
        'submitted_by': client_data.form_user.id,
        'submitted_at': now,
        'dependencies': _dumps_or_empty_list(metadata.dependencies),
        'images': _dumps_or_empty_list(images),
        'submission': _dumps(client_data.form_submission_data.form_data),
    }


def build_create_record(client_data: FormsClientData, now: str) -> SubmissionRecord:
    """Build version 1 of a new submission.

    The assignment defaults to the form user when none is supplied.
    """
    metadata = client_data.form_submission_data.api_form_instance_metadata
    user_id = client_data.form_user.id
    assignment = metadata.assignment() or Assignment.for_user(user_id)
    return SubmissionRecord(
        id=metadata.id,
        version=1,
        base_version=0,
        organization_id=client_data.definition.organization_id,
        definition_id=client_data.definition.id,
        assigned_by=user_id,
        assigned_to=assignment.to_json(),
        assigned_at=now,
        created_by=user_id,
        created_at=now,
        **_common_fields(client_data, now),
    )


def build_update_record(previous: JsonDict, client_data: FormsClientData, now: str) -> SubmissionRecord:
    """Build the next version of ``previous``.

    Identity, origin and creation fields are carried from the previous row.
    Assignment fields are stamped anew only when the assignment changed.
    """
    metadata = client_data.form_submission_data.api_form_instance_metadata
    changed = did_assignment_change(previous.get('assignedTo'), metadata.assigned_to)
    if changed:
        assignment = metadata.assignment()
        assigned = {
            'assigned_by': client_data.form_user.id,
            'assigned_to': assignment.to_json() if assignment is not None else None,
            'assigned_at': now,
        }
    else:
        assigned = {
            'assigned_by': previous.get('assignedBy'),
            'assigned_to': previous.get('assignedTo'),
            'assigned_at': previous.get('assignedAt'),
        }
    return SubmissionRecord(
        id=previous['id'],
        version=int(previous['version']) + 1,
        base_version=previous.get('baseVersion', 0),
        organization_id=previous.get('organizationId'),
        definition_id=previous['definitionId'],
        created_by=previous.get('createdBy'),
        created_at=previous.get('createdAt'),
        read_link=previous.get('@odata.readLink') or entity_link(SUBMISSIONS, previous),
        **assigned,
        **_common_fields(client_data, now),
    )


# =============================================================================
# Service
# =============================================================================
class SubmissionService:
    """Creates or versions form submissions and stores their images.

    Example:
        >>> service = SubmissionService(FormsDeps(service=store, reporter=reporter))
        >>> record = await service.upsert(client_data)
    """

    def __init__(self, deps: FormsDeps) -> None:
        self.deps = deps
        self.images = SubmissionImageService(deps.service, deps.reporter)

    async def upsert(self, client_data: FormsClientData | JsonDict, *, now: datetime | None = None) -> SubmissionRecord:
        """Create or update the submission described by ``client_data``.

        Exactly one create or update action is executed, then the images
        carried by the form instance are stored in order.

        Raises:
            ClientDataError: If ``client_data`` lacks required fields.
            ImageDataError: If an image data URL cannot be used.
            ServiceError: If the service rejects a read or action.
        """
        error_context: dict[str, Any] = {'component': COMPONENT_CREATE_UPDATE}
        try:
            if not isinstance(client_data, FormsClientData):
                client_data = FormsClientData.from_client_data(client_data)
            definition = client_data.definition
            metadata = client_data.form_submission_data.api_form_instance_metadata
            error_context.update(
                definition=definition.id,
                definitionVersion=definition.version,
                submissionId=None,
                submissionVersion=None,
            )
            timestamp = to_odata_datetime(now)

            with logfire.span('submission.upsert', definition=definition.id, instance=metadata.id):
                started = time.perf_counter()
                rows = await self.deps.service.read(SUBMISSIONS, client_data.submission_query)
                if rows:
                    previous = rows[0]
                    error_context.update(
                        component=COMPONENT_UPDATE,
                        submissionId=previous.get('id'),
                        submissionVersion=int(previous.get('version', 0)) + 1,
                    )
                    record = build_update_record(previous, client_data, timestamp)
                    action = ActionRequest(
                        name=ACTION_SUBMISSION_UPDATE,
                        kind='update',
                        entity_set=SUBMISSIONS,
                        read_link=record.read_link,
                        properties=record.to_properties(),
                    )
                else:
                    error_context.update(component=COMPONENT_CREATE, submissionId=metadata.id, submissionVersion=1)
                    record = build_create_record(client_data, timestamp)
                    action = ActionRequest(
                        name=ACTION_SUBMISSION_CREATE,
                        kind='create',
                        entity_set=SUBMISSIONS,
                        properties=record.to_properties(),
                    )

                await self.deps.service.execute(action)
                logfire.info(
                    'submission_saved',
                    submission_id=record.id,
                    version=record.version,
                    duration_ms=(time.perf_counter() - started) * 1000,
                )
        except Exception as exc:
            self.deps.reporter.report(exc, dict(error_context))
            raise

        images = metadata.images or []
        Metrics.record_submission(record.id, record.version, not rows, len(images))
        if images:
            # Failures are reported by the image service with the image id attached
            await self.images.upsert_images(record.id, images, error_context)
        return record
