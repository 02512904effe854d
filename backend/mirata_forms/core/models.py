"""Core domain models for mirata-forms.

These models represent the records exchanged with the Mirata OData service.
Field names follow Python conventions; the camelCase wire names are kept as
aliases so records serialize exactly as the service expects them.

Value models are immutable (frozen=True) to prevent accidental mutation.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .constants import ALL_SYNCHRONIZATION_GROUPS
from .exceptions import ClientDataError
from .query import ODataQuery
from .types import ActionKind, JsonDict, Platform

__all__ = [
    # Form models
    'Assignment',
    'Definition',
    'FormUser',
    'SubmissionImage',
    'FormInstanceMetadata',
    'FormSubmissionData',
    'FormsClientData',
    'FormInfo',
    # Submission models
    'SubmissionRecord',
    'DataUrl',
    'LogEntry',
    # Runtime models
    'SessionInfo',
    'ActionRequest',
    'ActionResult',
    'DefiningRequest',
    'SyncReport',
    'default_defining_requests',
]

_WIRE = ConfigDict(populate_by_name=True, frozen=True, extra='ignore')


# =============================================================================
# Form Models
# =============================================================================
class Assignment(BaseModel):
    """Group and user assignment of a form instance."""

    model_config = _WIRE

    group_id_list: list[str] = Field(default_factory=list, alias='groupIdList')
    user_id_list: list[str] = Field(default_factory=list, alias='userIdList')

    @classmethod
    def for_user(cls, user_id: str) -> Self:
        """Default assignment: no groups, only ``user_id``."""
        return cls(group_id_list=[], user_id_list=[user_id])

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True))


class Definition(BaseModel):
    """Form definition (schema) a submission conforms to."""

    model_config = _WIRE

    id: str = Field(..., min_length=1)
    version: int = Field(..., ge=1)
    organization_id: str | None = Field(default=None, alias='organizationId')
    form_type: str | None = Field(default=None, alias='formType')


class FormUser(BaseModel):
    """The Mirata user filling out the form."""

    model_config = _WIRE

    id: str = Field(..., min_length=1)


class SubmissionImage(BaseModel):
    """Image captured in a form, carried as a data URL."""

    model_config = _WIRE

    id: str = Field(..., min_length=1)
    image: str = Field(..., description='data:<mime>;<encoding>,<payload>')


class FormInstanceMetadata(BaseModel):
    """``apiFormInstanceMetadata`` emitted by the forms engine on save."""

    model_config = _WIRE

    id: str = Field(..., min_length=1)
    status: str | None = None
    header_info: Any = Field(default=None, alias='headerInfo')
    response_data: Any = Field(default=None, alias='responseData')
    backend_update_list: Any = Field(default=None, alias='backendUpdateList')
    transition_log_entry: Any = Field(default=None, alias='transitionLogEntry')
    dependencies: Any = None
    images: list[SubmissionImage] | None = None
    # Raw value; an empty dict means "no assignment supplied"
    assigned_to: dict[str, Any] | None = Field(default=None, alias='assignedTo')

    def assignment(self) -> Assignment | None:
        """The supplied assignment, or None when absent or empty."""
        if not self.assigned_to:
            return None
        return Assignment.model_validate(self.assigned_to)


class FormSubmissionData(BaseModel):
    """Form data and instance metadata for one save."""

    model_config = _WIRE

    api_form_instance_metadata: FormInstanceMetadata = Field(..., alias='apiFormInstanceMetadata')
    form_data: Any = Field(default=None, alias='formData')


class FormsClientData(BaseModel):
    """Per-call input of the submission upsert.

    Passed explicitly to the service instead of being parked on shared
    context state.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    definition: Definition
    form_user: FormUser = Field(..., alias='formUser')
    form_submission_data: FormSubmissionData = Field(..., alias='formSubmissionData')
    # Typed Any so pydantic does not build a schema for the query dataclass
    submission_query: Any = Field(..., alias='submissionQuery')

    @field_validator('submission_query')
    @classmethod
    def validate_submission_query(cls, v: Any) -> ODataQuery:
        if not isinstance(v, ODataQuery):
            raise ValueError('submissionQuery must be an ODataQuery')
        return v

    @classmethod
    def from_client_data(cls, data: JsonDict) -> Self:
        """Validate raw client data, raising ClientDataError on missing fields."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            fields = ['.'.join(str(part) for part in err['loc']) for err in exc.errors()]
            raise ClientDataError(
                f'Invalid form client data: {", ".join(fields)}', fields=fields
            ) from exc


class FormInfo(BaseModel):
    """Summary of the latest version of a form definition."""

    model_config = _WIRE

    id: str
    name: str | None = None
    description: str | None = None
    version: int | None = None


# =============================================================================
# Submission Models
# =============================================================================
class SubmissionRecord(BaseModel):
    """One version row of the ``Submissions`` entity set.

    JSON-valued fields are carried as serialized strings.
    """

    model_config = _WIRE

    id: str
    version: int = Field(..., ge=1)
    base_version: int = Field(..., ge=0, alias='baseVersion')
    organization_id: str | None = Field(default=None, alias='organizationId')
    definition_id: str = Field(..., alias='definitionId')
    definition_version: int = Field(..., alias='definitionVersion')
    form_type: str | None = Field(default=None, alias='formType')
    assigned_by: str | None = Field(default=None, alias='assignedBy')
    assigned_to: str | None = Field(default=None, alias='assignedTo')
    assigned_at: str | None = Field(default=None, alias='assignedAt')
    created_by: str | None = Field(default=None, alias='createdBy')
    created_at: str | None = Field(default=None, alias='createdAt')
    status: str | None = None
    header_info: str = Field(default='null', alias='headerInfo')
    response_data: str = Field(default='null', alias='responseData')
    backend_update_list: str = Field(default='null', alias='backendUpdateList')
    transition_log_entry: str = Field(default='[]', alias='transitionLogEntry')
    submitted_by: str | None = Field(default=None, alias='submittedBy')
    submitted_at: str | None = Field(default=None, alias='submittedAt')
    dependencies: str = '[]'
    images: str = '[]'
    submission: str = 'null'
    read_link: str | None = Field(default=None, alias='readLink', exclude=True)

    def to_properties(self) -> JsonDict:
        """Wire properties for a create or update action."""
        return self.model_dump(by_alias=True)


class DataUrl(BaseModel):
    """Parsed ``data:`` URL of a submission image."""

    model_config = ConfigDict(frozen=True)

    mime: str
    encoding: str
    payload: str


class LogEntry(BaseModel):
    """Error event uploaded to the Mirata logging facility."""

    model_config = _WIRE

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str = Field(default='error', alias='eventType')
    message: str
    status_code: int | None = Field(default=None, alias='statusCode')
    event_time: str = Field(..., alias='eventTime')
    data: str = '{}'
    stack: str | None = None
    # Resolved by the service from the auth token when left empty
    user_id: str | None = Field(default=None, alias='userId')


# =============================================================================
# Runtime Models
# =============================================================================
class SessionInfo(BaseModel):
    """Information about the running client session used to enrich error logs."""

    model_config = ConfigDict(frozen=True)

    page_path: str | None = None
    user_id: str | None = None
    platform: Platform = ''

    @field_validator('platform', mode='before')
    @classmethod
    def normalize_platform(cls, v: Any) -> str:
        if not v:
            return ''
        lowered = str(v).lower()
        if lowered == 'android':
            return 'android'
        if lowered == 'ios':
            return 'iOS'
        return ''


class ActionRequest(BaseModel):
    """Immutable description of one create/update/delete against an entity set."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description='Action name, used for tracing')
    kind: ActionKind
    entity_set: str
    read_link: str | None = None
    properties: JsonDict = Field(default_factory=dict)
    headers: dict[str, Any] = Field(default_factory=dict)


class ActionResult(BaseModel):
    """Outcome of an executed action."""

    model_config = ConfigDict(frozen=True)

    action: str
    entity: JsonDict | None = None
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DefiningRequest(BaseModel):
    """Entity set downloaded into the offline store."""

    model_config = ConfigDict(frozen=True)

    name: str
    query: str
    automatically_retrieves_streams: bool = False


class SyncReport(BaseModel):
    """Summary of a completed forms synchronization."""

    mode: str
    uploaded: int = 0
    downloaded: dict[str, int] = Field(default_factory=dict)
    cleared_images: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None


def default_defining_requests() -> list[DefiningRequest]:
    """Defining requests covering every Mirata entity set that is synchronized."""
    return [
        DefiningRequest(name=name, query=query, automatically_retrieves_streams=streams)
        for name, query, streams in ALL_SYNCHRONIZATION_GROUPS
    ]
