"""Module-level constants for mirata-forms.

All constants are declared with Final type annotation for immutability
and IDE support.
"""
from __future__ import annotations

from typing import Final

# =============================================================================
# Section 1: Module Exports
# =============================================================================
__all__ = [
    # Entity sets
    'SUBMISSIONS',
    'SUBMISSION_IMAGES',
    'SUBMISSION_IMAGES_CLIENT',
    'DEFINITIONS',
    'DATA_TABLE_MASTERS',
    'DATA_TABLE_DATA',
    'LOG_ENTRIES',
    'ENTITY_KEYS',
    'VERSIONED_ENTITY_SETS',
    'LOCAL_ONLY_ENTITY_SETS',
    'ALL_SYNCHRONIZATION_GROUPS',
    # Actions
    'ACTION_SUBMISSION_CREATE',
    'ACTION_SUBMISSION_UPDATE',
    'ACTION_IMAGE_CLIENT_CREATE',
    'ACTION_IMAGE_CLIENT_UPDATE',
    'ACTION_LOG_INFO_CREATE',
    'ACTION_UNDO_PENDING_CHANGES',
    # Headers
    'HEADER_REMOVE_AFTER_UPLOAD',
    'HEADER_TRANSACTION_ID',
    # Data tables
    'UX_CONFIGURATION_TABLE',
    'UX_INITIAL_COLUMN',
    # Error components
    'COMPONENT_CREATE_UPDATE',
    'COMPONENT_CREATE',
    'COMPONENT_UPDATE',
    'COMPONENT_SYNC',
    'COMPONENT_CLEAR_IMAGES',
    'COMPONENT_DATA_TABLES',
    'COMPONENT_FORMS_LIBRARY',
    'LOG_SOURCE',
    # Formats
    'ODATA_DATETIME_FORMAT',
    'IMAGE_ENCODING',
    'WORK_ORDER_KEY_SPELLINGS',
    # Retry
    'MAX_RETRIES',
    'RETRY_DELAY_SECONDS',
    'DEFAULT_SERVICE_URL',
]

# =============================================================================
# Section 2: Entity Sets
# =============================================================================
SUBMISSIONS: Final[str] = 'Submissions'
SUBMISSION_IMAGES: Final[str] = 'SubmissionImages'
SUBMISSION_IMAGES_CLIENT: Final[str] = 'SubmissionImagesClient'
DEFINITIONS: Final[str] = 'Definitions'
DATA_TABLE_MASTERS: Final[str] = 'DataTableMasters'
DATA_TABLE_DATA: Final[str] = 'DataTableData'
LOG_ENTRIES: Final[str] = 'LogEntries'

# Key properties per entity set; anything not listed is keyed by 'id'
ENTITY_KEYS: Final[dict[str, tuple[str, ...]]] = {
    SUBMISSIONS: ('id', 'version'),
    DEFINITIONS: ('id', 'version'),
    SUBMISSION_IMAGES: ('submissionId', 'imageId'),
    SUBMISSION_IMAGES_CLIENT: ('submissionId', 'imageId'),
}

# An update to one of these sets writes a new row and keeps the prior version
VERSIONED_ENTITY_SETS: Final[frozenset[str]] = frozenset({SUBMISSIONS})

# Never uploaded; emptied at the start of every routine sync
LOCAL_ONLY_ENTITY_SETS: Final[frozenset[str]] = frozenset({SUBMISSION_IMAGES_CLIENT})

# (name, query, automatically retrieves streams)
ALL_SYNCHRONIZATION_GROUPS: Final[tuple[tuple[str, str, bool], ...]] = (
    ('DataTableData', 'DataTableData', False),
    ('DataTableMasters', 'DataTableMasters', False),
    ('Definitions', 'Definitions', False),
    ('Events', 'Events', False),
    ('Images', 'Images', True),
    ('Mappings', 'Mappings', False),
    ('SubmissionImages', 'SubmissionImages', True),
    ('Submissions', 'Submissions', False),
    ('UserGroups', 'UserGroups', False),
    ('UserInfo', 'UserInfo', False),
    ('Users', 'Users', False),
)

# =============================================================================
# Section 3: Action Names
# =============================================================================
ACTION_SUBMISSION_CREATE: Final[str] = 'FormSubmissionCreate'
ACTION_SUBMISSION_UPDATE: Final[str] = 'FormSubmissionUpdate'
ACTION_IMAGE_CLIENT_CREATE: Final[str] = 'FormSubmissionImagesClientCreate'
ACTION_IMAGE_CLIENT_UPDATE: Final[str] = 'FormSubmissionImagesClientUpdate'
ACTION_LOG_INFO_CREATE: Final[str] = 'FormLogInfoCreate'
ACTION_UNDO_PENDING_CHANGES: Final[str] = 'UndoPendingChanges'

HEADER_REMOVE_AFTER_UPLOAD: Final[str] = 'OfflineOData.RemoveAfterUpload'
HEADER_TRANSACTION_ID: Final[str] = 'OfflineOData.TransactionID'

# =============================================================================
# Section 4: Data Tables
# =============================================================================
UX_CONFIGURATION_TABLE: Final[str] = 'SSAM UX Configuration'
UX_INITIAL_COLUMN: Final[str] = 'Initial'

# =============================================================================
# Section 5: Error Components
# =============================================================================
COMPONENT_CREATE_UPDATE: Final[str] = "MDK 'Create/Update' Submission"
COMPONENT_CREATE: Final[str] = 'MDK Create Submission'
COMPONENT_UPDATE: Final[str] = 'MDK Update Submission'
COMPONENT_SYNC: Final[str] = 'Mirata synchronization'
COMPONENT_CLEAR_IMAGES: Final[str] = 'Clear SubmissionImagesClient entities'
COMPONENT_DATA_TABLES: Final[str] = 'DataTables'
COMPONENT_FORMS_LIBRARY: Final[str] = 'Mirata Forms library'
LOG_SOURCE: Final[str] = 'Mirata'

# =============================================================================
# Section 6: Formats
# =============================================================================
ODATA_DATETIME_FORMAT: Final[str] = '%Y-%m-%dT%H:%M:%S'
IMAGE_ENCODING: Final[str] = 'base64'
WORK_ORDER_KEY_SPELLINGS: Final[tuple[str, ...]] = (
    'workorderid',
    'workorder-id',
    'work-order-id',
    'workorder_id',
    'work_order_id',
)

# =============================================================================
# Section 7: Retry and Service Constants
# =============================================================================
MAX_RETRIES: Final[int] = 3
RETRY_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_SERVICE_URL: Final[str] = 'https://api.mirataforms.com/odata'
