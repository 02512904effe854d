"""Application services."""
from __future__ import annotations

from .assignment import did_assignment_change
from .data_tables import DataTableService
from .error_reporter import ErrorReporter
from .forms_library import FormsLibrary
from .images import SubmissionImageService, parse_data_url
from .submission import SubmissionService, build_create_record, build_update_record
from .sync import SyncSequencer

__all__ = [
    'DataTableService',
    'ErrorReporter',
    'FormsLibrary',
    'SubmissionImageService',
    'SubmissionService',
    'SyncSequencer',
    'build_create_record',
    'build_update_record',
    'did_assignment_change',
    'parse_data_url',
]
