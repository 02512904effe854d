"""Assignment change detection for submission updates.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import json
from typing import Any

# Local imports (core first, then alphabetical)
from ..core.models import Assignment

__all__ = ('coerce_assignment', 'did_assignment_change')


def coerce_assignment(value: Any) -> Assignment | None:
    """Turn a model, mapping or JSON string into an Assignment.

    Returns None for None, empty mappings and the JSON strings ``"null"``
    and ``"{}"``.
    """
    if value is None or isinstance(value, Assignment):
        return value
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else None
    if not value:
        return None
    return Assignment.model_validate(value)


def did_assignment_change(previous: Any, current: Any) -> bool:
    """Decide whether the assignment differs from the previous submission.

    When the previous submission carries an assignment and the current form
    data carries none, the previous one was a default built for the form
    user and is kept, so this returns False.

    Membership is checked one way only: every id of ``previous`` must appear
    in ``current``. Together with the length checks this treats lists with
    duplicate ids as unchanged even when the multisets differ.

    Args:
        previous: Assignment stored on the previous submission row.
        current: Assignment supplied with the latest form transition.

    Returns:
        True if the assignment metadata should be stamped anew.
    """
    before = coerce_assignment(previous)
    after = coerce_assignment(current)
    if after is None:
        return False
    if before is None:
        return True

    if len(before.group_id_list) != len(after.group_id_list):
        return True
    if len(before.user_id_list) != len(after.user_id_list):
        return True
    if any(group_id not in after.group_id_list for group_id in before.group_id_list):
        return True
    return any(user_id not in after.user_id_list for user_id in before.user_id_list)
