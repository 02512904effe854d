"""Note text merging for form events recorded on business objects.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from datetime import datetime
from typing import Literal

__all__ = ('append_note_text', 'form_event_note', 'merge_new_note_text', 'merge_remote_note_text')

FormEvent = Literal['started', 'completed']


def append_note_text(existing: str | None, addition: str | None) -> str:
    """Append ``addition`` to ``existing`` on a new line."""
    if not existing:
        return addition or ''
    if not addition:
        return existing
    return f'{existing}\n{addition}'


def merge_new_note_text(form_text: str, previous_new_text: str | None, *, strip_previous: bool) -> str:
    """Note text not yet synced, with the text from a form added.

    Unless ``strip_previous`` is set, the form text is appended to the
    previous unsynced text. Identical text is not appended twice.
    """
    new_text = form_text.strip()
    if strip_previous:
        return new_text
    if previous_new_text and previous_new_text != new_text:
        return append_note_text(previous_new_text, new_text)
    return new_text


def merge_remote_note_text(remote_text: str | None, new_text: str | None) -> str:
    """Note text received at the last sync followed by the unsynced text."""
    return append_note_text(remote_text, new_text)


def form_event_note(event: FormEvent, user_id: str, at: datetime | None = None) -> str:
    """Note line recording when a user started or completed a form.

    Example:
        >>> form_event_note('started', 'JSMITH', datetime(2025, 3, 12, 6, 5))
        "3/12/2025 6:05:00 AM: Form started by user 'JSMITH'\\n"
    """
    at = at or datetime.now()
    hour = at.hour % 12 or 12
    meridiem = 'AM' if at.hour < 12 else 'PM'
    stamp = f'{at.month}/{at.day}/{at.year} {hour}:{at.minute:02d}:{at.second:02d} {meridiem}'
    return f"{stamp}: Form {event} by user '{user_id}'\n"
