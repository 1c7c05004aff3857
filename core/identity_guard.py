"""
Record Identity Guard: mutations may only target the active record.
"""

from __future__ import annotations


class RecordMismatchError(PermissionError):
    def __init__(self, target_id: str | None, active_id: str | None):
        self.target_id = target_id
        self.active_id = active_id
        super().__init__(
            f"Record ID mismatch: requested {target_id or 'none'} but the active record is "
            f"{active_id or 'none'}. Switch to that record first if you want to change it."
        )


def authorize(target_id: str | None, active_id: str | None) -> None:
    """Raise RecordMismatchError unless `target_id` is the active record."""
    if active_id is None or target_id != active_id:
        raise RecordMismatchError(target_id, active_id)


def is_authorized(target_id: str | None, active_id: str | None) -> bool:
    try:
        authorize(target_id, active_id)
    except RecordMismatchError:
        return False
    return True
