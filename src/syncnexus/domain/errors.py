"""Errors raised by the reconciliation passes."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for failures that abort a whole reconciliation call."""


class GroupNotFoundError(SyncError):
    """Raised when a pass requires a group that the store does not know yet."""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group {group_id} not found. Sync groups first.")
        self.group_id = group_id


class NoParticipantsError(SyncError):
    """Raised when the gateway reports no participants at all for a group."""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"No participants found for {group_id}.")
        self.group_id = group_id


class InvalidRequestError(SyncError):
    """Raised when a trigger carries malformed input."""


class StoreError(RuntimeError):
    """Raised when a single store operation fails."""
