"""Synchronization defaults for the reconciliation passes."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_env_var, int_env_var, optional_env_var

DEFAULT_GROUP_PACING_SECONDS = 1.0
DEFAULT_MESSAGE_LIMIT = 100


@dataclass(frozen=True, slots=True)
class SyncConfig:
    group_pacing_seconds: float = DEFAULT_GROUP_PACING_SECONDS
    message_limit: int = DEFAULT_MESSAGE_LIMIT
    injection_group_id: str | None = None


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        group_pacing_seconds=float_env_var(
            "SYNC_GROUP_PACING_SECONDS", DEFAULT_GROUP_PACING_SECONDS
        ),
        message_limit=int_env_var("SYNC_MESSAGE_LIMIT", DEFAULT_MESSAGE_LIMIT),
        injection_group_id=optional_env_var("INJECTION_GROUP_ID"),
    )
