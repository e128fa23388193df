"""Audit events for MFA operations.

Standardized events for tracking second-factor activity, plus an in-memory
store for tests and development.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .ports import IMfaAuditStore


class MfaEventType(Enum):
    """Types of MFA audit events.

    Event naming follows the pattern: `auth.mfa.<action>`
    """

    SETUP_STARTED = "auth.mfa.setup_started"
    ENABLED = "auth.mfa.enabled"
    DISABLED = "auth.mfa.disabled"
    VERIFIED = "auth.mfa.verified"
    FAILED = "auth.mfa.failed"
    LOCKED_OUT = "auth.mfa.locked_out"
    BACKUP_CODES_GENERATED = "auth.mfa.backup_codes_generated"
    BACKUP_CODE_USED = "auth.mfa.backup_code_used"
    BACKUP_CODE_REJECTED = "auth.mfa.backup_code_rejected"


@dataclass(frozen=True)
class MfaAuditEvent:
    """MFA audit event.

    Attributes:
        event_type: The type of MFA event.
        user_id: The user the event concerns.
        provider: The MFA provider that generated the event.
        timestamp: When the event occurred (UTC).
        success: Whether the operation was successful.
        error_code: Error code if the operation failed.
        metadata: Additional event-specific data. Never codes or secrets.
    """

    event_type: MfaEventType
    user_id: str
    provider: str = "TOTP"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "unknown")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "user_id": self.user_id,
            "provider": self.provider,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }


class InMemoryMfaAuditStore(IMfaAuditStore):
    """In-memory implementation of IMfaAuditStore.

    Note:
        Events are stored in memory and will be lost on restart.
        Not suitable for production use.
    """

    def __init__(self) -> None:
        self._events: list[MfaAuditEvent] = []
        self._by_user: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: MfaAuditEvent) -> None:
        self._by_user[event.user_id].append(len(self._events))
        self._events.append(event)

    async def get_events(
        self,
        user_id: str,
        *,
        event_types: list[MfaEventType] | None = None,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        results: list[MfaAuditEvent] = []
        for idx in reversed(self._by_user.get(user_id, [])):  # Most recent first
            event = self._events[idx]
            if event_types and event.event_type not in event_types:
                continue
            results.append(event)
            if len(results) >= limit:
                break
        return results

    def clear(self) -> None:
        self._events.clear()
        self._by_user.clear()

    def __len__(self) -> int:
        return len(self._events)


__all__: list[str] = [
    "MfaEventType",
    "MfaAuditEvent",
    "InMemoryMfaAuditStore",
]
