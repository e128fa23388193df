"""MFA ports (protocols).

Defines the interfaces the provider consumes (enrollment storage, per-user
locking, audit trail) and the one it offers (``IMfaProvider``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from .audit import MfaAuditEvent, MfaEventType
    from .models import EnrollmentState, MfaMethod
    from .results import (
        MfaBackupCodesResult,
        MfaDisableResult,
        MfaSetupResult,
        MfaStatusResult,
        MfaVerificationResult,
    )


@runtime_checkable
class IEnrollmentStateStore(Protocol):
    """Protocol for durable per-user enrollment storage.

    Implementations must offer read-your-writes consistency per user id;
    lockout counting and backup code consumption depend on it. Secrets
    should be encrypted at rest by the backing store.

    Example implementation:
        ```python
        class RedisEnrollmentStateStore(IEnrollmentStateStore):
            async def get(self, user_id: str) -> EnrollmentState | None:
                raw = await redis.get(f"mfa:{user_id}")
                return deserialize(raw) if raw else None

            async def save(self, state: EnrollmentState) -> None:
                await redis.set(f"mfa:{state.user_id}", serialize(state))

            async def delete(self, user_id: str) -> bool:
                return bool(await redis.delete(f"mfa:{user_id}"))
        ```
    """

    async def get(self, user_id: str) -> EnrollmentState | None:
        """Load a user's enrollment record.

        Args:
            user_id: User identifier.

        Returns:
            The record or None if the user is not enrolled.
        """
        ...

    async def save(self, state: EnrollmentState) -> None:
        """Insert or replace a user's enrollment record.

        Args:
            state: Record to persist, keyed by ``state.user_id``.
        """
        ...

    async def delete(self, user_id: str) -> bool:
        """Delete a user's enrollment record.

        Args:
            user_id: User identifier.

        Returns:
            True if a record existed.
        """
        ...


@runtime_checkable
class IEnrollmentLock(Protocol):
    """Protocol for per-user serialization of read-modify-write cycles.

    ``hold`` returns an async context manager that is held for the whole
    cycle. Distributed deployments provide a cross-process implementation.
    """

    def hold(self, user_id: str) -> AbstractAsyncContextManager[None]:
        """Serialize access to one user's enrollment record.

        Raises:
            EnrollmentLockTimeoutError: If the lock is not acquired in time.
        """
        ...


@runtime_checkable
class IMfaAuditStore(Protocol):
    """Protocol for MFA audit event storage."""

    async def record(self, event: MfaAuditEvent) -> None:
        """Record an audit event.

        Args:
            event: The audit event to record.
        """
        ...

    async def get_events(
        self,
        user_id: str,
        *,
        event_types: list[MfaEventType] | None = None,
        limit: int = 100,
    ) -> list[MfaAuditEvent]:
        """Get audit events for a user, most recent first."""
        ...


@runtime_checkable
class IMfaProvider(Protocol):
    """Protocol for second-factor providers."""

    @property
    def provider_name(self) -> str: ...

    @property
    def method(self) -> MfaMethod: ...

    async def setup(
        self, user_id: str, display_name: str | None = None
    ) -> MfaSetupResult:
        """Start enrollment and return the material for the user's device."""
        ...

    async def verify(self, user_id: str, code: str) -> MfaVerificationResult:
        """Verify a one-time code, confirming a pending enrollment."""
        ...

    async def is_enabled(self, user_id: str) -> bool:
        """Check whether the user has a confirmed enrollment."""
        ...

    async def disable(self, user_id: str) -> MfaDisableResult:
        """Remove the user's enrollment."""
        ...

    async def generate_backup_codes(
        self, user_id: str, count: int | None = None
    ) -> MfaBackupCodesResult:
        """Replace the user's backup codes."""
        ...

    async def verify_backup_code(
        self, user_id: str, code: str
    ) -> MfaVerificationResult:
        """Verify and consume a backup code."""
        ...

    async def get_status(self, user_id: str) -> MfaStatusResult:
        """Describe the user's enrollment without exposing secrets."""
        ...


__all__: list[str] = [
    "IEnrollmentStateStore",
    "IEnrollmentLock",
    "IMfaAuditStore",
    "IMfaProvider",
]
