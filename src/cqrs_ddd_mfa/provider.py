"""TOTP MFA provider.

Composes secret generation, TOTP verification, backup codes and lockout
into the enrollment lifecycle of a user's second factor:

    Unenrolled --setup--> Pending --verify--> Active --disable--> Unenrolled

Every public operation returns a result value. Store failures are logged
and reported as ``STORAGE_ERROR`` without leaking their details.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from .audit import MfaAuditEvent, MfaEventType
from .backup_codes import BackupCodeManager, BackupCodeOutcome
from .codec import (
    build_provisioning_uri,
    encode_secret,
    format_manual_entry_key,
    generate_secret,
)
from .config import TotpConfig
from .exceptions import (
    EnrollmentLockTimeoutError,
    MfaConfigurationError,
    MfaStorageError,
)
from .locking import InMemoryEnrollmentLock
from .lockout import LockoutPolicy
from .models import EnrollmentState, MfaMethod
from .observability import MfaMetrics
from .ports import IEnrollmentLock, IEnrollmentStateStore, IMfaAuditStore, IMfaProvider
from .results import (
    MfaBackupCodesResult,
    MfaDisableResult,
    MfaErrorCode,
    MfaResult,
    MfaSetupResult,
    MfaStatusResult,
    MfaVerificationResult,
)
from .totp import match_time_step

_logger = logging.getLogger(__name__)

R = TypeVar("R", bound=MfaResult)

STORAGE_FAILURE_MESSAGE = "MFA state could not be accessed. Please try again."
BUSY_MESSAGE = "MFA is busy for this user. Please try again."
UNEXPECTED_FAILURE_MESSAGE = "MFA operation failed. Please try again."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TotpMfaProvider(IMfaProvider):
    """TOTP second factor for authenticator apps.

    The caller has already authenticated the user's first factor; this
    provider only decides whether a one-time code or backup code is valid
    right now, and keeps the enrollment record needed to decide it.

    Example:
        ```python
        provider = TotpMfaProvider(
            state_store=SQLAlchemyEnrollmentStateStore(session_factory),
            config=TotpConfig(issuer="MyApp"),
        )

        # Setup - show QR code and backup codes to the user once
        setup = await provider.setup("user-123", display_name="alice@example.com")
        print(f"Scan this QR: {setup.qr_code_uri}")

        # First verify confirms the enrollment, later ones check logins
        result = await provider.verify("user-123", "123456")
        if result.is_locked_out:
            print(f"Try again after {result.lockout_until}")
        ```
    """

    def __init__(
        self,
        *,
        state_store: IEnrollmentStateStore | None,
        config: TotpConfig | None = None,
        lock: IEnrollmentLock | None = None,
        audit_store: IMfaAuditStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the TOTP provider.

        Args:
            state_store: Storage for enrollment records (app provides it).
            config: Provider settings (default ``TotpConfig()``).
            lock: Per-user serialization (default in-process lock).
            audit_store: Optional audit trail.
            clock: Returns the current UTC time (default wall clock).

        Raises:
            MfaConfigurationError: If no state store is given.
        """
        if state_store is None:
            raise MfaConfigurationError(
                "TotpMfaProvider requires a state_store. "
                "Provide an IEnrollmentStateStore implementation."
            )
        self.config = config if config is not None else TotpConfig()
        self.state_store = state_store
        self.lock = (
            lock
            if lock is not None
            else InMemoryEnrollmentLock(timeout=self.config.lock_timeout_seconds)
        )
        self.audit_store = audit_store
        self.lockout = LockoutPolicy.from_config(self.config)
        self.backup_codes = BackupCodeManager()
        self._clock = clock if clock is not None else _utcnow

    @property
    def provider_name(self) -> str:
        return "TOTP"

    @property
    def method(self) -> MfaMethod:
        return MfaMethod.TOTP

    # ── Public operations ────────────────────────────────────────────

    async def setup(
        self, user_id: str, display_name: str | None = None
    ) -> MfaSetupResult:
        """Generate a new secret and backup codes for a user.

        Overwrites a pending enrollment. The record stays disabled until
        the first successful ``verify``.

        Args:
            user_id: User identifier.
            display_name: Account label shown in the authenticator app
                (default: the user id).

        Returns:
            MfaSetupResult carrying the secret, provisioning URI,
            manual-entry key and backup codes, or ``ALREADY_ENABLED``.
        """
        return await self._run(
            "setup",
            user_id,
            lambda: self._setup(user_id, display_name),
            MfaSetupResult.failure,
        )

    async def verify(self, user_id: str, code: str) -> MfaVerificationResult:
        """Verify a TOTP code.

        The first successful verification activates a pending enrollment.

        Args:
            user_id: User identifier.
            code: Code from the authenticator app.

        Returns:
            Success, ``INVALID_CODE`` with ``remaining_attempts``,
            ``LOCKED_OUT`` with ``lockout_until`` or ``NOT_ENABLED``.
        """
        return await self._run(
            "verify",
            user_id,
            lambda: self._verify(user_id, code),
            MfaVerificationResult.failure,
        )

    async def disable(self, user_id: str) -> MfaDisableResult:
        """Delete the user's enrollment, secret and backup codes included."""
        return await self._run(
            "disable",
            user_id,
            lambda: self._disable(user_id),
            MfaDisableResult.failure,
        )

    async def generate_backup_codes(
        self, user_id: str, count: int | None = None
    ) -> MfaBackupCodesResult:
        """Replace the user's backup codes with a fresh batch.

        Args:
            user_id: User identifier.
            count: Number of codes (default ``config.backup_code_count``).

        Raises:
            ValueError: If ``count`` is less than 1.
        """
        count = self.config.backup_code_count if count is None else count
        if count < 1:
            raise ValueError("Backup code count must be at least 1")
        return await self._run(
            "generate_backup_codes",
            user_id,
            lambda: self._generate_backup_codes(user_id, count),
            MfaBackupCodesResult.failure,
        )

    async def verify_backup_code(
        self, user_id: str, code: str
    ) -> MfaVerificationResult:
        """Verify and consume a backup code of an active enrollment."""
        return await self._run(
            "verify_backup_code",
            user_id,
            lambda: self._verify_backup_code(user_id, code),
            MfaVerificationResult.failure,
        )

    async def get_status(self, user_id: str) -> MfaStatusResult:
        """Describe a user's enrollment without exposing secrets."""
        return await self._run(
            "get_status",
            user_id,
            lambda: self._get_status(user_id),
            MfaStatusResult.failure,
        )

    async def is_enabled(self, user_id: str) -> bool:
        """Check whether the user has a confirmed enrollment.

        Raises:
            MfaStorageError: If the store fails. Callers gating logins on
                this must not treat a store failure as "MFA off".
        """
        state = await self._load(user_id)
        return state is not None and state.is_enabled

    # ── Operation bodies (run under the per-user lock) ───────────────

    async def _setup(
        self, user_id: str, display_name: str | None
    ) -> tuple[MfaSetupResult, list[MfaAuditEvent]]:
        existing = await self._load(user_id)
        if existing is not None and existing.is_enabled:
            _logger.warning("MFA already enabled for user %s", user_id)
            return (
                MfaSetupResult.failure(
                    "MFA is already enabled", MfaErrorCode.ALREADY_ENABLED
                ),
                [],
            )

        secret = generate_secret(self.config.secret_length)
        encoded = encode_secret(secret)
        state = EnrollmentState(user_id=user_id, secret=secret, method=self.method)
        backup_codes = self.backup_codes.issue(state, self.config.backup_code_count)
        qr_code_uri = build_provisioning_uri(
            encoded,
            self.config.issuer,
            display_name if display_name is not None else user_id,
            digits=self.config.code_length,
            period=self.config.time_step_seconds,
        )

        await self._save(state)
        _logger.info("MFA setup initiated for user %s", user_id)

        return (
            MfaSetupResult.success(
                secret=encoded,
                qr_code_uri=qr_code_uri,
                manual_entry_key=format_manual_entry_key(encoded),
                backup_codes=backup_codes,
            ),
            [
                self._event(
                    MfaEventType.SETUP_STARTED,
                    user_id,
                    replaced_pending=existing is not None,
                )
            ],
        )

    async def _verify(
        self, user_id: str, code: str
    ) -> tuple[MfaVerificationResult, list[MfaAuditEvent]]:
        now = self._clock()
        state = await self._load(user_id)
        if state is None:
            return (
                MfaVerificationResult.failure(
                    "MFA not configured", MfaErrorCode.NOT_ENABLED
                ),
                [],
            )

        if self.lockout.release_expired(state, now):
            _logger.info("MFA lockout expired for user %s", user_id)
        if self.lockout.is_locked_out(state, now):
            assert state.lockout_until is not None
            _logger.warning("MFA verification refused, user %s is locked out", user_id)
            return (
                MfaVerificationResult.locked_out(state.lockout_until),
                [
                    self._event(
                        MfaEventType.FAILED,
                        user_id,
                        error_code=MfaErrorCode.LOCKED_OUT,
                    )
                ],
            )

        step = match_time_step(
            state.secret,
            code,
            digits=self.config.code_length,
            period=self.config.time_step_seconds,
            drift=self.config.allowed_time_step_drift,
            at=now.timestamp(),
        )
        if step is not None and self._is_replay(state, step):
            _logger.warning("Rejected reused TOTP code for user %s", user_id)
            step = None

        if step is not None:
            events: list[MfaAuditEvent] = []
            if state.is_pending:
                state.activate(now)
                events.append(self._event(MfaEventType.ENABLED, user_id))
                _logger.info("MFA enabled for user %s", user_id)
            self.lockout.on_success(state, now)
            state.last_used_time_step = max(step, state.last_used_time_step or step)
            await self._save(state)

            _logger.info("MFA verification successful for user %s", user_id)
            events.append(self._event(MfaEventType.VERIFIED, user_id))
            return MfaVerificationResult.success(), events

        result = self.lockout.on_failure(state, now)
        await self._save(state)

        if result.is_locked_out:
            _logger.warning("MFA lockout triggered for user %s", user_id)
            event = self._event(
                MfaEventType.LOCKED_OUT,
                user_id,
                error_code=MfaErrorCode.LOCKED_OUT,
                failed_attempts=state.failed_attempts,
            )
        else:
            _logger.warning(
                "MFA verification failed for user %s, remaining attempts: %s",
                user_id,
                result.remaining_attempts,
            )
            event = self._event(
                MfaEventType.FAILED,
                user_id,
                error_code=MfaErrorCode.INVALID_CODE,
                remaining_attempts=result.remaining_attempts,
            )
        return result, [event]

    def _is_replay(self, state: EnrollmentState, step: int) -> bool:
        return (
            self.config.prevent_code_reuse
            and state.last_used_time_step is not None
            and step <= state.last_used_time_step
        )

    async def _disable(
        self, user_id: str
    ) -> tuple[MfaDisableResult, list[MfaAuditEvent]]:
        deleted = await self._delete(user_id)
        if not deleted:
            return MfaDisableResult.success(deleted=False), []
        _logger.info("MFA disabled for user %s", user_id)
        return (
            MfaDisableResult.success(deleted=True),
            [self._event(MfaEventType.DISABLED, user_id)],
        )

    async def _generate_backup_codes(
        self, user_id: str, count: int
    ) -> tuple[MfaBackupCodesResult, list[MfaAuditEvent]]:
        state = await self._load(user_id)
        if state is None:
            return (
                MfaBackupCodesResult.failure(
                    "MFA not configured", MfaErrorCode.NOT_ENABLED
                ),
                [],
            )

        codes = self.backup_codes.issue(state, count)
        await self._save(state)
        _logger.info("Generated %d new backup codes for user %s", count, user_id)

        return (
            MfaBackupCodesResult.success(codes),
            [self._event(MfaEventType.BACKUP_CODES_GENERATED, user_id, count=count)],
        )

    async def _verify_backup_code(
        self, user_id: str, code: str
    ) -> tuple[MfaVerificationResult, list[MfaAuditEvent]]:
        now = self._clock()
        state = await self._load(user_id)
        if state is None or not state.is_enabled:
            return (
                MfaVerificationResult.failure(
                    "MFA not enabled", MfaErrorCode.NOT_ENABLED
                ),
                [],
            )

        outcome = self.backup_codes.verify_and_consume(state, code)
        if outcome is BackupCodeOutcome.ALREADY_USED:
            _logger.warning("Attempt to reuse backup code for user %s", user_id)
            return (
                MfaVerificationResult.failure(
                    "Backup code already used",
                    MfaErrorCode.BACKUP_CODE_ALREADY_USED,
                ),
                [
                    self._event(
                        MfaEventType.BACKUP_CODE_REJECTED,
                        user_id,
                        error_code=MfaErrorCode.BACKUP_CODE_ALREADY_USED,
                    )
                ],
            )
        if outcome is BackupCodeOutcome.INVALID:
            _logger.warning("Invalid backup code for user %s", user_id)
            return (
                MfaVerificationResult.failure(
                    "Invalid backup code", MfaErrorCode.INVALID_CODE
                ),
                [
                    self._event(
                        MfaEventType.BACKUP_CODE_REJECTED,
                        user_id,
                        error_code=MfaErrorCode.INVALID_CODE,
                    )
                ],
            )

        state.last_verified_at = now
        await self._save(state)
        _logger.info(
            "Backup code verified for user %s, remaining codes: %d",
            user_id,
            state.remaining_backup_codes,
        )
        return (
            MfaVerificationResult.success(),
            [
                self._event(
                    MfaEventType.BACKUP_CODE_USED,
                    user_id,
                    remaining_codes=state.remaining_backup_codes,
                )
            ],
        )

    async def _get_status(
        self, user_id: str
    ) -> tuple[MfaStatusResult, list[MfaAuditEvent]]:
        state = await self._load(user_id)
        if state is None:
            return MfaStatusResult(is_success=True), []

        now = self._clock()
        # Not saved: status must not write
        self.lockout.release_expired(state, now)
        locked = self.lockout.is_locked_out(state, now)
        return (
            MfaStatusResult(
                is_success=True,
                is_enrolled=True,
                is_enabled=state.is_enabled,
                enabled_at=state.enabled_at,
                is_locked_out=locked,
                lockout_until=state.lockout_until,
                failed_attempts=state.failed_attempts,
                remaining_backup_codes=state.remaining_backup_codes,
                last_verified_at=state.last_verified_at,
            ),
            [],
        )

    # ── Plumbing ─────────────────────────────────────────────────────

    async def _run(
        self,
        operation: str,
        user_id: str,
        action: Callable[[], Awaitable[tuple[R, list[MfaAuditEvent]]]],
        failure: Callable[[str, MfaErrorCode], R],
    ) -> R:
        events: list[MfaAuditEvent] = []
        with MfaMetrics.timed(operation):
            try:
                async with self.lock.hold(user_id):
                    result, events = await action()
            except MfaStorageError:
                _logger.exception(
                    "Enrollment store failure during %s for user %s",
                    operation,
                    user_id,
                )
                result = failure(STORAGE_FAILURE_MESSAGE, MfaErrorCode.STORAGE_ERROR)
            except EnrollmentLockTimeoutError:
                _logger.exception(
                    "Enrollment lock timeout during %s for user %s", operation, user_id
                )
                result = failure(BUSY_MESSAGE, MfaErrorCode.UNKNOWN)
            except Exception:
                _logger.exception(
                    "Unexpected failure during %s for user %s", operation, user_id
                )
                result = failure(UNEXPECTED_FAILURE_MESSAGE, MfaErrorCode.UNKNOWN)

        MfaMetrics.record(
            operation,
            "success" if result.is_success else _error_label(result.error_code),
        )
        await self._audit(events)
        return result

    async def _load(self, user_id: str) -> EnrollmentState | None:
        try:
            return await self.state_store.get(user_id)
        except Exception as exc:
            raise MfaStorageError("get", user_id) from exc

    async def _save(self, state: EnrollmentState) -> None:
        try:
            await self.state_store.save(state)
        except Exception as exc:
            raise MfaStorageError("save", state.user_id) from exc

    async def _delete(self, user_id: str) -> bool:
        try:
            return await self.state_store.delete(user_id)
        except Exception as exc:
            raise MfaStorageError("delete", user_id) from exc

    def _event(
        self,
        event_type: MfaEventType,
        user_id: str,
        *,
        error_code: MfaErrorCode | None = None,
        **metadata: Any,
    ) -> MfaAuditEvent:
        return MfaAuditEvent(
            event_type=event_type,
            user_id=user_id,
            provider=self.provider_name,
            timestamp=self._clock(),
            success=error_code is None,
            error_code=error_code.value if error_code is not None else None,
            metadata=metadata,
        )

    async def _audit(self, events: list[MfaAuditEvent]) -> None:
        if self.audit_store is None:
            return
        for event in events:
            try:
                await self.audit_store.record(event)
            except Exception:
                # The operation already committed; its result stands.
                _logger.warning(
                    "Failed to record audit event %s for user %s",
                    event.event_type.value,
                    event.user_id,
                    exc_info=True,
                )


def _error_label(error_code: MfaErrorCode | None) -> str:
    return (error_code or MfaErrorCode.UNKNOWN).value


__all__: list[str] = [
    "TotpMfaProvider",
    "STORAGE_FAILURE_MESSAGE",
    "BUSY_MESSAGE",
    "UNEXPECTED_FAILURE_MESSAGE",
]
