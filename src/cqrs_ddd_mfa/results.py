"""Result values returned by MFA operations.

Every provider operation returns one of these instead of raising for
expected outcomes. ``is_success`` tells whether the operation did what was
asked; on failure ``error_code`` and ``error_message`` describe why.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MfaErrorCode(str, Enum):
    """Failure kinds surfaced by the MFA provider."""

    UNKNOWN = "unknown"
    ALREADY_ENABLED = "already_enabled"
    NOT_ENABLED = "not_enabled"
    INVALID_CODE = "invalid_code"
    LOCKED_OUT = "locked_out"
    BACKUP_CODE_ALREADY_USED = "backup_code_already_used"
    STORAGE_ERROR = "storage_error"


LOCKED_OUT_MESSAGE = "Too many failed attempts. Account temporarily locked."


@dataclass(frozen=True)
class MfaResult:
    """Common shape of all MFA operation results."""

    is_success: bool
    error_code: MfaErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class MfaSetupResult(MfaResult):
    """Outcome of ``setup``.

    The only result that ever carries the plaintext secret and backup codes.

    Attributes:
        secret: Base32-encoded secret for the authenticator app.
        qr_code_uri: otpauth:// URI for QR code generation.
        manual_entry_key: Secret grouped in blocks of 4 for typing.
        backup_codes: Plaintext backup codes, shown once.
    """

    secret: str | None = None
    qr_code_uri: str | None = None
    manual_entry_key: str | None = None
    backup_codes: tuple[str, ...] = ()

    @classmethod
    def success(
        cls,
        secret: str,
        qr_code_uri: str,
        manual_entry_key: str,
        backup_codes: list[str] | tuple[str, ...] = (),
    ) -> MfaSetupResult:
        return cls(
            is_success=True,
            secret=secret,
            qr_code_uri=qr_code_uri,
            manual_entry_key=manual_entry_key,
            backup_codes=tuple(backup_codes),
        )

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: MfaErrorCode = MfaErrorCode.UNKNOWN,
    ) -> MfaSetupResult:
        return cls(is_success=False, error_code=error_code, error_message=error_message)


@dataclass(frozen=True)
class MfaVerificationResult(MfaResult):
    """Outcome of ``verify`` and ``verify_backup_code``.

    Attributes:
        remaining_attempts: Attempts left before lockout, when known.
        is_locked_out: Whether verification is currently refused.
        lockout_until: End of the lockout window.
    """

    remaining_attempts: int | None = None
    is_locked_out: bool = False
    lockout_until: datetime | None = None

    @classmethod
    def success(cls) -> MfaVerificationResult:
        return cls(is_success=True)

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: MfaErrorCode = MfaErrorCode.UNKNOWN,
        remaining_attempts: int | None = None,
    ) -> MfaVerificationResult:
        return cls(
            is_success=False,
            error_code=error_code,
            error_message=error_message,
            remaining_attempts=remaining_attempts,
        )

    @classmethod
    def locked_out(cls, lockout_until: datetime) -> MfaVerificationResult:
        return cls(
            is_success=False,
            error_code=MfaErrorCode.LOCKED_OUT,
            error_message=LOCKED_OUT_MESSAGE,
            remaining_attempts=0,
            is_locked_out=True,
            lockout_until=lockout_until,
        )


@dataclass(frozen=True)
class MfaBackupCodesResult(MfaResult):
    """Outcome of ``generate_backup_codes``."""

    codes: tuple[str, ...] = ()

    @classmethod
    def success(cls, codes: list[str] | tuple[str, ...]) -> MfaBackupCodesResult:
        return cls(is_success=True, codes=tuple(codes))

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: MfaErrorCode = MfaErrorCode.UNKNOWN,
    ) -> MfaBackupCodesResult:
        return cls(is_success=False, error_code=error_code, error_message=error_message)


@dataclass(frozen=True)
class MfaDisableResult(MfaResult):
    """Outcome of ``disable``; ``deleted`` is False when nothing was enrolled."""

    deleted: bool = False

    @classmethod
    def success(cls, deleted: bool) -> MfaDisableResult:
        return cls(is_success=True, deleted=deleted)

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: MfaErrorCode = MfaErrorCode.UNKNOWN,
    ) -> MfaDisableResult:
        return cls(is_success=False, error_code=error_code, error_message=error_message)


@dataclass(frozen=True)
class MfaStatusResult(MfaResult):
    """Secret-free snapshot of a user's enrollment."""

    is_enrolled: bool = False
    is_enabled: bool = False
    enabled_at: datetime | None = None
    is_locked_out: bool = False
    lockout_until: datetime | None = None
    failed_attempts: int = 0
    remaining_backup_codes: int = 0
    last_verified_at: datetime | None = None

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: MfaErrorCode = MfaErrorCode.UNKNOWN,
    ) -> MfaStatusResult:
        return cls(is_success=False, error_code=error_code, error_message=error_message)


__all__: list[str] = [
    "MfaErrorCode",
    "MfaResult",
    "MfaSetupResult",
    "MfaVerificationResult",
    "MfaBackupCodesResult",
    "MfaDisableResult",
    "MfaStatusResult",
]
