"""Enrollment record for a user's second factor."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MfaMethod(str, Enum):
    """Second-factor methods.

    Only ``TOTP`` is implemented by this package; the other members keep
    stored records readable by providers for those methods.
    """

    TOTP = "totp"
    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    FIDO2 = "fido2"
    BACKUP_CODE = "backup_code"


@dataclass
class EnrollmentState:
    """Per-user MFA enrollment record.

    A record with ``is_enabled=False`` is pending confirmation: the user has
    been shown the secret but has not yet proven possession of it.

    Attributes:
        user_id: Opaque user identifier, unique key.
        secret: Raw TOTP secret. Never exposed after setup.
        method: Second-factor method of this record.
        is_enabled: Whether the first verification succeeded.
        enabled_at: When the record became active.
        failed_attempts: Consecutive failed verifications.
        lockout_until: While in the future, every verification is refused.
        backup_code_hashes: Hashes of unused backup codes.
        used_backup_code_hashes: Hashes of consumed backup codes.
        last_verified_at: Last successful verification.
        last_used_time_step: Highest accepted TOTP time step.
    """

    user_id: str
    secret: bytes = field(repr=False)
    method: MfaMethod = MfaMethod.TOTP
    is_enabled: bool = False
    enabled_at: datetime | None = None
    failed_attempts: int = 0
    lockout_until: datetime | None = None
    backup_code_hashes: set[str] = field(default_factory=set, repr=False)
    used_backup_code_hashes: set[str] = field(default_factory=set, repr=False)
    last_verified_at: datetime | None = None
    last_used_time_step: int | None = None

    @property
    def is_pending(self) -> bool:
        return not self.is_enabled

    @property
    def remaining_backup_codes(self) -> int:
        return len(self.backup_code_hashes)

    def activate(self, now: datetime) -> None:
        """Mark the enrollment as confirmed."""
        if not self.is_enabled:
            self.is_enabled = True
            self.enabled_at = now

    def replace_backup_codes(self, hashes: set[str]) -> None:
        """Swap in a new batch of backup code hashes, forgetting used ones."""
        self.backup_code_hashes = set(hashes)
        self.used_backup_code_hashes = set()

    def consume_backup_code(self, code_hash: str) -> None:
        # Move, never copy: the two sets stay disjoint.
        self.backup_code_hashes.discard(code_hash)
        self.used_backup_code_hashes.add(code_hash)


__all__: list[str] = ["MfaMethod", "EnrollmentState"]
