"""Failed-attempt lockout for TOTP verification."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .results import MfaErrorCode, MfaVerificationResult

if TYPE_CHECKING:
    from .config import TotpConfig
    from .models import EnrollmentState


class LockoutPolicy:
    """Counts consecutive failures and locks verification for a while.

    Expiry is lazy: nothing clears a lockout in the background, the next
    verification attempt calls ``release_expired`` first.
    """

    def __init__(
        self,
        max_failed_attempts: int = 5,
        lockout_duration: timedelta = timedelta(minutes=15),
    ) -> None:
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if lockout_duration <= timedelta(0):
            raise ValueError("lockout_duration must be positive")
        self.max_failed_attempts = max_failed_attempts
        self.lockout_duration = lockout_duration

    @classmethod
    def from_config(cls, config: TotpConfig) -> LockoutPolicy:
        return cls(
            max_failed_attempts=config.max_failed_attempts,
            lockout_duration=config.lockout_duration,
        )

    def is_locked_out(self, state: EnrollmentState, now: datetime) -> bool:
        return state.lockout_until is not None and state.lockout_until > now

    def release_expired(self, state: EnrollmentState, now: datetime) -> bool:
        """Clear a lockout whose window has passed.

        Returns:
            True if the state was changed.
        """
        if state.lockout_until is None or state.lockout_until > now:
            return False
        state.lockout_until = None
        state.failed_attempts = 0
        return True

    def on_success(self, state: EnrollmentState, now: datetime) -> None:
        state.failed_attempts = 0
        state.last_verified_at = now

    def on_failure(
        self, state: EnrollmentState, now: datetime
    ) -> MfaVerificationResult:
        """Record a failed attempt, locking out at the threshold."""
        state.failed_attempts += 1
        if state.failed_attempts >= self.max_failed_attempts:
            state.lockout_until = now + self.lockout_duration
            return MfaVerificationResult.locked_out(state.lockout_until)
        return MfaVerificationResult.failure(
            "Invalid code",
            MfaErrorCode.INVALID_CODE,
            remaining_attempts=self.max_failed_attempts - state.failed_attempts,
        )


__all__: list[str] = ["LockoutPolicy"]
