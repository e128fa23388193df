"""MFA exceptions.

Expected verification outcomes (invalid code, lockout, reused backup code)
are reported as result values, see ``results``. The exceptions below are
reserved for programmer errors and for infrastructure failures that the
provider converts into results at its boundary.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE MFA ERROR
# ═══════════════════════════════════════════════════════════════


class MfaError(Exception):
    """Root exception for the MFA package."""


class MfaConfigurationError(MfaError):
    """Raised when the MFA provider is wired incorrectly.

    Examples:
        - No enrollment state store supplied
    """


# ═══════════════════════════════════════════════════════════════
# INFRASTRUCTURE ERRORS
# ═══════════════════════════════════════════════════════════════


class MfaInfrastructureError(MfaError):
    """Base class for failures of the collaborators around the provider."""


class MfaStorageError(MfaInfrastructureError):
    """Raised when the enrollment state store fails.

    Attributes:
        operation: Store operation that failed (``get``, ``save``, ``delete``).
        user_id: User whose record was being accessed.
    """

    def __init__(self, operation: str, user_id: str) -> None:
        self.operation = operation
        self.user_id = user_id
        super().__init__(f"Enrollment store {operation} failed for user {user_id!r}")


class EnrollmentLockTimeoutError(MfaInfrastructureError):
    """Raised when the per-user enrollment lock cannot be acquired in time."""

    def __init__(self, user_id: str, timeout: float) -> None:
        self.user_id = user_id
        self.timeout = timeout
        super().__init__(
            f"Failed to acquire enrollment lock for user {user_id!r} "
            f"within {timeout}s"
        )


__all__: list[str] = [
    "MfaError",
    "MfaConfigurationError",
    "MfaInfrastructureError",
    "MfaStorageError",
    "EnrollmentLockTimeoutError",
]
