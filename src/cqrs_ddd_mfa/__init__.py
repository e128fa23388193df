"""CQRS-DDD MFA Package

Second factor: "Prove it's still you."

Time-based one-time codes (RFC 6238) for authenticator apps, single-use
backup codes and failed-attempt lockout, behind an async provider that
returns result values instead of raising for expected outcomes.

Usage:
    ```python
    from cqrs_ddd_mfa import (
        InMemoryEnrollmentStateStore,
        TotpConfig,
        TotpMfaProvider,
    )

    provider = TotpMfaProvider(
        state_store=InMemoryEnrollmentStateStore(),
        config=TotpConfig(issuer="MyApp"),
    )

    setup = await provider.setup("user-123")
    result = await provider.verify("user-123", "123456")
    ```

Submodules:
    - `codec`: secret generation, base32, provisioning URI
    - `totp`: code computation and drift-window verification
    - `backup_codes`: backup code generation and consumption
    - `lockout`: failed-attempt lockout policy
    - `stores.sqlalchemy`: SQLAlchemy enrollment store (``sqlalchemy`` extra)
"""

from __future__ import annotations

# Audit
from .audit import InMemoryMfaAuditStore, MfaAuditEvent, MfaEventType

# Components
from .backup_codes import BackupCodeManager, BackupCodeOutcome
from .codec import (
    build_provisioning_uri,
    decode_secret,
    encode_secret,
    format_manual_entry_key,
    generate_secret,
)
from .config import TotpConfig

# Exceptions
from .exceptions import (
    EnrollmentLockTimeoutError,
    MfaConfigurationError,
    MfaError,
    MfaInfrastructureError,
    MfaStorageError,
)
from .locking import InMemoryEnrollmentLock
from .lockout import LockoutPolicy

# Models and results
from .models import EnrollmentState, MfaMethod
from .observability import MfaMetrics

# Ports
from .ports import IEnrollmentLock, IEnrollmentStateStore, IMfaAuditStore, IMfaProvider

# Provider
from .provider import TotpMfaProvider
from .results import (
    MfaBackupCodesResult,
    MfaDisableResult,
    MfaErrorCode,
    MfaResult,
    MfaSetupResult,
    MfaStatusResult,
    MfaVerificationResult,
)
from .stores import InMemoryEnrollmentStateStore
from .totp import (
    compute_code,
    constant_time_equals,
    current_time_step,
    match_time_step,
    verify_code,
)

__all__: list[str] = [
    # Provider
    "TotpMfaProvider",
    "TotpConfig",
    # Ports
    "IEnrollmentStateStore",
    "IEnrollmentLock",
    "IMfaAuditStore",
    "IMfaProvider",
    # Stores and locks
    "InMemoryEnrollmentStateStore",
    "InMemoryEnrollmentLock",
    # Models
    "EnrollmentState",
    "MfaMethod",
    # Results
    "MfaErrorCode",
    "MfaResult",
    "MfaSetupResult",
    "MfaVerificationResult",
    "MfaBackupCodesResult",
    "MfaDisableResult",
    "MfaStatusResult",
    # Components
    "BackupCodeManager",
    "BackupCodeOutcome",
    "LockoutPolicy",
    "generate_secret",
    "encode_secret",
    "decode_secret",
    "format_manual_entry_key",
    "build_provisioning_uri",
    "compute_code",
    "current_time_step",
    "constant_time_equals",
    "match_time_step",
    "verify_code",
    # Observability
    "MfaMetrics",
    "MfaEventType",
    "MfaAuditEvent",
    "InMemoryMfaAuditStore",
    # Exceptions
    "MfaError",
    "MfaConfigurationError",
    "MfaInfrastructureError",
    "MfaStorageError",
    "EnrollmentLockTimeoutError",
]
