"""Test configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cqrs_ddd_mfa import (
    InMemoryEnrollmentStateStore,
    InMemoryMfaAuditStore,
    TotpConfig,
    TotpMfaProvider,
)

from .helpers import FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    # 10 seconds into a 30-second step
    return FrozenClock(datetime(2026, 1, 15, 12, 0, 10, tzinfo=timezone.utc))


@pytest.fixture
def config() -> TotpConfig:
    return TotpConfig(
        issuer="TestApp",
        max_failed_attempts=3,
        lockout_duration=timedelta(minutes=5),
    )


@pytest.fixture
def state_store() -> InMemoryEnrollmentStateStore:
    return InMemoryEnrollmentStateStore()


@pytest.fixture
def audit_store() -> InMemoryMfaAuditStore:
    return InMemoryMfaAuditStore()


@pytest.fixture
def provider(
    state_store: InMemoryEnrollmentStateStore,
    config: TotpConfig,
    audit_store: InMemoryMfaAuditStore,
    clock: FrozenClock,
) -> TotpMfaProvider:
    return TotpMfaProvider(
        state_store=state_store,
        config=config,
        audit_store=audit_store,
        clock=clock,
    )
