"""Tests for SQLAlchemyEnrollmentStateStore against SQLite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from cqrs_ddd_mfa import (
    EnrollmentState,
    IEnrollmentStateStore,
    MfaErrorCode,
    MfaMethod,
    TotpConfig,
    TotpMfaProvider,
)
from cqrs_ddd_mfa.stores.sqlalchemy import (
    EnrollmentBase,
    SQLAlchemyEnrollmentStateStore,
)

from ..helpers import FrozenClock, code_at, wrong_code

pytestmark = pytest.mark.integration

NOW = datetime(2026, 1, 15, 12, 0, 10, tzinfo=timezone.utc)


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(EnrollmentBase.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def store(engine) -> SQLAlchemyEnrollmentStateStore:
    return SQLAlchemyEnrollmentStateStore(
        async_sessionmaker(engine, expire_on_commit=False)
    )


def _state() -> EnrollmentState:
    return EnrollmentState(
        user_id="user-1",
        secret=bytes(range(20)),
        method=MfaMethod.TOTP,
        is_enabled=True,
        enabled_at=NOW,
        failed_attempts=2,
        lockout_until=NOW + timedelta(minutes=15),
        backup_code_hashes={"a", "b"},
        used_backup_code_hashes={"c"},
        last_verified_at=NOW,
        last_used_time_step=59_000_000,
    )


def test_satisfies_protocol(store: SQLAlchemyEnrollmentStateStore) -> None:
    assert isinstance(store, IEnrollmentStateStore)


@pytest.mark.asyncio
async def test_get_missing(store: SQLAlchemyEnrollmentStateStore) -> None:
    assert await store.get("user-1") is None


@pytest.mark.asyncio
async def test_save_and_get(store: SQLAlchemyEnrollmentStateStore) -> None:
    state = _state()

    await store.save(state)
    loaded = await store.get("user-1")

    assert loaded == state
    assert loaded is not None
    assert loaded.lockout_until is not None
    assert loaded.lockout_until.tzinfo is not None


@pytest.mark.asyncio
async def test_save_updates_existing(store: SQLAlchemyEnrollmentStateStore) -> None:
    state = _state()
    await store.save(state)

    state.failed_attempts = 0
    state.lockout_until = None
    state.consume_backup_code("a")
    await store.save(state)

    loaded = await store.get("user-1")
    assert loaded is not None
    assert loaded.failed_attempts == 0
    assert loaded.lockout_until is None
    assert loaded.backup_code_hashes == {"b"}
    assert loaded.used_backup_code_hashes == {"a", "c"}


@pytest.mark.asyncio
async def test_delete(store: SQLAlchemyEnrollmentStateStore) -> None:
    await store.save(_state())

    assert await store.delete("user-1")
    assert not await store.delete("user-1")
    assert await store.get("user-1") is None


@pytest.mark.asyncio
async def test_provider_lifecycle(store: SQLAlchemyEnrollmentStateStore) -> None:
    clock = FrozenClock(NOW)
    provider = TotpMfaProvider(
        state_store=store,
        config=TotpConfig(max_failed_attempts=2),
        clock=clock,
    )

    setup = await provider.setup("user-1")
    assert setup.secret is not None
    assert (await provider.verify("user-1", code_at(setup.secret, clock()))).is_success
    assert await provider.is_enabled("user-1")

    bad = wrong_code(setup.secret, clock())
    await provider.verify("user-1", bad)
    locked = await provider.verify("user-1", bad)
    assert locked.error_code == MfaErrorCode.LOCKED_OUT

    backup = await provider.verify_backup_code("user-1", setup.backup_codes[0])
    assert backup.is_success
    status = await provider.get_status("user-1")
    assert status.is_locked_out
    assert status.remaining_backup_codes == 9

    assert (await provider.disable("user-1")).deleted
    assert not await provider.is_enabled("user-1")
