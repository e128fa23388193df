"""Tests for the failed-attempt lockout policy."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cqrs_ddd_mfa import EnrollmentState, LockoutPolicy, MfaErrorCode, TotpConfig

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy() -> LockoutPolicy:
    return LockoutPolicy(max_failed_attempts=3, lockout_duration=timedelta(minutes=5))


@pytest.fixture
def state() -> EnrollmentState:
    return EnrollmentState(user_id="user-1", secret=b"x" * 20, is_enabled=True)


class TestLockoutPolicy:
    """Test LockoutPolicy."""

    def test_failures_count_down(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test remaining attempts decrease until lockout."""
        first = policy.on_failure(state, NOW)
        second = policy.on_failure(state, NOW)
        third = policy.on_failure(state, NOW)

        assert first.error_code == MfaErrorCode.INVALID_CODE
        assert first.remaining_attempts == 2
        assert second.remaining_attempts == 1
        assert third.error_code == MfaErrorCode.LOCKED_OUT
        assert third.is_locked_out
        assert third.lockout_until == NOW + timedelta(minutes=5)
        assert state.lockout_until == NOW + timedelta(minutes=5)

    def test_is_locked_out_window(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test the lockout holds strictly before its end."""
        state.lockout_until = NOW + timedelta(minutes=5)

        assert policy.is_locked_out(state, NOW)
        assert policy.is_locked_out(state, NOW + timedelta(minutes=4, seconds=59))
        assert not policy.is_locked_out(state, NOW + timedelta(minutes=5))

    def test_release_expired(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test an elapsed lockout is cleared with its counter."""
        state.failed_attempts = 3
        state.lockout_until = NOW

        assert policy.release_expired(state, NOW)
        assert state.lockout_until is None
        assert state.failed_attempts == 0

    def test_release_keeps_active_lockout(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test an active lockout is left alone."""
        state.failed_attempts = 3
        state.lockout_until = NOW + timedelta(seconds=1)

        assert not policy.release_expired(state, NOW)
        assert state.failed_attempts == 3

    def test_release_without_lockout(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test nothing changes when there is no lockout."""
        state.failed_attempts = 2

        assert not policy.release_expired(state, NOW)
        assert state.failed_attempts == 2

    def test_success_resets(
        self, policy: LockoutPolicy, state: EnrollmentState
    ) -> None:
        """Test a success clears the counter and stamps the time."""
        state.failed_attempts = 2

        policy.on_success(state, NOW)

        assert state.failed_attempts == 0
        assert state.last_verified_at == NOW

    def test_single_attempt_policy(self, state: EnrollmentState) -> None:
        """Test a one-attempt policy locks on the first failure."""
        policy = LockoutPolicy(max_failed_attempts=1)

        result = policy.on_failure(state, NOW)

        assert result.is_locked_out
        assert result.lockout_until == NOW + timedelta(minutes=15)

    def test_from_config(self) -> None:
        """Test values are taken from TotpConfig."""
        policy = LockoutPolicy.from_config(
            TotpConfig(max_failed_attempts=7, lockout_duration=timedelta(hours=1))
        )

        assert policy.max_failed_attempts == 7
        assert policy.lockout_duration == timedelta(hours=1)

    @pytest.mark.parametrize(
        ("attempts", "duration"),
        [(0, timedelta(minutes=1)), (3, timedelta(0)), (3, timedelta(seconds=-1))],
    )
    def test_rejects_invalid_settings(
        self, attempts: int, duration: timedelta
    ) -> None:
        """Test invalid thresholds raise."""
        with pytest.raises(ValueError):
            LockoutPolicy(max_failed_attempts=attempts, lockout_duration=duration)
