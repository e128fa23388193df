"""Tests for TOTP code computation and verification."""

from __future__ import annotations

import pytest

from cqrs_ddd_mfa.totp import (
    compute_code,
    constant_time_equals,
    current_time_step,
    match_time_step,
    verify_code,
)

RFC_SECRET = b"12345678901234567890"

# RFC 4226 Appendix D
HOTP_VECTORS = [
    "755224",
    "287082",
    "359152",
    "969429",
    "338314",
    "254676",
    "287922",
    "162583",
    "399871",
    "520489",
]

# RFC 6238 Appendix B, SHA1
TOTP_VECTORS = [
    (59, "94287082"),
    (1111111109, "07081804"),
    (1111111111, "14050471"),
    (1234567890, "89005924"),
    (2000000000, "69279037"),
    (20000000000, "65353130"),
]

NOW = 1_700_000_010.0


class TestComputeCode:
    """Tests for compute_code."""

    @pytest.mark.parametrize(("counter", "expected"), enumerate(HOTP_VECTORS))
    def test_rfc4226_vectors(self, counter: int, expected: str) -> None:
        assert compute_code(RFC_SECRET, counter, 6) == expected

    @pytest.mark.parametrize(("epoch", "expected"), TOTP_VECTORS)
    def test_rfc6238_vectors(self, epoch: int, expected: str) -> None:
        assert compute_code(RFC_SECRET, current_time_step(epoch, 30), 8) == expected

    def test_is_deterministic(self) -> None:
        assert compute_code(RFC_SECRET, 123456, 6) == compute_code(
            RFC_SECRET, 123456, 6
        )

    @pytest.mark.parametrize("digits", [6, 7, 8])
    def test_always_has_exact_digit_count(self, digits: int) -> None:
        for step in range(0, 500, 7):
            code = compute_code(RFC_SECRET, step, digits)
            assert len(code) == digits
            assert code.isdigit()

    def test_leading_zeros_are_kept(self) -> None:
        # 07081804 from the RFC 6238 table starts with a zero
        assert compute_code(RFC_SECRET, current_time_step(1111111109), 8)[0] == "0"

    def test_rejects_negative_step(self) -> None:
        with pytest.raises(ValueError):
            compute_code(RFC_SECRET, -1, 6)


class TestCurrentTimeStep:
    """Tests for current_time_step."""

    def test_floors_division(self) -> None:
        assert current_time_step(59, 30) == 1
        assert current_time_step(60, 30) == 2
        assert current_time_step(89.99, 30) == 2

    def test_custom_period(self) -> None:
        assert current_time_step(119, 60) == 1


class TestConstantTimeEquals:
    """Tests for constant_time_equals."""

    def test_equal(self) -> None:
        assert constant_time_equals("123456", "123456")

    def test_different(self) -> None:
        assert not constant_time_equals("123456", "123457")

    def test_different_length(self) -> None:
        assert not constant_time_equals("123456", "1234567")


class TestVerifyCode:
    """Tests for verify_code and match_time_step."""

    def test_accepts_current_code(self) -> None:
        step = current_time_step(NOW)
        assert verify_code(RFC_SECRET, compute_code(RFC_SECRET, step), at=NOW)

    def test_match_returns_step(self) -> None:
        step = current_time_step(NOW)
        code = compute_code(RFC_SECRET, step - 1)
        assert match_time_step(RFC_SECRET, code, at=NOW) == step - 1

    @pytest.mark.parametrize("drift", [0, 1, 2])
    def test_drift_boundary(self, drift: int) -> None:
        current = current_time_step(NOW)
        inside = compute_code(RFC_SECRET, current + drift)
        outside = compute_code(RFC_SECRET, current + drift + 1)

        assert verify_code(RFC_SECRET, inside, drift=drift, at=NOW)
        assert not verify_code(RFC_SECRET, outside, drift=drift, at=NOW)

    @pytest.mark.parametrize("drift", [0, 1, 2])
    def test_past_drift_boundary(self, drift: int) -> None:
        current = current_time_step(NOW)
        inside = compute_code(RFC_SECRET, current - drift)
        outside = compute_code(RFC_SECRET, current - drift - 1)

        assert verify_code(RFC_SECRET, inside, drift=drift, at=NOW)
        assert not verify_code(RFC_SECRET, outside, drift=drift, at=NOW)

    @pytest.mark.parametrize(
        "code",
        ["", "12345", "1234567", "12345a", " 12345", "12 456", "１２３４５６"],
    )
    def test_rejects_malformed_codes(self, code: str) -> None:
        assert match_time_step(RFC_SECRET, code, at=NOW) is None

    def test_respects_digit_count(self) -> None:
        step = current_time_step(NOW)
        code = compute_code(RFC_SECRET, step, 8)
        assert verify_code(RFC_SECRET, code, digits=8, at=NOW)
        assert not verify_code(RFC_SECRET, code[:6], digits=8, at=NOW)

    def test_skips_negative_steps_near_epoch(self) -> None:
        assert verify_code(RFC_SECRET, HOTP_VECTORS[0], at=0)

    def test_defaults_to_wall_clock(self) -> None:
        import time

        step = current_time_step(time.time())
        # Adjacent steps are accepted too, so a step rollover is harmless
        assert verify_code(RFC_SECRET, compute_code(RFC_SECRET, step))
