"""TOTP code computation and verification (RFC 6238 over RFC 4226).

Works with any TOTP-compatible authenticator app:
- Google Authenticator
- Microsoft Authenticator
- Authy
- 1Password
- FreeOTP

Uses pyotp internally for HOTP dynamic truncation and constant-time
comparison. These are pure functions; no replay tracking happens here.
"""

from __future__ import annotations

import string
import time

import pyotp
from pyotp.utils import strings_equal

from .codec import encode_secret

_ASCII_DIGITS = frozenset(string.digits)


def compute_code(secret: bytes, time_step: int, digits: int = 6) -> str:
    """Compute the one-time code for a time step.

    HMAC-SHA1 over the 8-byte big-endian step, dynamic truncation to a
    31-bit integer, reduced modulo ``10**digits`` and zero padded.

    Args:
        secret: Raw secret bytes.
        time_step: Non-negative time step counter.
        digits: Number of decimal digits.

    Returns:
        Code of exactly ``digits`` characters.
    """
    if time_step < 0:
        raise ValueError("time_step must be non-negative")
    return pyotp.HOTP(encode_secret(secret), digits=digits).at(time_step)


def current_time_step(epoch_seconds: float, period: int = 30) -> int:
    """Return ``floor(epoch_seconds / period)``."""
    return int(epoch_seconds // period)


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two codes without short-circuiting on the first mismatch."""
    return strings_equal(a, b)


def _is_well_formed(code: str, digits: int) -> bool:
    return len(code) == digits and all(ch in _ASCII_DIGITS for ch in code)


def match_time_step(
    secret: bytes,
    code: str,
    *,
    digits: int = 6,
    period: int = 30,
    drift: int = 1,
    at: float | None = None,
) -> int | None:
    """Find the time step a submitted code belongs to.

    Checks every step in ``[current - drift, current + drift]``.

    Args:
        secret: Raw secret bytes.
        code: Code submitted by the user.
        digits: Expected code length.
        period: Time step length in seconds.
        drift: Accepted clock skew in time steps.
        at: Epoch seconds to verify at (default: now).

    Returns:
        Matching time step, or None if the code is malformed or matches no
        step in the window.
    """
    if not _is_well_formed(code, digits):
        return None

    current = current_time_step(time.time() if at is None else at, period)
    for step in range(current - drift, current + drift + 1):
        if step < 0:
            continue
        if constant_time_equals(code, compute_code(secret, step, digits)):
            return step
    return None


def verify_code(
    secret: bytes,
    code: str,
    *,
    digits: int = 6,
    period: int = 30,
    drift: int = 1,
    at: float | None = None,
) -> bool:
    """Verify a code within ``drift`` time steps of ``at``."""
    return (
        match_time_step(
            secret, code, digits=digits, period=period, drift=drift, at=at
        )
        is not None
    )


__all__: list[str] = [
    "compute_code",
    "current_time_step",
    "constant_time_equals",
    "match_time_step",
    "verify_code",
]
