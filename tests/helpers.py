"""Shared test helpers."""

from __future__ import annotations

from datetime import datetime, timedelta

from cqrs_ddd_mfa import compute_code, current_time_step, decode_secret


class FrozenClock:
    """Clock returning a fixed UTC instant until advanced."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def code_at(encoded_secret: str, now: datetime, *, offset: int = 0) -> str:
    """Valid code for the time step ``offset`` steps away from ``now``."""
    step = current_time_step(now.timestamp(), 30) + offset
    return compute_code(decode_secret(encoded_secret), step, 6)


def wrong_code(encoded_secret: str, now: datetime, drift: int = 1) -> str:
    """A well-formed code that matches no step in the drift window."""
    valid = {code_at(encoded_secret, now, offset=i) for i in range(-drift, drift + 1)}
    candidate = 0
    while f"{candidate:06d}" in valid:
        candidate += 1
    return f"{candidate:06d}"
