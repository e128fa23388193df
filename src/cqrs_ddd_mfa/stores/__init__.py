"""Enrollment state store implementations.

The SQLAlchemy store lives in ``cqrs_ddd_mfa.stores.sqlalchemy`` and needs
the ``sqlalchemy`` extra.
"""

from __future__ import annotations

from .memory import InMemoryEnrollmentStateStore

__all__: list[str] = ["InMemoryEnrollmentStateStore"]
