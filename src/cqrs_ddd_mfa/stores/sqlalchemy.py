"""SQLAlchemy enrollment state store implementing IEnrollmentStateStore."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, LargeBinary, String, delete
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..models import EnrollmentState, MfaMethod
from ..ports import IEnrollmentStateStore

if TYPE_CHECKING:
    from collections.abc import Callable

    AsyncSessionFactory = Callable[[], Any]


TABLE_NAME = "mfa_enrollments"


class EnrollmentBase(DeclarativeBase):
    """Declarative base holding the MFA tables' metadata."""


class EnrollmentModel(EnrollmentBase):
    """
    Persists one user's MFA enrollment.

    Backup code hashes are stored as JSON lists; the raw secret as bytes.
    Encrypt the secret column at the database level where possible.
    """

    __tablename__ = TABLE_NAME

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    method: Mapped[str] = mapped_column(String(32), default=MfaMethod.TOTP.value)
    secret: Mapped[bytes] = mapped_column(LargeBinary)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    enabled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0)
    lockout_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    backup_code_hashes: Mapped[list[str]] = mapped_column(JSON, default=list)
    used_backup_code_hashes: Mapped[list[str]] = mapped_column(JSON, default=list)
    last_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_used_time_step: Mapped[int | None] = mapped_column(Integer, nullable=True)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; treat naive values as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_model(state: EnrollmentState) -> EnrollmentModel:
    return EnrollmentModel(
        user_id=state.user_id,
        method=state.method.value,
        secret=state.secret,
        is_enabled=state.is_enabled,
        enabled_at=state.enabled_at,
        failed_attempts=state.failed_attempts,
        lockout_until=state.lockout_until,
        backup_code_hashes=sorted(state.backup_code_hashes),
        used_backup_code_hashes=sorted(state.used_backup_code_hashes),
        last_verified_at=state.last_verified_at,
        last_used_time_step=state.last_used_time_step,
    )


def from_model(model: EnrollmentModel) -> EnrollmentState:
    return EnrollmentState(
        user_id=model.user_id,
        secret=bytes(model.secret),
        method=MfaMethod(model.method),
        is_enabled=bool(model.is_enabled),
        enabled_at=_as_utc(model.enabled_at),
        failed_attempts=model.failed_attempts or 0,
        lockout_until=_as_utc(model.lockout_until),
        backup_code_hashes=set(model.backup_code_hashes or []),
        used_backup_code_hashes=set(model.used_backup_code_hashes or []),
        last_verified_at=_as_utc(model.last_verified_at),
        last_used_time_step=model.last_used_time_step,
    )


class SQLAlchemyEnrollmentStateStore(IEnrollmentStateStore):
    """
    SQLAlchemy implementation of IEnrollmentStateStore.

    Each call opens its own session from ``session_factory`` (an
    ``async_sessionmaker``) and commits before returning, which gives
    read-your-writes per user id.

    Example:
        ```python
        engine = create_async_engine("postgresql+asyncpg://...")
        async with engine.begin() as conn:
            await conn.run_sync(EnrollmentBase.metadata.create_all)

        store = SQLAlchemyEnrollmentStateStore(
            async_sessionmaker(engine, expire_on_commit=False)
        )
        ```
    """

    def __init__(self, session_factory: AsyncSessionFactory) -> None:
        self._session_factory = session_factory

    async def get(self, user_id: str) -> EnrollmentState | None:
        async with self._session_factory() as session:
            model = await session.get(EnrollmentModel, user_id)
            return from_model(model) if model is not None else None

    async def save(self, state: EnrollmentState) -> None:
        async with self._session_factory() as session:
            await session.merge(to_model(state))
            await session.commit()

    async def delete(self, user_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(EnrollmentModel).where(EnrollmentModel.user_id == user_id)
            )
            await session.commit()
            return bool(result.rowcount)


__all__: list[str] = [
    "TABLE_NAME",
    "EnrollmentBase",
    "EnrollmentModel",
    "SQLAlchemyEnrollmentStateStore",
    "to_model",
    "from_model",
]
