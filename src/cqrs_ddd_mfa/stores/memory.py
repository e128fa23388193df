"""In-memory enrollment state store."""

from __future__ import annotations

import copy

from ..models import EnrollmentState
from ..ports import IEnrollmentStateStore


class InMemoryEnrollmentStateStore(IEnrollmentStateStore):
    """In-memory enrollment store for TESTING and single-process use.

    ⚠️ WARNING: Secrets are kept in plain bytes in process memory and are
    lost on restart. Do NOT use in production!

    Records are copied on ``save`` and ``get`` so that mutating a loaded
    record has no effect until it is saved again, like a real database.
    """

    def __init__(self) -> None:
        self._states: dict[str, EnrollmentState] = {}

    async def get(self, user_id: str) -> EnrollmentState | None:
        state = self._states.get(user_id)
        return copy.deepcopy(state) if state is not None else None

    async def save(self, state: EnrollmentState) -> None:
        self._states[state.user_id] = copy.deepcopy(state)

    async def delete(self, user_id: str) -> bool:
        return self._states.pop(user_id, None) is not None

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._states


__all__: list[str] = ["InMemoryEnrollmentStateStore"]
