"""Backup codes for MFA recovery.

Generates and validates single-use backup codes that users can use when
they lose access to their authenticator app. Only SHA-256 hashes of the
codes are kept on the enrollment record.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import EnrollmentState

CODE_BYTES = 5  # 40 bits, 10 hex characters


class BackupCodeOutcome(Enum):
    """Result of presenting a backup code."""

    CONSUMED = "consumed"
    ALREADY_USED = "already_used"
    INVALID = "invalid"


class BackupCodeManager:
    """Backup code generation, hashing and single-use consumption.

    Codes look like ``3f9a1-0c27e``: lowercase hex in two groups of five.
    Input is normalized before hashing, so ``3F9A1 0C27E`` and
    ``3f9a10c27e`` match the same code.

    Example:
        ```python
        manager = BackupCodeManager()

        codes = manager.issue(state, count=10)
        print(f"Save these codes: {codes}")

        # Later, when the user has lost their device
        if manager.verify_and_consume(state, user_code) is BackupCodeOutcome.CONSUMED:
            await store.save(state)
        ```
    """

    def generate_codes(self, count: int) -> list[str]:
        """Generate plaintext backup codes.

        Args:
            count: Number of codes to generate.

        Returns:
            Codes formatted as ``xxxxx-xxxxx``.
        """
        if count < 1:
            raise ValueError("Backup code count must be at least 1")
        return [self._format_code(secrets.token_hex(CODE_BYTES)) for _ in range(count)]

    def _format_code(self, raw: str) -> str:
        half = len(raw) // 2
        return f"{raw[:half]}-{raw[half:]}"

    @staticmethod
    def normalize(code: str) -> str:
        """Strip hyphens and whitespace and lowercase."""
        return "".join(ch for ch in code if ch != "-" and not ch.isspace()).lower()

    @classmethod
    def hash_code(cls, code: str) -> str:
        """Hash a backup code for storage.

        Args:
            code: Backup code, normalized or not.

        Returns:
            Base64-encoded SHA-256 of the normalized code.
        """
        digest = hashlib.sha256(cls.normalize(code).encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")

    def issue(self, state: EnrollmentState, count: int) -> list[str]:
        """Replace the record's backup codes with a fresh batch.

        Previously issued codes, used or not, stop working.

        Returns:
            Plaintext codes, to be shown to the user once.
        """
        codes = self.generate_codes(count)
        state.replace_backup_codes({self.hash_code(code) for code in codes})
        return codes

    def verify_and_consume(
        self, state: EnrollmentState, code: str
    ) -> BackupCodeOutcome:
        """Check a backup code and mark it used.

        Mutates ``state`` only when the outcome is ``CONSUMED``.
        """
        code_hash = self.hash_code(code)
        if code_hash in state.used_backup_code_hashes:
            return BackupCodeOutcome.ALREADY_USED
        if code_hash not in state.backup_code_hashes:
            return BackupCodeOutcome.INVALID
        state.consume_backup_code(code_hash)
        return BackupCodeOutcome.CONSUMED


__all__: list[str] = ["BackupCodeManager", "BackupCodeOutcome", "CODE_BYTES"]
