"""TOTP provider configuration."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SECTION_NAME = "identity.mfa.totp"


class TotpConfig(BaseModel):
    """Settings recognized by ``TotpMfaProvider``.

    Validated on construction; invalid values raise
    ``pydantic.ValidationError``. ``lockout_duration`` accepts a
    ``timedelta``, a number of seconds or an ISO 8601 duration.

    Example:
        ```python
        config = TotpConfig(issuer="Acme", max_failed_attempts=3)

        # Or from a nested settings dictionary
        config = TotpConfig.from_section(settings)
        ```
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    issuer: str = Field(default="MyApp", min_length=1)
    secret_length: int = Field(default=20, ge=16)
    code_length: int = Field(default=6, ge=6, le=8)
    time_step_seconds: int = Field(default=30, ge=1)
    allowed_time_step_drift: int = Field(default=1, ge=0, le=10)
    max_failed_attempts: int = Field(default=5, ge=1)
    lockout_duration: timedelta = Field(default=timedelta(minutes=15))
    backup_code_count: int = Field(default=10, ge=1, le=100)
    prevent_code_reuse: bool = False
    lock_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("lockout_duration")
    @classmethod
    def _positive_duration(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("lockout_duration must be positive")
        return v

    @classmethod
    def from_section(
        cls,
        settings: Mapping[str, Any],
        section: str = SECTION_NAME,
    ) -> TotpConfig:
        """Build config from a nested settings mapping.

        Missing sections yield the defaults.

        Args:
            settings: Application settings, e.g. parsed YAML or JSON.
            section: Dotted path of the TOTP section.
        """
        node: Any = settings
        for key in section.split("."):
            if not isinstance(node, Mapping) or key not in node:
                return cls()
            node = node[key]
        return cls.model_validate(node)


__all__: list[str] = ["TotpConfig", "SECTION_NAME"]
