"""TOTP secret generation and encoding.

Secrets are handled as raw bytes internally and exposed to users as
unpadded RFC 4648 base32 (``A-Z2-7``), the form authenticator apps expect.
"""

from __future__ import annotations

import base64
import secrets
from urllib.parse import quote

DEFAULT_SECRET_LENGTH = 20  # 160 bits, the HMAC-SHA1 block-friendly size


def generate_secret(length: int = DEFAULT_SECRET_LENGTH) -> bytes:
    """Generate a cryptographically random secret.

    Args:
        length: Number of random bytes.

    Returns:
        Raw secret bytes.
    """
    if length < 1:
        raise ValueError("Secret length must be at least 1 byte")
    return secrets.token_bytes(length)


def encode_secret(secret: bytes) -> str:
    """Encode raw secret bytes as unpadded base32."""
    return base64.b32encode(secret).decode("ascii").rstrip("=")


def decode_secret(encoded: str) -> bytes:
    """Decode a base32 secret back to raw bytes.

    Accepts the manual-entry form (spaces), lowercase letters and missing
    padding.

    Raises:
        ValueError: If the input is not valid base32.
    """
    normalized = "".join(encoded.split()).upper().rstrip("=")
    missing_padding = len(normalized) % 8
    if missing_padding:
        normalized += "=" * (8 - missing_padding)
    # binascii.Error is a ValueError subclass
    return base64.b32decode(normalized, casefold=False)


def format_manual_entry_key(encoded: str) -> str:
    """Group a base32 secret in blocks of 4 for manual entry.

    Args:
        encoded: Base32 secret.

    Returns:
        Secret formatted as space separated groups of 4 characters.
    """
    return " ".join(encoded[i : i + 4] for i in range(0, len(encoded), 4))


def build_provisioning_uri(
    encoded_secret: str,
    issuer: str,
    account_name: str,
    digits: int = 6,
    period: int = 30,
) -> str:
    """Build the otpauth:// URI scanned by authenticator apps.

    Issuer and account name are percent-encoded leaving only RFC 3986
    unreserved characters literal. The parameter order is fixed.

    Example:
        ``build_provisioning_uri("JBSWY3DPEHPK3PXP", "My App", "a@b.c")`` gives
        ``otpauth://totp/My%20App:a%40b.c?secret=JBSWY3DPEHPK3PXP&issuer=My%20App``
        followed by ``&algorithm=SHA1&digits=6&period=30``.
    """
    quoted_issuer = quote(issuer, safe="")
    quoted_account = quote(account_name, safe="")
    return (
        f"otpauth://totp/{quoted_issuer}:{quoted_account}"
        f"?secret={encoded_secret}&issuer={quoted_issuer}"
        f"&algorithm=SHA1&digits={digits}&period={period}"
    )


__all__: list[str] = [
    "DEFAULT_SECRET_LENGTH",
    "generate_secret",
    "encode_secret",
    "decode_secret",
    "format_manual_entry_key",
    "build_provisioning_uri",
]
