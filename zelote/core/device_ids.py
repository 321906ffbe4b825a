"""Normalisation of Chromebook asset identifiers.

Operators type ids by hand (``8``, ``chr008``, `` CHR 008``) or scan them from
QR stickers, so every lookup goes through :func:`normalize_device_id` first.
"""

from __future__ import annotations

import re

from .config import settings

__all__ = ["normalize_device_id", "format_device_id", "device_id_number"]


_DIGITS_RE = re.compile(r"^\d+$")


def format_device_id(number: int, prefix: str | None = None) -> str:
    """Render ``number`` with the configured prefix, zero-padded to 3 digits."""

    prefix = (prefix if prefix is not None else settings.DEVICE_ID_PREFIX).upper()
    return f"{prefix}{number:03d}"


def normalize_device_id(raw: str | None, prefix: str | None = None) -> str | None:
    """Return the canonical form of a device id, or ``None`` when blank.

    * whitespace is removed and letters are upper-cased;
    * a bare number gains the prefix and is padded (``"8"`` -> ``CHR008``);
    * prefixed numbers keep their digits (``chr0012`` -> ``CHR0012``).
    """

    if raw is None:
        return None
    cleaned = re.sub(r"\s+", "", raw).upper()
    if not cleaned:
        return None
    if _DIGITS_RE.match(cleaned):
        return format_device_id(int(cleaned), prefix)
    return cleaned


def device_id_number(device_id: str, prefix: str | None = None) -> int | None:
    """Extract the numeric suffix of a prefixed id, ``None`` for foreign ids."""

    prefix = (prefix if prefix is not None else settings.DEVICE_ID_PREFIX).upper()
    if not device_id.upper().startswith(prefix):
        return None
    suffix = device_id[len(prefix):]
    if not _DIGITS_RE.match(suffix):
        return None
    return int(suffix)
