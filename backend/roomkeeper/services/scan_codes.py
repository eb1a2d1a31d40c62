# Overview: Scan code parsing and generation for seat/locker labels; pure functions, no I/O.

"""
Scan code wire formats

- Legacy:     SEAT:A12        LOCKER:32 / LOCKER:032
- Extensible: APP1|SEAT|A12|v1    APP1|LOCKER|032|v1[|extra...]

Parsing always accepts both formats, case-insensitively, with surrounding
whitespace tolerated. Generation emits the format selected per deployment
(the qrFormat setting). Locker ids normalize to 3 zero-padded digits, seat
ids to uppercase without padding, so resolve(generate(id)) == id.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from ..models.resources import KIND_LOCKER, KIND_SEAT
from ..validation import ValidationError


KIND_UNKNOWN = "UNKNOWN"

FORMAT_LEGACY = "LEGACY"
FORMAT_APP1 = "APP1"
CODE_FORMATS = (FORMAT_LEGACY, FORMAT_APP1)

APP_TAG = "APP1"
LOCKER_ID_WIDTH = 3

SEAT_ID_RE = re.compile(r"[A-Z][0-9]{1,2}", re.IGNORECASE | re.ASCII)
LOCKER_ID_RE = re.compile(r"[0-9]{1,3}")

SEAT_PATTERN = re.compile(r"SEAT:([A-Z][0-9]{1,2})", re.IGNORECASE | re.ASCII)
LOCKER_PATTERN = re.compile(r"LOCKER:([0-9]{1,3})", re.IGNORECASE | re.ASCII)
APP1_PATTERN = re.compile(r"APP1\|([A-Z]+)\|([A-Z0-9]+)\|v[0-9]+(?:\|.*)?", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class ScanResult:
    kind: str
    resource_id: str | None
    raw: str = ""

    @property
    def recognized(self) -> bool:
        return self.kind != KIND_UNKNOWN

    def to_dict(self) -> dict:
        return {"type": self.kind, "resource_id": self.resource_id, "raw": self.raw}


def _unknown(raw: Any) -> ScanResult:
    return ScanResult(KIND_UNKNOWN, None, raw if isinstance(raw, str) else "")


def resolve(raw: Any) -> ScanResult:
    """
    Map a raw scanned string to (kind, normalized id).

    Never raises: anything unrecognized yields kind UNKNOWN with no id.
    """
    if not isinstance(raw, str):
        return _unknown(raw)
    trimmed = raw.strip()
    if not trimmed:
        return _unknown(raw)

    app_match = APP1_PATTERN.fullmatch(trimmed)
    if app_match:
        kind = app_match.group(1).upper()
        ident = app_match.group(2)
        if kind == KIND_SEAT and SEAT_ID_RE.fullmatch(ident):
            return ScanResult(KIND_SEAT, ident.upper(), raw)
        if kind == KIND_LOCKER and LOCKER_ID_RE.fullmatch(ident):
            return ScanResult(KIND_LOCKER, ident.zfill(LOCKER_ID_WIDTH), raw)
        return _unknown(raw)

    seat_match = SEAT_PATTERN.fullmatch(trimmed)
    if seat_match:
        return ScanResult(KIND_SEAT, seat_match.group(1).upper(), raw)

    locker_match = LOCKER_PATTERN.fullmatch(trimmed)
    if locker_match:
        return ScanResult(KIND_LOCKER, locker_match.group(1).zfill(LOCKER_ID_WIDTH), raw)

    return _unknown(raw)


def normalize_seat_id(seat_id: Any) -> str:
    if not isinstance(seat_id, str) or not SEAT_ID_RE.fullmatch(seat_id.strip()):
        raise ValidationError("Invalid seat ID format (e.g., A1, B12)")
    return seat_id.strip().upper()


def normalize_locker_id(locker_id: Any) -> str:
    if isinstance(locker_id, int) and not isinstance(locker_id, bool):
        locker_id = str(locker_id)
    if not isinstance(locker_id, str) or not LOCKER_ID_RE.fullmatch(locker_id.strip()):
        raise ValidationError("Invalid locker ID format (e.g., 001, 032)")
    return locker_id.strip().zfill(LOCKER_ID_WIDTH)


def normalize_resource_id(kind: str, resource_id: Any) -> str:
    if kind == KIND_SEAT:
        return normalize_seat_id(resource_id)
    if kind == KIND_LOCKER:
        return normalize_locker_id(resource_id)
    raise ValidationError(f"Unknown resource kind: {kind}")


def _require_format(fmt: str) -> str:
    fmt = (fmt or FORMAT_LEGACY).upper()
    if fmt not in CODE_FORMATS:
        raise ValidationError(f"Invalid code format: {fmt}")
    return fmt


def generate(kind: str, resource_id: Any, fmt: str = FORMAT_LEGACY) -> str:
    """Render a resource identifier into the chosen wire format for printed labels."""
    fmt = _require_format(fmt)
    ident = normalize_resource_id(kind, resource_id)
    if fmt == FORMAT_APP1:
        return f"{APP_TAG}|{kind}|{ident}|v1"
    return f"{kind}:{ident}"


def generate_seat_code(seat_id: str, fmt: str = FORMAT_LEGACY) -> str:
    return generate(KIND_SEAT, seat_id, fmt)


def generate_locker_code(locker_id: str | int, fmt: str = FORMAT_LEGACY) -> str:
    return generate(KIND_LOCKER, locker_id, fmt)
