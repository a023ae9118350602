"""
Identifier canonicalization for cross-source comparison.

Plate numbers keep a single internal space ("ABC  123" → "ABC 123") because
the space is part of how plates are issued; every other kind (engine,
chassis, policy, VIN, owner identity) is stripped of all whitespace.

Empty never matches empty: absence of data is not evidence of identity.
"""

from __future__ import annotations

import re
from enum import Enum

_WHITESPACE = re.compile(r"\s+")


class IdentifierKind(str, Enum):
    PLATE = "plate"
    ENGINE = "engine"
    CHASSIS = "chassis"
    POLICY = "policy"
    VIN = "vin"
    OWNER = "owner"


def normalize(raw: object, kind: IdentifierKind = IdentifierKind.ENGINE) -> str:
    """Uppercase, trim and collapse whitespace. None → "".

    Non-string inputs (e.g. an int year, a numeric policy id) are stringified
    first so that callers never have to pre-clean OCR or DB values.
    """
    if raw is None:
        return ""
    text = str(raw).strip().upper()
    if kind == IdentifierKind.PLATE:
        return _WHITESPACE.sub(" ", text)
    return _WHITESPACE.sub("", text)


def normalize_plate(raw: object) -> str:
    return normalize(raw, IdentifierKind.PLATE)


def normalize_vin(raw: object) -> str:
    return normalize(raw, IdentifierKind.VIN)


def identifiers_match(
    left: object, right: object, kind: IdentifierKind = IdentifierKind.ENGINE
) -> bool:
    """True only when both sides are non-empty and equal after normalization."""
    a = normalize(left, kind)
    b = normalize(right, kind)
    return bool(a) and a == b
