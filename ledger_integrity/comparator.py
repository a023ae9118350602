"""
Field-by-field comparison of a store record against its ledger copy.

Identifier fields are compared through the normalizer (case-insensitive,
whitespace-insensitive, empty never matches). Descriptive fields are
compared exactly after trimming — "Civic" and "CIVIC" disagree.

One entry is produced per compared field regardless of outcome, so an
auditor sees the full picture, not just the failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ComparisonEntry, VehicleSnapshot
from .normalizer import IdentifierKind, identifiers_match, normalize


@dataclass(frozen=True)
class FieldSpec:
    """How one field is compared between the store and the ledger."""

    name: str  # Attribute on VehicleSnapshot
    label: str
    kind: Optional[IdentifierKind]  # None = descriptive (exact) comparison
    critical: bool


# ─── Compared Field Set ──────────────────────────────────────────────

COMPARED_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("vin", "VIN", IdentifierKind.VIN, critical=True),
    FieldSpec("engine_number", "Engine Number", IdentifierKind.ENGINE, critical=True),
    FieldSpec("chassis_number", "Chassis Number", IdentifierKind.CHASSIS, critical=True),
    FieldSpec("plate_number", "Plate Number", IdentifierKind.PLATE, critical=True),
    FieldSpec("owner_email", "Owner Identity", IdentifierKind.OWNER, critical=True),
    FieldSpec("make", "Make", None, critical=False),
    FieldSpec("model", "Model", None, critical=False),
    FieldSpec("year", "Year", None, critical=False),
)


def compare(
    db_record: VehicleSnapshot,
    ledger_record: VehicleSnapshot,
    fields: tuple[FieldSpec, ...] = COMPARED_FIELDS,
) -> list[ComparisonEntry]:
    """Compare every configured field and return the full evidence list."""
    entries: list[ComparisonEntry] = []

    for field_spec in fields:
        db_raw = getattr(db_record, field_spec.name)
        ledger_raw = getattr(ledger_record, field_spec.name)

        if field_spec.kind is not None:
            db_value = normalize(db_raw, field_spec.kind)
            ledger_value = normalize(ledger_raw, field_spec.kind)
            matches = identifiers_match(db_raw, ledger_raw, field_spec.kind)
        else:
            db_value = _descriptive(db_raw)
            ledger_value = _descriptive(ledger_raw)
            matches = db_value == ledger_value

        entries.append(
            ComparisonEntry(
                field=field_spec.name,
                label=field_spec.label,
                db_value=db_value,
                ledger_value=ledger_value,
                matches=matches,
                critical=field_spec.critical,
            )
        )

    return entries


def _descriptive(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()
