"""
External registry lookup — insurance and emission registries.

Strategy:
  1. Normalize every submitted identifier.
  2. Search the PROBLEM set (fraudulent / tampered / expired / cancelled /
     failed) on ANY identifier. A forged document may carry a stolen
     identifier in a single field, so one hit is enough to flag.
  3. Only if nothing is flagged, search the VALID set on the identifiers
     that bind a certificate to a vehicle (plate, and policy for insurance).
     A valid record past its expiry date is downgraded to EXPIRED.
  4. No hit at all → NOT_FOUND, approvable but with manual review requested.
     The registry may be incomplete; absence is not evidence of fraud.

Matching is an explicit priority list (VIN, plate, engine, chassis, policy).
The first identifier that hits decides the record, so ties are deterministic.
A problem hit always wins over a valid hit on another identifier.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional

from .exceptions import UnknownRegistryError
from .models import (
    LookupStatus,
    RecordStatus,
    RegistryIdentifiers,
    RegistryLookupResult,
    RegistryRecord,
)
from .normalizer import IdentifierKind, identifiers_match, normalize, normalize_plate

logger = logging.getLogger(__name__)

# ─── Matcher Priority ────────────────────────────────────────────────

MATCH_PRIORITY: tuple[tuple[str, IdentifierKind], ...] = (
    ("vin", IdentifierKind.VIN),
    ("plate_number", IdentifierKind.PLATE),
    ("engine_number", IdentifierKind.ENGINE),
    ("chassis_number", IdentifierKind.CHASSIS),
    ("policy_number", IdentifierKind.POLICY),
)

ALL_MATCH_FIELDS: tuple[str, ...] = tuple(field for field, _ in MATCH_PRIORITY)

PROBLEM_MESSAGES: dict[RecordStatus, str] = {
    RecordStatus.FRAUDULENT: "ALERT: Fraudulent {label} document detected",
    RecordStatus.TAMPERED: "ALERT: Suspected tampered {label} certificate",
    RecordStatus.EXPIRED: "EXPIRED: {label} record has expired",
    RecordStatus.CANCELLED: "CANCELLED: {label} record has been cancelled",
    RecordStatus.FAILED: "FAILED: Vehicle failed {label} test",
}


@dataclass(frozen=True)
class RegistryProfile:
    """Per-registry matching and wording rules."""

    label: str
    valid_match_fields: tuple[str, ...]
    expired_status_type: str
    valid_status_type: str


PROFILES: dict[str, RegistryProfile] = {
    "insurance": RegistryProfile(
        label="insurance",
        valid_match_fields=("plate_number", "policy_number"),
        expired_status_type="POLICY_EXPIRED",
        valid_status_type="ACTIVE",
    ),
    "emission": RegistryProfile(
        label="emission",
        valid_match_fields=("plate_number",),
        expired_status_type="CERTIFICATE_EXPIRED",
        valid_status_type="PASSED",
    ),
}


# ─── Registry ────────────────────────────────────────────────────────


class ExternalRegistry:
    """One third-party registry: a problem set and a valid set of records."""

    def __init__(self, name: str, records: Iterable[RegistryRecord] = ()):
        if name not in PROFILES:
            raise UnknownRegistryError(f"No profile for registry '{name}'", {"registry": name})
        self.name = name
        self.profile = PROFILES[name]
        self.problem_records: list[RegistryRecord] = []
        self.valid_records: list[RegistryRecord] = []
        for record in records:
            self.add_record(record)

    # ── Administration ─────────────────────────────────────────────

    def add_record(self, record: RegistryRecord) -> RegistryRecord:
        if record.is_problem:
            self.problem_records.append(record)
        else:
            self.valid_records.append(record)
        return record

    def remove_record(self, plate_number: str) -> bool:
        """Remove every record (either set) carrying this plate."""
        wanted = normalize_plate(plate_number)
        if not wanted:
            return False
        before = len(self.problem_records) + len(self.valid_records)
        self.problem_records = [
            r for r in self.problem_records if normalize_plate(r.plate_number) != wanted
        ]
        self.valid_records = [
            r for r in self.valid_records if normalize_plate(r.plate_number) != wanted
        ]
        return len(self.problem_records) + len(self.valid_records) < before

    # ── Lookup ─────────────────────────────────────────────────────

    def lookup(
        self, identifiers: RegistryIdentifiers, today: Optional[date] = None
    ) -> RegistryLookupResult:
        """Classify the identifiers as FLAGGED, EXPIRED, VALID or NOT_FOUND."""
        today = today or date.today()
        label = self.profile.label

        logger.debug(
            "[%s] lookup: %s",
            self.name,
            {f: normalize(getattr(identifiers, f), k) for f, k in MATCH_PRIORITY},
        )

        # ── Step 1: Problem records, any identifier ─────────────────
        problem = find_match(self.problem_records, identifiers, ALL_MATCH_FIELDS)
        if problem is not None:
            record, matched_on = problem
            message = PROBLEM_MESSAGES.get(
                record.status, "{label} record has issues"
            ).format(label=label)
            logger.info("[%s] FLAGGED (%s) on %s", self.name, record.status.value, matched_on)
            return RegistryLookupResult(
                registry=self.name,
                found=True,
                status=LookupStatus.FLAGGED,
                status_type=record.status.value,
                message=message,
                can_approve=False,
                matched_on=matched_on,
                record=record,
                details=_details(record, include_flag=True),
            )

        # ── Step 2: Valid records, binding identifiers only ─────────
        valid = find_match(self.valid_records, identifiers, self.profile.valid_match_fields)
        if valid is not None:
            record, matched_on = valid
            if record.expiry_date is not None and record.expiry_date < today:
                return RegistryLookupResult(
                    registry=self.name,
                    found=True,
                    status=LookupStatus.EXPIRED,
                    status_type=self.profile.expired_status_type,
                    message=f"{label.capitalize()} record has EXPIRED - renewal required",
                    can_approve=False,
                    matched_on=matched_on,
                    record=record,
                    details=_details(record),
                )
            return RegistryLookupResult(
                registry=self.name,
                found=True,
                status=LookupStatus.VALID,
                status_type=self.profile.valid_status_type,
                message=f"VALID: {label.capitalize()} record is active and verified",
                can_approve=True,
                matched_on=matched_on,
                record=record,
                details=_details(record),
            )

        # ── Step 3: Nothing matched ─────────────────────────────────
        return RegistryLookupResult(
            registry=self.name,
            found=False,
            status=LookupStatus.NOT_FOUND,
            status_type="NO_RECORD",
            message=(
                f"No {label} record found - manual verification of "
                f"submitted certificate required"
            ),
            can_approve=True,
            details={
                "note": (
                    f"Vehicle has no prior records in the {label} registry. "
                    f"Verify the submitted certificate manually."
                )
            },
        )


# ─── Matching ────────────────────────────────────────────────────────


def find_match(
    records: Iterable[RegistryRecord],
    identifiers: RegistryIdentifiers,
    fields: tuple[str, ...],
) -> tuple[RegistryRecord, str] | None:
    """Return the first (record, field) hit, walking MATCH_PRIORITY in order.

    Identifiers that are blank after normalization are skipped; they can
    never match (an empty plate on both sides is not a match).
    """
    records = list(records)
    for field, kind in MATCH_PRIORITY:
        if field not in fields:
            continue
        wanted = getattr(identifiers, field)
        if not normalize(wanted, kind):
            continue
        for record in records:
            if identifiers_match(getattr(record, field), wanted, kind):
                return record, field
    return None


def _details(record: RegistryRecord, include_flag: bool = False) -> dict[str, Any]:
    details: dict[str, Any] = {
        "policy_number": record.policy_number or None,
        "issue_date": str(record.issue_date) if record.issue_date else None,
        "expiry_date": str(record.expiry_date) if record.expiry_date else None,
        "issuer": record.issuer,
        "policy_type": record.policy_type,
    }
    details.update(record.metadata)
    if include_flag:
        details["flag_reason"] = record.flag_reason
        details["reported_by"] = record.reported_by
    return details


# ─── Loading ─────────────────────────────────────────────────────────


def load_registries(path: str | Path | None = None) -> dict[str, ExternalRegistry]:
    """Load registry seed data from JSON.

    Args:
        path: Path to a registries JSON file. Defaults to the packaged seed.
    """
    resolved = Path(__file__).parent / "data" / "registries.json" if path is None else Path(path)

    with resolved.open(encoding="utf-8") as f:
        raw: dict[str, list[dict[str, Any]]] = json.load(f)

    registries = {
        name: ExternalRegistry(name, (RegistryRecord.model_validate(r) for r in records))
        for name, records in raw.items()
    }
    logger.info(
        "Loaded registries: %s",
        ", ".join(
            f"{r.name} ({len(r.problem_records)} flagged, {len(r.valid_records)} valid)"
            for r in registries.values()
        ),
    )
    return registries
