"""
Deterministic document checks — the fraud-indicator layer.

These checks run PURE CODE over OCR-extracted fields and a registry result.
They never call the network and they never guess: a field that is absent
is skipped, not assumed.

Each check:
  - Takes the extraction (and, where needed, the registry result / a date)
  - Returns a list of Finding objects (empty = all clear)
  - Carries its score penalty on the Finding itself

run_document_checks() runs every check except the VIN binding, which the
scorer applies first because it overrides everything else.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from .models import (
    Finding,
    LookupStatus,
    OCRExtractionResult,
    RegistryLookupResult,
    RiskLevel,
    Severity,
    VehicleRecord,
)
from .normalizer import IdentifierKind, identifiers_match, normalize, normalize_vin

# ─── Constants ───────────────────────────────────────────────────────

POLICY_NUMBER_PATTERN = re.compile(r"^[A-Z0-9\-]{6,20}$")

KNOWN_FRAUD_PATTERNS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    ("insurer", re.compile(r"TEST|FAKE|SAMPLE", re.IGNORECASE), "Contains test/fake keywords"),
    ("policy_number", re.compile(r"12345|00000|XXXXX", re.IGNORECASE), "Contains suspicious number patterns"),
)

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "insurance": ("policy_number", "expiry_date", "insurer"),
}

# Tried in order; day-first formats come after month-first ones.
_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y", "%d/%m/%Y", "%m-%d-%Y", "%d-%m-%Y",
    "%m/%d/%y", "%d/%m/%y", "%B %d, %Y", "%d %B %Y", "%b %d, %Y",
)

# Bare ISO date, or ISO date followed by a time part.
_ISO_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")

PENALTY_POLICY_FORMAT = 20
PENALTY_DATE_INCONSISTENCY = 15
PENALTY_SUSPICIOUS_EXPIRY = 10
PENALTY_DATE_PARSE = 5
PENALTY_MISSING_FIELD = 10
PENALTY_FRAUD_PATTERN = 20
PENALTY_POLICY_MISMATCH = 25
PENALTY_REGISTRY_FLAGGED = 70
PENALTY_REGISTRY_EXPIRED = 50


# ─── Orchestrator ────────────────────────────────────────────────────


def run_document_checks(
    ocr: OCRExtractionResult,
    registry_result: Optional[RegistryLookupResult],
    today: date,
) -> list[Finding]:
    """Run all document checks (except VIN binding) and collect findings."""
    findings: list[Finding] = []
    if registry_result is not None:
        findings.extend(check_registry_status(registry_result))
        findings.extend(check_policy_matches_registry(ocr, registry_result))
    findings.extend(check_policy_format(ocr))
    findings.extend(check_date_consistency(ocr, today))
    findings.extend(check_required_fields(ocr))
    findings.extend(check_known_fraud_patterns(ocr))
    return findings


def total_penalty(findings: list[Finding]) -> int:
    return sum(f.penalty for f in findings)


def risk_level(deduction: int) -> RiskLevel:
    """Map total score deduction (0-100) to a risk band."""
    if deduction < 20:
        return RiskLevel.LOW
    if deduction < 50:
        return RiskLevel.MEDIUM
    if deduction < 80:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


# ─── Individual Checks ───────────────────────────────────────────────


def check_vin_binding(ocr: OCRExtractionResult, target: VehicleRecord) -> list[Finding]:
    """A document that names another vehicle's VIN is disqualifying.

    Only applies when the OCR actually produced a VIN. No VIN on the
    document means nothing to compare, not a mismatch.
    """
    extracted = ocr.vin
    if extracted is None or not normalize_vin(extracted.value):
        return []
    if identifiers_match(extracted.value, target.vin, IdentifierKind.VIN):
        return []

    document_vin = normalize_vin(extracted.value)
    return [
        Finding(
            severity=Severity.ERROR,
            code="VIN_MISMATCH",
            field="vin",
            message=(
                f"VIN Mismatch: Certificate belongs to vehicle {document_vin}, "
                f"not {target.vin}"
            ),
            penalty=100,
            details={
                "document_vin": document_vin,
                "target_vin": target.vin,
                "confidence": extracted.confidence,
            },
        )
    ]


def check_registry_status(result: RegistryLookupResult) -> list[Finding]:
    """Turn the registry verdict into a finding. NOT_FOUND costs nothing."""
    if result.status == LookupStatus.FLAGGED:
        return [
            Finding(
                severity=Severity.ERROR,
                code="REGISTRY_FLAGGED",
                field=result.matched_on or "registry",
                message=result.message,
                penalty=PENALTY_REGISTRY_FLAGGED,
                details={
                    "registry": result.registry,
                    "status_type": result.status_type,
                    "flag_reason": result.details.get("flag_reason"),
                },
            )
        ]
    if result.status == LookupStatus.EXPIRED:
        return [
            Finding(
                severity=Severity.ERROR,
                code="REGISTRY_EXPIRED",
                field="expiry_date",
                message=result.message,
                penalty=PENALTY_REGISTRY_EXPIRED,
                details={
                    "registry": result.registry,
                    "expiry_date": result.details.get("expiry_date"),
                },
            )
        ]
    if result.status == LookupStatus.NOT_FOUND:
        return [
            Finding(
                severity=Severity.INFO,
                code="REGISTRY_NOT_FOUND",
                field="registry",
                message=result.message,
                details={"registry": result.registry},
            )
        ]
    return []


def check_policy_matches_registry(
    ocr: OCRExtractionResult, result: RegistryLookupResult
) -> list[Finding]:
    """The policy number on the document must be the one the registry holds."""
    document_policy = normalize(ocr.value("policy_number"), IdentifierKind.POLICY)
    if not document_policy or result.record is None:
        return []
    registry_policy = normalize(result.record.policy_number, IdentifierKind.POLICY)
    if not registry_policy or registry_policy == document_policy:
        return []

    return [
        Finding(
            severity=Severity.ERROR,
            code="POLICY_MISMATCH",
            field="policy_number",
            message="Policy number does not match registry record",
            penalty=PENALTY_POLICY_MISMATCH,
            details={"document": document_policy, "registry": registry_policy},
        )
    ]


def check_policy_format(ocr: OCRExtractionResult) -> list[Finding]:
    """Policy / certificate numbers are 6-20 characters of A-Z, 0-9 and dashes."""
    raw = ocr.value("policy_number")
    if raw is None:
        return []
    if POLICY_NUMBER_PATTERN.match(raw.strip().upper()):
        return []

    return [
        Finding(
            severity=Severity.WARNING,
            code="POLICY_FORMAT_SUSPICIOUS",
            field="policy_number",
            message=f"Policy/Certificate number '{raw}' format is suspicious",
            penalty=PENALTY_POLICY_FORMAT,
            details={"policy_number": raw},
        )
    ]


def check_date_consistency(ocr: OCRExtractionResult, today: date) -> list[Finding]:
    """Issue must precede expiry, and expiry must not be implausibly far out."""
    findings: list[Finding] = []
    raw_issue = ocr.value("issue_date")
    raw_expiry = ocr.value("expiry_date")
    issue = parse_document_date(raw_issue)
    expiry = parse_document_date(raw_expiry)

    unparseable = [
        name
        for name, raw, parsed in (("issue_date", raw_issue, issue), ("expiry_date", raw_expiry, expiry))
        if raw is not None and parsed is None
    ]
    if unparseable:
        findings.append(
            Finding(
                severity=Severity.INFO,
                code="DATE_PARSE_ERROR",
                field=unparseable[0],
                message="Could not parse dates for validation",
                penalty=PENALTY_DATE_PARSE,
                details={name: ocr.value(name) for name in unparseable},
            )
        )

    if issue is not None and expiry is not None and issue >= expiry:
        findings.append(
            Finding(
                severity=Severity.WARNING,
                code="DATE_INCONSISTENCY",
                field="issue_date",
                message=f"Issue date ({issue}) is on or after expiry date ({expiry})",
                penalty=PENALTY_DATE_INCONSISTENCY,
                details={"issue_date": str(issue), "expiry_date": str(expiry)},
            )
        )

    if expiry is not None and expiry > _add_years(today, 2):
        findings.append(
            Finding(
                severity=Severity.WARNING,
                code="SUSPICIOUS_EXPIRY",
                field="expiry_date",
                message=f"Expiry date ({expiry}) is unusually far in the future",
                penalty=PENALTY_SUSPICIOUS_EXPIRY,
                details={"expiry_date": str(expiry), "today": str(today)},
            )
        )

    return findings


def check_required_fields(ocr: OCRExtractionResult) -> list[Finding]:
    """Flag critical fields missing for the declared document type."""
    document_type = (ocr.value("document_type") or "").lower()
    return [
        Finding(
            severity=Severity.WARNING,
            code="MISSING_FIELD",
            field=name,
            message=f"Missing critical field: {name}",
            penalty=PENALTY_MISSING_FIELD,
        )
        for name in REQUIRED_FIELDS.get(document_type, ())
        if ocr.value(name) is None
    ]


def check_known_fraud_patterns(ocr: OCRExtractionResult) -> list[Finding]:
    findings: list[Finding] = []
    for name, pattern, message in KNOWN_FRAUD_PATTERNS:
        value = ocr.value(name)
        if value and pattern.search(value):
            findings.append(
                Finding(
                    severity=Severity.WARNING,
                    code="KNOWN_FRAUD_PATTERN",
                    field=name,
                    message=message,
                    penalty=PENALTY_FRAUD_PATTERN,
                    details={name: value},
                )
            )
    return findings


# ─── Date Helpers ────────────────────────────────────────────────────


def parse_document_date(value: Optional[str]) -> date | None:
    """Parse an OCR date string. Returns None rather than guessing."""
    if value is None:
        return None
    text = value.strip()
    iso = _ISO_DATE.match(text)
    if iso:
        try:
            return date.fromisoformat(iso.group(1))
        except ValueError:
            return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:  # Feb 29 → Feb 28
        return day.replace(year=day.year + years, day=28)
