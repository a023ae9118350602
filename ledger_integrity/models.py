"""
Pydantic models for vehicle records, integrity results and document verdicts.

Every field is explicitly typed. Untrusted data (OCR output, ledger JSON,
registry seed files) is coerced at the boundary — if it doesn't fit the
model, it fails loudly here, not silently downstream.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, model_validator


# ─── Severity Levels ────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a document finding."""

    ERROR = "ERROR"  # Disqualifying: document MUST be rejected
    WARNING = "WARNING"  # Suspicious: needs human review
    INFO = "INFO"  # Informational observation


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ─── Finding ────────────────────────────────────────────────────────


class Finding(BaseModel):
    """A single document finding with severity, machine-readable code, and score penalty."""

    severity: Severity
    code: str  # Machine-readable, e.g. "VIN_MISMATCH"
    field: str  # Which document field this relates to
    message: str  # Human-readable explanation
    penalty: int = Field(default=0, ge=0, le=100)
    details: dict = Field(default_factory=dict)


# ─── Vehicle Records ────────────────────────────────────────────────


class VehicleSnapshot(BaseModel):
    """The security-relevant fields of a vehicle, as one source sees them."""

    vin: str
    plate_number: Optional[str] = None
    engine_number: Optional[str] = None
    chassis_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    owner_email: Optional[str] = None


class VehicleRecord(VehicleSnapshot):
    """A vehicle row from the relational store. Read-only to this engine."""

    id: str
    owner_id: Optional[str] = None
    status: str = "REGISTERED"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def snapshot(self) -> VehicleSnapshot:
        return VehicleSnapshot.model_validate(
            self.model_dump(include=set(VehicleSnapshot.model_fields))
        )


class LedgerRecord(VehicleSnapshot):
    """The ledger's world-state copy of a vehicle, addressed by VIN."""

    transaction_id: Optional[str] = None

    @classmethod
    def from_world_state(cls, doc: Mapping[str, Any]) -> LedgerRecord:
        """Map the chain's camelCase document (owner nested) onto the record."""
        owner = doc.get("owner") or {}
        return cls(
            vin=doc.get("vin") or "",
            plate_number=doc.get("plateNumber"),
            engine_number=doc.get("engineNumber"),
            chassis_number=doc.get("chassisNumber"),
            make=doc.get("make"),
            model=doc.get("model"),
            year=doc.get("year") or None,
            owner_email=owner.get("email") if isinstance(owner, Mapping) else None,
            transaction_id=doc.get("lastTxId") or doc.get("transactionId"),
        )

    def snapshot(self) -> VehicleSnapshot:
        return VehicleSnapshot.model_validate(
            self.model_dump(include=set(VehicleSnapshot.model_fields))
        )


# ─── Integrity Results ──────────────────────────────────────────────


class IntegrityStatus(str, Enum):
    VERIFIED = "VERIFIED"
    TAMPERED = "TAMPERED"
    NOT_REGISTERED = "NOT_REGISTERED"


class ComparisonEntry(BaseModel):
    """One compared field: both normalized values and whether they agree."""

    field: str
    label: str
    db_value: str
    ledger_value: str
    matches: bool
    critical: bool = False


class IntegrityCheckResult(BaseModel):
    """Outcome of cross-checking one vehicle between the store and the ledger.

    `comparisons` is only present for TAMPERED results, and then it must
    hold at least one mismatching entry — no TAMPERED verdict without evidence.
    """

    vin: str
    status: IntegrityStatus
    message: str
    vehicle_id: Optional[str] = None
    comparisons: Optional[list[ComparisonEntry]] = None
    db_vehicle: Optional[VehicleSnapshot] = None
    ledger_vehicle: Optional[VehicleSnapshot] = None

    @model_validator(mode="after")
    def _evidence_required(self) -> IntegrityCheckResult:
        if self.status == IntegrityStatus.TAMPERED and not self.comparisons:
            raise ValueError("TAMPERED result requires comparison evidence")
        if self.comparisons is not None:
            if self.status != IntegrityStatus.TAMPERED:
                raise ValueError("comparisons are only carried by TAMPERED results")
            if all(entry.matches for entry in self.comparisons):
                raise ValueError("comparisons must contain at least one mismatch")
        return self


class BatchFailure(BaseModel):
    vin: str
    code: str
    message: str


class BatchSummary(BaseModel):
    verified: int = 0
    tampered: int = 0
    not_registered: int = 0
    error: int = 0


class BatchCheckResult(BaseModel):
    checked: int
    results: list[IntegrityCheckResult] = Field(default_factory=list)
    failures: list[BatchFailure] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


# ─── Sync Run ───────────────────────────────────────────────────────


class Discrepancy(BaseModel):
    """A vehicle the sync flagged, with only the mismatching comparisons."""

    vin: str
    plate_number: Optional[str] = None
    status: str  # "TAMPERED" or "NOT_ON_BLOCKCHAIN"
    message: str
    comparisons: list[ComparisonEntry] = Field(default_factory=list)


class SyncRun(BaseModel):
    """Aggregate of one full-sync invocation. Never persisted."""

    success: bool
    error: Optional[str] = None
    synced_at: Optional[datetime] = None
    duration_ms: int = 0
    total_checked: int = 0
    matched: int = 0
    mismatched: int = 0
    not_on_blockchain: int = 0
    errors: int = 0
    has_discrepancies: bool = False
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    alert_sent: bool = False
    last_sync_result: Optional[SyncRun] = None  # Only on rejected concurrent calls


class SyncStatus(BaseModel):
    is_syncing: bool
    last_sync_result: Optional[SyncRun] = None
    alert_email: str


class AlertReport(BaseModel):
    """What the notifier delivers when a sync finds discrepancies."""

    recipient: str
    subject: str
    text: str
    html: str
    flagged_vins: list[str] = Field(default_factory=list)


# ─── External Registries ────────────────────────────────────────────


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    VALID = "VALID"
    PASSED = "PASSED"
    FRAUDULENT = "FRAUDULENT"
    TAMPERED = "TAMPERED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


PROBLEM_STATUSES: frozenset[RecordStatus] = frozenset({
    RecordStatus.FRAUDULENT,
    RecordStatus.TAMPERED,
    RecordStatus.EXPIRED,
    RecordStatus.CANCELLED,
    RecordStatus.FAILED,
})


class RegistryRecord(BaseModel):
    """A record held by a third-party registry (insurance, emission)."""

    vin: str = ""
    plate_number: str = ""
    engine_number: str = ""
    chassis_number: str = ""
    policy_number: str = ""
    status: RecordStatus
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuer: Optional[str] = None  # Insurance company / test center
    policy_type: Optional[str] = None
    flag_reason: Optional[str] = None
    reported_by: Optional[str] = None
    metadata: dict = Field(default_factory=dict)

    @property
    def is_problem(self) -> bool:
        return self.status in PROBLEM_STATUSES


class RegistryIdentifiers(BaseModel):
    """Identifiers submitted for a registry lookup. Any may be absent."""

    vin: Optional[str] = None
    plate_number: Optional[str] = None
    engine_number: Optional[str] = None
    chassis_number: Optional[str] = None
    policy_number: Optional[str] = None


class LookupStatus(str, Enum):
    FLAGGED = "FLAGGED"
    EXPIRED = "EXPIRED"
    VALID = "VALID"
    NOT_FOUND = "NOT_FOUND"


class RegistryLookupResult(BaseModel):
    registry: str
    found: bool
    status: LookupStatus
    status_type: str  # Substatus, e.g. "FRAUDULENT", "POLICY_EXPIRED", "NO_RECORD"
    message: str
    can_approve: bool
    matched_on: Optional[str] = None  # Identifier field that produced the hit
    record: Optional[RegistryRecord] = None
    details: dict = Field(default_factory=dict)


# ─── OCR Extraction ─────────────────────────────────────────────────


class ExtractedField(BaseModel):
    """One OCR-extracted value with the extractor's confidence, if it reported one."""

    value: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


# Logical field → keys the OCR collaborator has been seen to use, in preference order.
OCR_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "vin": ("vin", "vinNumber", "VIN"),
    "plate_number": ("plateNumber", "plate_number", "plate"),
    "engine_number": ("engineNumber", "engine_number", "engineNo"),
    "chassis_number": ("chassisNumber", "chassis_number", "chassisNo"),
    "policy_number": (
        "insurancePolicyNumber", "policyNumber", "certificateNumber", "policy_number",
    ),
    "insurer": ("insuranceCompany", "insurer", "testCenter"),
    "issue_date": ("issueDate", "insuranceIssueDate", "testDate", "issue_date"),
    "expiry_date": ("insuranceExpiry", "expiryDate", "expiry_date"),
    "document_type": ("documentType", "document_type"),
}


class OCRExtractionResult(BaseModel):
    """What the OCR collaborator extracted from a document.

    Fields are Optional because extraction may fail for individual fields.
    Presence is explicit: a field is either an ExtractedField or None.
    """

    vin: Optional[ExtractedField] = None
    plate_number: Optional[ExtractedField] = None
    engine_number: Optional[ExtractedField] = None
    chassis_number: Optional[ExtractedField] = None
    policy_number: Optional[ExtractedField] = None
    insurer: Optional[ExtractedField] = None
    issue_date: Optional[ExtractedField] = None
    expiry_date: Optional[ExtractedField] = None
    document_type: Optional[ExtractedField] = None

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any],
        confidence: Mapping[str, float] | None = None,
    ) -> OCRExtractionResult:
        """Build from the OCR collaborator's loose dict.

        The first non-blank key in OCR_FIELD_KEYS wins. `confidence` may be
        keyed by either the logical field name or the raw key that matched.
        """
        confidence = confidence or {}
        fields: dict[str, ExtractedField] = {}
        for name, keys in OCR_FIELD_KEYS.items():
            for key in keys:
                value = raw.get(key)
                if value is None or not str(value).strip():
                    continue
                score = confidence.get(name, confidence.get(key))
                fields[name] = ExtractedField(value=str(value).strip(), confidence=score)
                break
        return cls(**fields)

    def value(self, name: str) -> str | None:
        extracted = getattr(self, name)
        return extracted.value if extracted is not None else None


# ─── Authenticity Verdict ───────────────────────────────────────────


class AuthenticityVerdict(BaseModel):
    """The final output of the document authenticity scorer."""

    authentic: bool
    authenticity_score: int = Field(ge=0, le=100)
    reason: str
    risk_level: RiskLevel = RiskLevel.LOW
    findings: list[Finding] = Field(default_factory=list)
    matched_registry_record: Optional[RegistryRecord] = None
    registry_result: Optional[RegistryLookupResult] = None

    @model_validator(mode="after")
    def _mismatch_is_absolute(self) -> AuthenticityVerdict:
        if any(f.code == "VIN_MISMATCH" for f in self.findings):
            if self.authentic or self.authenticity_score != 0:
                raise ValueError("a VIN mismatch verdict must be inauthentic with score 0")
        return self
