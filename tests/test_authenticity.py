"""
Document authenticity tests — VIN binding, registry verdicts, fraud
checks and the scoring rules.

The scorer's clock is pinned so the seed registry's expiry dates and the
"too far in the future" rule give the same answers on any day.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest
from pydantic import ValidationError

from ledger_integrity.authenticity import DocumentAuthenticityScorer, identifiers_for
from ledger_integrity.checks import (
    check_date_consistency,
    check_known_fraud_patterns,
    check_policy_format,
    check_required_fields,
    check_vin_binding,
    parse_document_date,
    risk_level,
)
from ledger_integrity.exceptions import UnknownRegistryError
from ledger_integrity.models import (
    AuthenticityVerdict,
    Finding,
    LookupStatus,
    OCRExtractionResult,
    RiskLevel,
    Severity,
    VehicleRecord,
)
from ledger_integrity.registry import load_registries
from ledger_integrity.sample_data import SAMPLE_VEHICLES

TODAY = date(2026, 10, 18)

VEHICLES: dict[str, VehicleRecord] = {v.plate_number: v for v in SAMPLE_VEHICLES}


@pytest.fixture()
def scorer() -> DocumentAuthenticityScorer:
    return DocumentAuthenticityScorer(load_registries(), clock=lambda: TODAY)


def _ocr(**raw: Any) -> OCRExtractionResult:
    return OCRExtractionResult.from_mapping(raw)


def _valid_insurance(**overrides: Any) -> OCRExtractionResult:
    """The genuine policy on file for NCR 1234."""
    raw: dict[str, Any] = {
        "documentType": "insurance",
        "vin": "1HGCM82633A004352",
        "insurancePolicyNumber": "POL-2026-VALID001",
        "insuranceCompany": "PhilAm Insurance",
        "issueDate": "2026-10-01",
        "insuranceExpiry": "2027-10-01",
    }
    raw.update(overrides)
    return OCRExtractionResult.from_mapping(raw)


def _codes(findings: list[Finding]) -> list[str]:
    return [f.code for f in findings]


# ═══════════════════════════════════════════════════════════════════════
# OCR EXTRACTION MAPPING
# ═══════════════════════════════════════════════════════════════════════


class TestOCRMapping:
    def test_first_non_blank_key_wins(self) -> None:
        ocr = _ocr(insurancePolicyNumber="  ", policyNumber="POL-1", certificateNumber="CERT-1")
        assert ocr.value("policy_number") == "POL-1"

    def test_certificate_number_fallback(self) -> None:
        assert _ocr(certificateNumber="EMI-2026-1").value("policy_number") == "EMI-2026-1"

    def test_absent_field_is_none(self) -> None:
        ocr = _ocr(vin="X")
        assert ocr.plate_number is None
        assert ocr.value("plate_number") is None

    def test_confidence_by_field_or_raw_key(self) -> None:
        ocr = OCRExtractionResult.from_mapping(
            {"vin": "ABC", "plateNumber": "NCR 1234"},
            {"vin": 0.91, "plateNumber": 0.55},
        )
        assert ocr.vin.confidence == 0.91
        assert ocr.plate_number.confidence == 0.55

    def test_values_are_stringified_and_trimmed(self) -> None:
        assert _ocr(vin=" 123 ").value("vin") == "123"


# ═══════════════════════════════════════════════════════════════════════
# VIN BINDING
# ═══════════════════════════════════════════════════════════════════════


class TestVinBinding:
    def test_mismatch_dominates_a_valid_registry_hit(self, scorer) -> None:
        target = VEHICLES["NCR 1234"]
        verdict = scorer.score_document(_valid_insurance(vin="3VWFE21C04M000001"), target)
        assert verdict.authentic is False
        assert verdict.authenticity_score == 0
        assert verdict.risk_level == RiskLevel.CRITICAL
        assert _codes(verdict.findings) == ["VIN_MISMATCH"]
        assert verdict.reason == (
            "VIN Mismatch: Certificate belongs to vehicle 3VWFE21C04M000001, "
            "not 1HGCM82633A004352"
        )
        assert verdict.registry_result is None

    def test_vin_compared_after_normalization(self) -> None:
        target = VEHICLES["NCR 1234"]
        assert check_vin_binding(_ocr(vin=" 1hgcm82633a 004352 "), target) == []

    def test_missing_vin_is_not_a_mismatch(self) -> None:
        assert check_vin_binding(_ocr(plateNumber="NCR 1234"), VEHICLES["NCR 1234"]) == []

    def test_confidence_reported_on_finding(self) -> None:
        ocr = OCRExtractionResult.from_mapping({"vin": "WRONGVIN"}, {"vin": 0.42})
        finding = check_vin_binding(ocr, VEHICLES["NCR 1234"])[0]
        assert finding.penalty == 100
        assert finding.details["confidence"] == 0.42

    def test_mismatch_verdict_must_be_zero(self) -> None:
        finding = Finding(
            severity=Severity.ERROR, code="VIN_MISMATCH", field="vin", message="m", penalty=100
        )
        with pytest.raises(ValidationError):
            AuthenticityVerdict(
                authentic=False, authenticity_score=40, reason="m", findings=[finding]
            )


# ═══════════════════════════════════════════════════════════════════════
# REGISTRY OUTCOMES
# ═══════════════════════════════════════════════════════════════════════


class TestRegistryOutcomes:
    def test_genuine_document(self, scorer) -> None:
        verdict = scorer.score_document(_valid_insurance(), VEHICLES["NCR 1234"])
        assert verdict.authentic is True
        assert verdict.authenticity_score == 100
        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.registry_result.status == LookupStatus.VALID
        assert verdict.matched_registry_record.policy_number == "POL-2026-VALID001"
        assert verdict.reason == "Document consistent with target vehicle and insurance registry"

    def test_not_found_is_not_penalized(self, scorer) -> None:
        ocr = _ocr(
            documentType="emission",
            vin="5YJ3E1EA7KF000777",
            certificateNumber="EMI-2026-0777",
            testCenter="LTO Main Emission Center",
        )
        verdict = scorer.score_document(ocr, VEHICLES["NEW 777"])
        assert verdict.authentic is True
        assert verdict.authenticity_score == 100
        assert verdict.registry_result.status == LookupStatus.NOT_FOUND
        assert "manual verification" in verdict.reason
        assert "REGISTRY_NOT_FOUND" in _codes(verdict.findings)

    def test_flagged_registry_record(self, scorer) -> None:
        ocr = _ocr(
            documentType="insurance",
            vin="3VWFE21C04M000001",
            insurancePolicyNumber="POL-2024-FAKE001",
            insuranceCompany="Unknown Insurance Co.",
            issueDate="2024-01-15",
            insuranceExpiry="2025-01-15",
        )
        verdict = scorer.score_document(ocr, VEHICLES["ABC 123"])
        assert verdict.authentic is False
        assert verdict.authenticity_score == 30
        assert verdict.risk_level == RiskLevel.HIGH
        assert verdict.reason == "ALERT: Fraudulent insurance document detected"
        assert verdict.registry_result.matched_on == "plate_number"

    def test_expired_registry_record(self, scorer) -> None:
        ocr = _ocr(
            documentType="insurance",
            vin="JTDKB20U093123456",
            insurancePolicyNumber="POL-2024-VALID002",
            insuranceCompany="Malayan Insurance",
            issueDate="2024-11-15",
            insuranceExpiry="2025-11-15",
        )
        verdict = scorer.score_document(ocr, VEHICLES["CLEAN 001"])
        assert verdict.authentic is False
        assert verdict.authenticity_score == 50
        assert verdict.registry_result.status == LookupStatus.EXPIRED
        assert verdict.reason == "Insurance record has EXPIRED - renewal required"

    def test_policy_mismatch_deducts(self, scorer) -> None:
        verdict = scorer.score_document(
            _valid_insurance(insurancePolicyNumber="POL-2026-OTHER99"), VEHICLES["NCR 1234"]
        )
        assert "POLICY_MISMATCH" in _codes(verdict.findings)
        assert verdict.authenticity_score == 75
        assert verdict.authentic is True

    def test_accumulated_indicators_fail_threshold(self, scorer) -> None:
        ocr = _valid_insurance(
            insurancePolicyNumber="POL-2026-OTHER99", insuranceCompany="TEST Insurance"
        )
        verdict = scorer.score_document(ocr, VEHICLES["NCR 1234"])
        assert verdict.authenticity_score == 55
        assert verdict.authentic is False
        assert verdict.reason == "Fraud indicators detected: KNOWN_FRAUD_PATTERN, POLICY_MISMATCH"

    def test_custom_threshold(self) -> None:
        strict = DocumentAuthenticityScorer(load_registries(), pass_threshold=80, clock=lambda: TODAY)
        verdict = strict.score_document(
            _valid_insurance(insurancePolicyNumber="POL-2026-OTHER99"), VEHICLES["NCR 1234"]
        )
        assert verdict.authenticity_score == 75
        assert verdict.authentic is False

    def test_no_document_type_consults_every_registry(self, scorer) -> None:
        verdict = scorer.score_document(_ocr(vin="3VWFE21C04M000001"), VEHICLES["ABC 123"])
        assert verdict.registry_result.status == LookupStatus.FLAGGED

    def test_explicit_registry_overrides_document_type(self, scorer) -> None:
        verdict = scorer.score_document(_valid_insurance(), VEHICLES["NCR 1234"], "emission")
        assert verdict.registry_result.registry == "emission"

    def test_unknown_registry(self, scorer) -> None:
        with pytest.raises(UnknownRegistryError):
            scorer.score_document(_valid_insurance(), VEHICLES["NCR 1234"], "registration")

    def test_identifiers_fall_back_to_target(self) -> None:
        ids = identifiers_for(_ocr(insurancePolicyNumber="POL-1"), VEHICLES["NCR 1234"])
        assert ids.vin == "1HGCM82633A004352"
        assert ids.plate_number == "NCR 1234"
        assert ids.policy_number == "POL-1"


# ═══════════════════════════════════════════════════════════════════════
# DOCUMENT CHECKS
# ═══════════════════════════════════════════════════════════════════════


class TestDocumentChecks:
    def test_policy_format(self) -> None:
        assert check_policy_format(_ocr(policyNumber="POL-2026-VALID001")) == []
        findings = check_policy_format(_ocr(policyNumber="P#1"))
        assert _codes(findings) == ["POLICY_FORMAT_SUSPICIOUS"]
        assert findings[0].penalty == 20

    def test_issue_after_expiry(self) -> None:
        findings = check_date_consistency(
            _ocr(issueDate="2026-05-01", insuranceExpiry="2026-01-01"), TODAY
        )
        assert _codes(findings) == ["DATE_INCONSISTENCY"]
        assert findings[0].penalty == 15

    def test_expiry_too_far_out(self) -> None:
        findings = check_date_consistency(_ocr(insuranceExpiry="2030-01-01"), TODAY)
        assert _codes(findings) == ["SUSPICIOUS_EXPIRY"]
        assert findings[0].penalty == 10

    def test_expiry_exactly_two_years_out_is_fine(self) -> None:
        assert check_date_consistency(_ocr(insuranceExpiry="2028-10-18"), TODAY) == []

    def test_unparseable_date(self) -> None:
        findings = check_date_consistency(_ocr(issueDate="sometime in spring"), TODAY)
        assert _codes(findings) == ["DATE_PARSE_ERROR"]
        assert findings[0].severity == Severity.INFO

    def test_required_insurance_fields(self) -> None:
        findings = check_required_fields(_ocr(documentType="insurance"))
        assert sorted(f.field for f in findings) == ["expiry_date", "insurer", "policy_number"]
        assert check_required_fields(_ocr(documentType="emission")) == []

    def test_fraud_patterns(self) -> None:
        findings = check_known_fraud_patterns(
            _ocr(insuranceCompany="Sample Insurance", policyNumber="POL-12345")
        )
        assert _codes(findings) == ["KNOWN_FRAUD_PATTERN", "KNOWN_FRAUD_PATTERN"]
        assert sum(f.penalty for f in findings) == 40


class TestDateParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2024-01-15", date(2024, 1, 15)),
            ("2024-01-15T08:30:00Z", date(2024, 1, 15)),
            ("2024-01-15 08:30:00", date(2024, 1, 15)),
            ("01/15/2024", date(2024, 1, 15)),
            ("15/01/2024", date(2024, 1, 15)),
            ("January 15, 2024", date(2024, 1, 15)),
            ("15 January 2024", date(2024, 1, 15)),
        ],
    )
    def test_formats(self, raw: str, expected: date) -> None:
        assert parse_document_date(raw) == expected

    def test_garbage_is_none(self) -> None:
        assert parse_document_date("not a date") is None
        assert parse_document_date(None) is None

    @pytest.mark.parametrize("raw", ["2026-10-011", "2026-10-01abc", "2026-13-01", "2026-02-30"])
    def test_malformed_iso_is_none(self, raw: str) -> None:
        assert parse_document_date(raw) is None


class TestRiskLevel:
    @pytest.mark.parametrize(
        "deduction, expected",
        [
            (0, RiskLevel.LOW),
            (19, RiskLevel.LOW),
            (20, RiskLevel.MEDIUM),
            (49, RiskLevel.MEDIUM),
            (50, RiskLevel.HIGH),
            (79, RiskLevel.HIGH),
            (80, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_bands(self, deduction: int, expected: RiskLevel) -> None:
        assert risk_level(deduction) == expected
