"""
Document authenticity scorer.

Flow:
  OCR fields + target vehicle
          │
   VIN binding check ──► mismatch? → authentic=False, score=0 (final)
          │
   Registry lookup   ──► FLAGGED / EXPIRED / VALID / NOT_FOUND
          │
   Document checks   ──► format, dates, fraud patterns, policy binding
          │
   score = 100 − Σ penalties;  authentic = can_approve AND score ≥ threshold

Design principles:
  - Start from an assumed-authentic baseline and deduct on evidence.
  - A document bound to another vehicle is disqualifying regardless of any
    other signal; nothing after the VIN check can rescue it.
  - NOT_FOUND in a registry is not evidence of fraud. It costs no points;
    the reason asks for manual review instead.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Mapping, Optional

from .checks import check_vin_binding, risk_level, run_document_checks, total_penalty
from .exceptions import UnknownRegistryError
from .models import (
    AuthenticityVerdict,
    LookupStatus,
    OCRExtractionResult,
    RegistryIdentifiers,
    RegistryLookupResult,
    RiskLevel,
    VehicleRecord,
)
from .registry import ExternalRegistry

logger = logging.getLogger(__name__)

DEFAULT_PASS_THRESHOLD = 70

# Worst outcome first; used when no registry type is named.
_SEVERITY_ORDER: dict[LookupStatus, int] = {
    LookupStatus.FLAGGED: 0,
    LookupStatus.EXPIRED: 1,
    LookupStatus.VALID: 2,
    LookupStatus.NOT_FOUND: 3,
}


class DocumentAuthenticityScorer:
    """Decides whether a submitted document is genuine, stale, or fraudulent."""

    def __init__(
        self,
        registries: Mapping[str, ExternalRegistry],
        pass_threshold: int = DEFAULT_PASS_THRESHOLD,
        clock: Callable[[], date] = date.today,
    ):
        self.registries = registries
        self.pass_threshold = pass_threshold
        self.clock = clock

    def score_document(
        self,
        extracted: OCRExtractionResult,
        target: VehicleRecord,
        registry_type: Optional[str] = None,
    ) -> AuthenticityVerdict:
        """Score one document against the vehicle it was submitted for.

        Args:
            extracted: Fields the OCR collaborator pulled from the document.
            target: The vehicle the document claims to belong to.
            registry_type: Registry to consult ("insurance", "emission").
                Falls back to the OCR document type, then to every registry.
        """
        # ── Step 1: VIN binding dominates everything ────────────────
        vin_findings = check_vin_binding(extracted, target)
        if vin_findings:
            logger.warning(
                "Document rejected for %s: %s", target.vin, vin_findings[0].message,
                extra={"vin": target.vin},
            )
            return AuthenticityVerdict(
                authentic=False,
                authenticity_score=0,
                reason=vin_findings[0].message,
                risk_level=RiskLevel.CRITICAL,
                findings=vin_findings,
            )

        # ── Step 2: Registry lookup ─────────────────────────────────
        today = self.clock()
        registry_result = self._lookup(extracted, target, registry_type, today)

        # ── Step 3: Deterministic document checks ───────────────────
        findings = run_document_checks(extracted, registry_result, today)
        deduction = min(total_penalty(findings), 100)
        score = 100 - deduction

        can_approve = registry_result.can_approve if registry_result else True
        authentic = can_approve and score >= self.pass_threshold

        verdict = AuthenticityVerdict(
            authentic=authentic,
            authenticity_score=score,
            reason=self._reason(registry_result, findings, authentic),
            risk_level=risk_level(deduction),
            findings=findings,
            matched_registry_record=registry_result.record if registry_result else None,
            registry_result=registry_result,
        )
        logger.info(
            "Document verdict for %s: authentic=%s score=%d (%s)",
            target.vin,
            verdict.authentic,
            verdict.authenticity_score,
            registry_result.status.value if registry_result else "no registry",
        )
        return verdict

    # ─── Registry Selection ─────────────────────────────────────────

    def _lookup(
        self,
        extracted: OCRExtractionResult,
        target: VehicleRecord,
        registry_type: Optional[str],
        today: date,
    ) -> Optional[RegistryLookupResult]:
        identifiers = identifiers_for(extracted, target)

        if registry_type is not None:
            return self._registry(registry_type).lookup(identifiers, today)

        document_type = (extracted.value("document_type") or "").lower()
        if document_type in self.registries:
            return self.registries[document_type].lookup(identifiers, today)

        results = [
            self.registries[name].lookup(identifiers, today)
            for name in sorted(self.registries)
        ]
        if not results:
            return None
        return min(results, key=lambda r: _SEVERITY_ORDER[r.status])

    def _registry(self, name: str) -> ExternalRegistry:
        registry = self.registries.get(name)
        if registry is None:
            raise UnknownRegistryError(
                f"Registry '{name}' is not configured",
                {"registry": name, "configured": sorted(self.registries)},
            )
        return registry

    # ─── Reason ─────────────────────────────────────────────────────

    def _reason(self, registry_result, findings, authentic: bool) -> str:
        if registry_result is not None and not registry_result.can_approve:
            return registry_result.message
        if not authentic:
            codes = sorted({f.code for f in findings if f.penalty > 0})
            return f"Fraud indicators detected: {', '.join(codes)}"
        if registry_result is not None and registry_result.status == LookupStatus.NOT_FOUND:
            return registry_result.message
        if registry_result is not None:
            return f"Document consistent with target vehicle and {registry_result.registry} registry"
        return "Document consistent with target vehicle"


def identifiers_for(extracted: OCRExtractionResult, target: VehicleRecord) -> RegistryIdentifiers:
    """Identifiers from the document, falling back to the target vehicle's own."""
    return RegistryIdentifiers(
        vin=extracted.value("vin") or target.vin,
        plate_number=extracted.value("plate_number") or target.plate_number,
        engine_number=extracted.value("engine_number") or target.engine_number,
        chassis_number=extracted.value("chassis_number") or target.chassis_number,
        policy_number=extracted.value("policy_number"),
    )
