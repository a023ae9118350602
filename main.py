#!/usr/bin/env python3
"""
Ledger Integrity — Entry Point
==============================

Runs a full ledger sync over the sample fleet, then scores three sample
documents against the registries.

Usage:
    python main.py                                  # In-memory sample ledger
    LEDGER_BASE_URL=http://gateway:4000 python main.py
"""

from __future__ import annotations

import sys

from ledger_integrity.config import get_settings
from ledger_integrity.logging_config import configure_logging
from ledger_integrity.models import OCRExtractionResult, Severity
from ledger_integrity.service import build_engine


# ─── Sample OCR Output, One Of Each Kind ────────────────────────────

SAMPLE_DOCUMENTS: tuple[tuple[str, str, dict[str, str]], ...] = (
    (
        "Insurance certificate lifted from another vehicle",
        "1HGCM82633A004352",
        {
            "documentType": "insurance",
            "vin": "3VWFE21C04M000001",
            "insurancePolicyNumber": "POL-2026-VALID001",
            "insuranceCompany": "PhilAm Insurance",
            "insuranceExpiry": "2027-10-01",
        },
    ),
    (
        "Emission certificate for a vehicle the registry has never seen",
        "5YJ3E1EA7KF000777",
        {
            "documentType": "emission",
            "vin": "5YJ3E1EA7KF000777",
            "certificateNumber": "EMI-2026-000777",
            "testCenter": "LTO Main Emission Center",
            "testDate": "2026-09-30",
            "expiryDate": "2027-09-30",
        },
    ),
    (
        "Insurance policy the registry has flagged as fraudulent",
        "3VWFE21C04M000001",
        {
            "documentType": "insurance",
            "vin": "3VWFE21C04M000001",
            "plateNumber": "ABC 123",
            "insurancePolicyNumber": "POL-2024-FAKE001",
            "insuranceCompany": "Unknown Insurance Co.",
            "issueDate": "2024-01-15",
            "insuranceExpiry": "2025-01-15",
        },
    ),
)


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_SEVERITY_COLORS = {Severity.ERROR: _RED, Severity.WARNING: _YELLOW, Severity.INFO: _CYAN}


# ─── Pretty Printers ────────────────────────────────────────────────


def print_sync_report(run) -> bool:
    """Print the full-sync summary. Returns True when the fleet is clean."""
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  LEDGER SYNC REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    if not run.success:
        print(f"  {_RED}{_BOLD}SYNC FAILED: {run.error}{_RESET}")
        print(f"{'=' * _WIDTH}\n")
        return False

    print(f"  Checked:     {run.total_checked} vehicles in {run.duration_ms}ms")
    print(f"  Matched:     {_GREEN}{run.matched}{_RESET}")
    print(f"  Mismatched:  {_RED}{run.mismatched}{_RESET}")
    print(f"  Not on chain:{_YELLOW} {run.not_on_blockchain}{_RESET}")
    print(f"  Errors:      {run.errors}")
    print(f"{'─' * _WIDTH}")

    for d in run.discrepancies:
        color = _RED if d.status == "TAMPERED" else _YELLOW
        print(f"  {color}[{d.status}]{_RESET} {d.vin} ({d.plate_number or 'N/A'})")
        print(f"    {d.message}")
        for c in d.comparisons:
            print(f"      {_DIM}{c.label}: db={c.db_value!r} ledger={c.ledger_value!r}{_RESET}")

    print(f"{'=' * _WIDTH}")
    if run.has_discrepancies:
        alert = "alert sent" if run.alert_sent else "alert NOT sent"
        print(f"  {_RED}{_BOLD}DISCREPANCIES FOUND  --  {alert}{_RESET}")
    else:
        print(f"  {_GREEN}{_BOLD}DATABASE AND LEDGER AGREE{_RESET}")
    print(f"{'=' * _WIDTH}\n")
    return not run.has_discrepancies


def print_verdict(title: str, vin: str, verdict) -> None:
    """Print one document verdict with its findings."""
    color = _GREEN if verdict.authentic else _RED
    label = "AUTHENTIC" if verdict.authentic else "REJECTED"
    print(f"  {_BOLD}{title}{_RESET}")
    print(f"  Target VIN:  {vin}")
    print(f"  Verdict:     {color}{_BOLD}{label}{_RESET}  score={verdict.authenticity_score}  risk={verdict.risk_level.value}")
    print(f"  Reason:      {verdict.reason}")
    for f in verdict.findings:
        print(f"    {_SEVERITY_COLORS[f.severity]}[{f.code}]{_RESET} -{f.penalty}  {f.message}")
    print(f"{'─' * _WIDTH}")


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run a full sync, then score the sample documents."""
    settings = get_settings()
    configure_logging(settings.log_level, "text")

    print("\n  Starting Ledger Integrity engine...")
    engine = build_engine(settings)

    clean = print_sync_report(engine.run_full_sync())

    print(f"{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  DOCUMENT AUTHENTICITY{_RESET}")
    print(f"{'=' * _WIDTH}")
    for title, vin, raw in SAMPLE_DOCUMENTS:
        target = engine.store.get_vehicle_by_vin(vin)
        if target is None:
            print(f"  {_RED}Vehicle {vin} not in database, skipping{_RESET}")
            continue
        verdict = engine.score_document(OCRExtractionResult.from_mapping(raw), target)
        print_verdict(title, vin, verdict)
    print()

    sys.exit(0 if clean else 1)


if __name__ == "__main__":
    main()
