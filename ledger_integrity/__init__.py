"""
Ledger Integrity — reconciliation and document authenticity for vehicle registration.

Architecture: Store ⇄ Ledger cross-check → Discrepancy alerting; OCR fields → Registry lookup → Verdict
Philosophy:  The ledger is the source of truth. Absence of data is never evidence of identity.
"""

__version__ = "1.0.0"
