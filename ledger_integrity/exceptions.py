"""
Custom exception hierarchy for the integrity engine.

Each exception type maps to a specific failure category. Classification
outcomes (TAMPERED, NOT_REGISTERED, FLAGGED, EXPIRED) are NOT errors and
never appear here — they are returned as results.
"""

from __future__ import annotations


class IntegrityEngineError(Exception):
    """Base exception for all integrity engine failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class VehicleNotFoundError(IntegrityEngineError):
    """The vehicle is not in the relational store — a caller precondition."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("VEHICLE_NOT_FOUND", message, details)


class CollaboratorError(IntegrityEngineError):
    """A DB, ledger or registry collaborator failed or returned garbage."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        code: str = "COLLABORATOR_FAILURE",
    ):
        super().__init__(code, message, details)


class CollaboratorTimeout(CollaboratorError):
    """A collaborator call exceeded its deadline."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details, code="COLLABORATOR_TIMEOUT")


class AlertDeliveryError(IntegrityEngineError):
    """The discrepancy alert could not be delivered."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("ALERT_DELIVERY_FAILED", message, details)


class UnknownRegistryError(IntegrityEngineError):
    """Lookup requested against a registry type that is not configured."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNKNOWN_REGISTRY", message, details)
