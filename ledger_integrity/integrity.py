"""
Ledger integrity checker — cross-checks one vehicle between store and ledger.

Flow:
  store.get_vehicle_by_vin ──► absent?  → VehicleNotFoundError (caller's problem)
          │
  ledger.get_record_by_vin ──► absent?  → NOT_REGISTERED (+ DB snapshot)
          │
       compare()           ──► all match → VERIFIED
                               any miss  → TAMPERED (+ comparisons, both snapshots)

Collaborator failures propagate. The checker never retries and never
swallows — the sync orchestrator decides what a per-vehicle failure means.
"""

from __future__ import annotations

import logging

from .collaborators import LedgerClient, VehicleStore
from .comparator import COMPARED_FIELDS, FieldSpec, compare
from .exceptions import IntegrityEngineError, VehicleNotFoundError
from .models import (
    BatchCheckResult,
    BatchFailure,
    BatchSummary,
    IntegrityCheckResult,
    IntegrityStatus,
)

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50

STATUS_MESSAGES: dict[IntegrityStatus, str] = {
    IntegrityStatus.VERIFIED: "All fields match between database and blockchain",
    IntegrityStatus.TAMPERED: "Field mismatch detected - potential data tampering",
    IntegrityStatus.NOT_REGISTERED: "Vehicle not registered on blockchain",
}


class IntegrityChecker:
    """Classifies a vehicle as VERIFIED, TAMPERED or NOT_REGISTERED.

    Usage:
        checker = IntegrityChecker(store, ledger)
        result = checker.check_by_vin("1HGCM82633A004352")
        if result.status is IntegrityStatus.TAMPERED:
            for entry in result.comparisons:
                ...
    """

    def __init__(
        self,
        store: VehicleStore,
        ledger: LedgerClient,
        fields: tuple[FieldSpec, ...] = COMPARED_FIELDS,
    ):
        self.store = store
        self.ledger = ledger
        self.fields = fields

    def check_by_vin(self, vin: str) -> IntegrityCheckResult:
        """Run the integrity check for one VIN.

        Raises:
            VehicleNotFoundError: the store has no vehicle with this VIN.
            CollaboratorError: the store or ledger could not be read.
        """
        db_vehicle = self.store.get_vehicle_by_vin(vin)
        if db_vehicle is None:
            raise VehicleNotFoundError(
                f"Vehicle {vin} not found in database", {"vin": vin}
            )

        ledger_record = self.ledger.get_record_by_vin(db_vehicle.vin)
        if ledger_record is None:
            return IntegrityCheckResult(
                vin=db_vehicle.vin,
                status=IntegrityStatus.NOT_REGISTERED,
                message=STATUS_MESSAGES[IntegrityStatus.NOT_REGISTERED],
                vehicle_id=db_vehicle.id,
                db_vehicle=db_vehicle.snapshot(),
            )

        comparisons = compare(db_vehicle.snapshot(), ledger_record.snapshot(), self.fields)
        mismatched = [entry for entry in comparisons if not entry.matches]

        if not mismatched:
            return IntegrityCheckResult(
                vin=db_vehicle.vin,
                status=IntegrityStatus.VERIFIED,
                message=STATUS_MESSAGES[IntegrityStatus.VERIFIED],
                vehicle_id=db_vehicle.id,
            )

        logger.warning(
            "Ledger mismatch for %s on: %s",
            db_vehicle.vin,
            ", ".join(entry.field for entry in mismatched),
            extra={"vin": db_vehicle.vin, "extra_data": {"fields": [entry.field for entry in mismatched]}},
        )
        return IntegrityCheckResult(
            vin=db_vehicle.vin,
            status=IntegrityStatus.TAMPERED,
            message=(
                f"{STATUS_MESSAGES[IntegrityStatus.TAMPERED]}: "
                f"{', '.join(entry.label for entry in mismatched)}"
            ),
            vehicle_id=db_vehicle.id,
            comparisons=comparisons,
            db_vehicle=db_vehicle.snapshot(),
            ledger_vehicle=ledger_record.snapshot(),
        )

    def check_by_id(self, vehicle_id: str) -> IntegrityCheckResult:
        """Resolve the VIN through the store, then check by VIN."""
        db_vehicle = self.store.get_vehicle_by_id(vehicle_id)
        if db_vehicle is None:
            raise VehicleNotFoundError(
                f"Vehicle id {vehicle_id} not found in database",
                {"vehicle_id": vehicle_id},
            )
        return self.check_by_vin(db_vehicle.vin)

    def check_batch(self, vins: list[str], max_batch: int = MAX_BATCH_SIZE) -> BatchCheckResult:
        """Check up to `max_batch` VINs; failures are reported, not raised."""
        batch = BatchCheckResult(checked=0)
        summary = BatchSummary()

        for vin in vins[:max_batch]:
            batch.checked += 1
            try:
                result = self.check_by_vin(vin)
            except IntegrityEngineError as e:
                summary.error += 1
                batch.failures.append(BatchFailure(vin=vin, code=e.code, message=str(e)))
                continue
            except Exception as e:
                logger.warning("Batch check failed for %s: %s", vin, e, extra={"vin": vin})
                summary.error += 1
                batch.failures.append(BatchFailure(vin=vin, code="UNEXPECTED_ERROR", message=str(e)))
                continue

            batch.results.append(result)
            if result.status == IntegrityStatus.VERIFIED:
                summary.verified += 1
            elif result.status == IntegrityStatus.TAMPERED:
                summary.tampered += 1
            else:
                summary.not_registered += 1

        batch.summary = summary
        return batch
