"""
Interfaces for the external collaborators the engine reads from.

The engine depends only on these Protocols. The in-memory implementations
back the demo and the test suite; production wiring swaps in a database
adapter, the HTTP ledger gateway and a real notifier.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from .models import AlertReport, LedgerRecord, VehicleRecord
from .normalizer import normalize_vin


# ─── Protocols ───────────────────────────────────────────────────────


class VehicleStore(Protocol):
    def list_vehicles(self, status: Optional[str] = "REGISTERED") -> list[VehicleRecord]: ...

    def get_vehicle_by_vin(self, vin: str) -> Optional[VehicleRecord]: ...

    def get_vehicle_by_id(self, vehicle_id: str) -> Optional[VehicleRecord]: ...


class LedgerClient(Protocol):
    def get_record_by_vin(self, vin: str) -> Optional[LedgerRecord]:
        """Return the ledger record, or None when the VIN is not on chain."""
        ...


class Notifier(Protocol):
    def send(self, report: AlertReport) -> None:
        """Deliver the report. Raises AlertDeliveryError on failure."""
        ...


# ─── In-Memory Implementations ──────────────────────────────────────


class InMemoryVehicleStore:
    """Vehicle rows held in a dict keyed by normalized VIN."""

    def __init__(self, vehicles: Iterable[VehicleRecord] = ()):
        self._by_vin: dict[str, VehicleRecord] = {}
        for vehicle in vehicles:
            self.add(vehicle)

    def add(self, vehicle: VehicleRecord) -> None:
        self._by_vin[normalize_vin(vehicle.vin)] = vehicle

    def list_vehicles(self, status: Optional[str] = "REGISTERED") -> list[VehicleRecord]:
        vehicles = list(self._by_vin.values())
        if status is None:
            return vehicles
        return [v for v in vehicles if v.status == status]

    def get_vehicle_by_vin(self, vin: str) -> Optional[VehicleRecord]:
        return self._by_vin.get(normalize_vin(vin))

    def get_vehicle_by_id(self, vehicle_id: str) -> Optional[VehicleRecord]:
        for vehicle in self._by_vin.values():
            if vehicle.id == vehicle_id:
                return vehicle
        return None


class InMemoryLedger:
    """World state held in a dict keyed by normalized VIN."""

    def __init__(self, records: Iterable[LedgerRecord] = ()):
        self._by_vin: dict[str, LedgerRecord] = {}
        for record in records:
            self.put(record)

    def put(self, record: LedgerRecord) -> None:
        self._by_vin[normalize_vin(record.vin)] = record

    def get_record_by_vin(self, vin: str) -> Optional[LedgerRecord]:
        return self._by_vin.get(normalize_vin(vin))


class RecordingNotifier:
    """Keeps every report it is asked to send. Useful in tests and dry runs."""

    def __init__(self) -> None:
        self.sent: list[AlertReport] = []

    def send(self, report: AlertReport) -> None:
        self.sent.append(report)
