"""
Sample fleet for the demo CLI and the default API wiring.

Four registered vehicles, each exercising one outcome:
  - NCR 1234   → VERIFIED (ledger agrees)
  - CLEAN 001  → VERIFIED (ledger agrees modulo case / spacing)
  - ABC 123    → TAMPERED (engine number rewritten in the database)
  - NEW 777    → NOT_REGISTERED (never minted on the ledger)
"""

from __future__ import annotations

from .collaborators import InMemoryLedger, InMemoryVehicleStore
from .models import LedgerRecord, VehicleRecord

SAMPLE_VEHICLES: tuple[VehicleRecord, ...] = (
    VehicleRecord(
        id="veh-001",
        vin="1HGCM82633A004352",
        plate_number="NCR 1234",
        engine_number="CLEANENG001",
        chassis_number="CLEANCHS001",
        make="Honda",
        model="Accord",
        year=2022,
        owner_email="maria.santos@example.org",
    ),
    VehicleRecord(
        id="veh-002",
        vin="JTDKB20U093123456",
        plate_number="CLEAN 001",
        engine_number="VALIDENG001",
        chassis_number="VALIDCHS001",
        make="Toyota",
        model="Prius",
        year=2021,
        owner_email="j.reyes@example.org",
    ),
    VehicleRecord(
        id="veh-003",
        vin="3VWFE21C04M000001",
        plate_number="ABC 123",
        engine_number="ENG-REPLACED-01",
        chassis_number="CHS987654321",
        make="Volkswagen",
        model="Jetta",
        year=2019,
        owner_email="owner3@example.org",
    ),
    VehicleRecord(
        id="veh-004",
        vin="5YJ3E1EA7KF000777",
        plate_number="NEW 777",
        engine_number="EV0000777",
        chassis_number="CHS000777",
        make="Tesla",
        model="Model 3",
        year=2024,
        owner_email="new.owner@example.org",
    ),
)

SAMPLE_LEDGER: tuple[LedgerRecord, ...] = (
    LedgerRecord(
        vin="1HGCM82633A004352",
        plate_number="NCR 1234",
        engine_number="CLEANENG001",
        chassis_number="CLEANCHS001",
        make="Honda",
        model="Accord",
        year=2022,
        owner_email="maria.santos@example.org",
        transaction_id="tx-7f3a01",
    ),
    LedgerRecord(
        vin="jtdkb20u093123456",
        plate_number="clean  001",
        engine_number="valideng 001",
        chassis_number="VALIDCHS001",
        make="Toyota",
        model="Prius",
        year=2021,
        owner_email="J.Reyes@example.org",
        transaction_id="tx-7f3a02",
    ),
    LedgerRecord(
        vin="3VWFE21C04M000001",
        plate_number="ABC 123",
        engine_number="ENG123456789",
        chassis_number="CHS987654321",
        make="Volkswagen",
        model="Jetta",
        year=2019,
        owner_email="owner3@example.org",
        transaction_id="tx-7f3a03",
    ),
)


def sample_store() -> InMemoryVehicleStore:
    return InMemoryVehicleStore(SAMPLE_VEHICLES)


def sample_ledger() -> InMemoryLedger:
    return InMemoryLedger(SAMPLE_LEDGER)
