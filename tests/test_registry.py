"""
External registry lookup tests — matcher priority, expiry downgrade,
record administration and seed loading.

Every lookup pins `today` so the seed data's expiry dates stay meaningful.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import pytest

from ledger_integrity.exceptions import UnknownRegistryError
from ledger_integrity.models import (
    LookupStatus,
    RecordStatus,
    RegistryIdentifiers,
    RegistryRecord,
)
from ledger_integrity.registry import ExternalRegistry, find_match, load_registries

TODAY = date(2026, 10, 18)


@pytest.fixture()
def registries() -> dict[str, ExternalRegistry]:
    return load_registries()


def _ids(**fields: Any) -> RegistryIdentifiers:
    return RegistryIdentifiers(**fields)


def _make_record(**overrides: Any) -> RegistryRecord:
    kwargs: dict[str, Any] = {
        "plate_number": "NEW 777",
        "engine_number": "EV0000777",
        "chassis_number": "CHS000777",
        "policy_number": "POL-2026-NEW777",
        "status": RecordStatus.ACTIVE,
        "issue_date": date(2026, 1, 1),
        "expiry_date": date(2027, 1, 1),
        "issuer": "Pioneer Insurance",
    }
    kwargs.update(overrides)
    return RegistryRecord(**kwargs)


# ═══════════════════════════════════════════════════════════════════════
# FLAGGED
# ═══════════════════════════════════════════════════════════════════════


class TestFlagged:
    def test_fraudulent_insurance_by_plate(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(plate_number="abc  123"), TODAY)
        assert result.status == LookupStatus.FLAGGED
        assert result.status_type == "FRAUDULENT"
        assert result.found is True
        assert result.can_approve is False
        assert result.matched_on == "plate_number"
        assert result.message == "ALERT: Fraudulent insurance document detected"
        assert result.details["flag_reason"] == "Policy number does not exist in insurance registry"

    def test_problem_records_match_on_any_identifier(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(chassis_number="chs 777 888 999"), TODAY)
        assert result.status == LookupStatus.FLAGGED
        assert result.status_type == "CANCELLED"
        assert result.matched_on == "chassis_number"

    def test_problem_wins_over_valid(self, registries) -> None:
        # Plate hits the ACTIVE record, engine hits the FRAUDULENT one.
        result = registries["insurance"].lookup(
            _ids(plate_number="NCR 1234", engine_number="ENG123456789"), TODAY
        )
        assert result.status == LookupStatus.FLAGGED
        assert result.matched_on == "engine_number"
        assert result.record.plate_number == "ABC 123"

    def test_priority_plate_before_engine(self, registries) -> None:
        result = registries["insurance"].lookup(
            _ids(plate_number="XYZ 789", engine_number="ENG123456789"), TODAY
        )
        assert result.matched_on == "plate_number"
        assert result.status_type == "EXPIRED"
        assert result.message == "EXPIRED: insurance record has expired"

    def test_emission_failed_message(self, registries) -> None:
        result = registries["emission"].lookup(_ids(plate_number="ABC 123"), TODAY)
        assert result.status == LookupStatus.FLAGGED
        assert result.message == "FAILED: Vehicle failed emission test"
        assert result.details["test_result"]["co"] == 8.5

    def test_emission_tampered(self, registries) -> None:
        result = registries["emission"].lookup(_ids(engine_number="ENG444555666"), TODAY)
        assert result.status_type == "TAMPERED"
        assert result.message == "ALERT: Suspected tampered emission certificate"


# ═══════════════════════════════════════════════════════════════════════
# VALID / EXPIRED
# ═══════════════════════════════════════════════════════════════════════


class TestValidRecords:
    def test_active_insurance(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(plate_number="NCR 1234"), TODAY)
        assert result.status == LookupStatus.VALID
        assert result.status_type == "ACTIVE"
        assert result.can_approve is True
        assert result.message == "VALID: Insurance record is active and verified"
        assert result.details["coverage"] == 500000

    def test_insurance_matches_on_policy_number(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(policy_number="pol-2026-valid001"), TODAY)
        assert result.status == LookupStatus.VALID
        assert result.matched_on == "policy_number"

    def test_emission_ignores_policy_number(self, registries) -> None:
        result = registries["emission"].lookup(_ids(policy_number="POL-2026-VALID001"), TODAY)
        assert result.status == LookupStatus.NOT_FOUND

    def test_valid_set_does_not_match_on_engine(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(engine_number="CLEANENG001"), TODAY)
        assert result.status == LookupStatus.NOT_FOUND

    def test_active_past_expiry_is_downgraded(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(plate_number="CLEAN 001"), TODAY)
        assert result.status == LookupStatus.EXPIRED
        assert result.status_type == "POLICY_EXPIRED"
        assert result.can_approve is False
        assert result.message == "Insurance record has EXPIRED - renewal required"

    def test_expiry_day_itself_is_still_valid(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(plate_number="NCR 1234"), date(2027, 10, 1))
        assert result.status == LookupStatus.VALID

    def test_emission_expired_status_type(self, registries) -> None:
        result = registries["emission"].lookup(_ids(plate_number="NCR 1234"), date(2028, 1, 1))
        assert result.status == LookupStatus.EXPIRED
        assert result.status_type == "CERTIFICATE_EXPIRED"


# ═══════════════════════════════════════════════════════════════════════
# NOT FOUND
# ═══════════════════════════════════════════════════════════════════════


class TestNotFound:
    def test_unknown_vehicle(self, registries) -> None:
        result = registries["insurance"].lookup(_ids(plate_number="NEW 777"), TODAY)
        assert result.status == LookupStatus.NOT_FOUND
        assert result.status_type == "NO_RECORD"
        assert result.found is False
        assert result.can_approve is True
        assert result.record is None
        assert result.message == (
            "No insurance record found - manual verification of submitted certificate required"
        )

    def test_blank_identifiers_never_match(self, registries) -> None:
        # Seed records carry vin="", which must not match a blank query.
        result = registries["insurance"].lookup(_ids(vin="   ", plate_number=""), TODAY)
        assert result.status == LookupStatus.NOT_FOUND

    def test_no_identifiers_at_all(self, registries) -> None:
        assert registries["emission"].lookup(_ids(), TODAY).status == LookupStatus.NOT_FOUND


# ═══════════════════════════════════════════════════════════════════════
# ADMINISTRATION
# ═══════════════════════════════════════════════════════════════════════


class TestAdministration:
    def test_add_problem_record(self) -> None:
        registry = ExternalRegistry("insurance")
        registry.add_record(_make_record(status=RecordStatus.FRAUDULENT))
        assert len(registry.problem_records) == 1
        result = registry.lookup(_ids(plate_number="NEW 777"), TODAY)
        assert result.status == LookupStatus.FLAGGED

    def test_add_valid_record(self) -> None:
        registry = ExternalRegistry("insurance")
        registry.add_record(_make_record())
        assert len(registry.valid_records) == 1
        assert registry.lookup(_ids(plate_number="NEW 777"), TODAY).status == LookupStatus.VALID

    def test_remove_record(self) -> None:
        registry = ExternalRegistry("insurance", [_make_record()])
        assert registry.remove_record("new  777") is True
        assert registry.lookup(_ids(plate_number="NEW 777"), TODAY).status == LookupStatus.NOT_FOUND

    def test_remove_unknown_plate(self) -> None:
        registry = ExternalRegistry("insurance", [_make_record()])
        assert registry.remove_record("NOPE 000") is False
        assert registry.remove_record("") is False

    def test_unknown_registry_name(self) -> None:
        with pytest.raises(UnknownRegistryError):
            ExternalRegistry("registration")


class TestFindMatch:
    def test_returns_field_that_hit(self) -> None:
        record = _make_record()
        hit = find_match([record], _ids(chassis_number="chs000777"), ("chassis_number",))
        assert hit == (record, "chassis_number")

    def test_fields_outside_allowed_set_are_ignored(self) -> None:
        hit = find_match([_make_record()], _ids(chassis_number="CHS000777"), ("plate_number",))
        assert hit is None


# ═══════════════════════════════════════════════════════════════════════
# LOADING
# ═══════════════════════════════════════════════════════════════════════


class TestLoadRegistries:
    def test_packaged_seed(self, registries) -> None:
        assert set(registries) == {"insurance", "emission"}
        assert len(registries["insurance"].problem_records) == 3
        assert len(registries["insurance"].valid_records) == 2
        assert len(registries["emission"].problem_records) == 3
        assert len(registries["emission"].valid_records) == 1

    def test_custom_path(self, tmp_path) -> None:
        path = tmp_path / "registries.json"
        path.write_text(json.dumps({
            "emission": [{"plate_number": "TST 001", "status": "PASSED", "expiry_date": "2030-01-01"}],
        }))
        loaded = load_registries(path)
        assert list(loaded) == ["emission"]
        assert loaded["emission"].lookup(_ids(plate_number="TST 001"), TODAY).status == LookupStatus.VALID

    def test_unknown_registry_in_file(self, tmp_path) -> None:
        path = tmp_path / "registries.json"
        path.write_text(json.dumps({"registration": []}))
        with pytest.raises(UnknownRegistryError):
            load_registries(str(path))
