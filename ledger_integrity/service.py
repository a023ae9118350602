"""
Service façade: the operations the API layer and the CLI consume.

    engine = build_engine(get_settings())
    engine.run_full_sync()
    engine.check_integrity_by_vin(vin)
    engine.check_batch([vin, ...])
    engine.score_document(extracted, vehicle)
    engine.lookup_external_registry("insurance", identifiers)
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .alerts import LogNotifier, WebhookNotifier
from .authenticity import DocumentAuthenticityScorer
from .collaborators import LedgerClient, Notifier, VehicleStore
from .config import EngineSettings
from .exceptions import UnknownRegistryError
from .integrity import IntegrityChecker
from .ledger_client import HttpLedgerClient
from .models import (
    AuthenticityVerdict,
    BatchCheckResult,
    IntegrityCheckResult,
    OCRExtractionResult,
    RegistryIdentifiers,
    RegistryLookupResult,
    SyncRun,
    VehicleRecord,
)
from .registry import ExternalRegistry, load_registries
from .sample_data import sample_ledger, sample_store
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


class IntegrityEngine:
    """Bundles checker, orchestrator, scorer and registries behind one object."""

    def __init__(
        self,
        store: VehicleStore,
        ledger: LedgerClient,
        notifier: Notifier,
        registries: Mapping[str, ExternalRegistry],
        alert_email: str,
        report_limit: int = 50,
        pass_threshold: int = 70,
    ):
        self.store = store
        self.registries = registries
        self.checker = IntegrityChecker(store, ledger)
        self.orchestrator = SyncOrchestrator(
            store, self.checker, notifier, alert_email, report_limit=report_limit
        )
        self.scorer = DocumentAuthenticityScorer(registries, pass_threshold=pass_threshold)

    def run_full_sync(self) -> SyncRun:
        return self.orchestrator.run_full_sync()

    def check_integrity_by_vin(self, vin: str) -> IntegrityCheckResult:
        return self.checker.check_by_vin(vin)

    def check_integrity_by_id(self, vehicle_id: str) -> IntegrityCheckResult:
        return self.checker.check_by_id(vehicle_id)

    def check_batch(self, vins: list[str]) -> BatchCheckResult:
        return self.checker.check_batch(vins)

    def score_document(
        self,
        extracted: OCRExtractionResult,
        target: VehicleRecord,
        registry_type: Optional[str] = None,
    ) -> AuthenticityVerdict:
        return self.scorer.score_document(extracted, target, registry_type)

    def lookup_external_registry(
        self, registry_type: str, identifiers: RegistryIdentifiers
    ) -> RegistryLookupResult:
        registry = self.registries.get(registry_type)
        if registry is None:
            raise UnknownRegistryError(
                f"Registry '{registry_type}' is not configured",
                {"registry": registry_type, "configured": sorted(self.registries)},
            )
        return registry.lookup(identifiers)


def build_engine(
    settings: EngineSettings,
    store: Optional[VehicleStore] = None,
    ledger: Optional[LedgerClient] = None,
    notifier: Optional[Notifier] = None,
) -> IntegrityEngine:
    """Wire default collaborators from settings; explicit ones take precedence."""
    if ledger is None:
        if settings.ledger_base_url:
            ledger = HttpLedgerClient(settings.ledger_base_url, settings.ledger_timeout_seconds)
        else:
            logger.info("No LEDGER_BASE_URL set, using the in-memory sample ledger")
            ledger = sample_ledger()

    if notifier is None:
        if settings.alert_webhook_url:
            notifier = WebhookNotifier(settings.alert_webhook_url, settings.ledger_timeout_seconds)
        else:
            notifier = LogNotifier()

    return IntegrityEngine(
        store=store if store is not None else sample_store(),
        ledger=ledger,
        notifier=notifier,
        registries=load_registries(settings.registry_data_path or None),
        alert_email=settings.sync_alert_email,
        report_limit=settings.discrepancy_report_limit,
        pass_threshold=settings.authenticity_pass_threshold,
    )
