"""
Full-sync orchestrator — batch reconciliation of the store against the ledger.

Flow:
  single-flight guard ──► already running? → {success: False, "Sync already in progress"}
          │
  store.list_vehicles()
          │
  for each vehicle: checker.check_by_vin()
      VERIFIED       → matched
      TAMPERED       → mismatched      (+ discrepancy)
      NOT_REGISTERED → not_on_blockchain (+ discrepancy)
      raised         → errors          (logged, loop continues)
          │
  discrepancies? ──► notifier.send(report)

`success` describes the sync process, not the fleet: a run that finds
tampering is a successful run. The guard is a non-blocking lock owned by
the orchestrator instance and is released on every exit path.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from .alerts import build_discrepancy_report
from .collaborators import Notifier, VehicleStore
from .exceptions import AlertDeliveryError
from .integrity import IntegrityChecker
from .models import Discrepancy, IntegrityStatus, SyncRun, SyncStatus

logger = logging.getLogger(__name__)

SYNC_IN_PROGRESS = "Sync already in progress"
DEFAULT_REPORT_LIMIT = 50


class SyncOrchestrator:
    """Runs full syncs, one at a time per instance.

    Usage:
        orchestrator = SyncOrchestrator(store, checker, notifier, "ops@example.org")
        run = orchestrator.run_full_sync()
        if run.has_discrepancies:
            ...
    """

    def __init__(
        self,
        store: VehicleStore,
        checker: IntegrityChecker,
        notifier: Notifier,
        alert_email: str,
        report_limit: int = DEFAULT_REPORT_LIMIT,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.checker = checker
        self.notifier = notifier
        self.alert_email = alert_email
        self.report_limit = report_limit
        self.clock = clock
        self._lock = threading.Lock()
        self._last_result: Optional[SyncRun] = None

    # ─── Public API ─────────────────────────────────────────────────

    def run_full_sync(self) -> SyncRun:
        with self._single_flight() as acquired:
            if not acquired:
                logger.warning("Full sync rejected: another sync is in progress")
                return SyncRun(
                    success=False,
                    error=SYNC_IN_PROGRESS,
                    last_sync_result=self._last_result,
                )
            return self._run()

    def get_sync_status(self) -> SyncStatus:
        return SyncStatus(
            is_syncing=self._lock.locked(),
            last_sync_result=self._last_result,
            alert_email=self.alert_email,
        )

    # ─── Single-Flight Guard ────────────────────────────────────────

    @contextmanager
    def _single_flight(self) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()

    # ─── The Run ────────────────────────────────────────────────────

    def _run(self) -> SyncRun:
        started = time.monotonic()
        synced_at = self.clock()
        logger.info("Starting ledger-database full sync...")

        try:
            vehicles = self.store.list_vehicles()
        except Exception as e:
            logger.exception("Full sync aborted: could not list vehicles")
            return SyncRun(success=False, error=str(e), synced_at=synced_at)

        logger.info("Found %d registered vehicles to check", len(vehicles))

        matched = mismatched = not_on_blockchain = errors = 0
        discrepancies: list[Discrepancy] = []

        for vehicle in vehicles:
            try:
                result = self.checker.check_by_vin(vehicle.vin)
            except Exception as e:
                errors += 1
                logger.warning(
                    "Integrity check failed for %s: %s", vehicle.vin, e, extra={"vin": vehicle.vin}
                )
                continue

            if result.status == IntegrityStatus.VERIFIED:
                matched += 1
            elif result.status == IntegrityStatus.NOT_REGISTERED:
                not_on_blockchain += 1
                discrepancies.append(
                    Discrepancy(
                        vin=vehicle.vin,
                        plate_number=vehicle.plate_number,
                        status="NOT_ON_BLOCKCHAIN",
                        message="Vehicle registered in database but not found on ledger",
                    )
                )
            else:
                mismatched += 1
                discrepancies.append(
                    Discrepancy(
                        vin=vehicle.vin,
                        plate_number=vehicle.plate_number,
                        status=result.status.value,
                        message=result.message,
                        comparisons=[c for c in result.comparisons or [] if not c.matches],
                    )
                )

        run = SyncRun(
            success=True,
            synced_at=synced_at,
            duration_ms=int((time.monotonic() - started) * 1000),
            total_checked=len(vehicles),
            matched=matched,
            mismatched=mismatched,
            not_on_blockchain=not_on_blockchain,
            errors=errors,
            has_discrepancies=(mismatched + not_on_blockchain) > 0,
            discrepancies=discrepancies[: self.report_limit],
        )

        logger.info(
            "Sync complete in %dms: %d matched, %d mismatched, %d not on blockchain, %d errors",
            run.duration_ms, matched, mismatched, not_on_blockchain, errors,
        )

        if run.has_discrepancies:
            run.alert_sent = self._send_alert(run, discrepancies)

        self._last_result = run
        return run

    def _send_alert(self, run: SyncRun, discrepancies: list[Discrepancy]) -> bool:
        report = build_discrepancy_report(run, discrepancies, self.alert_email)
        try:
            self.notifier.send(report)
        except AlertDeliveryError as e:
            logger.error("Failed to send discrepancy alert: %s", e)
            return False
        logger.info("Discrepancy alert dispatched to %s", self.alert_email)
        return True
