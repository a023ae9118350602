"""
Ledger Integrity — FastAPI Server
=================================

RESTful API over the integrity reconciliation and document authenticity engine.

Endpoints:
    GET  /integrity/check/{vin}             Cross-check one vehicle against the ledger
    GET  /integrity/vehicle/{vehicle_id}    Same, addressed by database id
    POST /integrity/batch                   Cross-check up to 50 VINs
    GET  /integrity/sync-status             Last full-sync result, without running one
    POST /integrity/sync-run                Run a full sync (rejected if one is running)
    POST /documents/score                   Score an OCR-extracted document
    POST /registries/{registry_type}/lookup Query an external registry
    GET  /health                            Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ledger_integrity import __version__
from ledger_integrity.config import get_settings
from ledger_integrity.exceptions import (
    CollaboratorError,
    IntegrityEngineError,
    UnknownRegistryError,
    VehicleNotFoundError,
)
from ledger_integrity.integrity import MAX_BATCH_SIZE
from ledger_integrity.logging_config import configure_logging
from ledger_integrity.models import (
    AuthenticityVerdict,
    BatchCheckResult,
    IntegrityCheckResult,
    OCRExtractionResult,
    RegistryIdentifiers,
    RegistryLookupResult,
    SyncRun,
    SyncStatus,
)
from ledger_integrity.service import IntegrityEngine, build_engine


# ─── Application Lifespan (wire collaborators) ──────────────────────

_engine: IntegrityEngine | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and build the engine (registries, ledger client) on startup."""
    global _engine  # noqa: PLW0603
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    _engine = build_engine(settings)
    yield
    _engine = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Ledger Integrity API",
    description=(
        "Reconciles the vehicle database against the permissioned ledger, "
        "classifies discrepancies, and scores submitted documents against "
        "the target vehicle and third-party registries."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class BatchRequest(BaseModel):
    vins: list[str] = Field(..., min_length=1, description=f"VINs to check (first {MAX_BATCH_SIZE} used).")


class ScoreRequest(BaseModel):
    """Request body for the /documents/score endpoint."""

    vin: str = Field(..., min_length=1, description="VIN of the vehicle the document was submitted for.")
    extracted: dict[str, Any] = Field(
        ...,
        description="Raw field mapping from the OCR collaborator.",
        json_schema_extra={
            "example": {
                "documentType": "insurance",
                "vin": "1HGCM82633A004352",
                "insurancePolicyNumber": "POL-2026-VALID001",
                "insuranceCompany": "PhilAm Insurance",
                "issueDate": "2026-10-01",
                "insuranceExpiry": "2027-10-01",
            }
        },
    )
    confidence: dict[str, Annotated[float, Field(ge=0.0, le=1.0)]] = Field(
        default_factory=dict, description="Per-field OCR confidence in [0, 1]."
    )
    registry_type: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    registries_loaded: dict[str, int]


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_engine() -> IntegrityEngine:
    if _engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialised")
    return _engine


def _http_error(error: IntegrityEngineError) -> HTTPException:
    """Map engine errors onto HTTP status codes."""
    if isinstance(error, (VehicleNotFoundError, UnknownRegistryError)):
        status_code = 404
    elif isinstance(error, CollaboratorError):
        status_code = 502
    else:
        status_code = 500
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": str(error), "details": error.details},
    )


# ─── Integrity Endpoints ─────────────────────────────────────────────


@app.get(
    "/integrity/check/{vin}",
    summary="Check one vehicle against the ledger",
    tags=["Integrity"],
    responses={404: {"description": "Vehicle not in database"}, 502: {"description": "Ledger unreachable"}},
)
def check_integrity(vin: str) -> IntegrityCheckResult:
    """Returns VERIFIED, TAMPERED (with field evidence) or NOT_REGISTERED."""
    engine = _get_engine()
    try:
        return engine.check_integrity_by_vin(vin)
    except IntegrityEngineError as e:
        raise _http_error(e) from e


@app.get(
    "/integrity/vehicle/{vehicle_id}",
    summary="Check one vehicle by database id",
    tags=["Integrity"],
    responses={404: {"description": "Vehicle not in database"}, 502: {"description": "Ledger unreachable"}},
)
def check_integrity_by_id(vehicle_id: str) -> IntegrityCheckResult:
    engine = _get_engine()
    try:
        return engine.check_integrity_by_id(vehicle_id)
    except IntegrityEngineError as e:
        raise _http_error(e) from e


@app.post("/integrity/batch", summary="Check a batch of vehicles", tags=["Integrity"])
def check_integrity_batch(request: BatchRequest) -> BatchCheckResult:
    return _get_engine().check_batch(request.vins)


@app.get("/integrity/sync-status", summary="Current sync status", tags=["Sync"])
def sync_status() -> SyncStatus:
    return _get_engine().orchestrator.get_sync_status()


@app.post("/integrity/sync-run", summary="Run a full ledger sync", tags=["Sync"])
def sync_run() -> SyncRun:
    """Runs synchronously. A concurrent call gets `success: false` immediately."""
    return _get_engine().run_full_sync()


# ─── Document & Registry Endpoints ───────────────────────────────────


@app.post(
    "/documents/score",
    summary="Score a submitted document",
    tags=["Documents"],
    responses={404: {"description": "Vehicle or registry not found"}},
)
def score_document(request: ScoreRequest) -> AuthenticityVerdict:
    """Cross-reference OCR fields against the target vehicle and the registries."""
    engine = _get_engine()
    target = engine.store.get_vehicle_by_vin(request.vin)
    if target is None:
        raise _http_error(VehicleNotFoundError(f"Vehicle {request.vin} not found in database"))

    extracted = OCRExtractionResult.from_mapping(request.extracted, request.confidence)
    try:
        return engine.score_document(extracted, target, request.registry_type)
    except IntegrityEngineError as e:
        raise _http_error(e) from e


@app.post(
    "/registries/{registry_type}/lookup",
    summary="Look up identifiers in an external registry",
    tags=["Registries"],
    responses={404: {"description": "Unknown registry"}},
)
def lookup_registry(registry_type: str, identifiers: RegistryIdentifiers) -> RegistryLookupResult:
    engine = _get_engine()
    try:
        return engine.lookup_external_registry(registry_type, identifiers)
    except IntegrityEngineError as e:
        raise _http_error(e) from e


# ─── System ──────────────────────────────────────────────────────────


@app.get("/health", summary="Health check", tags=["System"], responses={503: {"description": "Engine not yet initialised"}})
def health_check() -> HealthResponse:
    engine = _get_engine()
    return HealthResponse(
        status="healthy",
        version=__version__,
        registries_loaded={
            name: len(r.problem_records) + len(r.valid_records)
            for name, r in engine.registries.items()
        },
    )
