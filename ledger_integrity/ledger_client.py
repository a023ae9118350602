"""
HTTP client for the ledger gateway.

Reads the chain's world state for one VIN. 404 means "not on chain" and is
an answer, not an error. Anything else that goes wrong is a collaborator
failure and propagates — the caller decides whether that aborts anything.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .exceptions import CollaboratorError, CollaboratorTimeout
from .models import LedgerRecord

logger = logging.getLogger(__name__)


class HttpLedgerClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def get_record_by_vin(self, vin: str) -> Optional[LedgerRecord]:
        url = f"{self.base_url}/vehicles/{quote(vin, safe='')}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(url)
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout(
                f"Ledger query for {vin} timed out after {self.timeout}s",
                {"vin": vin, "url": url},
            ) from e
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Ledger query for {vin} failed: {e}", {"vin": vin, "url": url}) from e
        except ValueError as e:
            raise CollaboratorError(f"Ledger returned non-JSON for {vin}", {"vin": vin}) from e

        # Gateway wraps the document as {"success": ..., "vehicle": {...}}
        document = payload.get("vehicle", payload) if isinstance(payload, dict) else None
        if not document:
            logger.debug("Ledger has no world state for %s", vin)
            return None

        try:
            return LedgerRecord.from_world_state(document)
        except ValidationError as e:
            raise CollaboratorError(
                f"Ledger record for {vin} is malformed",
                {"vin": vin, "errors": e.errors(include_url=False)},
            ) from e
