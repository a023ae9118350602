"""
Discrepancy alert rendering and delivery.

The report lists EVERY flagged VIN, even when the SyncRun itself only
keeps the first few discrepancies for response size.
"""

from __future__ import annotations

import logging
from html import escape
from typing import Optional

import httpx

from .exceptions import AlertDeliveryError
from .models import AlertReport, Discrepancy, SyncRun

logger = logging.getLogger(__name__)


# ─── Templates ───────────────────────────────────────────────────────

ALERT_TEXT_TEMPLATE = """\
Ledger-Database Data Discrepancy Alert

Summary:
- Checked: {total_checked} vehicles
- Matched: {matched}
- Mismatched: {mismatched}
- Not on Blockchain: {not_on_blockchain}
- Errors: {errors}

Flagged vehicles:
{rows}

Sync performed at: {synced_at}
"""

ALERT_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto;">
    <h2 style="color: #e74c3c;">Ledger-Database Data Discrepancy Alert</h2>
    <p>The automated sync check has detected discrepancies between the database and the ledger.</p>
    <h3>Summary</h3>
    <ul>
        <li><strong>Checked:</strong> {total_checked} vehicles</li>
        <li><strong>Matched:</strong> {matched}</li>
        <li><strong style="color: orange;">Mismatched:</strong> {mismatched}</li>
        <li><strong style="color: red;">Not on Blockchain:</strong> {not_on_blockchain}</li>
        <li><strong>Errors:</strong> {errors}</li>
        <li><strong>Duration:</strong> {duration_ms}ms</li>
    </ul>
    <h3>Discrepancies ({count})</h3>
    <table style="border-collapse: collapse; width: 100%;">
        <thead>
            <tr style="background: #f5f5f5;">
                <th style="padding: 8px; border: 1px solid #ddd;">VIN</th>
                <th style="padding: 8px; border: 1px solid #ddd;">Plate</th>
                <th style="padding: 8px; border: 1px solid #ddd;">Status</th>
                <th style="padding: 8px; border: 1px solid #ddd;">Issue</th>
            </tr>
        </thead>
        <tbody>
{rows}
        </tbody>
    </table>
    <p style="margin-top: 20px; color: #666; font-size: 12px;">
        Automated alert from the ledger integrity monitor.<br>
        Sync performed at: {synced_at}
    </p>
</div>
"""

_HTML_ROW = (
    '            <tr>'
    '<td style="padding: 8px; border: 1px solid #ddd;">{vin}</td>'
    '<td style="padding: 8px; border: 1px solid #ddd;">{plate}</td>'
    '<td style="padding: 8px; border: 1px solid #ddd; color: {color};">{status}</td>'
    '<td style="padding: 8px; border: 1px solid #ddd;">{message}</td>'
    '</tr>'
)


def build_discrepancy_report(
    run: SyncRun, discrepancies: list[Discrepancy], recipient: str
) -> AlertReport:
    """Render subject, plain text and HTML for a sync with discrepancies."""
    issues = run.mismatched + run.not_on_blockchain
    subject = f"[Ledger Integrity] Data Discrepancy Alert - {issues} issues found"

    summary = {
        "total_checked": run.total_checked,
        "matched": run.matched,
        "mismatched": run.mismatched,
        "not_on_blockchain": run.not_on_blockchain,
        "errors": run.errors,
        "synced_at": run.synced_at.isoformat() if run.synced_at else "unknown",
    }

    text_rows = "\n".join(
        f"- {d.vin} ({d.plate_number or 'N/A'}): {d.status} - {d.message}"
        for d in discrepancies
    )
    html_rows = "\n".join(
        _HTML_ROW.format(
            vin=escape(d.vin),
            plate=escape(d.plate_number or "N/A"),
            color="red" if d.status == "TAMPERED" else "orange",
            status=escape(d.status),
            message=escape(d.message),
        )
        for d in discrepancies
    )

    return AlertReport(
        recipient=recipient,
        subject=subject,
        text=ALERT_TEXT_TEMPLATE.format(rows=text_rows, **summary),
        html=ALERT_HTML_TEMPLATE.format(
            rows=html_rows,
            count=len(discrepancies),
            duration_ms=run.duration_ms,
            **summary,
        ),
        flagged_vins=[d.vin for d in discrepancies],
    )


# ─── Notifiers ───────────────────────────────────────────────────────


class LogNotifier:
    """Demo mode: alerts are logged, not delivered."""

    def send(self, report: AlertReport) -> None:
        logger.warning(
            "[DEMO] Alert to %s: %s\n%s",
            report.recipient,
            report.subject,
            report.text[:500],
        )


class WebhookNotifier:
    """POSTs the report as JSON to an alerting webhook (mail relay, chat, pager)."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def send(self, report: AlertReport) -> None:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.url, json=report.model_dump())
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise AlertDeliveryError(
                f"Alert webhook delivery failed: {e}",
                {"url": self.url, "subject": report.subject},
            ) from e
        logger.info("Discrepancy alert sent to %s via webhook", report.recipient)
