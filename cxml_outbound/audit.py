"""Structured audit logging for outbound cXML traffic.

Rules:
- Never log the shared secret or the rendered payload
- Log metadata only
- Structured JSON format
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

logger = logging.getLogger("cxml.audit")


def _emit(event: str, **kwargs) -> None:
    """Emit a structured audit log entry."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "cxml-outbound",
        "event": event,
        **kwargs,
    }
    logger.info(json.dumps(entry, default=str))


def log_document_rendered(payload_id: str, message_type: str, size_bytes: int) -> None:
    _emit(
        "document_rendered",
        payload_id=payload_id,
        message_type=message_type,
        size_bytes=size_bytes,
    )


def log_submit_started(
    payload_id: str,
    message_type: str,
    url: str,
    buyer: str = "",
    supplier: str = "",
    trace_id: str = "",
) -> None:
    _emit(
        "submit_started",
        payload_id=payload_id,
        message_type=message_type,
        url=url,
        buyer=buyer,
        supplier=supplier,
        trace_id=trace_id,
    )


def log_payload_sending(payload_id: str, url: str, size_bytes: int) -> None:
    _emit("payload_sending", payload_id=payload_id, url=url, size_bytes=size_bytes)


def log_response_received(
    payload_id: str, status_code: int, size_bytes: int, duration_ms: float
) -> None:
    _emit(
        "response_received",
        payload_id=payload_id,
        status_code=status_code,
        size_bytes=size_bytes,
        duration_ms=round(duration_ms, 2),
    )


def log_submit_completed(payload_id: str, state: str, is_test: bool, is_empty: bool) -> None:
    _emit(
        "submit_completed",
        payload_id=payload_id,
        state=state,
        is_test=is_test,
        is_empty=is_empty,
    )


def log_submit_failed(payload_id: str, stage: str, error_type: str, error: str) -> None:
    _emit(
        "submit_failed",
        payload_id=payload_id,
        stage=stage,
        error_type=error_type,
        error=error,
    )
