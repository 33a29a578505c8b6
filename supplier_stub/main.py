"""Supplier stub: FastAPI application standing in for a supplier's cXML endpoint.

POST /cxml        Accept a cXML request and answer with a cXML Response.
POST /cxml/empty  Accept a cXML request and answer with an empty body.
GET  /health      Liveness check.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from lxml import etree

from cxml_outbound.constants import CONTENT_TYPE, DTD_BASE_URL
from cxml_outbound.exceptions import MalformedDocumentError
from cxml_outbound.normalizer import now_timestamp
from cxml_outbound.schema import DtdValidator
from cxml_outbound.telemetry import SPAN_RECEIVE, get_tracer, incoming_context, init_telemetry
from supplier_stub.config import config

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
)
logger = logging.getLogger("supplier_stub")

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="cXML Supplier Stub",
    version="0.1.0",
    description="Local cXML endpoint for exercising outbound submissions",
)

_validator = DtdValidator()


@app.on_event("startup")
async def _startup() -> None:
    init_telemetry("supplier-stub")
    logger.info("Supplier stub started, shared_secret_check=%s", bool(config.shared_secret))


# ---------------------------------------------------------------------------
# cXML Response
# ---------------------------------------------------------------------------


def build_status_response(code: int, text: str, message: str = "") -> str:
    """Render a cXML ``Response`` carrying a single ``Status``."""
    root = etree.Element("cXML")
    root.set("payloadID", f"{uuid.uuid4().hex}@supplier-stub")
    root.set("timestamp", now_timestamp())
    root.set("{http://www.w3.org/XML/1998/namespace}lang", config.language)
    response = etree.SubElement(root, "Response")
    status = etree.SubElement(response, "Status", code=str(code), text=text)
    if message:
        status.text = message
    raw = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
        doctype=f'<!DOCTYPE cXML SYSTEM "{DTD_BASE_URL}/1.2.014/cXML.dtd">',
    )
    return raw.decode("utf-8")


def _answer(body: str) -> tuple[int, str, str]:
    try:
        root = _validator.parse(body)
    except MalformedDocumentError as exc:
        logger.warning("Rejected malformed cXML: %s", "; ".join(exc.errors))
        return 400, "Bad Request", "; ".join(exc.errors)

    payload_id = root.get("payloadID", "")
    secret = root.findtext("Header/Sender/Credential/SharedSecret") or ""
    if config.shared_secret and secret != config.shared_secret:
        logger.warning("Rejected cXML %s: shared secret mismatch", payload_id)
        return 401, "Unauthorized", "Invalid sender credentials"

    request = root.find("Request")
    kind = request[0].tag if request is not None and len(request) else "unknown"
    logger.info("Accepted %s %s", kind, payload_id)
    return 200, "OK", ""


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok", "shared_secret_check": bool(config.shared_secret)}


@app.post("/cxml")
async def receive_cxml(request: Request):
    body = (await request.body()).decode("utf-8", errors="replace")

    # Continue the sender's W3C trace
    with get_tracer().start_as_current_span(
        SPAN_RECEIVE,
        context=incoming_context(request.headers),
        attributes={"http.request.body.size": len(body)},
    ) as span:
        code, text, message = _answer(body)
        span.set_attribute("cxml.status_code", code)

    return Response(content=build_status_response(code, text, message), media_type=CONTENT_TYPE)


@app.post("/cxml/empty")
async def receive_cxml_empty(request: Request):
    body = await request.body()
    logger.info("Accepted %d bytes, answering with an empty body", len(body))
    return Response(content=b"", media_type=CONTENT_TYPE)


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def _global_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": str(exc)},
    )
