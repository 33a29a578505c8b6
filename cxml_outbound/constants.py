"""Protocol constants shared by documents, renderer and submit pipeline."""

from __future__ import annotations

from enum import Enum

# Sentinels
TEST_URL = "%%TEST%%"
EMPTY_BODY = "%%EMPTY%%"

# Events observable through ``CxmlDocument.on``
EVENT_SENDING = "sending"
EVENT_RECEIVED = "received"
EVENTS = (EVENT_SENDING, EVENT_RECEIVED)

CONTENT_TYPE = "application/xml"
DTD_BASE_URL = "http://xml.cxml.org/schemas/cXML"

SHIPPING_ROLES = ("shipTo", "shipFrom")
DEFAULT_NICKNAME = "default"


class MessageType(str, Enum):
    """Outbound message types and the DTD each one is declared against."""

    ORDER_REQUEST = "OrderRequest"
    INVOICE_DETAIL_REQUEST = "InvoiceDetailRequest"

    @property
    def dtd_name(self) -> str:
        if self is MessageType.INVOICE_DETAIL_REQUEST:
            return "InvoiceDetail.dtd"
        return "cXML.dtd"


class SubmitState(str, Enum):
    BUILDING = "building"
    RENDERING = "rendering"
    SCHEMA_VALIDATING = "schema_validating"
    SENDING = "sending"
    AWAITING_RESPONSE = "awaiting_response"
    TEST_SHORTCUT = "test_shortcut"
    COMPLETED = "completed"
    FAILED = "failed"


# Canned reply used by the ``%%TEST%%`` destination.
TEST_RESPONSE_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE cXML SYSTEM "{dtd_base}/{version}/cXML.dtd">\n'
    '<cXML payloadID="{payload_id}" timestamp="{timestamp}" xml:lang="{language}">\n'
    "  <Response>\n"
    '    <Status code="200" text="OK"/>\n'
    "  </Response>\n"
    "</cXML>\n"
)
