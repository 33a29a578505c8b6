"""Shared fixtures: configuration, sample payloads, built documents, mock network."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from cxml_outbound.config import BUNDLED_DTD_DIR, CxmlConfig
from cxml_outbound.invoice import InvoiceRequest
from cxml_outbound.order import OrderRequest
from cxml_outbound.submit import SubmitPipeline
from cxml_outbound.transport import HttpTransport

SAMPLE_DIR = Path(__file__).resolve().parent.parent / "sample_data"

SUPPLIER_URL = "https://supplier.example/cxml"

OK_RESPONSE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<cXML payloadID="reply@supplier.example" timestamp="2026-10-01T10:00:00-05:00">'
    '<Response><Status code="200" text="OK"/></Response></cXML>'
)


def _load(name: str) -> dict:
    with open(SAMPLE_DIR / name, encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture
def cxml_config() -> CxmlConfig:
    return CxmlConfig(
        request_timeout=5.0,
        user_agent="cxml-outbound-tests/1.0",
        protocol_version="1.2.014",
        deployment_mode="test",
        default_language="en",
        dtd_dir=str(BUNDLED_DTD_DIR),
        otel_endpoint="",
        log_level="INFO",
    )


@pytest.fixture
def order_data() -> dict:
    return _load("sample_order.json")


@pytest.fixture
def invoice_data() -> dict:
    return _load("sample_invoice.json")


@pytest.fixture
def order_header(order_data) -> dict:
    return order_data["header"]


@pytest.fixture
def invoice_header(invoice_data) -> dict:
    return invoice_data["header"]


@pytest.fixture
def make_order_item() -> Callable[..., dict]:
    def _make(**overrides) -> dict:
        item = {
            "name": "Stapler",
            "quantity": 1,
            "supplier_part_id": "STP-01",
            "unit_price": 5,
            "currency": "USD",
            "uom": "EA",
            "classification": {"UNSPSC": "44121615"},
        }
        item.update(overrides)
        return item

    return _make


@pytest.fixture
def make_invoice_item(invoice_data) -> Callable[..., dict]:
    def _make(**overrides) -> dict:
        item = dict(invoice_data["items"][0])
        item.update(overrides)
        return item

    return _make


@pytest.fixture
def order(order_data, cxml_config) -> OrderRequest:
    """The sample purchase order, fully populated (two USD items, 4 x 2.50 + 1 x 3)."""
    doc = OrderRequest(
        order_data["order_id"],
        order_data["order_date"],
        payload_id="order-payload@acme.example",
        config=cxml_config,
    )
    doc.set_header(order_data["header"])
    doc.add_items(order_data["items"])
    doc.set_billing_info(order_data["billing"])
    doc.set_shipping_info(order_data["shipping"])
    return doc


def _build_invoice(data: dict, config: CxmlConfig, *, with_summary: bool = True) -> InvoiceRequest:
    doc = InvoiceRequest(data["payload_id"], "2026-10-05T12:00:00.000-05:00", config=config)
    doc.set_header(data["header"])
    doc.set_request_header(data["request_header"])
    doc.add_contacts(data["contacts"])
    doc.add_items(data["items"])
    doc.add_item_taxes(data["item_taxes"])
    doc.add_distributions(data["distributions"])
    if with_summary:
        doc.add_summary(data["summary"])
        for tax in data["summary_taxes"]:
            doc.add_summary_tax(tax)
    return doc


@pytest.fixture
def invoice(invoice_data, cxml_config) -> InvoiceRequest:
    return _build_invoice(invoice_data, cxml_config)


@pytest.fixture
def invoice_without_summary(invoice_data, cxml_config) -> InvoiceRequest:
    return _build_invoice(invoice_data, cxml_config, with_summary=False)


class RecordingHandler:
    """``httpx.MockTransport`` handler that records requests and replays one reply."""

    def __init__(self, status_code: int = 200, body: str = OK_RESPONSE, error: Exception | None = None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body.encode("utf-8"))


@pytest.fixture
def make_pipeline(cxml_config) -> Callable[..., tuple[SubmitPipeline, RecordingHandler]]:
    def _make(**handler_kwargs) -> tuple[SubmitPipeline, RecordingHandler]:
        handler = RecordingHandler(**handler_kwargs)
        transport = HttpTransport(transport=httpx.MockTransport(handler))
        return SubmitPipeline(transport=transport, config=cxml_config), handler

    return _make
