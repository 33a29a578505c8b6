"""
Tests for the cXML serializer and the bundled DTD check.
"""

from __future__ import annotations

import pytest
from lxml import etree

from cxml_outbound.exceptions import MalformedDocumentError, SchemaInvalidError
from cxml_outbound.render import XML_LANG
from cxml_outbound.schema import DtdValidator


def _parse(text: str) -> etree._Element:
    return etree.fromstring(text.encode("utf-8"))


# =============================================================================
# Envelope
# =============================================================================


class TestEnvelope:

    def test_declaration_and_doctype(self, order):
        text = order.render()
        assert text.startswith("<?xml version='1.0' encoding='UTF-8'?>")
        assert '<!DOCTYPE cXML SYSTEM "http://xml.cxml.org/schemas/cXML/1.2.014/cXML.dtd">' in text

    def test_root_attributes(self, order):
        root = _parse(order.render())
        assert root.tag == "cXML"
        assert root.get("payloadID") == "order-payload@acme.example"
        assert root.get("version") == "1.2.014"
        assert root.get(XML_LANG) == "en"
        assert root.get("timestamp") == order.timestamp

    def test_header_credentials(self, order):
        root = _parse(order.render())
        assert root.findtext("Header/From/Credential/Identity") == "AN01000000001"
        assert root.find("Header/To/Credential").get("domain") == "DUNS"
        assert root.findtext("Header/Sender/Credential/SharedSecret") == "welcome1"
        assert root.findtext("Header/Sender/UserAgent") == "Procurement Portal 4.2"

    def test_to_string_is_compact(self, order):
        compact = order.to_string()
        assert "\n  <" not in compact
        assert str(order) == compact
        assert "\n  <" in order.render(pretty=True)

    def test_render_does_not_mutate(self, invoice):
        before = invoice.properties()
        snapshot = repr(before)
        invoice.render()
        assert repr(invoice.properties()) == snapshot


# =============================================================================
# OrderRequest
# =============================================================================


class TestOrderRender:

    def test_header_attributes(self, order):
        header = _parse(order.render()).find("Request/OrderRequest/OrderRequestHeader")
        assert header.get("orderID") == "PO-10045"
        assert header.get("orderDate") == "2026-10-01T09:30:00.000-05:00"
        assert header.get("type") == "new"
        assert header.get("orderType") == "regular"

    def test_total_rendered_after_prepare(self, order):
        assert _parse(order.render()).find(".//OrderRequestHeader/Total") is None
        order.prepare_for_render()
        money = _parse(order.render()).find(".//OrderRequestHeader/Total/Money")
        assert money.get("currency") == "USD"
        assert money.text == "13.00"

    def test_items(self, order):
        items = _parse(order.render()).findall("Request/OrderRequest/ItemOut")
        assert [i.get("lineNumber") for i in items] == ["1", "2"]
        assert items[0].get("quantity") == "4"
        assert items[0].findtext("ItemID/SupplierPartID") == "PEN-BLU-12"
        assert items[0].findtext("ItemDetail/UnitPrice/Money") == "2.50"
        assert items[0].findtext("ItemDetail/UnitOfMeasure") == "BX"
        classification = items[0].find("ItemDetail/Classification")
        assert (classification.get("domain"), classification.text) == ("UNSPSC", "44121704")

    def test_addresses_and_payment(self, order):
        header = _parse(order.render()).find(".//OrderRequestHeader")
        ship_to = header.find("ShipTo/Address")
        assert [d.text for d in ship_to.findall("PostalAddress/DeliverTo")] == ["Receiving Dock 3", "Attn: J. Rivera"]
        assert header.findtext("BillTo/Address/Name") == "Acme Manufacturing"
        assert [s.text for s in header.findall("BillTo/Address/PostalAddress/Street")] == ["100 Main Street", "Suite 400"]
        assert header.findtext("BillTo/Address/Email") == "ap@acme.example"
        assert header.findtext("BillTo/Address/Phone/TelephoneNumber/AreaOrCityCode") == "217"
        assert header.find("Payment/PCard").get("expiration") == "2027-03-31"

    def test_deployment_mode(self, order):
        assert _parse(order.render()).find("Request").get("deploymentMode") == "test"


# =============================================================================
# InvoiceDetailRequest
# =============================================================================


class TestInvoiceRender:

    def test_doctype_names_invoice_dtd(self, invoice):
        assert "1.2.014/InvoiceDetail.dtd" in invoice.render()

    def test_request_header(self, invoice):
        header = _parse(invoice.render()).find("Request/InvoiceDetailRequest/InvoiceDetailRequestHeader")
        assert header.get("invoiceID") == "INV-88120"
        assert header.get("purpose") == "standard"
        assert header.get("operation") == "new"
        indicator = header.find("InvoiceDetailLineIndicator")
        assert indicator.get("isTaxInLine") == "yes"
        assert indicator.get("isAccountingInLine") == "yes"
        assert header.find("PaymentTerm").get("payInNumberOfDays") == "30"
        assert [p.find("Contact").get("role") for p in header.findall("InvoicePartner")] == ["remitTo", "billTo"]
        assert header.find("InvoiceDetailShipping/Contact").get("role") == "shipTo"

    def test_taxes_and_distributions_follow_their_line(self, invoice):
        items = _parse(invoice.render()).findall(".//InvoiceDetailItem")
        assert [i.get("invoiceLineNumber") for i in items] == ["1", "2"]
        first, second = items
        assert first.findtext("Tax/TaxDetail/TaxableAmount/Money") == "10.00"
        assert second.findtext("Tax/TaxDetail/TaxableAmount/Money") == "3.00"
        assert first.find("Distribution/Accounting").get("name") == "Cost Center"
        assert second.find("Distribution") is None

    def test_summary_tax_is_the_sum_of_summary_taxes(self, invoice):
        summary = _parse(invoice.render()).find(".//InvoiceDetailSummary")
        assert summary.findtext("Tax/Money") == "1.04"
        assert summary.findtext("DueAmount/Money") == "14.04"

    def test_valid_against_bundled_dtd(self, invoice):
        DtdValidator().validate(invoice.render(), "InvoiceDetail.dtd")

    def test_missing_summary_fails_dtd(self, invoice_without_summary):
        with pytest.raises(SchemaInvalidError) as exc_info:
            DtdValidator().validate(invoice_without_summary.render(), "InvoiceDetail.dtd")
        assert exc_info.value.dtd == "InvoiceDetail.dtd"
        assert exc_info.value.errors


# =============================================================================
# DtdValidator
# =============================================================================


class TestDtdValidator:

    def test_malformed_text(self):
        with pytest.raises(MalformedDocumentError) as exc_info:
            DtdValidator().check_well_formed("<cXML><Header></cXML>")
        assert exc_info.value.errors

    def test_malformed_text_is_schema_invalid(self):
        with pytest.raises(SchemaInvalidError):
            DtdValidator().validate("<cXML>", "InvoiceDetail.dtd")

    def test_unknown_dtd(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DtdValidator(tmp_path).load_dtd("cXML.dtd")
