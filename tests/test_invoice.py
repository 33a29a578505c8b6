"""
Tests for InvoiceRequest builder operations.
"""

from __future__ import annotations

from datetime import date

import pytest
from lxml import etree

from cxml_outbound.exceptions import InvalidArgumentError, PreconditionError, ValidationError
from cxml_outbound.fields import (
    CONTACT_RULES,
    DISTRIBUTION_RULES,
    INVOICE_ITEM_RULES,
    ITEM_TAX_RULES,
    REQUEST_HEADER_RULES,
    SUMMARY_RULES,
    SUMMARY_TAX_RULES,
)
from cxml_outbound.invoice import InvoiceRequest


@pytest.fixture
def blank_invoice(cxml_config) -> InvoiceRequest:
    return InvoiceRequest("inv-payload@supplier.example", config=cxml_config)


class TestConstruction:

    @pytest.mark.parametrize("payload_id", [None, "", " "])
    def test_payload_id_required(self, payload_id, cxml_config):
        with pytest.raises(InvalidArgumentError):
            InvoiceRequest(payload_id, config=cxml_config)

    def test_payload_id_kept(self, blank_invoice):
        assert blank_invoice.payload_id == "inv-payload@supplier.example"
        assert blank_invoice.request_header is None

    def test_parties_follow_invoice_direction(self, blank_invoice, invoice_header):
        blank_invoice.set_header(invoice_header)
        assert blank_invoice.supplier == invoice_header["from"]
        assert blank_invoice.buyer == invoice_header["to"]


class TestRequestHeader:

    def test_required_fields(self, blank_invoice, invoice_data):
        header = invoice_data["request_header"]
        del header["purpose"]
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.set_request_header(header)
        assert exc_info.value.field == "purpose"

    def test_optional_fields_and_date(self, blank_invoice, invoice_data):
        header = invoice_data["request_header"]
        header["invoice_date"] = date(2026, 10, 5)
        header["deployment_mode"] = "production"
        blank_invoice.set_request_header(header)

        stored = blank_invoice.request_header
        assert stored["invoice_date"] == "2026-10-05"
        assert stored["is_tax_in_line"] is True
        assert stored["requester_name"] == "Jordan Rivera"

        props = blank_invoice.properties()
        assert props["deployment_mode"] == "production"
        assert props["order_info"] == {
            "order_id": "PO-10045",
            "payload_id": "1727793000000.4242.po10045@acme.example",
        }
        assert props["payment_term"] == {"percent_rate": 2, "pay_in_num_of_days": 30}

    def test_deployment_mode_defaults_from_config(self, blank_invoice, invoice_data):
        blank_invoice.set_request_header(invoice_data["request_header"])
        assert blank_invoice.properties()["deployment_mode"] == "test"


class TestItemsAndTaxes:

    def test_item_line_numbers(self, blank_invoice, make_invoice_item):
        blank_invoice.add_items([make_invoice_item(part_id="A"), make_invoice_item(part_id="B")])
        assert [(i["invoice_line_number"], i["part_id"]) for i in blank_invoice.items] == [(1, "A"), (2, "B")]

    def test_caller_line_number_is_overridden(self, invoice, make_invoice_item):
        invoice.add_item(make_invoice_item(invoice_line_number=1))
        invoice.add_item(make_invoice_item(invoice_line_number={"line": 1}))
        assert [i["invoice_line_number"] for i in invoice.items] == [1, 2, 3, 4]

        root = etree.fromstring(invoice.render().encode("utf-8"))
        lines = [el.get("invoiceLineNumber") for el in root.iter("InvoiceDetailItem")]
        assert lines == ["1", "2", "3", "4"]

    @pytest.mark.parametrize("field", ["tax_amt", "net_amt", "quantity", "subtotal"])
    def test_item_numeric_fields(self, blank_invoice, make_invoice_item, field):
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.add_item(make_invoice_item(**{field: "n/a"}))
        assert exc_info.value.field == field

    def test_batch_partial_failure(self, blank_invoice, make_invoice_item):
        batch = [make_invoice_item(), make_invoice_item(), make_invoice_item(uom=None)]
        with pytest.raises(ValidationError):
            blank_invoice.add_items(batch)
        assert [i["invoice_line_number"] for i in blank_invoice.items] == [1, 2]

    def test_tax_before_items_is_a_precondition_error(self, blank_invoice, invoice_data):
        with pytest.raises(PreconditionError):
            blank_invoice.add_item_tax(invoice_data["item_taxes"][0])
        # Ordering is checked before the payload
        with pytest.raises(PreconditionError):
            blank_invoice.add_item_tax({})

    def test_tax_after_items(self, blank_invoice, make_invoice_item, invoice_data):
        blank_invoice.add_item(make_invoice_item())
        blank_invoice.add_item_taxes(invoice_data["item_taxes"])
        assert len(blank_invoice.item_taxes) == 2

    def test_tax_invoice_id_is_not_enforced(self, blank_invoice, make_invoice_item, invoice_data):
        blank_invoice.add_item(make_invoice_item())
        tax = invoice_data["item_taxes"][0]
        tax["invoice_id"] = "SOME-OTHER-INVOICE"
        blank_invoice.add_item_tax(tax)
        assert blank_invoice.item_taxes[0]["invoice_id"] == "SOME-OTHER-INVOICE"

    def test_tax_requires_taxable_amount(self, blank_invoice, make_invoice_item, invoice_data):
        blank_invoice.add_item(make_invoice_item())
        tax = invoice_data["item_taxes"][0]
        tax["taxable_amt"] = ""
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.add_item_tax(tax)
        assert exc_info.value.field == "taxable_amt"


class TestContactsDistributionsSummary:

    def test_contacts_routed_by_role(self, blank_invoice, invoice_data):
        blank_invoice.add_contacts(invoice_data["contacts"])
        assert [c["role"] for c in blank_invoice.partner_contacts] == ["remitTo", "billTo"]
        assert [c["role"] for c in blank_invoice.ship_contacts] == ["shipTo"]

    def test_ship_from_is_a_shipping_contact(self, blank_invoice, invoice_data):
        contact = invoice_data["contacts"][2]
        contact["role"] = "shipFrom"
        blank_invoice.add_contact(contact)
        assert blank_invoice.ship_contacts[0]["role"] == "shipFrom"
        assert blank_invoice.partner_contacts == []

    def test_contact_requires_city(self, blank_invoice, invoice_data):
        contact = invoice_data["contacts"][0]
        del contact["city"]
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.add_contact(contact)
        assert exc_info.value.field == "city"

    def test_contacts_batch_requires_list(self, blank_invoice):
        with pytest.raises(InvalidArgumentError):
            blank_invoice.add_contacts(None)

    def test_distribution_needs_both_segments(self, blank_invoice, invoice_data):
        dist = invoice_data["distributions"][0]
        del dist["dist_seg2_name"]
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.add_distribution(dist)
        assert exc_info.value.field == "dist_seg2_name"
        assert blank_invoice.distributions == []

    def test_summary_and_summary_tax(self, blank_invoice, invoice_data):
        blank_invoice.add_summary(invoice_data["summary"])
        blank_invoice.add_summary_tax(invoice_data["summary_taxes"][0])
        assert blank_invoice.summaries[0]["due_amt"] == "14.04"
        assert blank_invoice.summary_taxes[0]["tax_amt"] == "1.04"

    def test_summary_requires_due_amount(self, blank_invoice, invoice_data):
        summary = invoice_data["summary"]
        summary["due_amt"] = None
        with pytest.raises(ValidationError) as exc_info:
            blank_invoice.add_summary(summary)
        assert exc_info.value.field == "due_amt"


def _without(entity: dict, field: str) -> dict:
    entity = dict(entity)
    del entity[field]
    return entity


class TestEachRequiredField:
    """Dropping any required field is rejected and leaves the document as it was."""

    @pytest.mark.parametrize("field", [rule.name for rule in REQUEST_HEADER_RULES])
    def test_request_header(self, invoice, invoice_data, field):
        before = invoice.request_header
        with pytest.raises(ValidationError) as exc_info:
            invoice.set_request_header(_without(invoice_data["request_header"], field))
        assert exc_info.value.field == field
        assert invoice.request_header == before

    @pytest.mark.parametrize("field", [rule.name for rule in CONTACT_RULES])
    def test_contact(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_contact(_without(invoice_data["contacts"][0], field))
        assert exc_info.value.field == field
        assert len(invoice.partner_contacts) == 2
        assert len(invoice.ship_contacts) == 1

    @pytest.mark.parametrize("field", [rule.name for rule in INVOICE_ITEM_RULES])
    def test_item(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_item(_without(invoice_data["items"][0], field))
        assert exc_info.value.field == field
        assert len(invoice.items) == 2

    @pytest.mark.parametrize("field", [rule.name for rule in ITEM_TAX_RULES])
    def test_item_tax(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_item_tax(_without(invoice_data["item_taxes"][0], field))
        assert exc_info.value.field == field
        assert len(invoice.item_taxes) == 2

    @pytest.mark.parametrize("field", [rule.name for rule in DISTRIBUTION_RULES])
    def test_distribution(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_distribution(_without(invoice_data["distributions"][0], field))
        assert exc_info.value.field == field
        assert len(invoice.distributions) == 1

    @pytest.mark.parametrize("field", [rule.name for rule in SUMMARY_RULES])
    def test_summary(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_summary(_without(invoice_data["summary"], field))
        assert exc_info.value.field == field
        assert len(invoice.summaries) == 1

    @pytest.mark.parametrize("field", [rule.name for rule in SUMMARY_TAX_RULES])
    def test_summary_tax(self, invoice, invoice_data, field):
        with pytest.raises(ValidationError) as exc_info:
            invoice.add_summary_tax(_without(invoice_data["summary_taxes"][0], field))
        assert exc_info.value.field == field
        assert len(invoice.summary_taxes) == 1
