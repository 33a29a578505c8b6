"""InvoiceRequest: an outbound InvoiceDetailRequest."""

from __future__ import annotations

import copy
import logging
from typing import Any

from cxml_outbound.config import CxmlConfig
from cxml_outbound.constants import SHIPPING_ROLES, MessageType
from cxml_outbound.document import CxmlDocument, require_sequence, require_text
from cxml_outbound.exceptions import PreconditionError
from cxml_outbound.fields import (
    CONTACT_RULES,
    DISTRIBUTION_RULES,
    INVOICE_ITEM_RULES,
    ITEM_TAX_RULES,
    REQUEST_HEADER_RULES,
    SUMMARY_RULES,
    SUMMARY_TAX_RULES,
    check_fields,
)
from cxml_outbound.normalizer import iso_timestamp

logger = logging.getLogger(__name__)

_OPTIONAL_REQUEST_FIELDS = (
    "is_tax_in_line",
    "is_accounting_in_line",
    "requester_email",
    "requester_name",
)


class InvoiceRequest(CxmlDocument):
    """
    An invoice, validated against ``InvoiceDetail.dtd`` before it is sent.

    Item taxes correlate to items through ``invoice_id``; the correlation is
    used when rendering but never enforced.
    """

    message_type = MessageType.INVOICE_DETAIL_REQUEST
    validates_schema = True

    # Invoices travel supplier -> buyer.
    _buyer_key = "to"
    _supplier_key = "from"

    def __init__(
        self,
        payload_id: Any,
        timestamp: Any = None,
        *,
        language: str | None = None,
        config: CxmlConfig | None = None,
    ) -> None:
        payload_id = require_text(payload_id, "payload_id")
        super().__init__(
            payload_id=payload_id,
            timestamp=timestamp,
            language=language,
            config=config,
        )
        self._props = {
            "deployment_mode": self.config.deployment_mode,
            "request_header": None,
            "order_info": {"order_id": "", "payload_id": ""},
            "payment_term": {"percent_rate": None, "pay_in_num_of_days": None},
            "partner_contacts": [],
            "ship_contacts": [],
            "items": [],
            "item_taxes": [],
            "distributions": [],
            "summaries": [],
            "summary_taxes": [],
        }

    @property
    def request_header(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._props["request_header"])

    @property
    def items(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["items"])

    @property
    def item_taxes(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["item_taxes"])

    @property
    def distributions(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["distributions"])

    @property
    def partner_contacts(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["partner_contacts"])

    @property
    def ship_contacts(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["ship_contacts"])

    @property
    def summaries(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["summaries"])

    @property
    def summary_taxes(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["summary_taxes"])

    # ------------------------------------------------------------------
    # Request header
    # ------------------------------------------------------------------

    def set_request_header(self, header: dict[str, Any]) -> InvoiceRequest:
        """
        Set invoice metadata: ``invoice_date``, ``invoice_id``, ``operation``
        and ``purpose`` are required.

        Optional keys: ``deployment_mode``, ``is_tax_in_line``,
        ``is_accounting_in_line``, ``requester_email``, ``requester_name``,
        ``order_id``, ``order_payload_id``, ``percent_rate``,
        ``pay_in_num_of_days``.
        """
        check_fields(header, REQUEST_HEADER_RULES, "Request header")

        request_header = {
            "invoice_date": iso_timestamp(header["invoice_date"]),
            "invoice_id": str(header["invoice_id"]),
            "operation": header["operation"],
            "purpose": header["purpose"],
        }
        for key in _OPTIONAL_REQUEST_FIELDS:
            request_header[key] = header.get(key)

        props = self._props
        props["request_header"] = request_header
        if header.get("deployment_mode"):
            props["deployment_mode"] = header["deployment_mode"]
        props["order_info"] = {
            "order_id": header.get("order_id") or "",
            "payload_id": header.get("order_payload_id") or "",
        }
        props["payment_term"] = {
            "percent_rate": header.get("percent_rate"),
            "pay_in_num_of_days": header.get("pay_in_num_of_days"),
        }
        return self

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def add_contact(self, contact: dict[str, Any]) -> InvoiceRequest:
        """
        Add a party contact. ``shipTo``/``shipFrom`` roles go to the shipping
        block, every other role becomes an invoice partner.
        """
        check_fields(contact, CONTACT_RULES, "Contact")
        target = "ship_contacts" if contact["role"] in SHIPPING_ROLES else "partner_contacts"
        self._props[target].append(copy.deepcopy(contact))
        return self

    def add_contacts(self, contacts: list[dict[str, Any]]) -> InvoiceRequest:
        for contact in require_sequence(contacts, "contacts"):
            self.add_contact(contact)
        return self

    # ------------------------------------------------------------------
    # Line items, taxes, distributions
    # ------------------------------------------------------------------

    def add_item(self, item: dict[str, Any]) -> InvoiceRequest:
        """Add one invoice line; the line number is assigned on acceptance."""
        check_fields(item, INVOICE_ITEM_RULES, "Invoice item")
        items = self._props["items"]
        line_number = len(items) + 1
        logger.debug("Adding item to invoice %s (line %d)", self.payload_id, line_number)
        items.append({**copy.deepcopy(item), "invoice_line_number": line_number})
        return self

    def add_items(self, items: list[dict[str, Any]]) -> InvoiceRequest:
        """Add each item in order; items accepted before a failure stay added."""
        for item in require_sequence(items, "items"):
            self.add_item(item)
        return self

    def add_item_tax(self, tax: dict[str, Any]) -> InvoiceRequest:
        if not self._props["items"]:
            raise PreconditionError(
                "Items must be added before the taxes that correspond to them."
            )
        check_fields(tax, ITEM_TAX_RULES, "Item tax")
        self._props["item_taxes"].append(copy.deepcopy(tax))
        return self

    def add_item_taxes(self, taxes: list[dict[str, Any]]) -> InvoiceRequest:
        for tax in require_sequence(taxes, "taxes"):
            self.add_item_tax(tax)
        return self

    def add_distribution(self, distribution: dict[str, Any]) -> InvoiceRequest:
        """Add a cost allocation with two accounting segment levels."""
        check_fields(distribution, DISTRIBUTION_RULES, "Distribution")
        self._props["distributions"].append(copy.deepcopy(distribution))
        return self

    def add_distributions(self, distributions: list[dict[str, Any]]) -> InvoiceRequest:
        for distribution in require_sequence(distributions, "distributions"):
            self.add_distribution(distribution)
        return self

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def add_summary(self, summary: dict[str, Any]) -> InvoiceRequest:
        """Add the invoice totals (everything except the tax breakdown)."""
        check_fields(summary, SUMMARY_RULES, "Summary")
        self._props["summaries"].append(copy.deepcopy(summary))
        return self

    def add_summary_tax(self, summary_tax: dict[str, Any]) -> InvoiceRequest:
        check_fields(summary_tax, SUMMARY_TAX_RULES, "Summary tax")
        self._props["summary_taxes"].append(copy.deepcopy(summary_tax))
        return self
