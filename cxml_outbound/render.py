"""cXML serializer: one lxml builder per message type.

Builders read the document's property tree and never mutate it. Output is
UTF-8 text with an XML declaration and a DOCTYPE naming the DTD of the
message type.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from lxml import etree

from cxml_outbound.constants import DTD_BASE_URL, MessageType
from cxml_outbound.normalizer import number_text, to_decimal, yes_flag
from cxml_outbound.telemetry import SPAN_RENDER, document_attributes, get_tracer

if TYPE_CHECKING:
    from cxml_outbound.document import CxmlDocument

logger = logging.getLogger(__name__)

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

_EMPTY_CREDENTIAL = {"domain": "", "identity": ""}


def doctype_for(message_type: MessageType, version: str) -> str:
    return f'<!DOCTYPE cXML SYSTEM "{DTD_BASE_URL}/{version}/{message_type.dtd_name}">'


def render_document(document: CxmlDocument, pretty: bool = True) -> str:
    """Serialize *document* to cXML wire text."""
    with get_tracer().start_as_current_span(SPAN_RENDER, attributes=document_attributes(document)):
        props = document.properties()
        build = RENDERERS[document.message_type]

        root = _envelope(props)
        build(root, props)

        raw = etree.tostring(
            root,
            xml_declaration=True,
            encoding="UTF-8",
            pretty_print=pretty,
            doctype=doctype_for(document.message_type, props["version"]),
        )
        text = raw.decode("utf-8")
        logger.debug("Rendered %s %s (%d bytes)", document.message_type.value, props["payload_id"], len(raw))
        return text


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _el(parent: etree._Element, tag: str, text: Any = None, **attrs: Any) -> etree._Element:
    element = etree.SubElement(parent, tag)
    for key, value in attrs.items():
        if value is not None:
            element.set(key, _str(value))
    if text is not None:
        element.text = _str(text)
    return element


def _lang(element: etree._Element, language: Any) -> etree._Element:
    element.set(XML_LANG, _str(language))
    return element


def _described(parent: etree._Element, tag: str, text: Any, language: Any) -> etree._Element:
    return _lang(_el(parent, tag, text), language)


def _money(parent: etree._Element, tag: str | None, amount: Any, currency: Any) -> etree._Element:
    holder = _el(parent, tag) if tag else parent
    _el(holder, "Money", number_text(amount), currency=_str(currency))
    return holder


def _lines(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_str(line) for line in value]
    return [_str(value)]


def _envelope(props: dict[str, Any]) -> etree._Element:
    root = etree.Element("cXML")
    root.set("payloadID", props["payload_id"])
    root.set("timestamp", props["timestamp"])
    root.set("version", props["version"])
    _lang(root, props["language"])

    header = props.get("header") or {}
    head = _el(root, "Header")
    for tag, key in (("From", "from"), ("To", "to")):
        _credential(_el(head, tag), header.get(key) or _EMPTY_CREDENTIAL)

    sender_data = header.get("sender") or {}
    sender = _el(head, "Sender")
    credential = _credential(sender, sender_data or _EMPTY_CREDENTIAL)
    _el(credential, "SharedSecret", sender_data.get("shared_secret", ""))
    _el(sender, "UserAgent", sender_data.get("user_agent", ""))
    return root


def _credential(parent: etree._Element, data: dict[str, Any]) -> etree._Element:
    credential = _el(parent, "Credential", domain=_str(data.get("domain")))
    _el(credential, "Identity", data.get("identity", ""))
    return credential


def _postal_address(
    parent: etree._Element,
    data: dict[str, Any],
    attn: list[str] | None = None,
    name: str | None = None,
) -> None:
    street = _lines(data.get("street"))
    if not (street or attn or data.get("city")):
        return
    postal = _el(parent, "PostalAddress", name=name)
    for line in attn or ():
        _el(postal, "DeliverTo", line)
    for line in street:
        _el(postal, "Street", line)
    _el(postal, "City", data.get("city", ""))
    if data.get("state") is not None:
        _el(postal, "State", data["state"])
    if data.get("postal_code") is not None:
        _el(postal, "PostalCode", data["postal_code"])
    country = data.get("country", "")
    iso_code = data.get("iso_country_code") or data.get("country_code") or country
    _el(postal, "Country", country, isoCountryCode=iso_code)


def _email(parent: etree._Element, email: Any) -> None:
    if isinstance(email, dict):
        _el(parent, "Email", email.get("address"), name=email.get("nickname"))
    elif email:
        _el(parent, "Email", email)


def _phone(parent: etree._Element, phone: dict[str, Any]) -> None:
    element = _el(parent, "Phone", name=phone.get("nickname"))
    number = _el(element, "TelephoneNumber")
    _el(
        number,
        "CountryCode",
        phone["country_code"],
        isoCountryCode=phone.get("iso_country_code", ""),
    )
    _el(number, "AreaOrCityCode", phone["area_or_city_code"])
    _el(number, "Number", phone["number"])
    if phone.get("extension"):
        _el(number, "Extension", phone["extension"])


# ---------------------------------------------------------------------------
# OrderRequest
# ---------------------------------------------------------------------------


def _order_address(parent: etree._Element, block: dict[str, Any], language: str) -> None:
    address_data = block["address"]
    address = _el(
        parent,
        "Address",
        addressID=address_data.get("address_id"),
        isoCountryCode=address_data.get("country_code"),
    )
    _described(address, "Name", address_data.get("company_name"), language)
    _postal_address(address, address_data, attn=address_data.get("attn"), name=address_data.get("nickname"))
    if block.get("email"):
        _email(address, block["email"])
    if block.get("phone"):
        _phone(address, block["phone"])


def _render_order(root: etree._Element, props: dict[str, Any]) -> None:
    language = props["language"]
    request = _el(root, "Request", deploymentMode=props.get("deployment_mode"))
    order = _el(request, "OrderRequest")

    header = _el(
        order,
        "OrderRequestHeader",
        orderID=props["id"],
        orderDate=props["date"],
        type=props["request_type"],
        orderType=props["order_type"],
    )

    total = props.get("total")
    if total:
        _money(header, "Total", total["amount"], total["currency"])
    if props["ship_to"]:
        _order_address(_el(header, "ShipTo"), props["ship_to"], language)
    if props["bill_to"]:
        _order_address(_el(header, "BillTo"), props["bill_to"], language)

    details = props["order"]
    fallback_currency = (total or {}).get("currency", "")
    if details.get("shipping"):
        shipping = details["shipping"]
        holder = _money(header, "Shipping", shipping["amount"], shipping.get("currency") or fallback_currency)
        _described(holder, "Description", shipping.get("description", ""), language)
    if details.get("tax"):
        tax = details["tax"]
        holder = _money(header, "Tax", tax["amount"], tax["currency"])
        _described(holder, "Description", tax.get("description", ""), language)
    if details.get("pcard"):
        pcard = details["pcard"]
        _el(_el(header, "Payment"), "PCard", number=pcard["acct"], expiration=pcard["exp"])

    for item in props["items"]:
        item_out = _el(
            order,
            "ItemOut",
            quantity=number_text(item["quantity"]),
            lineNumber=item["line_number"],
        )
        item_id = _el(item_out, "ItemID")
        _el(item_id, "SupplierPartID", item["supplier_part_id"])
        if item.get("supplier_part_auxiliary_id"):
            _el(item_id, "SupplierPartAuxiliaryID", item["supplier_part_auxiliary_id"])

        detail = _el(item_out, "ItemDetail")
        _money(detail, "UnitPrice", item["unit_price"], item["currency"])
        _described(detail, "Description", item["name"], language)
        _el(detail, "UnitOfMeasure", item["uom"])
        for domain, code in item["classification"].items():
            _el(detail, "Classification", code, domain=domain)
        if item.get("manufacturer_part_id"):
            _el(detail, "ManufacturerPartID", item["manufacturer_part_id"])


# ---------------------------------------------------------------------------
# InvoiceDetailRequest
# ---------------------------------------------------------------------------


def _invoice_contact(parent: etree._Element, contact: dict[str, Any]) -> None:
    element = _el(parent, "Contact", role=contact["role"], addressID=contact.get("address_id"))
    _described(element, "Name", contact["name"], contact["language"])
    _postal_address(element, contact)
    _email(element, contact.get("email"))


def _tax_detail(parent: etree._Element, tax: dict[str, Any]) -> None:
    detail = _el(
        parent,
        "TaxDetail",
        purpose=tax["purpose"],
        category=tax["category"],
        percentageRate=number_text(tax["percent_rate"]),
    )
    _money(detail, "TaxableAmount", tax["taxable_amt"], tax["taxable_currency"])
    _money(detail, "TaxAmount", tax["tax_amt"], tax.get("tax_currency") or tax["taxable_currency"])
    _described(detail, "TaxLocation", tax["tax_location"], tax["tax_location_lang"])
    _described(detail, "Description", tax["tax_desc"], tax["tax_desc_lang"])


def _distribution(parent: etree._Element, dist: dict[str, Any]) -> None:
    element = _el(parent, "Distribution")
    accounting = _el(element, "Accounting", name=dist["dist_name"])
    for level in ("seg1", "seg2"):
        segment = _el(accounting, "AccountingSegment", id=dist[f"dist_{level}"])
        _described(segment, "Name", dist[f"dist_{level}_name"], dist[f"dist_{level}_namelang"])
        _described(segment, "Description", dist[f"dist_{level}_desc"], dist[f"dist_{level}_desclang"])
    _money(element, "Charge", dist["dist_amt"], dist["dist_currency"])


def _assign_to_lines(entries: list[dict[str, Any]], items: list[dict[str, Any]]) -> dict[int, list[dict[str, Any]]]:
    """
    Group taxes/distributions under invoice lines.

    An explicit ``invoice_line_number`` wins, then the first line with the
    same ``invoice_id``, then the first line.
    """
    grouped: dict[int, list[dict[str, Any]]] = {item["invoice_line_number"]: [] for item in items}
    if not items:
        return grouped
    for entry in entries:
        line = entry.get("invoice_line_number")
        if not isinstance(line, int) or line not in grouped:
            line = next(
                (item["invoice_line_number"] for item in items if item["invoice_id"] == entry.get("invoice_id")),
                items[0]["invoice_line_number"],
            )
        grouped[line].append(entry)
    return grouped


def _render_invoice(root: etree._Element, props: dict[str, Any]) -> None:
    language = props["language"]
    request = _el(root, "Request", deploymentMode=props.get("deployment_mode"))
    invoice = _el(request, "InvoiceDetailRequest")

    request_header = props.get("request_header") or {}
    header = _el(
        invoice,
        "InvoiceDetailRequestHeader",
        invoiceID=_str(request_header.get("invoice_id")),
        purpose=_str(request_header.get("purpose")),
        operation=_str(request_header.get("operation")),
        invoiceDate=_str(request_header.get("invoice_date")),
    )
    _el(header, "InvoiceDetailHeaderIndicator")
    _el(
        header,
        "InvoiceDetailLineIndicator",
        isTaxInLine=yes_flag(request_header.get("is_tax_in_line")),
        isAccountingInLine=yes_flag(request_header.get("is_accounting_in_line")),
    )

    for contact in props["partner_contacts"]:
        partner = _el(header, "InvoicePartner")
        _invoice_contact(partner, contact)
        if contact.get("id_ref_domain") and contact.get("id_ref_identifier"):
            _el(
                partner,
                "IdReference",
                identifier=contact["id_ref_identifier"],
                domain=contact["id_ref_domain"],
            )

    if props["ship_contacts"]:
        shipping = _el(header, "InvoiceDetailShipping")
        for contact in props["ship_contacts"]:
            _invoice_contact(shipping, contact)

    term = props["payment_term"]
    if term.get("pay_in_num_of_days") is not None:
        payment_term = _el(header, "PaymentTerm", payInNumberOfDays=number_text(term["pay_in_num_of_days"]))
        if term.get("percent_rate") is not None:
            discount = _el(payment_term, "Discount")
            _el(discount, "DiscountPercent", percent=number_text(term["percent_rate"]))

    for key, name in (("requester_email", "requesterEmail"), ("requester_name", "requesterName")):
        if request_header.get(key):
            _el(header, "Extrinsic", request_header[key], name=name)

    order = _el(invoice, "InvoiceDetailOrder")
    order_info = _el(order, "InvoiceDetailOrderInfo")
    reference = _el(order_info, "OrderReference", orderID=props["order_info"]["order_id"])
    _el(reference, "DocumentReference", payloadID=props["order_info"]["payload_id"])

    items = props["items"]
    taxes_by_line = _assign_to_lines(props["item_taxes"], items)
    dists_by_line = _assign_to_lines(props["distributions"], items)

    for item in items:
        line = item["invoice_line_number"]
        element = _el(
            order,
            "InvoiceDetailItem",
            invoiceLineNumber=line,
            quantity=number_text(item["quantity"]),
        )
        _el(element, "UnitOfMeasure", item["uom"])
        _money(element, "UnitPrice", item["unit_price"], item["unit_price_currency"])

        item_ref = _el(element, "InvoiceDetailItemReference", lineNumber=item.get("order_line_number", line))
        _el(_el(item_ref, "ItemID"), "SupplierPartID", item["part_id"])
        _described(item_ref, "Description", item["part_description"], item["part_description_lang"])

        _money(element, "SubtotalAmount", item["subtotal"], item["unit_price_currency"])
        tax = _money(element, "Tax", item["tax_amt"], item["tax_currency"])
        _described(tax, "Description", item["tax_desc"], item["tax_desc_lang"])
        for item_tax in taxes_by_line[line]:
            _tax_detail(tax, item_tax)

        _money(element, "GrossAmount", item["gross_amt"], item["gross_amt_currency"])
        _money(element, "NetAmount", item["net_amt"], item["net_amt_currency"])
        for dist in dists_by_line[line]:
            _distribution(element, dist)

    if props["summaries"]:
        _render_summary(invoice, props["summaries"][0], props["summary_taxes"])


def _render_summary(parent: etree._Element, summary: dict[str, Any], taxes: list[dict[str, Any]]) -> None:
    element = _el(parent, "InvoiceDetailSummary")
    _money(element, "SubtotalAmount", summary["sub_total_amt"], summary["sub_total_currency"])

    tax_total = sum((to_decimal(tax["tax_amt"]) for tax in taxes), Decimal(0))
    tax_currency = taxes[0]["taxable_currency"] if taxes else summary["net_currency"]
    tax = _money(element, "Tax", tax_total, tax_currency)
    _described(tax, "Description", summary["tax_desc"], summary["tax_desc_lang"])
    for summary_tax in taxes:
        _tax_detail(tax, summary_tax)

    _money(element, "ShippingAmount", summary["shipping_amt"], summary["shipping_currency"])
    _money(element, "GrossAmount", summary["gross_amt"], summary["gross_currency"])
    _money(element, "NetAmount", summary["net_amt"], summary["net_currency"])
    _money(element, "DueAmount", summary["due_amt"], summary["due_currency"])


RENDERERS: dict[MessageType, Callable[[etree._Element, dict[str, Any]], None]] = {
    MessageType.ORDER_REQUEST: _render_order,
    MessageType.INVOICE_DETAIL_REQUEST: _render_invoice,
}
