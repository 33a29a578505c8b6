"""Declarative required-field rules for every document sub-entity.

Each entity type has an ordered tuple of ``FieldRule``; ``check_fields``
walks it and raises ``ValidationError`` for the first violated rule.
Rules:
1. REQUIRED  value is not None
2. NUMERIC   present and coerces to a finite number ("5" passes)
3. NONBLANK  present and not empty
4. MAPPING   a non-empty dict
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from cxml_outbound.exceptions import ValidationError
from cxml_outbound.normalizer import is_numeric


class Kind(Enum):
    REQUIRED = "required"
    NUMERIC = "numeric"
    NONBLANK = "nonblank"
    MAPPING = "mapping"


@dataclass(frozen=True)
class FieldRule:
    name: str
    kind: Kind = Kind.REQUIRED

    def accepts(self, value: Any) -> bool:
        if value is None:
            return False
        if self.kind is Kind.NUMERIC:
            return is_numeric(value)
        if self.kind is Kind.NONBLANK:
            return bool(value)
        if self.kind is Kind.MAPPING:
            return isinstance(value, Mapping) and len(value) > 0
        return True

    def describe(self) -> str:
        if self.kind is Kind.NUMERIC:
            return "is required and must be numeric"
        if self.kind is Kind.NONBLANK:
            return "is required and must not be blank"
        if self.kind is Kind.MAPPING:
            return "is required and must be a non-empty mapping"
        return "is required"


def _rules(*entries: str | tuple[str, Kind]) -> tuple[FieldRule, ...]:
    return tuple(
        FieldRule(entry) if isinstance(entry, str) else FieldRule(*entry)
        for entry in entries
    )


def check_fields(entity: Any, rules: tuple[FieldRule, ...], context: str) -> None:
    """Raise ``ValidationError`` naming the first field of *entity* that breaks *rules*."""
    if not isinstance(entity, Mapping):
        entity = {}
    for rule in rules:
        if not rule.accepts(entity.get(rule.name)):
            raise ValidationError(
                f'{context}: "{rule.name}" {rule.describe()}.',
                entity=context,
                field=rule.name,
            )


N = Kind.NUMERIC
B = Kind.NONBLANK
M = Kind.MAPPING

# ---------------------------------------------------------------------------
# Header (both message types)
# ---------------------------------------------------------------------------

HEADER_RULES = _rules("to", "from", "sender")
CREDENTIAL_RULES = _rules(("domain", B), ("identity", B))
SENDER_RULES = _rules(("domain", B), ("identity", B), ("shared_secret", B))

# ---------------------------------------------------------------------------
# OrderRequest
# ---------------------------------------------------------------------------

ORDER_ITEM_RULES = _rules(
    "name",
    ("quantity", N),
    "supplier_part_id",
    ("unit_price", N),
    ("currency", B),
    "uom",
    ("classification", M),
)

ORDER_TOTAL_RULES = _rules(("amount", N), ("currency", B))
ORDER_TAX_RULES = _rules(("amount", N), ("currency", B))
ORDER_SHIPPING_METHOD_RULES = _rules(("amount", N))

ADDRESS_OPTION_RULES = _rules("address")
BILL_TO_ADDRESS_RULES = _rules(("company_name", B))
SHIP_TO_ADDRESS_RULES = _rules(("company_name", B), ("attention_of", B))
EMAIL_RULES = _rules(("address", B))
PHONE_RULES = _rules(("country_code", B), ("area_or_city_code", B), ("number", B))
PCARD_RULES = _rules(("number", B), ("expiration", B))

# ---------------------------------------------------------------------------
# InvoiceDetailRequest
# ---------------------------------------------------------------------------

REQUEST_HEADER_RULES = _rules("invoice_date", "invoice_id", "operation", "purpose")

INVOICE_ITEM_RULES = _rules(
    "part_description",
    "part_description_lang",
    "part_id",
    ("subtotal", N),
    "uom",
    ("unit_price", N),
    "unit_price_currency",
    ("gross_amt", N),
    "gross_amt_currency",
    "invoice_id",
    ("net_amt", N),
    "net_amt_currency",
    ("quantity", N),
    ("tax_amt", N),
    "tax_currency",
    "tax_desc",
    "tax_desc_lang",
)

ITEM_TAX_RULES = _rules(
    "category",
    "invoice_id",
    ("percent_rate", N),
    "purpose",
    ("tax_amt", N),
    "tax_desc",
    "tax_desc_lang",
    "tax_location",
    "tax_location_lang",
    ("taxable_amt", N),
    "taxable_currency",
)

# Summary taxes carry the same shape as line-item taxes.
SUMMARY_TAX_RULES = ITEM_TAX_RULES

SUMMARY_RULES = _rules(
    ("due_amt", N),
    "due_currency",
    ("gross_amt", N),
    "gross_currency",
    "invoice_id",
    ("net_amt", N),
    "net_currency",
    "shipping_currency",
    ("shipping_amt", N),
    ("sub_total_amt", N),
    "sub_total_currency",
    "tax_desc",
    "tax_desc_lang",
)

DISTRIBUTION_RULES = _rules(
    ("dist_amt", N),
    "dist_currency",
    "dist_name",
    "dist_seg1",
    "dist_seg1_desc",
    "dist_seg1_desclang",
    "dist_seg1_name",
    "dist_seg1_namelang",
    "dist_seg2",
    "dist_seg2_desc",
    "dist_seg2_desclang",
    "dist_seg2_name",
    "dist_seg2_namelang",
)

CONTACT_RULES = _rules("role", "name", "language", "street", "city", "state", "country")
