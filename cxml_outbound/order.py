"""OrderRequest: an outbound purchase order."""

from __future__ import annotations

import copy
import logging
from decimal import Decimal
from typing import Any

from cxml_outbound.config import CxmlConfig
from cxml_outbound.constants import DEFAULT_NICKNAME, MessageType
from cxml_outbound.document import CxmlDocument, require_sequence, require_text
from cxml_outbound.exceptions import PreconditionError, ValidationError
from cxml_outbound.fields import (
    ADDRESS_OPTION_RULES,
    BILL_TO_ADDRESS_RULES,
    EMAIL_RULES,
    ORDER_ITEM_RULES,
    ORDER_SHIPPING_METHOD_RULES,
    ORDER_TAX_RULES,
    ORDER_TOTAL_RULES,
    PCARD_RULES,
    PHONE_RULES,
    SHIP_TO_ADDRESS_RULES,
    check_fields,
)
from cxml_outbound.normalizer import end_of_month, iso_timestamp, now_timestamp, to_decimal

logger = logging.getLogger(__name__)


class OrderRequest(CxmlDocument):
    """
    A purchase order.

    Line numbers are assigned on accepted insertion, starting at 1. When no
    total is set explicitly it is derived at submit time from the items,
    which then must all share one currency.
    """

    message_type = MessageType.ORDER_REQUEST

    def __init__(
        self,
        order_id: Any,
        order_date: Any = None,
        *,
        payload_id: str | None = None,
        timestamp: Any = None,
        language: str | None = None,
        config: CxmlConfig | None = None,
    ) -> None:
        order_id = require_text(order_id, "order_id")
        super().__init__(
            payload_id=payload_id,
            timestamp=timestamp,
            language=language,
            config=config,
        )
        self._props = {
            "deployment_mode": self.config.deployment_mode,
            "id": order_id,
            "date": iso_timestamp(order_date) if order_date else now_timestamp(),
            "order_type": "regular",
            "request_type": "new",
            "items": [],
            "bill_to": {},
            "ship_to": {},
            "order": {},
            "total": None,
        }
        self._total_is_explicit = False
        logger.debug("Constructed order %s (payload %s)", order_id, self.payload_id)

    @property
    def order_id(self) -> str:
        return self._props["id"]

    @property
    def order_date(self) -> str:
        return self._props["date"]

    @property
    def order_type(self) -> str:
        return self._props["order_type"]

    @property
    def request_type(self) -> str:
        return self._props["request_type"]

    @property
    def items(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._props["items"])

    @property
    def total(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._props["total"])

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def add_item(self, item: dict[str, Any]) -> OrderRequest:
        """
        Add one line item.

        Requires ``name``, numeric ``quantity``, ``supplier_part_id``, numeric
        ``unit_price``, ``currency``, ``uom`` and a non-empty ``classification``
        mapping (domain -> code).
        """
        check_fields(item, ORDER_ITEM_RULES, "Order item")

        items = self._props["items"]
        line_number = len(items) + 1
        logger.debug("Adding item to order #%s (line %d)", self.order_id, line_number)
        items.append({**copy.deepcopy(item), "line_number": line_number})
        return self

    def add_items(self, items: list[dict[str, Any]]) -> OrderRequest:
        """Add each item in order; items accepted before a failure stay added."""
        for item in require_sequence(items, "items"):
            self.add_item(item)
        return self

    # ------------------------------------------------------------------
    # Billing / shipping
    # ------------------------------------------------------------------

    def set_billing_info(self, options: dict[str, Any]) -> OrderRequest:
        """
        Set the bill-to address plus optional e-mail, phone, purchasing card
        and tax. Everything is validated before anything is stored.
        """
        options = options or {}
        check_fields(options, ADDRESS_OPTION_RULES, "Bill-to options")
        check_fields(options["address"], BILL_TO_ADDRESS_RULES, "Bill-to address")

        bill_to: dict[str, Any] = {"address": copy.deepcopy(options["address"])}
        order_updates: dict[str, Any] = {}

        if options.get("email"):
            bill_to["email"] = _email_block(options["email"], "Bill-to e-mail")
        if options.get("phone"):
            bill_to["phone"] = _phone_block(options["phone"], "Bill-to phone")
        if options.get("pcard"):
            order_updates["pcard"] = _pcard_block(options["pcard"])
        if options.get("tax"):
            check_fields(options["tax"], ORDER_TAX_RULES, "Bill-to tax")
            order_updates["tax"] = copy.deepcopy(options["tax"])

        self._props["bill_to"] = bill_to
        self._props["order"].update(order_updates)
        return self

    def set_shipping_info(self, options: dict[str, Any]) -> OrderRequest:
        """
        Set the ship-to address plus optional e-mail, phone and shipping
        method. ``attention_of`` may be one line or a list of lines.
        """
        options = options or {}
        check_fields(options, ADDRESS_OPTION_RULES, "Ship-to options")
        address = options["address"]
        check_fields(address, SHIP_TO_ADDRESS_RULES, "Ship-to address")

        attention = address["attention_of"]
        if isinstance(attention, (list, tuple)):
            if not attention or not "".join(str(line) for line in attention):
                raise ValidationError(
                    'Ship-to address: "attention_of" is required and must not be blank.',
                    entity="Ship-to address",
                    field="attention_of",
                )
            attn = [str(line) for line in attention]
        else:
            attn = [attention]

        ship_address = {"nickname": DEFAULT_NICKNAME, **copy.deepcopy(address)}
        ship_address["attn"] = attn
        ship_to: dict[str, Any] = {"address": ship_address}
        order_updates: dict[str, Any] = {}

        if options.get("email"):
            ship_to["email"] = _email_block(options["email"], "Ship-to e-mail")
        if options.get("phone"):
            ship_to["phone"] = _phone_block(options["phone"], "Ship-to phone")
        if options.get("method"):
            check_fields(options["method"], ORDER_SHIPPING_METHOD_RULES, "Ship-to method")
            order_updates["shipping"] = copy.deepcopy(options["method"])

        self._props["ship_to"] = ship_to
        self._props["order"].update(order_updates)
        return self

    # ------------------------------------------------------------------
    # Total
    # ------------------------------------------------------------------

    def set_total(self, options: dict[str, Any]) -> OrderRequest:
        """Override the derived total; needed when item currencies differ."""
        check_fields(options, ORDER_TOTAL_RULES, "Order total")
        self._props["total"] = copy.deepcopy(options)
        self._total_is_explicit = True
        return self

    def compute_total(self) -> dict[str, Any]:
        """Σ quantity × unit_price over the items, which must share one currency."""
        amount = Decimal(0)
        currency = ""
        for item in self._props["items"]:
            if not currency:
                currency = item["currency"]
            elif item["currency"] != currency:
                raise PreconditionError(
                    'Before submitting the order, "set_total" must be called '
                    "if the items in the order do not all have the same currency."
                )
            amount += to_decimal(item["quantity"]) * to_decimal(item["unit_price"])
        return {"amount": amount, "currency": currency}

    def prepare_for_render(self) -> None:
        if not self._total_is_explicit:
            self._props["total"] = self.compute_total()
            logger.debug(
                "Derived total for order #%s: %s %s",
                self.order_id,
                self._props["total"]["amount"],
                self._props["total"]["currency"],
            )


def _email_block(email: dict[str, Any], context: str) -> dict[str, Any]:
    check_fields(email, EMAIL_RULES, context)
    return {"nickname": DEFAULT_NICKNAME, **copy.deepcopy(email)}


def _phone_block(phone: dict[str, Any], context: str) -> dict[str, Any]:
    check_fields(phone, PHONE_RULES, context)
    return {"nickname": DEFAULT_NICKNAME, **copy.deepcopy(phone)}


def _pcard_block(pcard: dict[str, Any]) -> dict[str, Any]:
    check_fields(pcard, PCARD_RULES, "Bill-to purchasing card")
    expiration = end_of_month(pcard["expiration"])
    if expiration is None:
        raise ValidationError(
            'Bill-to purchasing card: "expiration" must be an ISO 8601 string or a date.',
            entity="Bill-to purchasing card",
            field="expiration",
        )
    return {"acct": str(pcard["number"]), "exp": expiration}
