"""Normalize loosely-typed model JSON into the canonical Invoice.

Numbers are decoded as opaque tokens (never float) and converted with
Vietnamese locale rules: '.' groups thousands and ',' separates decimals.
This is a lexical transform only; totals are not cross-checked against items.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from invoice_processor.llm.json_payload import extract_json
from invoice_processor.model.invoice import (
    ZERO,
    DocumentType,
    Invoice,
    InvoiceType,
    LineItem,
    Party,
    Provider,
)
from invoice_processor.shared.errors import ResponseDecodeFailure

logger = logging.getLogger(__name__)

# %d and %m also accept single digits, which covers D/M/YYYY
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")

DEFAULT_CURRENCY = "VND"

MIN_VAT_RATE = 0
MAX_VAT_RATE = 100

_PARTY_FIELDS = ("name", "tax_id", "address", "phone", "email", "bank_account", "bank_name")


def parse_decimal(value: Any) -> Decimal:
    """Parse a Vietnamese-formatted number, returning zero on any failure.

    Args:
        value: Numeric token, string or None

    Returns:
        Parsed Decimal, or Decimal 0 if empty or unparsable
    """
    if value is None:
        return ZERO
    text = str(value).strip()
    if not text:
        return ZERO

    text = text.replace(".", "").replace(",", ".")
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    if not parsed.is_finite():
        return ZERO
    return parsed


def parse_date(value: str) -> date | None:
    """Parse a document date, trying each known layout in order.

    Args:
        value: Date string as returned by the model

    Returns:
        Parsed date, or None if no layout matches
    """
    value = value.strip()
    if not value:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        logger.debug(f"Cannot parse date: {value!r}")
        return None


def parse_invoice_type(value: str) -> InvoiceType:
    lowered = value.lower()
    if lowered == "replacement":
        return InvoiceType.REPLACEMENT
    if lowered == "adjustment":
        return InvoiceType.ADJUSTMENT
    return InvoiceType.NORMAL


def parse_document_type(value: str) -> DocumentType:
    if value.lower() == "receipt":
        return DocumentType.RECEIPT
    return DocumentType.INVOICE


def format_decimal(value: Decimal) -> str:
    """Render a Decimal with Vietnamese grouping, e.g. 1234567.5 -> '1.234.567,5'.

    Args:
        value: Amount to format

    Returns:
        Locale-formatted string accepted by parse_decimal
    """
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):f}".partition(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    rendered = sign + ".".join(groups)
    if fraction:
        rendered += "," + fraction
    return rendered


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_int(value: Any) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


class ResponseNormalizer:
    """Turns a raw model response into a canonical Invoice."""

    def parse_response(self, response_text: str) -> Invoice:
        """Isolate, decode and map a model response.

        Args:
            response_text: Raw LLM response, possibly wrapped in prose

        Returns:
            Canonical invoice

        Raises:
            ResponseDecodeFailure: If no JSON object can be decoded or mapped
        """
        payload = extract_json(response_text)
        try:
            data = json.loads(payload, parse_int=str, parse_float=str)
        except json.JSONDecodeError as e:
            raise ResponseDecodeFailure(f"failed to parse LLM response: {e}") from e

        if not isinstance(data, dict):
            raise ResponseDecodeFailure(
                f"failed to parse LLM response: expected JSON object, got {type(data).__name__}"
            )

        try:
            return self.to_invoice(data)
        except ValidationError as e:
            raise ResponseDecodeFailure(f"failed to map LLM response: {e}") from e

    def to_invoice(self, data: dict[str, Any]) -> Invoice:
        """Map a decoded response object onto the canonical model.

        Args:
            data: Decoded JSON object with numbers kept as string tokens

        Returns:
            Canonical invoice
        """
        receipt_number = _text(data.get("receipt_number"))
        number = _text(data.get("invoice_number")) or receipt_number

        raw_items = data.get("items")
        if not isinstance(raw_items, list):
            raw_items = []
        items = [self._to_line_item(_mapping(item)) for item in raw_items]

        return Invoice(
            number=number,
            series=_text(data.get("series")),
            date=parse_date(_text(data.get("date"))),
            type=parse_invoice_type(_text(data.get("type"))),
            provider=Provider.UNKNOWN,
            seller=self._to_party(_mapping(data.get("seller"))),
            buyer=self._to_party(_mapping(data.get("buyer"))),
            items=items,
            subtotal_amount=parse_decimal(data.get("subtotal")),
            tax_amount=parse_decimal(data.get("total_vat")),
            total_amount=parse_decimal(data.get("total_amount")),
            currency=_text(data.get("currency")) or DEFAULT_CURRENCY,
            remarks=_text(data.get("notes")),
            document_type=parse_document_type(_text(data.get("document_type"))),
            cashier=_text(data.get("cashier")),
            terminal_id=_text(data.get("terminal_id")),
            payment_method=_text(data.get("payment_method")),
            receipt_number=receipt_number,
            receipt_time=_text(data.get("time")),
            amount_tendered=parse_decimal(data.get("amount_tendered")),
            change=parse_decimal(data.get("change")),
        )

    def _to_party(self, data: dict[str, Any]) -> Party:
        return Party(**{field: _text(data.get(field)) for field in _PARTY_FIELDS})

    def _to_line_item(self, data: dict[str, Any]) -> LineItem:
        # A zero rate cannot be told apart from a missing one; both keep the default
        rate = parse_decimal(data.get("vat_rate"))
        vat_rate = int(rate) if rate != 0 else 0
        if not MIN_VAT_RATE <= vat_rate <= MAX_VAT_RATE:
            logger.warning(f"VAT rate {rate} out of range, using 0")
            vat_rate = 0

        return LineItem(
            number=_parse_int(data.get("number")),
            code=_text(data.get("code")),
            name=_text(data.get("name")),
            description=_text(data.get("description")),
            unit=_text(data.get("unit")),
            quantity=parse_decimal(data.get("quantity")),
            unit_price=parse_decimal(data.get("unit_price")),
            discount_percent=parse_decimal(data.get("discount_percent")),
            amount=parse_decimal(data.get("amount")),
            discount_amount=parse_decimal(data.get("discount_amount")),
            vat_amount=parse_decimal(data.get("vat_amount")),
            vat_rate=vat_rate,
            total=parse_decimal(data.get("total")),
        )


def to_model_payload(invoice: Invoice) -> dict[str, Any]:
    """Render an invoice in the model response schema with Vietnamese number formatting.

    The inverse of ResponseNormalizer.to_invoice for the fields the schema carries.

    Args:
        invoice: Canonical invoice

    Returns:
        JSON-serializable dict
    """
    return {
        "invoice_number": invoice.number,
        "series": invoice.series,
        "date": invoice.date.isoformat() if invoice.date else "",
        "type": invoice.type.value.lower(),
        "seller": invoice.seller.model_dump(),
        "buyer": invoice.buyer.model_dump(),
        "items": [
            {
                "number": item.number,
                "code": item.code,
                "name": item.name,
                "description": item.description,
                "unit": item.unit,
                "quantity": format_decimal(item.quantity),
                "unit_price": format_decimal(item.unit_price),
                "discount_percent": format_decimal(item.discount_percent),
                "discount_amount": format_decimal(item.discount_amount),
                "amount": format_decimal(item.amount),
                "vat_rate": item.vat_rate,
                "vat_amount": format_decimal(item.vat_amount),
                "total": format_decimal(item.total),
            }
            for item in invoice.items
        ],
        "subtotal": format_decimal(invoice.subtotal_amount),
        "total_vat": format_decimal(invoice.tax_amount),
        "total_amount": format_decimal(invoice.total_amount),
        "currency": invoice.currency,
        "payment_method": invoice.payment_method,
        "notes": invoice.remarks,
        "document_type": invoice.document_type.value,
        "receipt_number": invoice.receipt_number,
        "cashier": invoice.cashier,
        "terminal_id": invoice.terminal_id,
        "time": invoice.receipt_time,
        "amount_tendered": format_decimal(invoice.amount_tendered),
        "change": format_decimal(invoice.change),
    }
