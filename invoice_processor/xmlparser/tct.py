"""Parser for the Vietnamese General Department of Taxation (TCT) e-invoice schema.

Documents look like <HDon><DLHDon><TTChung/><NDHDon/></DLHDon><DSCKS/></HDon>.
Namespaces are ignored; elements are matched on their local names.
Line items are recomputed by the calculator from quantity, price, discount
and VAT rate; invoice totals come from <TToan> when present.
"""

import xml.etree.ElementTree as ET
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError

from invoice_processor.model.calculator import calculate_line_item, calculate_totals
from invoice_processor.model.invoice import (
    ZERO,
    Invoice,
    InvoiceType,
    LineItem,
    Party,
    Provider,
    Signature,
)
from invoice_processor.shared.errors import XMLParseFailure

ROOT_TAG = "HDon"

# TCHDon: 1 = replacement, 2 = adjustment
_INVOICE_TYPES = {"1": InvoiceType.REPLACEMENT, "2": InvoiceType.ADJUSTMENT}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element | None, *path: str) -> ET.Element | None:
    for name in path:
        if element is None:
            return None
        element = next((c for c in element if _local(c.tag) == name), None)
    return element


def _text(element: ET.Element | None, *path: str) -> str:
    found = _child(element, *path)
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def _decimal(element: ET.Element | None, *path: str) -> Decimal:
    text = _text(element, *path)
    if not text:
        return ZERO
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise XMLParseFailure(f"invalid number in {'/'.join(path)}: {text!r}") from e
    if not value.is_finite():
        raise XMLParseFailure(f"non-finite number in {'/'.join(path)}: {text!r}")
    return value


def _date(text: str) -> date | None:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise XMLParseFailure(f"invalid date: {text!r}") from e


def _vat_rate(text: str) -> int:
    # "KCT" (not taxable) and "KKKNT" (not declared) carry no VAT
    value = text.rstrip("%").strip()
    return int(value) if value.isdigit() else 0


def _party(element: ET.Element | None) -> Party:
    return Party(
        name=_text(element, "Ten"),
        tax_id=_text(element, "MST"),
        address=_text(element, "DChi"),
        phone=_text(element, "SDThoai"),
        email=_text(element, "DCTDTu"),
        bank_account=_text(element, "STKNHang"),
        bank_name=_text(element, "TNHang"),
    )


class TCTInvoiceParser:
    """XMLInvoiceParser for the TCT standard HDon schema."""

    @property
    def name(self) -> str:
        return "tct"

    def can_parse(self, data: bytes) -> bool:
        try:
            root = ET.fromstring(data)
        except ET.ParseError:
            return False
        return _local(root.tag) == ROOT_TAG

    def parse(self, data: bytes) -> Invoice:
        """Parse a TCT e-invoice.

        Args:
            data: Raw XML bytes

        Returns:
            Canonical invoice with provider TCT and raw_source set

        Raises:
            XMLParseFailure: If the XML is malformed, required sections are
                missing or a value is out of range
        """
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise XMLParseFailure(f"malformed XML: {e}") from e

        try:
            return self._build_invoice(root, data)
        except ValidationError as e:
            raise XMLParseFailure(f"invalid invoice field: {e}") from e
        except ArithmeticError as e:
            raise XMLParseFailure(f"cannot calculate invoice amounts: {e}") from e

    def _build_invoice(self, root: ET.Element, data: bytes) -> Invoice:
        body = _child(root, "DLHDon")
        if body is None:
            raise XMLParseFailure("missing DLHDon section")

        header = _child(body, "TTChung")
        content = _child(body, "NDHDon")
        if header is None or content is None:
            raise XMLParseFailure("missing TTChung or NDHDon section")

        item_list = _child(content, "DSHHDVu")
        items = [
            self._line_item(element)
            for element in (item_list if item_list is not None else [])
            if _local(element.tag) == "HHDVu"
        ]

        invoice = Invoice(
            id=body.get("Id", ""),
            number=_text(header, "SHDon"),
            series=_text(header, "KHMSHDon") + _text(header, "KHHDon"),
            date=_date(_text(header, "NLap")),
            type=_INVOICE_TYPES.get(_text(header, "TTHDLQuan", "TCHDon"), InvoiceType.NORMAL),
            provider=Provider.TCT,
            seller=_party(_child(content, "NBan")),
            buyer=_party(_child(content, "NMua")),
            items=items,
            currency=_text(header, "DVTTe") or "VND",
            exchange_rate=_decimal(header, "TGia"),
            payment_method=_text(header, "HTTToan"),
            signature=self._signature(root),
            raw_source=data,
        )

        totals = _child(content, "TToan")
        if totals is None:
            return calculate_totals(invoice)

        return invoice.model_copy(
            update={
                "subtotal_amount": _decimal(totals, "TgTCThue"),
                "tax_amount": _decimal(totals, "TgTThue"),
                "total_amount": _decimal(totals, "TgTTTBSo"),
            }
        )

    def _line_item(self, element: ET.Element) -> LineItem:
        number = _text(element, "STT")
        item = LineItem(
            number=int(number) if number.isdigit() else 0,
            code=_text(element, "MHHDVu"),
            name=_text(element, "THHDVu"),
            unit=_text(element, "DVTinh"),
            quantity=_decimal(element, "SLuong"),
            unit_price=_decimal(element, "DGia"),
            discount_percent=_decimal(element, "TLCKhau"),
            vat_rate=_vat_rate(_text(element, "TSuat")),
        )
        return calculate_line_item(item)

    def _signature(self, root: ET.Element) -> Signature | None:
        for element in root.iter():
            if _local(element.tag) == "SignatureValue" and element.text:
                return Signature(value=element.text.strip())
        return None
