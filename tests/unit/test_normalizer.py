"""Unit tests for the model response normalizer.

Tests cover:
- JSON isolation from fenced blocks and surrounding prose
- Vietnamese number parsing (never through float)
- Date layouts and graceful date failures
- Field mapping rules (number fallback, VAT rate, currency, document type)
- Round trip through the model response schema
"""

import datetime
import json
from decimal import Decimal

import pytest

from invoice_processor.llm.json_payload import extract_json
from invoice_processor.llm.normalizer import (
    ResponseNormalizer,
    format_decimal,
    parse_date,
    parse_decimal,
    to_model_payload,
)
from invoice_processor.model.calculator import calculate_totals
from invoice_processor.model.invoice import (
    DocumentType,
    Invoice,
    InvoiceType,
    LineItem,
    Party,
    Provider,
)
from invoice_processor.shared.errors import ResponseDecodeFailure


@pytest.fixture
def normalizer() -> ResponseNormalizer:
    """Create normalizer instance."""
    return ResponseNormalizer()


class TestExtractJson:
    """Test JSON payload isolation."""

    def test_fenced_json_block(self) -> None:
        """Should return the content of a ```json fence."""
        text = 'Here you go:\n```json\n{"invoice_number": "1"}\n```\nDone.'
        assert extract_json(text) == '{"invoice_number": "1"}'

    def test_plain_fence(self) -> None:
        """Should accept a fence without a language tag."""
        assert extract_json('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_braces_inside_prose(self) -> None:
        """Should take the span from the first '{' to the last '}'."""
        text = 'The result is {"a": {"b": 1}} as requested.'
        assert extract_json(text) == '{"a": {"b": 1}}'

    def test_no_json_returns_stripped_text(self) -> None:
        """Should fall back to the stripped response."""
        assert extract_json("  no json here \n") == "no json here"


class TestParseDecimal:
    """Test Vietnamese-formatted number parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1.234.567", "1234567"),
            ("1.234.567,89", "1234567.89"),
            ("1234567", "1234567"),
            ("12,5", "12.5"),
            ("-1.000", "-1000"),
            ("10", "10"),
        ],
    )
    def test_valid_numbers(self, value: str, expected: str) -> None:
        """Should treat '.' as grouping and ',' as decimal separator."""
        assert parse_decimal(value) == Decimal(expected)

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "1,2,3", "NaN", "Infinity"])
    def test_invalid_numbers_become_zero(self, value: str | None) -> None:
        """Should return zero instead of raising."""
        assert parse_decimal(value) == Decimal("0")

    def test_large_integer_token_keeps_precision(self) -> None:
        """Should not lose digits a float would drop."""
        assert parse_decimal("12345678901234567890") == Decimal("12345678901234567890")


class TestParseDate:
    """Test date parsing."""

    @pytest.mark.parametrize(
        "value",
        ["2024-01-05", "05/01/2024", "5/1/2024", "05-01-2024", "2024-01-05T10:30:00"],
    )
    def test_supported_layouts(self, value: str) -> None:
        """Should parse every supported layout to the same date."""
        assert parse_date(value) == datetime.date(2024, 1, 5)

    @pytest.mark.parametrize("value", ["", "yesterday", "2024/13/45", "31/02/2024"])
    def test_unparsable_dates_return_none(self, value: str) -> None:
        """Should leave the date unset without raising."""
        assert parse_date(value) is None


class TestParseResponse:
    """Test full response decoding and mapping."""

    def test_invoice_response(self, normalizer: ResponseNormalizer) -> None:
        """Should map a typical Vietnamese invoice response."""
        response = """```json
{
  "invoice_number": "0000123",
  "series": "1C24TAA",
  "date": "15/01/2024",
  "type": "replacement",
  "seller": {"name": "Công ty ABC", "tax_id": "0101234567", "bank_account": "123456"},
  "buyer": {"name": "Công ty XYZ", "tax_id": "0109876543"},
  "items": [
    {"number": 1, "name": "Dịch vụ tư vấn", "unit": "Gói", "quantity": 2,
     "unit_price": "1.500.000", "amount": "3.000.000", "vat_rate": 10,
     "vat_amount": "300.000", "total": "3.300.000"}
  ],
  "subtotal": "3.000.000",
  "total_vat": "300.000",
  "total_amount": "3.300.000",
  "notes": "Thanh toán trong 30 ngày"
}
```"""
        invoice = normalizer.parse_response(response)

        assert invoice.number == "0000123"
        assert invoice.series == "1C24TAA"
        assert invoice.date == datetime.date(2024, 1, 15)
        assert invoice.type == InvoiceType.REPLACEMENT
        assert invoice.provider == Provider.UNKNOWN
        assert invoice.seller.name == "Công ty ABC"
        assert invoice.seller.bank_account == "123456"
        assert invoice.buyer.tax_id == "0109876543"
        assert invoice.currency == "VND"
        assert invoice.remarks == "Thanh toán trong 30 ngày"
        assert invoice.subtotal_amount == Decimal("3000000")
        assert invoice.tax_amount == Decimal("300000")
        assert invoice.total_amount == Decimal("3300000")

        item = invoice.items[0]
        assert item.number == 1
        assert item.quantity == Decimal("2")
        assert item.unit_price == Decimal("1500000")
        assert item.vat_rate == 10
        assert item.vat_amount == Decimal("300000")
        assert item.total == Decimal("3300000")

    def test_receipt_response(self, normalizer: ResponseNormalizer) -> None:
        """Should map receipt fields and use receipt_number as the document number."""
        response = json.dumps(
            {
                "document_type": "receipt",
                "receipt_number": "HD-00042",
                "date": "2024-03-01",
                "time": "14:35",
                "cashier": "Lan",
                "terminal_id": "POS-02",
                "payment_method": "cash",
                "total_amount": "125.000",
                "amount_tendered": "200.000",
                "change": "75.000",
                "currency": "USD",
            }
        )

        invoice = normalizer.parse_response(response)

        assert invoice.document_type == DocumentType.RECEIPT
        assert invoice.number == "HD-00042"
        assert invoice.receipt_number == "HD-00042"
        assert invoice.receipt_time == "14:35"
        assert invoice.cashier == "Lan"
        assert invoice.terminal_id == "POS-02"
        assert invoice.payment_method == "cash"
        assert invoice.amount_tendered == Decimal("200000")
        assert invoice.change == Decimal("75000")
        assert invoice.currency == "USD"

    def test_invoice_number_preferred_over_receipt_number(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Should use invoice_number when both numbers are present."""
        invoice = normalizer.parse_response('{"invoice_number": "A1", "receipt_number": "R1"}')
        assert invoice.number == "A1"

    def test_unknown_type_defaults_to_normal(self, normalizer: ResponseNormalizer) -> None:
        """Should default unrecognised types to Normal and invoice."""
        invoice = normalizer.parse_response('{"type": "credit", "document_type": "bill"}')
        assert invoice.type == InvoiceType.NORMAL
        assert invoice.document_type == DocumentType.INVOICE

    def test_zero_vat_rate_is_indistinguishable_from_missing(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Should leave the rate at its default for both 0 and absent."""
        invoice = normalizer.parse_response(
            '{"items": ['
            '{"name": "a", "vat_rate": 0}, {"name": "b"}, {"name": "c", "vat_rate": "5"}'
            "]}"
        )
        assert [item.vat_rate for item in invoice.items] == [0, 0, 5]

    def test_unparsable_fields_degrade_to_zero_values(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Should not fail on bad dates or numbers."""
        invoice = normalizer.parse_response(
            '{"date": "not a date", "total_amount": "abc", "items": "none"}'
        )
        assert invoice.date is None
        assert invoice.total_amount == Decimal("0")
        assert invoice.items == []

    def test_dot_in_number_token_is_a_grouping_separator(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Should read a decimal point in a raw JSON number as thousands grouping."""
        invoice = normalizer.parse_response('{"total_amount": 0.1000000000000000055511}')
        assert invoice.total_amount == Decimal("1000000000000000055511")

    @pytest.mark.parametrize("response", ["", "I could not read this invoice.", "[1, 2, 3]"])
    def test_undecodable_response_raises(
        self, normalizer: ResponseNormalizer, response: str
    ) -> None:
        """Should raise ResponseDecodeFailure when no JSON object can be decoded."""
        with pytest.raises(ResponseDecodeFailure, match="failed to parse LLM response"):
            normalizer.parse_response(response)

    @pytest.mark.parametrize("rate", ["250", "-5", "1e40"])
    def test_out_of_range_vat_rate_falls_back_to_zero(
        self, normalizer: ResponseNormalizer, rate: str
    ) -> None:
        """Should keep the response and default a VAT rate outside 0..100."""
        invoice = normalizer.parse_response(
            f'{{"invoice_number": "1", "items": [{{"name": "a", "vat_rate": "{rate}"}}]}}'
        )
        assert invoice.number == "1"
        assert invoice.items[0].vat_rate == 0


class TestRoundTrip:
    """Test rendering an invoice to the response schema and decoding it back."""

    def test_format_decimal(self) -> None:
        """Should render Vietnamese grouping."""
        assert format_decimal(Decimal("1234567.5")) == "1.234.567,5"
        assert format_decimal(Decimal("-1000")) == "-1.000"
        assert format_decimal(Decimal("999")) == "999"
        assert format_decimal(Decimal("0")) == "0"

    def test_round_trip_preserves_invoice(self, normalizer: ResponseNormalizer) -> None:
        """Should reproduce every field the response schema carries."""
        invoice = calculate_totals(
            Invoice(
                number="0000456",
                series="1C24TBB",
                date=datetime.date(2024, 2, 29),
                type=InvoiceType.ADJUSTMENT,
                seller=Party(name="Seller Co", tax_id="0101234567", email="a@b.vn"),
                buyer=Party(name="Buyer Co", tax_id="0109876543"),
                items=[
                    LineItem(
                        number=1,
                        code="SP01",
                        name="Widget",
                        unit="Cái",
                        quantity=Decimal("3"),
                        unit_price=Decimal("1234567"),
                        discount_percent=Decimal("2.5"),
                        vat_rate=10,
                    ),
                    LineItem(
                        number=2,
                        name="Service",
                        quantity=Decimal("1"),
                        unit_price=Decimal("500000"),
                        vat_rate=5,
                    ),
                ],
                remarks="Điều chỉnh đơn giá",
                payment_method="TM/CK",
            )
        )

        response = json.dumps(to_model_payload(invoice), ensure_ascii=False)
        decoded = normalizer.parse_response(response)

        assert decoded == invoice
