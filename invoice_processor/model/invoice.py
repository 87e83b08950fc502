"""Canonical invoice and receipt models.

All monetary values are Decimal. Line item derived fields (amount,
discount_amount, vat_amount, total) are produced by
invoice_processor.model.calculator.
"""

import datetime
from decimal import Decimal
from enum import IntEnum, StrEnum

from pydantic import BaseModel, Field

ZERO = Decimal("0")


class Provider(StrEnum):
    """E-invoice provider that issued an XML document."""

    TCT = "TCT"
    VNPT = "VNPT"
    MISA = "MISA"
    VIETTEL = "VIETTEL"
    FPT = "FPT"
    UNKNOWN = "UNKNOWN"


class VATRate(IntEnum):
    """Standard Vietnamese VAT rates (percent)."""

    ZERO = 0
    FIVE = 5
    TEN = 10


class InvoiceType(StrEnum):
    NORMAL = "Normal"
    REPLACEMENT = "Replacement"
    ADJUSTMENT = "Adjustment"


class DocumentType(StrEnum):
    INVOICE = "invoice"
    RECEIPT = "receipt"


class Party(BaseModel):
    """Seller or buyer of an invoice."""

    name: str = ""
    tax_id: str = Field("", description="Tax identification number (MST)")
    address: str = ""
    phone: str = ""
    email: str = ""
    bank_account: str = ""
    bank_name: str = ""


class Signature(BaseModel):
    """Digital signature block, carried as-is from the source document."""

    value: str = Field("", description="Base64 encoded signature value")
    date: datetime.date | None = None
    signer_name: str = ""
    signer_position: str = ""
    cert_serial: str = ""


class LineItem(BaseModel):
    """Single invoice line.

    Attributes:
        number: Ordinal position on the invoice
        discount_percent: Discount as a percentage of amount
        vat_rate: VAT percentage, normally one of VATRate
        amount: quantity * unit_price
        discount_amount: amount * discount_percent / 100, rounded
        vat_amount: (amount - discount_amount) * vat_rate / 100, rounded
        total: amount - discount_amount + vat_amount, rounded
    """

    number: int = 0
    code: str = ""
    name: str = ""
    description: str = ""
    unit: str = ""
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    discount_percent: Decimal = ZERO
    vat_rate: int = Field(0, ge=0, le=100)

    # Derived
    amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    total: Decimal = ZERO


class Invoice(BaseModel):
    """Canonical invoice or receipt record."""

    id: str = ""

    # Header
    number: str = ""
    series: str = ""
    date: datetime.date | None = None
    type: InvoiceType = InvoiceType.NORMAL
    provider: Provider = Provider.UNKNOWN

    # Parties
    seller: Party = Field(default_factory=Party)
    buyer: Party = Field(default_factory=Party)

    items: list[LineItem] = Field(default_factory=list)

    # Totals (VND has no minor unit)
    subtotal_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total_amount: Decimal = ZERO

    currency: str = "VND"
    exchange_rate: Decimal = ZERO

    remarks: str = ""
    payment_terms: str = ""

    # Document type and receipt-specific fields
    document_type: DocumentType = DocumentType.INVOICE
    cashier: str = ""
    terminal_id: str = ""
    payment_method: str = ""
    receipt_number: str = ""
    receipt_time: str = Field("", description="HH:MM as printed on the receipt")
    amount_tendered: Decimal = ZERO
    change: Decimal = ZERO

    signature: Signature | None = None

    # Provenance
    source_file: str = ""
    raw_source: bytes = Field(b"", exclude=True, repr=False)
