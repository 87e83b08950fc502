"""Deterministic fixed-point calculator for invoice totals.

Recomputes derived monetary fields from quantity, unit price, discount percent
and VAT rate. Functions are pure: they return new model instances and never
touch their input.

Arithmetic runs in an unbounded-precision context, so products and sums are
exact and the only rounding is the explicit one in round_amount. Rounding is
to zero fractional digits with ROUND_HALF_UP (half away from zero), which is
how the source documents' arithmetic is audited.
"""

from decimal import (
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    localcontext,
)

from invoice_processor.model.invoice import ZERO, Invoice, LineItem

HUNDRED = Decimal(100)
_WHOLE = Decimal(1)

# Only exact operations run here; an inexact division would exhaust memory
EXACT_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN, rounding=ROUND_HALF_UP)


def round_amount(value: Decimal) -> Decimal:
    """Round a monetary value to whole currency units.

    Args:
        value: Unrounded amount

    Returns:
        Amount with zero fractional digits
    """
    with localcontext(EXACT_CONTEXT):
        return value.quantize(_WHOLE, rounding=ROUND_HALF_UP)


def calculate_line_item(item: LineItem) -> LineItem:
    """Derive amount, discount, VAT and total for a single line item.

    Order matters and is part of the contract:
    amount -> discount_amount -> taxable -> vat_amount -> total.

    Args:
        item: Line item with authoritative quantity/price/discount/rate

    Returns:
        Copy of the item with derived fields recomputed

    Raises:
        ArithmeticError: If an operand is not a finite number
    """
    with localcontext(EXACT_CONTEXT):
        amount = item.quantity * item.unit_price

        discount_amount = ZERO
        if item.discount_percent != 0:
            discount_amount = round_amount(amount * item.discount_percent / HUNDRED)

        # Taxable amount is deliberately left unrounded
        taxable = amount - discount_amount
        vat_amount = round_amount(taxable * Decimal(item.vat_rate) / HUNDRED)
        total = round_amount(taxable + vat_amount)

    return item.model_copy(
        update={
            "amount": amount,
            "discount_amount": discount_amount,
            "vat_amount": vat_amount,
            "total": total,
        }
    )


def calculate_totals(invoice: Invoice) -> Invoice:
    """Recompute every line item and the invoice-level totals.

    Args:
        invoice: Invoice whose line items are the source of truth

    Returns:
        Copy of the invoice with items and subtotal/tax/total recomputed

    Raises:
        ArithmeticError: If a line item operand is not a finite number
    """
    items = [calculate_line_item(item) for item in invoice.items]

    with localcontext(EXACT_CONTEXT):
        subtotal = sum((item.amount - item.discount_amount for item in items), ZERO)
        tax = sum((item.vat_amount for item in items), ZERO)
        total = subtotal + tax

    return invoice.model_copy(
        update={
            "items": items,
            "subtotal_amount": round_amount(subtotal),
            "tax_amount": round_amount(tax),
            "total_amount": round_amount(total),
        }
    )
