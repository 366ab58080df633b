"""
Line item price reconciliation.

A line carries both GST inclusive prices (MRP, selling price) and the pre-tax unit
price that goes to the order API. Every edit names the field the operator touched;
that field is taken as ground truth and everything else on the line is derived
from it so that:

    unit_price       = selling_price / (1 + rate)
    discount_rate    = (pre_tax_mrp - unit_price) / pre_tax_mrp * 100, within [0, 100]
    gst_amount       = unit_price * quantity * rate
    final_item_price = selling_price * quantity

Nothing here is rounded. Rounding happens when a line is displayed or sent out,
see ``rounded``.
"""
from __future__ import annotations

import logging

from orderdesk.pricing.rates import GST_RATES, coerce_amount, coerce_number, coerce_quantity
from orderdesk.pricing.states import TaxContext, split_tax
from orderdesk.schemas.order import (
    LineUpdate,
    OrderLineItem,
    SetGstRate,
    SetMrpOrDiscount,
    SetQuantity,
    SetSellingPrice,
)
from orderdesk.schemas.product import Product, ProductVariant

logger = logging.getLogger("orderdesk.pricing")


def to_pre_tax(amount: float, rate: float) -> float:
    return amount / (1 + rate / 100)


def to_inclusive(amount: float, rate: float) -> float:
    return amount * (1 + rate / 100)


def clamp_discount(rate: float) -> float:
    return min(max(coerce_number(rate), 0.0), 100.0)


def derive_discount_rate(pre_tax_mrp: float, unit_price: float) -> float:
    if pre_tax_mrp <= 0:
        return 0.0
    # A price above MRP is a markup, not a negative discount
    return clamp_discount((pre_tax_mrp - unit_price) / pre_tax_mrp * 100)


def _finalize(line: OrderLineItem, tax: TaxContext, **changes) -> OrderLineItem:
    draft = line.model_copy(update=changes)
    rate = draft.gst_tax_rate
    quantity = draft.quantity
    pre_tax_mrp = to_pre_tax(draft.mrp, rate)
    gst_amount = draft.unit_price * quantity * rate / 100
    igst, cgst, sgst = split_tax(gst_amount, tax)
    return draft.model_copy(update={
        "discount_amount": max(pre_tax_mrp - draft.unit_price, 0.0) * quantity,
        "gst_amount": gst_amount,
        "igst_amount": igst,
        "cgst_amount": cgst,
        "sgst_amount": sgst,
        "final_item_price": draft.selling_price * quantity,
    })


def _set_selling_price(line: OrderLineItem, edit: SetSellingPrice, tax: TaxContext) -> OrderLineItem:
    rate = line.gst_tax_rate
    selling_price = coerce_amount(edit.selling_price)
    unit_price = to_pre_tax(selling_price, rate)
    return _finalize(
        line, tax,
        selling_price=selling_price,
        unit_price=unit_price,
        discount_rate=derive_discount_rate(to_pre_tax(line.mrp, rate), unit_price),
    )


def _set_mrp_or_discount(line: OrderLineItem, edit: SetMrpOrDiscount, tax: TaxContext) -> OrderLineItem:
    rate = line.gst_tax_rate
    mrp = coerce_amount(edit.mrp) if edit.mrp is not None else line.mrp
    discount_rate = clamp_discount(edit.discount_rate if edit.discount_rate is not None else line.discount_rate)
    unit_price = to_pre_tax(mrp, rate) * (1 - discount_rate / 100)
    return _finalize(
        line, tax,
        mrp=mrp,
        discount_rate=discount_rate,
        unit_price=unit_price,
        selling_price=to_inclusive(unit_price, rate),
    )


def _set_quantity(line: OrderLineItem, edit: SetQuantity, tax: TaxContext) -> OrderLineItem:
    return _finalize(
        line, tax,
        quantity=coerce_quantity(edit.quantity),
        unit_price=to_pre_tax(line.selling_price, line.gst_tax_rate),
    )


def _set_gst_rate(line: OrderLineItem, edit: SetGstRate, tax: TaxContext) -> OrderLineItem:
    new_rate = coerce_number(edit.gst_tax_rate)
    # The pre-tax price survives a rate change; the inclusive price moves with the rate
    unit_price = to_pre_tax(line.selling_price, line.gst_tax_rate)
    return _finalize(
        line, tax,
        gst_tax_rate=new_rate,
        unit_price=unit_price,
        selling_price=to_inclusive(unit_price, new_rate),
        discount_rate=derive_discount_rate(to_pre_tax(line.mrp, new_rate), unit_price),
    )


_RESOLVERS = {
    SetSellingPrice: _set_selling_price,
    SetMrpOrDiscount: _set_mrp_or_discount,
    SetQuantity: _set_quantity,
    SetGstRate: _set_gst_rate,
}


def reconcile(line: OrderLineItem, edit, tax: TaxContext) -> OrderLineItem:
    """Apply one edit and return the reconciled copy of ``line``."""
    resolver = _RESOLVERS.get(type(edit))
    if resolver is None:
        raise TypeError(f"Unsupported line edit: {type(edit).__name__}")
    return resolver(line, edit, tax)


def edits_from_update(update: LineUpdate) -> list:
    """Turn a partial field update into edits, in the order they must be applied.

    The GST rate goes first so that any price in the same update is read at the new
    rate, then quantity, then prices. A selling price is taken as the new price only
    when it comes alone; sent with an MRP or a discount rate it is ignored and the
    MRP and discount decide the price.
    """
    edits: list = []
    if update.gst_tax_rate is not None:
        edits.append(SetGstRate(gst_tax_rate=update.gst_tax_rate))
    if update.quantity is not None:
        edits.append(SetQuantity(quantity=update.quantity))

    if update.selling_price is not None and update.discount_rate is None and update.mrp is None:
        edits.append(SetSellingPrice(selling_price=update.selling_price))
    elif update.mrp is not None or update.discount_rate is not None:
        edits.append(SetMrpOrDiscount(mrp=update.mrp, discount_rate=update.discount_rate))
    return edits


def apply_update(line: OrderLineItem, update: LineUpdate, tax: TaxContext) -> OrderLineItem:
    for edit in edits_from_update(update):
        line = reconcile(line, edit, tax)
    return line


def resplit(line: OrderLineItem, tax: TaxContext) -> OrderLineItem:
    return _finalize(line, tax)


def new_line(product: Product, variant: ProductVariant, quantity: int, tax: TaxContext) -> OrderLineItem:
    """Build a reconciled line for a catalog variant.

    MRP falls back from the variant's own MRP to its compare-at price, its price and
    finally the product price; the selling price falls back to the MRP.
    """
    mrp = coerce_amount(next(
        (v for v in (variant.mrp, variant.compare_at_price, variant.price, product.unit_price) if v is not None),
        0.0,
    ))
    selling_price = coerce_amount(next(
        (v for v in (variant.selling_price, variant.price) if v is not None),
        mrp,
    ))

    rate = coerce_number(product.gst_tax_rate)
    if rate not in GST_RATES:
        logger.warning(f"Product {product.id} has unsupported GST rate {product.gst_tax_rate}, using 0")
        rate = 0.0

    line = OrderLineItem(
        product_id=product.id,
        variant_id=variant.id,
        product_name=product.name,
        variant_name=variant.label,
        hsn_code=product.hsn_code,
        quantity=coerce_quantity(quantity),
        mrp=mrp,
        selling_price=selling_price,
        gst_tax_rate=rate,
    )
    return _set_selling_price(line, SetSellingPrice(selling_price=selling_price), tax)


def merge_duplicate(existing: OrderLineItem, added_quantity: int, tax: TaxContext) -> OrderLineItem:
    """Fold a repeated add of the same variant into the existing line.

    The existing line's pre-tax price and MRP stay authoritative, so a price the
    operator already edited is not reset by the catalog price of the new add.
    """
    quantity = existing.quantity + coerce_quantity(added_quantity)
    unit_price = existing.unit_price
    return _finalize(
        existing, tax,
        quantity=quantity,
        unit_price=unit_price,
        selling_price=to_inclusive(unit_price, existing.gst_tax_rate),
        discount_rate=derive_discount_rate(to_pre_tax(existing.mrp, existing.gst_tax_rate), unit_price),
    )


def rounded(line: OrderLineItem) -> OrderLineItem:
    money = (
        "mrp", "discount_rate", "discount_amount", "selling_price", "unit_price",
        "gst_amount", "igst_amount", "sgst_amount", "cgst_amount", "final_item_price",
    )
    return line.model_copy(update={name: round(getattr(line, name), 2) for name in money})
