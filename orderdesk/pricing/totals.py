from orderdesk.schemas.base import ApiModel
from orderdesk.schemas.order import OrderLineItem

class OrderTotals(ApiModel):
    item_count: int = 0
    subtotal: float = 0.0
    total_discount: float = 0.0
    total_gst: float = 0.0
    total_igst: float = 0.0
    total_cgst: float = 0.0
    total_sgst: float = 0.0
    grand_total: float = 0.0

    def rounded(self) -> "OrderTotals":
        return self.model_copy(update={
            name: round(value, 2)
            for name, value in self.__dict__.items()
            if isinstance(value, float)
        })


def summarize(lines) -> OrderTotals:
    # Discount is already netted into unit_price, so it is reported but never subtracted
    totals = OrderTotals()
    for line in lines:
        totals.item_count += line.quantity
        totals.subtotal += line.unit_price * line.quantity
        totals.total_discount += line.discount_amount
        totals.total_gst += line.gst_amount
        totals.total_igst += line.igst_amount
        totals.total_cgst += line.cgst_amount
        totals.total_sgst += line.sgst_amount
        totals.grand_total += line.final_item_price
    return totals


def line_summary(line: OrderLineItem) -> str:
    label = f"{line.product_name} ({line.variant_name})" if line.variant_name else line.product_name
    return f"{label} x {line.quantity}"
