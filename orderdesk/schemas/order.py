from typing import Annotated, Literal, Union
from pydantic import AfterValidator, BeforeValidator, ConfigDict, Field
from orderdesk.schemas.base import ApiModel
from orderdesk.pricing.rates import check_gst_rate, coerce_amount, coerce_number, coerce_quantity

Amount = Annotated[float, BeforeValidator(coerce_amount)]
Percent = Annotated[float, BeforeValidator(coerce_number)]
Quantity = Annotated[int, BeforeValidator(coerce_quantity)]
GstRate = Annotated[float, BeforeValidator(coerce_number), AfterValidator(check_gst_rate)]

class OrderLineItem(ApiModel):
    model_config = ConfigDict(frozen=True)

    product_id: int
    variant_id: int
    product_name: str = ""
    variant_name: str = ""
    hsn_code: str | None = None
    quantity: int = 1
    mrp: float = 0.0
    discount_rate: float = 0.0
    discount_amount: float = 0.0  # whole line, pre-tax
    selling_price: float = 0.0    # per unit, GST inclusive
    unit_price: float = 0.0       # per unit, pre-tax
    gst_tax_rate: float = 0.0
    gst_amount: float = 0.0
    igst_amount: float = 0.0
    sgst_amount: float = 0.0
    cgst_amount: float = 0.0
    final_item_price: float = 0.0

class SetSellingPrice(ApiModel):
    kind: Literal["selling_price"] = "selling_price"
    selling_price: Amount

class SetMrpOrDiscount(ApiModel):
    kind: Literal["mrp_or_discount"] = "mrp_or_discount"
    mrp: Amount | None = None
    discount_rate: Percent | None = None

class SetQuantity(ApiModel):
    kind: Literal["quantity"] = "quantity"
    quantity: Quantity

class SetGstRate(ApiModel):
    kind: Literal["gst_rate"] = "gst_rate"
    gst_tax_rate: GstRate

LineEdit = Annotated[
    Union[SetSellingPrice, SetMrpOrDiscount, SetQuantity, SetGstRate],
    Field(discriminator="kind"),
]

class LineUpdate(ApiModel):
    """Partial field update as sent by the line editing dialog."""
    quantity: Quantity | None = None
    mrp: Amount | None = None
    discount_rate: Percent | None = None
    selling_price: Amount | None = None
    gst_tax_rate: GstRate | None = None

class OrderItemRequest(ApiModel):
    product_id: int
    variant_id: int
    quantity: int
    unit_price: float
    discount_rate: float
    discount_amount: float  # per unit, pre-tax
    gst_tax_rate: float

class CreateOrderRequest(ApiModel):
    user_id: int
    business_profile_id: int | None = None
    order_type: Literal["B2C", "B2B"] = "B2C"
    items: list[OrderItemRequest]
    notes: str | None = None
    payment_type: str | None = None

class Order(ApiModel):
    id: int
    order_number: str | None = None
    status: str | None = None
    total_amount: float | None = None
    created_at: str | None = None
