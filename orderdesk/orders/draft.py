"""
In-progress order built by the order wizard.

The draft owns the customer selection and the line items. Lines are immutable and
the list is replaced as a whole on every change, so a reader never sees a half
applied edit. Whenever the customer side changes the place of supply is resolved
again and every line is re-split between IGST and CGST/SGST.
"""
from __future__ import annotations

import logging
import uuid

from orderdesk.pricing import reconciler
from orderdesk.pricing.states import TaxContext, normalize_state, resolve_customer_state
from orderdesk.pricing.totals import OrderTotals, summarize
from orderdesk.schemas.base import ApiModel
from orderdesk.schemas.customer import BusinessProfile, User
from orderdesk.schemas.order import CreateOrderRequest, LineUpdate, OrderItemRequest, OrderLineItem
from orderdesk.schemas.product import Product, ProductVariant

logger = logging.getLogger("orderdesk.orders")

STEP_CUSTOMER = 1
STEP_ITEMS = 2
STEP_REVIEW = 3
STEP_CONFIRMATION = 4


class DraftError(Exception):
    pass


class DraftRecord(ApiModel):
    id: str
    customer_type: str = "B2C"
    seller_state: str
    user: User | None = None
    business_profile: BusinessProfile | None = None
    lines: list[OrderLineItem] = []
    step: int = STEP_CUSTOMER
    notes: str | None = None
    payment_type: str | None = None
    order_id: int | None = None


class OrderDraft:
    def __init__(self, seller_state: str, draft_id: str | None = None, customer_type: str = "B2C"):
        self.id = draft_id or str(uuid.uuid4())
        self.seller_state = normalize_state(seller_state)
        self.customer_type = customer_type
        self.user: User | None = None
        self.business_profile: BusinessProfile | None = None
        self.lines: tuple[OrderLineItem, ...] = ()
        self.step = STEP_CUSTOMER
        self.notes: str | None = None
        self.payment_type: str | None = None
        self.order_id: int | None = None
        self.customer_state = self.seller_state

    @property
    def tax(self) -> TaxContext:
        return TaxContext(seller_state=self.seller_state, customer_state=self.customer_state)

    def _refresh_tax(self):
        self.customer_state = resolve_customer_state(
            self.customer_type, self.user, self.business_profile, self.seller_state
        )
        tax = self.tax
        self.lines = tuple(reconciler.resplit(line, tax) for line in self.lines)
        logger.debug(f"Draft {self.id}: customer state {self.customer_state}, intra-state={tax.is_intra_state}")

    # Customer

    def set_customer_type(self, customer_type: str):
        if customer_type not in ("B2C", "B2B"):
            raise DraftError(f"Unknown customer type: {customer_type}")
        if customer_type != self.customer_type:
            self.customer_type = customer_type
            self.user = None
            self.business_profile = None
        self._refresh_tax()

    def select_user(self, user: User | None):
        self.user = user
        self._refresh_tax()

    def select_business_profile(self, business_profile: BusinessProfile | None, user: User | None = None):
        self.business_profile = business_profile
        self.user = user
        self._refresh_tax()

    # Lines

    def line(self, variant_id: int) -> OrderLineItem:
        for line in self.lines:
            if line.variant_id == variant_id:
                return line
        raise DraftError(f"Variant {variant_id} is not in this order")

    def _replace(self, updated: OrderLineItem):
        self.lines = tuple(updated if line.variant_id == updated.variant_id else line for line in self.lines)

    def add_item(self, product: Product, variant: ProductVariant, quantity: int = 1) -> OrderLineItem:
        if quantity is None or quantity <= 0:
            raise DraftError("Please select a product, variant, and valid quantity.")

        for line in self.lines:
            if line.variant_id == variant.id:
                merged = reconciler.merge_duplicate(line, quantity, self.tax)
                self._replace(merged)
                logger.info(f"Draft {self.id}: merged variant {variant.id}, quantity now {merged.quantity}")
                return merged

        added = reconciler.new_line(product, variant, quantity, self.tax)
        self.lines = self.lines + (added,)
        logger.info(f"Draft {self.id}: added variant {variant.id} x {quantity}")
        return added

    def edit_item(self, variant_id: int, edit) -> OrderLineItem:
        updated = reconciler.reconcile(self.line(variant_id), edit, self.tax)
        self._replace(updated)
        return updated

    def update_item(self, variant_id: int, update: LineUpdate) -> OrderLineItem:
        updated = reconciler.apply_update(self.line(variant_id), update, self.tax)
        self._replace(updated)
        return updated

    def remove_item(self, variant_id: int):
        self.line(variant_id)
        self.lines = tuple(line for line in self.lines if line.variant_id != variant_id)

    def totals(self) -> OrderTotals:
        return summarize(self.lines)

    # Wizard

    def can_proceed(self, step: int) -> bool:
        if step <= STEP_CUSTOMER:
            return True
        if step == STEP_ITEMS:
            return self.user is not None
        if step == STEP_REVIEW:
            return self.user is not None and len(self.lines) > 0
        if step == STEP_CONFIRMATION:
            return self.order_id is not None
        return False

    def go_to(self, step: int):
        if step < STEP_CUSTOMER or step > STEP_CONFIRMATION:
            raise DraftError(f"Unknown step: {step}")
        if step > self.step and not self.can_proceed(step):
            raise DraftError(f"Cannot proceed to step {step} yet")
        self.step = step

    def to_request(self) -> CreateOrderRequest:
        if self.user is None:
            raise DraftError("Select a customer before placing the order")
        if not self.lines:
            raise DraftError("Add at least one item before placing the order")

        items = []
        for line in self.lines:
            pre_tax_mrp = reconciler.to_pre_tax(line.mrp, line.gst_tax_rate)
            items.append(OrderItemRequest(
                product_id=line.product_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
                unit_price=round(line.unit_price, 2),
                discount_rate=round(line.discount_rate, 2),
                discount_amount=round(max(pre_tax_mrp - line.unit_price, 0.0), 2),
                gst_tax_rate=line.gst_tax_rate,
            ))

        return CreateOrderRequest(
            user_id=self.user.id,
            business_profile_id=self.business_profile.id if self.customer_type == "B2B" and self.business_profile else None,
            order_type=self.customer_type,
            items=items,
            notes=self.notes,
            payment_type=self.payment_type,
        )

    def reset(self):
        """Start a new order in the same session."""
        self.user = None
        self.business_profile = None
        self.lines = ()
        self.step = STEP_CUSTOMER
        self.notes = None
        self.payment_type = None
        self.order_id = None
        self._refresh_tax()

    # Persistence

    def to_record(self) -> DraftRecord:
        return DraftRecord(
            id=self.id,
            customer_type=self.customer_type,
            seller_state=self.seller_state,
            user=self.user,
            business_profile=self.business_profile,
            lines=list(self.lines),
            step=self.step,
            notes=self.notes,
            payment_type=self.payment_type,
            order_id=self.order_id,
        )

    @classmethod
    def from_record(cls, record: DraftRecord) -> "OrderDraft":
        draft = cls(seller_state=record.seller_state, draft_id=record.id, customer_type=record.customer_type)
        draft.user = record.user
        draft.business_profile = record.business_profile
        draft.lines = tuple(record.lines)
        draft.step = record.step
        draft.notes = record.notes
        draft.payment_type = record.payment_type
        draft.order_id = record.order_id
        draft._refresh_tax()
        return draft
