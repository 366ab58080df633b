import logging

from orderdesk.agents.backend import BackendAgent
from orderdesk.orders.draft import STEP_CONFIRMATION, DraftError, OrderDraft
from orderdesk.orders.validation import BusinessProfileWithUserForm, QuickProductForm, UserCreateForm, is_valid_gstin
from orderdesk.pricing.totals import line_summary
from orderdesk.schemas.customer import BusinessProfile, User
from orderdesk.schemas.order import Order

logger = logging.getLogger("orderdesk.checkout")

async def find_user_by_phone(agent: BackendAgent, draft: OrderDraft, phone: str) -> User | None:
    """Look a B2C customer up by phone. ``None`` means the caller should offer to create one."""
    phone = phone.strip()
    if not phone:
        raise DraftError("Enter a phone number to search")

    user = await agent.search_user_by_phone(phone)
    draft.set_customer_type("B2C")
    draft.select_user(user)
    if user is None:
        logger.info(f"No user found for phone {phone}")
    return user

async def find_business_profile(agent: BackendAgent, draft: OrderDraft, gstin: str) -> tuple[BusinessProfile | None, User | None]:
    gstin = gstin.strip().upper()
    if not is_valid_gstin(gstin):
        raise DraftError("Invalid GSTIN format")

    profile = await agent.search_business_profile_by_gstin(gstin)
    user = await _first_linked_user(agent, profile)

    draft.set_customer_type("B2B")
    draft.select_business_profile(profile, user)
    return profile, user

async def select_business_profile(agent: BackendAgent, draft: OrderDraft, profile_id: int) -> tuple[BusinessProfile, User | None]:
    profile = await agent.get_business_profile(profile_id)
    user = await _first_linked_user(agent, profile)

    draft.set_customer_type("B2B")
    draft.select_business_profile(profile, user)
    return profile, user

async def _first_linked_user(agent: BackendAgent, profile: BusinessProfile | None) -> User | None:
    if profile is None:
        return None
    if not profile.user_ids:
        logger.info(f"Business profile {profile.id} has no linked users")
        return None
    return await agent.get_user(profile.user_ids[0])

async def create_user(agent: BackendAgent, draft: OrderDraft, form: UserCreateForm) -> User:
    user = await agent.create_user(form.to_request())
    draft.set_customer_type("B2C")
    draft.select_user(user)
    logger.info(f"Created user {user.id} for draft {draft.id}")
    return user

async def create_business_profile_with_user(agent: BackendAgent, draft: OrderDraft, form: BusinessProfileWithUserForm) -> tuple[BusinessProfile, User | None]:
    profile = await agent.create_business_profile_with_user(form.to_request())
    user = profile.user or await _first_linked_user(agent, profile)

    draft.set_customer_type("B2B")
    draft.select_business_profile(BusinessProfile.model_validate(profile.model_dump()), user)
    logger.info(f"Created business profile {profile.id} for draft {draft.id}")
    return profile, user

async def add_product(agent: BackendAgent, draft: OrderDraft, product_id: int, variant_id: int | None = None, quantity: int = 1):
    product = await agent.get_product(product_id)
    variants = product.variants or []
    variant = product.variant(variant_id) if variant_id is not None else (variants[0] if variants else None)
    if variant is None:
        raise DraftError(f"Product {product_id} has no variant {variant_id}" if variant_id is not None else f"Product {product_id} has no variants")
    return draft.add_item(product, variant, quantity)

async def quick_create_product(agent: BackendAgent, draft: OrderDraft, form: QuickProductForm):
    product = await agent.quick_create_product(form.to_request())
    logger.info(f"Quick created product {product.id} ({product.name})")
    if not product.variants:
        return product, None
    return product, draft.add_item(product, product.variants[0], 1)

async def submit_order(agent: BackendAgent, draft: OrderDraft) -> Order:
    request = draft.to_request()
    totals = draft.totals().rounded()
    logger.info(f"Submitting draft {draft.id}: {len(request.items)} lines, grand total {totals.grand_total:.2f}")
    for line in draft.lines:
        logger.debug(line_summary(line))

    order = await agent.create_order(request)

    draft.order_id = order.id
    draft.step = STEP_CONFIRMATION
    logger.info(f"Draft {draft.id} placed as order {order.id}")
    return order
