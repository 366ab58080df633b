from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from orderdesk.agents.backend import BackendAgent, BackendError
from orderdesk.agents.postgres import PostgresAgent
from orderdesk.config import settings
from orderdesk.logger import setup_logger
from orderdesk.orders import checkout
from orderdesk.orders.draft import DraftError, OrderDraft
from orderdesk.orders.store import DraftNotFound, DraftStore
from orderdesk.orders.validation import BusinessProfileWithUserForm, QuickProductForm, UserCreateForm
from orderdesk.pricing.rates import GST_RATES
from orderdesk.pricing.reconciler import rounded
from orderdesk.pricing.states import STATE_CODES
from orderdesk.schemas.base import ApiModel
from orderdesk.schemas.order import LineEdit, LineUpdate

logger = setup_logger()

LINE_EDIT = TypeAdapter(LineEdit)

@asynccontextmanager
async def lifespan(app: FastAPI):
    postgres = None
    if settings.PERSIST_DRAFTS:
        postgres = PostgresAgent()
        await postgres.create_tables()
        app.state.store.postgres = postgres
    yield
    if postgres is not None:
        await postgres.dispose()

app = FastAPI(title="orderdesk", lifespan=lifespan)
app.state.store = DraftStore()

class CreateDraftBody(ApiModel):
    customer_type: str = "B2C"
    seller_state: str | None = None

class CustomerTypeBody(ApiModel):
    customer_type: str

class PhoneBody(ApiModel):
    phone: str

class GstinBody(ApiModel):
    gstin: str

class AddItemBody(ApiModel):
    product_id: int
    variant_id: int | None = None
    quantity: int = 1

class ReviewBody(ApiModel):
    notes: str | None = None
    payment_type: str | None = None

class StepBody(ApiModel):
    step: int

class SearchBody(ApiModel):
    query: str = ""

def get_backend() -> BackendAgent:
    return BackendAgent()

def get_store(request: Request) -> DraftStore:
    return request.app.state.store

def draft_view(draft: OrderDraft) -> dict:
    tax = draft.tax
    return {
        "id": draft.id,
        "customerType": draft.customer_type,
        "sellerState": draft.seller_state,
        "customerState": draft.customer_state,
        "intraState": tax.is_intra_state,
        "step": draft.step,
        "user": draft.user.to_payload() if draft.user else None,
        "businessProfile": draft.business_profile.to_payload() if draft.business_profile else None,
        "lines": [rounded(line).to_payload() for line in draft.lines],
        "totals": draft.totals().rounded().to_payload(),
        "notes": draft.notes,
        "paymentType": draft.payment_type,
        "orderId": draft.order_id,
        "canProceed": {str(step): draft.can_proceed(step) for step in (2, 3, 4)},
    }

@app.exception_handler(DraftError)
async def draft_error_handler(request: Request, exc: DraftError):
    return JSONResponse(status_code=400, content={"error": str(exc)})

@app.exception_handler(DraftNotFound)
async def draft_not_found_handler(request: Request, exc: DraftNotFound):
    return JSONResponse(status_code=404, content={"error": f"Draft {exc} not found"})

@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    return JSONResponse(status_code=502, content={"error": exc.message, "status": exc.status_code})

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "Invalid input", "detail": exc.errors(include_url=False, include_context=False)})

@app.get("/refresh")
def refresh():
    result = settings.refresh()

    return {"apiBaseUrl": result.API_BASE_URL, "sellerStateCode": result.SELLER_STATE_CODE}

@app.get("/gst-rates")
def get_gst_rates():
    return [{"rate": rate, "cgstRate": rate / 2, "sgstRate": rate / 2, "igstRate": rate} for rate in GST_RATES]

@app.get("/states")
def get_states():
    return [{"code": code, "name": name} for code, name in STATE_CODES.items()]

@app.get("/products/search")
async def search_products(q: str, backend: BackendAgent = Depends(get_backend)):
    if not q.strip():
        return []
    results = await backend.search_products(q)
    return [row.to_payload() for row in results]

@app.get("/orders/search")
async def search_orders(keyword: str, page: int = 0, size: int = 10, sort: str | None = None, backend: BackendAgent = Depends(get_backend)):
    result = await backend.search_orders(keyword, page=page, size=size, sort=sort)
    return result.to_payload()

@app.get("/meta/order-statuses")
async def get_order_statuses(backend: BackendAgent = Depends(get_backend)):
    return await backend.get_order_statuses()

@app.get("/meta/payment-types")
async def get_payment_types(backend: BackendAgent = Depends(get_backend)):
    return await backend.get_payment_types()

@app.post("/drafts", status_code=201)
async def create_draft(body: CreateDraftBody, store: DraftStore = Depends(get_store)):
    draft = await store.create(body.seller_state or settings.SELLER_STATE_CODE, body.customer_type)
    return draft_view(draft)

@app.get("/drafts/{draft_id}")
async def get_draft(draft_id: str, store: DraftStore = Depends(get_store)):
    return draft_view(await store.get(draft_id))

@app.delete("/drafts/{draft_id}", status_code=204)
async def delete_draft(draft_id: str, store: DraftStore = Depends(get_store)):
    await store.delete(draft_id)

@app.put("/drafts/{draft_id}/customer-type")
async def set_customer_type(draft_id: str, body: CustomerTypeBody, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.set_customer_type(body.customer_type)
    await store.save(draft)
    return draft_view(draft)

@app.post("/drafts/{draft_id}/customer/phone")
async def find_customer_by_phone(draft_id: str, body: PhoneBody, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    user = await checkout.find_user_by_phone(backend, draft, body.phone)
    await store.save(draft)
    return {"found": user is not None, "draft": draft_view(draft)}

@app.post("/drafts/{draft_id}/customer/gstin")
async def find_customer_by_gstin(draft_id: str, body: GstinBody, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    profile, user = await checkout.find_business_profile(backend, draft, body.gstin)
    await store.save(draft)
    return {"found": profile is not None, "userLinked": user is not None, "draft": draft_view(draft)}

@app.put("/drafts/{draft_id}/customer/business-profile/{profile_id}")
async def select_business_profile(draft_id: str, profile_id: int, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    _, user = await checkout.select_business_profile(backend, draft, profile_id)
    await store.save(draft)
    return {"userLinked": user is not None, "draft": draft_view(draft)}

@app.post("/drafts/{draft_id}/customer/user", status_code=201)
async def create_customer_user(draft_id: str, form: UserCreateForm, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    await checkout.create_user(backend, draft, form)
    await store.save(draft)
    return draft_view(draft)

@app.post("/drafts/{draft_id}/customer/business-profile", status_code=201)
async def create_customer_business_profile(draft_id: str, form: BusinessProfileWithUserForm, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    await checkout.create_business_profile_with_user(backend, draft, form)
    await store.save(draft)
    return draft_view(draft)

@app.post("/drafts/{draft_id}/items")
async def add_item(draft_id: str, body: AddItemBody, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    await checkout.add_product(backend, draft, body.product_id, body.variant_id, body.quantity)
    await store.save(draft)
    return draft_view(draft)

@app.post("/drafts/{draft_id}/products/quick", status_code=201)
async def quick_create_product(draft_id: str, form: QuickProductForm, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    product, _ = await checkout.quick_create_product(backend, draft, form)
    await store.save(draft)
    return {"product": product.to_payload(), "draft": draft_view(draft)}

@app.patch("/drafts/{draft_id}/items/{variant_id}")
async def edit_item(draft_id: str, variant_id: int, payload: dict, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.edit_item(variant_id, LINE_EDIT.validate_python(payload))
    await store.save(draft)
    return draft_view(draft)

@app.patch("/drafts/{draft_id}/items/{variant_id}/fields")
async def update_item(draft_id: str, variant_id: int, update: LineUpdate, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.update_item(variant_id, update)
    await store.save(draft)
    return draft_view(draft)

@app.delete("/drafts/{draft_id}/items/{variant_id}")
async def remove_item(draft_id: str, variant_id: int, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.remove_item(variant_id)
    await store.save(draft)
    return draft_view(draft)

@app.get("/drafts/{draft_id}/totals")
async def get_totals(draft_id: str, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    return draft.totals().rounded().to_payload()

@app.put("/drafts/{draft_id}/review")
async def set_review(draft_id: str, body: ReviewBody, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.notes = body.notes
    draft.payment_type = body.payment_type
    await store.save(draft)
    return draft_view(draft)

@app.put("/drafts/{draft_id}/step")
async def set_step(draft_id: str, body: StepBody, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.go_to(body.step)
    await store.save(draft)
    return draft_view(draft)

@app.post("/drafts/{draft_id}/submit")
async def submit_draft(draft_id: str, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    draft = await store.get(draft_id)
    order = await checkout.submit_order(backend, draft)
    await store.save(draft)
    return {"order": order.to_payload(), "draft": draft_view(draft)}

@app.post("/drafts/{draft_id}/reset")
async def reset_draft(draft_id: str, store: DraftStore = Depends(get_store)):
    draft = await store.get(draft_id)
    draft.reset()
    await store.save(draft)
    return draft_view(draft)

@app.put("/drafts/{draft_id}/product-search", status_code=202)
async def submit_product_search(draft_id: str, body: SearchBody, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    await store.get(draft_id)
    search = store.search_for(draft_id, backend.search_products)
    generation = search.submit(body.query)
    return {"generation": generation, "pending": search.pending}

@app.get("/drafts/{draft_id}/product-search")
async def get_product_search(draft_id: str, store: DraftStore = Depends(get_store), backend: BackendAgent = Depends(get_backend)):
    await store.get(draft_id)
    search = store.search_for(draft_id, backend.search_products)
    return {
        "query": search.query,
        "generation": search.generation,
        "pending": search.pending,
        "error": search.error,
        "results": [row.to_payload() for row in search.results],
    }
