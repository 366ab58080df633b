import httpx
import pytest

from orderdesk.agents.backend import BackendAgent
from orderdesk.pricing.states import TaxContext
from orderdesk.schemas.address import Address
from orderdesk.schemas.customer import BusinessProfile, User
from orderdesk.schemas.product import Product, ProductVariant

SELLER = "29"
OTHER_STATE = "27"


def make_product(product_id=1, gst=18, mrp=118.0, price=118.0, variant_ids=(11,)):
    variants = [
        ProductVariant(id=vid, product_id=product_id, mrp=mrp, price=price, color="Red", size="M")
        for vid in variant_ids
    ]
    return Product(id=product_id, name="Cotton Shirt", hsn_code="6205", gst_tax_rate=gst, variants=variants)


def make_user(user_id=7, state=None, address_type="BILLING", is_default=True):
    addresses = []
    if state is not None:
        addresses.append(Address(id=1, line1="1 MG Road", city="City", state=state, country="IN",
                                 postal_code="560001", type=address_type, is_default=is_default))
    return User(id=user_id, name="Asha", phone="+919876543210", addresses=addresses)


def make_profile(profile_id=3, state=None, user_ids=(7,)):
    addresses = []
    if state is not None:
        addresses.append(Address(id=2, state=state, type="BILLING", is_default=True))
    return BusinessProfile(id=profile_id, name="Asha Traders", gstin="29ABCDE1234F1Z5",
                           addresses=addresses, user_ids=list(user_ids))


@pytest.fixture
def local_tax():
    return TaxContext.local(SELLER)


@pytest.fixture
def interstate_tax():
    return TaxContext(seller_state=SELLER, customer_state=OTHER_STATE)


class FakeApi:
    """Routes (method, path) to canned JSON responses and records the requests it saw."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, status=200, json=None):
        self.routes[(method, path)] = (status, json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": f"No route {request.method} {request.url.path}"})
        status, body = self.routes[key]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def agent(self) -> BackendAgent:
        return BackendAgent(base_url="http://backend.test", token="secret", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api():
    return FakeApi()
