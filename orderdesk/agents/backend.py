import json, logging
import httpx

from orderdesk.config import settings
from orderdesk.schemas.customer import (
    BusinessProfile,
    BusinessProfileWithUser,
    CreateBusinessProfileWithUserRequest,
    CreateUserRequest,
    User,
)
from orderdesk.schemas.order import CreateOrderRequest, Order
from orderdesk.schemas.page import Page
from orderdesk.schemas.product import Product, ProductSearchResult, QuickCreateProductRequest

logger = logging.getLogger("orderdesk.backend")

class BackendError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

def extract_error_message(response: httpx.Response) -> str:
    message = f"API request failed: {response.status_code} {response.reason_phrase}"
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return message

    if isinstance(data, dict):
        if data.get("message"):
            return data["message"]
        if data.get("error"):
            return data["error"]
        if data.get("detail"):
            return data["detail"]
    elif isinstance(data, list) and data and isinstance(data[0], dict):
        # Field validation errors come back as a list
        parts = [err.get("message") or f"{err.get('field')}: {err.get('defaultMessage')}" for err in data]
        return ", ".join(parts)
    return message

class BackendAgent:
    def __init__(self, base_url: str | None = None, token: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = settings.API_TOKEN if token is None else token
        self.timeout = settings.API_TIMEOUT
        self.transport = transport

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(self, method: str, endpoint: str, params: dict | None = None, payload: dict | None = None):
        params = {key: value for key, value in (params or {}).items() if value is not None}
        async with httpx.AsyncClient(base_url=self.base_url, headers=self._headers(), timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, endpoint, params=params, json=payload)
            except httpx.RequestError as e:
                logger.error(f"{method} {endpoint} failed: {str(e)}")
                raise BackendError(503, f"API request failed: {str(e)}") from e

        if not response.is_success:
            message = extract_error_message(response)
            logger.warning(f"{method} {endpoint} -> {response.status_code}: {message}")
            raise BackendError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _find(self, endpoint: str, params: dict):
        try:
            return await self.request("GET", endpoint, params=params)
        except BackendError as e:
            if e.status_code == 404:
                return None
            raise

    # Users

    async def search_user_by_phone(self, phone: str) -> User | None:
        data = await self._find("/users/search/phone", {"phone": phone})
        return User.model_validate(data) if data else None

    async def get_user(self, user_id: int) -> User:
        return User.model_validate(await self.request("GET", f"/users/{user_id}"))

    async def create_user(self, user: CreateUserRequest) -> User:
        return User.model_validate(await self.request("POST", "/users", payload=user.to_payload()))

    # Business profiles

    async def search_business_profile_by_gstin(self, gstin: str) -> BusinessProfile | None:
        data = await self._find("/business-profiles/search/gstin", {"gstin": gstin})
        return BusinessProfile.model_validate(data) if data else None

    async def get_business_profile(self, profile_id: int) -> BusinessProfile:
        return BusinessProfile.model_validate(await self.request("GET", f"/business-profiles/{profile_id}"))

    async def create_business_profile_with_user(self, request: CreateBusinessProfileWithUserRequest) -> BusinessProfileWithUser:
        data = await self.request("POST", "/business-profiles/with-user", payload=request.to_payload())
        return BusinessProfileWithUser.model_validate(data)

    # Products

    async def search_products(self, query: str) -> list[ProductSearchResult]:
        data = await self.request("GET", "/products/search/fuzzy", params={"query": query})
        return [ProductSearchResult.model_validate(row) for row in data or []]

    async def get_product(self, product_id: int) -> Product:
        return Product.model_validate(await self.request("GET", f"/products/{product_id}"))

    async def quick_create_product(self, request: QuickCreateProductRequest) -> Product:
        return Product.model_validate(await self.request("POST", "/products/quick", payload=request.to_payload()))

    # Orders

    async def create_order(self, order: CreateOrderRequest) -> Order:
        return Order.model_validate(await self.request("POST", "/orders", payload=order.to_payload()))

    async def search_orders(self, keyword: str, page: int = 0, size: int = 10, sort: str | None = None) -> Page[Order]:
        data = await self.request("GET", "/orders/search", params={"keyword": keyword, "page": page, "size": size, "sort": sort})
        if not data:
            return Page[Order].empty_page(size=size, number=page)
        return Page[Order].model_validate(data)

    async def get_order_statuses(self) -> list[str]:
        data = await self.request("GET", "/meta/order/statuses")
        return data if isinstance(data, list) else []

    async def get_payment_types(self) -> list[str]:
        data = await self.request("GET", "/meta/order/payment-types")
        return data if isinstance(data, list) else []
