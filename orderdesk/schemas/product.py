from orderdesk.schemas.base import ApiModel

class ProductVariant(ApiModel):
    id: int
    product_id: int | None = None
    sku: str | None = None
    mrp: float | None = None
    selling_price: float | None = None
    price: float | None = None
    compare_at_price: float | None = None
    cost_price: float | None = None
    quantity: int = 0
    barcode: str | None = None
    color: str | None = None
    size: str | None = None

    @property
    def label(self) -> str:
        return f"{self.color or ''} / {self.size or ''}".strip()

class Product(ApiModel):
    id: int
    name: str
    hsn_code: str | None = None
    gst_tax_rate: float | None = None
    unit_price: float | None = None
    status: str | None = None
    variants: list[ProductVariant] | None = None

    def variant(self, variant_id: int) -> ProductVariant | None:
        for variant in self.variants or []:
            if variant.id == variant_id:
                return variant
        return None

class ProductSearchResult(ApiModel):
    id: int
    name: str
    sku: str | None = None
    brand_name: str | None = None
    category_name: str | None = None
    hsn_code: str | None = None

class QuickCreateProductRequest(ApiModel):
    name: str
    brand_name: str
    category_name: str
    color_variants: list[str]
    size_variants: list[str]
    unit_price: float
