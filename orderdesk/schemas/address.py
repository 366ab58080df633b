from orderdesk.schemas.base import ApiModel

BILLING = "BILLING"
SHIPPING = "SHIPPING"

class Address(ApiModel):
    id: int | None = None
    line1: str = ""
    line2: str | None = None
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    type: str | None = None
    is_default: bool = False

    @property
    def is_billing(self) -> bool:
        return (self.type or "").upper() == BILLING
