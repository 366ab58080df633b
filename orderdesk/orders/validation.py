"""Forms behind the order wizard dialogs. Nothing is sent to the API until these validate."""
import re
from typing import Annotated
from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator

from orderdesk.schemas.customer import CreateBusinessProfileWithUserRequest, CreateUserRequest, NewBusinessProfile, NewUser
from orderdesk.schemas.product import QuickCreateProductRequest

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"
GSTIN_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]


def split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def is_valid_gstin(value: str) -> bool:
    return re.match(GSTIN_PATTERN, value or "") is not None


class UserCreateForm(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(pattern=PHONE_PATTERN)
    email: OptionalEmail = None

    def to_request(self) -> CreateUserRequest:
        return CreateUserRequest(name=self.name, phone=self.phone, email=self.email, status="ACTIVE")


class BusinessProfileWithUserForm(BaseModel):
    bp_name: str = Field(min_length=1)
    bp_gstin: str = Field(pattern=GSTIN_PATTERN)
    user_name: str = Field(min_length=1)
    user_phone: str = Field(pattern=PHONE_PATTERN)
    user_email: OptionalEmail = None

    def to_request(self) -> CreateBusinessProfileWithUserRequest:
        return CreateBusinessProfileWithUserRequest(
            business_profile=NewBusinessProfile(name=self.bp_name, gstin=self.bp_gstin),
            user=NewUser(name=self.user_name, phone=self.user_phone, email=self.user_email),
        )


class QuickProductForm(BaseModel):
    name: str = Field(min_length=1)
    brand_name: str = Field(min_length=1)
    category_name: str = Field(min_length=1)
    colors: str = Field(min_length=1)
    sizes: str = Field(min_length=1)
    unit_price: float = Field(ge=0.01)

    @field_validator("colors", "sizes")
    @classmethod
    def check_not_empty_list(cls, value: str) -> str:
        if not split_list(value):
            raise ValueError("At least one value is required (comma-separated)")
        return value

    def to_request(self) -> QuickCreateProductRequest:
        return QuickCreateProductRequest(
            name=self.name,
            brand_name=self.brand_name,
            category_name=self.category_name,
            color_variants=split_list(self.colors),
            size_variants=split_list(self.sizes),
            unit_price=self.unit_price,
        )
