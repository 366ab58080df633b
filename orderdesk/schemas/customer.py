from typing import Literal
from orderdesk.schemas.base import ApiModel
from orderdesk.schemas.address import Address

CustomerType = Literal["B2C", "B2B"]

class User(ApiModel):
    id: int
    name: str
    phone: str = ""
    email: str | None = None
    type: str = "B2C"
    gstin: str | None = None
    addresses: list[Address] | None = None
    status: str | None = None

class CreateUserRequest(ApiModel):
    name: str
    phone: str
    email: str | None = None
    type: str = "B2C"
    status: str = "ACTIVE"
    addresses: list[Address] | None = None

class BusinessProfile(ApiModel):
    id: int
    name: str
    gstin: str
    status: str = "ACTIVE"
    payment_terms: str | None = None
    addresses: list[Address] | None = None
    user_ids: list[int] | None = None

class BusinessProfileWithUser(BusinessProfile):
    user: User | None = None

class NewBusinessProfile(ApiModel):
    name: str
    gstin: str

class NewUser(ApiModel):
    name: str
    phone: str
    email: str | None = None

class CreateBusinessProfileWithUserRequest(ApiModel):
    business_profile: NewBusinessProfile
    user: NewUser
