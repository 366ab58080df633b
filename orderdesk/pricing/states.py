"""
Place of supply for GST.

The customer's state decides whether a line carries IGST (inter-state) or an even
CGST/SGST split (intra-state). States are compared by their two digit GST codes,
which are also the first two characters of a GSTIN.
"""
from __future__ import annotations

from dataclasses import dataclass

from orderdesk.schemas.address import Address
from orderdesk.schemas.customer import BusinessProfile, User

STATE_CODES = {
    "01": "Jammu and Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "26": "Dadra and Nagar Haveli and Daman and Diu",
    "27": "Maharashtra",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman and Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh",
    "38": "Ladakh",
    "97": "Other Territory",
}

_CODES_BY_NAME = {name.casefold(): code for code, name in STATE_CODES.items()}
_CODES_BY_NAME.update({
    "orissa": "21",
    "pondicherry": "34",
    "nct of delhi": "07",
    "new delhi": "07",
    "uttaranchal": "05",
})


def normalize_state(value: str | None) -> str:
    """Return the GST state code for a state name or code.

    Values that are neither a known name nor a known code are returned stripped and
    upper-cased so that two identical free-text states still compare equal.
    """
    text = (value or "").strip()
    if not text:
        return ""
    if text.isdigit() and len(text) <= 2:
        text = text.zfill(2)
        if text in STATE_CODES:
            return text
    code = _CODES_BY_NAME.get(text.casefold())
    if code:
        return code
    return text.upper()


def pick_address(addresses: list[Address] | None) -> Address | None:
    addresses = addresses or []
    for address in addresses:
        if address.is_default and address.is_billing:
            return address
    for address in addresses:
        if address.is_billing:
            return address
    return addresses[0] if addresses else None


def resolve_customer_state(
    customer_type: str,
    user: User | None,
    business_profile: BusinessProfile | None,
    seller_state: str,
) -> str:
    entity = business_profile if customer_type == "B2B" else user
    address = pick_address(entity.addresses if entity is not None else None)
    if address is None or not address.state:
        # No address on file: treat the sale as intra-state
        return normalize_state(seller_state)
    return normalize_state(address.state)


@dataclass(frozen=True)
class TaxContext:
    seller_state: str
    customer_state: str

    @property
    def is_intra_state(self) -> bool:
        return normalize_state(self.seller_state) == normalize_state(self.customer_state)

    @classmethod
    def local(cls, seller_state: str) -> "TaxContext":
        return cls(seller_state=seller_state, customer_state=seller_state)


def split_tax(gst_amount: float, tax: TaxContext) -> tuple[float, float, float]:
    """Split a GST amount into ``(igst, cgst, sgst)``."""
    if tax.is_intra_state:
        half = gst_amount / 2
        return 0.0, half, half
    return gst_amount, 0.0, 0.0
