import pytest
from pydantic import ValidationError

from orderdesk.orders.validation import BusinessProfileWithUserForm, QuickProductForm, UserCreateForm, is_valid_gstin


class TestUserCreateForm:
    def test_valid(self):
        form = UserCreateForm(name="Asha", phone="+919876543210", email="")
        assert form.email is None
        assert form.to_request().to_payload() == {"name": "Asha", "phone": "+919876543210", "type": "B2C", "status": "ACTIVE"}

    @pytest.mark.parametrize("phone", ["", "0123", "abc", "+0987654321"])
    def test_bad_phone(self, phone):
        with pytest.raises(ValidationError):
            UserCreateForm(name="Asha", phone=phone)

    def test_bad_email(self):
        with pytest.raises(ValidationError):
            UserCreateForm(name="Asha", phone="9876543210", email="not-an-email")


class TestBusinessProfileForm:
    def test_valid(self):
        form = BusinessProfileWithUserForm(bp_name="Asha Traders", bp_gstin="29ABCDE1234F1Z5",
                                           user_name="Asha", user_phone="9876543210")
        payload = form.to_request().to_payload()
        assert payload["businessProfile"] == {"name": "Asha Traders", "gstin": "29ABCDE1234F1Z5"}
        assert payload["user"]["phone"] == "9876543210"

    def test_bad_gstin(self):
        with pytest.raises(ValidationError):
            BusinessProfileWithUserForm(bp_name="X", bp_gstin="29ABCDE1234F1X5", user_name="A", user_phone="9876543210")

    @pytest.mark.parametrize("gstin, valid", [("22AAAAA0000A1Z5", True), ("22aaaaa0000a1z5", False), ("", False)])
    def test_is_valid_gstin(self, gstin, valid):
        assert is_valid_gstin(gstin) is valid


class TestQuickProductForm:
    def test_lists_are_split(self):
        form = QuickProductForm(name="Tee", brand_name="Acme", category_name="Tops",
                                colors="Red, Blue,,", sizes="M,L", unit_price=499)
        request = form.to_request()
        assert request.color_variants == ["Red", "Blue"]
        assert request.size_variants == ["M", "L"]

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError, match="At least one value"):
            QuickProductForm(name="Tee", brand_name="Acme", category_name="Tops", colors=" , ", sizes="M", unit_price=1)

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            QuickProductForm(name="Tee", brand_name="Acme", category_name="Tops", colors="Red", sizes="M", unit_price=0)
