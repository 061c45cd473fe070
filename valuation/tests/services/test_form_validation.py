import pytest

from valuation.core.errors import FormValidationError
from valuation.services.form_validation import require_valid_form, validate_form


def valid_form(**overrides):
    fields = {
        "clientName": "Ramesh Patel",
        "mobileNumber": "98250 12345",
        "address": "12, Shanti Nagar, Ahmedabad",
        "bankName": "State Bank of India",
        "city": "Ahmedabad",
        "dsa": "Direct",
        "engineerName": "K. Shah",
        "payment": "no",
    }
    fields.update(overrides)
    return fields


def test_valid_form_has_no_errors():
    assert validate_form(valid_form()) == []
    require_valid_form(valid_form())


def test_all_violations_reported_together():
    errors = validate_form({"mobileNumber": "12345", "latitude": "91", "longitude": "-181"})
    assert errors == [
        "Client Name is required",
        "Mobile Number must be 10 digits",
        "Address is required",
        "Bank Name is required",
        "City is required",
        "Market Applications / DSA (Sales Agent) is required",
        "Engineer Name is required",
        "Latitude must be a valid number between -90 and 90",
        "Longitude must be a valid number between -180 and 180",
    ]


def test_require_valid_form_raises_with_every_message():
    with pytest.raises(FormValidationError) as exc:
        require_valid_form(valid_form(clientName=" ", mobileNumber=""))
    assert exc.value.errors == ["Client Name is required", "Mobile Number is required"]


def test_other_choice_needs_custom_value():
    errors = validate_form(valid_form(bankName="other", customBankName=""))
    assert errors == ["Bank Name is required"]
    assert validate_form(valid_form(bankName="Other", customBankName="Co-op Bank")) == []


def test_collected_by_required_when_payment_collected():
    assert validate_form(valid_form(payment="yes")) == ["Collected By name is required when payment is collected"]
    assert validate_form(valid_form(payment="yes", collectedBy="Site Engineer")) == []


@pytest.mark.parametrize("lat, ok", [("23.02", True), ("-90", True), ("90.0001", False), ("north", False)])
def test_latitude_range(lat, ok):
    errors = validate_form(valid_form(latitude=lat))
    assert (errors == []) is ok


def test_coordinates_optional():
    assert validate_form(valid_form(latitude="", longitude="")) == []
    assert validate_form(valid_form(longitude="72.57")) == []
