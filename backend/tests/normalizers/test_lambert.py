from decimal import Decimal

import pytest

from backend.app.normalizers._vendor_common import ValidationError
from backend.app.normalizers.lambert import normalize


def test_lambert_payload_is_coerced():
    record = normalize(
        {
            "vin": " 1fthx26f5rka00001 ",
            "stock_number": "L4471",
            "make": "Ford",
            "model": "F-250",
            "year": "2019",
            "price": "$32,995",
            "mileage": "74,210 mi",
            "images": ["https://lambertauto.example/img/1.jpg", ""],
            "url": "https://lambertauto.example/vdp/4471",
        }
    )
    assert record.vin == "1FTHX26F5RKA00001"
    assert record.stock_number == "L4471"
    assert record.year == 2019
    assert record.price == Decimal("32995")
    assert record.odometer == 74210
    assert record.images == ("https://lambertauto.example/img/1.jpg",)
    assert record.vendor_url == "https://lambertauto.example/vdp/4471"


def test_lambert_optional_fields_default():
    record = normalize({"make": "Kia", "model": "Soul", "year": 2016, "price": 7995})
    assert record.odometer == 0
    assert record.images == ()
    assert record.description == ""
    assert record.vin is None


@pytest.mark.parametrize("missing", ["make", "model", "year", "price"])
def test_lambert_required_fields(missing):
    payload = {"make": "Kia", "model": "Soul", "year": 2016, "price": 7995}
    del payload[missing]
    with pytest.raises(ValidationError) as excinfo:
        normalize(payload)
    assert missing in str(excinfo.value)


def test_lambert_rejects_unparseable_price():
    with pytest.raises(ValidationError):
        normalize({"make": "Kia", "model": "Soul", "year": 2016, "price": "Call for price"})
