"""Address formatting, maps links and money helpers."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from utils.address import format_address, generate_maps_url
from utils.money import ensure_decimal, fmt_money, labour_cost, to_money


def _loc(**fields):
    base = dict(street_name=None, street_number=None, unit_number=None, city=None, state=None, zip_code=None)
    base.update(fields)
    return SimpleNamespace(**base)


def test_format_full_address():
    loc = _loc(street_name="Rua Augusta", street_number="1500", unit_number="Apt 12",
               city="Sao Paulo", state="SP", zip_code="01304-001")

    assert format_address(loc) == "Rua Augusta, 1500 - Apt 12 - Sao Paulo SP 01304-001"


def test_format_address_skips_blank_parts():
    assert format_address(_loc(street_name="Main St", city="Austin")) == "Main St - Austin"
    assert format_address(_loc(street_name="Main St", street_number="")) == "Main St"


def test_format_address_fallbacks():
    assert format_address(None) == "Address not available"
    assert format_address(_loc()) == "Incomplete address"


def test_maps_url_percent_encodes_destination():
    loc = _loc(street_name="O'Brien Ave", street_number="7", city="São Paulo", state="SP")

    url = generate_maps_url(loc)

    assert url == (
        "https://www.google.com/maps/dir/?api=1&destination="
        "O'Brien%20Ave%207%20S%C3%A3o%20Paulo%20SP"
    )


def test_maps_url_empty_without_address():
    assert generate_maps_url(None) == ""
    assert generate_maps_url(_loc(unit_number="Apt 3")) == ""


def test_to_money_rounds_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(None) == Decimal("0.00")
    assert to_money(3) == Decimal("3.00")


def test_labour_cost():
    assert labour_cost(5400, Decimal("20.00")) == Decimal("30")
    assert labour_cost(5400, None) == Decimal("0")
    assert to_money(labour_cost(1000, Decimal("36.00"))) == Decimal("10.00")


def test_fmt_money():
    assert fmt_money(Decimal("1234.5")) == "$ 1,234.50"
    assert fmt_money(0) == "$ 0.00"
    with pytest.raises(ValueError):
        fmt_money(1.5)


def test_ensure_decimal_rejects_bool_and_garbage():
    with pytest.raises(TypeError):
        ensure_decimal(True)
    with pytest.raises(ValueError):
        ensure_decimal("abc")
    assert ensure_decimal(0.1) == Decimal("0.1")
