import math

import pytest

from retailcat.logic.normalize import (
    build_pricing,
    calculate_discount,
    clean_and_truncate,
    determine_category,
    determine_gender,
    determine_product_details,
    extract_color,
    extract_size,
    get_domain_name,
    parse_price,
)


@pytest.mark.parametrize(
    "original, final, expected",
    [
        (100, 80, 20),
        (59.95, 44.96, 25),
        (100, 100, 0),
        (80, 100, 0),
        (0, 50, 0),
        (100, 0, 0),
        (None, 10, 0),
        (math.nan, 10, 0),
        (100, -5, 0),
        ("abc", 10, 0),
    ],
)
def test_calculate_discount(original, final, expected):
    assert calculate_discount(original, final) == expected


def test_discount_stays_in_percent_range():
    for original in (1, 9.99, 100, 2500):
        for final in (0.01, 1, 9.98, 99, 2499):
            assert 0 <= calculate_discount(original, final) <= 100


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,299.00", 1299.0),
        ("19.99", 19.99),
        (42, 42.0),
        ("$0", 0.0),
        ("USD", 0.0),
        ("", 0.0),
        (None, 0.0),
        (-3, 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
    ],
)
def test_parse_price_fails_soft(raw, expected):
    assert parse_price(raw) == expected


def test_build_pricing_sale_and_regular():
    sale = build_pricing("$100", "$80", currency="USD")
    assert (sale.original_price, sale.sale_price, sale.final_price) == (100.0, 80.0, 80.0)
    assert sale.selling_price == 100.0
    assert sale.discount == 20
    assert sale.is_on_sale is True

    regular = build_pricing(50, 60)
    assert regular.is_on_sale is False
    assert regular.final_price == 50.0
    assert regular.discount == 0


def test_clean_and_truncate():
    html = "<div><p>Soft&nbsp;cotton</p>\n\t<ul><li>Relaxed\x07fit</li></ul></div>"
    assert clean_and_truncate(html) == "Soft cotton Relaxed fit"
    assert clean_and_truncate(None) == ""
    assert clean_and_truncate("héllo wörld", limit=7) == "héllo w"
    assert clean_and_truncate("a " * 10, limit=4) == "a a"


def test_get_domain_name():
    assert get_domain_name("https://www.goodamerican.com/products/x") == "goodamerican.com"
    assert get_domain_name("shop.example.com") == "shop.example.com"


def test_extract_size_and_color_from_options():
    options = [{"name": "Colour", "position": 1}, {"name": "Size", "position": 2}]
    variant = {"option1": "Olive", "option2": "XL"}
    assert extract_size(variant, options) == "XL"
    assert extract_color(variant, options) == "Olive"


def test_extract_size_falls_back_to_pattern():
    assert extract_size({"option1": "Blue", "option2": "32"}, []) == "32"
    assert extract_size({"option1": "Default Title"}, []) == ""
    assert extract_color({"option1": "Default Title"}, [{"name": "Color", "position": 1}]) == ""


def test_determine_product_details():
    skipped = determine_product_details("Gift Card", "Gift Card", [])
    assert skipped.should_skip is True
    womens = determine_product_details("Women's Wrap Dress", "Dresses")
    assert (womens.should_skip, womens.gender) == (False, "Female")
    mens = determine_product_details("Men's Oxford Shirt", tags="new, shirt")
    assert mens.gender == "Male"
    kids = determine_product_details("Kids Hoodie")
    assert kids.gender == "Kids"


def test_determine_gender_prefers_womens():
    assert determine_gender("Women's Linen Pants") == "Women"
    assert determine_gender("Men's Chinos") == "Men"
    assert determine_gender("Girls Party Dress") == "Girls"
    assert determine_gender("Baseball Cap") == "Unisex"


def test_determine_category():
    assert determine_category("T-SHIRT") == "T-Shirts"
    assert determine_category("jeans") == "Jeans"
    assert determine_category("Outerwear") == "Outerwear"
    assert determine_category("") == "Unknown"
