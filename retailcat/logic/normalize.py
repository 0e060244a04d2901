"""Field normalizers mapping raw retailer values to catalog values.

Everything here is pure: no I/O, and malformed input falls back to a
default instead of raising.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

from bs4 import BeautifulSoup

MAX_TEXT_LENGTH = 5000
DEFAULT_TITLE = "Default Title"

_PRICE_RE = re.compile(r"-?\d+(?:\.\d+)?")
_CONTROL_RE = re.compile(r"[\u0000-\u001f\u007f-\u009f]")
_SIZE_RE = re.compile(r"^(XXS|XS|S|M|L|XL|XXL|XXXL|\d+W?(\.\d+)?|\d+/\d+)$", re.IGNORECASE)

CLOTHING_KEYWORDS = (
    "clothing", "shirt", "dress", "pants", "jeans", "jacket", "coat", "sweater",
    "hoodie", "blouse", "skirt", "shorts", "shoes", "sneakers", "boots", "sandals",
    "hat", "cap", "bag", "purse", "belt", "scarf", "gloves", "socks", "underwear",
    "bra", "swimwear", "bikini", "tee", "t-shirt", "polo", "cardigan", "vest",
    "leggings", "tights", "pajamas", "nightwear", "activewear", "sportswear",
    "apparel", "fashion", "wear", "outfit",
)

CATEGORY_TYPES = {
    "T-SHIRT": "T-Shirts",
    "SWEATSHIRT": "Hoodies & Sweatshirts",
    "HOODIE": "Hoodies & Sweatshirts",
    "JEANS": "Jeans",
    "PANTS": "Pants",
    "SHORTS": "Shorts",
    "DRESS": "Dresses",
    "BLOUSE": "Blouses",
    "SHIRT": "Shirts",
    "JACKET": "Jackets",
    "COAT": "Coats",
    "SWEATER": "Sweaters",
    "CARDIGAN": "Cardigans",
    "SKIRT": "Skirts",
    "SUIT": "Suits",
    "BLAZER": "Blazers",
    "SWIMWEAR": "Swimwear",
    "UNDERWEAR": "Underwear",
    "SLEEPWEAR": "Sleepwear",
    "ACTIVEWEAR": "Activewear",
    "SHOES": "Shoes",
    "SNEAKERS": "Sneakers",
    "BOOTS": "Boots",
    "SANDALS": "Sandals",
    "ACCESSORIES": "Accessories",
    "HANDBAG": "Handbags",
    "WALLET": "Wallets",
    "JEWELRY": "Jewelry",
    "WATCH": "Watches",
}


@dataclass(slots=True)
class Pricing:
    price_currency: str
    original_price: float
    selling_price: float
    sale_price: float
    final_price: float
    discount: int
    is_on_sale: bool


@dataclass(slots=True)
class ProductDetails:
    should_skip: bool
    gender: str = "Unisex"
    category: str = ""
    materials: str = ""
    reason: str = ""


def _as_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_price(value: Any) -> float:
    """Parse ``19.99``, ``"$1,299.00"`` or similar; anything else is ``0.0``."""
    if isinstance(value, str):
        match = _PRICE_RE.search(value.replace(",", ""))
        number = _as_number(match.group()) if match else 0.0
    else:
        number = _as_number(value)
    return number if number > 0 else 0.0


def calculate_discount(original: Any, final: Any) -> int:
    """Whole-percent discount of ``final`` against ``original``, in [0, 100]."""
    original_value = _as_number(original)
    final_value = _as_number(final)
    if not original_value or not final_value or original_value <= final_value:
        return 0
    if final_value < 0:
        return 0
    # Half-up rounding, matching how retailers display percentages.
    return int(math.floor((original_value - final_value) / original_value * 100 + 0.5))


def build_pricing(original: Any, sale: Any = 0, *, currency: str = "USD", selling: Any = None) -> Pricing:
    original_price = parse_price(original)
    sale_price = parse_price(sale)
    is_on_sale = 0 < sale_price < original_price
    final_price = sale_price if is_on_sale else original_price
    return Pricing(
        price_currency=currency,
        original_price=original_price,
        selling_price=parse_price(selling) if selling is not None else original_price,
        sale_price=sale_price,
        final_price=final_price,
        discount=calculate_discount(original_price, final_price),
        is_on_sale=is_on_sale,
    )


def clean_and_truncate(html: Any, limit: int = MAX_TEXT_LENGTH) -> str:
    """Strip markup and control characters, collapse whitespace, cap length.

    Truncation counts code points, so multi-byte characters are never split.
    """
    if not html:
        return ""
    text = BeautifulSoup(str(html), "html.parser").get_text(" ")
    text = _CONTROL_RE.sub(" ", text)
    text = " ".join(text.split())
    return text[:limit].rstrip()


def get_domain_name(url: str) -> str:
    host = urlparse(url).hostname if "://" in url else None
    domain = host or url
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def _option_value(variant: Mapping[str, Any], options: Iterable[Mapping[str, Any]] | None, keywords: tuple[str, ...]) -> str:
    by_position = {opt.get("position"): opt for opt in options or ()}
    for position in (1, 2, 3):
        value = variant.get(f"option{position}")
        if not value or value == DEFAULT_TITLE:
            continue
        option = by_position.get(position)
        name = str(option.get("name", "")).lower() if option else ""
        if any(keyword in name for keyword in keywords):
            return str(value)
    return ""


def extract_size(variant: Mapping[str, Any], options: Iterable[Mapping[str, Any]] | None = None) -> str:
    """Size of a Shopify-style variant whose values sit in ``option1..3``."""
    options = list(options or ())
    size = _option_value(variant, options, ("size",))
    if size:
        return size
    for position in (1, 2, 3):
        value = variant.get(f"option{position}")
        if value and value != DEFAULT_TITLE and _SIZE_RE.match(str(value)):
            return str(value)
    return ""


def extract_color(variant: Mapping[str, Any], options: Iterable[Mapping[str, Any]] | None = None) -> str:
    return _option_value(variant, options, ("color", "colour"))


def determine_product_details(title: str, product_type: str = "", tags: Any = "") -> ProductDetails:
    """Keyword classifier deciding whether a product is apparel, and for whom."""
    if isinstance(tags, (list, tuple)):
        tags = " ".join(str(tag) for tag in tags)
    text = f"{product_type} {title} {tags}".lower()
    if not any(keyword in text for keyword in CLOTHING_KEYWORDS):
        return ProductDetails(should_skip=True, reason="not apparel")
    gender = "Unisex"
    if "men" in text and "women" not in text:
        gender = "Male"
    elif "women" in text or "ladies" in text:
        gender = "Female"
    elif "kids" in text or "children" in text or "baby" in text:
        gender = "Kids"
    return ProductDetails(should_skip=False, gender=gender)


def determine_gender(name: str, type_name: str = "") -> str:
    text = f"{name} {type_name}".lower()
    if "women's" in text or "womens" in text:
        return "Women"
    if "men's" in text or "mens" in text:
        return "Men"
    if "boy's" in text or "boys" in text:
        return "Boys"
    if "girl's" in text or "girls" in text:
        return "Girls"
    if "kid's" in text or "kids" in text or "children" in text:
        return "Kids"
    return "Unisex"


def determine_category(type_name: str) -> str:
    if not type_name:
        return "Unknown"
    return CATEGORY_TYPES.get(type_name.upper(), type_name)


def dedupe_urls(primary: str, urls: Iterable[str | None]) -> list[str]:
    """Alternate image list without blanks, repeats or the primary image."""
    seen = {primary} if primary else set()
    result: list[str] = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result
