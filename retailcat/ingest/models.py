"""Catalog data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

OPERATION_TYPES = ("INSERT", "UPDATE", "DELETE", "NO_CHANGE")


@dataclass(slots=True)
class CategoryConfig:
    name: str
    id: str = ""
    gender: str = "Unisex"
    url: str = ""
    params: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class RetailerConfig:
    slug: str
    name: str
    domain: str
    platform: str
    country: str = "US"
    currency: str = "USD"
    store_url: str = ""
    return_policy_link: str = ""
    size_chart: str = ""
    stock_policy: str | None = None
    categories: list[CategoryConfig] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    recrawl: bool = False

    @property
    def store_type(self) -> str:
        return self.slug


@dataclass(slots=True)
class Variant:
    price_currency: str = "USD"
    original_price: float = 0.0
    link_url: str = ""
    deeplink_url: str = ""
    image_url: str = ""
    alternate_image_urls: list[str] = field(default_factory=list)
    is_on_sale: bool = False
    is_in_stock: bool = False
    size: str = ""
    color: str = ""
    mpn: str = ""
    ratings_count: float = 0
    average_ratings: float = 0
    review_count: float = 0
    selling_price: float = 0.0
    sale_price: float = 0.0
    final_price: float = 0.0
    discount: int = 0
    operation_type: str = "INSERT"
    variant_id: str = ""
    variant_description: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Variant":
        known, extra = _split(cls, data)
        _check_operation(known)
        return cls(**known, extra=extra)


@dataclass(slots=True)
class Product:
    parent_product_id: str
    name: str = ""
    description: str = ""
    category: str = ""
    retailer_domain: str = ""
    brand: str = ""
    gender: str = ""
    materials: str = ""
    return_policy_link: str = ""
    return_policy: str = ""
    size_chart: str = ""
    available_bank_offers: str = ""
    available_coupons: str = ""
    variants: list[Variant] = field(default_factory=list)
    operation_type: str = "INSERT"
    source: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self, skip=("variants",))
        ordered: dict[str, Any] = {}
        for key, value in data.items():
            ordered[key] = value
            if key == "available_coupons":
                ordered["variants"] = [variant.to_dict() for variant in self.variants]
        return ordered

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        known, extra = _split(cls, data)
        _check_operation(known)
        known["variants"] = [Variant.from_dict(item) for item in known.get("variants") or []]
        known["parent_product_id"] = str(known.get("parent_product_id") or "")
        return cls(**known, extra=extra)


@dataclass(slots=True)
class StoreInfo:
    name: str
    domain: str
    currency: str
    country: str
    total_products: int
    categories: list[str]
    crawled_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _serialize(obj: Any, skip: tuple[str, ...] = ()) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for item in fields(obj):
        if item.name == "extra" or item.name in skip:
            continue
        value = getattr(obj, item.name)
        data[item.name] = list(value) if isinstance(value, list) else value
    for key, value in obj.extra.items():
        data.setdefault(key, value)
    return data


def _check_operation(values: Mapping[str, Any]) -> None:
    operation = values.get("operation_type", "INSERT")
    if operation not in OPERATION_TYPES:
        raise ValueError(f"unknown operation_type {operation!r}")


def _split(cls: type, data: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    names = {item.name for item in fields(cls)} - {"extra"}
    known = {key: value for key, value in data.items() if key in names}
    extra = {key: value for key, value in data.items() if key not in names}
    return known, extra
