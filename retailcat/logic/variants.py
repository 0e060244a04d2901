"""Expansion of a product's colors and sizes into catalog variants."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from retailcat.ingest.models import Variant
from retailcat.logic.ids import mpn_for, variant_id_for
from retailcat.logic.normalize import Pricing, dedupe_urls
from retailcat.logic.stock import StockPolicy, StockSignal, resolve_stock

DEFAULT_COLOR = "Default"


@dataclass(slots=True)
class SizeOption:
    label: str
    source_id: str = ""
    stock: StockSignal | None = None
    link_url: str = ""


@dataclass(slots=True)
class ColorOption:
    name: str
    source_id: str = ""
    sizes: list[SizeOption] = field(default_factory=list)
    image_url: str = ""
    alternate_image_urls: list[str] = field(default_factory=list)
    link_url: str = ""
    pricing: Pricing | None = None
    stock: StockSignal | None = None


@dataclass(slots=True)
class Ratings:
    ratings_count: float = 0
    average_ratings: float = 0
    review_count: float = 0


def explode_variants(
    parent_product_id: str,
    colors: Sequence[ColorOption],
    *,
    pricing: Pricing,
    link_url: str,
    image_url: str = "",
    alternate_image_urls: Sequence[str] = (),
    stock_policy: StockPolicy = StockPolicy.ASSUMED,
    stock: StockSignal | None = None,
    mpn_by_size: bool = False,
    ratings: Ratings | None = None,
    extra: Mapping[str, Any] | None = None,
) -> list[Variant]:
    """Build one variant per color x size.

    A color without sizes yields a single size-less variant and a product
    without colors yields a single ``Default`` variant, so every priced
    record produces at least one variant. Repeated variant ids are dropped.
    """
    ratings = ratings or Ratings()
    colors = list(colors) or [ColorOption(name=DEFAULT_COLOR)]
    variants: list[Variant] = []
    seen: set[str] = set()
    for color in colors:
        color_name = color.name or DEFAULT_COLOR
        color_pricing = color.pricing or pricing
        primary_image = color.image_url or image_url
        alternates = dedupe_urls(primary_image, [*color.alternate_image_urls, *alternate_image_urls])
        for size in color.sizes or [SizeOption(label="")]:
            variant = make_variant(
                parent_product_id,
                color=color_name,
                size=size.label,
                source_id=size.source_id or color.source_id or parent_product_id,
                pricing=color_pricing,
                link_url=size.link_url or color.link_url or link_url,
                image_url=primary_image,
                alternate_image_urls=alternates,
                in_stock=resolve_stock(stock_policy, size.stock or color.stock or stock),
                mpn_by_size=mpn_by_size,
                ratings=ratings,
                extra=extra,
            )
            if variant.variant_id in seen:
                continue
            seen.add(variant.variant_id)
            variants.append(variant)
    return variants


def make_variant(
    parent_product_id: str,
    *,
    color: str,
    size: str,
    source_id: str,
    pricing: Pricing,
    link_url: str,
    image_url: str = "",
    alternate_image_urls: Sequence[str] = (),
    in_stock: bool = True,
    mpn_by_size: bool = False,
    ratings: Ratings | None = None,
    extra: Mapping[str, Any] | None = None,
) -> Variant:
    """Build a single variant with its MPN and variant id derived from its keys."""
    ratings = ratings or Ratings()
    return Variant(
        price_currency=pricing.price_currency,
        original_price=pricing.original_price,
        link_url=link_url,
        deeplink_url=link_url,
        image_url=image_url,
        alternate_image_urls=list(alternate_image_urls),
        is_on_sale=pricing.is_on_sale,
        is_in_stock=in_stock,
        size=size,
        color=color,
        mpn=mpn_for(parent_product_id, color, size if mpn_by_size else None),
        ratings_count=ratings.ratings_count,
        average_ratings=ratings.average_ratings,
        review_count=ratings.review_count,
        selling_price=pricing.selling_price,
        sale_price=pricing.sale_price,
        final_price=pricing.final_price,
        discount=pricing.discount,
        variant_id=variant_id_for(parent_product_id, source_id, size, color),
        extra=dict(extra or {}),
    )
