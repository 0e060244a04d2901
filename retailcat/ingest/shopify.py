"""Shopify storefronts via the public ``products.json`` feed."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, field_validator

from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import (
    build_pricing,
    clean_and_truncate,
    dedupe_urls,
    determine_product_details,
    extract_color,
    extract_size,
    parse_price,
)
from retailcat.logic.stock import StockPolicy, StockSignal, resolve_stock
from retailcat.logic.variants import make_variant

logger = logging.getLogger(__name__)

GENDERS = {"Male": "Men", "Female": "Women"}


class ShopifyImage(Payload):
    src: str = ""


class ShopifyOption(Payload):
    name: str = ""
    position: int = 0


class ShopifyVariant(Payload):
    id: str
    title: str = ""
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    price: str | None = None
    compare_at_price: str | None = None
    available: bool | None = None
    featured_image: ShopifyImage | None = None


class ShopifyProductPayload(Payload):
    id: str
    title: str = ""
    handle: str = ""
    body_html: str | None = None
    vendor: str = ""
    product_type: str = ""
    tags: list[str] = Field(default_factory=list)
    options: list[ShopifyOption] = Field(default_factory=list)
    images: list[ShopifyImage] = Field(default_factory=list)
    variants: list[ShopifyVariant] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value or []


class ShopifyListing(Payload):
    products: list[dict[str, Any]] = Field(default_factory=list)


class ShopifyScraper(RetailerScraper):
    platform = "shopify"
    page_size = 250
    first_page = 1
    stock_policy = StockPolicy.AVAILABILITY

    async def categories(self) -> list[CategoryConfig]:
        return list(self.retailer.categories) or [CategoryConfig(name="All Products")]

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        base = self.retailer.store_url.rstrip("/")
        path = f"/collections/{category.url}/products.json" if category.url else "/products.json"
        params = {"limit": str(self.page_size), "page": str(page_index)}
        listing = ShopifyListing.model_validate(await self._get_json(f"{base}{path}", params=params))
        return Page(items=listing.products)

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        item = ShopifyProductPayload.model_validate(raw)
        details = determine_product_details(item.title, item.product_type, item.tags)
        if details.should_skip:
            logger.debug("Skipping non-apparel Shopify product %s: %s", item.id, details.reason)
            return None
        base = self.retailer.store_url.rstrip("/")
        options = [option.model_dump() for option in item.options]
        gallery = [image.src for image in item.images if image.src]
        product = self.new_product(
            item.id,
            item.title,
            category,
            description=clean_and_truncate(item.body_html),
            category=details.category or item.product_type or category.name,
            brand=item.vendor or self.retailer.name,
            gender=GENDERS.get(details.gender, details.gender),
            materials=details.materials,
        )
        seen: set[str] = set()
        for entry in item.variants:
            raw_variant = entry.model_dump()
            size = extract_size(raw_variant, options)
            color = extract_color(raw_variant, options)
            price = parse_price(entry.price)
            compare_at = parse_price(entry.compare_at_price)
            on_sale = compare_at > price > 0
            image = entry.featured_image.src if entry.featured_image and entry.featured_image.src else ""
            image = image or (gallery[0] if gallery else "")
            variant = make_variant(
                product.parent_product_id,
                color=color,
                size=size,
                source_id=entry.id,
                pricing=build_pricing(
                    compare_at if on_sale else price,
                    price if on_sale else 0,
                    currency=self.retailer.currency,
                    selling=price,
                ),
                link_url=f"{base}/products/{item.handle}?variant={entry.id}",
                image_url=image,
                alternate_image_urls=dedupe_urls(image, gallery),
                in_stock=resolve_stock(self.stock_policy, StockSignal(available=entry.available)),
            )
            if variant.variant_id in seen:
                continue
            seen.add(variant.variant_id)
            product.variants.append(variant)
        return product
