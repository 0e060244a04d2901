"""Macy's catalog via the discover page API."""

from __future__ import annotations

import re
from typing import Any

from pydantic import Field

from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import build_pricing, clean_and_truncate, determine_category, determine_gender
from retailcat.logic.stock import StockPolicy, StockSignal
from retailcat.logic.variants import ColorOption, Ratings, explode_variants

API_URL = "https://www.macys.com/xapi/discover/v1/page"
BASE_URL = "https://www.macys.com"
IMAGE_BASE = "https://slimages.macysassets.com/is/image/MCY/products/"
_IMAGE_EXT_RE = re.compile(r"\.(tif|jpg|jpeg|png)$", re.IGNORECASE)


class ImageRef(Payload):
    file_path: str | None = None


class Imagery(Payload):
    primary_image: ImageRef | None = None
    additional_image_source: list[ImageRef] = Field(default_factory=list)


class MacysColor(Payload):
    id: str = ""
    name: str | None = None
    normal_name: str | None = None
    imagery: Imagery | None = None


class MacysColors(Payload):
    color_map: list[MacysColor] = Field(default_factory=list)


class MacysTraits(Payload):
    colors: MacysColors = Field(default_factory=MacysColors)


class Aggregate(Payload):
    rating: float = 0
    count: float = 0


class ReviewStatistics(Payload):
    aggregate: Aggregate = Field(default_factory=Aggregate)


class MacysDetail(Payload):
    name: str = ""
    secondary_description: str = ""
    brand: str = ""
    type_name: str = ""
    review_statistics: ReviewStatistics = Field(default_factory=ReviewStatistics)


class PriceValue(Payload):
    value: float | None = None
    type: str = ""


class TieredPrice(Payload):
    label: str = ""
    values: list[PriceValue] = Field(default_factory=list)


class MacysPrice(Payload):
    tiered_price: list[TieredPrice] = Field(default_factory=list)


class MacysPricing(Payload):
    price: MacysPrice = Field(default_factory=MacysPrice)


class MacysAvailability(Payload):
    available: bool = False


class MacysIdentifier(Payload):
    product_url: str = ""


class MacysProduct(Payload):
    id: str
    detail: MacysDetail = Field(default_factory=MacysDetail)
    pricing: MacysPricing = Field(default_factory=MacysPricing)
    availability: MacysAvailability = Field(default_factory=MacysAvailability)
    traits: MacysTraits = Field(default_factory=MacysTraits)
    identifier: MacysIdentifier = Field(default_factory=MacysIdentifier)
    imagery: Imagery | None = None


class CollectionItem(Payload):
    product: MacysProduct | None = None


class SortableGrid(Payload):
    collection: list[dict[str, Any]] | None = None


class Zone(Payload):
    sortable_grid: SortableGrid | None = None


class RowGrid(Payload):
    zones: list[Zone] = Field(default_factory=list)


class Row(Payload):
    row_sortable_grid: RowGrid | None = None


class Canvas(Payload):
    rows: list[Row] = Field(default_factory=list)


class Body(Payload):
    canvas: Canvas = Field(default_factory=Canvas)


class DiscoverPage(Payload):
    body: Body = Field(default_factory=Body)

    def collection(self) -> list[dict[str, Any]]:
        for row in self.body.canvas.rows:
            for zone in row.row_sortable_grid.zones if row.row_sortable_grid else ():
                if zone.sortable_grid and zone.sortable_grid.collection is not None:
                    return zone.sortable_grid.collection
        return []


def image_url(file_path: str | None) -> str:
    if not file_path:
        return ""
    return IMAGE_BASE + _IMAGE_EXT_RE.sub("", file_path)


def _tier(price: MacysPrice, kind: str) -> float | None:
    for tier in price.tiered_price:
        if tier.values and tier.values[0].type == kind:
            return tier.values[0].value
    return None


def _images(imagery: Imagery | None) -> tuple[str, list[str]]:
    if imagery is None:
        return "", []
    primary = image_url(imagery.primary_image.file_path if imagery.primary_image else None)
    return primary, [image_url(ref.file_path) for ref in imagery.additional_image_source]


class MacysScraper(RetailerScraper):
    platform = "macys"
    page_size = 60
    first_page = 1
    stock_policy = StockPolicy.AVAILABILITY

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        params = {
            "pathname": category.url,
            "id": category.id,
            "_navigationType": "BROWSE",
            "_shoppingMode": "SITE",
            "sortBy": "ORIGINAL",
            "productsPerPage": str(self.page_size),
            "pageIndex": str(page_index),
            "_application": "SITE",
            "_regionCode": self.retailer.country,
            "currencyCode": self.retailer.currency,
            "_deviceType": "DESKTOP",
            "_customerState": "GUEST",
        }
        page = DiscoverPage.model_validate(await self._get_json(API_URL, params=params))
        return Page(items=page.collection())

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        item = CollectionItem.model_validate(raw).product
        if item is None or not item.id:
            return None
        detail = item.detail
        pricing = build_pricing(
            _tier(item.pricing.price, "regular"),
            _tier(item.pricing.price, "discount"),
            currency=self.retailer.currency,
        )
        default_image, default_alternates = _images(item.imagery)
        colors = []
        for color in item.traits.colors.color_map:
            primary, alternates = _images(color.imagery)
            colors.append(
                ColorOption(
                    name=color.name or color.normal_name or "",
                    source_id=color.id,
                    image_url=primary,
                    alternate_image_urls=alternates,
                )
            )
        aggregate = detail.review_statistics.aggregate
        product = self.new_product(
            item.id,
            detail.name or "Unknown Product",
            category,
            description=clean_and_truncate(detail.secondary_description),
            category=determine_category(detail.type_name),
            brand=detail.brand or self.retailer.name,
            gender=determine_gender(detail.name, detail.type_name),
        )
        product.variants = explode_variants(
            product.parent_product_id,
            colors,
            pricing=pricing,
            link_url=f"{BASE_URL}{item.identifier.product_url}",
            image_url=default_image,
            alternate_image_urls=default_alternates,
            stock_policy=self.stock_policy,
            stock=StockSignal(available=item.availability.available),
            ratings=Ratings(
                ratings_count=aggregate.count,
                average_ratings=aggregate.rating,
                review_count=aggregate.count,
            ),
        )
        return product
