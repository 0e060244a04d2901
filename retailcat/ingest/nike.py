"""Nike catalog via the product wall and per-group availability APIs."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field

from retailcat.errors import FetchError
from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import build_pricing
from retailcat.logic.stock import StockPolicy, StockSignal
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants

logger = logging.getLogger(__name__)

CHANNEL = "marketplace/US/language/en/consumerChannelId/d9a5bc42-4b9c-4976-858a-f159cf99c647"
WALL_URL = f"https://api.nike.com/discover/product_wall/v1/{CHANNEL}"
AVAILABILITY_URL = f"https://api.nike.com/discover/product_details_availability/v1/{CHANNEL}/groupKey/{{group_key}}"


class NikeCopy(Payload):
    title: str = ""


class NikeColors(Payload):
    color_description: str = ""


class NikePrices(Payload):
    initial_price: float | None = None
    current_price: float | None = None


class NikeImages(Payload):
    portrait_url: str = Field("", alias="portraitURL")
    squarish_url: str = Field("", alias="squarishURL")


class NikePdpUrl(Payload):
    url: str = ""


class NikeColorway(Payload):
    product_code: str
    group_key: str = ""
    copy_: NikeCopy = Field(default_factory=NikeCopy, alias="copy")
    product_type: str = ""
    featured_attributes: list[str] = Field(default_factory=list)
    display_colors: NikeColors = Field(default_factory=NikeColors)
    prices: NikePrices = Field(default_factory=NikePrices)
    colorway_images: NikeImages = Field(default_factory=NikeImages)
    pdp_url: NikePdpUrl = Field(default_factory=NikePdpUrl)


class NikeGrouping(Payload):
    products: list[NikeColorway] = Field(default_factory=list)


class NikeWall(Payload):
    product_groupings: list[dict[str, Any]] = Field(default_factory=list)


class NikeSizeAvailability(Payload):
    is_available: bool = False


class NikeSize(Payload):
    product_code: str = ""
    sku_id: str = ""
    label: str = ""
    availability: NikeSizeAvailability = Field(default_factory=NikeSizeAvailability)


class NikeAvailability(Payload):
    sizes: list[NikeSize] = Field(default_factory=list)


def _colorway_url(colorway: NikeColorway) -> str:
    base = colorway.pdp_url.url.rsplit("/", 1)[0] if colorway.pdp_url.url else "https://www.nike.com/t"
    return f"{base}/{colorway.product_code}"


class NikeScraper(RetailerScraper):
    platform = "nike"
    page_size = 24
    stock_policy = StockPolicy.AVAILABILITY
    headers = {
        "accept": "*/*",
        "nike-api-caller-id": "nike:dotcom:browse:wall.client:2.0",
        "origin": "https://www.nike.com",
        "referer": "https://www.nike.com/",
    }

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        params = {
            "path": category.url,
            "attributeIds": category.params.get("attributeIds", ""),
            "queryType": "PRODUCTS",
            "anchor": str(page_index * self.page_size),
            "count": str(self.page_size),
        }
        wall = NikeWall.model_validate(await self._get_json(WALL_URL, params=params))
        return Page(items=wall.product_groupings)

    async def fetch_availability(self, group_key: str) -> NikeAvailability:
        url = AVAILABILITY_URL.format(group_key=group_key)
        try:
            data = await self._get_json(url, headers={"nike-api-caller-id": "com.nike.commerce.nikedotcom.web"})
        except FetchError as exc:
            logger.warning("Nike availability for %s unavailable: %s", group_key, exc)
            return NikeAvailability()
        return NikeAvailability.model_validate(data)

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        grouping = NikeGrouping.model_validate(raw)
        if not grouping.products:
            return None
        first = grouping.products[0]
        group_key = first.group_key or first.product_code
        availability = await self.fetch_availability(group_key)
        colors = []
        for colorway in grouping.products:
            sizes = [
                SizeOption(
                    label=size.label,
                    source_id=size.sku_id,
                    stock=StockSignal(available=size.availability.is_available),
                )
                for size in availability.sizes
                if size.product_code == colorway.product_code
            ]
            colors.append(
                ColorOption(
                    name=colorway.display_colors.color_description,
                    source_id=colorway.product_code,
                    sizes=sizes,
                    image_url=colorway.colorway_images.portrait_url,
                    alternate_image_urls=[colorway.colorway_images.squarish_url],
                    link_url=_colorway_url(colorway),
                    pricing=build_pricing(
                        colorway.prices.initial_price,
                        colorway.prices.current_price,
                        currency=self.retailer.currency,
                    ),
                )
            )
        product = self.new_product(
            group_key,
            first.copy_.title,
            category,
            category=first.product_type or category.name,
            materials=first.featured_attributes[0] if first.featured_attributes else "",
        )
        product.variants = explode_variants(
            product.parent_product_id,
            colors,
            pricing=colors[0].pricing,
            link_url=_colorway_url(first),
            stock_policy=self.stock_policy,
        )
        return product
