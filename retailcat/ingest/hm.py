"""H&M catalog via the listing search service."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import build_pricing
from retailcat.logic.stock import StockPolicy
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants

API_URL = "https://api.hm.com/search-services/v1/en_us/listing/resultpage"
PRODUCT_URL = "https://www2.hm.com/en_us/productpage.{article}{size}.html"


class HmPrice(Payload):
    max_price: float | None = None
    min_price: float | None = None


class HmSwatch(Payload):
    color_name: str | None = None
    article_id: str = ""
    product_image: str = ""


class HmSize(Payload):
    id: str = ""
    label: str = ""


class HmProduct(Payload):
    id: str
    product_name: str = ""
    prices: list[HmPrice] = Field(default_factory=list)
    swatches: list[HmSwatch] = Field(default_factory=list)
    sizes: list[HmSize] = Field(default_factory=list)


class HmPagination(Payload):
    current_page: int | None = None
    total_pages: int | None = None


class HmPlpList(Payload):
    product_list: list[dict[str, Any]] = Field(default_factory=list)


class HmListing(Payload):
    pagination: HmPagination = Field(default_factory=HmPagination)
    plp_list: HmPlpList = Field(default_factory=HmPlpList)


class HmScraper(RetailerScraper):
    platform = "hm"
    page_size = 36
    first_page = 1
    stock_policy = StockPolicy.ASSUMED
    headers = {"accept": "application/json", "origin": "https://www2.hm.com", "referer": "https://www2.hm.com/"}

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        params = {
            "pageSource": "PLP",
            "page": str(page_index),
            "sort": "RELEVANCE",
            "pageId": category.params.get("pageId", ""),
            "page-size": str(self.page_size),
            "categoryId": category.id,
            "touchPoint": "DESKTOP",
            "skipStockCheck": "false",
        }
        listing = HmListing.model_validate(await self._get_json(API_URL, params=params))
        return Page(
            items=listing.plp_list.product_list,
            current_page=listing.pagination.current_page,
            total_pages=listing.pagination.total_pages,
        )

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        item = HmProduct.model_validate(raw)
        price = item.prices[0] if item.prices else HmPrice()
        pricing = build_pricing(price.max_price, price.min_price, currency=self.retailer.currency)
        colors = [
            ColorOption(
                name=swatch.color_name or "",
                source_id=swatch.article_id,
                image_url=swatch.product_image,
                sizes=[
                    SizeOption(
                        label=size.label,
                        source_id=swatch.article_id,
                        link_url=PRODUCT_URL.format(article=swatch.article_id, size=size.id),
                    )
                    for size in item.sizes
                ],
                link_url=PRODUCT_URL.format(article=swatch.article_id, size=""),
            )
            for swatch in item.swatches
        ]
        product = self.new_product(item.id, item.product_name, category)
        product.variants = explode_variants(
            product.parent_product_id,
            colors,
            pricing=pricing,
            link_url=f"{self.retailer.store_url}/productpage.{item.id}.html",
            stock_policy=self.stock_policy,
            mpn_by_size=True,
        )
        return product
