"""Abercrombie & Fitch catalog via the storefront BFF GraphQL endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import Field

from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import build_pricing
from retailcat.logic.stock import StockPolicy
from retailcat.logic.variants import ColorOption, explode_variants

logger = logging.getLogger(__name__)

API_URL = "https://www.abercrombie.com/api/bff/catalog"
BASE_URL = "https://www.abercrombie.com"
IMAGE_BASE = "https://img.abercrombie.com/is/image/anf/"
OPERATION = "CATEGORY_PAGE_DYNAMIC_DATA_QUERY"
PERSISTED_QUERY = {
    "persistedQuery": {
        "version": 1,
        "sha256Hash": "097f956378599742746ed2c31c0fe53c43ba1e458bd11bba5310b4b9c00e788c",
    }
}
STORE_PARAMS = {
    "catalogId": "10901",
    "storeId": "11203",
    "langId": "-1",
    "brand": "anf",
    "store": "a-wd",
    "currency": "USD",
    "country": "US",
    "urlRoot": "/shop/wd",
    "aemContentAuthoring": "0",
}


class ImageSet(Payload):
    primary_face_out_image: str | None = None
    primary_hover_image: str | None = None
    model_image: str | None = None


class Price(Payload):
    original_price: str | None = None
    discount_price: str | None = None


class SwatchProduct(Payload):
    id: str | None = None
    image_set: ImageSet | None = None


class Swatch(Payload):
    name: str | None = None
    product: SwatchProduct | None = None


class AnfProduct(Payload):
    id: str
    name: str = ""
    product_page_url: str = ""
    image_set: ImageSet = Field(default_factory=ImageSet)
    price: Price = Field(default_factory=Price)
    swatch_list: list[Swatch] = Field(default_factory=list)


class Pagination(Payload):
    current_page: int = 1
    total_pages: int = 1


class CategoryData(Payload):
    products: list[dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class CategoryEnvelope(Payload):
    category: CategoryData | None = None


class CategoryResponse(Payload):
    data: CategoryEnvelope = Field(default_factory=CategoryEnvelope)


def _image(path: str | None) -> str:
    return f"{IMAGE_BASE}{path}" if path else ""


class AbercrombieScraper(RetailerScraper):
    platform = "abercrombie"
    page_size = 90
    stock_policy = StockPolicy.ASSUMED
    headers = {"accept": "*/*", "content-type": "application/json"}

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        variables = {
            "categoryId": category.id,
            "facet": [],
            "filter": "",
            "requestSocialProofData": True,
            "rows": str(self.page_size),
            "sort": "",
            "start": str(page_index * self.page_size),
            "seqSlot": "1",
            "grouped": False,
            "isUnifiedCategoryPage": False,
            "kicIds": "",
        }
        params = {
            **STORE_PARAMS,
            "operationName": OPERATION,
            "variables": json.dumps(variables, separators=(",", ":")),
            "extensions": json.dumps(PERSISTED_QUERY, separators=(",", ":")),
        }
        referer = f"{BASE_URL}/shop/wd/{category.url}"
        data = await self._get_json(API_URL, params=params, headers={"referer": referer})
        envelope = CategoryResponse.model_validate(data).data.category
        if envelope is None:
            return Page(items=[])
        return Page(
            items=envelope.products,
            current_page=envelope.pagination.current_page,
            total_pages=envelope.pagination.total_pages,
        )

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        item = AnfProduct.model_validate(raw)
        image_url = _image(item.image_set.primary_face_out_image)
        alternates = [_image(item.image_set.primary_hover_image), _image(item.image_set.model_image)]
        pricing = build_pricing(item.price.original_price, item.price.discount_price, currency=self.retailer.currency)
        link_url = f"{BASE_URL}{item.product_page_url}"
        colors = [
            ColorOption(
                name=swatch.name or "Default",
                source_id=(swatch.product.id if swatch.product and swatch.product.id else item.id),
                image_url=_image(swatch.product.image_set.primary_face_out_image)
                if swatch.product and swatch.product.image_set
                else "",
            )
            for swatch in item.swatch_list
        ]
        product = self.new_product(item.id, item.name, category)
        product.variants = explode_variants(
            product.parent_product_id,
            colors,
            pricing=pricing,
            link_url=link_url,
            image_url=image_url,
            alternate_image_urls=alternates,
            stock_policy=self.stock_policy,
        )
        return product
