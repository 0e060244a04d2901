"""Zara catalog via the ajax category listing and product detail documents."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from retailcat.ingest.base import Page, Payload, RetailerScraper
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.normalize import build_pricing, clean_and_truncate
from retailcat.logic.stock import StockPolicy, StockSignal
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants

BASE_URL = "https://www.zara.com/us/en"
MAX_ALTERNATE_IMAGES = 5


class Seo(Payload):
    keyword: str = ""
    seo_product_id: str = ""
    description: str = ""


class ListingProduct(Payload):
    id: str
    name: str = ""
    price: float | None = None
    old_price: float | None = None
    seo: Seo = Field(default_factory=Seo)

    @property
    def url(self) -> str:
        return f"{BASE_URL}/{self.seo.keyword}-p{self.seo.seo_product_id}.html"


class GroupElement(Payload):
    commercial_components: list[dict[str, Any]] = Field(default_factory=list)


class ProductGroup(Payload):
    elements: list[GroupElement] = Field(default_factory=list)


class PaginationInfo(Payload):
    is_last_page: bool = True


class CategoryListing(Payload):
    pagination_info: PaginationInfo | None = None
    product_groups: list[ProductGroup] = Field(default_factory=list)


class Media(Payload):
    url: str = ""


class ZaraSize(Payload):
    name: str = ""
    availability: str = ""


class ZaraColor(Payload):
    id: str = ""
    name: str = ""
    xmedia: list[Media] = Field(default_factory=list)
    sizes: list[ZaraSize] = Field(default_factory=list)


class Component(Payload):
    material: str = ""


class CompositionPart(Payload):
    description: str = ""
    components: list[Component] = Field(default_factory=list)


class Composition(Payload):
    parts: list[CompositionPart] = Field(default_factory=list)


class ZaraDetail(Payload):
    colors: list[ZaraColor] = Field(default_factory=list)
    detailed_composition: Composition = Field(default_factory=Composition)


class DetailProduct(Payload):
    detail: ZaraDetail = Field(default_factory=ZaraDetail)
    seo: Seo = Field(default_factory=Seo)


class DetailDocument(Payload):
    product: DetailProduct = Field(default_factory=DetailProduct)


def _materials(composition: Composition) -> str:
    parts = []
    for part in composition.parts:
        material = part.components[0].material if part.components else ""
        parts.append(f"{part.description} {material}".strip())
    return ", ".join(part for part in parts if part)


class ZaraScraper(RetailerScraper):
    platform = "zara"
    # Listing pages vary in length; isLastPage is authoritative.
    page_size = 0
    first_page = 1
    stock_policy = StockPolicy.AVAILABILITY

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        data = await self._get_json(category.url, params={"ajax": "true", "page": str(page_index)})
        listing = CategoryListing.model_validate(data)
        if not listing.product_groups:
            return Page(items=[], is_last=True)
        items = [
            component
            for element in listing.product_groups[0].elements
            for component in element.commercial_components
        ]
        is_last = listing.pagination_info.is_last_page if listing.pagination_info else True
        return Page(items=items, is_last=is_last)

    async def fetch_detail(self, listing: ListingProduct) -> DetailDocument:
        data = await self._get_json(listing.url, params={"ajax": "true"})
        return DetailDocument.model_validate(data)

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        listing = ListingProduct.model_validate(raw)
        if not listing.seo.keyword or not listing.seo.seo_product_id:
            return None
        document = await self.fetch_detail(listing)
        # Listing prices are in cents.
        current = (listing.price or 0) / 100
        previous = (listing.old_price or 0) / 100
        if previous > current:
            pricing = build_pricing(previous, current, currency=self.retailer.currency)
        else:
            pricing = build_pricing(current, currency=self.retailer.currency)
        colors = [
            ColorOption(
                name=color.name or "Default",
                source_id=color.id,
                image_url=color.xmedia[0].url if color.xmedia else "",
                alternate_image_urls=[media.url for media in color.xmedia[1 : MAX_ALTERNATE_IMAGES + 1]],
                sizes=[
                    SizeOption(label=size.name, stock=StockSignal(status=size.availability))
                    for size in color.sizes
                ],
            )
            for color in document.product.detail.colors
        ]
        product = self.new_product(
            listing.id,
            listing.name,
            category,
            description=clean_and_truncate(document.product.seo.description),
            category="",
            materials=_materials(document.product.detail.detailed_composition),
        )
        product.variants = explode_variants(
            product.parent_product_id,
            colors,
            pricing=pricing,
            link_url=listing.url,
            stock_policy=self.stock_policy,
        )
        return product
