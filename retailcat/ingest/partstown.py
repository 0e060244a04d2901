"""PartsTown catalog: manufacturers, their part listings and batch prices.

The full crawl covers hundreds of manufacturers and runs for hours, so it
can resume from a ``CatalogCheckpoint`` and skip manufacturers already in
the on-disk catalog.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, ValidationError

from retailcat.errors import FetchError
from retailcat.ingest.base import Page, Payload, RetailerScraper, ScrapeResult, ScrapeStats
from retailcat.ingest.models import CategoryConfig, Product
from retailcat.logic.catalog import CatalogCheckpoint, store_info_for
from retailcat.logic.normalize import build_pricing, dedupe_urls
from retailcat.logic.stock import StockPolicy, StockSignal
from retailcat.logic.variants import explode_variants

logger = logging.getLogger(__name__)

BASE_URL = "https://www.partstown.com"
MANUFACTURERS_URL = f"{BASE_URL}/api/manufacturers/"
RESULTS_URL = f"{BASE_URL}/parts/results"
PRICES_URL = f"{BASE_URL}/prices/"
PRICES_BATCH_SIZE = 500
CHECKPOINT_KEY = "manufacturer"
BACKORDER_NOTE = "Out of Stock, backorders usually ship in 21-23 days."


class Manufacturer(Payload):
    code: str
    name: str = ""
    category_uri: str = ""


class PartStock(Payload):
    stock_level: float = 0


class PartPrice(Payload):
    stock_code: str = ""
    value: float | None = None
    list_price: float | None = None


class Part(Payload):
    code: str = ""
    part_number: str = ""
    stock_code: str = ""
    name: str = ""
    description: str = ""
    manufacturer_part_number: str = ""
    category: str = ""
    units: str = ""
    url: str = ""
    viewer_url: str = ""
    image_url: str = ""
    stock: PartStock | None = None
    price: PartPrice | None = None

    @property
    def identifier(self) -> str:
        return self.code or self.part_number or self.stock_code


class PartsPagination(Payload):
    number_of_pages: int | None = None


class PartsResults(Payload):
    results: list[dict[str, Any]] = Field(default_factory=list)
    pagination: PartsPagination = Field(default_factory=PartsPagination)


class PartsTownScraper(RetailerScraper):
    platform = "partstown"
    page_size = 24
    first_page = 0
    stock_policy = StockPolicy.QUANTITY
    resumable = True
    headers = {"accept": "application/json", "referer": f"{BASE_URL}/manufacturers"}

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._prices: dict[str, PartPrice] = {}

    async def categories(self) -> list[CategoryConfig]:
        if self.retailer.categories:
            return list(self.retailer.categories)
        data = await self._get_json(MANUFACTURERS_URL)
        manufacturers = [Manufacturer.model_validate(item) for item in data or []]
        logger.info("PartsTown: %s manufacturers", len(manufacturers))
        return [
            CategoryConfig(name=item.name or item.code, id=item.code, gender="", url=item.category_uri)
            for item in manufacturers
        ]

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        data = await self._get_json(RESULTS_URL, params={"brand": category.id, "page": str(page_index)})
        listing = PartsResults.model_validate(data)
        # Pages are 0-based; numberOfPages counts them.
        total = listing.pagination.number_of_pages
        return Page(items=listing.results, current_page=page_index + 1, total_pages=total)

    async def fetch_prices(self, codes: list[str]) -> dict[str, PartPrice]:
        """Look up prices in batches; a failed batch leaves its parts on listing prices."""
        prices: dict[str, PartPrice] = {}
        for start in range(0, len(codes), PRICES_BATCH_SIZE):
            batch = codes[start : start + PRICES_BATCH_SIZE]
            try:
                data = await self._get_json(PRICES_URL, params=[("s", code) for code in batch])
                entries = [PartPrice.model_validate(item) for item in data or []]
            except (FetchError, ValidationError, ValueError, TypeError) as exc:
                logger.warning("PartsTown prices for %s codes failed: %s", len(batch), exc)
                continue
            prices.update({entry.stock_code: entry for entry in entries if entry.stock_code})
        return prices

    async def build_products(self, raw_items: list[Any], category: CategoryConfig, seen: set[str]) -> list[Product]:
        codes = [str(item.get("code")) for item in raw_items if isinstance(item, dict) and item.get("code")]
        self._prices = await self.fetch_prices(codes) if codes else {}
        return await super().build_products(raw_items, category, seen)

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        part = Part.model_validate(raw)
        if not part.identifier:
            return None
        price = self._prices.get(part.code) or part.price or PartPrice()
        sale = price.value or 0
        listed = price.list_price or sale
        pricing = build_pricing(listed, sale, currency=self.retailer.currency)
        quantity = part.stock.stock_level if part.stock else 0
        image = part.viewer_url or part.image_url
        link = f"{BASE_URL}{part.url}" if part.url else f"{BASE_URL}/part/{part.identifier}"
        name = part.name or part.description or "Unknown Product"
        product = self.new_product(
            part.identifier,
            name,
            category,
            description=part.description or name,
            category=part.category or "Parts",
            brand=category.name,
            gender="",
        )
        product.extra = {
            CHECKPOINT_KEY: category.name,
            "manufacturer_part_number": part.manufacturer_part_number,
            "units": part.units,
        }
        product.variants = explode_variants(
            product.parent_product_id,
            [],
            pricing=pricing,
            link_url=link,
            image_url=image,
            alternate_image_urls=dedupe_urls(image, [part.image_url]),
            stock_policy=self.stock_policy,
            stock=StockSignal(quantity=quantity),
            extra={
                "quantity_available": quantity,
                "backorder_info": BACKORDER_NOTE if quantity <= 0 else "",
                "units": part.units,
            },
        )
        return product

    async def scrape(self, *, limit: int | None = None, checkpoint: CatalogCheckpoint | None = None) -> ScrapeResult:
        """Scrape manufacturer by manufacturer, flushing ``checkpoint`` after each.

        Manufacturers already present in the checkpoint are skipped and its
        products carried into the result.
        """
        if checkpoint is None:
            return await super().scrape(limit=limit)
        self.stats = ScrapeStats()
        processed = checkpoint.processed_keys(CHECKPOINT_KEY)
        seen = {product.parent_product_id for product in checkpoint.products}
        names: list[str] = []
        attempted = 0
        for manufacturer in await self.categories():
            names.append(manufacturer.name)
            if manufacturer.name in processed:
                logger.info("PartsTown: skipping %s, already in checkpoint", manufacturer.name)
                continue
            attempted += 1
            raw_items = await self.paginate(manufacturer, limit=limit)
            built = await self.build_products(raw_items, manufacturer, seen)
            processed.add(manufacturer.name)
            if not built:
                logger.info("PartsTown: no products for %s", manufacturer.name)
                continue
            checkpoint.products.extend(built)
            checkpoint.flush(store_info_for(self.retailer, checkpoint.products, names))
        self.check_reachable(attempted)
        logger.info(
            "%s: %s products in checkpoint (%s new, %s errored)",
            self.retailer.slug,
            len(checkpoint.products),
            self.stats.mapped,
            self.stats.errored,
        )
        return ScrapeResult(products=list(checkpoint.products), stats=self.stats, categories=names)
