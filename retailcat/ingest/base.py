"""Shared pagination and mapping loop for retailer scrapers."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, ClassVar
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from retailcat.config import Settings
from retailcat.errors import FetchError, RetailcatError
from retailcat.ingest.models import CategoryConfig, Product, RetailerConfig
from retailcat.logic.stock import StockPolicy
from retailcat.utils.rate_limit import RateLimiter, pause
from retailcat.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

PAGE_ERRORS = (httpx.HTTPError, RetailcatError, ValidationError, ValueError, KeyError, TypeError)


class Payload(BaseModel):
    """Base for retailer response structs with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
        protected_namespaces=(),
    )


@dataclass(slots=True)
class Page:
    items: list[Any]
    current_page: int | None = None
    total_pages: int | None = None
    is_last: bool = False


@dataclass(slots=True)
class ScrapeStats:
    pages: int = 0
    collected: int = 0
    mapped: int = 0
    skipped: int = 0
    errored: int = 0
    interrupted: list[str] = field(default_factory=list)
    # Categories whose first page already failed.
    unreachable: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ScrapeResult:
    products: list[Product]
    stats: ScrapeStats
    categories: list[str]


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


class RetailerScraper:
    """Paginates a retailer source and maps each raw record to a ``Product``.

    Subclasses implement ``fetch_page`` and ``build_product``. Pagination
    stops when the server reports the last page, a page comes back short or
    empty, the caller's limit is reached, or a fetch fails. A failed fetch
    keeps everything gathered so far, but a run in which no category could
    be fetched at all raises ``FetchError``.
    """

    platform: ClassVar[str] = ""
    page_size: ClassVar[int] = 24
    first_page: ClassVar[int] = 0
    stock_policy: ClassVar[StockPolicy] = StockPolicy.ASSUMED
    headers: ClassVar[dict[str, str]] = {}
    # Resumable scrapers accept a ``checkpoint`` keyword in ``scrape``.
    resumable: ClassVar[bool] = False

    def __init__(
        self,
        retailer: RetailerConfig,
        *,
        settings: Settings | None = None,
        session: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.retailer = retailer
        self.settings = settings or Settings()
        self._owns_session = session is None
        self._session = session or httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            headers={"User-Agent": random_user_agent(), "Accept-Language": "en-US,en;q=0.9"},
            proxy=self.settings.proxy_url,
            follow_redirects=True,
        )
        self.retry_policy = retry_policy or RetryPolicy(attempts=self.settings.max_retries)
        self._rate_limiter = rate_limiter or RateLimiter(interval=self.settings.page_delay)
        if retailer.stock_policy:
            self.stock_policy = StockPolicy(retailer.stock_policy)
        self.stats = ScrapeStats()

    async def __aenter__(self) -> "RetailerScraper":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session:
            await self._session.aclose()

    async def fetch_page(self, category: CategoryConfig, page_index: int) -> Page:
        raise NotImplementedError

    async def build_product(self, raw: Any, category: CategoryConfig) -> Product | None:
        raise NotImplementedError

    async def categories(self) -> list[CategoryConfig]:
        return list(self.retailer.categories)

    async def scrape(self, *, limit: int | None = None) -> ScrapeResult:
        """Scrape every category; ``limit`` caps records per category."""
        self.stats = ScrapeStats()
        products: list[Product] = []
        seen: set[str] = set()
        names: list[str] = []
        for category in await self.categories():
            names.append(category.name)
            raw_items = await self.paginate(category, limit=limit)
            products.extend(await self.build_products(raw_items, category, seen))
        self.check_reachable(len(names))
        logger.info(
            "%s: %s products from %s records (%s skipped, %s errored)",
            self.retailer.slug,
            len(products),
            self.stats.collected,
            self.stats.skipped,
            self.stats.errored,
        )
        return ScrapeResult(products=products, stats=self.stats, categories=names)

    def check_reachable(self, attempted: int) -> None:
        """Raise when every one of ``attempted`` categories failed on its first page."""
        if attempted and len(self.stats.unreachable) >= attempted:
            raise FetchError(
                f"{self.retailer.slug}: source unreachable, first page failed for {', '.join(self.stats.unreachable)}"
            )

    async def paginate(self, category: CategoryConfig, *, limit: int | None = None) -> list[Any]:
        items: list[Any] = []
        page_index = self.first_page
        while limit is None or len(items) < limit:
            try:
                page = await self.fetch_page(category, page_index)
            except PAGE_ERRORS as exc:
                logger.warning(
                    "%s %r page %s failed, keeping %s records: %s",
                    self.retailer.slug,
                    category.name,
                    page_index,
                    len(items),
                    exc,
                )
                self.stats.interrupted.append(category.name)
                if not items and page_index == self.first_page:
                    self.stats.unreachable.append(category.name)
                break
            self.stats.pages += 1
            if not page.items:
                logger.info("%s %r page %s is empty", self.retailer.slug, category.name, page_index)
                break
            items.extend(page.items)
            logger.debug("%s %r page %s: %s records", self.retailer.slug, category.name, page_index, len(page.items))
            if page.is_last:
                break
            if page.current_page is not None and page.total_pages is not None and page.current_page >= page.total_pages:
                break
            if len(page.items) < self.page_size:
                break
            page_index += 1
        if limit is not None:
            items = items[:limit]
        self.stats.collected += len(items)
        return items

    async def build_products(self, raw_items: list[Any], category: CategoryConfig, seen: set[str]) -> list[Product]:
        built: list[Product] = []
        for index, raw in enumerate(raw_items):
            if index:
                await pause(self.settings.product_delay)
            try:
                product = await self.build_product(raw, category)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s: failed to map record %s in %r: %s", self.retailer.slug, _record_id(raw), category.name, exc)
                self.stats.errored += 1
                continue
            if product is None or product.parent_product_id in seen:
                self.stats.skipped += 1
                continue
            seen.add(product.parent_product_id)
            built.append(product)
            self.stats.mapped += 1
        return built

    def new_product(self, parent_product_id: str, name: str, listing: CategoryConfig, **fields: Any) -> Product:
        retailer = self.retailer
        values: dict[str, Any] = {
            "category": listing.name,
            "retailer_domain": retailer.domain,
            "brand": retailer.name,
            "gender": listing.gender,
            "return_policy_link": retailer.return_policy_link,
            "size_chart": retailer.size_chart,
            "source": retailer.slug,
        }
        values.update(fields)
        return Product(parent_product_id=str(parent_product_id), name=name, **values)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        await self._rate_limiter.wait_for_host(urlparse(url).netloc)
        try:
            response = await retry_async(self._session.request, self.retry_policy)(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"{method} {url} failed: {exc}") from exc
        return response

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._request("GET", url, **kwargs)
        return response.json()


def _record_id(raw: Any) -> str:
    if isinstance(raw, dict):
        for key in ("id", "code", "productCode", "groupKey", "handle"):
            if raw.get(key):
                return str(raw[key])
    return "?"
