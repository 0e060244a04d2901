"""Crawl orchestration: scrape, filter, write, then optionally persist and upload."""

from __future__ import annotations

import asyncio
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Iterable

import httpx

from retailcat.config import Settings
from retailcat.db.repository import CatalogRepository
from retailcat.db.session import create_engine_from_url
from retailcat.errors import ConfigurationError, FetchError, UploadError
from retailcat.ingest import get_retailer
from retailcat.ingest.models import Product, RetailerConfig
from retailcat.ingest.registry import get_scraper
from retailcat.logic.catalog import CatalogPaths, CatalogWriter, store_info_for
from retailcat.logic.validate import filter_valid_products
from retailcat.utils.retry import RetryPolicy
from retailcat.utils.sftp import SFTPUploader, UploadTarget

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunContext:
    """Everything a run needs, built once and passed down explicitly."""

    settings: Settings
    writer: CatalogWriter
    repository: CatalogRepository | None = None
    uploader: SFTPUploader | None = None
    session: httpx.AsyncClient | None = None
    retry_policy: RetryPolicy | None = None
    retailers_path: pathlib.Path | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        persist: bool = False,
        upload: bool = False,
        retailers_path: pathlib.Path | None = None,
    ) -> "RunContext":
        repository = None
        if persist:
            if not settings.database_url:
                raise ConfigurationError("DATABASE_URL is required to persist products")
            repository = CatalogRepository(create_engine_from_url(settings.database_url))
        uploader = None
        if upload:
            if not settings.sftp_configured:
                raise ConfigurationError("SFTP_HOST, SFTP_USERNAME and SFTP_PRIVATE_KEY_PATH are required to upload")
            uploader = SFTPUploader(settings)
        return cls(
            settings=settings,
            writer=CatalogWriter(settings.output_dir),
            repository=repository,
            uploader=uploader,
            retailers_path=retailers_path,
        )


@dataclass(slots=True)
class RunSummary:
    slug: str
    collected: int = 0
    mapped: int = 0
    skipped: int = 0
    errored: int = 0
    invalid: int = 0
    variants_filtered: int = 0
    products: int = 0
    inserted: int = 0
    updated: int = 0
    persist_errors: int = 0
    interrupted: list[str] = field(default_factory=list)
    paths: CatalogPaths | None = None
    remote_path: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_retailer(
    ctx: RunContext,
    slug: str,
    *,
    limit: int | None = None,
    persist: bool = False,
    upload: bool = False,
) -> RunSummary:
    retailer = get_retailer(slug, ctx.retailers_path)
    summary = RunSummary(slug=slug)
    async with get_scraper(retailer, settings=ctx.settings, session=ctx.session, retry_policy=ctx.retry_policy) as scraper:
        if scraper.resumable:
            checkpoint = ctx.writer.checkpoint(retailer.slug, retailer.country)
            result = await scraper.scrape(limit=limit, checkpoint=checkpoint)
        else:
            result = await scraper.scrape(limit=limit)
    stats = result.stats
    if not result.products and stats.interrupted:
        # An interrupted run with nothing collected must not replace the last good catalog.
        raise FetchError(f"{slug}: no products collected, interrupted in {', '.join(stats.interrupted)}")
    summary.collected = stats.collected
    summary.mapped = stats.mapped
    summary.skipped = stats.skipped
    summary.errored = stats.errored
    summary.interrupted = list(stats.interrupted)

    filtered = filter_valid_products(result.products)
    summary.invalid = filtered.invalid_count
    summary.variants_filtered = filtered.total_variants_filtered
    summary.products = filtered.valid_count
    store_info = store_info_for(retailer, filtered.valid_products, result.categories)
    summary.paths = ctx.writer.write(retailer.slug, store_info, filtered.valid_products)

    if persist:
        await _persist(ctx, retailer, filtered.valid_products, summary)
    if upload:
        await _upload(ctx, retailer, summary)
    _log_summary(summary)
    return summary


async def upload_existing(ctx: RunContext, slug: str) -> RunSummary:
    """Upload the catalog already written for ``slug``."""
    retailer = get_retailer(slug, ctx.retailers_path)
    summary = RunSummary(slug=slug, paths=ctx.writer.paths_for(retailer.slug, retailer.country))
    await _upload(ctx, retailer, summary)
    return summary


async def run_all(
    ctx: RunContext,
    slugs: Iterable[str],
    *,
    limit: int | None = None,
    persist: bool = False,
    upload: bool = False,
) -> list[RunSummary]:
    """Run retailers one after another; a failing retailer does not stop the rest."""
    summaries = []
    for slug in slugs:
        try:
            summaries.append(await run_retailer(ctx, slug, limit=limit, persist=persist, upload=upload))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Run for %s failed", slug)
            summaries.append(RunSummary(slug=slug, error=str(exc)))
    return summaries


async def _persist(ctx: RunContext, retailer: RetailerConfig, products: list[Product], summary: RunSummary) -> None:
    if ctx.repository is None:
        raise ConfigurationError("Persistence requested without a database")
    repository = ctx.repository
    loop = asyncio.get_running_loop()
    results = await loop.run_in_executor(None, repository.save_products, products)
    product_ids = [result.product_id for result in results if result.product_id is not None]
    summary.inserted = sum(1 for result in results if result.operation == "INSERT")
    summary.updated = sum(1 for result in results if result.operation == "UPDATE")
    summary.persist_errors = sum(1 for result in results if result.operation == "ERROR")
    if product_ids:
        store = await loop.run_in_executor(None, repository.save_store, retailer, product_ids)
        logger.info("Store %s: %s (%s products added)", retailer.name, store.operation, store.added)


async def _upload(ctx: RunContext, retailer: RetailerConfig, summary: RunSummary) -> None:
    if ctx.uploader is None:
        raise ConfigurationError("Upload requested without SFTP settings")
    if summary.paths is None:
        raise UploadError(f"No catalog written for {retailer.slug}")
    target = UploadTarget(name=retailer.name, country=retailer.country, gzip_path=summary.paths.gzip_path)
    try:
        result = await ctx.uploader.upload_store_catalog(target)
    except UploadError as exc:
        logger.error("Upload for %s failed: %s", retailer.slug, exc)
        summary.error = f"upload failed: {exc}"
        return
    summary.remote_path = result.remote_path


def _log_summary(summary: RunSummary) -> None:
    logger.info(
        "%s: %s collected, %s mapped, %s skipped, %s errored, %s invalid, %s variants filtered, "
        "%s inserted, %s updated, %s written to %s%s",
        summary.slug,
        summary.collected,
        summary.mapped,
        summary.skipped,
        summary.errored,
        summary.invalid,
        summary.variants_filtered,
        summary.inserted,
        summary.updated,
        summary.products,
        summary.paths.directory if summary.paths else "-",
        f", uploaded to {summary.remote_path}" if summary.remote_path else "",
    )
