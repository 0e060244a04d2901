"""Platform name to scraper class lookup."""

from __future__ import annotations

from typing import Any

from retailcat.errors import ConfigurationError
from retailcat.ingest.abercrombie import AbercrombieScraper
from retailcat.ingest.base import RetailerScraper
from retailcat.ingest.hm import HmScraper
from retailcat.ingest.macys import MacysScraper
from retailcat.ingest.models import RetailerConfig
from retailcat.ingest.nike import NikeScraper
from retailcat.ingest.partstown import PartsTownScraper
from retailcat.ingest.shopify import ShopifyScraper
from retailcat.ingest.zara import ZaraScraper

SCRAPERS: dict[str, type[RetailerScraper]] = {
    scraper.platform: scraper
    for scraper in (
        AbercrombieScraper,
        HmScraper,
        MacysScraper,
        NikeScraper,
        PartsTownScraper,
        ShopifyScraper,
        ZaraScraper,
    )
}


def get_scraper(retailer: RetailerConfig, **kwargs: Any) -> RetailerScraper:
    try:
        scraper_cls = SCRAPERS[retailer.platform]
    except KeyError:
        raise ConfigurationError(f"No scraper for platform {retailer.platform!r} ({retailer.slug})") from None
    return scraper_cls(retailer, **kwargs)
