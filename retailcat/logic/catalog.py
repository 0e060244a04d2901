"""Catalog files: catalog.json, its JSONL mirror and the gzip of that mirror."""

from __future__ import annotations

import gzip
import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Sequence

from retailcat.errors import CatalogError
from retailcat.ingest.models import Product, RetailerConfig, StoreInfo
from retailcat.utils.dates import crawled_at

logger = logging.getLogger(__name__)

JSON_NAME = "catalog.json"
JSONL_NAME = "catalog.jsonl"
GZIP_NAME = "catalog.jsonl.gz"


@dataclass(slots=True)
class CatalogPaths:
    directory: Path
    json_path: Path
    jsonl_path: Path
    gzip_path: Path


def store_info_for(retailer: RetailerConfig, products: Sequence[Product], categories: Iterable[str]) -> StoreInfo:
    return StoreInfo(
        name=retailer.name,
        domain=retailer.domain,
        currency=retailer.currency,
        country=retailer.country,
        total_products=len(products),
        categories=list(dict.fromkeys(categories)),
        crawled_at=crawled_at(),
    )


def dump_json(store_info: StoreInfo, products: Sequence[Product]) -> str:
    document = {"store_info": store_info.to_dict(), "products": [product.to_dict() for product in products]}
    return json.dumps(document, indent=2, ensure_ascii=False)


def dump_jsonl(products: Sequence[Product]) -> str:
    return "\n".join(json.dumps(product.to_dict(), ensure_ascii=False, separators=(",", ":")) for product in products)


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Parse a ``.jsonl`` or ``.jsonl.gz`` file into product dicts."""
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]


def _write_atomic(path: Path, data: bytes) -> None:
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(data)
    os.replace(tmp, path)


class CatalogWriter:
    """Writes the three catalog artifacts under ``<output>/<country>/<slug>-<country>/``.

    Re-running for the same retailer overwrites the previous files.
    """

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir)

    def paths_for(self, slug: str, country: str) -> CatalogPaths:
        directory = self.output_dir / country / f"{slug}-{country}"
        return CatalogPaths(
            directory=directory,
            json_path=directory / JSON_NAME,
            jsonl_path=directory / JSONL_NAME,
            gzip_path=directory / GZIP_NAME,
        )

    def write(self, slug: str, store_info: StoreInfo, products: Sequence[Product]) -> CatalogPaths:
        paths = self.paths_for(slug, store_info.country)
        paths.directory.mkdir(parents=True, exist_ok=True)
        lines = dump_jsonl(products).encode("utf-8")
        _write_atomic(paths.json_path, dump_json(store_info, products).encode("utf-8"))
        _write_atomic(paths.jsonl_path, lines)
        # mtime=0 keeps the archive reproducible for identical catalogs.
        _write_atomic(paths.gzip_path, gzip.compress(lines, mtime=0))
        logger.info("Wrote %s products for %s to %s", len(products), slug, paths.directory)
        return paths

    def checkpoint(self, slug: str, country: str) -> "CatalogCheckpoint":
        return CatalogCheckpoint(self.paths_for(slug, country).json_path)


class CatalogCheckpoint:
    """A ``catalog.json`` used as resume state for long crawls.

    The file is read once on construction and rewritten by ``flush`` after
    each finished unit of work. A missing file starts fresh; an unreadable
    one is logged and ignored.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.products: list[Product] = []
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            self.products = [Product.from_dict(item) for item in document.get("products") or []]
        except (OSError, ValueError, AttributeError, TypeError) as exc:
            logger.warning("Ignoring unreadable checkpoint %s: %s", self.path, exc)
            self.products = []
            return
        logger.info("Resuming from %s with %s products", self.path, len(self.products))

    def processed_keys(self, field: str) -> set[str]:
        keys: set[str] = set()
        for product in self.products:
            value = product.extra.get(field)
            if value:
                keys.add(str(value))
        return keys

    def flush(self, store_info: StoreInfo) -> None:
        info = replace(store_info, total_products=len(self.products))
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            _write_atomic(self.path, dump_json(info, self.products).encode("utf-8"))
        except OSError as exc:
            raise CatalogError(f"could not write checkpoint {self.path}: {exc}") from exc
        logger.debug("Checkpoint %s: %s products", self.path, len(self.products))
