"""Catalog validation.

``filter_valid_products`` is the in-memory pass run before every write: it
drops variants whose MPN no longer matches the hash of their keys and any
product left without variants. ``CatalogValidator`` audits written JSONL
files the way the downstream importer does.
"""

from __future__ import annotations

import gzip
import json
import logging
import pathlib
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Any, Iterable, Sequence

from retailcat.ingest.models import Product
from retailcat.logic.ids import accepted_mpns

logger = logging.getLogger(__name__)

PRODUCT_MANDATORY_FIELDS = ("name", "description")
VARIANT_MANDATORY_FIELDS = (
    "original_price",
    "color",
    "size",
    "variant_id",
    "image_url",
    "alternate_image_urls",
    "link_url",
    "deeplink_url",
    "parent_product_id",
    "is_in_stock",
    "is_on_sale",
    "mpn",
)
PRODUCT_KEYS = (
    "name",
    "description",
    "parent_product_id",
    "category",
    "retailer_domain",
    "brand",
    "gender",
    "materials",
    "return_policy_link",
    "return_policy",
    "size_chart",
    "available_bank_offers",
    "available_coupons",
    "operation_type",
    "source",
)


@dataclass(slots=True)
class FilterResult:
    valid_products: list[Product]
    total_count: int
    valid_count: int
    invalid_count: int
    total_variants_filtered: int


def filter_valid_products(products: Sequence[Product]) -> FilterResult:
    """Keep products whose variants still carry consistent identifiers.

    Input products are not modified; kept products are shallow copies with
    their own variant lists. Running the filter on its own output returns
    it unchanged.
    """
    valid: list[Product] = []
    filtered = 0
    seen_variant_ids: set[str] = set()
    for product in products:
        pid = product.parent_product_id
        if not pid:
            filtered += len(product.variants)
            continue
        kept = []
        for variant in product.variants:
            if variant.mpn not in accepted_mpns(pid, variant.color, variant.size):
                logger.debug("Dropping variant %s of %s: MPN mismatch", variant.variant_id, pid)
                filtered += 1
                continue
            if not variant.variant_id or variant.variant_id in seen_variant_ids:
                filtered += 1
                continue
            seen_variant_ids.add(variant.variant_id)
            kept.append(variant)
        if kept:
            valid.append(replace(product, variants=kept))
    invalid = len(products) - len(valid)
    if invalid or filtered:
        logger.info("Filtered %s invalid products and %s variants", invalid, filtered)
    return FilterResult(
        valid_products=valid,
        total_count=len(products),
        valid_count=len(valid),
        invalid_count=invalid,
        total_variants_filtered=filtered,
    )


@dataclass(slots=True)
class AuditStats:
    total_products: int = 0
    total_variants: int = 0
    valid_products: int = 0
    invalid_products: int = 0
    valid_variants: int = 0
    invalid_variants: int = 0
    filtered_variants: int = 0
    products_with_all_variants_removed: int = 0


@dataclass(slots=True)
class AuditSummary:
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    stats: AuditStats
    unique_variant_ids: int
    unique_product_ids: int
    product_success_rate: float
    variant_success_rate: float


def _missing(record: dict[str, Any], names: Iterable[str]) -> list[str]:
    return [name for name in names if record.get(name) is None or record.get(name) == ""]


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


class CatalogValidator:
    """Audits catalog JSONL files and collects errors and warnings.

    One validator can read several files; variant id uniqueness and MPN
    grouping are checked across all of them.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.stats = AuditStats()
        self.variant_ids: set[str] = set()
        self.mpns_by_product: dict[str, dict[str, set[str]]] = defaultdict(lambda: defaultdict(set))

    def error(self, message: str) -> None:
        self.errors.append(message)
        logger.error(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def validate_file(self, path: pathlib.Path | str) -> list[dict[str, Any]]:
        """Audit one ``.jsonl`` or ``.jsonl.gz`` file and return its valid products."""
        path = pathlib.Path(path)
        logger.info("Validating %s", path)
        if not path.exists():
            self.error(f"File not found: {path}")
            return []
        opener = gzip.open if path.suffix == ".gz" else open
        kept: list[dict[str, Any]] = []
        any_valid = False
        line_count = 0
        with opener(path, "rt", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                line_count = line_number
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as exc:
                    self.error(f"Line {line_number}: Invalid JSON syntax - {exc}")
                    continue
                product = self.validate_record(data, line_number)
                if product is not None:
                    any_valid = True
                    kept.append(product)
        if not any_valid and line_count:
            self.error(f"File contains no valid JSON lines: {path}")
        return kept

    def validate_record(self, data: dict[str, Any], line_number: int) -> dict[str, Any] | None:
        if not isinstance(data.get("variants"), list):
            # A flat line is a single variant carrying its product fields.
            data = {**{key: data.get(key) for key in PRODUCT_KEYS}, "variants": [data]}
        return self.validate_product(data, line_number)

    def validate_product(self, product: dict[str, Any], line_number: int | str) -> dict[str, Any] | None:
        self.stats.total_products += 1
        ok = True
        missing = _missing(product, PRODUCT_MANDATORY_FIELDS)
        if missing:
            self.error(f"Line {line_number}: Missing mandatory product fields: {', '.join(missing)}")
            ok = False
        description = product.get("description")
        if not isinstance(description, str):
            self.error(f"Line {line_number}: Description must be a string, got {type(description).__name__}")
            ok = False
        elif len(description.split()) <= 1:
            self.error(f'Line {line_number}: Description must contain more than 1 word, got: "{description}"')
            ok = False
        if not ok:
            self.stats.invalid_products += 1
            return None

        variants = []
        for index, variant in enumerate(product.get("variants") or [], start=1):
            enriched = {"parent_product_id": product.get("parent_product_id"), **variant}
            if not enriched.get("parent_product_id"):
                enriched["parent_product_id"] = product.get("parent_product_id")
            if self.validate_variant(enriched, f"{line_number}.{index}"):
                variants.append(variant)
            else:
                self.stats.filtered_variants += 1
        if not variants:
            self.stats.products_with_all_variants_removed += 1
            self.stats.invalid_products += 1
            return None
        self.stats.valid_products += 1
        return {**product, "variants": variants}

    def validate_variant(self, variant: dict[str, Any], line_number: str) -> bool:
        self.stats.total_variants += 1
        ok = True
        missing = _missing(variant, VARIANT_MANDATORY_FIELDS)
        if missing:
            self.error(f"Line {line_number}: Missing mandatory variant fields: {', '.join(missing)}")
            ok = False
        if not self._check_price(variant.get("original_price"), line_number):
            ok = False
        variant_id = variant.get("variant_id")
        if variant_id in self.variant_ids:
            self.error(f"Line {line_number}: Duplicate variant ID found: {variant_id}")
            ok = False
        else:
            self.variant_ids.add(variant_id)
        product_id = str(variant.get("parent_product_id"))
        color = str(variant.get("color"))
        mpn = variant.get("mpn")
        color_mpns = self.mpns_by_product[product_id][color]
        if mpn in color_mpns:
            self.warning(f'Line {line_number}: Duplicate MPN "{mpn}" found for color "{color}" in product "{product_id}"')
        color_mpns.add(mpn)
        if ok:
            self.stats.valid_variants += 1
        else:
            self.stats.invalid_variants += 1
        return ok

    def _check_price(self, price: Any, line_number: str) -> bool:
        if isinstance(price, bool) or not isinstance(price, (int, float, str)):
            self.error(f"Line {line_number}: Price must be numeric, got {type(price).__name__}")
            return False
        try:
            value = float(price)
        except ValueError:
            self.error(f"Line {line_number}: Price is not a valid number: {price}")
            return False
        if not value > 0:
            self.error(f"Line {line_number}: Price must be greater than 0, got {value}")
            return False
        return True

    def finalize(self) -> AuditSummary:
        """Run cross-file checks and summarise the audit."""
        for product_id, colors in self.mpns_by_product.items():
            for color, mpns in colors.items():
                if len(mpns) > 1:
                    listed = ", ".join(sorted(str(mpn) for mpn in mpns))
                    self.warning(f'Product "{product_id}" has multiple MPNs for color "{color}": {listed}')
        stats = self.stats
        summary = AuditSummary(
            is_valid=not self.errors,
            errors=list(self.errors),
            warnings=list(self.warnings),
            stats=stats,
            unique_variant_ids=len(self.variant_ids),
            unique_product_ids=len(self.mpns_by_product),
            product_success_rate=_rate(stats.valid_products, stats.total_products),
            variant_success_rate=_rate(stats.valid_variants, stats.total_variants),
        )
        logger.info(
            "Audit: %s/%s products valid (%.2f%%), %s/%s variants valid (%.2f%%), %s errors, %s warnings",
            stats.valid_products,
            stats.total_products,
            summary.product_success_rate,
            stats.valid_variants,
            stats.total_variants,
            summary.variant_success_rate,
            len(self.errors),
            len(self.warnings),
        )
        return summary


def catalog_files(output_dir: pathlib.Path | str) -> list[pathlib.Path]:
    """Every ``<country>/<store>/catalog.jsonl`` under ``output_dir``."""
    return sorted(pathlib.Path(output_dir).glob("*/*/catalog.jsonl"))
