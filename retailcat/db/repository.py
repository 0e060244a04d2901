"""Optional SQL sink for catalog products and stores."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import text

from retailcat.ingest.models import Product, RetailerConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SaveResult:
    operation: str
    product_id: int | None = None
    error: str | None = None


@dataclass(slots=True)
class StoreResult:
    operation: str
    store_id: int | None = None
    added: int = 0
    error: str | None = None


def _json_param(conn: Connection, name: str) -> str:
    return f":{name}" if conn.dialect.name == "sqlite" else f"CAST(:{name} AS JSONB)"


class CatalogRepository:
    """findOne-then-save persistence keyed by product and store identity.

    Failures are logged and reported as ``ERROR`` results so one bad row
    never stops a run.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save_product(self, product: Product) -> SaveResult:
        try:
            with self.engine.begin() as conn:
                return self._save_product(conn, product)
        except SQLAlchemyError as exc:
            logger.error("Failed to save product %s (%s): %s", product.parent_product_id, product.name, exc)
            return SaveResult(operation="ERROR", error=str(exc))

    def save_products(self, products: Iterable[Product]) -> list[SaveResult]:
        return [self.save_product(product) for product in products]

    def _save_product(self, conn: Connection, product: Product) -> SaveResult:
        existing = conn.execute(
            text(
                "SELECT id FROM catalog_products "
                "WHERE parent_product_id = :parent_product_id AND retailer_domain = :retailer_domain"
            ),
            {"parent_product_id": product.parent_product_id, "retailer_domain": product.retailer_domain},
        ).scalar_one_or_none()
        operation = "UPDATE" if existing else "INSERT"
        data = product.to_dict()
        data["operation_type"] = operation
        for variant in data["variants"]:
            variant["operation_type"] = operation
        params = {
            "parent_product_id": product.parent_product_id,
            "retailer_domain": product.retailer_domain,
            "name": product.name,
            "source": product.source,
            "operation_type": operation,
            "payload": json.dumps(data, ensure_ascii=False),
        }
        payload = _json_param(conn, "payload")
        if existing:
            conn.execute(
                text(
                    f"""
                    UPDATE catalog_products
                    SET name = :name, source = :source, operation_type = :operation_type,
                        payload = {payload}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                    """
                ),
                {**params, "id": existing},
            )
            return SaveResult(operation=operation, product_id=int(existing))
        result = conn.execute(
            text(
                f"""
                INSERT INTO catalog_products
                    (parent_product_id, retailer_domain, name, source, operation_type, payload, created_at, updated_at)
                VALUES
                    (:parent_product_id, :retailer_domain, :name, :source, :operation_type, {payload},
                     CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                RETURNING id
                """
            ),
            params,
        )
        return SaveResult(operation=operation, product_id=int(result.scalar_one()))

    def save_store(self, retailer: RetailerConfig, product_ids: Iterable[int]) -> StoreResult:
        """Create the store row or append the products it does not link yet."""
        ids = list(dict.fromkeys(product_ids))
        try:
            with self.engine.begin() as conn:
                return self._save_store(conn, retailer, ids)
        except SQLAlchemyError as exc:
            logger.error("Failed to save store %s: %s", retailer.name, exc)
            return StoreResult(operation="ERROR", error=str(exc))

    def _save_store(self, conn: Connection, retailer: RetailerConfig, product_ids: list[int]) -> StoreResult:
        store_id = conn.execute(
            text("SELECT id FROM stores WHERE store_type = :store_type AND name = :name AND country = :country"),
            {"store_type": retailer.store_type, "name": retailer.name, "country": retailer.country},
        ).scalar_one_or_none()
        if store_id:
            linked = {
                row[0]
                for row in conn.execute(
                    text("SELECT product_id FROM store_products WHERE store_id = :store_id"), {"store_id": store_id}
                )
            }
            new_ids = [product_id for product_id in product_ids if product_id not in linked]
            self._link(conn, store_id, new_ids)
            conn.execute(
                text("UPDATE stores SET is_scrapped = :scrapped, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                {"scrapped": True, "id": store_id},
            )
            logger.info("Updated store %s with %s new products", retailer.name, len(new_ids))
            return StoreResult(operation="UPDATED", store_id=int(store_id), added=len(new_ids))
        tags = _json_param(conn, "tags")
        store_id = conn.execute(
            text(
                f"""
                INSERT INTO stores
                    (name, store_type, store_template, store_url, city, state, country, is_scrapped,
                     return_policy, tags, created_at, updated_at)
                VALUES
                    (:name, :store_type, :store_template, :store_url, '', '', :country, :scrapped,
                     :return_policy, {tags}, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                RETURNING id
                """
            ),
            {
                "name": retailer.name,
                "store_type": retailer.store_type,
                "store_template": f"{retailer.store_type}-template",
                "store_url": retailer.store_url,
                "country": retailer.country,
                "scrapped": True,
                "return_policy": retailer.return_policy_link,
                "tags": json.dumps(retailer.tags),
            },
        ).scalar_one()
        self._link(conn, store_id, product_ids)
        logger.info("Created store %s with %s products", retailer.name, len(product_ids))
        return StoreResult(operation="CREATED", store_id=int(store_id), added=len(product_ids))

    def _link(self, conn: Connection, store_id: int, product_ids: list[int]) -> None:
        if not product_ids:
            return
        conn.execute(
            text("INSERT INTO store_products (store_id, product_id) VALUES (:store_id, :product_id)"),
            [{"store_id": store_id, "product_id": product_id} for product_id in product_ids],
        )
