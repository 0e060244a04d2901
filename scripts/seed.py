"""Seed the database with one store row per configured retailer."""

from __future__ import annotations

from retailcat.db.migrate import run_migrations
from retailcat.db.repository import CatalogRepository
from retailcat.db.session import create_engine_from_env
from retailcat.ingest import load_retailers


def main() -> None:
    engine = create_engine_from_env()
    run_migrations(engine)
    repository = CatalogRepository(engine)
    for retailer in load_retailers():
        result = repository.save_store(retailer, [])
        print(f"{retailer.name}: {result.operation}")
    print("Seed complete")


if __name__ == "__main__":
    main()
