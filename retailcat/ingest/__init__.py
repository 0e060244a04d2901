"""Ingestion helpers."""

from __future__ import annotations

import pathlib

import yaml

from retailcat.errors import ConfigurationError
from retailcat.ingest.models import CategoryConfig, RetailerConfig

RETAILERS_PATH = pathlib.Path(__file__).with_name("retailers.yml")


def load_retailers(path: pathlib.Path | None = None) -> list[RetailerConfig]:
    data = yaml.safe_load((path or RETAILERS_PATH).read_text())
    retailers = []
    for item in data:
        categories = [CategoryConfig(**{**cat, "id": str(cat.get("id", ""))}) for cat in item.pop("categories", [])]
        retailers.append(RetailerConfig(**item, categories=categories))
    return retailers


def get_retailer(slug: str, path: pathlib.Path | None = None) -> RetailerConfig:
    for retailer in load_retailers(path):
        if retailer.slug == slug:
            return retailer
    raise ConfigurationError(f"Unknown retailer: {slug}")
