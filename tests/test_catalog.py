import gzip
import json

import pytest

from retailcat.ingest.models import Product, RetailerConfig
from retailcat.logic.catalog import CatalogCheckpoint, CatalogWriter, read_jsonl, store_info_for
from retailcat.logic.normalize import build_pricing
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants

RETAILER = RetailerConfig(slug="nike", name="Nike", domain="nike.com", platform="nike")


def make_products():
    products = []
    for pid, name in (("N1", "Club Fleece Hoodie – Überweich"), ("N2", "Dri-FIT Tee")):
        product = Product(parent_product_id=pid, name=name, description="Soft brushed fleece", extra={"fit": "standard"})
        product.variants = explode_variants(
            pid,
            [ColorOption(name="Black", sizes=[SizeOption("S"), SizeOption("M")])],
            pricing=build_pricing(60, 45),
            link_url=f"https://www.nike.com/t/{pid}",
        )
        products.append(product)
    return products


def test_writer_round_trip(tmp_path):
    products = make_products()
    info = store_info_for(RETAILER, products, ["Men", "Men", "Women"])
    paths = CatalogWriter(tmp_path).write("nike", info, products)

    assert paths.directory == tmp_path / "US" / "nike-US"
    document = json.loads(paths.json_path.read_text(encoding="utf-8"))
    assert document["store_info"]["total_products"] == 2
    assert document["store_info"]["categories"] == ["Men", "Women"]
    assert document["store_info"]["crawled_at"].endswith("Z")

    lines = gzip.decompress(paths.gzip_path.read_bytes()).decode("utf-8").split("\n")
    assert [json.loads(line) for line in lines] == document["products"]
    assert paths.gzip_path.read_bytes() == gzip.compress(paths.jsonl_path.read_bytes(), mtime=0)
    assert read_jsonl(paths.gzip_path) == document["products"]
    assert document["products"][0]["fit"] == "standard"
    assert list(document["products"][0])[:2] == ["parent_product_id", "name"]
    assert [Product.from_dict(item) for item in document["products"]] == products


def test_writer_overwrites_previous_run(tmp_path):
    writer = CatalogWriter(tmp_path)
    products = make_products()
    writer.write("nike", store_info_for(RETAILER, products, []), products)
    paths = writer.write("nike", store_info_for(RETAILER, products[:1], []), products[:1])
    assert len(read_jsonl(paths.jsonl_path)) == 1
    assert json.loads(paths.json_path.read_text())["store_info"]["total_products"] == 1


def test_checkpoint_missing_and_corrupt_files_start_fresh(tmp_path):
    assert CatalogCheckpoint(tmp_path / "absent.json").products == []
    corrupt = tmp_path / "catalog.json"
    corrupt.write_text("{truncated")
    assert CatalogCheckpoint(corrupt).products == []


def test_checkpoint_flush_and_reload(tmp_path):
    writer = CatalogWriter(tmp_path)
    checkpoint = writer.checkpoint("nike", "US")
    products = make_products()
    products[0].extra["manufacturer"] = "Acme"
    checkpoint.products.extend(products)
    checkpoint.flush(store_info_for(RETAILER, [], []))

    reloaded = writer.checkpoint("nike", "US")
    assert [p.parent_product_id for p in reloaded.products] == ["N1", "N2"]
    assert reloaded.processed_keys("manufacturer") == {"Acme"}
    assert json.loads(reloaded.path.read_text())["store_info"]["total_products"] == 2


def test_from_dict_rejects_unknown_operation_type(tmp_path):
    assert Product.from_dict({"parent_product_id": "N1", "operation_type": "NO_CHANGE"}).operation_type == "NO_CHANGE"
    with pytest.raises(ValueError, match="operation_type"):
        Product.from_dict({"parent_product_id": "N1", "variants": [{"operation_type": "UPSERT"}]})

    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"products": [{"parent_product_id": "N1", "operation_type": "UPSERT"}]}))
    assert CatalogCheckpoint(path).products == []
