import gzip
import json

from retailcat.ingest.models import Product
from retailcat.logic.normalize import build_pricing
from retailcat.logic.validate import CatalogValidator, catalog_files, filter_valid_products
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants


def make_product(pid: str, colors=None) -> Product:
    colors = colors or [ColorOption(name="Red", sizes=[SizeOption("S"), SizeOption("M")])]
    product = Product(
        parent_product_id=pid,
        name=f"Product {pid}",
        description="A soft cotton tee",
        retailer_domain="shop.test",
    )
    product.variants = explode_variants(
        pid, colors, pricing=build_pricing(30, 20), link_url=f"https://shop.test/{pid}", image_url="https://img/1.jpg"
    )
    return product


def test_tampered_mpn_drops_product():
    good = make_product("P1")
    bad = make_product("P2", [ColorOption(name="Blue")])
    bad.variants[0].mpn = "hand-edited"
    result = filter_valid_products([good, bad])
    assert [p.parent_product_id for p in result.valid_products] == ["P1"]
    assert result.total_count == 2
    assert result.valid_count == 1
    assert result.invalid_count == 1
    assert result.total_variants_filtered == 1


def test_partial_variant_filtering_keeps_product():
    product = make_product("P1")
    product.variants[1].mpn = "x"
    result = filter_valid_products([product])
    assert result.valid_count == 1
    assert len(result.valid_products[0].variants) == 1
    # Input is left untouched.
    assert len(product.variants) == 2


def test_size_keyed_mpn_is_accepted():
    product = Product(parent_product_id="H1")
    product.variants = explode_variants(
        "H1", [ColorOption(name="White", sizes=[SizeOption("S")])], pricing=build_pricing(10), link_url="u", mpn_by_size=True
    )
    assert filter_valid_products([product]).valid_count == 1


def test_empty_id_and_empty_variants_are_invalid():
    no_id = make_product("P1")
    no_id.parent_product_id = ""
    empty = Product(parent_product_id="P2")
    result = filter_valid_products([no_id, empty])
    assert result.valid_products == []
    assert result.invalid_count == 2


def test_filter_is_idempotent():
    products = [make_product("P1"), make_product("P2"), make_product("P3", [ColorOption(name="Blue")])]
    products[1].variants[0].mpn = "broken"
    products[2].variants[0].mpn = "broken"
    once = filter_valid_products(products)
    twice = filter_valid_products(once.valid_products)
    assert twice.valid_products == once.valid_products
    assert twice.invalid_count == 0
    assert twice.total_variants_filtered == 0


def write_jsonl(path, records):
    path.write_text("\n".join(json.dumps(record) for record in records))
    return path


def test_catalog_validator_reports_errors(tmp_path):
    good = make_product("P1").to_dict()
    short = make_product("P2").to_dict()
    short["description"] = "Tee"
    unpriced = make_product("P3").to_dict()
    unpriced["variants"][0]["original_price"] = 0
    path = write_jsonl(tmp_path / "catalog.jsonl", [good, short, unpriced])

    validator = CatalogValidator()
    kept = validator.validate_file(path)
    summary = validator.finalize()

    assert [p["parent_product_id"] for p in kept] == ["P1", "P3"]
    assert len(kept[1]["variants"]) == 1
    assert summary.is_valid is False
    assert summary.stats.total_products == 3
    assert summary.stats.invalid_products == 1
    assert summary.stats.filtered_variants == 1
    assert any("more than 1 word" in error for error in summary.errors)
    assert any("greater than 0" in error for error in summary.errors)


def test_catalog_validator_accepts_clean_gzip_catalog(tmp_path):
    path = tmp_path / "catalog.jsonl.gz"
    lines = "\n".join(json.dumps(make_product(pid).to_dict()) for pid in ("P1", "P2"))
    path.write_bytes(gzip.compress(lines.encode("utf-8")))
    validator = CatalogValidator()
    assert len(validator.validate_file(path)) == 2
    summary = validator.finalize()
    assert summary.is_valid is True
    assert summary.product_success_rate == 100.0
    assert summary.unique_variant_ids == 4


def test_catalog_validator_flags_duplicates_and_bad_json(tmp_path):
    product = make_product("P1").to_dict()
    path = write_jsonl(tmp_path / "catalog.jsonl", [product, product])
    with path.open("a") as handle:
        handle.write("\n{not json")
    validator = CatalogValidator()
    validator.validate_file(path)
    summary = validator.finalize()
    assert any("Duplicate variant ID" in error for error in summary.errors)
    assert any("Invalid JSON" in error for error in summary.errors)


def test_missing_file_is_an_error(tmp_path):
    validator = CatalogValidator()
    assert validator.validate_file(tmp_path / "nope.jsonl") == []
    assert validator.finalize().is_valid is False


def test_catalog_files_lists_store_catalogs(tmp_path):
    store = tmp_path / "US" / "nike-US"
    store.mkdir(parents=True)
    (store / "catalog.jsonl").write_text("")
    assert catalog_files(tmp_path) == [store / "catalog.jsonl"]
