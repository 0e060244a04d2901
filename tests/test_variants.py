from retailcat.logic.ids import mpn_for
from retailcat.logic.normalize import build_pricing
from retailcat.logic.stock import StockPolicy, StockSignal
from retailcat.logic.variants import ColorOption, SizeOption, explode_variants

PRICING = build_pricing(50, 40)


def test_variant_count_is_sum_of_sizes_per_color():
    colors = [
        ColorOption(name="Red", sizes=[SizeOption("S"), SizeOption("M"), SizeOption("L")]),
        ColorOption(name="Blue", sizes=[SizeOption("M")]),
        ColorOption(name="Green"),
    ]
    variants = explode_variants("P9", colors, pricing=PRICING, link_url="https://shop.test/p9")
    assert len(variants) == 3 + 1 + 1
    assert [v.size for v in variants if v.color == "Green"] == [""]
    assert all(v.final_price == 40 for v in variants)


def test_no_dimensions_yields_default_variant():
    (variant,) = explode_variants("P9", [], pricing=PRICING, link_url="https://shop.test/p9")
    assert variant.color == "Default"
    assert variant.mpn == mpn_for("P9", "Default")


def test_duplicate_variant_ids_are_dropped():
    colors = [ColorOption(name="Red", sizes=[SizeOption("S"), SizeOption("S")])]
    assert len(explode_variants("P9", colors, pricing=PRICING, link_url="u")) == 1


def test_images_and_stock_precedence():
    colors = [
        ColorOption(
            name="Red",
            image_url="https://img/red.jpg",
            alternate_image_urls=["https://img/red.jpg", "https://img/red-2.jpg"],
            stock=StockSignal(available=True),
            sizes=[SizeOption("S", stock=StockSignal(available=False)), SizeOption("M")],
        )
    ]
    small, medium = explode_variants(
        "P9",
        colors,
        pricing=PRICING,
        link_url="u",
        image_url="https://img/default.jpg",
        alternate_image_urls=["https://img/red-2.jpg", "https://img/back.jpg"],
        stock_policy=StockPolicy.AVAILABILITY,
    )
    assert small.image_url == "https://img/red.jpg"
    assert small.alternate_image_urls == ["https://img/red-2.jpg", "https://img/back.jpg"]
    assert small.is_in_stock is False
    assert medium.is_in_stock is True


def test_explosion_is_reproducible():
    colors = [ColorOption(name="Red", sizes=[SizeOption("S", source_id="sku-1")])]
    first = explode_variants("P9", colors, pricing=PRICING, link_url="u")
    second = explode_variants("P9", colors, pricing=PRICING, link_url="u")
    assert [v.to_dict() for v in first] == [v.to_dict() for v in second]
