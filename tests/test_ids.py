import uuid

from retailcat.logic.ids import MPN_NAMESPACE, VARIANT_NAMESPACE, accepted_mpns, mpn_for, stable_id, variant_id_for
from retailcat.logic.stock import StockPolicy, StockSignal, resolve_stock


def test_ids_are_deterministic_uuid5():
    assert mpn_for("P1", "Red") == mpn_for("P1", "Red")
    assert mpn_for("P1", "Red") == str(uuid.uuid5(MPN_NAMESPACE, "P1-Red"))
    assert mpn_for("P1", "Red", "M") == str(uuid.uuid5(MPN_NAMESPACE, "P1-Red-M"))
    assert variant_id_for("P1", "sku-1", "M", "Red") == str(uuid.uuid5(VARIANT_NAMESPACE, "P1-sku-1-M-Red"))


def test_ids_differ_by_key():
    assert mpn_for("P1", "Red") != mpn_for("P1", "Blue")
    assert variant_id_for("P1", "s", "S", "Red") != variant_id_for("P1", "s", "M", "Red")
    assert stable_id(MPN_NAMESPACE, "P1", None) == stable_id(MPN_NAMESPACE, "P1", "")


def test_accepted_mpns_cover_color_and_size_keys():
    assert accepted_mpns("P1", "Red", "M") == {mpn_for("P1", "Red"), mpn_for("P1", "Red", "M")}


def test_stock_policies():
    assert resolve_stock(StockPolicy.ASSUMED) is True
    assert resolve_stock(StockPolicy.AVAILABILITY, StockSignal(available=False)) is False
    assert resolve_stock(StockPolicy.AVAILABILITY, StockSignal(status="In Stock")) is True
    assert resolve_stock(StockPolicy.AVAILABILITY) is False
    # Quantity wins over misleading status text.
    assert resolve_stock(StockPolicy.QUANTITY, StockSignal(quantity=0, status="in_stock")) is False
    assert resolve_stock(StockPolicy.QUANTITY, StockSignal(quantity=3)) is True
    assert resolve_stock(StockPolicy.QUANTITY, StockSignal(status="available")) is True
