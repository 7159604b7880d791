"""Tests for product models, row mapping and realtime payload parsing."""

import pytest
from conftest import make_product, product_row

from inventory_sync.models import (
    ChangeKind,
    ProductCandidate,
    StockStatus,
    candidate_to_row,
    change_event_from_payload,
    get_product_stock_status,
    product_from_row,
    product_to_row,
)


class TestStockStatus:
    """Test the stock status classification."""

    @pytest.mark.parametrize(
        "stock,threshold,expected",
        [
            (0, 5, StockStatus.OUT_OF_STOCK),
            (0, 0, StockStatus.OUT_OF_STOCK),
            (1, 5, StockStatus.LOW_STOCK),
            (5, 5, StockStatus.LOW_STOCK),
            (6, 5, StockStatus.IN_STOCK),
            (1, 0, StockStatus.IN_STOCK),
            (100, 10, StockStatus.IN_STOCK),
        ],
    )
    def test_status(self, stock, threshold, expected):
        product = make_product(stock=stock, low_stock_threshold=threshold)

        assert get_product_stock_status(product) is expected

    def test_status_values(self):
        """The wire values match what the UI expects."""
        assert StockStatus.OUT_OF_STOCK.value == "out-of-stock"
        assert StockStatus.LOW_STOCK.value == "low-stock"
        assert StockStatus.IN_STOCK.value == "in-stock"

    def test_status_is_exhaustive_and_exclusive(self):
        """Every stock level up to well past the threshold gets exactly one status."""
        for threshold in range(0, 8):
            for stock in range(0, 15):
                status = get_product_stock_status(make_product(stock=stock, low_stock_threshold=threshold))
                assert (status is StockStatus.OUT_OF_STOCK) == (stock == 0)
                assert (status is StockStatus.LOW_STOCK) == (0 < stock <= threshold)
                assert (status is StockStatus.IN_STOCK) == (stock > threshold and stock > 0)


class TestRowMapping:
    """Test mapping between table rows and Product."""

    def test_product_from_row(self):
        product = product_from_row(product_row(id=42, price="799.50"))

        assert product.id == "42"
        assert product.item_number == "VK-001"
        assert product.price == 799.5
        assert product.discount_percentage == 10.0
        assert product.low_stock_threshold == 5
        assert product.size == "M"
        assert product.created_at == "2026-01-01T00:00:00+00:00"

    def test_defaults_for_missing_optional_columns(self):
        """Missing image/description become empty; missing size/color stay None."""
        row = product_row(image=None, description=None, size=None, color=None,
                          discount_percentage=None, low_stock_threshold=None)

        product = product_from_row(row)

        assert product.image == ""
        assert product.description == ""
        assert product.size is None
        assert product.color is None
        assert product.discount_percentage == 0.0
        assert product.low_stock_threshold == 5

    def test_empty_size_and_color_are_kept(self):
        product = product_from_row(product_row(size="", color=""))

        assert product.size == ""
        assert product.color == ""

    def test_zero_threshold_is_kept(self):
        assert product_from_row(product_row(low_stock_threshold=0)).low_stock_threshold == 0

    def test_row_without_id_raises(self):
        row = product_row()
        del row["id"]

        with pytest.raises(KeyError):
            product_from_row(row)

    def test_product_to_row_leaves_out_server_columns(self):
        row = product_to_row(make_product(updated_at="2026-02-02T00:00:00+00:00"))

        assert "id" not in row
        assert "created_at" not in row
        assert row["item_number"] == "VK-001"
        assert row["updated_at"] == "2026-02-02T00:00:00+00:00"

    def test_product_survives_row_round_trip(self):
        original = product_from_row(product_row())

        again = product_from_row({**product_to_row(original), "id": original.id,
                                  "created_at": original.created_at})

        assert again == original

    def test_candidate_to_row_applies_defaults(self):
        candidate = ProductCandidate(name="Saree", brand="Vivaas", category="Apparel",
                                     item_number="VS-9", price=1500.0, stock=3)

        row = candidate_to_row(candidate, default_low_stock_threshold=7)

        assert row["low_stock_threshold"] == 7
        assert row["discount_percentage"] == 0
        assert row["image"] == ""
        assert "id" not in row

    def test_product_is_frozen(self):
        product = make_product()

        with pytest.raises(AttributeError):
            product.stock = 0


class TestChangeEventPayload:
    """Test normalization of realtime payloads."""

    def test_server_shape_insert(self):
        payload = {"data": {"type": "INSERT", "record": product_row(id="9"), "old_record": None},
                   "ids": [1]}

        event = change_event_from_payload(payload)

        assert event.kind is ChangeKind.INSERT
        assert event.new["id"] == "9"
        assert event.old is None
        assert event.row_id == "9"

    def test_client_shape_delete(self):
        payload = {"eventType": "DELETE", "new": {}, "old": {"id": "7"}}

        event = change_event_from_payload(payload)

        assert event.kind is ChangeKind.DELETE
        assert event.new is None
        assert event.row_id == "7"

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            change_event_from_payload({"data": {"type": "TRUNCATE"}})
