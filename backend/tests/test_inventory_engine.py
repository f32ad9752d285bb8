import random
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from clinicrx.schemas.inventory import StockStatus
from clinicrx.services import inventory_engine as engine
from conftest import TODAY, make_item


def _item(**overrides):
    values = {
        "name": "Cetirizine 10mg",
        "category": "Allergy & Sinus",
        "quantity": 50,
        "low_stock_threshold": 10,
        "reorder_level": 5,
        "cost_price": Decimal("1.00"),
        "selling_price": Decimal("1.50"),
        "expiry_date": None,
        "status": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestStockStatus:
    @pytest.mark.parametrize("quantity,threshold,expected", [
        (0, 10, StockStatus.OUT_OF_STOCK),
        (1, 10, StockStatus.LOW_STOCK),
        (10, 10, StockStatus.LOW_STOCK),
        (11, 10, StockStatus.IN_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (1, 0, StockStatus.IN_STOCK),
    ])
    def test_derive_status(self, quantity, threshold, expected):
        assert engine.derive_status(quantity, threshold) == expected

    def test_discontinued_bypasses_derivation(self):
        item = _item(quantity=0, status="DISCONTINUED")
        assert engine.effective_status(item) == StockStatus.DISCONTINUED
        assert not engine.needs_reorder(item)

    def test_stale_stored_status_is_recomputed(self):
        item = _item(quantity=3, status="IN_STOCK")
        assert engine.effective_status(item) == StockStatus.LOW_STOCK

    def test_low_stock_excludes_empty_shelves(self):
        assert engine.is_low_stock(_item(quantity=4))
        assert not engine.is_low_stock(_item(quantity=0))
        assert not engine.is_low_stock(_item(quantity=11))

    def test_needs_reorder(self):
        assert engine.needs_reorder(_item(quantity=8))
        assert engine.needs_reorder(_item(quantity=0))
        # At the reorder level even with a threshold below it
        assert engine.needs_reorder(_item(quantity=5, low_stock_threshold=2))
        assert not engine.needs_reorder(_item(quantity=40))

    def test_is_expired(self):
        assert engine.is_expired(_item(expiry_date=date(2023, 12, 31)), TODAY)
        assert not engine.is_expired(_item(expiry_date=TODAY), TODAY)
        assert not engine.is_expired(_item(), TODAY)


class TestEconomics:
    def test_unit_economics(self):
        assert engine.profit_per_unit(Decimal("2.00"), Decimal("3.50")) == Decimal("1.50")
        assert engine.profit_margin_percent(Decimal("2.00"), Decimal("3.50")) == Decimal("75")
        assert engine.stock_value(40, Decimal("2.00")) == Decimal("80.00")
        assert engine.potential_revenue(40, Decimal("3.50")) == Decimal("140.00")

    def test_zero_cost_margin_is_zero(self):
        assert engine.profit_margin_percent(Decimal("0"), Decimal("5.00")) == 0

    def test_negative_profit_is_reported(self):
        assert engine.profit_per_unit(Decimal("4.00"), Decimal("3.00")) == Decimal("-1.00")


class TestCodes:
    def test_generated_sku_shape(self):
        sku = engine.generate_sku(rng=random.Random(7))
        assert sku.startswith("PHARM-")
        assert len(sku) == len("PHARM-") + 6
        assert engine.SKU_PATTERN.match(sku)

    def test_seeded_generation_is_repeatable(self):
        assert engine.generate_sku("otc", random.Random(1)) == engine.generate_sku("OTC", random.Random(1))

    def test_default_rng_varies(self):
        assert len({engine.generate_sku() for _ in range(20)}) > 1

    def test_normalize_code(self):
        assert engine.normalize_code("  pharm-ab12 ") == "PHARM-AB12"
        assert engine.normalize_code(engine.normalize_code("abc")) == "ABC"
        assert engine.normalize_code("   ") is None
        assert engine.normalize_code(None) is None


class TestValidation:
    def test_valid_item(self):
        assert engine.validate_inventory_item(make_item(), TODAY) == {}

    def test_lowercase_sku_is_accepted_after_normalising(self):
        assert "sku" not in engine.validate_inventory_item(make_item(sku="otc_12-a"), TODAY)

    def test_reports_each_field(self):
        form = make_item(
            name=" ",
            sku="bad sku!",
            category="Snacks",
            quantity=-1,
            cost_price=Decimal("-1"),
            low_stock_threshold=-1,
            reorder_level=-1,
            reorder_quantity=0,
            expiry_date=TODAY,
        )
        errors = engine.validate_inventory_item(form, TODAY)
        assert errors == {
            "name": "Product name is required",
            "sku": "SKU can only contain letters, numbers, hyphens, and underscores",
            "category": "Category is not recognised",
            "quantity": "Quantity cannot be negative",
            "costPrice": "Cost price cannot be negative",
            "lowStockThreshold": "Low stock threshold cannot be negative",
            "reorderLevel": "Reorder level cannot be negative",
            "reorderQuantity": "Reorder quantity must be at least 1",
            "expiryDate": "Expiry date must be in the future",
        }

    def test_selling_below_cost(self):
        errors = engine.validate_inventory_item(
            make_item(cost_price=Decimal("5"), selling_price=Decimal("4.99")), TODAY
        )
        assert errors == {"sellingPrice": "Selling price must be greater than or equal to cost price"}

    def test_missing_sku(self):
        assert engine.validate_inventory_item(make_item(sku=""), TODAY) == {"sku": "SKU is required"}


def test_summarize_inventory():
    items = [
        _item(quantity=40, cost_price=Decimal("2.00"), category="Pain Relief"),
        _item(quantity=5, cost_price=Decimal("1.00"), category="Pain Relief"),
        _item(quantity=0, category="Cold & Flu", expiry_date=date(2023, 6, 1)),
    ]
    stats = engine.summarize_inventory(items, TODAY)
    assert stats["total_items"] == 3
    assert stats["total_value"] == Decimal("85.00")
    assert stats["low_stock_count"] == 1
    assert stats["out_of_stock_count"] == 1
    assert stats["expired_count"] == 1
    assert stats["category_distribution"][0] == {
        "category": "Pain Relief", "count": 2, "total_value": Decimal("85.00"),
    }


def test_summary_counts_follow_effective_status():
    items = [
        _item(quantity=0, status="DISCONTINUED"),
        _item(quantity=4, status="DISCONTINUED"),
        _item(quantity=4),
        _item(quantity=0),
    ]
    stats = engine.summarize_inventory(items, TODAY)
    assert stats["total_items"] == 4
    assert stats["low_stock_count"] == 1
    assert stats["out_of_stock_count"] == 1
