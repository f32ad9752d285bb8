"""
INVENTORY ENGINE

Pure functions over inventory items: stock status, unit economics,
reorder flags, SKU suggestions and dashboard statistics.

Items are duck-typed: anything with the InventoryItem attribute names
(ORM row, pydantic form, SimpleNamespace) works.
"""
import random
import re
import string
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional

from clinicrx.core.config import settings
from clinicrx.schemas.inventory import INVENTORY_CATEGORIES, StockStatus

BASE36_ALPHABET = string.digits + string.ascii_uppercase
SKU_SUFFIX_LENGTH = 6
SKU_PATTERN = re.compile(r"^[A-Z0-9\-_]+$")


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, StockStatus) else str(status)


# ==============================================================================
# STOCK STATUS
# ==============================================================================

def derive_status(quantity: int, low_stock_threshold: int) -> StockStatus:
    """
    Quantity-driven status, first match wins:
    0 -> OUT_OF_STOCK, <= threshold -> LOW_STOCK (inclusive), else IN_STOCK.

    Never returns DISCONTINUED.
    """
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def is_discontinued(item) -> bool:
    return _status_value(getattr(item, "status", None)) == StockStatus.DISCONTINUED.value


def effective_status(item) -> StockStatus:
    """Status to show on read. DISCONTINUED bypasses derivation."""
    if is_discontinued(item):
        return StockStatus.DISCONTINUED
    return derive_status(item.quantity, item.low_stock_threshold)


def is_low_stock(item) -> bool:
    return 0 < item.quantity <= item.low_stock_threshold


def is_expired(item, today: date) -> bool:
    expiry = getattr(item, "expiry_date", None)
    if expiry is None:
        return False
    return today > expiry


def needs_reorder(item) -> bool:
    """Low stock or at/below the reorder level; discontinued items never reorder."""
    if is_discontinued(item):
        return False
    return (
        effective_status(item) == StockStatus.LOW_STOCK
        or item.quantity <= item.reorder_level
    )


# ==============================================================================
# ECONOMICS
# ==============================================================================

def profit_per_unit(cost_price, selling_price) -> Decimal:
    """May be negative when the selling >= cost rule was bypassed upstream."""
    return _money(selling_price) - _money(cost_price)


def profit_margin_percent(cost_price, selling_price) -> Decimal:
    """Margin over cost in percent; 0 for zero-cost items (no division)."""
    cost = _money(cost_price)
    if cost == 0:
        return Decimal("0")
    return profit_per_unit(cost, selling_price) / cost * 100


def stock_value(quantity, cost_price) -> Decimal:
    return _money(quantity) * _money(cost_price)


def potential_revenue(quantity, selling_price) -> Decimal:
    return _money(quantity) * _money(selling_price)


# ==============================================================================
# CODES
# ==============================================================================

def generate_sku(prefix: Optional[str] = None, rng: Optional[random.Random] = None) -> str:
    """
    Suggest a SKU such as "PHARM-K3Z09Q".

    Not checked against existing SKUs; the database unique constraint has
    the final say.
    """
    prefix = prefix or settings.SKU_PREFIX
    source = rng or random.SystemRandom()
    suffix = "".join(source.choice(BASE36_ALPHABET) for _ in range(SKU_SUFFIX_LENGTH))
    return f"{prefix.upper()}-{suffix}"


def normalize_code(value: Optional[str]) -> Optional[str]:
    """Strip and uppercase a SKU, barcode or batch number. Blank -> None."""
    if value is None:
        return None
    value = value.strip().upper()
    return value or None


# ==============================================================================
# VALIDATION
# ==============================================================================

def validate_inventory_item(form, today: date) -> Dict[str, str]:
    """
    Check an inventory payload; field -> message, empty when valid.

    Codes are checked after normalisation, so "pharm-01" is accepted.
    """
    errors: Dict[str, str] = {}

    if not (form.name or "").strip():
        errors["name"] = "Product name is required"

    sku = normalize_code(form.sku)
    if not sku:
        errors["sku"] = "SKU is required"
    elif not SKU_PATTERN.match(sku):
        errors["sku"] = "SKU can only contain letters, numbers, hyphens, and underscores"

    if form.category not in INVENTORY_CATEGORIES:
        errors["category"] = "Category is not recognised"

    if form.quantity < 0:
        errors["quantity"] = "Quantity cannot be negative"

    cost = _money(form.cost_price)
    selling = _money(form.selling_price)
    if cost < 0:
        errors["costPrice"] = "Cost price cannot be negative"
    if selling < 0:
        errors["sellingPrice"] = "Selling price cannot be negative"
    elif selling < cost:
        errors["sellingPrice"] = "Selling price must be greater than or equal to cost price"

    if form.low_stock_threshold < 0:
        errors["lowStockThreshold"] = "Low stock threshold cannot be negative"
    if form.reorder_level < 0:
        errors["reorderLevel"] = "Reorder level cannot be negative"
    if form.reorder_quantity < 1:
        errors["reorderQuantity"] = "Reorder quantity must be at least 1"

    if form.expiry_date is not None and form.expiry_date <= today:
        errors["expiryDate"] = "Expiry date must be in the future"

    return errors


# ==============================================================================
# STATISTICS
# ==============================================================================

def summarize_inventory(items: Iterable, today: date) -> dict:
    """Totals for the inventory dashboard header."""
    items = list(items)
    categories: Dict[str, Dict] = {}
    total_value = Decimal("0")
    low_stock_count = out_of_stock_count = expired_count = 0

    for item in items:
        value = stock_value(item.quantity, item.cost_price)
        total_value += value
        status = effective_status(item)
        if status == StockStatus.LOW_STOCK:
            low_stock_count += 1
        elif status == StockStatus.OUT_OF_STOCK:
            out_of_stock_count += 1
        if is_expired(item, today):
            expired_count += 1
        bucket = categories.setdefault(item.category, {"count": 0, "total_value": Decimal("0")})
        bucket["count"] += 1
        bucket["total_value"] += value

    distribution = [
        {"category": name, "count": bucket["count"], "total_value": bucket["total_value"]}
        for name, bucket in sorted(categories.items(), key=lambda kv: (-kv[1]["count"], kv[0]))
    ]

    return {
        "total_items": len(items),
        "total_value": total_value,
        "low_stock_count": low_stock_count,
        "out_of_stock_count": out_of_stock_count,
        "expired_count": expired_count,
        "category_distribution": distribution,
    }
