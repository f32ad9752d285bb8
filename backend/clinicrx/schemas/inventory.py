from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from clinicrx.core.config import settings


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    DISCONTINUED = "DISCONTINUED"  # set externally, never derived


INVENTORY_CATEGORIES = [
    "Prescription Drugs",
    "Over-the-Counter",
    "Medical Supplies",
    "Personal Care",
    "Vitamins & Supplements",
    "First Aid",
    "Baby Care",
    "Senior Care",
    "Diabetes Care",
    "Allergy & Sinus",
    "Pain Relief",
    "Cold & Flu",
    "Digestive Health",
    "Skin Care",
    "Other",
]

DEFAULT_CATEGORY = "Prescription Drugs"


class InventoryItemForm(BaseModel):
    """Create/replace payload. Validation happens in the inventory engine."""
    name: str = ""
    description: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    sku: str = ""
    barcode: Optional[str] = None
    quantity: int = 0
    low_stock_threshold: int = settings.DEFAULT_LOW_STOCK_THRESHOLD
    cost_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    supplier: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    location: Optional[str] = None
    reorder_level: int = settings.DEFAULT_REORDER_LEVEL
    reorder_quantity: int = settings.DEFAULT_REORDER_QUANTITY
    notes: Optional[str] = None
    # Only DISCONTINUED is honoured; the other states are derived.
    status: Optional[StockStatus] = None


class InventoryItemRecord(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    sku: str
    barcode: Optional[str] = None
    quantity: int
    low_stock_threshold: int
    cost_price: Decimal
    selling_price: Decimal
    supplier: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    location: Optional[str] = None
    reorder_level: int
    reorder_quantity: int
    notes: Optional[str] = None
    status: StockStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Derived on read
    is_low_stock: bool = False
    is_expired: bool = False
    needs_reorder: bool = False
    profit_per_unit: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")
    stock_value: Decimal = Decimal("0")
    potential_revenue: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class CategoryBreakdown(BaseModel):
    category: str
    count: int
    total_value: Decimal


class InventoryStatistics(BaseModel):
    total_items: int
    total_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    expired_count: int
    category_distribution: List[CategoryBreakdown]


class InventoryListing(BaseModel):
    inventory: List[InventoryItemRecord]
    statistics: InventoryStatistics
    total: int
