from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Text
from sqlalchemy.sql import func
from clinicrx.db.base import Base


class InventoryItem(Base):
    """
    Pharmacy inventory item, one row per SKU.

    `status` is stored only so that DISCONTINUED survives a round trip.
    The quantity-driven states are recomputed on every read.
    """
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    category = Column(String(64), nullable=False, default="Prescription Drugs", index=True)
    sku = Column(String(64), unique=True, nullable=False, index=True)  # uppercase
    barcode = Column(String(64), unique=True, nullable=True)  # uppercase, optional
    quantity = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=10)
    cost_price = Column(Numeric(10, 2), nullable=False, default=0)
    selling_price = Column(Numeric(10, 2), nullable=False, default=0)
    supplier = Column(String(255), nullable=True)
    batch_number = Column(String(64), nullable=True)  # uppercase
    expiry_date = Column(Date, nullable=True)
    location = Column(String(100), nullable=True)
    reorder_level = Column(Integer, nullable=False, default=5)
    reorder_quantity = Column(Integer, nullable=False, default=25)
    notes = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="IN_STOCK", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<InventoryItem sku={self.sku} qty={self.quantity}>"
