"""Inventory read/write. Codes are normalised and status recomputed on every save and read."""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicrx.core.audit import AuditLog
from clinicrx.core.exceptions import Conflict, NotFound, ValidationFailed
from clinicrx.models.inventory import InventoryItem
from clinicrx.schemas.inventory import InventoryItemForm, InventoryItemRecord, StockStatus
from clinicrx.services import inventory_engine

logger = logging.getLogger(__name__)


def _checked_form(form: InventoryItemForm, today: date, action: str) -> InventoryItemForm:
    errors = inventory_engine.validate_inventory_item(form, today)
    if errors:
        AuditLog.log_rejected(action, "inventory", "validation", errors)
        raise ValidationFailed(errors)
    return form.model_copy(update={
        "name": form.name.strip(),
        "sku": inventory_engine.normalize_code(form.sku),
        "barcode": inventory_engine.normalize_code(form.barcode),
        "batch_number": inventory_engine.normalize_code(form.batch_number),
    })


def _ensure_unique(db: Session, form: InventoryItemForm, exclude_id: Optional[int] = None):
    """Pre-check SKU and barcode so the caller gets a precise Conflict message."""
    q = db.query(InventoryItem).filter(InventoryItem.sku == form.sku)
    if exclude_id is not None:
        q = q.filter(InventoryItem.id != exclude_id)
    if q.first():
        raise Conflict("An item with this SKU already exists", field="sku")

    if form.barcode:
        q = db.query(InventoryItem).filter(InventoryItem.barcode == form.barcode)
        if exclude_id is not None:
            q = q.filter(InventoryItem.id != exclude_id)
        if q.first():
            raise Conflict("An item with this barcode already exists", field="barcode")


def _apply(item: InventoryItem, form: InventoryItemForm):
    item.name = form.name
    item.description = form.description
    item.category = form.category
    item.sku = form.sku
    item.barcode = form.barcode
    item.quantity = form.quantity
    item.low_stock_threshold = form.low_stock_threshold
    item.cost_price = form.cost_price
    item.selling_price = form.selling_price
    item.supplier = form.supplier
    item.batch_number = form.batch_number
    item.expiry_date = form.expiry_date
    item.location = form.location
    item.reorder_level = form.reorder_level
    item.reorder_quantity = form.reorder_quantity
    item.notes = form.notes
    if form.status == StockStatus.DISCONTINUED:
        item.status = StockStatus.DISCONTINUED.value
    else:
        item.status = inventory_engine.derive_status(form.quantity, form.low_stock_threshold).value


def _commit(db: Session, action: str):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Inventory {action} hit a constraint: {e.orig}")
        AuditLog.log_rejected(action, "inventory", "conflict")
        raise Conflict("An item with this SKU or barcode already exists")


def create_item(db: Session, form: InventoryItemForm, today: date, actor: Optional[str] = None) -> InventoryItem:
    """
    Raises:
        ValidationFailed: the payload has field errors.
        Conflict: SKU or barcode is already in use.
    """
    form = _checked_form(form, today, "create")
    try:
        _ensure_unique(db, form)
    except Conflict as e:
        AuditLog.log_rejected("create", "inventory", "conflict", {e.field: getattr(form, e.field)})
        raise

    item = InventoryItem()
    _apply(item, form)
    db.add(item)
    _commit(db, "create")
    db.refresh(item)

    AuditLog.log_action("create", "inventory", item.id, actor, changes={"sku": item.sku, "quantity": item.quantity})
    return item


def get_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if item is None:
        raise NotFound("Inventory item", item_id)
    return item


def replace_item(
    db: Session,
    item_id: int,
    form: InventoryItemForm,
    today: date,
    actor: Optional[str] = None,
) -> InventoryItem:
    item = get_item(db, item_id)
    form = _checked_form(form, today, "replace")
    try:
        _ensure_unique(db, form, exclude_id=item_id)
    except Conflict as e:
        AuditLog.log_rejected("replace", "inventory", "conflict", {e.field: getattr(form, e.field)})
        raise
    _apply(item, form)
    _commit(db, "replace")
    db.refresh(item)

    AuditLog.log_action("replace", "inventory", item.id, actor, changes={"sku": item.sku, "status": item.status})
    return item


def delete_item(db: Session, item_id: int, actor: Optional[str] = None) -> None:
    item = get_item(db, item_id)
    sku = item.sku
    db.delete(item)
    db.commit()
    AuditLog.log_action("delete", "inventory", item_id, actor, changes={"sku": sku})


def list_items(
    db: Session,
    category: Optional[str] = None,
    status: Optional[str] = None,
    low_stock: bool = False,
    search: Optional[str] = None,
) -> List[InventoryItem]:
    """
    Items matching the filters, most recently updated first.

    `status` is compared against the recomputed status, so a stale stored
    value can't hide an item.
    """
    q = db.query(InventoryItem)

    if category and category != "all":
        q = q.filter(InventoryItem.category == category)
    if low_stock:
        # Low stock excludes out-of-stock rows
        q = q.filter(
            InventoryItem.quantity <= InventoryItem.low_stock_threshold,
            InventoryItem.quantity > 0,
        )
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(
            InventoryItem.name.ilike(pattern),
            InventoryItem.sku.ilike(pattern),
            InventoryItem.description.ilike(pattern),
            InventoryItem.category.ilike(pattern),
            InventoryItem.barcode.ilike(pattern),
            InventoryItem.batch_number.ilike(pattern),
        ))

    items = q.order_by(InventoryItem.updated_at.desc(), InventoryItem.id.desc()).all()
    if status and status != "all":
        items = [i for i in items if inventory_engine.effective_status(i).value == status]
    return items


def items_needing_reorder(db: Session) -> List[InventoryItem]:
    items = db.query(InventoryItem).order_by(InventoryItem.quantity.asc(), InventoryItem.name).all()
    return [i for i in items if inventory_engine.needs_reorder(i)]


def inventory_statistics(db: Session, today: date) -> dict:
    return inventory_engine.summarize_inventory(db.query(InventoryItem).all(), today)


def to_record(item: InventoryItem, today: date) -> InventoryItemRecord:
    """Row plus everything derived on read."""
    record = InventoryItemRecord.model_validate(item)
    return record.model_copy(update={
        "status": inventory_engine.effective_status(item),
        "is_low_stock": inventory_engine.is_low_stock(item),
        "is_expired": inventory_engine.is_expired(item, today),
        "needs_reorder": inventory_engine.needs_reorder(item),
        "profit_per_unit": inventory_engine.profit_per_unit(item.cost_price, item.selling_price),
        "profit_margin": inventory_engine.profit_margin_percent(item.cost_price, item.selling_price),
        "stock_value": inventory_engine.stock_value(item.quantity, item.cost_price),
        "potential_revenue": inventory_engine.potential_revenue(item.quantity, item.selling_price),
    })


def to_form(item: InventoryItem) -> InventoryItemForm:
    return InventoryItemForm(
        name=item.name,
        description=item.description,
        category=item.category,
        sku=item.sku,
        barcode=item.barcode,
        quantity=item.quantity,
        low_stock_threshold=item.low_stock_threshold,
        cost_price=item.cost_price,
        selling_price=item.selling_price,
        supplier=item.supplier,
        batch_number=item.batch_number,
        expiry_date=item.expiry_date,
        location=item.location,
        reorder_level=item.reorder_level,
        reorder_quantity=item.reorder_quantity,
        notes=item.notes,
        status=StockStatus.DISCONTINUED if inventory_engine.is_discontinued(item) else None,
    )
