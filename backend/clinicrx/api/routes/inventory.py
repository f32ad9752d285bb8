"""Inventory for the pharmacist dashboard, with CRUD support."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinicrx.api.deps import get_actor, get_db, get_today
from clinicrx.core.exceptions import BusinessError, ClinicError
from clinicrx.schemas.inventory import (
    INVENTORY_CATEGORIES,
    InventoryItemForm,
    InventoryItemRecord,
    InventoryListing,
)
from clinicrx.services import inventory_engine, inventory_service

router = APIRouter()


@router.get("", response_model=InventoryListing)
def list_inventory(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    low_stock: bool = Query(False),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Inventory list with search, filters and dashboard statistics."""
    items = inventory_service.list_items(db, category=category, status=status, low_stock=low_stock, search=search)
    return InventoryListing(
        inventory=[inventory_service.to_record(i, today) for i in items],
        statistics=inventory_service.inventory_statistics(db, today),
        total=len(items),
    )


@router.get("/categories", response_model=List[str])
def list_categories():
    return INVENTORY_CATEGORIES


@router.get("/low-stock", response_model=List[InventoryItemRecord])
def get_low_stock_items(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Items at or below their own threshold, out-of-stock excluded."""
    items = inventory_service.list_items(db, low_stock=True)
    items.sort(key=lambda i: i.quantity)
    return [inventory_service.to_record(i, today) for i in items]


@router.get("/reorder", response_model=List[InventoryItemRecord])
def get_reorder_items(db: Session = Depends(get_db), today: date = Depends(get_today)):
    return [inventory_service.to_record(i, today) for i in inventory_service.items_needing_reorder(db)]


@router.get("/sku-suggestion", response_model=dict)
def suggest_sku(prefix: Optional[str] = Query(None)):
    """A fresh SKU suggestion; uniqueness is only checked on save."""
    return {"sku": inventory_engine.generate_sku(prefix)}


@router.post("", response_model=InventoryItemRecord, status_code=201)
def create_inventory_item(
    form: InventoryItemForm,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Optional[str] = Depends(get_actor),
):
    """Add a new medicine/item to inventory."""
    try:
        item = inventory_service.create_item(db, form, today, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return inventory_service.to_record(item, today)


@router.get("/{item_id}", response_model=InventoryItemRecord)
def get_inventory_item(item_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    try:
        item = inventory_service.get_item(db, item_id)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return inventory_service.to_record(item, today)


@router.put("/{item_id}", response_model=InventoryItemRecord)
def replace_inventory_item(
    item_id: int,
    form: InventoryItemForm,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Optional[str] = Depends(get_actor),
):
    try:
        item = inventory_service.replace_item(db, item_id, form, today, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return inventory_service.to_record(item, today)


@router.delete("/{item_id}", response_model=dict)
def delete_inventory_item(
    item_id: int,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
):
    """Delete an inventory item."""
    try:
        inventory_service.delete_item(db, item_id, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return {"message": "Inventory item deleted", "id": item_id}
