"""Stationary catalogue: items, stock locations, vendors and stock levels."""
import math

from sqlalchemy.orm import Session
from sqlalchemy import select, func
from app.database import transactional
from app.errors import Conflict, NotFound
from app.models.stationary import StationaryItem, StockLocation, StockLevel, StockMovement, Vendor, MovementType
from app.models.user import User
from app.schemas.pagination import Page
from app.schemas.stationary import (
    StationaryItemCreate,
    StationaryItemUpdate,
    StockLocationCreate,
    VendorCreate,
    StockAdjustment,
    StockTransfer,
)
from app.services import authorization as authz
from app.services import quantity_ledger as ledger

MODULE = "stationary"


# ─── Items ────────────────────────────────────────────────────────────────────

def get_items(db: Session, page: int = 1, size: int = 50, search: str = "") -> Page:
    query = select(StationaryItem).where(StationaryItem.is_active == True)
    if search:
        query = query.where(
            StationaryItem.name.ilike(f"%{search}%") | StationaryItem.item_code.ilike(f"%{search}%")
        )
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(query.order_by(StationaryItem.item_code).offset((page - 1) * size).limit(size)).all()
    return Page(items=items, total=total, page=page, pages=math.ceil(total / size) if total else 1, size=size)


def get_item(db: Session, item_id: int) -> StationaryItem:
    item = db.get(StationaryItem, item_id)
    if not item:
        raise NotFound("Stationary item not found", item_id=item_id)
    return item


def create_item(db: Session, data: StationaryItemCreate, actor: User) -> StationaryItem:
    authz.require_permission(db, actor, MODULE, "manage")
    if db.scalar(select(StationaryItem).where(StationaryItem.item_code == data.item_code)):
        raise Conflict("Item code already exists", item_code=data.item_code)
    item = StationaryItem(**data.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_item(db: Session, item_id: int, data: StationaryItemUpdate, actor: User) -> StationaryItem:
    authz.require_permission(db, actor, MODULE, "manage")
    item = get_item(db, item_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


# ─── Locations ────────────────────────────────────────────────────────────────

def get_locations(db: Session) -> list[StockLocation]:
    return db.scalars(
        select(StockLocation).where(StockLocation.is_active == True).order_by(StockLocation.code)
    ).all()


def create_location(db: Session, data: StockLocationCreate, actor: User) -> StockLocation:
    authz.require_permission(db, actor, MODULE, "manage")
    if db.scalar(select(StockLocation).where(StockLocation.code == data.code)):
        raise Conflict("Location code already exists", code=data.code)
    location = StockLocation(**data.model_dump())
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


# ─── Vendors ──────────────────────────────────────────────────────────────────

def get_vendors(db: Session) -> list[Vendor]:
    return db.scalars(select(Vendor).where(Vendor.is_active == True).order_by(Vendor.name)).all()


def create_vendor(db: Session, data: VendorCreate, actor: User) -> Vendor:
    authz.require_permission(db, actor, MODULE, "manage")
    if db.scalar(select(Vendor).where(Vendor.vendor_code == data.vendor_code)):
        raise Conflict("Vendor code already exists", vendor_code=data.vendor_code)
    vendor = Vendor(**data.model_dump())
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


# ─── Stock ────────────────────────────────────────────────────────────────────

def get_stock(
    db: Session,
    item_id: int | None = None,
    location_id: int | None = None,
    below_reorder: bool = False,
) -> list[StockLevel]:
    query = select(StockLevel).join(StationaryItem, StockLevel.item_id == StationaryItem.id)
    if item_id is not None:
        query = query.where(StockLevel.item_id == item_id)
    if location_id is not None:
        query = query.where(StockLevel.location_id == location_id)
    if below_reorder:
        query = query.where(StockLevel.quantity <= StationaryItem.reorder_level)
    return db.scalars(query.order_by(StationaryItem.item_code, StockLevel.location_id)).all()


def get_movements(db: Session, item_id: int | None = None, reference: str = "", limit: int = 200) -> list[StockMovement]:
    query = select(StockMovement)
    if item_id is not None:
        query = query.where(StockMovement.item_id == item_id)
    if reference:
        query = query.where(StockMovement.reference == reference)
    return db.scalars(query.order_by(StockMovement.id.desc()).limit(limit)).all()


def _stock_level(db: Session, item_id: int, location_id: int) -> StockLevel | None:
    return db.scalar(
        select(StockLevel).where(StockLevel.item_id == item_id, StockLevel.location_id == location_id)
    )


@transactional
def adjust_stock(db: Session, data: StockAdjustment, actor: User) -> StockLevel:
    """Stock-take correction. The reason is kept as the movement reference."""
    authz.require_permission(db, actor, MODULE, "manage")
    get_item(db, data.item_id)
    if not db.get(StockLocation, data.location_id):
        raise NotFound("Stock location not found", location_id=data.location_id)
    ledger.adjust_stock(
        db, data.item_id, data.location_id, data.delta,
        MovementType.adjust.value,
        reference=data.reason,
        user_id=actor.id,
    )
    db.flush()
    level = _stock_level(db, data.item_id, data.location_id)
    if level is None:
        raise NotFound("No stock recorded for this item at this location", item_id=data.item_id)
    db.refresh(level)
    return level


@transactional
def transfer_stock(db: Session, data: StockTransfer, actor: User) -> tuple[StockLevel, StockLevel]:
    """Move stock between two locations as one out/in pair of movements."""
    authz.require_permission(db, actor, MODULE, "issue")
    if data.from_location_id == data.to_location_id:
        raise Conflict("Source and destination locations must differ", location_id=data.from_location_id)
    get_item(db, data.item_id)
    for location_id in (data.from_location_id, data.to_location_id):
        if not db.get(StockLocation, location_id):
            raise NotFound("Stock location not found", location_id=location_id)

    source = _stock_level(db, data.item_id, data.from_location_id)
    if source is None:
        raise NotFound("No stock recorded for this item at the source location", item_id=data.item_id)
    # a new destination row starts at the source's cost
    unit_cost = None if _stock_level(db, data.item_id, data.to_location_id) else source.unit_cost

    reference = data.reason or "transfer"
    ledger.adjust_stock(
        db, data.item_id, data.from_location_id, -data.quantity,
        MovementType.transfer.value, reference=reference, user_id=actor.id,
    )
    ledger.adjust_stock(
        db, data.item_id, data.to_location_id, data.quantity,
        MovementType.transfer.value, reference=reference, user_id=actor.id, unit_cost=unit_cost,
    )
    db.flush()
    destination = _stock_level(db, data.item_id, data.to_location_id)
    db.refresh(source)
    db.refresh(destination)
    return source, destination
