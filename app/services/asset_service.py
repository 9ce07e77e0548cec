import logging
import math

from sqlalchemy.orm import Session
from sqlalchemy import select, func
from app.errors import Conflict, InvalidStatus, NotFound
from app.models.asset import Asset, AssetStatus
from app.models.assignment import BorrowItem, BorrowTransaction
from app.models.user import User
from app.schemas.asset import AssetCreate, AssetUpdate
from app.schemas.pagination import Page
from app.services import authorization as authz

logger = logging.getLogger(__name__)

MODULE = "assets"

# Reserved and Borrowed belong to the assignment engine
_ENGINE_STATUSES = {AssetStatus.reserved.value, AssetStatus.borrowed.value}


def get_assets(
    db: Session,
    page: int = 1,
    size: int = 50,
    search: str = "",
    asset_type: str = "",
    status: str = "",
) -> Page:
    query = select(Asset).where(Asset.is_active == True)
    if search:
        query = query.where(
            Asset.name.ilike(f"%{search}%")
            | Asset.code.ilike(f"%{search}%")
            | Asset.serial_number.ilike(f"%{search}%")
        )
    if asset_type:
        query = query.where(Asset.asset_type == asset_type)
    if status:
        query = query.where(Asset.status == status)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(query.order_by(Asset.code).offset((page - 1) * size).limit(size)).all()
    return Page(
        items=items,
        total=total,
        page=page,
        pages=math.ceil(total / size) if total else 1,
        size=size,
    )


def get_asset(db: Session, asset_id: int) -> Asset:
    asset = db.get(Asset, asset_id)
    if not asset:
        raise NotFound("Asset not found", asset_id=asset_id)
    return asset


def get_asset_by_code(db: Session, code: str) -> Asset | None:
    return db.scalar(select(Asset).where(Asset.code == code))


def create_asset(db: Session, data: AssetCreate, actor: User) -> Asset:
    authz.require_permission(db, actor, MODULE, "create")
    if get_asset_by_code(db, data.code):
        raise Conflict("Asset code already exists", code=data.code)
    asset = Asset(**data.model_dump(), status=AssetStatus.available.value)
    asset.asset_type = data.asset_type.value
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


def update_asset(db: Session, asset_id: int, data: AssetUpdate, actor: User) -> Asset:
    authz.require_permission(db, actor, MODULE, "update")
    asset = get_asset(db, asset_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(asset, field, value)
    db.commit()
    db.refresh(asset)
    return asset


def set_status(db: Session, asset_id: int, status: str, actor: User) -> Asset:
    """Manual moves between Available, Maintenance, Lost and Retired."""
    authz.require_permission(db, actor, MODULE, "update")
    asset = get_asset(db, asset_id)
    if status in _ENGINE_STATUSES or asset.status in _ENGINE_STATUSES:
        raise InvalidStatus(
            "Borrowed and reserved assets change status through borrow and return only",
            status=asset.status,
            requested=status,
        )
    logger.info("Asset %s status %s -> %s by user %s", asset.code, asset.status, status, actor.id)
    asset.status = status
    if status == AssetStatus.retired.value:
        asset.is_active = False
    db.commit()
    db.refresh(asset)
    return asset


def get_borrow_history(db: Session, asset_id: int) -> list[BorrowItem]:
    get_asset(db, asset_id)
    return db.scalars(
        select(BorrowItem)
        .join(BorrowTransaction, BorrowItem.borrow_transaction_id == BorrowTransaction.id)
        .where(BorrowItem.asset_id == asset_id)
        .order_by(BorrowTransaction.borrow_date)
    ).all()
