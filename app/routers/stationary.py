from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.pagination import Page
from app.schemas.stationary import (
    StationaryItemCreate,
    StationaryItemUpdate,
    StationaryItemResponse,
    StockAdjustment,
    StockLevelResponse,
    StockTransfer,
    StockTransferResponse,
    StockLocationCreate,
    StockLocationResponse,
    StockMovementResponse,
    VendorCreate,
    VendorResponse,
)
import app.services.stationary_service as svc

router = APIRouter(prefix="/api/stationary", tags=["stationary"])


@router.get("/items", response_model=Page[StationaryItemResponse])
def list_items(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    search: str = Query(""),
    db: Session = Depends(get_db),
):
    return svc.get_items(db, page=page, size=size, search=search)


@router.post("/items", response_model=StationaryItemResponse, status_code=201)
def create_item(data: StationaryItemCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_item(db, data, actor)


@router.get("/items/{item_id}", response_model=StationaryItemResponse)
def get_item(item_id: int, db: Session = Depends(get_db)):
    return svc.get_item(db, item_id)


@router.put("/items/{item_id}", response_model=StationaryItemResponse)
def update_item(
    item_id: int,
    data: StationaryItemUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.update_item(db, item_id, data, actor)


@router.get("/locations", response_model=list[StockLocationResponse])
def list_locations(db: Session = Depends(get_db)):
    return svc.get_locations(db)


@router.post("/locations", response_model=StockLocationResponse, status_code=201)
def create_location(data: StockLocationCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_location(db, data, actor)


@router.get("/vendors", response_model=list[VendorResponse])
def list_vendors(db: Session = Depends(get_db)):
    return svc.get_vendors(db)


@router.post("/vendors", response_model=VendorResponse, status_code=201)
def create_vendor(data: VendorCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_vendor(db, data, actor)


@router.get("/stock", response_model=list[StockLevelResponse])
def list_stock(
    item_id: int | None = Query(None),
    location_id: int | None = Query(None),
    below_reorder: bool = Query(False),
    db: Session = Depends(get_db),
):
    return svc.get_stock(db, item_id=item_id, location_id=location_id, below_reorder=below_reorder)


@router.post("/stock/adjust", response_model=StockLevelResponse)
def adjust_stock(data: StockAdjustment, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.adjust_stock(db, data, actor)


@router.post("/stock/transfer", response_model=StockTransferResponse)
def transfer_stock(data: StockTransfer, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    source, destination = svc.transfer_stock(db, data, actor)
    return {"source": source, "destination": destination}


@router.get("/movements", response_model=list[StockMovementResponse])
def list_movements(
    item_id: int | None = Query(None),
    reference: str = Query(""),
    db: Session = Depends(get_db),
):
    return svc.get_movements(db, item_id=item_id, reference=reference)
