from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.asset import AssetCreate, AssetUpdate, AssetResponse, AssetStatusChange
from app.schemas.assignment import BorrowItemResponse
from app.schemas.pagination import Page
import app.services.asset_service as svc

router = APIRouter(prefix="/api/assets", tags=["assets"])


@router.get("", response_model=Page[AssetResponse])
def list_assets(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    search: str = Query(""),
    asset_type: str = Query(""),
    status: str = Query(""),
    db: Session = Depends(get_db),
):
    return svc.get_assets(db, page=page, size=size, search=search, asset_type=asset_type, status=status)


@router.post("", response_model=AssetResponse, status_code=201)
def create_asset(data: AssetCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_asset(db, data, actor)


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: int, db: Session = Depends(get_db)):
    return svc.get_asset(db, asset_id)


@router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: int,
    data: AssetUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.update_asset(db, asset_id, data, actor)


@router.post("/{asset_id}/status", response_model=AssetResponse)
def change_status(
    asset_id: int,
    data: AssetStatusChange,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.set_status(db, asset_id, data.status.value, actor)


@router.get("/{asset_id}/borrow-history", response_model=list[BorrowItemResponse])
def borrow_history(asset_id: int, db: Session = Depends(get_db)):
    return svc.get_borrow_history(db, asset_id)
