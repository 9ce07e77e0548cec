from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.pagination import Page
from app.schemas.purchase_order import CancelRequest, PurchaseOrderCreate, PurchaseOrderResponse, ReceiveRequest
from app.services import authorization as authz
import app.services.purchase_order_service as svc

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])


@router.get("", response_model=Page[PurchaseOrderResponse])
def list_purchase_orders(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status: str = Query(""),
    vendor_id: int | None = Query(None),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    authz.require_permission(db, actor, svc.MODULE, "view")
    return svc.list_purchase_orders(db, page=page, size=size, status=status, vendor_id=vendor_id)


@router.post("", response_model=PurchaseOrderResponse, status_code=201)
def create_purchase_order(data: PurchaseOrderCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_purchase_order(db, data, actor)


@router.get("/{po_number}", response_model=PurchaseOrderResponse)
def get_purchase_order(po_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    authz.require_permission(db, actor, svc.MODULE, "view")
    return svc.get_purchase_order(db, po_number)


@router.post("/{po_number}/submit", response_model=PurchaseOrderResponse)
def submit(po_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.submit(db, po_number, actor)


@router.post("/{po_number}/approve", response_model=PurchaseOrderResponse)
def approve(po_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.approve(db, po_number, actor)


@router.post("/{po_number}/order", response_model=PurchaseOrderResponse)
def mark_ordered(po_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.mark_ordered(db, po_number, actor)


@router.post("/{po_number}/receive", response_model=PurchaseOrderResponse)
def receive(
    po_number: str,
    data: ReceiveRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.receive(db, po_number, data.quantities, actor)


@router.post("/{po_number}/close", response_model=PurchaseOrderResponse)
def close(po_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.close(db, po_number, actor)


@router.post("/{po_number}/cancel", response_model=PurchaseOrderResponse)
def cancel(
    po_number: str,
    data: CancelRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.cancel(db, po_number, actor, reason=data.reason)
