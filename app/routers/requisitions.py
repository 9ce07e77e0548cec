from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.pagination import Page
from app.schemas.requisition import (
    ApprovalRequest,
    IssueRequest,
    RejectRequest,
    RequisitionCreate,
    RequisitionResponse,
    RequisitionUpdate,
)
from app.services import authorization as authz
import app.services.requisition_service as svc

router = APIRouter(prefix="/api/requisitions", tags=["requisitions"])


@router.get("", response_model=Page[RequisitionResponse])
def list_requisitions(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status: str = Query(""),
    department_id: int | None = Query(None),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.list_requisitions(db, actor, page=page, size=size, status=status, department_id=department_id)


@router.post("", response_model=RequisitionResponse, status_code=201)
def create_requisition(data: RequisitionCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_requisition(db, data, actor)


@router.get("/{requisition_no}", response_model=RequisitionResponse)
def get_requisition(requisition_no: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    requisition = svc.get_requisition(db, requisition_no)
    authz.require_permission(db, actor, svc.MODULE, "view", {
        "owner_id": requisition.requested_by,
        "department_id": requisition.department_id,
    })
    return requisition


@router.put("/{requisition_no}", response_model=RequisitionResponse)
def update_requisition(
    requisition_no: str,
    data: RequisitionUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.update_requisition(db, requisition_no, data, actor)


@router.delete("/{requisition_no}", status_code=204)
def delete_requisition(requisition_no: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    svc.delete_requisition(db, requisition_no, actor)
    return Response(status_code=204)


@router.post("/{requisition_no}/submit", response_model=RequisitionResponse)
def submit(requisition_no: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.submit(db, requisition_no, actor)


@router.post("/{requisition_no}/approve-l1", response_model=RequisitionResponse)
def approve_l1(
    requisition_no: str,
    data: ApprovalRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.approve_l1(db, requisition_no, actor, quantities=data.quantities)


@router.post("/{requisition_no}/approve-l2", response_model=RequisitionResponse)
def approve_l2(requisition_no: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.approve_l2(db, requisition_no, actor)


@router.post("/{requisition_no}/reject", response_model=RequisitionResponse)
def reject(
    requisition_no: str,
    data: RejectRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.reject(db, requisition_no, actor, data.reason)


@router.post("/{requisition_no}/issue", response_model=RequisitionResponse)
def issue(
    requisition_no: str,
    data: IssueRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.issue(
        db, requisition_no, data.quantities, actor,
        location_id=data.location_id,
        finalize=data.finalize,
    )
