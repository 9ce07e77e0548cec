from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import PermissionDenied
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentDetail,
    AssignmentResponse,
    BorrowRequest,
    BorrowTransactionResponse,
    CloseRequest,
    ReturnRequest,
    ReturnTransactionResponse,
    SignatureLinkResponse,
    SignRequest,
)
from app.schemas.pagination import Page
from app.services import authorization as authz
import app.services.assignment_service as svc

router = APIRouter(prefix="/api/assignments", tags=["assignments"])
borrow_router = APIRouter(prefix="/api/borrow-transactions", tags=["assignments"])
sign_router = APIRouter(prefix="/api/sign", tags=["signatures"])


@router.get("", response_model=Page[AssignmentResponse])
def list_assignments(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    user_id: int | None = Query(None),
    status: str = Query(""),
    academic_year: str = Query(""),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    scope = authz.scope_for(db, actor, svc.MODULE, "view")
    if scope is None:
        raise PermissionDenied("Not allowed to view assignments", module=svc.MODULE, action="view")
    if scope != authz.GLOBAL:
        user_id = actor.id
    return svc.list_assignments(db, page=page, size=size, user_id=user_id, status=status, academic_year=academic_year)


@router.post("", response_model=AssignmentResponse, status_code=201)
def create_assignment(data: AssignmentCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_assignment(db, data.user_id, data.academic_year, data.term, actor)


@router.get("/{assignment_id}", response_model=AssignmentDetail)
def get_assignment(assignment_id: int, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    assignment = svc.get_assignment(db, assignment_id)
    authz.require_permission(db, actor, svc.MODULE, "view", {"owner_id": assignment.user_id})
    return svc.get_assignment_detail(db, assignment_id)


@router.post("/{assignment_id}/borrow", response_model=BorrowTransactionResponse, status_code=201)
def borrow(
    assignment_id: int,
    data: BorrowRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.add_borrow_transaction(db, assignment_id, data.asset_ids, actor, notes=data.notes)


@router.post("/{assignment_id}/return", response_model=ReturnTransactionResponse, status_code=201)
def process_return(
    assignment_id: int,
    data: ReturnRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.process_return(
        db, assignment_id, data.items, actor,
        checker_signature=data.checker_signature,
        notes=data.notes,
    )


@router.post("/{assignment_id}/close", response_model=AssignmentResponse)
def close_assignment(
    assignment_id: int,
    data: CloseRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.close_assignment(
        db, assignment_id, actor,
        notes=data.notes,
        closure_signature=data.closure_signature,
    )


@router.post("/{assignment_id}/reopen", response_model=AssignmentResponse)
def reopen_assignment(assignment_id: int, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.reopen_assignment(db, assignment_id, actor)


# ─── Borrow transactions ──────────────────────────────────────────────────────

@borrow_router.get("/{transaction_id}", response_model=BorrowTransactionResponse)
def get_borrow_transaction(transaction_id: int, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    transaction = svc.get_borrow_transaction(db, transaction_id)
    authz.require_permission(db, actor, svc.MODULE, "view", {"owner_id": transaction.assignment.user_id})
    return transaction


@borrow_router.post("/{transaction_id}/signature-link", response_model=SignatureLinkResponse, status_code=201)
def signature_link(transaction_id: int, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    transaction = svc.generate_signature_token(db, transaction_id, actor)
    return SignatureLinkResponse(
        transaction_number=transaction.transaction_number,
        token=transaction.signature_token,
        url=svc.signature_url(transaction),
        expires_at=transaction.signature_token_expires_at,
    )


@borrow_router.post("/{transaction_id}/cancel", response_model=BorrowTransactionResponse)
def cancel_borrow_transaction(transaction_id: int, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.cancel_borrow_transaction(db, transaction_id, actor)


# ─── Public signing link (the token is the credential) ───────────────────────

@sign_router.get("/{token}", response_model=BorrowTransactionResponse)
def view_signing_request(token: str, db: Session = Depends(get_db)):
    return svc.get_transaction_by_token(db, token)


@sign_router.post("/{token}", response_model=BorrowTransactionResponse)
def sign(token: str, data: SignRequest, db: Session = Depends(get_db)):
    return svc.sign_borrow_transaction(db, token, data.signature)
