from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user, require_cron_secret
from app.schemas.pagination import Page
from app.schemas.ticket import (
    AssignRequest,
    CommentRequest,
    ResolveRequest,
    SlaSweepResponse,
    TicketActivityResponse,
    TicketCommentCreate,
    TicketCreate,
    TicketResponse,
)
import app.services.ticket_service as svc

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


@router.get("", response_model=Page[TicketResponse])
def list_tickets(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status: str = Query(""),
    type: str = Query(""),
    priority: str = Query(""),
    assigned_to: int | None = Query(None),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.list_tickets(
        db, actor, page=page, size=size,
        status=status, ticket_type=type, priority=priority, assigned_to=assigned_to,
    )


@router.post("", response_model=TicketResponse, status_code=201)
def create_ticket(data: TicketCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.to_response(svc.create_ticket(db, data, actor))


@router.post("/sla-sweep", response_model=SlaSweepResponse, dependencies=[Depends(require_cron_secret)])
def sla_sweep(db: Session = Depends(get_db)):
    """Called by the external scheduler."""
    return svc.sweep_sla(db)


@router.get("/{ticket_number}", response_model=TicketResponse)
def get_ticket(ticket_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    ticket = svc.get_ticket(db, ticket_number)
    svc.require_view(db, actor, ticket)
    return svc.to_response(ticket)


@router.get("/{ticket_number}/activities", response_model=list[TicketActivityResponse])
def get_activities(ticket_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    ticket = svc.get_ticket(db, ticket_number)
    svc.require_view(db, actor, ticket)
    return ticket.activities


@router.post("/{ticket_number}/assign", response_model=TicketResponse)
def assign(
    ticket_number: str,
    data: AssignRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.to_response(svc.assign(db, ticket_number, data.assignee_id, actor))


@router.post("/{ticket_number}/start", response_model=TicketResponse)
def start_work(ticket_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.to_response(svc.start_work(db, ticket_number, actor))


@router.post("/{ticket_number}/resolve", response_model=TicketResponse)
def resolve(
    ticket_number: str,
    data: ResolveRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.to_response(svc.resolve(db, ticket_number, data.resolution, actor))


@router.post("/{ticket_number}/close", response_model=TicketResponse)
def close(ticket_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.to_response(svc.close(db, ticket_number, actor))


@router.post("/{ticket_number}/reopen", response_model=TicketResponse)
def reopen(
    ticket_number: str,
    data: CommentRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.to_response(svc.reopen(db, ticket_number, actor, reason=data.reason))


@router.post("/{ticket_number}/cancel", response_model=TicketResponse)
def cancel(
    ticket_number: str,
    data: CommentRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.to_response(svc.cancel(db, ticket_number, actor, reason=data.reason))


@router.get("/{ticket_number}/comments", response_model=list[TicketActivityResponse])
def get_comments(ticket_number: str, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    ticket = svc.get_ticket(db, ticket_number)
    svc.require_view(db, actor, ticket)
    return svc.get_comments(ticket)


@router.post("/{ticket_number}/comments", response_model=TicketActivityResponse, status_code=201)
def add_comment(
    ticket_number: str,
    data: TicketCommentCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.add_comment(db, ticket_number, data.content, actor)
