"""Support ticket lifecycle bound to the SLA clock.

The deadline is stamped once at creation. SLA status is derived on every
read; ``last_sla_status`` only remembers what the sweep last alerted on.
"""
import logging
import math
from datetime import datetime

from sqlalchemy import select, func, update, or_
from sqlalchemy.orm import Session

from app import clock
from app.database import transactional
from app.errors import InvalidStatus, MissingRequiredField, NotFound, PermissionDenied
from app.models.asset import Asset
from app.models.ticket import Ticket, TicketActivity, TicketStatus
from app.models.user import User
from app.schemas.pagination import Page
from app.schemas.ticket import TicketCreate, TicketResponse
from app.services import authorization as authz
from app.services import notification_service as notifications
from app.services import sla
from app.services.numbering import next_number

logger = logging.getLogger(__name__)

MODULE = "tickets"

T = TicketStatus

TRANSITIONS: dict[str, set[str]] = {
    T.open.value: {T.assigned.value, T.cancelled.value},
    T.assigned.value: {T.assigned.value, T.in_progress.value, T.cancelled.value},
    T.in_progress.value: {T.assigned.value, T.resolved.value, T.cancelled.value},
    T.resolved.value: {T.closed.value, T.in_progress.value},
    T.closed.value: set(),
    T.cancelled.value: set(),
}

OPEN_STATUSES = [T.open.value, T.assigned.value, T.in_progress.value]


# ─── SLA ──────────────────────────────────────────────────────────────────────

def sla_status_for(ticket: Ticket, now: datetime | None = None) -> str | None:
    if ticket.status == T.cancelled.value:
        return None
    if ticket.status in (T.resolved.value, T.closed.value):
        at = ticket.resolved_at or ticket.closed_at
    else:
        at = now or clock.now()
    return sla.check_sla_status(ticket.sla_deadline, at, ticket.reported_at)


def to_response(ticket: Ticket, now: datetime | None = None) -> TicketResponse:
    now = now or clock.now()
    response = TicketResponse.model_validate(ticket)
    response.sla_status = sla_status_for(ticket, now)
    response.sla_label = sla.status_label(response.sla_status)
    if ticket.status in OPEN_STATUSES:
        response.time_remaining = sla.format_time_remaining(ticket.sla_deadline, now)
    return response


@transactional
def sweep_sla(db: Session, now: datetime | None = None) -> dict:
    """Re-evaluate open tickets and alert once per SLA status change.

    Safe to run from several schedulers at once: the cache is swapped with a
    compare-and-set, and only the run that wins the swap emits the alert.
    """
    now = now or clock.now()
    tickets = db.scalars(
        select(Ticket).where(Ticket.status.in_(OPEN_STATUSES), Ticket.sla_deadline.is_not(None))
    ).all()

    result = {"checked": len(tickets), "at_risk": [], "breached": []}
    for ticket in tickets:
        status = sla_status_for(ticket, now)
        previous = ticket.last_sla_status
        if status == previous:
            continue
        swapped = db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id, Ticket.last_sla_status.is_not_distinct_from(previous))
            .values(last_sla_status=status)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not swapped or status not in (sla.AT_RISK, sla.BREACHED):
            continue
        result[status].append(ticket.ticket_number)
        notifications.enqueue(db, f"ticket.sla_{status}", {
            "ticket_number": ticket.ticket_number,
            "priority": ticket.priority,
            "assigned_to": ticket.assigned_to,
            "sla_deadline": sla_deadline_iso(ticket),
        })

    logger.info(
        "SLA sweep checked %d tickets, %d newly at risk, %d newly breached",
        result["checked"], len(result["at_risk"]), len(result["breached"]),
    )
    return result


def sla_deadline_iso(ticket: Ticket) -> str | None:
    deadline = clock.as_utc(ticket.sla_deadline)
    return deadline.isoformat() if deadline else None


# ─── Reads ────────────────────────────────────────────────────────────────────

def get_ticket(db: Session, ticket_number: str) -> Ticket:
    ticket = db.scalar(select(Ticket).where(Ticket.ticket_number == ticket_number))
    if not ticket:
        raise NotFound("Ticket not found", ticket_number=ticket_number)
    return ticket


def require_view(db: Session, actor: User, ticket: Ticket) -> None:
    scope = authz.scope_for(db, actor, MODULE, "view")
    if scope == authz.GLOBAL:
        return
    if scope is not None and actor.id in (ticket.reported_by, ticket.assigned_to):
        return
    raise PermissionDenied("Not allowed to view this ticket", module=MODULE, action="view")


def list_tickets(
    db: Session,
    actor: User,
    page: int = 1,
    size: int = 50,
    status: str = "",
    ticket_type: str = "",
    priority: str = "",
    assigned_to: int | None = None,
) -> Page:
    scope = authz.scope_for(db, actor, MODULE, "view")
    if scope is None:
        raise PermissionDenied("Not allowed to view tickets", module=MODULE, action="view")

    query = select(Ticket)
    if scope != authz.GLOBAL:
        query = query.where(or_(Ticket.reported_by == actor.id, Ticket.assigned_to == actor.id))
    if status:
        query = query.where(Ticket.status == status)
    if ticket_type:
        query = query.where(Ticket.type == ticket_type)
    if priority:
        query = query.where(Ticket.priority == priority)
    if assigned_to is not None:
        query = query.where(Ticket.assigned_to == assigned_to)

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    tickets = db.scalars(
        query.order_by(Ticket.reported_at.desc(), Ticket.id.desc()).offset((page - 1) * size).limit(size)
    ).all()
    now = clock.now()
    return Page(
        items=[to_response(ticket, now) for ticket in tickets],
        total=total,
        page=page,
        pages=math.ceil(total / size) if total else 1,
        size=size,
    )


# ─── Transitions ──────────────────────────────────────────────────────────────

def _move(
    db: Session,
    ticket: Ticket,
    to_status: str,
    actor: User,
    action: str,
    details: str | None = None,
) -> None:
    from_status = ticket.status
    if to_status not in TRANSITIONS.get(from_status, set()):
        raise InvalidStatus(
            f"Cannot {action} a ticket that is {from_status}",
            status=from_status,
            allowed=sorted(TRANSITIONS.get(from_status, set())),
        )
    ticket.status = to_status
    db.add(TicketActivity(
        ticket_id=ticket.id,
        actor_id=actor.id,
        action=action,
        from_status=from_status,
        to_status=to_status,
        details=details,
    ))


def _event(db: Session, event_type: str, ticket: Ticket, **extra) -> None:
    notifications.enqueue(db, event_type, {
        "ticket_number": ticket.ticket_number,
        "status": ticket.status,
        "priority": ticket.priority,
        **extra,
    })


@transactional
def create_ticket(
    db: Session,
    data: TicketCreate,
    actor: User,
    now: datetime | None = None,
) -> Ticket:
    authz.require_permission(db, actor, MODULE, "create")
    if data.asset_id is not None and not db.get(Asset, data.asset_id):
        raise NotFound("Asset not found", asset_id=data.asset_id)

    now = now or clock.now()
    ticket_type = data.type.value
    ticket = Ticket(
        ticket_number=next_number(db, Ticket.ticket_number, f"{ticket_type}-{now.year}-", 3),
        type=ticket_type,
        title=data.title,
        description=data.description,
        status=T.open.value,
        priority=data.priority.value,
        reported_by=actor.id,
        reported_at=now,
        asset_id=data.asset_id,
        sla_deadline=sla.calculate_sla_deadline(data.priority.value, now),
    )
    db.add(ticket)
    db.flush()
    db.add(TicketActivity(
        ticket_id=ticket.id,
        actor_id=actor.id,
        action="created",
        to_status=ticket.status,
        created_at=now,
    ))
    _event(db, "ticket.created", ticket, reported_by=actor.id)
    return ticket


@transactional
def assign(
    db: Session,
    ticket_number: str,
    assignee_id: int | None,
    actor: User,
    now: datetime | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "assign")
    if assignee_id is None:
        raise MissingRequiredField("An assignee is required", field="assignee_id")
    assignee = db.get(User, assignee_id)
    if not assignee or not assignee.is_active:
        raise NotFound("Assignee not found", assignee_id=assignee_id)

    previous = ticket.assigned_to
    # in_progress -> assigned on handover; the new assignee starts work again
    _move(db, ticket, T.assigned.value, actor, "assigned",
          details=f"assigned to {assignee.username}" + (f" (was user {previous})" if previous else ""))
    ticket.assigned_to = assignee.id
    ticket.assigned_at = now or clock.now()
    _event(db, "ticket.assigned", ticket, assignee_id=assignee.id, previous_assignee_id=previous)
    return ticket


@transactional
def start_work(
    db: Session,
    ticket_number: str,
    actor: User,
    now: datetime | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "update", {"owner_id": ticket.assigned_to})
    _move(db, ticket, T.in_progress.value, actor, "started")
    if ticket.started_at is None:
        ticket.started_at = now or clock.now()
    return ticket


@transactional
def resolve(
    db: Session,
    ticket_number: str,
    resolution: str,
    actor: User,
    now: datetime | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "update", {"owner_id": ticket.assigned_to})
    if not resolution or not resolution.strip():
        raise MissingRequiredField("Resolution text is required", field="resolution")
    _move(db, ticket, T.resolved.value, actor, "resolved", details=resolution.strip())
    ticket.resolution = resolution.strip()
    ticket.resolved_at = now or clock.now()
    _event(db, "ticket.resolved", ticket, reported_by=ticket.reported_by, resolved_by=actor.id)
    return ticket


@transactional
def close(
    db: Session,
    ticket_number: str,
    actor: User,
    now: datetime | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "close")
    _move(db, ticket, T.closed.value, actor, "closed")
    ticket.closed_at = now or clock.now()
    _event(db, "ticket.closed", ticket, reported_by=ticket.reported_by)
    return ticket


@transactional
def reopen(
    db: Session,
    ticket_number: str,
    actor: User,
    reason: str | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "update", {"owner_id": ticket.assigned_to})
    _move(db, ticket, T.in_progress.value, actor, "reopened", details=reason)
    # SLA runs live again until the next resolution
    ticket.resolved_at = None
    return ticket


@transactional
def cancel(
    db: Session,
    ticket_number: str,
    actor: User,
    reason: str | None = None,
    now: datetime | None = None,
) -> Ticket:
    ticket = get_ticket(db, ticket_number)
    authz.require_permission(db, actor, MODULE, "cancel", {"owner_id": ticket.reported_by})
    _move(db, ticket, T.cancelled.value, actor, "cancelled", details=reason)
    ticket.cancelled_at = now or clock.now()
    _event(db, "ticket.cancelled", ticket, reported_by=ticket.reported_by)
    return ticket


# ─── Comments ─────────────────────────────────────────────────────────────────

@transactional
def add_comment(db: Session, ticket_number: str, content: str, actor: User) -> TicketActivity:
    """Anyone who can see the ticket may comment; the status is left alone."""
    ticket = get_ticket(db, ticket_number)
    require_view(db, actor, ticket)
    if not content or not content.strip():
        raise MissingRequiredField("Comment content is required", field="content")

    comment = TicketActivity(
        ticket_id=ticket.id,
        actor_id=actor.id,
        action="commented",
        details=content.strip(),
    )
    db.add(comment)
    db.flush()
    _event(db, "ticket.commented", ticket, comment_by=actor.id)
    return comment


def get_comments(ticket: Ticket) -> list[TicketActivity]:
    return [activity for activity in ticket.activities if activity.action == "commented"]
