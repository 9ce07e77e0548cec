"""Stationary requisitions with two-level approval.

    draft --submit--> pending --approve_l1--> approved_l1 --approve_l2--> approved
    approved --issue--> issued --issue (all lines full, or finalize)--> completed
    pending | approved_l1 --reject(reason)--> rejected

Only the owner may edit, delete or submit a draft. Level one must come from
someone in the requisition's department other than the requester; level two
is a cross-department authority and has no such restriction.
"""
import logging
import math
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app import clock
from app.database import transactional
from app.errors import (
    InvalidStatus,
    MissingRequiredField,
    NotAuthorizedApprover,
    NotFound,
    NotOwner,
    PermissionDenied,
    QuantityViolation,
)
from app.models.requisition import StationaryRequisition, RequisitionItem, RequisitionStatus
from app.models.stationary import StationaryItem, StockLocation, MovementType
from app.models.user import User, Department
from app.schemas.pagination import Page
from app.schemas.requisition import RequisitionCreate, RequisitionUpdate, RequisitionLineIn
from app.services import authorization as authz
from app.services import notification_service as notifications
from app.services import quantity_ledger as ledger
from app.services.numbering import next_number

logger = logging.getLogger(__name__)

MODULE = "stationary"

REJECTABLE = {RequisitionStatus.pending.value, RequisitionStatus.approved_l1.value}
ISSUABLE = {RequisitionStatus.approved.value, RequisitionStatus.issued.value}


def get_requisition(db: Session, requisition_no: str) -> StationaryRequisition:
    requisition = db.scalar(
        select(StationaryRequisition).where(StationaryRequisition.requisition_no == requisition_no)
    )
    if not requisition:
        raise NotFound("Requisition not found", requisition_no=requisition_no)
    return requisition


def list_requisitions(
    db: Session,
    actor: User,
    page: int = 1,
    size: int = 50,
    status: str = "",
    department_id: int | None = None,
) -> Page:
    scope = authz.scope_for(db, actor, MODULE, "view")
    if scope is None:
        raise PermissionDenied("Not allowed to view requisitions", module=MODULE, action="view")

    query = select(StationaryRequisition)
    if scope == authz.OWN:
        query = query.where(StationaryRequisition.requested_by == actor.id)
    elif scope == authz.DEPARTMENT:
        query = query.where(StationaryRequisition.department_id == actor.department_id)
    if status:
        query = query.where(StationaryRequisition.status == status)
    if department_id is not None:
        query = query.where(StationaryRequisition.department_id == department_id)

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(
        query.order_by(StationaryRequisition.id.desc()).offset((page - 1) * size).limit(size)
    ).all()
    return Page(
        items=items,
        total=total,
        page=page,
        pages=math.ceil(total / size) if total else 1,
        size=size,
    )


def _require_status(requisition: StationaryRequisition, allowed: set[str], action: str) -> None:
    if requisition.status not in allowed:
        raise InvalidStatus(
            f"Cannot {action} a requisition in status {requisition.status}",
            status=requisition.status,
            allowed=sorted(allowed),
        )


def _require_owner(requisition: StationaryRequisition, actor: User) -> None:
    if requisition.requested_by != actor.id:
        raise NotOwner("Only the requester can do this", requested_by=requisition.requested_by)


def _build_lines(db: Session, lines: list[RequisitionLineIn]) -> list[RequisitionItem]:
    built = []
    seen: set[int] = set()
    for line in lines:
        ledger.check_positive(line.quantity_requested, "quantity_requested")
        if line.item_id in seen:
            raise QuantityViolation("Item listed more than once", item_id=line.item_id)
        seen.add(line.item_id)
        item = db.get(StationaryItem, line.item_id)
        if not item or not item.is_active:
            raise NotFound("Stationary item not found", item_id=line.item_id)
        cost = line.estimated_unit_cost if line.estimated_unit_cost is not None else item.unit_cost
        built.append(RequisitionItem(
            item_id=line.item_id,
            quantity_requested=line.quantity_requested,
            estimated_unit_cost=ledger.money(cost),
        ))
    return built


def _set_lines(requisition: StationaryRequisition, lines: list[RequisitionItem]) -> None:
    requisition.items = lines
    requisition.total_estimated_cost = ledger.money(sum(
        (ledger.line_total(line.estimated_unit_cost, line.quantity_requested) for line in lines),
        ledger.money(0),
    ))


def _lines_by_item(requisition: StationaryRequisition, quantities: dict[int, int]) -> dict[int, RequisitionItem]:
    lines = {line.item_id: line for line in requisition.items}
    unknown = sorted(set(quantities) - set(lines))
    if unknown:
        raise QuantityViolation("Items are not on this requisition", item_ids=unknown)
    return lines


# ─── Draft editing ────────────────────────────────────────────────────────────

@transactional
def create_requisition(
    db: Session,
    data: RequisitionCreate,
    actor: User,
    now: datetime | None = None,
) -> StationaryRequisition:
    authz.require_permission(db, actor, MODULE, "create")
    department_id = data.department_id or actor.department_id
    if department_id is None:
        raise MissingRequiredField("Department is required", field="department_id")
    if not db.get(Department, department_id):
        raise NotFound("Department not found", department_id=department_id)

    now = now or clock.now()
    requisition = StationaryRequisition(
        requisition_no=next_number(db, StationaryRequisition.requisition_no, f"REQ-{now.year}-", 4),
        requested_by=actor.id,
        requested_for=data.requested_for.value,
        department_id=department_id,
        purpose=data.purpose,
        urgency=data.urgency.value,
        status=RequisitionStatus.draft.value,
        created_at=now,
    )
    _set_lines(requisition, _build_lines(db, data.items))
    db.add(requisition)
    db.flush()
    return requisition


@transactional
def update_requisition(
    db: Session,
    requisition_no: str,
    data: RequisitionUpdate,
    actor: User,
) -> StationaryRequisition:
    requisition = get_requisition(db, requisition_no)
    _require_owner(requisition, actor)
    _require_status(requisition, {RequisitionStatus.draft.value}, "edit")

    update_data = data.model_dump(exclude_unset=True, exclude={"items"})
    for field, value in update_data.items():
        if value is not None:
            setattr(requisition, field, getattr(value, "value", value))
    if data.items is not None:
        _set_lines(requisition, _build_lines(db, data.items))
    return requisition


@transactional
def delete_requisition(db: Session, requisition_no: str, actor: User) -> None:
    requisition = get_requisition(db, requisition_no)
    _require_owner(requisition, actor)
    _require_status(requisition, {RequisitionStatus.draft.value}, "delete")
    db.delete(requisition)


# ─── Approval ─────────────────────────────────────────────────────────────────

@transactional
def submit(
    db: Session,
    requisition_no: str,
    actor: User,
    now: datetime | None = None,
) -> StationaryRequisition:
    requisition = get_requisition(db, requisition_no)
    _require_owner(requisition, actor)
    _require_status(requisition, {RequisitionStatus.draft.value}, "submit")
    if not requisition.items:
        raise MissingRequiredField("Requisition has no items", field="items")

    requisition.status = RequisitionStatus.pending.value
    requisition.submitted_at = now or clock.now()
    notifications.enqueue(db, "requisition.submitted", {
        "requisition_no": requisition.requisition_no,
        "department_id": requisition.department_id,
        "requested_by": requisition.requested_by,
    })
    return requisition


@transactional
def approve_l1(
    db: Session,
    requisition_no: str,
    approver: User,
    quantities: dict[int, int] | None = None,
    now: datetime | None = None,
) -> StationaryRequisition:
    requisition = get_requisition(db, requisition_no)
    _require_status(requisition, {RequisitionStatus.pending.value}, "approve")
    if approver.id == requisition.requested_by:
        raise NotAuthorizedApprover("Requesters cannot approve their own requisition")
    authz.require_permission(db, approver, MODULE, "approve")
    if approver.department_id != requisition.department_id:
        raise NotAuthorizedApprover(
            "First-level approval must come from the requisition's department",
            department_id=requisition.department_id,
        )

    quantities = quantities or {}
    lines = _lines_by_item(requisition, quantities)
    for item_id, line in lines.items():
        approved = quantities.get(item_id, line.quantity_requested)
        ledger.check_approved_quantity(line.quantity_requested, approved, line.quantity_approved)
        line.quantity_approved = approved

    requisition.status = RequisitionStatus.approved_l1.value
    requisition.approved_l1_by = approver.id
    requisition.approved_l1_at = now or clock.now()
    notifications.enqueue(db, "requisition.approved", {
        "requisition_no": requisition.requisition_no,
        "level": 1,
        "approved_by": approver.id,
    })
    return requisition


@transactional
def approve_l2(
    db: Session,
    requisition_no: str,
    approver: User,
    now: datetime | None = None,
) -> StationaryRequisition:
    requisition = get_requisition(db, requisition_no)
    _require_status(requisition, {RequisitionStatus.approved_l1.value}, "approve")
    authz.require_permission(db, approver, MODULE, "approve_l2")

    requisition.status = RequisitionStatus.approved.value
    requisition.approved_l2_by = approver.id
    requisition.approved_l2_at = now or clock.now()
    notifications.enqueue(db, "requisition.approved", {
        "requisition_no": requisition.requisition_no,
        "level": 2,
        "approved_by": approver.id,
    })
    return requisition


@transactional
def reject(
    db: Session,
    requisition_no: str,
    approver: User,
    reason: str,
    now: datetime | None = None,
) -> StationaryRequisition:
    requisition = get_requisition(db, requisition_no)
    _require_status(requisition, REJECTABLE, "reject")
    if not reason or not reason.strip():
        raise MissingRequiredField("A rejection reason is required", field="reason")
    if requisition.status == RequisitionStatus.pending.value:
        authz.require_permission(db, approver, MODULE, "approve", {"department_id": requisition.department_id})
    else:
        authz.require_permission(db, approver, MODULE, "approve_l2")

    requisition.status = RequisitionStatus.rejected.value
    requisition.rejected_by = approver.id
    requisition.rejected_at = now or clock.now()
    requisition.rejection_reason = reason.strip()
    notifications.enqueue(db, "requisition.rejected", {
        "requisition_no": requisition.requisition_no,
        "requested_by": requisition.requested_by,
        "reason": requisition.rejection_reason,
    })
    return requisition


# ─── Fulfilment ───────────────────────────────────────────────────────────────

@transactional
def issue(
    db: Session,
    requisition_no: str,
    quantities: dict[int, int],
    actor: User,
    location_id: int | None = None,
    finalize: bool = False,
    now: datetime | None = None,
) -> StationaryRequisition:
    """Hand out stock against approved quantities.

    Repeatable: each call issues a further batch. The requisition completes
    once every line is fully issued, or when ``finalize`` closes it short.
    """
    requisition = get_requisition(db, requisition_no)
    authz.require_permission(db, actor, MODULE, "issue")
    _require_status(requisition, ISSUABLE, "issue")

    location_id = location_id or requisition.issue_location_id
    if location_id is None:
        raise MissingRequiredField("Issue location is required", field="location_id")
    if not db.get(StockLocation, location_id):
        raise NotFound("Stock location not found", location_id=location_id)

    lines = _lines_by_item(requisition, quantities)
    for item_id, delta in quantities.items():
        line = lines[item_id]
        ledger.check_issue(line.quantity_approved, line.quantity_issued, delta)
    if not any(quantities.values()) and not finalize:
        raise QuantityViolation("Nothing to issue")

    for item_id, delta in quantities.items():
        if not delta:
            continue
        ledger.adjust_stock(
            db, item_id, location_id, -delta,
            MovementType.issue.value,
            reference=requisition.requisition_no,
            user_id=actor.id,
        )
        lines[item_id].quantity_issued += delta

    requisition.issue_location_id = location_id
    if finalize or ledger.fully_issued((line.quantity_approved, line.quantity_issued) for line in requisition.items):
        requisition.status = RequisitionStatus.completed.value
        requisition.completed_at = now or clock.now()
    else:
        requisition.status = RequisitionStatus.issued.value
    # Line-only changes must still bump the requisition version
    flag_modified(requisition, "status")

    notifications.enqueue(db, "requisition.issued", {
        "requisition_no": requisition.requisition_no,
        "status": requisition.status,
        "issued": {str(k): v for k, v in quantities.items() if v},
    })
    return requisition
