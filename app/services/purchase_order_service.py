"""Vendor purchase orders, from draft through partial receipts to closing.

    draft -> submitted -> approved -> ordered -> partially_received -> received -> closed

Receipts accumulate per line and never decrease; each one books the delta
into the stock ledger at the PO's destination location.
"""
import logging
import math
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app import clock
from app.database import transactional
from app.errors import InvalidStatus, NotFound, QuantityViolation
from app.models.purchase_order import StationaryPurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from app.models.stationary import StationaryItem, StockLocation, Vendor, MovementType
from app.models.user import User
from app.schemas.pagination import Page
from app.schemas.purchase_order import PurchaseOrderCreate
from app.services import authorization as authz
from app.services import notification_service as notifications
from app.services import quantity_ledger as ledger
from app.services.numbering import next_number

logger = logging.getLogger(__name__)

MODULE = "purchase_orders"

S = PurchaseOrderStatus
RECEIVABLE = {S.approved.value, S.ordered.value, S.partially_received.value}
CANCELLABLE = {S.draft.value, S.submitted.value, S.approved.value, S.ordered.value}


def get_purchase_order(db: Session, po_number: str) -> StationaryPurchaseOrder:
    po = db.scalar(select(StationaryPurchaseOrder).where(StationaryPurchaseOrder.po_number == po_number))
    if not po:
        raise NotFound("Purchase order not found", po_number=po_number)
    return po


def list_purchase_orders(
    db: Session,
    page: int = 1,
    size: int = 50,
    status: str = "",
    vendor_id: int | None = None,
) -> Page:
    query = select(StationaryPurchaseOrder)
    if status:
        query = query.where(StationaryPurchaseOrder.status == status)
    if vendor_id is not None:
        query = query.where(StationaryPurchaseOrder.vendor_id == vendor_id)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(
        query.order_by(StationaryPurchaseOrder.id.desc()).offset((page - 1) * size).limit(size)
    ).all()
    return Page(
        items=items,
        total=total,
        page=page,
        pages=math.ceil(total / size) if total else 1,
        size=size,
    )


def _transition(po: StationaryPurchaseOrder, allowed: set[str], to_status: str) -> None:
    if po.status not in allowed:
        raise InvalidStatus(
            f"Cannot move purchase order from {po.status} to {to_status}",
            status=po.status,
            allowed=sorted(allowed),
        )
    po.status = to_status


@transactional
def create_purchase_order(
    db: Session,
    data: PurchaseOrderCreate,
    actor: User,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    authz.require_permission(db, actor, MODULE, "create")
    vendor = db.get(Vendor, data.vendor_id)
    if not vendor or not vendor.is_active:
        raise NotFound("Vendor not found", vendor_id=data.vendor_id)
    if not db.get(StockLocation, data.location_id):
        raise NotFound("Stock location not found", location_id=data.location_id)

    now = now or clock.now()
    po = StationaryPurchaseOrder(
        po_number=next_number(db, StationaryPurchaseOrder.po_number, f"PO-{now.year}-", 4),
        vendor_id=vendor.id,
        location_id=data.location_id,
        status=S.draft.value,
        expected_delivery=data.expected_delivery,
        notes=data.notes,
        created_by=actor.id,
        created_at=now,
    )

    seen: set[int] = set()
    subtotal = ledger.money(0)
    for line in data.items:
        ledger.check_positive(line.quantity_ordered, "quantity_ordered")
        if line.item_id in seen:
            raise QuantityViolation("Item listed more than once", item_id=line.item_id)
        seen.add(line.item_id)
        if not db.get(StationaryItem, line.item_id):
            raise NotFound("Stationary item not found", item_id=line.item_id)
        total_price = ledger.line_total(line.unit_price, line.quantity_ordered)
        po.items.append(PurchaseOrderItem(
            item_id=line.item_id,
            quantity_ordered=line.quantity_ordered,
            quantity_received=0,
            unit_price=ledger.money(line.unit_price),
            total_price=total_price,
        ))
        subtotal += total_price

    po.subtotal = subtotal
    po.tax_amount = ledger.money(data.tax_amount)
    po.shipping_cost = ledger.money(data.shipping_cost)
    po.total_amount = ledger.money(subtotal + po.tax_amount + po.shipping_cost)
    db.add(po)
    db.flush()
    return po


@transactional
def submit(db: Session, po_number: str, actor: User) -> StationaryPurchaseOrder:
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, actor, MODULE, "submit")
    _transition(po, {S.draft.value}, S.submitted.value)
    return po


@transactional
def approve(
    db: Session,
    po_number: str,
    approver: User,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, approver, MODULE, "approve")
    _transition(po, {S.submitted.value}, S.approved.value)
    po.approved_by = approver.id
    po.approved_at = now or clock.now()
    notifications.enqueue(db, "purchase_order.approved", {
        "po_number": po.po_number,
        "approved_by": approver.id,
        "total_amount": str(po.total_amount),
    })
    return po


@transactional
def mark_ordered(
    db: Session,
    po_number: str,
    actor: User,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, actor, MODULE, "order")
    _transition(po, {S.approved.value}, S.ordered.value)
    po.order_date = now or clock.now()
    return po


@transactional
def receive(
    db: Session,
    po_number: str,
    quantities: dict[int, int],
    actor: User,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    """Book a delivery. ``quantities`` maps item_id to the quantity arriving now."""
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, actor, MODULE, "receive")
    if po.status not in RECEIVABLE:
        raise InvalidStatus(
            f"Cannot receive against a purchase order in status {po.status}",
            status=po.status,
            allowed=sorted(RECEIVABLE),
        )

    lines = {line.item_id: line for line in po.items}
    unknown = sorted(set(quantities) - set(lines))
    if unknown:
        raise QuantityViolation("Items are not on this purchase order", item_ids=unknown)
    for item_id, delta in quantities.items():
        line = lines[item_id]
        ledger.check_receipt(line.quantity_ordered, line.quantity_received, delta)

    if not any(quantities.values()):
        return po

    for item_id, delta in quantities.items():
        if not delta:
            continue
        line = lines[item_id]
        line.quantity_received += delta
        ledger.adjust_stock(
            db, item_id, po.location_id, delta,
            MovementType.receive.value,
            reference=po.po_number,
            user_id=actor.id,
            unit_cost=line.unit_price,
        )

    new_status = ledger.po_status_for_lines(
        (line.quantity_ordered, line.quantity_received) for line in po.items
    )
    if new_status:
        po.status = new_status
    po.received_by = actor.id
    po.received_at = now or clock.now()
    flag_modified(po, "status")

    notifications.enqueue(db, "purchase_order.received", {
        "po_number": po.po_number,
        "status": po.status,
        "received": {str(k): v for k, v in quantities.items() if v},
    })
    return po


@transactional
def close(
    db: Session,
    po_number: str,
    actor: User,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, actor, MODULE, "close")
    _transition(po, {S.received.value}, S.closed.value)
    po.closed_at = now or clock.now()
    return po


@transactional
def cancel(
    db: Session,
    po_number: str,
    actor: User,
    reason: str | None = None,
    now: datetime | None = None,
) -> StationaryPurchaseOrder:
    po = get_purchase_order(db, po_number)
    authz.require_permission(db, actor, MODULE, "cancel")
    received = sum(line.quantity_received for line in po.items)
    if po.status not in CANCELLABLE or received:
        raise InvalidStatus(
            "Purchase orders can only be cancelled before receiving begins",
            status=po.status,
            received=received,
        )

    po.status = S.cancelled.value
    po.cancelled_at = now or clock.now()
    if reason:
        po.notes = f"{po.notes}\nCancelled: {reason}" if po.notes else f"Cancelled: {reason}"
    notifications.enqueue(db, "purchase_order.cancelled", {"po_number": po.po_number, "reason": reason})
    return po
