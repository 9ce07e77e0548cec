"""Quantity accounting shared by requisitions, purchase orders and stock.

The check_* helpers only validate; ``adjust_stock`` is the single place that
writes a stock ledger row, always with a conditional UPDATE so a concurrent
issue and receipt on the same item/location cannot lose an update or drive
the quantity below zero.
"""
from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.errors import QuantityViolation, OverReceipt
from app.models.stationary import StockLevel, StockMovement

CENT = Decimal("0.01")

PARTIALLY_RECEIVED = "partially_received"
RECEIVED = "received"


def money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return money(money(unit_price) * quantity)


def check_positive(quantity: int, what: str = "quantity") -> None:
    if quantity is None or quantity <= 0:
        raise QuantityViolation(f"{what} must be greater than zero", value=quantity)


def check_approved_quantity(requested: int, approved: int, previous: int | None = None) -> None:
    if approved < 0 or approved > requested:
        raise QuantityViolation(
            "Approved quantity must be between 0 and the requested quantity",
            requested=requested,
            approved=approved,
        )
    if previous is not None and approved < previous:
        raise QuantityViolation(
            "Approved quantity cannot decrease",
            previous=previous,
            approved=approved,
        )


def check_issue(approved: int | None, already_issued: int, delta: int) -> None:
    if delta < 0:
        raise QuantityViolation("Issued quantity cannot be negative", value=delta)
    if approved is None:
        raise QuantityViolation("Line has no approved quantity")
    if already_issued + delta > approved:
        raise QuantityViolation(
            "Cannot issue more than the approved quantity",
            approved=approved,
            issued=already_issued,
            requested_issue=delta,
        )


def check_receipt(ordered: int, already_received: int, delta: int) -> None:
    if delta < 0:
        raise QuantityViolation("Received quantity cannot be negative", value=delta)
    if already_received + delta > ordered:
        raise OverReceipt(
            "Cannot receive more than was ordered",
            ordered=ordered,
            received=already_received,
            delta=delta,
        )


def po_status_for_lines(lines: Iterable[tuple[int, int]]) -> str | None:
    """(ordered, received) pairs → received / partially_received / None."""
    lines = list(lines)
    total_ordered = sum(ordered for ordered, _ in lines)
    total_received = sum(received for _, received in lines)
    if lines and all(received == ordered for ordered, received in lines):
        return RECEIVED
    if 0 < total_received < total_ordered:
        return PARTIALLY_RECEIVED
    return None


def fully_issued(lines: Iterable[tuple[int | None, int]]) -> bool:
    """(approved, issued) pairs. True when nothing approved is left to hand out."""
    return all((approved or 0) == issued for approved, issued in lines)


def get_stock_quantity(db: Session, item_id: int, location_id: int) -> int:
    quantity = db.scalar(
        select(StockLevel.quantity).where(
            StockLevel.item_id == item_id,
            StockLevel.location_id == location_id,
        )
    )
    return quantity or 0


def adjust_stock(
    db: Session,
    item_id: int,
    location_id: int,
    delta: int,
    movement_type: str,
    reference: str | None = None,
    user_id: int | None = None,
    unit_cost: Decimal | None = None,
) -> None:
    if delta == 0:
        return

    values = {"quantity": StockLevel.quantity + delta}
    if unit_cost is not None:
        values["unit_cost"] = unit_cost

    result = db.execute(
        update(StockLevel)
        .where(
            StockLevel.item_id == item_id,
            StockLevel.location_id == location_id,
            StockLevel.quantity + delta >= 0,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if delta < 0:
            raise QuantityViolation(
                "Insufficient stock",
                item_id=item_id,
                location_id=location_id,
                available=get_stock_quantity(db, item_id, location_id),
                requested=-delta,
            )
        # First receipt at this location. A concurrent first receipt hits the
        # unique constraint and surfaces as Conflict from ``transactional``.
        db.add(StockLevel(item_id=item_id, location_id=location_id, quantity=delta, unit_cost=unit_cost))
        db.flush()

    db.add(StockMovement(
        item_id=item_id,
        location_id=location_id,
        movement_type=movement_type,
        quantity=delta,
        reference=reference,
        created_by=user_id,
    ))

