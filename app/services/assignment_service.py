"""Assignment / borrow / return engine.

An assignment is one user's loan basket for a term. Borrow transactions add
assets to it, return transactions take them back out. Nothing about "what is
currently out" is stored: ``active_items`` recomputes it from the borrow and
return rows on every read.

Asset availability is claimed with a conditional UPDATE on ``assets.status``,
so two baskets racing for the same laptop cannot both get it. Every mutation
of an assignment's contents bumps the assignment's version, which serialises
returns, cancellations and closing against each other.
"""
import logging
import math
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app import clock
from app.clock import as_utc
from app.config import settings
from app.database import transactional
from app.errors import (
    AlreadyReturned,
    AlreadySigned,
    AssetUnavailable,
    InvalidOrExpiredToken,
    InvalidStatus,
    ItemsStillOutstanding,
    MissingRequiredField,
    NotBorrowed,
    NotFound,
    QuantityViolation,
)
from app.models.asset import Asset, AssetStatus
from app.models.assignment import (
    Assignment,
    AssignmentStatus,
    BorrowItem,
    BorrowTransaction,
    ReturnCondition,
    ReturnItem,
    ReturnTransaction,
)
from app.models.user import User
from app.schemas.assignment import ReturnLine
from app.schemas.pagination import Page
from app.services import authorization as authz
from app.services import notification_service as notifications
from app.services.numbering import next_number
from app.services.quantity_ledger import money

logger = logging.getLogger(__name__)

MODULE = "assignments"

_RETURN_STATUS = {
    ReturnCondition.good.value: AssetStatus.available.value,
    ReturnCondition.damaged.value: AssetStatus.maintenance.value,
    ReturnCondition.lost.value: AssetStatus.lost.value,
}


# ─── Reads ────────────────────────────────────────────────────────────────────

def get_assignment(db: Session, assignment_id: int) -> Assignment:
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise NotFound("Assignment not found", assignment_id=assignment_id)
    return assignment


def get_assignment_by_number(db: Session, assignment_number: str) -> Assignment:
    assignment = db.scalar(select(Assignment).where(Assignment.assignment_number == assignment_number))
    if not assignment:
        raise NotFound("Assignment not found", assignment_number=assignment_number)
    return assignment


def get_borrow_transaction(db: Session, transaction_id: int) -> BorrowTransaction:
    transaction = db.get(BorrowTransaction, transaction_id)
    if not transaction:
        raise NotFound("Borrow transaction not found", transaction_id=transaction_id)
    return transaction


def list_assignments(
    db: Session,
    page: int = 1,
    size: int = 50,
    user_id: int | None = None,
    status: str = "",
    academic_year: str = "",
) -> Page:
    query = select(Assignment)
    if user_id is not None:
        query = query.where(Assignment.user_id == user_id)
    if status:
        query = query.where(Assignment.status == status)
    if academic_year:
        query = query.where(Assignment.academic_year == academic_year)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    items = db.scalars(
        query.order_by(Assignment.created_at.desc(), Assignment.id.desc())
        .offset((page - 1) * size)
        .limit(size)
    ).all()
    return Page(
        items=items,
        total=total,
        page=page,
        pages=math.ceil(total / size) if total else 1,
        size=size,
    )


def borrowed_items(db: Session, assignment_id: int) -> list[BorrowItem]:
    """Every item ever lent on this assignment, voided transactions excluded."""
    return list(db.scalars(
        select(BorrowItem)
        .join(BorrowTransaction, BorrowItem.borrow_transaction_id == BorrowTransaction.id)
        .where(
            BorrowTransaction.assignment_id == assignment_id,
            BorrowTransaction.is_cancelled == False,
        )
        .order_by(BorrowItem.id)
    ).all())


def active_items(db: Session, assignment_id: int) -> list[BorrowItem]:
    """Borrowed minus returned."""
    return list(db.scalars(
        select(BorrowItem)
        .join(BorrowTransaction, BorrowItem.borrow_transaction_id == BorrowTransaction.id)
        .outerjoin(ReturnItem, ReturnItem.borrow_item_id == BorrowItem.id)
        .where(
            BorrowTransaction.assignment_id == assignment_id,
            BorrowTransaction.is_cancelled == False,
            ReturnItem.id.is_(None),
        )
        .order_by(BorrowItem.id)
    ).all())


def get_assignment_detail(db: Session, assignment_id: int) -> dict:
    assignment = get_assignment(db, assignment_id)
    borrowed = borrowed_items(db, assignment.id)
    active = active_items(db, assignment.id)
    return {
        "assignment": assignment,
        "active_items": active,
        "borrowed_count": len(borrowed),
        "returned_count": len(borrowed) - len(active),
        "borrow_transactions": assignment.borrow_transactions,
        "return_transactions": assignment.return_transactions,
    }


def _outstanding_elsewhere(db: Session, asset_id: int) -> bool:
    return db.scalar(
        select(func.count(BorrowItem.id))
        .join(BorrowTransaction, BorrowItem.borrow_transaction_id == BorrowTransaction.id)
        .outerjoin(ReturnItem, ReturnItem.borrow_item_id == BorrowItem.id)
        .where(
            BorrowItem.asset_id == asset_id,
            BorrowTransaction.is_cancelled == False,
            ReturnItem.id.is_(None),
        )
    ) > 0


def _move_asset(db: Session, asset_id: int, from_statuses: list[str], to_status: str) -> bool:
    result = db.execute(
        update(Asset)
        .where(Asset.id == asset_id, Asset.status.in_(from_statuses))
        .values(status=to_status)
    )
    return result.rowcount == 1


def _touch(assignment: Assignment) -> None:
    # Forces an UPDATE so the version check runs even when no column changed
    flag_modified(assignment, "status")


def _require_active(assignment: Assignment) -> None:
    if assignment.status != AssignmentStatus.active.value:
        raise InvalidStatus(
            f"Assignment {assignment.assignment_number} is {assignment.status}",
            status=assignment.status,
        )


# ─── Assignment lifecycle ─────────────────────────────────────────────────────

@transactional
def create_assignment(
    db: Session,
    user_id: int,
    academic_year: str,
    term: int,
    actor: User,
) -> Assignment:
    authz.require_permission(db, actor, MODULE, "create")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise NotFound("User not found", user_id=user_id)

    assignment = Assignment(
        assignment_number=next_number(db, Assignment.assignment_number, f"AS-{academic_year}-", 4),
        user_id=user_id,
        academic_year=academic_year,
        term=term,
        status=AssignmentStatus.active.value,
        created_by=actor.id,
    )
    db.add(assignment)
    db.flush()
    notifications.enqueue(db, "assignment.created", {
        "assignment_number": assignment.assignment_number,
        "user_id": user_id,
    })
    return assignment


@transactional
def close_assignment(
    db: Session,
    assignment_id: int,
    actor: User,
    notes: str | None = None,
    closure_signature: str | None = None,
    now: datetime | None = None,
) -> Assignment:
    """Close once everything borrowed has come back.

    An assignment that never borrowed anything has nothing to settle and
    stays Active; it is reported as ItemsStillOutstanding with zero counts.
    """
    assignment = get_assignment(db, assignment_id)
    authz.require_permission(db, actor, MODULE, "close", {"owner_id": assignment.user_id})
    _require_active(assignment)

    borrowed = len(borrowed_items(db, assignment.id))
    if not borrowed:
        raise ItemsStillOutstanding(
            "Cannot close an assignment that never had anything borrowed",
            outstanding=0,
            borrowed=0,
        )
    outstanding = len(active_items(db, assignment.id))
    if outstanding:
        raise ItemsStillOutstanding(
            f"Cannot close: {outstanding} item(s) still outstanding",
            outstanding=outstanding,
            borrowed=borrowed,
        )

    assignment.status = AssignmentStatus.closed.value
    assignment.closed_at = now or clock.now()
    assignment.closed_by = actor.id
    assignment.closure_notes = notes
    assignment.closure_signature = closure_signature
    notifications.enqueue(db, "assignment.closed", {
        "assignment_number": assignment.assignment_number,
        "user_id": assignment.user_id,
        "closed_by": actor.id,
    })
    return assignment


@transactional
def reopen_assignment(db: Session, assignment_id: int, actor: User) -> Assignment:
    assignment = get_assignment(db, assignment_id)
    authz.require_permission(db, actor, MODULE, "reopen")
    if assignment.status != AssignmentStatus.closed.value:
        raise InvalidStatus("Assignment is not closed", status=assignment.status)

    assignment.status = AssignmentStatus.active.value
    assignment.closed_at = None
    assignment.closed_by = None
    assignment.closure_notes = None
    assignment.closure_signature = None
    logger.info("Assignment %s reopened by user %s", assignment.assignment_number, actor.id)
    return assignment


# ─── Borrowing ────────────────────────────────────────────────────────────────

@transactional
def add_borrow_transaction(
    db: Session,
    assignment_id: int,
    asset_ids: list[int],
    actor: User,
    notes: str | None = None,
    now: datetime | None = None,
) -> BorrowTransaction:
    assignment = get_assignment(db, assignment_id)
    authz.require_permission(db, actor, MODULE, "borrow", {"owner_id": assignment.user_id})
    _require_active(assignment)
    if not asset_ids:
        raise MissingRequiredField("At least one asset is required", field="asset_ids")

    now = now or clock.now()
    transaction = BorrowTransaction(
        assignment_id=assignment.id,
        transaction_number=next_number(db, BorrowTransaction.transaction_number, f"TR-{now.year}-", 5),
        borrow_date=now,
        created_by=actor.id,
        notes=notes,
    )
    db.add(transaction)

    seen: set[int] = set()
    for asset_id in asset_ids:
        if asset_id in seen:
            raise AssetUnavailable("Asset listed more than once", asset_id=asset_id)
        seen.add(asset_id)

        asset = db.get(Asset, asset_id)
        if not asset:
            raise NotFound("Asset not found", asset_id=asset_id)
        if not asset.is_active or _outstanding_elsewhere(db, asset_id):
            raise AssetUnavailable(
                f"Asset {asset.code} is not available",
                asset_id=asset_id,
                status=asset.status,
            )
        if not _move_asset(db, asset_id, [AssetStatus.available.value], AssetStatus.reserved.value):
            raise AssetUnavailable(
                f"Asset {asset.code} is not available",
                asset_id=asset_id,
                status=asset.status,
            )
        transaction.items.append(BorrowItem(asset_id=asset_id))

    _touch(assignment)
    db.flush()
    notifications.enqueue(db, "assets.borrowed", {
        "assignment_number": assignment.assignment_number,
        "transaction_number": transaction.transaction_number,
        "user_id": assignment.user_id,
        "asset_ids": list(asset_ids),
    })
    return transaction


@transactional
def generate_signature_token(
    db: Session,
    transaction_id: int,
    actor: User,
    now: datetime | None = None,
) -> BorrowTransaction:
    transaction = get_borrow_transaction(db, transaction_id)
    authz.require_permission(db, actor, MODULE, "sign_link", {"owner_id": transaction.assignment.user_id})
    if transaction.is_cancelled:
        raise InvalidStatus("Borrow transaction was cancelled", transaction_number=transaction.transaction_number)
    if transaction.is_signed:
        raise AlreadySigned("Borrow transaction is already signed", transaction_number=transaction.transaction_number)

    now = now or clock.now()
    transaction.signature_token = secrets.token_hex(32)
    transaction.signature_token_expires_at = now + timedelta(hours=settings.SIGNATURE_TOKEN_TTL_HOURS)
    notifications.enqueue(db, "borrow.signature_requested", {
        "transaction_number": transaction.transaction_number,
        "user_id": transaction.assignment.user_id,
    })
    return transaction


def signature_url(transaction: BorrowTransaction) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/api/sign/{transaction.signature_token}"


def get_transaction_by_token(db: Session, token: str, now: datetime | None = None) -> BorrowTransaction:
    """Resolve a signing link without consuming it."""
    transaction = None
    if token:
        transaction = db.scalar(select(BorrowTransaction).where(BorrowTransaction.signature_token == token))
    if not transaction or transaction.is_cancelled:
        raise InvalidOrExpiredToken("Signature link is invalid")
    expires_at = as_utc(transaction.signature_token_expires_at)
    if expires_at is None or expires_at <= as_utc(now or clock.now()):
        raise InvalidOrExpiredToken("Signature link has expired", expired_at=expires_at.isoformat() if expires_at else None)
    return transaction


@transactional
def sign_borrow_transaction(
    db: Session,
    token: str,
    signature_data: str,
    now: datetime | None = None,
) -> BorrowTransaction:
    now = now or clock.now()
    transaction = get_transaction_by_token(db, token, now)
    if transaction.is_signed:
        raise AlreadySigned("Borrow transaction is already signed", transaction_number=transaction.transaction_number)
    if not signature_data:
        raise MissingRequiredField("Signature is required", field="signature")

    transaction.is_signed = True
    transaction.signed_at = now
    transaction.signature = signature_data
    transaction.signature_token = None
    transaction.signature_token_expires_at = None

    for item in transaction.items:
        if item.return_item is not None:
            continue
        if not _move_asset(db, item.asset_id, [AssetStatus.reserved.value], AssetStatus.borrowed.value):
            logger.warning(
                "Asset %s on %s was not Reserved at signing",
                item.asset_id, transaction.transaction_number,
            )

    notifications.enqueue(db, "borrow.signed", {
        "transaction_number": transaction.transaction_number,
        "assignment_id": transaction.assignment_id,
    })
    return transaction


@transactional
def cancel_borrow_transaction(
    db: Session,
    transaction_id: int,
    actor: User,
    now: datetime | None = None,
) -> BorrowTransaction:
    transaction = get_borrow_transaction(db, transaction_id)
    assignment = transaction.assignment
    authz.require_permission(db, actor, MODULE, "borrow", {"owner_id": assignment.user_id})

    if transaction.is_cancelled:
        raise InvalidStatus("Borrow transaction is already cancelled", transaction_number=transaction.transaction_number)
    if transaction.is_signed:
        raise AlreadySigned(
            "Signed borrow transactions cannot be cancelled",
            transaction_number=transaction.transaction_number,
        )
    returned = [item.id for item in transaction.items if item.return_item is not None]
    if returned:
        raise AlreadyReturned(
            "Borrow transaction has returned items",
            transaction_number=transaction.transaction_number,
            borrow_item_ids=returned,
        )

    transaction.is_cancelled = True
    transaction.cancelled_at = now or clock.now()
    transaction.cancelled_by = actor.id
    transaction.signature_token = None
    transaction.signature_token_expires_at = None
    for item in transaction.items:
        _move_asset(db, item.asset_id, [AssetStatus.reserved.value], AssetStatus.available.value)

    _touch(assignment)
    notifications.enqueue(db, "borrow.cancelled", {
        "transaction_number": transaction.transaction_number,
        "asset_ids": [item.asset_id for item in transaction.items],
    })
    return transaction


# ─── Returns ──────────────────────────────────────────────────────────────────

@transactional
def process_return(
    db: Session,
    assignment_id: int,
    lines: list[ReturnLine],
    checker: User,
    checker_signature: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> ReturnTransaction:
    assignment = get_assignment(db, assignment_id)
    authz.require_permission(db, checker, MODULE, "return", {"owner_id": assignment.user_id})
    _require_active(assignment)
    if not lines:
        raise MissingRequiredField("At least one item must be returned", field="items")

    active = {item.id: item for item in active_items(db, assignment.id)}
    seen: set[int] = set()
    for line in lines:
        if line.borrow_item_id in seen:
            raise AlreadyReturned("Item listed more than once", borrow_item_id=line.borrow_item_id)
        seen.add(line.borrow_item_id)

        if line.borrow_item_id not in active:
            borrow_item = db.get(BorrowItem, line.borrow_item_id)
            if (
                borrow_item is None
                or borrow_item.transaction.assignment_id != assignment.id
                or borrow_item.transaction.is_cancelled
            ):
                raise NotBorrowed("Item is not borrowed on this assignment", borrow_item_id=line.borrow_item_id)
            raise AlreadyReturned("Item was already returned", borrow_item_id=line.borrow_item_id)

        charge = money(line.damage_charge)
        if charge < 0:
            raise QuantityViolation("Damage charge cannot be negative", borrow_item_id=line.borrow_item_id)
        if charge > 0 and line.condition == ReturnCondition.good:
            raise QuantityViolation(
                "Damage charge only applies to damaged or lost items",
                borrow_item_id=line.borrow_item_id,
                condition=line.condition.value,
            )

    now = now or clock.now()
    return_tx = ReturnTransaction(
        assignment_id=assignment.id,
        return_date=now,
        checked_by=checker.id,
        checker_signature=checker_signature,
        notes=notes,
    )
    db.add(return_tx)

    total_charge = money(0)
    damaged = []
    for line in lines:
        condition = ReturnCondition(line.condition).value
        charge = money(line.damage_charge)
        return_tx.items.append(ReturnItem(
            borrow_item_id=line.borrow_item_id,
            condition=condition,
            damage_notes=line.damage_notes,
            damage_charge=charge,
        ))
        asset_id = active[line.borrow_item_id].asset_id
        moved = _move_asset(
            db, asset_id,
            [AssetStatus.borrowed.value, AssetStatus.reserved.value],
            _RETURN_STATUS[condition],
        )
        if not moved:
            logger.warning("Asset %s was neither Borrowed nor Reserved on return", asset_id)
        if condition != ReturnCondition.good.value:
            damaged.append(asset_id)
        total_charge += charge

    _touch(assignment)
    try:
        db.flush()
    except IntegrityError:
        # Another request returned one of these items first
        raise AlreadyReturned("Item was already returned", borrow_item_ids=sorted(seen))

    notifications.enqueue(db, "assets.returned", {
        "assignment_number": assignment.assignment_number,
        "borrow_item_ids": sorted(seen),
        "checked_by": checker.id,
    })
    if damaged:
        notifications.enqueue(db, "assets.damaged", {
            "assignment_number": assignment.assignment_number,
            "asset_ids": damaged,
            "total_charge": str(total_charge),
        })
    return return_tx
