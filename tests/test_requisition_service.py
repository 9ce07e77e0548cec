"""Two-level requisition approval and issuing."""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.errors import (
    Conflict,
    InvalidStatus,
    MissingRequiredField,
    NotAuthorizedApprover,
    NotOwner,
    PermissionDenied,
    QuantityViolation,
)
from app.models.stationary import StationaryItem, StockLocation, MovementType
from app.models.user import Department, User
from app.schemas.requisition import RequisitionCreate, RequisitionLineIn, RequisitionUpdate
from app.services import quantity_ledger as ledger
from app.services import requisition_service as svc
from app.services.authorization import seed_default_permissions


T0 = datetime(2026, 9, 7, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def stock(db, people):
    pen = StationaryItem(item_code="PEN", name="Blue pen", unit_cost=Decimal("0.45"))
    folder = StationaryItem(item_code="FOLDER", name="Ring folder", unit_cost=Decimal("4.20"))
    store = StockLocation(code="MAIN", name="Main store")
    db.add_all([pen, folder, store])
    db.flush()
    ledger.adjust_stock(db, pen.id, store.id, 100, MovementType.receive.value)
    ledger.adjust_stock(db, folder.id, store.id, 20, MovementType.receive.value)
    db.commit()
    return {"pen": pen, "folder": folder, "store": store}


def _create_requisition(db, people, stock, pens: int = 10, folders: int = 5):
    data = RequisitionCreate(
        purpose="Lab practicals",
        items=[
            RequisitionLineIn(item_id=stock["pen"].id, quantity_requested=pens),
            RequisitionLineIn(item_id=stock["folder"].id, quantity_requested=folders),
        ],
    )
    return svc.create_requisition(db, data, people["teacher"], now=T0)


def _approved(db, people, stock, quantities=None):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"], now=T0)
    svc.approve_l1(db, req.requisition_no, people["head"], quantities, now=T0)
    return svc.approve_l2(db, req.requisition_no, people["director"], now=T0)


def _line(req, item):
    return next(line for line in req.items if line.item_id == item.id)


# ─── Drafts ──────────────────────────────────────────────────────────────────

def test_create_requisition(db, people, stock):
    req = _create_requisition(db, people, stock)
    assert req.requisition_no == "REQ-2026-0001"
    assert req.status == "draft"
    assert req.department_id == people["teacher"].department_id
    assert req.total_estimated_cost == Decimal("25.50")


def test_create_without_department(db, people, stock):
    data = RequisitionCreate(items=[RequisitionLineIn(item_id=stock["pen"].id, quantity_requested=1)])
    with pytest.raises(MissingRequiredField):
        svc.create_requisition(db, data, people["director"])


def test_only_owner_edits_draft(db, people, stock):
    req = _create_requisition(db, people, stock)
    with pytest.raises(NotOwner):
        svc.update_requisition(db, req.requisition_no, RequisitionUpdate(purpose="Mine now"), people["teacher2"])

    updated = svc.update_requisition(db, req.requisition_no, RequisitionUpdate(
        items=[RequisitionLineIn(item_id=stock["pen"].id, quantity_requested=2)],
    ), people["teacher"])
    assert len(updated.items) == 1
    assert updated.total_estimated_cost == Decimal("0.90")


def test_submitted_requisition_is_read_only(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(InvalidStatus):
        svc.update_requisition(db, req.requisition_no, RequisitionUpdate(purpose="late"), people["teacher"])
    with pytest.raises(InvalidStatus):
        svc.delete_requisition(db, req.requisition_no, people["teacher"])


def test_delete_draft(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.delete_requisition(db, req.requisition_no, people["teacher"])
    assert svc.list_requisitions(db, people["teacher"]).total == 0


def test_submit_empty_requisition(db, people, stock):
    req = svc.create_requisition(db, RequisitionCreate(), people["teacher"])
    with pytest.raises(MissingRequiredField):
        svc.submit(db, req.requisition_no, people["teacher"])


# ─── Approval ────────────────────────────────────────────────────────────────

def test_self_approval_is_rejected(db, people, stock):
    data = RequisitionCreate(items=[RequisitionLineIn(item_id=stock["pen"].id, quantity_requested=3)])
    req = svc.create_requisition(db, data, people["head"])
    svc.submit(db, req.requisition_no, people["head"])
    with pytest.raises(NotAuthorizedApprover):
        svc.approve_l1(db, req.requisition_no, people["head"])


def test_approver_from_other_department(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(NotAuthorizedApprover):
        svc.approve_l1(db, req.requisition_no, people["it_head"])


def test_plain_user_cannot_approve(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(PermissionDenied):
        svc.approve_l1(db, req.requisition_no, people["teacher2"])


def test_approve_before_submit(db, people, stock):
    req = _create_requisition(db, people, stock)
    with pytest.raises(InvalidStatus):
        svc.approve_l1(db, req.requisition_no, people["head"])


def test_two_level_approval(db, people, stock):
    req = _approved(db, people, stock, {stock["pen"].id: 8})
    assert req.status == "approved"
    assert req.approved_l1_by == people["head"].id
    assert req.approved_l2_by == people["director"].id
    assert _line(req, stock["pen"]).quantity_approved == 8
    assert _line(req, stock["folder"]).quantity_approved == 5


def test_approved_quantity_above_requested(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(QuantityViolation):
        svc.approve_l1(db, req.requisition_no, people["head"], {stock["pen"].id: 11})


def test_level_two_needs_level_one(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(InvalidStatus):
        svc.approve_l2(db, req.requisition_no, people["director"])


def test_department_head_cannot_approve_level_two(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    svc.approve_l1(db, req.requisition_no, people["head"])
    with pytest.raises(PermissionDenied):
        svc.approve_l2(db, req.requisition_no, people["head"])


def test_reject_needs_reason(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(MissingRequiredField):
        svc.reject(db, req.requisition_no, people["head"], "   ")

    rejected = svc.reject(db, req.requisition_no, people["head"], "Use the stock in the lab")
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Use the stock in the lab"


def test_reject_at_level_two(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    svc.approve_l1(db, req.requisition_no, people["head"])
    rejected = svc.reject(db, req.requisition_no, people["director"], "Over budget")
    assert rejected.status == "rejected"
    assert rejected.rejected_by == people["director"].id


def test_rejected_is_terminal(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    svc.reject(db, req.requisition_no, people["head"], "No")
    with pytest.raises(InvalidStatus):
        svc.approve_l1(db, req.requisition_no, people["head"])


# ─── Issuing ─────────────────────────────────────────────────────────────────

def test_partial_then_complete_issue(db, people, stock):
    req = _approved(db, people, stock)
    pen, folder, store = stock["pen"], stock["folder"], stock["store"]

    req = svc.issue(db, req.requisition_no, {pen.id: 6}, people["store"], location_id=store.id)
    assert req.status == "issued"
    assert _line(req, pen).quantity_issued == 6
    assert ledger.get_stock_quantity(db, pen.id, store.id) == 94

    req = svc.issue(db, req.requisition_no, {pen.id: 4, folder.id: 5}, people["store"])
    assert req.status == "completed"
    assert req.completed_at is not None
    assert ledger.get_stock_quantity(db, folder.id, store.id) == 15


def test_issue_more_than_approved(db, people, stock):
    req = _approved(db, people, stock, {stock["pen"].id: 3})
    with pytest.raises(QuantityViolation):
        svc.issue(db, req.requisition_no, {stock["pen"].id: 4}, people["store"], location_id=stock["store"].id)
    assert ledger.get_stock_quantity(db, stock["pen"].id, stock["store"].id) == 100


def test_issue_more_than_in_stock(db, people, stock):
    req = _create_requisition(db, people, stock, pens=1, folders=21)
    svc.submit(db, req.requisition_no, people["teacher"])
    svc.approve_l1(db, req.requisition_no, people["head"])
    svc.approve_l2(db, req.requisition_no, people["director"])
    with pytest.raises(QuantityViolation) as exc:
        svc.issue(db, req.requisition_no, {stock["folder"].id: 21}, people["store"], location_id=stock["store"].id)
    assert exc.value.context["available"] == 20


def test_finalize_closes_short(db, people, stock):
    req = _approved(db, people, stock)
    req = svc.issue(
        db, req.requisition_no, {stock["pen"].id: 2}, people["store"],
        location_id=stock["store"].id, finalize=True,
    )
    assert req.status == "completed"
    assert _line(req, stock["folder"]).quantity_issued == 0


def test_issue_needs_location(db, people, stock):
    req = _approved(db, people, stock)
    with pytest.raises(MissingRequiredField):
        svc.issue(db, req.requisition_no, {stock["pen"].id: 1}, people["store"])


def test_issue_before_approval(db, people, stock):
    req = _create_requisition(db, people, stock)
    svc.submit(db, req.requisition_no, people["teacher"])
    with pytest.raises(InvalidStatus):
        svc.issue(db, req.requisition_no, {stock["pen"].id: 1}, people["store"], location_id=stock["store"].id)


# ─── Listing ─────────────────────────────────────────────────────────────────

def test_list_is_scoped(db, people, stock):
    _create_requisition(db, people, stock)
    data = RequisitionCreate(items=[RequisitionLineIn(item_id=stock["pen"].id, quantity_requested=1)])
    svc.create_requisition(db, data, people["it_head"])

    assert svc.list_requisitions(db, people["teacher"]).total == 1
    assert svc.list_requisitions(db, people["teacher2"]).total == 0
    assert svc.list_requisitions(db, people["head"]).total == 1
    assert svc.list_requisitions(db, people["director"]).total == 2


# ─── Concurrency ─────────────────────────────────────────────────────────────

@pytest.fixture
def file_sessions(tmp_path):
    """Session factory on a file database so each session gets its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'requisitions.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


def test_concurrent_first_level_approvals(file_sessions):
    setup = file_sessions()
    seed_default_permissions(setup)
    science = Department(code="SCI", name="Science")
    setup.add(science)
    setup.flush()
    requester = User(username="teacher", email="teacher@school.cz", role="user", department_id=science.id)
    head_a = User(username="head_a", email="head_a@school.cz", role="department_head", department_id=science.id)
    head_b = User(username="head_b", email="head_b@school.cz", role="department_head", department_id=science.id)
    pen = StationaryItem(item_code="PEN", name="Blue pen")
    setup.add_all([requester, head_a, head_b, pen])
    setup.commit()

    data = RequisitionCreate(items=[RequisitionLineIn(item_id=pen.id, quantity_requested=5)])
    req_no = svc.create_requisition(setup, data, requester, now=T0).requisition_no
    svc.submit(setup, req_no, requester, now=T0)
    head_a_id, head_b_id = head_a.id, head_b.id
    setup.close()

    first, second = file_sessions(), file_sessions()
    # both approvers have the pending requisition loaded before either writes
    assert svc.get_requisition(first, req_no).status == "pending"
    assert svc.get_requisition(second, req_no).status == "pending"

    svc.approve_l1(first, req_no, first.get(User, head_a_id), now=T0)
    with pytest.raises((InvalidStatus, Conflict)):
        svc.approve_l1(second, req_no, second.get(User, head_b_id), now=T0)
    first.close()
    second.close()

    check = file_sessions()
    req = svc.get_requisition(check, req_no)
    assert req.status == "approved_l1"
    assert req.approved_l1_by == head_a_id
    check.close()
