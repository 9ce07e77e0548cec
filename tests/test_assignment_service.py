"""Borrow / sign / return / close scenarios against the assignment engine."""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.errors import (
    AlreadyReturned,
    AlreadySigned,
    AssetUnavailable,
    InvalidOrExpiredToken,
    InvalidStatus,
    ItemsStillOutstanding,
    NotBorrowed,
    PermissionDenied,
    QuantityViolation,
)
from app.models.asset import Asset, AssetStatus
from app.models.assignment import ReturnCondition
from app.schemas.assignment import ReturnLine
from app.services import assignment_service as svc
from app.services import notification_service as notifications


T0 = datetime(2026, 9, 1, 8, 0, tzinfo=timezone.utc)


def _create_asset(db, code: str, status: str = AssetStatus.available.value) -> Asset:
    asset = Asset(code=code, name=f"Laptop {code}", status=status)
    db.add(asset)
    db.commit()
    return asset


def _status(db, asset: Asset) -> str:
    db.refresh(asset)
    return asset.status


@pytest.fixture
def assignment(db, people):
    return svc.create_assignment(db, people["teacher"].id, "2026", 1, people["tech"])


@pytest.fixture
def events():
    received = []

    def handler(event_type, payload):
        received.append((event_type, payload))

    notifications.subscribe(notifications.ALL_EVENTS, handler)
    yield received
    notifications.unsubscribe(notifications.ALL_EVENTS, handler)


# ─── Creating ────────────────────────────────────────────────────────────────

def test_create_assignment_numbering(db, people, assignment):
    assert assignment.assignment_number == "AS-2026-0001"
    assert assignment.status == "Active"
    second = svc.create_assignment(db, people["teacher2"].id, "2026", 1, people["tech"])
    assert second.assignment_number == "AS-2026-0002"


def test_plain_user_cannot_create_assignment(db, people):
    with pytest.raises(PermissionDenied):
        svc.create_assignment(db, people["teacher"].id, "2026", 1, people["teacher"])


# ─── Full lifecycle ──────────────────────────────────────────────────────────

def test_borrow_return_close_lifecycle(db, people, assignment, events):
    laptop = _create_asset(db, "NB-001")
    projector = _create_asset(db, "PJ-001")
    tech = people["tech"]

    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id, projector.id], tech, now=T0)
    assert tx.transaction_number == "TR-2026-00001"
    assert _status(db, laptop) == AssetStatus.reserved.value
    first_item, second_item = tx.items

    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=first_item.id)], tech)
    assert _status(db, laptop) == AssetStatus.available.value

    with pytest.raises(ItemsStillOutstanding) as exc:
        svc.close_assignment(db, assignment.id, tech)
    assert exc.value.context["outstanding"] == 1

    svc.process_return(db, assignment.id, [ReturnLine(
        borrow_item_id=second_item.id,
        condition=ReturnCondition.damaged,
        damage_charge=Decimal("500"),
        damage_notes="Cracked lens",
    )], tech)
    assert _status(db, projector) == AssetStatus.maintenance.value

    closed = svc.close_assignment(db, assignment.id, tech, notes="End of term")
    assert closed.status == "Closed"
    assert closed.closed_by == tech.id

    detail = svc.get_assignment_detail(db, assignment.id)
    assert detail["active_items"] == []
    assert detail["borrowed_count"] == 2
    assert detail["returned_count"] == 2

    types = [event_type for event_type, _ in events]
    assert "assets.borrowed" in types
    assert "assets.damaged" in types
    assert types[-1] == "assignment.closed"
    damaged = next(payload for event_type, payload in events if event_type == "assets.damaged")
    assert damaged["total_charge"] == "500.00"


def test_close_without_history_is_rejected(db, people, assignment):
    with pytest.raises(ItemsStillOutstanding) as exc:
        svc.close_assignment(db, assignment.id, people["tech"])
    assert exc.value.context == {"outstanding": 0, "borrowed": 0}
    db.refresh(assignment)
    assert assignment.status == "Active"


def test_close_records_closure_signature(db, people, assignment):
    laptop = _create_asset(db, "NB-013")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])

    closed = svc.close_assignment(
        db, assignment.id, people["tech"], closure_signature="data:image/png;base64,AAAA"
    )
    assert closed.closure_signature == "data:image/png;base64,AAAA"

    reopened = svc.reopen_assignment(db, assignment.id, people["admin"])
    assert reopened.closure_signature is None


def test_close_twice(db, people, assignment):
    laptop = _create_asset(db, "NB-010")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])
    svc.close_assignment(db, assignment.id, people["tech"])
    with pytest.raises(InvalidStatus):
        svc.close_assignment(db, assignment.id, people["tech"])


def test_reopen_closed_assignment(db, people, assignment):
    laptop = _create_asset(db, "NB-011")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])
    svc.close_assignment(db, assignment.id, people["tech"])

    reopened = svc.reopen_assignment(db, assignment.id, people["admin"])
    assert reopened.status == "Active"
    assert reopened.closed_at is None


def test_borrowing_on_closed_assignment(db, people, assignment):
    laptop = _create_asset(db, "NB-012")
    tablet = _create_asset(db, "TB-012")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])
    svc.close_assignment(db, assignment.id, people["tech"])
    with pytest.raises(InvalidStatus):
        svc.add_borrow_transaction(db, assignment.id, [tablet.id], people["tech"])


# ─── Availability ────────────────────────────────────────────────────────────

def test_asset_cannot_be_in_two_baskets(db, people, assignment):
    laptop = _create_asset(db, "NB-020")
    other = svc.create_assignment(db, people["teacher2"].id, "2026", 1, people["tech"])
    svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])

    with pytest.raises(AssetUnavailable):
        svc.add_borrow_transaction(db, other.id, [laptop.id], people["tech"])


def test_asset_in_maintenance_is_unavailable(db, people, assignment):
    broken = _create_asset(db, "NB-021", status=AssetStatus.maintenance.value)
    with pytest.raises(AssetUnavailable) as exc:
        svc.add_borrow_transaction(db, assignment.id, [broken.id], people["tech"])
    assert exc.value.context["status"] == "Maintenance"


def test_duplicate_asset_in_one_request(db, people, assignment):
    laptop = _create_asset(db, "NB-022")
    with pytest.raises(AssetUnavailable):
        svc.add_borrow_transaction(db, assignment.id, [laptop.id, laptop.id], people["tech"])
    assert _status(db, laptop) == AssetStatus.available.value


def test_failed_borrow_leaves_nothing_behind(db, people, assignment):
    laptop = _create_asset(db, "NB-023")
    lost = _create_asset(db, "NB-024", status=AssetStatus.lost.value)
    with pytest.raises(AssetUnavailable):
        svc.add_borrow_transaction(db, assignment.id, [laptop.id, lost.id], people["tech"])
    assert _status(db, laptop) == AssetStatus.available.value
    assert svc.borrowed_items(db, assignment.id) == []


# ─── Returns ─────────────────────────────────────────────────────────────────

def test_return_twice(db, people, assignment):
    laptop = _create_asset(db, "NB-030")
    tablet = _create_asset(db, "TB-030")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id, tablet.id], people["tech"])
    item_id = tx.items[0].id
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=item_id)], people["tech"])

    with pytest.raises(AlreadyReturned):
        svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=item_id)], people["tech"])


def test_return_item_from_other_assignment(db, people, assignment):
    laptop = _create_asset(db, "NB-031")
    other = svc.create_assignment(db, people["teacher2"].id, "2026", 1, people["tech"])
    tx = svc.add_borrow_transaction(db, other.id, [laptop.id], people["tech"])

    with pytest.raises(NotBorrowed):
        svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])


def test_return_unknown_item(db, people, assignment):
    with pytest.raises(NotBorrowed):
        svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=9999)], people["tech"])


def test_charge_on_good_return_is_rejected(db, people, assignment):
    laptop = _create_asset(db, "NB-032")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    with pytest.raises(QuantityViolation):
        svc.process_return(db, assignment.id, [ReturnLine(
            borrow_item_id=tx.items[0].id,
            damage_charge=Decimal("10"),
        )], people["tech"])
    assert len(svc.active_items(db, assignment.id)) == 1


def test_lost_return_marks_asset_lost(db, people, assignment):
    laptop = _create_asset(db, "NB-033")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(
        borrow_item_id=tx.items[0].id,
        condition=ReturnCondition.lost,
        damage_charge=Decimal("899.90"),
    )], people["tech"])
    assert _status(db, laptop) == AssetStatus.lost.value


# ─── Signing ─────────────────────────────────────────────────────────────────

def test_sign_flow(db, people, assignment):
    laptop = _create_asset(db, "NB-040")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"], now=T0)

    tx = svc.generate_signature_token(db, tx.id, people["teacher"], now=T0)
    token = tx.signature_token
    assert len(token) == 64
    assert svc.signature_url(tx).endswith(f"/api/sign/{token}")

    signed = svc.sign_borrow_transaction(db, token, "data:image/png;base64,AAAA", now=T0 + timedelta(hours=1))
    assert signed.is_signed is True
    assert signed.signature_token is None
    assert _status(db, laptop) == AssetStatus.borrowed.value


def test_token_is_single_use(db, people, assignment):
    laptop = _create_asset(db, "NB-041")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"], now=T0)
    token = svc.generate_signature_token(db, tx.id, people["tech"], now=T0).signature_token
    svc.sign_borrow_transaction(db, token, "sig", now=T0)

    with pytest.raises(InvalidOrExpiredToken):
        svc.sign_borrow_transaction(db, token, "sig", now=T0)


def test_expired_token(db, people, assignment):
    laptop = _create_asset(db, "NB-042")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"], now=T0)
    token = svc.generate_signature_token(db, tx.id, people["tech"], now=T0).signature_token

    with pytest.raises(InvalidOrExpiredToken):
        svc.sign_borrow_transaction(db, token, "sig", now=T0 + timedelta(hours=169))
    assert _status(db, laptop) == AssetStatus.reserved.value


def test_other_user_cannot_request_signature_link(db, people, assignment):
    laptop = _create_asset(db, "NB-043")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"])
    with pytest.raises(PermissionDenied):
        svc.generate_signature_token(db, tx.id, people["teacher2"])


# ─── Cancelling ──────────────────────────────────────────────────────────────

def test_cancel_unsigned_releases_assets(db, people, assignment, events):
    laptop = _create_asset(db, "NB-050")
    tablet = _create_asset(db, "TB-050")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id, tablet.id], people["tech"])

    cancelled = svc.cancel_borrow_transaction(db, tx.id, people["tech"])
    assert cancelled.is_cancelled is True
    assert _status(db, laptop) == AssetStatus.available.value
    assert _status(db, tablet) == AssetStatus.available.value
    assert svc.active_items(db, assignment.id) == []
    assert events[-1][0] == "borrow.cancelled"

    # released assets can be lent again
    other = svc.create_assignment(db, people["teacher2"].id, "2026", 1, people["tech"])
    svc.add_borrow_transaction(db, other.id, [laptop.id], people["tech"])
    assert _status(db, laptop) == AssetStatus.reserved.value


def test_cancel_signed_transaction(db, people, assignment):
    laptop = _create_asset(db, "NB-051")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"], now=T0)
    token = svc.generate_signature_token(db, tx.id, people["tech"], now=T0).signature_token
    svc.sign_borrow_transaction(db, token, "sig", now=T0)

    with pytest.raises(AlreadySigned):
        svc.cancel_borrow_transaction(db, tx.id, people["tech"])
    assert _status(db, laptop) == AssetStatus.borrowed.value


def test_cancel_after_partial_return(db, people, assignment):
    laptop = _create_asset(db, "NB-052")
    tablet = _create_asset(db, "TB-052")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id, tablet.id], people["tech"])
    svc.process_return(db, assignment.id, [ReturnLine(borrow_item_id=tx.items[0].id)], people["tech"])

    with pytest.raises(AlreadyReturned):
        svc.cancel_borrow_transaction(db, tx.id, people["tech"])


def test_cancelled_token_no_longer_signs(db, people, assignment):
    laptop = _create_asset(db, "NB-053")
    tx = svc.add_borrow_transaction(db, assignment.id, [laptop.id], people["tech"], now=T0)
    token = svc.generate_signature_token(db, tx.id, people["tech"], now=T0).signature_token
    svc.cancel_borrow_transaction(db, tx.id, people["tech"])

    with pytest.raises(InvalidOrExpiredToken):
        svc.sign_borrow_transaction(db, token, "sig", now=T0)
