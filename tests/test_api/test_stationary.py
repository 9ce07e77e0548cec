"""API tests for stationary stock, requisitions and purchase orders."""
import pytest
from decimal import Decimal


@pytest.fixture
def catalog(client, as_user):
    store = as_user("store")
    pen = client.post("/api/stationary/items", json={
        "item_code": "PEN", "name": "Blue pen", "unit_cost": "0.45", "reorder_level": 20,
    }, headers=store).json()["id"]
    paper = client.post("/api/stationary/items", json={
        "item_code": "A4", "name": "A4 paper ream", "uom": "ream", "unit_cost": "4.99",
    }, headers=store).json()["id"]
    location = client.post("/api/stationary/locations", json={"code": "MAIN", "name": "Main store"}, headers=store)
    assert location.status_code == 201
    vendor = client.post("/api/stationary/vendors", json={
        "vendor_code": "PAPERCO", "name": "Paper Co", "email": "orders@paperco.cz",
    }, headers=store)
    assert vendor.status_code == 201
    return {"pen": pen, "paper": paper, "location": location.json()["id"], "vendor": vendor.json()["id"]}


# ─── Stock ───────────────────────────────────────────────────────────────────

def test_stock_adjustment(client, as_user, catalog):
    res = client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": 50, "reason": "stock take",
    }, headers=as_user("store"))
    assert res.status_code == 200
    assert res.json()["quantity"] == 50

    res = client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": -60, "reason": "stock take",
    }, headers=as_user("store"))
    assert res.status_code == 422
    assert res.json()["detail"]["error"] == "QuantityViolation"

    movements = client.get(f"/api/stationary/movements?item_id={catalog['pen']}").json()
    assert [m["quantity"] for m in movements] == [50]


def test_teacher_cannot_adjust_stock(client, as_user, catalog):
    res = client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": 5, "reason": "found a box",
    }, headers=as_user("teacher"))
    assert res.status_code == 403


def test_stock_transfer_between_locations(client, as_user, catalog):
    store = as_user("store")
    client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": 20, "reason": "opening",
    }, headers=store)
    lab = client.post("/api/stationary/locations", json={"code": "LAB", "name": "Chemistry lab"}, headers=store).json()["id"]

    res = client.post("/api/stationary/stock/transfer", json={
        "item_id": catalog["pen"], "from_location_id": catalog["location"], "to_location_id": lab,
        "quantity": 8, "reason": "lab restock",
    }, headers=store)
    assert res.status_code == 200
    assert res.json()["source"]["quantity"] == 12
    assert res.json()["destination"]["quantity"] == 8
    assert res.json()["destination"]["location"]["code"] == "LAB"

    movements = client.get(f"/api/stationary/movements?item_id={catalog['pen']}").json()
    assert [(m["movement_type"], m["quantity"]) for m in movements] == [
        ("transfer", 8), ("transfer", -8), ("adjust", 20),
    ]


def test_stock_transfer_rejections(client, as_user, catalog):
    store = as_user("store")
    client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": 5, "reason": "opening",
    }, headers=store)
    lab = client.post("/api/stationary/locations", json={"code": "LAB", "name": "Chemistry lab"}, headers=store).json()["id"]
    body = {"item_id": catalog["pen"], "from_location_id": catalog["location"], "to_location_id": lab, "quantity": 6}

    res = client.post("/api/stationary/stock/transfer", json=body, headers=store)
    assert res.status_code == 422
    assert res.json()["detail"]["error"] == "QuantityViolation"

    res = client.post("/api/stationary/stock/transfer", json={**body, "to_location_id": catalog["location"], "quantity": 1}, headers=store)
    assert res.status_code == 409

    res = client.post("/api/stationary/stock/transfer", json={**body, "quantity": 1}, headers=as_user("teacher"))
    assert res.status_code == 403

    stock = client.get(f"/api/stationary/stock?item_id={catalog['pen']}").json()
    assert [level["quantity"] for level in stock] == [5]


# ─── Requisitions ────────────────────────────────────────────────────────────

def test_requisition_approval_and_issue(client, as_user, catalog):
    client.post("/api/stationary/stock/adjust", json={
        "item_id": catalog["pen"], "location_id": catalog["location"], "delta": 50, "reason": "opening",
    }, headers=as_user("store"))

    res = client.post("/api/requisitions", json={
        "purpose": "Exam week",
        "items": [{"item_id": catalog["pen"], "quantity_requested": 10}],
    }, headers=as_user("teacher"))
    assert res.status_code == 201
    req_no = res.json()["requisition_no"]
    assert req_no.startswith("REQ-")

    assert client.post(f"/api/requisitions/{req_no}/submit", headers=as_user("teacher")).json()["status"] == "pending"

    res = client.post(f"/api/requisitions/{req_no}/approve-l1", json={}, headers=as_user("teacher"))
    assert res.status_code == 403
    assert res.json()["detail"]["error"] == "NotAuthorizedApprover"

    res = client.post(
        f"/api/requisitions/{req_no}/approve-l1",
        json={"quantities": {str(catalog["pen"]): 8}},
        headers=as_user("head"),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "approved_l1"
    assert res.json()["items"][0]["quantity_approved"] == 8

    res = client.post(f"/api/requisitions/{req_no}/approve-l2", headers=as_user("director"))
    assert res.json()["status"] == "approved"

    res = client.post(f"/api/requisitions/{req_no}/issue", json={
        "quantities": {str(catalog["pen"]): 9}, "location_id": catalog["location"],
    }, headers=as_user("store"))
    assert res.status_code == 422

    res = client.post(f"/api/requisitions/{req_no}/issue", json={
        "quantities": {str(catalog["pen"]): 8}, "location_id": catalog["location"],
    }, headers=as_user("store"))
    assert res.status_code == 200
    assert res.json()["status"] == "completed"

    stock = client.get(f"/api/stationary/stock?item_id={catalog['pen']}").json()
    assert stock[0]["quantity"] == 42


def test_reject_without_reason(client, as_user, catalog):
    res = client.post("/api/requisitions", json={
        "items": [{"item_id": catalog["pen"], "quantity_requested": 1}],
    }, headers=as_user("teacher"))
    req_no = res.json()["requisition_no"]
    client.post(f"/api/requisitions/{req_no}/submit", headers=as_user("teacher"))

    res = client.post(f"/api/requisitions/{req_no}/reject", json={"reason": ""}, headers=as_user("head"))
    assert res.status_code == 400
    assert res.json()["detail"]["error"] == "MissingRequiredField"


def test_delete_someone_elses_draft(client, as_user, catalog):
    res = client.post("/api/requisitions", json={
        "items": [{"item_id": catalog["pen"], "quantity_requested": 1}],
    }, headers=as_user("teacher"))
    req_no = res.json()["requisition_no"]

    res = client.delete(f"/api/requisitions/{req_no}", headers=as_user("teacher2"))
    assert res.status_code == 403
    assert res.json()["detail"]["error"] == "NotOwner"
    assert client.delete(f"/api/requisitions/{req_no}", headers=as_user("teacher")).status_code == 204


# ─── Purchase orders ─────────────────────────────────────────────────────────

def test_purchase_order_partial_receipts(client, as_user, catalog):
    store = as_user("store")
    res = client.post("/api/purchase-orders", json={
        "vendor_id": catalog["vendor"],
        "location_id": catalog["location"],
        "items": [{"item_id": catalog["paper"], "quantity_ordered": 10, "unit_price": "4.99"}],
    }, headers=store)
    assert res.status_code == 201
    po_number = res.json()["po_number"]
    assert Decimal(res.json()["total_amount"]) == Decimal("49.90")

    client.post(f"/api/purchase-orders/{po_number}/submit", headers=store)
    assert client.post(f"/api/purchase-orders/{po_number}/approve", headers=store).status_code == 403
    client.post(f"/api/purchase-orders/{po_number}/approve", headers=as_user("director"))
    assert client.post(f"/api/purchase-orders/{po_number}/order", headers=store).json()["status"] == "ordered"

    res = client.post(f"/api/purchase-orders/{po_number}/receive", json={"quantities": {str(catalog["paper"]): 4}}, headers=store)
    assert res.json()["status"] == "partially_received"

    res = client.post(f"/api/purchase-orders/{po_number}/receive", json={"quantities": {str(catalog["paper"]): 7}}, headers=store)
    assert res.status_code == 422
    assert res.json()["detail"]["error"] == "OverReceipt"

    res = client.post(f"/api/purchase-orders/{po_number}/receive", json={"quantities": {str(catalog["paper"]): 6}}, headers=store)
    assert res.json()["status"] == "received"
    assert res.json()["items"][0]["quantity_received"] == 10

    assert client.post(f"/api/purchase-orders/{po_number}/close", headers=store).json()["status"] == "closed"

    stock = client.get(f"/api/stationary/stock?item_id={catalog['paper']}").json()
    assert stock[0]["quantity"] == 10


def test_cancel_purchase_order(client, as_user, catalog):
    store = as_user("store")
    po_number = client.post("/api/purchase-orders", json={
        "vendor_id": catalog["vendor"],
        "location_id": catalog["location"],
        "items": [{"item_id": catalog["paper"], "quantity_ordered": 1, "unit_price": "4.99"}],
    }, headers=store).json()["po_number"]

    res = client.post(f"/api/purchase-orders/{po_number}/cancel", json={"reason": "Duplicate"}, headers=store)
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"
    assert client.post(f"/api/purchase-orders/{po_number}/submit", headers=store).status_code == 409


def test_teacher_cannot_list_purchase_orders(client, as_user):
    assert client.get("/api/purchase-orders", headers=as_user("teacher")).status_code == 403
