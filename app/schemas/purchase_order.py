from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field


class POLineIn(BaseModel):
    item_id: int
    quantity_ordered: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)


class PurchaseOrderCreate(BaseModel):
    vendor_id: int
    location_id: int
    expected_delivery: date | None = None
    tax_amount: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    shipping_cost: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    notes: str | None = None
    items: list[POLineIn] = Field(..., min_length=1)


class ReceiveRequest(BaseModel):
    # item_id -> quantity arriving now; may be negative only to be rejected
    quantities: dict[int, int]


class CancelRequest(BaseModel):
    reason: str | None = None


class POItemResponse(BaseModel):
    id: int
    item_id: int
    quantity_ordered: int
    quantity_received: int
    unit_price: Decimal
    total_price: Decimal

    model_config = {"from_attributes": True}


class PurchaseOrderResponse(BaseModel):
    id: int
    po_number: str
    vendor_id: int
    location_id: int
    status: str
    order_date: datetime | None
    expected_delivery: date | None
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    notes: str | None
    created_by: int | None
    created_at: datetime
    approved_by: int | None
    approved_at: datetime | None
    received_by: int | None
    received_at: datetime | None
    closed_at: datetime | None
    cancelled_at: datetime | None
    items: list[POItemResponse]

    model_config = {"from_attributes": True}
