from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field


class StationaryItemCreate(BaseModel):
    item_code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    uom: str = "pcs"
    unit_cost: Decimal | None = Field(None, ge=0, decimal_places=2)
    reorder_level: int = Field(0, ge=0)


class StationaryItemUpdate(BaseModel):
    name: str | None = None
    uom: str | None = None
    unit_cost: Decimal | None = Field(None, ge=0, decimal_places=2)
    reorder_level: int | None = Field(None, ge=0)
    is_active: bool | None = None


class StationaryItemResponse(StationaryItemCreate):
    id: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class StockLocationCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)


class StockLocationResponse(StockLocationCreate):
    id: int
    is_active: bool

    model_config = {"from_attributes": True}


class VendorCreate(BaseModel):
    vendor_code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: str | None = None
    email: EmailStr | None = None
    phone: str | None = None


class VendorResponse(VendorCreate):
    id: int
    is_active: bool

    model_config = {"from_attributes": True}


class StockLevelResponse(BaseModel):
    id: int
    item_id: int
    location_id: int
    quantity: int
    unit_cost: Decimal | None
    updated_at: datetime
    item: StationaryItemResponse
    location: StockLocationResponse

    model_config = {"from_attributes": True}


class StockAdjustment(BaseModel):
    item_id: int
    location_id: int
    delta: int
    reason: str = Field(..., min_length=1, max_length=64)


class StockTransfer(BaseModel):
    item_id: int
    from_location_id: int
    to_location_id: int
    quantity: int = Field(..., gt=0)
    reason: str | None = Field(None, max_length=64)


class StockTransferResponse(BaseModel):
    source: StockLevelResponse
    destination: StockLevelResponse


class StockMovementResponse(BaseModel):
    id: int
    item_id: int
    location_id: int
    movement_type: str
    quantity: int
    reference: str | None
    created_by: int | None
    created_at: datetime

    model_config = {"from_attributes": True}
