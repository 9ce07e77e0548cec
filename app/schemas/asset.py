from datetime import datetime, date
from decimal import Decimal
from pydantic import BaseModel, Field
from app.models.asset import AssetType, AssetStatus


class AssetBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    asset_type: AssetType = AssetType.it
    category: str | None = None
    serial_number: str | None = None
    purchase_date: date | None = None
    purchase_price: Decimal | None = Field(None, ge=0, decimal_places=2)


class AssetCreate(AssetBase):
    pass


class AssetUpdate(BaseModel):
    name: str | None = None
    category: str | None = None
    serial_number: str | None = None
    purchase_date: date | None = None
    purchase_price: Decimal | None = Field(None, ge=0, decimal_places=2)


class AssetStatusChange(BaseModel):
    # Borrow statuses are driven by the assignment engine only
    status: AssetStatus
    note: str | None = None


class AssetBrief(BaseModel):
    id: int
    code: str
    name: str
    status: str

    model_config = {"from_attributes": True}


class AssetResponse(AssetBase):
    id: int
    status: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
