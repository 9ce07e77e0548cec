from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from app.models.assignment import ReturnCondition
from app.schemas.asset import AssetBrief


class AssignmentCreate(BaseModel):
    user_id: int
    academic_year: str = Field(..., min_length=4, max_length=16)
    term: int = Field(..., ge=1, le=4)


class BorrowRequest(BaseModel):
    asset_ids: list[int] = Field(..., min_length=1)
    notes: str | None = None


class ReturnLine(BaseModel):
    borrow_item_id: int
    condition: ReturnCondition = ReturnCondition.good
    damage_charge: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    damage_notes: str | None = None


class ReturnRequest(BaseModel):
    items: list[ReturnLine] = Field(..., min_length=1)
    checker_signature: str | None = None
    notes: str | None = None


class CloseRequest(BaseModel):
    notes: str | None = None
    closure_signature: str | None = None


class SignRequest(BaseModel):
    signature: str = Field(..., min_length=1)


class BorrowItemResponse(BaseModel):
    id: int
    borrow_transaction_id: int
    asset_id: int
    asset: AssetBrief

    model_config = {"from_attributes": True}


class BorrowTransactionResponse(BaseModel):
    id: int
    assignment_id: int
    transaction_number: str
    borrow_date: datetime
    created_by: int | None
    notes: str | None
    is_signed: bool
    signed_at: datetime | None
    is_cancelled: bool
    cancelled_at: datetime | None
    items: list[BorrowItemResponse]

    model_config = {"from_attributes": True}


class SignatureLinkResponse(BaseModel):
    transaction_number: str
    token: str
    url: str
    expires_at: datetime


class ReturnItemResponse(BaseModel):
    id: int
    borrow_item_id: int
    condition: str
    damage_notes: str | None
    damage_charge: Decimal

    model_config = {"from_attributes": True}


class ReturnTransactionResponse(BaseModel):
    id: int
    assignment_id: int
    return_date: datetime
    checked_by: int | None
    notes: str | None
    items: list[ReturnItemResponse]

    model_config = {"from_attributes": True}


class AssignmentResponse(BaseModel):
    id: int
    assignment_number: str
    user_id: int
    status: str
    academic_year: str
    term: int
    created_by: int | None
    created_at: datetime
    closed_at: datetime | None
    closed_by: int | None
    closure_notes: str | None

    model_config = {"from_attributes": True}


class AssignmentDetail(BaseModel):
    assignment: AssignmentResponse
    active_items: list[BorrowItemResponse]
    borrowed_count: int
    returned_count: int
    borrow_transactions: list[BorrowTransactionResponse]
    return_transactions: list[ReturnTransactionResponse]
