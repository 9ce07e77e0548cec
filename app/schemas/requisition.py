from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from app.models.requisition import RequestedFor, Urgency


class RequisitionLineIn(BaseModel):
    item_id: int
    quantity_requested: int = Field(..., gt=0)
    estimated_unit_cost: Decimal | None = Field(None, ge=0, decimal_places=2)


class RequisitionCreate(BaseModel):
    requested_for: RequestedFor = RequestedFor.department
    department_id: int | None = None
    purpose: str | None = None
    urgency: Urgency = Urgency.normal
    items: list[RequisitionLineIn] = Field(default_factory=list)


class RequisitionUpdate(BaseModel):
    requested_for: RequestedFor | None = None
    purpose: str | None = None
    urgency: Urgency | None = None
    items: list[RequisitionLineIn] | None = None


class ApprovalRequest(BaseModel):
    # item_id -> approved quantity; missing lines default to the requested quantity
    quantities: dict[int, int] = Field(default_factory=dict)


class RejectRequest(BaseModel):
    reason: str = ""


class IssueRequest(BaseModel):
    # item_id -> quantity handed out now
    quantities: dict[int, int] = Field(default_factory=dict)
    location_id: int | None = None
    finalize: bool = False


class RequisitionItemResponse(BaseModel):
    id: int
    item_id: int
    quantity_requested: int
    quantity_approved: int | None
    quantity_issued: int
    estimated_unit_cost: Decimal

    model_config = {"from_attributes": True}


class RequisitionResponse(BaseModel):
    id: int
    requisition_no: str
    requested_by: int
    requested_for: str
    department_id: int
    purpose: str | None
    urgency: str
    status: str
    total_estimated_cost: Decimal
    created_at: datetime
    submitted_at: datetime | None
    approved_l1_by: int | None
    approved_l1_at: datetime | None
    approved_l2_by: int | None
    approved_l2_at: datetime | None
    rejected_by: int | None
    rejected_at: datetime | None
    rejection_reason: str | None
    issue_location_id: int | None
    completed_at: datetime | None
    items: list[RequisitionItemResponse]

    model_config = {"from_attributes": True}
