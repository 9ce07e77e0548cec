from datetime import datetime
from pydantic import BaseModel, Field
from app.models.ticket import TicketType, TicketPriority


class TicketCreate(BaseModel):
    type: TicketType = TicketType.it
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: TicketPriority = TicketPriority.medium
    asset_id: int | None = None


class AssignRequest(BaseModel):
    assignee_id: int | None = None


class ResolveRequest(BaseModel):
    resolution: str = ""


class CommentRequest(BaseModel):
    reason: str | None = None


class TicketCommentCreate(BaseModel):
    content: str = Field("", max_length=2000)


class TicketActivityResponse(BaseModel):
    id: int
    actor_id: int | None
    action: str
    from_status: str | None
    to_status: str | None
    details: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    type: str
    title: str
    description: str | None
    status: str
    priority: str
    reported_by: int
    reported_at: datetime
    asset_id: int | None
    sla_deadline: datetime | None
    assigned_to: int | None
    assigned_at: datetime | None
    started_at: datetime | None
    resolved_at: datetime | None
    resolution: str | None
    closed_at: datetime | None
    cancelled_at: datetime | None
    # derived on read
    sla_status: str | None = None
    sla_label: str | None = None
    time_remaining: str | None = None

    model_config = {"from_attributes": True}


class SlaSweepResponse(BaseModel):
    checked: int
    at_risk: list[str]
    breached: list[str]
