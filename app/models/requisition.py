import enum
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class RequisitionStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    approved_l1 = "approved_l1"
    approved = "approved"        # second level passed
    rejected = "rejected"
    issued = "issued"            # partially issued
    completed = "completed"


class RequestedFor(str, enum.Enum):
    personal = "personal"
    department = "department"


class Urgency(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class StationaryRequisition(Base):
    __tablename__ = "stationary_requisitions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    requisition_no: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    requested_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    requested_for: Mapped[str] = mapped_column(String(16), default=RequestedFor.department.value, nullable=False)
    department_id: Mapped[int] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    purpose: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    urgency: Mapped[str] = mapped_column(String(16), default=Urgency.normal.value, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=RequisitionStatus.draft.value, index=True, nullable=False)
    total_estimated_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_l1_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_l1_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_l2_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_l2_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    issue_location_id: Mapped[int | None] = mapped_column(ForeignKey("stock_locations.id"), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    items: Mapped[list["RequisitionItem"]] = relationship(
        back_populates="requisition", order_by="RequisitionItem.id", cascade="all, delete-orphan"
    )


class RequisitionItem(Base):
    __tablename__ = "requisition_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    requisition_id: Mapped[int] = mapped_column(
        ForeignKey("stationary_requisitions.id"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("stationary_items.id"), nullable=False)
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_approved: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity_issued: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    estimated_unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    requisition: Mapped["StationaryRequisition"] = relationship(back_populates="items")
    item: Mapped["StationaryItem"] = relationship()
