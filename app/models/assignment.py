import enum
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Integer, ForeignKey, String, DateTime, Boolean, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class AssignmentStatus(str, enum.Enum):
    active = "Active"
    closed = "Closed"


class ReturnCondition(str, enum.Enum):
    good = "Good"
    damaged = "Damaged"
    lost = "Lost"


class Assignment(Base):
    """A user's loan basket for one academic term."""

    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    assignment_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), default=AssignmentStatus.active.value, nullable=False)
    academic_year: Mapped[str] = mapped_column(String(16), nullable=False)
    term: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    closure_notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    closure_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    user: Mapped["User"] = relationship(foreign_keys=[user_id])
    borrow_transactions: Mapped[list["BorrowTransaction"]] = relationship(
        back_populates="assignment", order_by="BorrowTransaction.id"
    )
    return_transactions: Mapped[list["ReturnTransaction"]] = relationship(
        back_populates="assignment", order_by="ReturnTransaction.id"
    )


class BorrowTransaction(Base):
    """Append-only once signed or once any of its items came back."""

    __tablename__ = "borrow_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id"), nullable=False, index=True)
    transaction_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    borrow_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    is_signed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_token: Mapped[str | None] = mapped_column(String(64), unique=True, index=True, nullable=True)
    signature_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    assignment: Mapped["Assignment"] = relationship(back_populates="borrow_transactions")
    items: Mapped[list["BorrowItem"]] = relationship(back_populates="transaction", order_by="BorrowItem.id")


class BorrowItem(Base):
    __tablename__ = "borrow_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    borrow_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("borrow_transactions.id"), nullable=False, index=True
    )
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), nullable=False, index=True)

    transaction: Mapped["BorrowTransaction"] = relationship(back_populates="items")
    asset: Mapped["Asset"] = relationship()
    return_item: Mapped["ReturnItem | None"] = relationship(back_populates="borrow_item")


class ReturnTransaction(Base):
    __tablename__ = "return_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id"), nullable=False, index=True)
    return_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    checked_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    checker_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    assignment: Mapped["Assignment"] = relationship(back_populates="return_transactions")
    items: Mapped[list["ReturnItem"]] = relationship(back_populates="transaction", order_by="ReturnItem.id")


class ReturnItem(Base):
    __tablename__ = "return_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    return_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("return_transactions.id"), nullable=False, index=True
    )
    # unique: a borrowed item comes back at most once
    borrow_item_id: Mapped[int] = mapped_column(ForeignKey("borrow_items.id"), unique=True, nullable=False)
    condition: Mapped[str] = mapped_column(String(16), nullable=False)
    damage_notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    damage_charge: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    transaction: Mapped["ReturnTransaction"] = relationship(back_populates="items")
    borrow_item: Mapped["BorrowItem"] = relationship(back_populates="return_item")
