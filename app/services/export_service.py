import io
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import select
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from app import clock
from app.models.ticket import Ticket
from app.models.stationary import StationaryItem, StockLevel, StockLocation, StockMovement
from app.services import sla
from app.services.ticket_service import sla_status_for


_HEADER_FILL = PatternFill(start_color="1C2D42", end_color="1C2D42", fill_type="solid")
_HEADER_FONT = Font(bold=True, color="F5A623", size=11)

_SLA_FILLS = {
    sla.WITHIN_SLA: PatternFill(start_color="D9F2D9", end_color="D9F2D9", fill_type="solid"),
    sla.AT_RISK: PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid"),
    sla.BREACHED: PatternFill(start_color="F8CBAD", end_color="F8CBAD", fill_type="solid"),
}


def _write_header(ws, headers: list[str], widths: list[int]) -> None:
    for col, h in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=h)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
    for i, w in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(i)].width = w
    ws.row_dimensions[1].height = 22
    ws.freeze_panes = "A2"


def _fmt(value: datetime | None) -> str:
    value = clock.as_utc(value)
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def export_tickets_excel(db: Session, now: datetime | None = None, status: str = "") -> bytes:
    """Tickets with their SLA status as of ``now``."""
    now = now or clock.now()
    wb = Workbook()
    ws = wb.active
    ws.title = "Tickets"
    _write_header(
        ws,
        ["Number", "Type", "Title", "Status", "Priority", "Reported", "SLA deadline",
         "SLA status", "Time remaining", "Assigned to", "Resolved"],
        [16, 6, 40, 12, 10, 18, 18, 14, 22, 12, 18],
    )

    query = select(Ticket).order_by(Ticket.reported_at.desc(), Ticket.id.desc())
    if status:
        query = query.where(Ticket.status == status)
    for row_num, ticket in enumerate(db.scalars(query).all(), 2):
        sla_status = sla_status_for(ticket, now)
        ws.cell(row=row_num, column=1, value=ticket.ticket_number)
        ws.cell(row=row_num, column=2, value=ticket.type)
        ws.cell(row=row_num, column=3, value=ticket.title)
        ws.cell(row=row_num, column=4, value=ticket.status)
        ws.cell(row=row_num, column=5, value=ticket.priority)
        ws.cell(row=row_num, column=6, value=_fmt(ticket.reported_at))
        ws.cell(row=row_num, column=7, value=_fmt(ticket.sla_deadline))
        sla_cell = ws.cell(row=row_num, column=8, value=sla.status_label(sla_status))
        if sla_status in _SLA_FILLS:
            sla_cell.fill = _SLA_FILLS[sla_status]
        if ticket.status in ("open", "assigned", "in_progress"):
            ws.cell(row=row_num, column=9, value=sla.format_time_remaining(ticket.sla_deadline, now))
        ws.cell(row=row_num, column=10, value=ticket.assigned_to)
        ws.cell(row=row_num, column=11, value=_fmt(ticket.resolved_at))

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_stock_excel(db: Session) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Stock"
    _write_header(
        ws,
        ["Item code", "Item", "UoM", "Location", "Quantity", "Reorder level", "Unit cost", "Value", "Reorder"],
        [14, 32, 8, 16, 10, 14, 12, 12, 10],
    )

    rows = db.execute(
        select(StockLevel, StationaryItem, StockLocation)
        .join(StationaryItem, StockLevel.item_id == StationaryItem.id)
        .join(StockLocation, StockLevel.location_id == StockLocation.id)
        .order_by(StationaryItem.item_code, StockLocation.code)
    ).all()
    for row_num, (level, item, location) in enumerate(rows, 2):
        unit_cost = level.unit_cost if level.unit_cost is not None else item.unit_cost
        ws.cell(row=row_num, column=1, value=item.item_code)
        ws.cell(row=row_num, column=2, value=item.name)
        ws.cell(row=row_num, column=3, value=item.uom)
        ws.cell(row=row_num, column=4, value=location.code)
        ws.cell(row=row_num, column=5, value=level.quantity)
        ws.cell(row=row_num, column=6, value=item.reorder_level)
        ws.cell(row=row_num, column=7, value=float(unit_cost) if unit_cost is not None else None)
        ws.cell(row=row_num, column=8, value=float(unit_cost * level.quantity) if unit_cost is not None else None)
        ws.cell(row=row_num, column=9, value="Yes" if level.quantity <= item.reorder_level else "")

    # Movement log sheet
    ws2 = wb.create_sheet("Movements")
    _write_header(ws2, ["Date", "Item code", "Location", "Type", "Quantity", "Reference"], [18, 14, 16, 10, 10, 20])
    movements = db.execute(
        select(StockMovement, StationaryItem.item_code, StockLocation.code)
        .join(StationaryItem, StockMovement.item_id == StationaryItem.id)
        .join(StockLocation, StockMovement.location_id == StockLocation.id)
        .order_by(StockMovement.id)
    ).all()
    for row_num, (movement, item_code, location_code) in enumerate(movements, 2):
        ws2.cell(row=row_num, column=1, value=_fmt(movement.created_at))
        ws2.cell(row=row_num, column=2, value=item_code)
        ws2.cell(row=row_num, column=3, value=location_code)
        ws2.cell(row=row_num, column=4, value=movement.movement_type)
        ws2.cell(row=row_num, column=5, value=movement.quantity)
        ws2.cell(row=row_num, column=6, value=movement.reference or "")

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
