from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import PermissionDenied
from app.models.user import User
from app.routers.deps import get_current_user
from app.services import authorization as authz
import app.services.export_service as svc

router = APIRouter(prefix="/api", tags=["export"])

_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/export/tickets.xlsx")
def export_tickets(
    status: str = Query(""),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    if authz.scope_for(db, actor, "tickets", "view") != authz.GLOBAL:
        raise PermissionDenied("Exporting tickets needs global view access", module="tickets", action="view")
    return Response(
        content=svc.export_tickets_excel(db, status=status),
        media_type=_XLSX,
        headers={"Content-Disposition": "attachment; filename=tickets.xlsx"},
    )


@router.get("/export/stock.xlsx")
def export_stock(db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    authz.require_permission(db, actor, "stationary", "manage")
    return Response(
        content=svc.export_stock_excel(db),
        media_type=_XLSX,
        headers={"Content-Disposition": "attachment; filename=stock.xlsx"},
    )
