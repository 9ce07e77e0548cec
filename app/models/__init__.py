from app.models.user import User, Department, RolePermission
from app.models.asset import Asset
from app.models.assignment import Assignment, BorrowTransaction, BorrowItem, ReturnTransaction, ReturnItem
from app.models.stationary import StationaryItem, StockLocation, StockLevel, StockMovement, Vendor
from app.models.requisition import StationaryRequisition, RequisitionItem
from app.models.purchase_order import StationaryPurchaseOrder, PurchaseOrderItem
from app.models.ticket import Ticket, TicketActivity

__all__ = [
    "User", "Department", "RolePermission",
    "Asset",
    "Assignment", "BorrowTransaction", "BorrowItem", "ReturnTransaction", "ReturnItem",
    "StationaryItem", "StockLocation", "StockLevel", "StockMovement", "Vendor",
    "StationaryRequisition", "RequisitionItem",
    "StationaryPurchaseOrder", "PurchaseOrderItem",
    "Ticket", "TicketActivity",
]
