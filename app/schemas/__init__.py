from app.schemas.user import UserCreate, UserUpdate, UserResponse
from app.schemas.asset import AssetCreate, AssetUpdate, AssetResponse
from app.schemas.assignment import AssignmentCreate, AssignmentResponse, BorrowRequest, ReturnRequest
from app.schemas.requisition import RequisitionCreate, RequisitionResponse
from app.schemas.purchase_order import PurchaseOrderCreate, PurchaseOrderResponse
from app.schemas.ticket import TicketCreate, TicketResponse
from app.schemas.pagination import Page

__all__ = [
    "UserCreate", "UserUpdate", "UserResponse",
    "AssetCreate", "AssetUpdate", "AssetResponse",
    "AssignmentCreate", "AssignmentResponse", "BorrowRequest", "ReturnRequest",
    "RequisitionCreate", "RequisitionResponse",
    "PurchaseOrderCreate", "PurchaseOrderResponse",
    "TicketCreate", "TicketResponse",
    "Page",
]
