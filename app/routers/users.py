from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.schemas.user import (
    DepartmentCreate,
    DepartmentResponse,
    PermissionResponse,
    PermissionUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)
import app.services.user_service as svc

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users", response_model=list[UserResponse])
def list_users(department_id: int | None = Query(None), db: Session = Depends(get_db)):
    return svc.get_users(db, department_id=department_id)


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_user(db, data, actor)


@router.get("/users/me", response_model=UserResponse)
def me(actor: User = Depends(get_current_user)):
    return actor


@router.get("/users/me/modules", response_model=dict[str, bool])
def my_modules(db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.module_access(db, actor)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return svc.update_user(db, user_id, data, actor)


@router.get("/departments", response_model=list[DepartmentResponse])
def list_departments(db: Session = Depends(get_db)):
    return svc.get_departments(db)


@router.post("/departments", response_model=DepartmentResponse, status_code=201)
def create_department(data: DepartmentCreate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.create_department(db, data, actor)


@router.get("/permissions", response_model=list[PermissionResponse])
def list_permissions(role: str = Query(""), db: Session = Depends(get_db)):
    return svc.get_permissions(db, role=role)


@router.put("/permissions", response_model=PermissionResponse)
def set_permission(data: PermissionUpdate, db: Session = Depends(get_db), actor: User = Depends(get_current_user)):
    return svc.set_permission(db, data, actor)


@router.delete("/permissions/{role}/{module}/{action}", status_code=204)
def revoke_permission(
    role: str,
    module: str,
    action: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    svc.revoke_permission(db, role, module, action, actor)
    return Response(status_code=204)
