from sqlalchemy.orm import Session
from sqlalchemy import select
from app.errors import Conflict, NotFound, PermissionDenied
from app.models.user import User, Department, RolePermission
from app.schemas.user import UserCreate, UserUpdate, DepartmentCreate, PermissionUpdate
from app.services import authorization as authz

ADMIN_ROLE = "admin"


def _require_admin(actor: User) -> None:
    if actor.role != ADMIN_ROLE:
        raise PermissionDenied("Only administrators can manage users and permissions")


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found", user_id=user_id)
    return user


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.scalar(select(User).where(User.username == username))


def get_users(db: Session, department_id: int | None = None) -> list[User]:
    query = select(User).where(User.is_active == True)
    if department_id is not None:
        query = query.where(User.department_id == department_id)
    return db.scalars(query.order_by(User.username)).all()


def create_user(db: Session, data: UserCreate, actor: User) -> User:
    _require_admin(actor)
    if get_user_by_username(db, data.username):
        raise Conflict("Username already exists", username=data.username)
    user = User(**data.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, data: UserUpdate, actor: User) -> User:
    _require_admin(actor)
    user = get_user(db, user_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def get_departments(db: Session) -> list[Department]:
    return db.scalars(select(Department).where(Department.is_active == True).order_by(Department.code)).all()


def create_department(db: Session, data: DepartmentCreate, actor: User) -> Department:
    _require_admin(actor)
    if db.scalar(select(Department).where(Department.code == data.code)):
        raise Conflict("Department code already exists", code=data.code)
    department = Department(**data.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    return department


def get_permissions(db: Session, role: str = "") -> list[RolePermission]:
    query = select(RolePermission)
    if role:
        query = query.where(RolePermission.role == role)
    return db.scalars(query.order_by(RolePermission.role, RolePermission.module, RolePermission.action)).all()


def set_permission(db: Session, data: PermissionUpdate, actor: User) -> RolePermission:
    """Grant or re-scope one matrix cell."""
    _require_admin(actor)
    permission = db.scalar(
        select(RolePermission).where(
            RolePermission.role == data.role,
            RolePermission.module == data.module,
            RolePermission.action == data.action,
        )
    )
    if permission is None:
        permission = RolePermission(role=data.role, module=data.module, action=data.action)
        db.add(permission)
    permission.scope = data.scope
    db.commit()
    db.refresh(permission)
    return permission


def revoke_permission(db: Session, role: str, module: str, action: str, actor: User) -> None:
    _require_admin(actor)
    permission = db.scalar(
        select(RolePermission).where(
            RolePermission.role == role,
            RolePermission.module == module,
            RolePermission.action == action,
        )
    )
    if not permission:
        raise NotFound("Permission not found", role=role, module=module, action=action)
    db.delete(permission)
    db.commit()


def module_access(db: Session, actor: User) -> dict[str, bool]:
    modules = sorted({module for modules in authz.DEFAULT_PERMISSIONS.values() for module in modules})
    return {module: authz.has_module_access(db, actor, module) for module in modules}
