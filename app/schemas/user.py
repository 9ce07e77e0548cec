from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class DepartmentCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)


class DepartmentResponse(DepartmentCreate):
    id: int
    is_active: bool

    model_config = {"from_attributes": True}


class UserBase(BaseModel):
    username: str = Field(..., min_length=2, max_length=64)
    email: EmailStr
    full_name: str | None = None
    role: str = "user"
    department_id: int | None = None
    is_active: bool = True


class UserCreate(UserBase):
    pass


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    full_name: str | None = None
    role: str | None = None
    department_id: int | None = None
    is_active: bool | None = None


class UserResponse(UserBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PermissionResponse(BaseModel):
    id: int
    role: str
    module: str
    action: str
    scope: str

    model_config = {"from_attributes": True}


class PermissionUpdate(BaseModel):
    role: str
    module: str
    action: str
    scope: str = Field(..., pattern="^(own|department|global)$")
