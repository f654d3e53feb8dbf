# app/schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List


class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    is_active: bool = True


class UserCreate(UserBase):
    password: str = Field(min_length=6)
    is_admin: bool = False
    role_ids: List[int] = []


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None
    is_admin: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=6)

    # None => keep existing roles
    role_ids: Optional[List[int]] = None


class UserRolesIn(BaseModel):
    role_ids: List[int]


class UserOut(UserBase):
    id: int
    is_admin: bool
    role_ids: List[int]


class UserMiniOut(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
