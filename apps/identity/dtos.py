"""DTOs for Identity app."""
from dataclasses import dataclass
from uuid import UUID
from typing import Optional, List

from ninja import Schema
from .models import UserRole


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    role: str
    phone: str
    is_active: bool
    permissions: List[str]


class UserOut(Schema):
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    role: str
    phone: str
    is_active: bool
    permissions: List[str]


class UserCreate(Schema):
    username: str
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    role: UserRole = UserRole.STAFF
    phone: Optional[str] = None


class UserUpdate(Schema):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None
