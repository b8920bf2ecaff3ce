"""User accounts and application-wide roles."""

from datetime import date, datetime
from typing import Optional

from sqlmodel import Field, SQLModel

ADMIN_ROLE_ID = 1
USER_ROLE_ID = 2
MODERATOR_ROLE_ID = 3
EDITOR_ROLE_ID = 4
MUSICIAN_ROLE_ID = 5

DEFAULT_ROLES = [
    (ADMIN_ROLE_ID, "admin"),
    (USER_ROLE_ID, "user"),
    (MODERATOR_ROLE_ID, "moderator"),
    (EDITOR_ROLE_ID, "editor"),
    (MUSICIAN_ROLE_ID, "musician"),
]


class Role(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)


class UserRole(SQLModel, table=True):
    __tablename__ = "user_role"

    user_id: int = Field(foreign_key="user.id", primary_key=True)
    role_id: int = Field(foreign_key="role.id", primary_key=True)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = Field(default=None, unique=True, index=True)
    phone: str = Field(unique=True, index=True)
    password: str  # bcrypt hash, never serialized
    birthdate: Optional[date] = None
    status: str = Field(default="inactive")  # active|inactive
    refresh_token: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
