from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

DEFAULT_CHURCH_ROLES = [
    ("Pastor", "Encargado principal de la iglesia"),
    ("Líder de Alabanza", "Encargado de la música y adoración"),
    ("Músico", "Parte del equipo de alabanza"),
    ("Líder de Jóvenes", "Dirige el ministerio juvenil"),
    ("Diácono", "Apoya en el servicio práctico de la iglesia"),
    ("Maestro", "Enseña a niños o adultos en la iglesia"),
    ("Evangelista", "Predica el evangelio y hace trabajo misionero"),
    ("Intercesor", "Encargado de la oración e intercesión"),
    ("Consejero", "Ayuda a personas con problemas y necesidades"),
    ("Tesorero", "Maneja las finanzas y recursos de la iglesia"),
    ("Consejo de Ancianos", "Grupo de líderes espirituales de la iglesia"),
    ("Danza y teatro", "Encargado de la danza y teatro en la iglesia"),
    ("Encargado de eventos web", "Encargado de el streaming de eventos en la aplicación"),
]


class Church(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    country: str
    address: str
    aniversary: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    memberships: List["Membership"] = Relationship(back_populates="church")


class ChurchRole(SQLModel, table=True):
    __tablename__ = "church_role"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    description: Optional[str] = None


class Membership(SQLModel, table=True):
    """A user's membership in a church."""

    __table_args__ = (UniqueConstraint("user_id", "church_id", name="uq_membership_user_church"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    church_id: int = Field(foreign_key="church.id", index=True)
    active: bool = Field(default=True)
    member_since: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    church: Optional[Church] = Relationship(back_populates="memberships")
    roles: List["ChurchMemberRole"] = Relationship(back_populates="membership")


class ChurchMemberRole(SQLModel, table=True):
    """Assignment of a church role to a membership over a time window."""

    __tablename__ = "church_member_role"

    id: Optional[int] = Field(default=None, primary_key=True)
    membership_id: int = Field(foreign_key="membership.id", index=True)
    role_id: int = Field(foreign_key="church_role.id")
    start_date: datetime = Field(default_factory=datetime.utcnow)
    end_date: Optional[datetime] = None
    active: bool = Field(default=True)

    membership: Optional[Membership] = Relationship(back_populates="roles")
    role: Optional[ChurchRole] = Relationship()
