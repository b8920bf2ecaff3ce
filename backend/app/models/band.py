from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

BAND_LEADER_ROLE = "Líder/Admin"
BAND_MEMBER_ROLE = "Miembro"

INVITATION_TTL_DAYS = 30
MAX_PENDING_INVITATIONS = 5


class Band(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    created_by: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})


class BandMember(SQLModel, table=True):
    __tablename__ = "band_member"
    __table_args__ = (UniqueConstraint("user_id", "band_id", name="uq_band_member_user_band"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    band_id: int = Field(foreign_key="band.id", index=True)
    role: str = Field(default=BAND_MEMBER_ROLE)
    active: bool = Field(default=True)
    is_admin: bool = Field(default=False)
    is_event_manager: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    band: Optional[Band] = Relationship()


class BandInvitation(SQLModel, table=True):
    __tablename__ = "band_invitation"

    id: Optional[int] = Field(default=None, primary_key=True)
    band_id: int = Field(foreign_key="band.id", index=True)
    invited_user_id: int = Field(foreign_key="user.id", index=True)
    invited_by: int = Field(foreign_key="user.id")
    status: str = Field(default="pending")  # pending|accepted|rejected|expired
    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
    responded_at: Optional[datetime] = None

    band: Optional[Band] = Relationship()
