from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from app.database import get_session
from app.models.church import ChurchMemberRole, ChurchRole
from app.utils.lookups import require_membership
from app.utils.permissions import check_church, check_user_id
from app.utils.sql import commit_or_conflict

def membership_of_path_user(user_id: int, membership_id: int, session: Session = Depends(get_session)):
    """The membership in the path must belong to the user in the path."""
    require_membership(session, membership_id, user_id)


router = APIRouter(
    prefix="/users/{user_id}/memberships/{membership_id}/roles",
    dependencies=[Depends(check_church("membership", "membership_id")), Depends(membership_of_path_user)],
)


class ChurchMemberRoleCreate(BaseModel):
    role_id: int
    start_date: Optional[datetime] = None
    active: Optional[bool] = True


class ChurchMemberRoleUpdate(BaseModel):
    role_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    active: Optional[bool] = None


class ChurchRoleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class ChurchMemberRoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    membership_id: int
    role_id: int
    start_date: datetime
    end_date: Optional[datetime] = None
    active: bool
    role: Optional[ChurchRoleSummary] = None


def _require_church_role(session: Session, role_id: int) -> ChurchRole:
    role = session.get(ChurchRole, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Church role not found")
    return role


def _require_member_role(session: Session, member_role_id: int, membership_id: int) -> ChurchMemberRole:
    member_role = session.get(ChurchMemberRole, member_role_id)
    if not member_role or member_role.membership_id != membership_id:
        raise HTTPException(status_code=404, detail="Church member role not found")
    return member_role


@router.post("", response_model=ChurchMemberRoleResponse, status_code=201)
def create_church_member_role(
    membership_id: int, payload: ChurchMemberRoleCreate, session: Session = Depends(get_session)
):
    _require_church_role(session, payload.role_id)

    member_role = ChurchMemberRole(
        membership_id=membership_id,
        role_id=payload.role_id,
        active=True if payload.active is None else payload.active,
    )
    if payload.start_date:
        member_role.start_date = payload.start_date
    session.add(member_role)
    commit_or_conflict(session, "Role already assigned", member_role)
    return member_role


@router.get(
    "", response_model=List[ChurchMemberRoleResponse], dependencies=[Depends(check_user_id("user_id"))]
)
def list_church_member_roles(membership_id: int, session: Session = Depends(get_session)):
    return session.exec(
        select(ChurchMemberRole)
        .where(ChurchMemberRole.membership_id == membership_id)
        .order_by(ChurchMemberRole.id)
    ).all()


@router.get(
    "/{member_role_id}",
    response_model=ChurchMemberRoleResponse,
    dependencies=[Depends(check_user_id("user_id"))],
)
def get_church_member_role(membership_id: int, member_role_id: int, session: Session = Depends(get_session)):
    return _require_member_role(session, member_role_id, membership_id)


@router.patch(
    "/{member_role_id}",
    response_model=ChurchMemberRoleResponse,
    dependencies=[Depends(check_user_id("user_id"))],
)
def update_church_member_role(
    membership_id: int,
    member_role_id: int,
    payload: ChurchMemberRoleUpdate,
    session: Session = Depends(get_session),
):
    member_role = _require_member_role(session, member_role_id, membership_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("role_id") is not None:
        _require_church_role(session, data["role_id"])
    for field, value in data.items():
        if value is not None or field == "end_date":
            setattr(member_role, field, value)
    session.add(member_role)
    commit_or_conflict(session, "Role already assigned", member_role)
    return member_role


@router.delete("/{member_role_id}", status_code=204, dependencies=[Depends(check_user_id("user_id"))])
def delete_church_member_role(membership_id: int, member_role_id: int, session: Session = Depends(get_session)):
    member_role = _require_member_role(session, member_role_id, membership_id)
    session.delete(member_role)
    session.commit()
    return None
