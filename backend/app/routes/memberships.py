from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from app.database import get_session
from app.models.church import Church, ChurchMemberRole, ChurchRole, Membership
from app.services import memberships_service
from app.utils.lookups import require_church, require_membership
from app.utils.permissions import check_user_id
from app.utils.sql import commit_or_conflict

router = APIRouter(prefix="/users/{user_id}/memberships", dependencies=[Depends(check_user_id("user_id"))])


class MembershipCreate(BaseModel):
    church_id: int
    active: Optional[bool] = True
    member_since: Optional[datetime] = None


class MembershipUpdate(BaseModel):
    active: Optional[bool] = None
    member_since: Optional[datetime] = None


class ChurchSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    church_id: int
    active: bool
    member_since: datetime
    church: Optional[ChurchSummary] = None


class MemberRoleSummary(BaseModel):
    id: int
    role_id: int
    name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    active: bool


class MembershipDetailResponse(MembershipResponse):
    roles: List[MemberRoleSummary] = []


def _detail(session: Session, membership: Membership) -> MembershipDetailResponse:
    rows = session.exec(
        select(ChurchMemberRole, ChurchRole)
        .join(ChurchRole, ChurchRole.id == ChurchMemberRole.role_id)
        .where(ChurchMemberRole.membership_id == membership.id)
        .order_by(ChurchMemberRole.id)
    ).all()
    church = session.get(Church, membership.church_id)
    return MembershipDetailResponse(
        id=membership.id,
        user_id=membership.user_id,
        church_id=membership.church_id,
        active=membership.active,
        member_since=membership.member_since,
        church=ChurchSummary.model_validate(church) if church else None,
        roles=[
            MemberRoleSummary(
                id=member_role.id,
                role_id=role.id,
                name=role.name,
                start_date=member_role.start_date,
                end_date=member_role.end_date,
                active=member_role.active,
            )
            for member_role, role in rows
        ],
    )


@router.post("", response_model=MembershipDetailResponse, status_code=201)
def create_membership(user_id: int, payload: MembershipCreate, session: Session = Depends(get_session)):
    require_church(session, payload.church_id)
    membership = Membership(
        user_id=user_id,
        church_id=payload.church_id,
        active=True if payload.active is None else payload.active,
    )
    if payload.member_since:
        membership.member_since = payload.member_since
    session.add(membership)
    commit_or_conflict(session, "User is already a member of this church", membership)
    return _detail(session, membership)


@router.get("", response_model=List[MembershipResponse])
def list_memberships(user_id: int, session: Session = Depends(get_session)):
    return memberships_service.get_memberships(session, user_id)


@router.get("/{membership_id}", response_model=MembershipDetailResponse)
def get_membership(user_id: int, membership_id: int, session: Session = Depends(get_session)):
    return _detail(session, require_membership(session, membership_id, user_id))


@router.patch("/{membership_id}", response_model=MembershipDetailResponse)
def update_membership(
    user_id: int, membership_id: int, payload: MembershipUpdate, session: Session = Depends(get_session)
):
    membership = require_membership(session, membership_id, user_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(membership, field, value)
    session.add(membership)
    commit_or_conflict(session, "Membership already exists", membership)
    return _detail(session, membership)


@router.delete("/{membership_id}", status_code=204)
def delete_membership(user_id: int, membership_id: int, session: Session = Depends(get_session)):
    membership = require_membership(session, membership_id, user_id)
    memberships_service.delete_membership(session, membership)
    return None
