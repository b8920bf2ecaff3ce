from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from app.database import get_session
from app.models.church import ChurchMemberRole, ChurchRole
from app.utils.permissions import require_admin
from app.utils.sql import commit_or_conflict

router = APIRouter(prefix="/roles/churches")


class ChurchRoleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class ChurchRoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class ChurchRoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None


def _get_role(session: Session, role_id: int) -> ChurchRole:
    role = session.get(ChurchRole, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Church role not found")
    return role


@router.get("", response_model=List[ChurchRoleResponse])
def list_church_roles(session: Session = Depends(get_session)):
    return session.exec(select(ChurchRole).order_by(ChurchRole.id)).all()


@router.post("", response_model=ChurchRoleResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_church_role(payload: ChurchRoleCreate, session: Session = Depends(get_session)):
    role = ChurchRole(**payload.model_dump())
    session.add(role)
    commit_or_conflict(session, f"Church role '{payload.name}' already exists", role)
    return role


@router.get("/{role_id}", response_model=ChurchRoleResponse)
def get_church_role(role_id: int, session: Session = Depends(get_session)):
    return _get_role(session, role_id)


@router.patch("/{role_id}", response_model=ChurchRoleResponse, dependencies=[Depends(require_admin)])
def update_church_role(role_id: int, payload: ChurchRoleUpdate, session: Session = Depends(get_session)):
    role = _get_role(session, role_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(role, field, value)
    session.add(role)
    commit_or_conflict(session, f"Church role '{payload.name}' already exists", role)
    return role


@router.delete("/{role_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_church_role(role_id: int, session: Session = Depends(get_session)):
    role = _get_role(session, role_id)
    assigned = session.exec(select(ChurchMemberRole.id).where(ChurchMemberRole.role_id == role_id)).first()
    if assigned is not None:
        raise HTTPException(status_code=409, detail="Church role is assigned to members")
    session.delete(role)
    commit_or_conflict(session, "Church role is assigned to members")
    return None
