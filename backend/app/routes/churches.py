from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from app.database import get_session
from app.models.church import Church
from app.services import memberships_service
from app.utils.lookups import require_church
from app.utils.permissions import require_admin, require_user
from app.utils.sql import commit_or_conflict

router = APIRouter()


class ChurchCreate(BaseModel):
    name: str = Field(min_length=1)
    country: str = Field(min_length=1)
    address: str = Field(min_length=1)
    aniversary: Optional[date] = None


class ChurchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    country: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    aniversary: Optional[date] = None


class ChurchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    country: str
    address: str
    aniversary: Optional[date] = None
    created_at: datetime
    updated_at: datetime


@router.get("/churches", response_model=List[ChurchResponse])
def list_churches(session: Session = Depends(get_session)):
    return session.exec(select(Church).order_by(Church.name)).all()


@router.post("/churches", response_model=ChurchResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_church(payload: ChurchCreate, session: Session = Depends(get_session)):
    church = Church(**payload.model_dump())
    session.add(church)
    commit_or_conflict(session, "Church already exists", church)
    return church


@router.get("/churches/{church_id}", response_model=ChurchResponse, dependencies=[Depends(require_user)])
def get_church(church_id: int, session: Session = Depends(get_session)):
    return require_church(session, church_id)


@router.patch("/churches/{church_id}", response_model=ChurchResponse, dependencies=[Depends(require_admin)])
def update_church(church_id: int, payload: ChurchUpdate, session: Session = Depends(get_session)):
    church = require_church(session, church_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(church, field, value)
    session.add(church)
    commit_or_conflict(session, "Church already exists", church)
    return church


@router.delete("/churches/{church_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_church(church_id: int, session: Session = Depends(get_session)):
    church = require_church(session, church_id)
    memberships_service.delete_church_memberships(session, church.id)
    session.delete(church)
    session.commit()
    return None
