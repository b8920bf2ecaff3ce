"""Band routes: bands, members and invitations."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from app.database import get_session
from app.models.band import Band
from app.models.user import User
from app.services import bands_service, users_service
from app.services.passwords import verify_password
from app.utils.lookups import require_band
from app.utils.permissions import (
    check_band_admin,
    check_plan_limit,
    check_user_member_of_band,
    current_user_id,
    require_user,
)

router = APIRouter(prefix="/bands")


# ============================================================================
# Request/Response Models
# ============================================================================


class BandCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class BandUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class BandDelete(BaseModel):
    password: str
    confirmation: str


class InvitationCreate(BaseModel):
    invited_user_id: int


class MemberUpdate(BaseModel):
    role: Optional[str] = Field(default=None, min_length=1)
    is_admin: Optional[bool] = None
    is_event_manager: Optional[bool] = None
    active: Optional[bool] = None


class BandWithTokens(BaseModel):
    band: dict
    access_token: str
    refresh_token: str


def _translate(e: Exception) -> HTTPException:
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _tokens_for(session: Session, user_id: int):
    user = session.get(User, user_id)
    return users_service.issue_tokens(session, user)


# ============================================================================
# Bands
# ============================================================================


@router.get("")
def list_bands(session: Session = Depends(get_session)) -> List[dict]:
    bands = session.exec(select(Band).order_by(Band.id)).all()
    return [bands_service.serialize_band(b, include_timestamps=False) for b in bands]


@router.get("/user-bands")
def user_bands(user: dict = Depends(require_user), session: Session = Depends(get_session)) -> List[dict]:
    return bands_service.get_user_bands(session, current_user_id(user))


@router.post("", response_model=BandWithTokens, status_code=201)
def create_band(payload: BandCreate, user: dict = Depends(require_user), session: Session = Depends(get_session)):
    """Create a band. Returns fresh tokens that include the new band membership."""
    user_id = current_user_id(user)
    band = bands_service.create_band(session, user_id, payload.name, payload.description)
    access_token, refresh_token = _tokens_for(session, user_id)
    return BandWithTokens(
        band=bands_service.serialize_band(band),
        access_token=access_token,
        refresh_token=refresh_token,
    )


@router.get("/invitations/pending")
def list_pending_invitations(user: dict = Depends(require_user), session: Session = Depends(get_session)) -> List[dict]:
    return bands_service.pending_invitations(session, current_user_id(user))


@router.post("/invitations/{invitation_id}/accept")
def accept_invitation(
    invitation_id: int, user: dict = Depends(require_user), session: Session = Depends(get_session)
) -> dict:
    user_id = current_user_id(user)
    try:
        member = bands_service.accept_invitation(session, invitation_id, user_id)
    except (LookupError, PermissionError, ValueError) as e:
        raise _translate(e)
    access_token, refresh_token = _tokens_for(session, user_id)
    return {
        "message": "Invitation accepted",
        "band_id": member.band_id,
        "access_token": access_token,
        "refresh_token": refresh_token,
    }


@router.post("/invitations/{invitation_id}/reject")
def reject_invitation(
    invitation_id: int, user: dict = Depends(require_user), session: Session = Depends(get_session)
) -> dict:
    try:
        invitation = bands_service.reject_invitation(session, invitation_id, current_user_id(user))
    except (LookupError, PermissionError, ValueError) as e:
        raise _translate(e)
    return bands_service.serialize_invitation(invitation)


@router.get("/{band_id}", dependencies=[Depends(check_user_member_of_band())])
def get_band(band_id: int, session: Session = Depends(get_session)) -> dict:
    return bands_service.band_detail(session, require_band(session, band_id))


@router.patch("/{band_id}", dependencies=[Depends(check_user_member_of_band(is_admin=True))])
def update_band(band_id: int, payload: BandUpdate, session: Session = Depends(get_session)) -> dict:
    band = require_band(session, band_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(band, field, value)
    session.add(band)
    session.commit()
    session.refresh(band)
    return bands_service.serialize_band(band)


@router.delete("/{band_id}", dependencies=[Depends(check_band_admin())])
def delete_band(
    band_id: int,
    payload: BandDelete,
    user: dict = Depends(require_user),
    session: Session = Depends(get_session),
) -> dict:
    """Delete a band and all of its songs, lyrics, chords, events and members"""
    require_band(session, band_id)
    if payload.confirmation.strip().lower() != bands_service.DELETE_CONFIRMATION:
        raise HTTPException(
            status_code=400,
            detail=f'Confirmation text must be "{bands_service.DELETE_CONFIRMATION}"',
        )
    caller = session.get(User, current_user_id(user))
    if not caller or not verify_password(payload.password, caller.password):
        raise HTTPException(status_code=400, detail="Invalid password")

    bands_service.delete_band(session, band_id)
    return {"message": "Band deleted", "band_id": band_id}


# ============================================================================
# Invitations (band side)
# ============================================================================


@router.get("/{band_id}/search-users", dependencies=[Depends(check_band_admin())])
def search_users(band_id: int, q: str = Query(..., min_length=1), session: Session = Depends(get_session)) -> List[dict]:
    require_band(session, band_id)
    return bands_service.search_users(session, band_id, q)


@router.post(
    "/{band_id}/invite",
    status_code=201,
    dependencies=[Depends(check_band_admin()), Depends(check_plan_limit("members"))],
)
def invite_user(
    band_id: int,
    payload: InvitationCreate,
    user: dict = Depends(require_user),
    session: Session = Depends(get_session),
) -> dict:
    require_band(session, band_id)
    try:
        invitation = bands_service.invite_user(session, band_id, current_user_id(user), payload.invited_user_id)
    except (LookupError, ValueError) as e:
        raise _translate(e)
    return bands_service.serialize_invitation(invitation)


# ============================================================================
# Members
# ============================================================================


@router.get("/{band_id}/members", dependencies=[Depends(check_user_member_of_band())])
def list_members(band_id: int, session: Session = Depends(get_session)) -> List[dict]:
    require_band(session, band_id)
    return bands_service.list_members(session, band_id)


@router.patch("/{band_id}/members/{user_id}", dependencies=[Depends(check_band_admin())])
def update_member(band_id: int, user_id: int, payload: MemberUpdate, session: Session = Depends(get_session)) -> dict:
    try:
        member = bands_service.update_member(session, band_id, user_id, payload.model_dump(exclude_unset=True))
    except (LookupError, ValueError) as e:
        raise _translate(e)
    return bands_service.serialize_member(member, session.get(User, user_id))


@router.delete("/{band_id}/members/{user_id}", dependencies=[Depends(check_band_admin())])
def remove_member(band_id: int, user_id: int, session: Session = Depends(get_session)) -> dict:
    try:
        bands_service.remove_member(session, band_id, user_id)
    except (LookupError, ValueError) as e:
        raise _translate(e)
    return {"message": "Member removed", "user_id": user_id}
