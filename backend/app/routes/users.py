"""User account routes: registration, profile, app roles."""

import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session, select

from app.database import get_session
from app.models.temporal_token import TOKEN_VERIFY_PHONE
from app.models.user import Role, User
from app.services import email_service, temporal_token_pool, users_service
from app.services.email_service import EmailDeliveryError
from app.services.passwords import hash_password
from app.services.temporal_token_pool import TokenRateLimitError
from app.services.whatsapp_service import PHONE_PATTERN, VERIFY_PHONE_PREFIX, build_wa_link
from app.utils.lookups import require_user_record
from app.utils.permissions import check_user_id, require_admin, require_user
from app.utils.sql import commit_or_conflict

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(pattern=PHONE_PATTERN)
    password: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    birthdate: Optional[date] = None
    status: Optional[Literal["active", "inactive"]] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    birthdate: Optional[date] = None


class UserCreatedResponse(BaseModel):
    user: dict
    verification_token: str
    whatsapp_message: str
    message: str


def _duplicate_detail(session: Session, email: Optional[str], phone: Optional[str]) -> str:
    if email and users_service.find_by_email(session, email):
        return "Email already exists"
    if phone and users_service.find_by_phone(session, phone):
        return "Phone already exists"
    return "User already exists"


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/users")
def list_users(session: Session = Depends(get_session)) -> List[dict]:
    """List users (passwords omitted) with roles, memberships and bands"""
    users = session.exec(select(User).order_by(User.id)).all()
    return [users_service.serialize_user(session, u) for u in users]


@router.post("/users", response_model=UserCreatedResponse, status_code=201)
def create_user(payload: UserCreate, session: Session = Depends(get_session)):
    """
    Register a user.

    The account starts inactive; it is activated by sending the returned
    verification token to the WhatsApp bot (or through the email link).
    """
    user = User(
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        birthdate=payload.birthdate,
        password=hash_password(payload.password),
        status="inactive",
    )
    session.add(user)
    try:
        commit_or_conflict(session, "User already exists", user)
    except HTTPException as e:
        if e.status_code == 409:
            raise HTTPException(status_code=409, detail=_duplicate_detail(session, payload.email, payload.phone))
        raise

    token = temporal_token_pool.create_token(session, user.phone, TOKEN_VERIFY_PHONE)

    if user.email:
        try:
            email_service.send_email_verification(session, user.email, user.name)
        except (EmailDeliveryError, TokenRateLimitError) as e:
            logger.warning(f"Verification email for user {user.id} not sent: {e}")

    return UserCreatedResponse(
        user=users_service.serialize_user(session, user),
        verification_token=token.token,
        whatsapp_message=build_wa_link(f"{VERIFY_PHONE_PREFIX}:{token.token}"),
        message="User created. Send the verification code through WhatsApp to activate the account.",
    )


@router.get("/users/{user_id}", dependencies=[Depends(require_user)])
def get_user(user_id: int, session: Session = Depends(get_session)) -> dict:
    user = require_user_record(session, user_id)
    return users_service.serialize_user(session, user)


@router.post("/users/{user_id}", dependencies=[Depends(check_user_id("user_id"))])
def update_user(user_id: int, payload: UserUpdate, session: Session = Depends(get_session)) -> dict:
    """Partial update of the caller's own profile"""
    user = require_user_record(session, user_id)

    data = payload.model_dump(exclude_unset=True)
    if "password" in data:
        data["password"] = hash_password(data["password"])
    for field, value in data.items():
        setattr(user, field, value)

    session.add(user)
    try:
        commit_or_conflict(session, "User already exists", user)
    except HTTPException as e:
        if e.status_code == 409:
            raise HTTPException(status_code=409, detail=_duplicate_detail(session, payload.email, payload.phone))
        raise
    return users_service.serialize_user(session, user)


@router.delete("/users/{user_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_user(user_id: int, session: Session = Depends(get_session)):
    user = require_user_record(session, user_id)
    for role_id in users_service.get_role_ids(session, user.id):
        users_service.remove_role(session, user.id, role_id)
    session.delete(user)
    commit_or_conflict(session, "User could not be deleted")
    return None


@router.get("/users/add-role/{user_id}/{role_id}", dependencies=[Depends(require_admin)])
def add_user_role(user_id: int, role_id: int, session: Session = Depends(get_session)) -> dict:
    user = require_user_record(session, user_id)
    if not session.get(Role, role_id):
        raise HTTPException(status_code=404, detail="Role not found")
    users_service.add_role(session, user.id, role_id)
    return {"user_id": user.id, "roles": users_service.get_role_ids(session, user.id)}


@router.get("/users/delete-role/{user_id}/{role_id}", dependencies=[Depends(require_admin)])
def delete_user_role(user_id: int, role_id: int, session: Session = Depends(get_session)) -> dict:
    user = require_user_record(session, user_id)
    if not users_service.remove_role(session, user.id, role_id):
        raise HTTPException(status_code=404, detail="User does not have this role")
    return {"user_id": user.id, "roles": users_service.get_role_ids(session, user.id)}
