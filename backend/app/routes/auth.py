"""
Authentication routes.

Login is by phone + password and returns a bearer access token plus a
rotating refresh token. Password reset and phone verification use temporal
tokens delivered through WhatsApp.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlmodel import Session

from app.config import get_settings
from app.database import get_session
from app.models.temporal_token import TOKEN_FORGOT_PASSWORD, TOKEN_VERIFY_EMAIL, TOKEN_VERIFY_PHONE
from app.models.user import User
from app.services import email_service, temporal_token_pool, users_service
from app.services.email_service import EmailDeliveryError
from app.services.jwt_service import InvalidTokenError, to_session_format, verify_refresh_token
from app.services.passwords import verify_password
from app.services.temporal_token_pool import TokenRateLimitError
from app.services.whatsapp_service import RESET_PASSWORD_PREFIX, build_wa_link, format_e164, get_whatsapp_service
from app.utils.permissions import current_user_id, optional_user, require_admin, require_anonymous, require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


# ============================================================================
# Request/Response Models
# ============================================================================


class LoginRequest(BaseModel):
    phone: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    user: dict
    is_logged_in: bool
    access_token: str
    refresh_token: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    phone: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def one_identity(self):
        if bool(self.phone) == bool(self.email):
            raise ValueError("Provide exactly one of phone or email")
        return self


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_message: Optional[str] = None


class NewPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/login", response_model=LoginResponse, status_code=202, dependencies=[Depends(require_anonymous)])
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    user = users_service.find_by_phone(session, payload.phone)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid Password")

    access_token, refresh_token = users_service.issue_tokens(session, user)
    return LoginResponse(
        user=users_service.serialize_user(session, user),
        is_logged_in=True,
        access_token=access_token,
        refresh_token=refresh_token,
    )


@router.get("/check-login-status")
def check_login_status(user: dict = Depends(require_user)) -> dict:
    return to_session_format(user)


@router.get("/logout")
def logout(user: dict = Depends(require_user), session: Session = Depends(get_session)) -> dict:
    record = session.get(User, current_user_id(user))
    if record:
        record.refresh_token = None
        session.add(record)
        session.commit()
    return {"message": "Logged out"}


@router.post("/refresh", response_model=TokenPair, dependencies=[Depends(optional_user)])
def refresh(payload: RefreshRequest, session: Session = Depends(get_session)):
    """Rotate tokens. The presented refresh token must be the one last issued."""
    try:
        claims = verify_refresh_token(payload.refresh_token)
        user_id = int(claims["sub"])
    except (InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = session.get(User, user_id)
    if not user or user.refresh_token != payload.refresh_token:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    access_token, refresh_token = users_service.issue_tokens(session, user)
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


@router.get("/verify-email/{token}")
def verify_email(token: str, session: Session = Depends(get_session)) -> dict:
    record = temporal_token_pool.find_token(session, token)
    if not record or record.type not in (TOKEN_VERIFY_EMAIL, TOKEN_VERIFY_PHONE):
        raise HTTPException(status_code=404, detail="Token not found")

    if record.user_email:
        user = users_service.find_by_email(session, record.user_email)
    else:
        user = users_service.find_by_phone(session, record.user_phone)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    users_service.activate_user(session, user)
    temporal_token_pool.delete_token(session, token)
    return {"status": "active"}


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    status_code=202,
    dependencies=[Depends(require_anonymous)],
)
def forgot_password(payload: ForgotPasswordRequest, session: Session = Depends(get_session)):
    """
    Start a password reset.

    By phone: returns the WhatsApp bot link carrying the reset code and also
    pushes the reset link to the user over WhatsApp. By email: mails the link.
    """
    if payload.email:
        user = users_service.find_by_email(session, payload.email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        try:
            email_service.send_forgot_password_email(session, user.email, user.name)
        except TokenRateLimitError as e:
            raise HTTPException(status_code=429, detail=str(e))
        except EmailDeliveryError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return ForgotPasswordResponse(message="Check your email for the password reset link.")

    user = users_service.find_by_phone(session, payload.phone)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        token = temporal_token_pool.create_token(session, user.phone, TOKEN_FORGOT_PASSWORD)
    except TokenRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))

    link = f"{get_settings().frontend_url}/auth/reset-password?token={token.token}"
    try:
        result = get_whatsapp_service().send_whatsapp(format_e164(user.phone), f"Restablece tu contraseña: {link}")
        if result["error"]:
            logger.warning(f"Reset link for user {user.id} not delivered: {result['error']}")
    except ValueError as e:
        logger.warning(f"Reset link for user {user.id} not delivered: {e}")

    return ForgotPasswordResponse(
        message="Send the reset code through WhatsApp to continue.",
        reset_token=token.token,
        phone=user.phone,
        whatsapp_message=build_wa_link(f"{RESET_PASSWORD_PREFIX}:{token.token}"),
    )


@router.post("/new-password", status_code=202, dependencies=[Depends(require_anonymous)])
def new_password(payload: NewPasswordRequest, session: Session = Depends(get_session)) -> dict:
    record = temporal_token_pool.find_token(session, payload.token, TOKEN_FORGOT_PASSWORD)
    if not record:
        raise HTTPException(status_code=404, detail="Token not found")

    if record.user_phone:
        user = users_service.find_by_phone(session, record.user_phone)
    else:
        user = users_service.find_by_email(session, record.user_email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    users_service.update_password(session, user, payload.password)
    temporal_token_pool.delete_token(session, payload.token)
    return {"message": "Password updated"}


@router.get("/email-service-status")
def email_service_status() -> dict:
    return {
        "email_configured": email_service.is_configured(),
        "token_pool": temporal_token_pool.pool_stats(),
    }


@router.delete("/admin/clear-reset-tokens", dependencies=[Depends(require_admin)])
def clear_reset_tokens(session: Session = Depends(get_session)) -> dict:
    removed = temporal_token_pool.clear_tokens_by_type(session, TOKEN_FORGOT_PASSWORD)
    logger.info(f"Cleared {removed} password reset tokens")
    return {"removed": removed}
