import re

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.models.temporal_token import TOKEN_VERIFY_PHONE
from app.services import temporal_token_pool, users_service

router = APIRouter(prefix="/temporal-token-pool")


def _digits(phone) -> str:
    return re.sub(r"[^\d]", "", phone or "")


class VerifyWhatsappRequest(BaseModel):
    token: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)


@router.post("/verify-whatsapp")
def verify_whatsapp(payload: VerifyWhatsappRequest, session: Session = Depends(get_session)) -> dict:
    """Redeem a phone verification token received by the WhatsApp bot"""
    record = temporal_token_pool.find_token(session, payload.token)
    if not record:
        raise HTTPException(status_code=404, detail="Token not found")
    if record.type != TOKEN_VERIFY_PHONE:
        raise HTTPException(status_code=400, detail="Token is not a phone verification token")
    if _digits(record.user_phone) != _digits(payload.phone_number):
        raise HTTPException(status_code=400, detail="Phone number does not match the token")

    user = users_service.activate_user_by_phone(session, record.user_phone)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    temporal_token_pool.delete_token(session, payload.token)
    return {"status": "active", "user_id": user.id}
