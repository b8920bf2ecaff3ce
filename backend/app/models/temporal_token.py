"""Single-use, purpose-tagged tokens (phone/email verification, password reset)."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

TOKEN_VERIFY_PHONE = "verify_phone"
TOKEN_VERIFY_EMAIL = "verify_email"
TOKEN_FORGOT_PASSWORD = "forgot_password"

TOKEN_TYPES = (TOKEN_VERIFY_PHONE, TOKEN_VERIFY_EMAIL, TOKEN_FORGOT_PASSWORD)


class TemporalToken(SQLModel, table=True):
    __tablename__ = "temporal_token_pool"

    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(unique=True, index=True)
    user_phone: Optional[str] = Field(default=None, index=True)
    user_email: Optional[str] = Field(default=None, index=True)
    type: str  # verify_phone|verify_email|forgot_password
    created_at: datetime = Field(default_factory=datetime.utcnow)
