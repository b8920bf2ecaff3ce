"""Twilio WhatsApp service wrapper.

Thin wrapper around the Twilio REST API for sending WhatsApp messages
(phone verification and password-reset links), plus phone formatting helpers.
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from twilio.rest import Client

from app.config import get_settings

logger = logging.getLogger(__name__)

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"

RESET_PASSWORD_PREFIX = "resetpass-adorador"
VERIFY_PHONE_PREFIX = "verify-adorador"


def format_e164(phone: str) -> str:
    """
    Normalize a phone number to E.164 format.

    Accepts:
      - +50688887777  (already E.164)
      - 50688887777   (missing +)
      - +506 8888-7777
      - (506) 8888 7777

    Raises:
      - ValueError if phone can't be parsed
    """
    if not phone or not phone.strip():
        raise ValueError("Phone number is empty")

    digits = re.sub(r"[^\d]", "", phone)
    if len(digits) < 7 or len(digits) > 15 or digits.startswith("0"):
        raise ValueError(f"Cannot parse phone number: '{phone}'. Expected E.164 format.")
    return f"+{digits}"


def validate_e164(phone: str) -> bool:
    """Check if a phone number is valid E.164 format."""
    return bool(re.match(r"^\+[1-9]\d{6,14}$", phone))


def build_wa_link(text: str, bot_number: Optional[str] = None) -> str:
    """Click-to-chat link that opens WhatsApp with `text` prefilled for the bot."""
    number = re.sub(r"[^\d]", "", bot_number or get_settings().whatsapp_bot_number)
    return f"https://wa.me/{number}?text={quote(text)}"


class WhatsAppService:
    """
    Wrapper around Twilio REST API for sending WhatsApp messages.

    Reads credentials from environment variables:
      - TWILIO_ACCOUNT_SID
      - TWILIO_AUTH_TOKEN
      - TWILIO_WHATSAPP_FROM

    If credentials are not set, operates in dry-run mode
    (logs messages but doesn't send).
    """

    def __init__(self):
        self.account_sid = os.getenv("TWILIO_ACCOUNT_SID", "")
        self.auth_token = os.getenv("TWILIO_AUTH_TOKEN", "")
        self.from_number = os.getenv("TWILIO_WHATSAPP_FROM", "")
        self.client = None
        self.dry_run = False

        if self.account_sid and self.auth_token and self.from_number:
            self.client = Client(self.account_sid, self.auth_token)
            logger.info("Twilio WhatsApp client initialized successfully.")
        else:
            logger.warning(
                "Twilio credentials not configured. Running in dry-run mode. "
                "Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_FROM."
            )
            self.dry_run = True

    def send_whatsapp(self, to: str, body: str) -> dict:
        """
        Send a single WhatsApp message.

        Args:
            to: Recipient phone number (E.164 format)
            body: Message text

        Returns:
            dict with keys: sid, status, error
        """
        if not validate_e164(to):
            return {
                "sid": None,
                "status": "failed",
                "error": f"Invalid phone number format: {to}",
            }

        if self.dry_run:
            logger.info(f"[DRY RUN] WhatsApp to {to}: {body[:80]}")
            return {
                "sid": f"DRY_RUN_{datetime.now(timezone.utc).isoformat()}",
                "status": "dry_run",
                "error": None,
            }

        try:
            message = self.client.messages.create(
                body=body,
                from_=f"whatsapp:{self.from_number}",
                to=f"whatsapp:{to}",
            )
            logger.info(f"WhatsApp sent to {to}: SID={message.sid}, status={message.status}")
            return {"sid": message.sid, "status": message.status, "error": None}
        except Exception as e:
            logger.error(f"Failed to send WhatsApp to {to}: {e}")
            return {"sid": None, "status": "failed", "error": str(e)}

    @property
    def is_configured(self) -> bool:
        return not self.dry_run


# Singleton instance
_whatsapp_service: Optional[WhatsAppService] = None


def get_whatsapp_service() -> WhatsAppService:
    """Get or create the singleton WhatsAppService instance."""
    global _whatsapp_service
    if _whatsapp_service is None:
        _whatsapp_service = WhatsAppService()
    return _whatsapp_service
