"""
Email adapter.

Messages are delivered over SMTP when SMTP_HOST/SMTP_USER/SMTP_PASSWORD are
configured. Otherwise they are logged (dry-run), mirroring the WhatsApp service.
"""

import logging
import smtplib
import socket
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sqlmodel import Session

from app.config import get_settings
from app.models.temporal_token import TOKEN_FORGOT_PASSWORD, TOKEN_VERIFY_EMAIL
from app.services import temporal_token_pool

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 30


class EmailDeliveryError(RuntimeError):
    pass


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password and settings.smtp_from)


def send_email(to_email: str, subject: str, html_body: str, text_body: str = None) -> bool:
    """
    Send one email. Returns False in dry-run mode, True once SMTP accepted it.

    Raises:
        EmailDeliveryError: on timeout, refused connection or SMTP failure
    """
    settings = get_settings()
    if not is_configured():
        logger.info(f"[DRY RUN] Email to {to_email}: {subject}")
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    msg.attach(MIMEText(text_body or html_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    try:
        if settings.smtp_port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=SEND_TIMEOUT_SECONDS) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SEND_TIMEOUT_SECONDS) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
    except socket.timeout as e:
        logger.error(f"Email to {to_email} timed out: {e}")
        raise EmailDeliveryError(f"Email sending timeout after {SEND_TIMEOUT_SECONDS} seconds") from e
    except ConnectionRefusedError as e:
        logger.error(f"Email service refused connection for {to_email}: {e}")
        raise EmailDeliveryError("Email service unavailable") from e
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        raise EmailDeliveryError(str(e)) from e

    logger.info(f"Email sent to {to_email}: {subject}")
    return True


def send_email_verification(session: Session, email: str, name: str) -> bool:
    token = temporal_token_pool.create_token(session, email, TOKEN_VERIFY_EMAIL)
    link = f"{get_settings().frontend_url}/auth/verify-email?token={token.token}"
    html = (
        f"<p>Hola {name},</p>"
        f"<p>Confirma tu correo electrónico haciendo clic en el siguiente enlace:</p>"
        f'<p><a href="{link}">{link}</a></p>'
    )
    try:
        return send_email(email, "Verifica tu correo electrónico", html)
    except EmailDeliveryError:
        temporal_token_pool.remove_from_pool(email, TOKEN_VERIFY_EMAIL)
        raise


def send_forgot_password_email(session: Session, email: str, name: str) -> bool:
    token = temporal_token_pool.create_token(session, email, TOKEN_FORGOT_PASSWORD)
    link = f"{get_settings().frontend_url}/auth/reset-password?token={token.token}"
    html = (
        f"<p>Hola {name},</p>"
        f"<p>Recibimos una solicitud para restablecer tu contraseña. Usa este enlace:</p>"
        f'<p><a href="{link}">{link}</a></p>'
        f"<p>Si no solicitaste este cambio, ignora este mensaje.</p>"
    )
    try:
        return send_email(email, "Restablece tu contraseña", html)
    except EmailDeliveryError:
        temporal_token_pool.remove_from_pool(email, TOKEN_FORGOT_PASSWORD)
        raise
