# app/services/shares/mailer.py
from pathlib import Path

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from loguru import logger
from pydantic import SecretStr

from app.core.settings import settings


class MailerService:
    """System emails (account verification, password reset)."""

    def __init__(self):
        base_dir = Path(__file__).resolve().parent.parent.parent  # -> app/
        template_dir = base_dir / "templates" / "emails"

        self.conf = ConnectionConfig(
            MAIL_USERNAME=settings.MAIL_USERNAME,
            MAIL_PASSWORD=SecretStr(settings.MAIL_PASSWORD),
            MAIL_FROM=settings.MAIL_FROM,
            MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
            MAIL_PORT=settings.MAIL_PORT,
            MAIL_SERVER=settings.MAIL_SERVER,
            MAIL_STARTTLS=settings.MAIL_TLS,
            MAIL_SSL_TLS=settings.MAIL_SSL,
            USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
            VALIDATE_CERTS=True,
            SUPPRESS_SEND=int(settings.MAIL_SUPPRESS_SEND),
            TEMPLATE_FOLDER=template_dir,
        )
        self.fastmail = FastMail(self.conf)

    async def _send(self, subject: str, email: str, template: str, body: dict):
        message = MessageSchema(
            subject=f"{subject} - {settings.APP_NAME}",
            recipients=[email],
            template_body=body,
            subtype=MessageType.html,
        )
        await self.fastmail.send_message(message, template_name=template)
        logger.info(f"📧 {template} sent to {email}")

    async def send_verification_email(self, email: str, name: str, verify_link: str):
        await self._send(
            "Verify your email",
            email,
            "verify_email.html",
            {"name": name, "verify_link": verify_link},
        )

    async def send_reset_password_email(self, email: str, name: str, reset_link: str):
        await self._send(
            "Reset your password",
            email,
            "reset_password.html",
            {"name": name, "reset_link": reset_link},
        )
