# utils/email_service.py

import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from pydantic import BaseModel
from dotenv import load_dotenv
import os

from core.config import APP_URL

# Load environment variables from .env
load_dotenv()

logger = logging.getLogger(__name__)

class Settings(BaseModel):
    MAIL_USERNAME: str
    MAIL_PASSWORD: str
    MAIL_FROM: str
    MAIL_FROM_NAME: str
    MAIL_PORT: int
    MAIL_SERVER: str
    MAIL_STARTTLS: bool
    MAIL_SSL_TLS: bool
    USE_CREDENTIALS: bool = True
    VALIDATE_CERTS: bool = True
    SUPPRESS_SEND: bool = False

settings = Settings(
    MAIL_USERNAME=os.getenv("MAIL_USERNAME", ""),
    MAIL_PASSWORD=os.getenv("MAIL_PASSWORD", ""),
    MAIL_FROM=os.getenv("MAIL_FROM", "noreply@stackpilot.dev"),
    MAIL_FROM_NAME=os.getenv("MAIL_FROM_NAME", "StackPilot"),
    MAIL_PORT=int(os.getenv("MAIL_PORT", "587")),
    MAIL_SERVER=os.getenv("MAIL_SERVER", "localhost"),
    MAIL_STARTTLS=os.getenv("MAIL_STARTTLS", "True") == "True",
    MAIL_SSL_TLS=os.getenv("MAIL_SSL_TLS", "False") == "True",
    USE_CREDENTIALS=bool(os.getenv("MAIL_USERNAME")),
    SUPPRESS_SEND=os.getenv("MAIL_SUPPRESS_SEND", "False") == "True",
)

conf = ConnectionConfig(**settings.model_dump())


def _layout(title: str, content: str) -> str:
    return f"""
<html>
  <body style="font-family: Arial, sans-serif; color: #333333; background-color: #f8fafc;">
    <div style="max-width: 600px; margin: 0 auto; background: #ffffff; padding: 32px; border-radius: 12px;">
      <h1 style="margin-top: 0;">{settings.MAIL_FROM_NAME}</h1>
      <h2>{title}</h2>
      {content}
    </div>
  </body>
</html>
"""


class EmailService:
    @staticmethod
    async def _send(email: str, subject: str, html: str):
        message = MessageSchema(
            subject=subject,
            recipients=[email],
            body=html,
            subtype=MessageType.html,
        )
        fm = FastMail(conf)
        await fm.send_message(message)
        logger.info("Sent '%s' to %s", subject, email)

    @staticmethod
    async def send_verification_email(email: str, token: str):
        confirmation_link = f"{APP_URL}/auth/new-verification?token={token}"
        html = _layout(
            "Verify your email",
            f"""<p>Click the link below to confirm your email address.</p>
      <p><a href="{confirmation_link}">Verify Email Address</a></p>
      <p>If the button doesn't work, paste this link into your browser:<br>{confirmation_link}</p>""",
        )
        await EmailService._send(email, "Verify your email", html)

    @staticmethod
    async def send_password_reset_email(email: str, token: str):
        reset_link = f"{APP_URL}/auth/new-password?token={token}"
        html = _layout(
            "Reset your password",
            f"""<p>We received a request to reset your password.</p>
      <p><a href="{reset_link}">Reset Password</a></p>
      <p>If you didn't request this, you can safely ignore this email.</p>""",
        )
        await EmailService._send(email, "Reset your password", html)

    @staticmethod
    async def send_two_factor_token_email(email: str, token: str):
        html = _layout(
            "Your two-factor authentication code",
            f"""<p>Use this code to finish signing in:</p>
      <p style="font-size: 32px; font-weight: bold; letter-spacing: 8px;">{token}</p>
      <p>The code expires in one hour.</p>""",
        )
        await EmailService._send(email, "Two-factor authentication code", html)
