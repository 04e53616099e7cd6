"""
Notification delivery providers
SMTP email, Expo push and Twilio SMS. Every send returns True/False;
provider failures are logged and never raised to the dispatcher.
"""

import os
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Any, List, Optional

import requests
import structlog

from src.models.notification import PushToken

logger = structlog.get_logger()

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"


def render_email_html(subject: str, body: str) -> str:
    """Wrap a plain notification message in the standard email layout"""
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #333;">{subject}</h2>
      <p>{body}</p>
      <hr style="border: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666; font-size: 12px;">
        © {datetime.now().year} Tarodan. Tüm hakları saklıdır.
      </p>
    </div>
    """


class SmtpEmailProvider:
    """Sends HTML email over SMTP with STARTTLS"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: int = 30
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "SmtpEmailProvider":
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            user=os.getenv("SMTP_USER"),
            password=os.getenv("SMTP_PASSWORD"),
            sender=os.getenv("SMTP_FROM"),
        )

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def send(self, to_email: str, subject: str, body_html: str) -> bool:
        if not self.is_configured():
            logger.error("SMTP not configured", to=to_email)
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.sender, [to_email], msg.as_string())

            logger.info("Email sent", to=to_email, subject=subject)
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed", host=self.host)
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending email", to=to_email, error=str(e))
            return False


class ExpoPushProvider:
    """Sends push notifications through the Expo push HTTP API"""

    def __init__(self, access_token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.access_token = access_token
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> "ExpoPushProvider":
        return cls(access_token=os.getenv("EXPO_ACCESS_TOKEN"))

    def is_configured(self) -> bool:
        # Expo accepts unauthenticated pushes; the token only raises rate limits
        return True

    def send(self, tokens: List[PushToken], title: str, body: str,
             data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Push to every registered device

        Returns:
            True if at least one device accepted the message
        """
        if not tokens:
            logger.info("No push tokens registered")
            return False

        messages = [
            {"to": t.token, "title": title, "body": body, "data": data or {}, "sound": "default"}
            for t in tokens
        ]
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            resp = self.session.post(EXPO_PUSH_URL, json=messages, headers=headers, timeout=10)
            if resp.status_code >= 400:
                logger.error("Expo push error", status=resp.status_code, body=resp.text)
                return False
            tickets = resp.json().get("data", [])
        except (requests.RequestException, ValueError) as e:
            logger.error("Expo push request failed", error=str(e))
            return False

        return any(ticket.get("status") == "ok" for ticket in tickets)


class TwilioSmsProvider:
    """Sends SMS through the Twilio Messages REST API"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        session: Optional[requests.Session] = None
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> "TwilioSmsProvider":
        return cls(
            account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
            auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
            from_number=os.getenv("TWILIO_FROM_NUMBER"),
        )

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send(self, to_phone: str, body: str) -> bool:
        if not self.is_configured():
            logger.error("Twilio not configured", to=to_phone)
            return False

        url = TWILIO_MESSAGES_URL.format(account_sid=self.account_sid)
        try:
            resp = self.session.post(
                url,
                data={"To": to_phone, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=10,
            )
        except requests.RequestException as e:
            logger.error("Twilio request failed", error=str(e))
            return False

        if resp.status_code >= 400:
            logger.error("Twilio SMS error", status=resp.status_code, body=resp.text)
            return False
        return True
