"""Email service using Gmail API with Service Account.

Uses domain-wide delegation to send emails on behalf of a Google Workspace user.
The service account must have domain-wide delegation enabled in Google Admin Console.

Required Google Admin Console setup:
1. Go to Security > Access and data control > API controls > Domain-wide delegation
2. Add the service account client_id with scope: https://www.googleapis.com/auth/gmail.send
"""

import asyncio
import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from learnhub.core.logging import get_logger
from learnhub.email.schemas import (
    EmailRecipient,
    SendEmailRequest,
    SendEmailResponse,
)
from learnhub.email.templates import render_certificate_issued, render_course_completed


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

# Gmail API scope for sending emails
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Service for sending emails via Gmail API.

    Uses a service account with domain-wide delegation to impersonate
    a Google Workspace user.
    """

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "LearnHub",
    ):
        """Initialize Gmail API service.

        Args:
            credentials_path: Path to service account JSON file
            sender_address: Email address to send from (must be in Google Workspace)
            sender_name: Display name for sender
        """
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or create Gmail API service.

        Uses lazy initialization to avoid issues during app startup.

        Raises:
            FileNotFoundError: If credentials file doesn't exist
            GoogleAuthError: If credentials are invalid
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        )
        delegated_credentials = credentials.with_subject(self.sender_address)

        self._service = build(
            "gmail",
            "v1",
            credentials=delegated_credentials,
            cache_discovery=False,
        )

        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    def _format_address(self, recipient: EmailRecipient) -> str:
        """Format an address with optional display name."""
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Create email message in Gmail API format.

        Returns:
            Dict with 'raw' key containing base64url encoded message
        """
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        if request.reply_to:
            message["Reply-To"] = request.reply_to

        # Plain text first, then HTML (email clients prefer last)
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw_message = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw_message}

    def _send(self, message: dict) -> dict:
        service = self._get_service()
        return service.users().messages().send(userId="me", body=message).execute()

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email via Gmail API.

        Failures are logged and reported in the response, never raised.
        """
        try:
            # The Google client is blocking
            result = await asyncio.to_thread(
                self._send, self._create_message(request)
            )
        except HttpError as e:
            logger.exception(
                "email_send_failed",
                error=str(e),
                to=[r.email for r in request.to],
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=False, error=f"Gmail API error: {e}")
        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )
        except GoogleAuthError as e:
            logger.exception("gmail_service_init_failed", error=str(e))
            return SendEmailResponse(
                success=False, error="Email service credentials are invalid"
            )

        logger.info(
            "email_sent",
            message_id=result.get("id"),
            thread_id=result.get("threadId"),
            to=[r.email for r in request.to],
            subject=request.subject[:50],
        )
        return SendEmailResponse(
            success=True,
            message_id=result.get("id"),
            thread_id=result.get("threadId"),
        )

    async def send_simple_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
        to_name: str | None = None,
    ) -> SendEmailResponse:
        """Send a single-recipient email (convenience method)."""
        request = SendEmailRequest(
            to=[EmailRecipient(email=to, name=to_name)],
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
        return await self.send_email(request)

    async def send_course_completed(
        self, to: str, user_name: str, course_title: str
    ) -> SendEmailResponse:
        body_html, body_text = render_course_completed(user_name, course_title)
        return await self.send_simple_email(
            to=to,
            subject=f"You completed {course_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )

    async def send_certificate_issued(
        self,
        to: str,
        user_name: str,
        course_title: str,
        certificate_no: str,
        grade: str,
        verify_url: str,
    ) -> SendEmailResponse:
        """Send the certificate email with its public verification link."""
        body_html, body_text = render_certificate_issued(
            user_name=user_name,
            course_title=course_title,
            certificate_no=certificate_no,
            grade=grade,
            verify_url=verify_url,
        )
        return await self.send_simple_email(
            to=to,
            subject=f"Your certificate for {course_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )
