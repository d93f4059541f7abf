"""Service for sending emails."""

import html
import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional
from urllib.parse import urlencode

from ..domain.errors import DeliveryUncertainError, NotificationDispatchError
from ..domain.models import CustomerAction

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending reminder emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Subscription Reminders",
        base_url: str = "http://localhost:3000",
        timeout_seconds: float = 10.0,
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def confirmation_links(self, confirmation_token: str) -> Dict[CustomerAction, str]:
        """Build one landing-page link per action, all carrying the same token."""
        return {
            action: f"{self.base_url}/subscription/confirm?"
            + urlencode({"token": confirmation_token, "action": action.value})
            for action in CustomerAction
        }

    def send_subscription_reminder(
        self,
        email: str,
        recipient_name: str,
        product_name: str,
        next_delivery_date: date,
        confirmation_token: str,
    ) -> None:
        """
        Send the upcoming-delivery reminder.

        Args:
            email: Recipient email
            recipient_name: Name used in the greeting
            product_name: Subscribed product
            next_delivery_date: Delivery the reminder is about
            confirmation_token: Token embedded in the action links

        Raises:
            NotificationDispatchError: If the SMTP exchange fails
        """
        links = self.confirmation_links(confirmation_token)
        delivery_label = next_delivery_date.strftime("%d/%m/%Y")

        if not self.enabled:
            # Development mode: surface the links in the log instead of sending.
            logger.info(
                "[EMAIL] Reminder for %s (%s on %s): continue=%s pause=%s cancel=%s",
                email,
                product_name,
                delivery_label,
                links[CustomerAction.CONTINUE],
                links[CustomerAction.PAUSE],
                links[CustomerAction.CANCEL],
            )
            return

        subject = f"Your {product_name} delivery is coming up on {delivery_label}"
        safe_name = html.escape(recipient_name)
        safe_product = html.escape(product_name)
        html_links = {action: html.escape(link) for action, link in links.items()}
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #1e293b;">Hi {safe_name},</h2>

                <p style="color: #475569; line-height: 1.6;">
                    Your next delivery of <strong>{safe_product}</strong> is scheduled for
                    <strong>{delivery_label}</strong>. Let us know how you would like to proceed:
                </p>

                <div style="text-align: center; margin: 30px 0;">
                    <a href="{html_links[CustomerAction.CONTINUE]}"
                       style="background-color: #16a34a; color: white; padding: 12px 24px;
                              text-decoration: none; border-radius: 5px; margin: 4px; display: inline-block;">
                        Continue
                    </a>
                    <a href="{html_links[CustomerAction.PAUSE]}"
                       style="background-color: #f59e0b; color: white; padding: 12px 24px;
                              text-decoration: none; border-radius: 5px; margin: 4px; display: inline-block;">
                        Pause
                    </a>
                    <a href="{html_links[CustomerAction.CANCEL]}"
                       style="background-color: #dc2626; color: white; padding: 12px 24px;
                              text-decoration: none; border-radius: 5px; margin: 4px; display: inline-block;">
                        Cancel
                    </a>
                </div>

                <p style="color: #64748b; font-size: 14px;">
                    If you do nothing, your delivery will go ahead as planned.
                </p>
            </body>
        </html>
        """

        text_body = f"""
        Hi {recipient_name},

        Your next delivery of {product_name} is scheduled for {delivery_label}.

        Continue: {links[CustomerAction.CONTINUE]}
        Pause: {links[CustomerAction.PAUSE]}
        Cancel: {links[CustomerAction.CANCEL]}

        If you do nothing, your delivery will go ahead as planned.
        """

        self._send_email(email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        """
        Send an email via SMTP.

        Raises:
            NotificationDispatchError: If the message was not accepted by the server
            DeliveryUncertainError: If the connection failed once the message was
                being transmitted, so it may have been delivered
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        transmitting = False
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_seconds) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                transmitting = True
                server.send_message(msg)
        except (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused, smtplib.SMTPDataError) as exc:
            logger.warning("Server rejected email to %s: %s", to_email, exc)
            raise NotificationDispatchError(f"Failed to send email to {to_email}: {exc}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            if transmitting:
                logger.warning("Delivery of email to %s is uncertain: %s", to_email, exc)
                raise DeliveryUncertainError(f"Delivery of email to {to_email} is uncertain: {exc}") from exc
            logger.warning("Failed to send email to %s: %s", to_email, exc)
            raise NotificationDispatchError(f"Failed to send email to {to_email}: {exc}") from exc
