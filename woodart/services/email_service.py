"""Email service using Resend for transactional emails."""

import logging
from typing import Any

import resend

from woodart.core.config import get_settings

logger = logging.getLogger(__name__)


def _layout(title: str, body_html: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="font-family: Georgia, 'Times New Roman', serif; line-height: 1.6; color: #3e2c1c; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #8b5a2b; padding: 24px; border-radius: 10px 10px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 22px;">{title}</h1>
    </div>
    <div style="background: #fdf8f3; padding: 24px; border: 1px solid #e6d5c3; border-top: none; border-radius: 0 0 10px 10px;">
        {body_html}
        <p style="font-size: 13px; color: #8a7560; margin-top: 24px;">Wood Art Gallery</p>
    </div>
</body>
</html>
"""


class EmailService:
    """Service for sending transactional emails via Resend.

    Sending never raises: the result dict reports success or the error, so
    a failed email cannot undo the state change that triggered it.
    """

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    def _send(self, to_email: str, subject: str, html: str, text: str, kind: str) -> dict[str, Any]:
        if not self.enabled:
            logger.info("Email disabled, skipping %s email to %s", kind, to_email)
            return {"success": False, "skipped": True}
        if not to_email:
            logger.warning("No recipient for %s email, skipping", kind)
            return {"success": False, "skipped": True}

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": html,
                "text": text,
            })

            logger.info("%s email sent to %s, id: %s", kind, to_email, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send %s email to %s: %s", kind, to_email, str(e))
            return {"success": False, "error": str(e)}

    async def send_payment_approved_email(
        self,
        to_email: str,
        customer_name: str | None,
        order_id: str,
        amount: float,
        order_type: str = "marketplace",
    ) -> dict[str, Any]:
        """Tell a customer their bank transfer was verified.

        Args:
            to_email: Customer email address.
            customer_name: Customer display name.
            order_id: Human-readable order id.
            amount: Amount that was paid.
            order_type: ``marketplace`` or ``custom``.

        Returns:
            dict: Send result with email ID on success.
        """
        label = "Custom Order" if order_type == "custom" else "Order"
        name = customer_name or "there"
        html = _layout(
            "Payment Approved",
            f"""
        <p>Hi {name},</p>
        <p>Your bank payment of <strong>Rs. {amount:,.2f}</strong> for {label.lower()}
        <strong>{order_id}</strong> has been verified. We are now preparing your order.</p>
        <p><a href="{self.frontend_url}/customer/purchases" style="color: #8b5a2b;">View your orders</a></p>
""",
        )
        text = (
            f"Hi {name},\n\nYour bank payment of Rs. {amount:,.2f} for {label.lower()} {order_id} "
            f"has been verified. We are now preparing your order.\n\n"
            f"View your orders: {self.frontend_url}/customer/purchases\n"
        )
        return self._send(to_email, f"Payment Approved - {label} {order_id}", html, text, "payment approved")

    async def send_payment_denied_email(
        self,
        to_email: str,
        customer_name: str | None,
        order_id: str,
        reason: str | None = None,
        order_type: str = "marketplace",
    ) -> dict[str, Any]:
        """Tell a customer their bank slip was rejected."""
        label = "Custom Order" if order_type == "custom" else "Order"
        name = customer_name or "there"
        reason_text = reason or "The bank slip could not be verified."
        html = _layout(
            "Payment Not Approved",
            f"""
        <p>Hi {name},</p>
        <p>We could not approve the payment for {label.lower()} <strong>{order_id}</strong>.</p>
        <p><strong>Reason:</strong> {reason_text}</p>
        <p>Please contact us if you believe this is a mistake.</p>
""",
        )
        text = (
            f"Hi {name},\n\nWe could not approve the payment for {label.lower()} {order_id}.\n"
            f"Reason: {reason_text}\n\nPlease contact us if you believe this is a mistake.\n"
        )
        return self._send(to_email, f"Payment Not Approved - {label} {order_id}", html, text, "payment denied")

    async def send_custom_order_accepted_email(
        self,
        to_email: str,
        customer_name: str | None,
        order_id: str,
        final_price: float,
    ) -> dict[str, Any]:
        """Tell a customer a staff designer has taken their custom order."""
        name = customer_name or "there"
        html = _layout(
            "Custom Order Accepted",
            f"""
        <p>Hi {name},</p>
        <p>Good news: your custom order <strong>{order_id}</strong> has been accepted and our
        craftspeople have started on it.</p>
        <p><strong>Price:</strong> Rs. {final_price:,.2f}</p>
""",
        )
        text = (
            f"Hi {name},\n\nYour custom order {order_id} has been accepted and work has started.\n"
            f"Price: Rs. {final_price:,.2f}\n"
        )
        return self._send(
            to_email, f"Your Custom Order {order_id} Has Been Accepted", html, text, "custom order accepted"
        )

    async def send_designer_payment_released_email(
        self,
        to_email: str | None,
        designer_name: str,
        order_id: str,
        item_name: str,
        designer_amount: float,
    ) -> dict[str, Any]:
        """Tell a designer their share of a sale has been paid out."""
        html = _layout(
            "Payment Released",
            f"""
        <p>Hi {designer_name},</p>
        <p>Your earnings of <strong>Rs. {designer_amount:,.2f}</strong> for <strong>{item_name}</strong>
        (order {order_id}) have been released.</p>
        <p><a href="{self.frontend_url}/designer/payments" style="color: #8b5a2b;">Payment history</a></p>
""",
        )
        text = (
            f"Hi {designer_name},\n\nYour earnings of Rs. {designer_amount:,.2f} for {item_name} "
            f"(order {order_id}) have been released.\n"
        )
        return self._send(to_email or "", f"Payment Released - {order_id}", html, text, "designer payment")


def get_email_service() -> EmailService:
    """Create an email service bound to the current settings."""
    return EmailService()
