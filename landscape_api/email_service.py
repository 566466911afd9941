"""
Email Service using Resend
Templates are MJML, compiled to HTML before sending. Without RESEND_API_KEY
every send is skipped and reported as such instead of failing.
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from . import config
from .email_templates import (
    booking_confirmation_template,
    booking_notification_template,
    review_request_template,
)

logger = logging.getLogger(__name__)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict, or {"skipped": True} when email is not configured
    """
    recipients = [to] if isinstance(to, str) else to

    if not config.RESEND_API_KEY:
        logger.warning(f"📧 Email disabled (RESEND_API_KEY missing), not sending '{subject}'")
        return {"skipped": True}

    html_content = compile_mjml_to_html(mjml_content)
    resend.api_key = config.RESEND_API_KEY

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or config.EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Pre-built emails for booking events
# ============================================


async def send_booking_confirmation(booking: dict) -> dict:
    """Confirmation to the customer"""
    customer = booking.get("customer") or {}
    return await send_email(
        to=customer["email"],
        subject=f"Booking received - {config.BUSINESS_NAME}",
        mjml_content=booking_confirmation_template(booking),
    )


async def send_booking_notification(booking: dict) -> dict:
    """Heads-up to the business inbox"""
    if not config.BUSINESS_NOTIFICATION_EMAIL:
        logger.info("📧 BUSINESS_NOTIFICATION_EMAIL not set, skipping business notification")
        return {"skipped": True}

    customer = booking.get("customer") or {}
    service = booking.get("service") or {}
    return await send_email(
        to=config.BUSINESS_NOTIFICATION_EMAIL,
        subject=f"New booking: {customer.get('name', 'Customer')} on {service.get('date', '')}",
        mjml_content=booking_notification_template(booking),
    )


async def send_booking_emails(booking: dict) -> dict:
    """
    Customer confirmation plus business notification. Each is sent on its own;
    a failed send is logged and reported as {"error": ...} in its entry.
    """
    results = {}
    for key, send in (
        ("customerEmail", send_booking_confirmation),
        ("businessEmail", send_booking_notification),
    ):
        try:
            results[key] = await send(booking)
        except Exception as e:
            logger.error(f"❌ {key} for booking {booking.get('bookingId')} failed: {e}")
            results[key] = {"error": "Failed to send email"}
    return results


async def send_review_request(customer_email: str, customer_name: str, totals: dict) -> dict:
    """Post-service thank you with a link to leave a review"""
    return await send_email(
        to=customer_email,
        subject=f"Thanks for choosing {config.BUSINESS_NAME}!",
        mjml_content=review_request_template(customer_name, config.REVIEW_URL, totals),
    )
