"""
MJML Email Templates
Booking confirmation, business notification and post-service review request
"""

from html import escape
from typing import Optional

from .config import BUSINESS_NAME
from .domain.scheduling.slots import format_time_for_display

# Earthy green theme
THEME = {
    "primary": "#2f855a",
    "background": "#f7faf5",
    "text_primary": "#1a202c",
    "text_secondary": "#2d3748",
    "text_muted": "#718096",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{escape(cta_url)}" background-color="{THEME['primary']}" color="#ffffff">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{escape(title)}</mj-title>
        <mj-preview>{escape(preview_text)}</mj-preview>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" color="{THEME['primary']}">
              {escape(BUSINESS_NAME)}
            </mj-text>
          </mj-column>
        </mj-section>
        <mj-section background-color="#ffffff" padding="24px 20px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="12px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}">
              {escape(BUSINESS_NAME)}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _booking_rows(booking: dict) -> str:
    customer = booking.get("customer") or {}
    service = booking.get("service") or {}
    time_slot = service.get("timeSlot")
    services = ", ".join(service.get("services") or []) or "General labor"
    rows = [
        ("Booking ID", booking.get("bookingId") or "-"),
        ("Date", service.get("date") or "-"),
        ("Time", format_time_for_display(time_slot) if time_slot else "-"),
        ("Crew size", f"{service.get('crewSize', '-')} workers"),
        ("Services", services),
        ("Address", customer.get("address") or "-"),
    ]
    if service.get("hourlyRate") is not None:
        rows.append(("Hourly rate", f"${service['hourlyRate']:.2f}/hour"))
    if service.get("notes"):
        rows.append(("Notes", service["notes"]))

    return "\n".join(
        f'<mj-text padding="4px 0"><strong>{label}:</strong> {escape(str(value))}</mj-text>'
        for label, value in rows
    )


def booking_confirmation_template(booking: dict) -> str:
    name = (booking.get("customer") or {}).get("name") or "there"
    content = f"""
    <mj-text font-size="18px" color="{THEME['text_primary']}">Hi {escape(name)},</mj-text>
    <mj-text>Thanks for booking with us! We have received your request and will confirm it shortly.</mj-text>
    {_booking_rows(booking)}
    """
    return get_base_template(
        title="Booking received",
        preview_text="We received your booking request",
        content_sections=content,
    )


def booking_notification_template(booking: dict) -> str:
    customer = booking.get("customer") or {}
    content = f"""
    <mj-text font-size="18px" color="{THEME['text_primary']}">New booking request</mj-text>
    <mj-text padding="4px 0"><strong>Customer:</strong> {escape(customer.get('name') or '-')}</mj-text>
    <mj-text padding="4px 0"><strong>Email:</strong> {escape(customer.get('email') or '-')}</mj-text>
    <mj-text padding="4px 0"><strong>Phone:</strong> {escape(customer.get('phone') or '-')}</mj-text>
    {_booking_rows(booking)}
    """
    return get_base_template(
        title="New booking request",
        preview_text=f"New booking from {customer.get('name') or 'a customer'}",
        content_sections=content,
    )


def review_request_template(customer_name: str, review_url: str, totals: dict) -> str:
    content = f"""
    <mj-text font-size="18px" color="{THEME['text_primary']}">Hi {escape(customer_name or 'there')},</mj-text>
    <mj-text>Thank you for choosing us. Your service is complete.</mj-text>
    <mj-text padding="4px 0"><strong>Materials:</strong> ${totals.get('materials', 0):.2f}</mj-text>
    <mj-text padding="4px 0"><strong>Labor:</strong> ${totals.get('laborCost', 0):.2f}</mj-text>
    <mj-text padding="4px 0"><strong>Deposit paid:</strong> ${totals.get('deposit', 0):.2f}</mj-text>
    <mj-text padding="4px 0"><strong>Final balance:</strong> ${totals.get('finalAmount', 0):.2f}</mj-text>
    <mj-text>If you were happy with the work, we would really appreciate a quick review.</mj-text>
    """
    return get_base_template(
        title="Thanks for your business",
        preview_text="How did we do?",
        content_sections=content,
        cta_url=review_url,
        cta_label="Leave a review",
    )
