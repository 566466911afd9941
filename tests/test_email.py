"""Tests for Resend email delivery and the MJML templates."""

import pytest
import resend

from landscape_api import config, email_service
from landscape_api.email_templates import booking_confirmation_template, review_request_template

BOOKING = {
    "bookingId": "abc123",
    "customer": {"name": "Jane <Doe>", "email": "jane@example.com", "phone": "+15551234567"},
    "service": {"date": "2025-08-29", "timeSlot": "13:00", "crewSize": 3, "hourlyRate": 100.0},
}


@pytest.fixture
def sent(monkeypatch):
    """Capture Resend calls instead of sending"""
    messages = []

    def fake_send(params):
        messages.append(params)
        return {"id": f"email-{len(messages)}"}

    monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: "<html></html>")
    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return messages


class TestTemplates:
    def test_confirmation_escapes_customer_values(self):
        mjml = booking_confirmation_template(BOOKING)
        assert "Jane &lt;Doe&gt;" in mjml
        assert "1PM" in mjml
        assert "$100.00/hour" in mjml

    def test_review_request_links_to_reviews(self):
        mjml = review_request_template("Jane", "https://example.com/review", {"finalAmount": 12.5})
        assert 'href="https://example.com/review"' in mjml
        assert "$12.50" in mjml


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_skipped_without_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "RESEND_API_KEY", None)
        assert await email_service.send_email("a@example.com", "Hi", "<mjml></mjml>") == {
            "skipped": True
        }

    @pytest.mark.asyncio
    async def test_sends_through_resend(self, sent):
        response = await email_service.send_email("a@example.com", "Hi", "<mjml></mjml>")
        assert response == {"id": "email-1"}
        assert sent[0]["to"] == ["a@example.com"]
        assert sent[0]["html"] == "<html></html>"
        assert sent[0]["from"] == config.EMAIL_FROM_ADDRESS

    @pytest.mark.asyncio
    async def test_booking_emails_include_business_notification(self, sent, monkeypatch):
        monkeypatch.setattr(config, "BUSINESS_NOTIFICATION_EMAIL", "owner@example.com")
        result = await email_service.send_booking_emails(BOOKING)
        assert result == {"customerEmail": {"id": "email-1"}, "businessEmail": {"id": "email-2"}}
        assert [m["to"] for m in sent] == [["jane@example.com"], ["owner@example.com"]]

    @pytest.mark.asyncio
    async def test_customer_failure_still_notifies_business(self, sent, monkeypatch):
        def send_unless_customer(params):
            if params["to"] == ["jane@example.com"]:
                raise RuntimeError("mailbox unavailable")
            sent.append(params)
            return {"id": "email-business"}

        monkeypatch.setattr(config, "BUSINESS_NOTIFICATION_EMAIL", "owner@example.com")
        monkeypatch.setattr(resend.Emails, "send", send_unless_customer)

        result = await email_service.send_booking_emails(BOOKING)
        assert result == {
            "customerEmail": {"error": "Failed to send email"},
            "businessEmail": {"id": "email-business"},
        }
        assert [m["to"] for m in sent] == [["owner@example.com"]]

    @pytest.mark.asyncio
    async def test_resend_failure_raises(self, monkeypatch):
        def failing_send(params):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
        monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: "<html></html>")
        monkeypatch.setattr(resend.Emails, "send", failing_send)
        with pytest.raises(Exception, match="Failed to send email"):
            await email_service.send_email("a@example.com", "Hi", "<mjml></mjml>")


class TestSendEmailEndpoint:
    def test_requires_customer_email(self, client):
        response = client.post("/api/send-email", json={"bookingData": {"customer": {}}})
        assert response.status_code == 400

    def test_reports_skipped_sends(self, client):
        response = client.post("/api/send-email", json={"bookingData": BOOKING})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "customerEmail": {"skipped": True},
            "businessEmail": {"skipped": True},
        }

    def test_delivery_failure(self, client, monkeypatch):
        async def broken(booking):
            raise RuntimeError("resend is down")

        monkeypatch.setattr(email_service, "send_booking_emails", broken)
        response = client.post("/api/send-email", json={"bookingData": BOOKING})
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send email"

    def test_partial_delivery_is_reported(self, client, sent, monkeypatch):
        def send_unless_customer(params):
            if params["to"] == ["jane@example.com"]:
                raise RuntimeError("mailbox unavailable")
            return {"id": "email-business"}

        monkeypatch.setattr(config, "BUSINESS_NOTIFICATION_EMAIL", "owner@example.com")
        monkeypatch.setattr(resend.Emails, "send", send_unless_customer)

        response = client.post("/api/send-email", json={"bookingData": BOOKING})
        assert response.status_code == 200
        assert response.json()["customerEmail"] == {"error": "Failed to send email"}
        assert response.json()["businessEmail"] == {"id": "email-business"}

    def test_every_delivery_failing_is_an_error(self, client, sent, monkeypatch):
        def failing_send(params):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(config, "BUSINESS_NOTIFICATION_EMAIL", "owner@example.com")
        monkeypatch.setattr(resend.Emails, "send", failing_send)

        response = client.post("/api/send-email", json={"bookingData": BOOKING})
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send email"
