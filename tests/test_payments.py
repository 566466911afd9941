"""Tests for charge & complete, paid bookings and the Square endpoints."""

from conftest import make_booking_payload, slot_for
from sqlalchemy.exc import OperationalError

from landscape_api import email_service
from landscape_api.domain.bookings.repository import BookingRepository
from landscape_api.domain.bookings.service import final_payment_key
from landscape_api.errors import PaymentError, PaymentUnavailableError
from landscape_api.services import square_service

PAYMENT_INFO = {
    "paymentId": "pay-1",
    "amount": 80,
    "currency": "USD",
    "customerId": "cust-1",
    "cardId": "card-1",
}


class FakeSquare:
    """Records calls made to the Square service"""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.charges = []
        self.refunds = []
        self.idempotency_keys = []

    async def charge_card_on_file(
        self, customer_id, card_id, amount_cents, currency=None, description=None, idempotency_key=None
    ):
        if self.fail_with:
            raise self.fail_with
        self.charges.append((customer_id, card_id, amount_cents))
        self.idempotency_keys.append(idempotency_key)
        return {
            "success": True,
            "payment": {"id": "final-1", "status": "COMPLETED", "amountMoney": {"amount": amount_cents}},
        }

    async def refund_payment(self, payment_id, amount_cents, currency=None, reason=""):
        if self.fail_with:
            raise self.fail_with
        self.refunds.append((payment_id, amount_cents))
        return {"success": True, "refundId": "refund-1", "status": "PENDING"}


def _install(monkeypatch, fake: FakeSquare) -> FakeSquare:
    monkeypatch.setattr(square_service, "charge_card_on_file", fake.charge_card_on_file)
    monkeypatch.setattr(square_service, "refund_payment", fake.refund_payment)
    return fake


def _create_paid(client, **kwargs) -> dict:
    response = client.post(
        "/api/create-booking-with-payment",
        json={"bookingData": make_booking_payload(**kwargs), "paymentInfo": PAYMENT_INFO},
    )
    assert response.status_code == 200, response.json()
    return response.json()["booking"]


class TestCreateBookingWithPayment:
    def test_records_deposit(self, client):
        booking = _create_paid(client)
        assert booking["payment"]["depositPaid"] is True
        assert booking["payment"]["depositAmount"] == 80
        assert booking["payment"]["cardId"] == "card-1"

    def test_slot_taken_refunds_deposit(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        client.post("/api/bookings", json=make_booking_payload())

        response = client.post(
            "/api/create-booking-with-payment",
            json={"bookingData": make_booking_payload(), "paymentInfo": PAYMENT_INFO},
        )
        assert response.status_code == 409
        assert response.json()["refunded"] is True
        assert response.json()["refundNeeded"] is False
        assert fake.refunds == [("pay-1", 8000)]

    def test_failed_refund_is_reported(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare(fail_with=PaymentUnavailableError()))
        client.post("/api/bookings", json=make_booking_payload())

        response = client.post(
            "/api/create-booking-with-payment",
            json={"bookingData": make_booking_payload(), "paymentInfo": PAYMENT_INFO},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "slot_conflict"
        assert response.json()["refundNeeded"] is True

    def test_slot_no_longer_offered_refunds_deposit(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        client.put("/api/calendar-time-slots", json={"date": "2025-08-29", "timeSlots": [{"time": "13:00"}]})

        response = client.post(
            "/api/create-booking-with-payment",
            json={"bookingData": make_booking_payload(time_slot="09:00"), "paymentInfo": PAYMENT_INFO},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert response.json()["refunded"] is True
        assert fake.refunds == [("pay-1", 8000)]

    def test_duplicate_booking_id_refunds_deposit(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        client.post("/api/bookings", json=make_booking_payload(booking_id="web-1"))

        response = client.post(
            "/api/create-booking-with-payment",
            json={
                "bookingData": make_booking_payload(time_slot="13:00", booking_id="web-1"),
                "paymentInfo": PAYMENT_INFO,
            },
        )
        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_booking"
        assert response.json()["refunded"] is True
        assert response.json()["refundNeeded"] is False
        assert fake.refunds == [("pay-1", 8000)]

    def test_storage_outage_refunds_deposit(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())

        def broken_add(db, booking):
            raise OperationalError("INSERT INTO bookings", {}, Exception("database is locked"))

        monkeypatch.setattr(BookingRepository, "add", staticmethod(broken_add))
        response = client.post(
            "/api/create-booking-with-payment",
            json={"bookingData": make_booking_payload(), "paymentInfo": PAYMENT_INFO},
        )
        assert response.status_code == 500
        assert response.json()["code"] == "store_unavailable"
        assert response.json()["refunded"] is True
        assert fake.refunds == [("pay-1", 8000)]


class TestChargeAndComplete:
    def test_charges_balance_and_removes_booking(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        booking_id = _create_paid(client)["bookingId"]

        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 50, "serviceHours": 3},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["totals"] == {
            "materials": 50.0,
            "serviceHours": 3.0,
            "hourlyRate": 70.0,
            "laborCost": 210.0,
            "subtotal": 260.0,
            "deposit": 80.0,
            "finalAmount": 180.0,
        }
        assert fake.charges == [("cust-1", "card-1", 18000)]
        assert body["status"] == "completed"
        assert [h["status"] for h in body["statusHistory"]][-1] == "completed"

        assert client.get(f"/api/bookings/{booking_id}").status_code == 404
        day = client.get("/api/calendar-availability/2025-08-29").json()
        assert slot_for(day, "09:00")["isAvailable"] is True

    def test_final_charge_uses_stable_idempotency_key(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        booking_id = _create_paid(client)["bookingId"]

        client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 50, "serviceHours": 3},
        )
        assert fake.idempotency_keys == [final_payment_key(booking_id, 18000)]
        assert final_payment_key(booking_id, 18000) == final_payment_key(booking_id, 18000)
        assert len(final_payment_key("x" * 64, 18000)) <= 45

    def test_retry_after_failed_delete_does_not_charge_twice(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        booking_id = _create_paid(client)["bookingId"]
        working_delete = BookingRepository.__dict__["delete"]

        def broken_delete(db, booking):
            raise OperationalError("DELETE FROM bookings", {}, Exception("disk I/O error"))

        monkeypatch.setattr(BookingRepository, "delete", staticmethod(broken_delete))
        body = {"materialsCost": 50, "serviceHours": 3}
        response = client.post(f"/api/bookings/{booking_id}/charge-complete", json=body)
        assert response.status_code == 500
        assert response.json()["code"] == "store_unavailable"

        booking = client.get(f"/api/bookings/{booking_id}").json()["booking"]
        assert booking["payment"]["finalPaid"] is True
        assert booking["payment"]["finalPaymentId"] == "final-1"
        assert booking["status"]["current"] == "completed"

        monkeypatch.setattr(BookingRepository, "delete", working_delete)
        response = client.post(f"/api/bookings/{booking_id}/charge-complete", json=body)
        assert response.status_code == 200
        assert response.json()["payment"] == {"id": "final-1"}
        assert fake.charges == [("cust-1", "card-1", 18000)]
        assert client.get(f"/api/bookings/{booking_id}").status_code == 404

    def test_nothing_left_to_pay(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        booking_id = _create_paid(client)["bookingId"]

        body = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 0, "serviceHours": 1},
        ).json()
        assert body["totals"]["finalAmount"] == 0
        assert body["payment"] is None
        assert fake.charges == []

    def test_default_deposit_without_payment_record(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare())
        booking_id = client.post("/api/bookings", json=make_booking_payload()).json()["booking"][
            "bookingId"
        ]

        body = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 20, "serviceHours": 2, "collectPayment": False},
        ).json()
        assert body["totals"]["deposit"] == 80.0
        assert body["totals"]["finalAmount"] == 80.0

    def test_no_card_on_file(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare())
        booking_id = client.post("/api/bookings", json=make_booking_payload()).json()["booking"][
            "bookingId"
        ]

        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 100, "serviceHours": 2},
        )
        assert response.status_code == 400
        assert client.get(f"/api/bookings/{booking_id}").status_code == 200

    def test_declined_card_keeps_booking(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare(fail_with=PaymentError("Card declined")))
        booking_id = _create_paid(client)["bookingId"]

        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 100, "serviceHours": 2},
        )
        assert response.status_code == 502
        assert response.json() == {"error": "Card declined", "code": "payment_failed"}
        assert client.get(f"/api/bookings/{booking_id}").status_code == 200

    def test_review_email_failure_does_not_block(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare())

        async def broken_review(*args, **kwargs):
            raise RuntimeError("resend is down")

        monkeypatch.setattr(email_service, "send_review_request", broken_review)
        booking_id = _create_paid(client)["bookingId"]

        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 0, "serviceHours": 4},
        )
        assert response.status_code == 200
        assert response.json()["reviewEmailSent"] is False
        assert client.get(f"/api/bookings/{booking_id}").status_code == 404

    def test_cancelled_booking_cannot_complete(self, client, monkeypatch):
        _install(monkeypatch, FakeSquare())
        booking_id = _create_paid(client)["bookingId"]
        client.patch(f"/api/bookings/{booking_id}/status", json={"status": "cancelled"})

        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": 0, "serviceHours": 1},
        )
        assert response.status_code == 409

    def test_negative_amounts_rejected(self, client):
        booking_id = _create_paid(client)["bookingId"]
        response = client.post(
            f"/api/bookings/{booking_id}/charge-complete",
            json={"materialsCost": -1, "serviceHours": 1},
        )
        assert response.status_code == 400


class TestSquareEndpoints:
    def test_not_configured(self, client):
        response = client.post("/api/square/create-payment", json={"sourceId": "cnon:ok", "amount": 80})
        assert response.status_code == 503
        assert response.json()["code"] == "payment_unavailable"

    def test_create_payment_converts_to_cents(self, client, monkeypatch):
        calls = []

        async def fake_create_payment(**kwargs):
            calls.append(kwargs)
            return {"success": True, "payment": {"id": "p1"}, "customerId": "c1", "cardId": "k1"}

        monkeypatch.setattr(square_service, "create_payment", fake_create_payment)
        response = client.post(
            "/api/square/create-payment",
            json={
                "sourceId": "cnon:ok",
                "amount": 80.5,
                "saveCard": True,
                "customerInfo": {"name": "Jane Doe", "email": "jane@example.com"},
            },
        )
        assert response.status_code == 200
        assert response.json()["cardId"] == "k1"
        assert calls[0]["amount_cents"] == 8050
        assert calls[0]["save_card"] is True
        assert calls[0]["customer_info"]["name"] == "Jane Doe"

    def test_charge_card_on_file(self, client, monkeypatch):
        fake = _install(monkeypatch, FakeSquare())
        response = client.post(
            "/api/square/charge-card-on-file",
            json={"customerId": "cust-9", "cardId": "card-9", "amount": 12.34},
        )
        assert response.status_code == 200
        assert fake.charges == [("cust-9", "card-9", 1234)]

    def test_rejects_zero_amount(self, client):
        response = client.post("/api/square/create-payment", json={"sourceId": "cnon:ok", "amount": 0})
        assert response.status_code == 400


class TestToCents:
    def test_rounding(self):
        assert square_service.to_cents(19.99) == 1999
        assert square_service.to_cents(0.1 + 0.2) == 30
