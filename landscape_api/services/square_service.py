"""
Square Payments Service
Deposits at booking time, saved cards, final charges on completion and refunds
"""
import logging
import uuid
from typing import Any, Optional

import httpx

from ..config import (
    PAYMENT_CURRENCY,
    SQUARE_ACCESS_TOKEN,
    SQUARE_API_VERSION,
    SQUARE_ENVIRONMENT,
    SQUARE_LOCATION_ID,
)
from ..errors import PaymentError, PaymentUnavailableError

logger = logging.getLogger(__name__)

if SQUARE_ENVIRONMENT == "production":
    SQUARE_API_URL = "https://connect.squareup.com/v2"
else:
    SQUARE_API_URL = "https://connect.squareupsandbox.com/v2"


def is_configured() -> bool:
    return bool(SQUARE_ACCESS_TOKEN and SQUARE_LOCATION_ID)


def _headers() -> dict:
    return {
        "Square-Version": SQUARE_API_VERSION,
        "Authorization": f"Bearer {SQUARE_ACCESS_TOKEN}",
        "Content-Type": "application/json",
    }


async def _post(path: str, payload: dict) -> dict:
    """POST to the Square API; any non-2xx answer becomes a PaymentError"""
    if not is_configured():
        logger.warning(f"Square not configured, refusing {path}")
        raise PaymentUnavailableError()

    try:
        async with httpx.AsyncClient(timeout=30.0) as http_client:
            response = await http_client.post(
                f"{SQUARE_API_URL}{path}", json=payload, headers=_headers()
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Square request to {path} failed: {e}")
        raise PaymentError() from e

    if response.status_code not in (200, 201):
        logger.error(f"❌ Square API error on {path} ({response.status_code}): {response.text}")
        detail = None
        try:
            errors = response.json().get("errors") or []
            # CARD_DECLINED etc. are safe to show the customer
            if errors and errors[0].get("category") == "PAYMENT_METHOD_ERROR":
                detail = errors[0].get("detail")
        except ValueError:
            pass
        raise PaymentError(detail)

    return response.json()


def _money(amount_cents: int, currency: Optional[str] = None) -> dict:
    return {"amount": int(amount_cents), "currency": currency or PAYMENT_CURRENCY}


async def create_customer(name: str, email: Optional[str], phone: Optional[str]) -> str:
    """Create a Square customer so the card can be charged again later"""
    given_name, _, family_name = (name or "").partition(" ")
    payload = {
        "idempotency_key": str(uuid.uuid4()),
        "given_name": given_name,
        "family_name": family_name or None,
        "email_address": email,
        "phone_number": phone,
    }
    data = await _post("/customers", {k: v for k, v in payload.items() if v})
    customer_id = data["customer"]["id"]
    logger.info(f"✅ Square customer created: {customer_id}")
    return customer_id


async def save_card_on_file(payment_id: str, customer_id: str) -> str:
    """Store the card used for a completed payment against the customer"""
    data = await _post(
        "/cards",
        {
            "idempotency_key": str(uuid.uuid4()),
            "source_id": payment_id,
            "card": {"customer_id": customer_id},
        },
    )
    card_id = data["card"]["id"]
    logger.info(f"✅ Card saved on file for customer {customer_id}")
    return card_id


async def create_payment(
    source_id: str,
    amount_cents: int,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    customer_info: Optional[dict] = None,
    save_card: bool = False,
) -> dict[str, Any]:
    """
    Charge a tokenized card (the deposit).

    With save_card, a Square customer is created first and the card is stored
    on file so the final balance can be charged without the customer present.
    """
    customer_id = None
    if save_card:
        info = customer_info or {}
        customer_id = await create_customer(info.get("name"), info.get("email"), info.get("phone"))

    payload = {
        "idempotency_key": str(uuid.uuid4()),
        "source_id": source_id,
        "amount_money": _money(amount_cents, currency),
        "location_id": SQUARE_LOCATION_ID,
        "autocomplete": True,
    }
    if customer_id:
        payload["customer_id"] = customer_id
    if description:
        payload["note"] = description[:500]

    payment = (await _post("/payments", payload))["payment"]
    logger.info(f"✅ Square payment {payment['id']} {payment.get('status')}")

    card_id = None
    if customer_id:
        card_id = await save_card_on_file(payment["id"], customer_id)

    return {
        "success": True,
        "payment": {
            "id": payment["id"],
            "status": payment.get("status"),
            "amountMoney": payment.get("amount_money") or _money(amount_cents, currency),
        },
        "customerId": customer_id,
        "cardId": card_id,
    }


async def charge_card_on_file(
    customer_id: str,
    card_id: str,
    amount_cents: int,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    idempotency_key: Optional[str] = None,
) -> dict[str, Any]:
    """
    Charge a stored card, used for the final balance after service.

    Square replays the original payment when the same idempotency_key is sent
    again, so callers that may retry should pass a stable key.
    """
    payload = {
        "idempotency_key": idempotency_key or str(uuid.uuid4()),
        "source_id": card_id,
        "customer_id": customer_id,
        "amount_money": _money(amount_cents, currency),
        "location_id": SQUARE_LOCATION_ID,
        "autocomplete": True,
    }
    if description:
        payload["note"] = description[:500]

    payment = (await _post("/payments", payload))["payment"]
    logger.info(f"✅ Charged card on file for customer {customer_id}: {payment['id']}")
    return {
        "success": True,
        "payment": {
            "id": payment["id"],
            "status": payment.get("status"),
            "amountMoney": payment.get("amount_money") or _money(amount_cents, currency),
        },
    }


async def refund_payment(
    payment_id: str, amount_cents: int, currency: Optional[str] = None, reason: str = ""
) -> dict[str, Any]:
    payload = {
        "idempotency_key": str(uuid.uuid4()),
        "payment_id": payment_id,
        "amount_money": _money(amount_cents, currency),
    }
    if reason:
        payload["reason"] = reason[:192]

    data = await _post("/refunds", payload)
    refund = data["refund"]
    logger.info(f"↩️ Refund {refund['id']} issued for payment {payment_id}")
    return {"success": True, "refundId": refund["id"], "status": refund.get("status")}


def to_cents(amount: float) -> int:
    return int(round(amount * 100))
