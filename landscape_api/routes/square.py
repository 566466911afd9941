"""
Square Payments endpoints
Deposit charge at checkout and manual charges against a saved card
"""
import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..config import PAYMENT_CURRENCY
from ..services import square_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/square", tags=["square"])


# Pydantic Models
class SquareCustomerInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class CreatePaymentRequest(BaseModel):
    sourceId: str = Field(min_length=1)
    amount: float = Field(gt=0)
    currency: str = PAYMENT_CURRENCY
    description: Optional[str] = None
    customerInfo: Optional[SquareCustomerInfo] = None
    saveCard: bool = False


class ChargeCardOnFileRequest(BaseModel):
    customerId: str = Field(min_length=1)
    cardId: str = Field(min_length=1)
    amount: float = Field(gt=0)
    currency: str = PAYMENT_CURRENCY
    description: Optional[str] = None


@router.post("/create-payment")
async def create_payment(data: CreatePaymentRequest):
    """Charge a card token from the Web Payments SDK, optionally keeping the card on file"""
    logger.info(f"💳 Creating Square payment of {data.amount} {data.currency}")
    return await square_service.create_payment(
        source_id=data.sourceId,
        amount_cents=square_service.to_cents(data.amount),
        currency=data.currency,
        description=data.description,
        customer_info=data.customerInfo.model_dump() if data.customerInfo else None,
        save_card=data.saveCard,
    )


@router.post("/charge-card-on-file")
async def charge_card_on_file(data: ChargeCardOnFileRequest):
    logger.info(f"💳 Charging card on file for customer {data.customerId}")
    return await square_service.charge_card_on_file(
        customer_id=data.customerId,
        card_id=data.cardId,
        amount_cents=square_service.to_cents(data.amount),
        currency=data.currency,
        description=data.description,
    )
