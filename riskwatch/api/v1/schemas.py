"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional


class PaymentCreateRequest(BaseModel):
    """Request body for POST /v1/payments

    Range checks (positive, max amount, 2 decimals, known method) are domain
    rules and come back as 400, not schema errors.
    """

    model_config = ConfigDict(populate_by_name=True)

    offer_id: str = Field(..., alias="offerId", description="Offer being paid for")
    payment_method: str = Field(..., alias="paymentMethod", description="Platform payment method key")
    amount: Decimal = Field(..., description="Amount in currency units, 2 decimals max")
    description: str = Field(..., description="Label shown to the payer")
    subscription_id: Optional[str] = Field(None, alias="subscriptionId")


class PaymentCreateResponse(BaseModel):
    """Response for POST /v1/payments"""

    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(..., alias="paymentId")
    checkout_url: Optional[str] = Field(None, alias="checkoutUrl")
    status: str


class PaymentStatusResponse(BaseModel):
    """Response for GET /v1/payments/{payment_id}/status"""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    payment_id: str = Field(..., alias="paymentId")


class WebhookAck(BaseModel):
    """Response for POST /v1/payments/webhook"""

    received: bool = True


class NearbyRiskItem(BaseModel):
    """Single risk in a nearby query result"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    severity: Optional[str] = None
    category: Optional[str] = None
    latitude: float
    longitude: float
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    distance_km: float = Field(..., alias="distanceKm")
