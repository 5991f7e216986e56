"""Payment endpoints - checkout creation, provider webhook, status polling"""

import json
import time
import logging
from typing import Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from riskwatch.api.v1.schemas import (
    PaymentCreateRequest,
    PaymentCreateResponse,
    PaymentStatusResponse,
    WebhookAck,
)
from riskwatch.api.dependencies import get_provider_client, get_request_id, get_tenant_id
from riskwatch.infrastructure.database.session import get_db
from riskwatch.infrastructure.clients.mollie import MollieClient
from riskwatch.services.payments import PaymentGateway
from riskwatch.domain.exceptions import (
    InvalidPaymentRequest,
    InvalidRequest,
    PaymentCreationFailed,
    StatusUnavailable,
    UnsupportedPaymentMethod,
)
from riskwatch.infrastructure.observability.logging import log_payment_created

router = APIRouter()


@router.post("/payments", response_model=PaymentCreateResponse, status_code=201)
async def create_payment(
    request_body: PaymentCreateRequest,
    request: Request,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    provider: MollieClient = Depends(get_provider_client),
):
    """
    Start a payment for an offer.

    Flow:
    1. Validate method and amount
    2. Create the payment at the provider
    3. Persist the local record as pending
    4. Return the checkout URL the payer is redirected to
    """
    start_time = time.time()
    request_id = get_request_id(request)
    gateway = PaymentGateway(db, provider)

    try:
        session = await gateway.create_payment(
            tenant_id=tenant_id,
            offer_id=request_body.offer_id,
            payment_method=request_body.payment_method,
            amount=request_body.amount,
            description=request_body.description,
            subscription_id=request_body.subscription_id,
        )

    except (InvalidPaymentRequest, UnsupportedPaymentMethod) as e:
        logging.warning(f"Rejected payment request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except PaymentCreationFailed as e:
        db.rollback()
        logging.error(f"Payment creation failed: {e.__cause__}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Unable to create the payment")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    log_payment_created(
        request_id,
        tenant_id,
        session.payment_id,
        request_body.offer_id,
        request_body.payment_method,
        duration_ms,
    )

    return PaymentCreateResponse(
        payment_id=session.payment_id,
        checkout_url=session.checkout_url,
        status=session.status,
    )


@router.post("/payments/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    provider: MollieClient = Depends(get_provider_client),
):
    """
    Provider notification endpoint. Always answers 200 so the provider does not
    retry; reconciliation failures are reported through logs and metrics.
    """
    payment_id = await _extract_payment_id(request)
    await PaymentGateway(db, provider).handle_webhook(payment_id)
    return WebhookAck()


@router.get("/payments/{payment_id}/status", response_model=PaymentStatusResponse)
async def get_payment_status(
    payment_id: str,
    request: Request,
    db: Session = Depends(get_db),
    provider: MollieClient = Depends(get_provider_client),
):
    """Provider-side status of a payment, for clients polling after checkout"""
    request_id = get_request_id(request)
    try:
        result = await PaymentGateway(db, provider).get_payment_status(payment_id)
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StatusUnavailable as e:
        logging.error(f"Status unavailable: {e.__cause__}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Unable to retrieve the payment status")

    return PaymentStatusResponse(status=result["status"], payment_id=result["paymentId"])


async def _extract_payment_id(request: Request) -> Optional[str]:
    """Payment id from a form-encoded (provider default) or JSON webhook body"""
    try:
        body = await request.body()
        if "application/json" in request.headers.get("content-type", ""):
            data = json.loads(body or b"{}")
            value = data.get("id") if isinstance(data, dict) else None
        else:
            value = parse_qs(body.decode("utf-8")).get("id", [None])[0]
    except (ValueError, UnicodeDecodeError) as e:
        logging.warning(f"Unreadable webhook body: {e}")
        return None

    return value if isinstance(value, str) else None
