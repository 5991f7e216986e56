"""Payment gateway bridge - provider checkout creation and webhook reconciliation"""

import logging
from decimal import Decimal
from typing import Dict, Optional, Union
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from riskwatch.config import settings
from riskwatch.domain.exceptions import (
    InvalidRequest,
    PaymentCreationFailed,
    ProviderAPIError,
    StatusUnavailable,
)
from riskwatch.domain.models import CheckoutSession, PaymentStatus, WebhookOutcome
from riskwatch.domain.payments import (
    build_payment_request,
    can_transition,
    format_amount,
    is_valid_payment_id,
    target_status,
)
from riskwatch.infrastructure.clients.mollie import MollieClient
from riskwatch.infrastructure.database.repositories import PaymentRepository, SubscriptionRepository
from riskwatch.infrastructure.observability.logging import log_webhook_outcome
from riskwatch.infrastructure.observability.metrics import (
    payment_created_counter,
    record_webhook_outcome,
    subscription_activation_counter,
)

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Creates provider payments and reconciles their status into local records"""

    def __init__(self, db: Session, provider: MollieClient):
        self.db = db
        self.provider = provider
        self.payments = PaymentRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    async def create_payment(
        self,
        tenant_id: str,
        offer_id: str,
        payment_method: str,
        amount: Union[Decimal, float, int, str, None],
        description: str,
        subscription_id: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a payment at the provider and record it locally as pending.

        The local record is written only after the provider confirms creation.

        Raises:
            InvalidPaymentRequest: offer/description empty or amount out of range
            UnsupportedPaymentMethod: method has no provider counterpart
            PaymentCreationFailed: provider call failed
        """
        request = build_payment_request(
            tenant_id=tenant_id,
            offer_id=offer_id,
            payment_method=payment_method,
            amount=amount,
            description=description,
            max_amount=settings.payment_max_amount,
            subscription_id=subscription_id,
        )

        query = urlencode({"offerId": request.offer_id})
        try:
            provider_payment = await self.provider.create_payment(
                amount=format_amount(request.amount),
                currency=settings.payment_currency,
                description=request.description,
                redirect_url=f"{settings.frontend_url}/dashboard/my-subscriptions/payment-result?{query}",
                webhook_url=f"{settings.app_base_url}/v1/payments/webhook?{query}",
                method=request.provider_method,
                metadata={
                    "offerId": request.offer_id,
                    "subscriptionId": request.subscription_id,
                    "tenantId": request.tenant_id,
                    "paymentMethod": request.payment_method,
                },
            )
        except ProviderAPIError as e:
            raise PaymentCreationFailed("Unable to create the payment") from e

        self.payments.save(provider_payment.payment_id, request, settings.payment_currency)
        self.db.commit()

        payment_created_counter.labels(method=request.provider_method).inc()

        return CheckoutSession(
            payment_id=provider_payment.payment_id,
            checkout_url=provider_payment.checkout_url,
            status=provider_payment.status,
        )

    async def handle_webhook(self, payment_id: Optional[str]) -> WebhookOutcome:
        """
        Reconcile a provider notification. Never raises.

        The payload only supplies the id; the status is always re-read from the
        provider so a forged notification cannot mark a payment as paid.
        """
        if not is_valid_payment_id(payment_id):
            logger.warning("Webhook without a usable payment id", extra={"payment_id": payment_id})
            return self._finish(payment_id, WebhookOutcome.IGNORED)

        transition = None
        provider_status = None
        try:
            provider_payment = await self.provider.get_payment(payment_id)
            provider_status = provider_payment.status

            new_status = target_status(provider_status)
            if new_status is None:
                return self._finish(payment_id, WebhookOutcome.UNCHANGED, provider_status)

            record = self.payments.find_by_id(payment_id)
            if record is None:
                logger.warning(
                    "Webhook for unknown payment",
                    extra={"payment_id": payment_id, "provider_status": provider_status},
                )
                return self._finish(payment_id, WebhookOutcome.UNKNOWN_PAYMENT, provider_status)

            transition = f"{record.status}->{new_status.value}"
            # can_transition rejects terminal records; update_status settles races with concurrent deliveries
            if not can_transition(record.status, new_status) or not self.payments.update_status(
                payment_id, new_status
            ):
                self.db.rollback()
                return self._finish(payment_id, WebhookOutcome.DUPLICATE, provider_status, transition)

            if new_status is PaymentStatus.PAID:
                subscription = self.subscriptions.activate_subscription(
                    tenant_id=record.tenant_id,
                    offer_id=record.offer_id,
                    payment_method=record.payment_method,
                    provider_payment_id=payment_id,
                    subscription_id=record.subscription_id,
                )
                self.payments.set_subscription(payment_id, subscription.id)

            self.db.commit()
            if new_status is PaymentStatus.PAID:
                subscription_activation_counter.inc()

            return self._finish(payment_id, WebhookOutcome.TRANSITIONED, provider_status, transition)

        except Exception:
            logger.exception(
                "Webhook processing failed",
                extra={"payment_id": payment_id, "provider_status": provider_status, "transition": transition},
            )
            try:
                self.db.rollback()
            except Exception:
                logger.exception("Rollback after webhook failure failed", extra={"payment_id": payment_id})
            return self._finish(payment_id, WebhookOutcome.ERROR, provider_status, transition)

    async def get_payment_status(self, payment_id: Optional[str]) -> Dict[str, str]:
        """
        Current provider status of a payment, bypassing the local record.

        Raises:
            InvalidRequest: payment id missing or malformed
            StatusUnavailable: provider lookup failed
        """
        if not is_valid_payment_id(payment_id):
            raise InvalidRequest(f"Invalid payment id: {payment_id!r}")

        try:
            provider_payment = await self.provider.get_payment(payment_id)
        except ProviderAPIError as e:
            raise StatusUnavailable("Unable to retrieve the payment status") from e

        return {"status": provider_payment.status, "paymentId": provider_payment.payment_id}

    @staticmethod
    def _finish(
        payment_id: Optional[str],
        outcome: WebhookOutcome,
        provider_status: Optional[str] = None,
        transition: Optional[str] = None,
    ) -> WebhookOutcome:
        record_webhook_outcome(outcome.value)
        log_webhook_outcome(payment_id, outcome.value, provider_status, transition)
        return outcome
