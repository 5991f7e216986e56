"""Data access layer for payments, subscriptions and risks"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from riskwatch.infrastructure.database.models import Payment, Offer, Subscription, Risk
from riskwatch.domain.exceptions import OfferNotFound
from riskwatch.domain.models import PaymentRequest, PaymentStatus, RiskPoint
from riskwatch.domain.subscriptions import compute_subscription_period, extend_subscription_period

logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for local payment records"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, provider_payment_id: str, request: PaymentRequest, currency: str) -> Payment:
        """Persist a new pending payment; provider_payment_id is unique"""
        db_payment = Payment(
            provider_payment_id=provider_payment_id,
            tenant_id=request.tenant_id,
            offer_id=request.offer_id,
            subscription_id=request.subscription_id,
            payment_method=request.payment_method,
            provider_method=request.provider_method,
            status=PaymentStatus.PENDING.value,
            amount=request.amount,
            currency=currency,
            description=request.description,
        )
        self.db.add(db_payment)
        self.db.flush()
        return db_payment

    def find_by_id(self, provider_payment_id: str) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.provider_payment_id == provider_payment_id)
            .first()
        )

    def update_status(self, provider_payment_id: str, status: PaymentStatus) -> bool:
        """
        Move a pending payment to a terminal status.

        Compare-and-set on the status column: the UPDATE only matches while the
        row is still pending, so of two concurrent deliveries exactly one gets
        rowcount == 1 and goes on to apply side effects.

        Returns:
            True if this call performed the transition
        """
        result = self.db.execute(
            update(Payment)
            .where(Payment.provider_payment_id == provider_payment_id)
            .where(Payment.status == PaymentStatus.PENDING.value)
            .values(status=status.value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_subscription(self, provider_payment_id: str, subscription_id: str) -> None:
        self.db.execute(
            update(Payment)
            .where(Payment.provider_payment_id == provider_payment_id)
            .values(subscription_id=subscription_id)
            .execution_options(synchronize_session=False)
        )


class SubscriptionRepository:
    """Repository for tenant subscriptions"""

    def __init__(self, db: Session):
        self.db = db

    def find_latest(self, tenant_id: str) -> Optional[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.tenant_id == tenant_id)
            .order_by(Subscription.end_date.desc())
            .first()
        )

    def find_by_payment(self, provider_payment_id: str) -> Optional[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.provider_payment_id == provider_payment_id)
            .first()
        )

    def activate_subscription(
        self,
        tenant_id: str,
        offer_id: str,
        payment_method: str,
        provider_payment_id: str,
        subscription_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Subscription:
        """
        Grant the offer's duration to a tenant after a successful payment.

        Extends subscription_id in place when it belongs to the tenant, otherwise
        creates a new subscription following on from the latest one. A payment
        already linked to a subscription returns that subscription unchanged.

        Raises:
            OfferNotFound: offer_id does not exist
        """
        existing = self.find_by_payment(provider_payment_id)
        if existing is not None:
            return existing

        offer = self.db.query(Offer).filter(Offer.id == offer_id).first()
        if offer is None:
            raise OfferNotFound(f"Offer {offer_id} not found")

        if subscription_id:
            current = (
                self.db.query(Subscription)
                .filter(Subscription.id == subscription_id, Subscription.tenant_id == tenant_id)
                .first()
            )
            if current is not None:
                current.end_date = extend_subscription_period(current.end_date, offer.duration_days, today)
                current.days_subscribed = (current.end_date - current.start_date).days
                self.db.flush()
                return current
            logger.warning(
                "Subscription to extend not found, creating a new one",
                extra={"subscription_id": subscription_id, "tenant_id": tenant_id},
            )

        latest = self.find_latest(tenant_id)
        period = compute_subscription_period(
            offer.duration_days,
            latest.end_date if latest else None,
            today,
        )

        db_subscription = Subscription(
            tenant_id=tenant_id,
            offer_id=offer.id,
            offer_name=offer.name,
            payment_amount=offer.price,
            payment_method=payment_method,
            start_date=period.start_date,
            end_date=period.end_date,
            days_subscribed=period.days,
            provider_payment_id=provider_payment_id,
        )
        self.db.add(db_subscription)
        self.db.flush()
        return db_subscription


class RiskRepository:
    """Repository for tenant risk points"""

    def __init__(self, db: Session):
        self.db = db

    def find_in_bounding_box(
        self,
        tenant_id: str,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
    ) -> List[RiskPoint]:
        """Tenant risks inside a lat/lng box (candidate set for distance filtering)"""
        rows = (
            self.db.query(Risk)
            .filter(Risk.tenant_id == tenant_id)
            .filter(Risk.latitude.between(min_lat, max_lat))
            .filter(Risk.longitude.between(min_lng, max_lng))
            .all()
        )
        return [
            RiskPoint(
                id=str(r.id),
                latitude=r.latitude,
                longitude=r.longitude,
                title=r.title,
                description=r.description,
                severity=r.severity,
                category=r.category,
                created_at=r.created_at,
            )
            for r in rows
        ]
