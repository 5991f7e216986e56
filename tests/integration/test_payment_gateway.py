"""Integration tests for the payment gateway bridge against the test database"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from riskwatch.services.payments import PaymentGateway
from riskwatch.domain.models import PaymentStatus, ProviderPayment, WebhookOutcome
from riskwatch.domain.exceptions import (
    InvalidPaymentRequest,
    InvalidRequest,
    PaymentCreationFailed,
    ProviderAPIError,
    StatusUnavailable,
    UnsupportedPaymentMethod,
)
from riskwatch.infrastructure.database.models import Payment, Subscription
from riskwatch.infrastructure.database.repositories import PaymentRepository


def provider_reports(provider: AsyncMock, status: str, payment_id: str = "tr_123") -> None:
    provider.get_payment.return_value = ProviderPayment(payment_id=payment_id, status=status)


def metric(name: str) -> float:
    return REGISTRY.get_sample_value(name) or 0.0


async def create_pending(db: Session, provider: AsyncMock, **overrides) -> str:
    params = dict(
        tenant_id="t1",
        offer_id="o1",
        payment_method="carte_bancaire",
        amount=29.99,
        description="Plan Pro",
    )
    params.update(overrides)
    session = await PaymentGateway(db, provider).create_payment(**params)
    return session.payment_id


async def test_create_payment_persists_pending_record(db: Session, provider: AsyncMock):
    session = await PaymentGateway(db, provider).create_payment(
        tenant_id="t1",
        offer_id="o1",
        payment_method="carte_bancaire",
        amount=29.99,
        description="Plan Pro",
    )

    assert session.payment_id == "tr_123"
    assert session.checkout_url == "https://checkout.example.test/tr_123"
    assert session.status == "open"

    record = PaymentRepository(db).find_by_id("tr_123")
    assert record.status == "pending"
    assert record.amount == Decimal("29.99")
    assert record.tenant_id == "t1"
    assert record.provider_method == "creditcard"


async def test_create_payment_provider_call(db: Session, provider: AsyncMock):
    await create_pending(db, provider, payment_method="cheque", amount=30)

    kwargs = provider.create_payment.call_args.kwargs
    assert kwargs["amount"] == "30.00"
    assert kwargs["currency"] == "EUR"
    assert kwargs["method"] == "banktransfer"
    assert kwargs["webhook_url"].endswith("/v1/payments/webhook?offerId=o1")
    assert "offerId=o1" in kwargs["redirect_url"]
    assert kwargs["metadata"]["offerId"] == "o1"
    assert kwargs["metadata"]["tenantId"] == "t1"


async def test_create_payment_provider_failure_leaves_no_record(db: Session, provider: AsyncMock):
    provider.create_payment.side_effect = ProviderAPIError("Payment provider error: 500")

    with pytest.raises(PaymentCreationFailed):
        await create_pending(db, provider)

    assert db.query(Payment).count() == 0


async def test_create_payment_validation_happens_before_provider(db: Session, provider: AsyncMock):
    with pytest.raises(UnsupportedPaymentMethod):
        await create_pending(db, provider, payment_method="paypal")
    with pytest.raises(InvalidPaymentRequest):
        await create_pending(db, provider, amount=100000)

    provider.create_payment.assert_not_called()


async def test_paid_webhook_activates_subscription_once(db: Session, provider: AsyncMock, offer):
    payment_id = await create_pending(db, provider)
    provider_reports(provider, "paid")
    gateway = PaymentGateway(db, provider)

    first = await gateway.handle_webhook(payment_id)
    second = await gateway.handle_webhook(payment_id)

    assert first is WebhookOutcome.TRANSITIONED
    assert second is WebhookOutcome.DUPLICATE

    record = PaymentRepository(db).find_by_id(payment_id)
    assert record.status == "paid"

    subscriptions = db.query(Subscription).all()
    assert len(subscriptions) == 1
    assert subscriptions[0].tenant_id == "t1"
    assert subscriptions[0].provider_payment_id == payment_id
    assert subscriptions[0].days_subscribed == 30
    assert record.subscription_id == subscriptions[0].id


@pytest.mark.parametrize("settled", ["failed", "canceled", "expired"])
async def test_terminal_status_is_never_left(db: Session, provider: AsyncMock, offer, settled):
    payment_id = await create_pending(db, provider)
    gateway = PaymentGateway(db, provider)

    provider_reports(provider, settled)
    assert await gateway.handle_webhook(payment_id) is WebhookOutcome.TRANSITIONED

    for later in ["paid", "open", "failed", "expired"]:
        provider_reports(provider, later)
        await gateway.handle_webhook(payment_id)

    assert PaymentRepository(db).find_by_id(payment_id).status == settled
    assert db.query(Subscription).count() == 0


async def test_intermediate_provider_status_changes_nothing(db: Session, provider: AsyncMock):
    payment_id = await create_pending(db, provider)
    provider_reports(provider, "open")

    outcome = await PaymentGateway(db, provider).handle_webhook(payment_id)

    assert outcome is WebhookOutcome.UNCHANGED
    assert PaymentRepository(db).find_by_id(payment_id).status == "pending"


@pytest.mark.parametrize("payload_id", [None, "", "not-a-payment", "tr_1; DROP TABLE payment"])
async def test_malformed_id_is_acknowledged_without_provider_call(db: Session, provider: AsyncMock, payload_id):
    outcome = await PaymentGateway(db, provider).handle_webhook(payload_id)

    assert outcome is WebhookOutcome.IGNORED
    provider.get_payment.assert_not_called()


async def test_webhook_for_unknown_payment(db: Session, provider: AsyncMock):
    provider_reports(provider, "paid", payment_id="tr_unknown")

    outcome = await PaymentGateway(db, provider).handle_webhook("tr_unknown")

    assert outcome is WebhookOutcome.UNKNOWN_PAYMENT
    assert db.query(Subscription).count() == 0


async def test_webhook_provider_error_is_swallowed_and_counted(db: Session, provider: AsyncMock):
    payment_id = await create_pending(db, provider)
    provider.get_payment.side_effect = ProviderAPIError("Payment provider timeout after 5.0s")
    failures_before = metric("riskwatch_payment_webhook_failures_total")

    outcome = await PaymentGateway(db, provider).handle_webhook(payment_id)

    assert outcome is WebhookOutcome.ERROR
    assert metric("riskwatch_payment_webhook_failures_total") == failures_before + 1
    assert PaymentRepository(db).find_by_id(payment_id).status == "pending"


async def test_activation_failure_rolls_back_transition(db: Session, provider: AsyncMock):
    """No offer row: activation fails, so the payment must stay pending for a later retry"""
    payment_id = await create_pending(db, provider)
    provider_reports(provider, "paid")

    outcome = await PaymentGateway(db, provider).handle_webhook(payment_id)

    assert outcome is WebhookOutcome.ERROR
    assert PaymentRepository(db).find_by_id(payment_id).status == "pending"


async def test_paid_webhook_extends_existing_subscription(db: Session, provider: AsyncMock, offer):
    today = date.today()
    current = Subscription(
        id="s1",
        tenant_id="t1",
        offer_id="o1",
        offer_name="Plan Pro",
        payment_amount=Decimal("29.99"),
        payment_method="virement",
        start_date=today - timedelta(days=20),
        end_date=today + timedelta(days=10),
        days_subscribed=30,
    )
    db.add(current)
    db.commit()

    payment_id = await create_pending(db, provider, subscription_id="s1")
    provider_reports(provider, "paid")

    assert await PaymentGateway(db, provider).handle_webhook(payment_id) is WebhookOutcome.TRANSITIONED

    db.refresh(current)
    assert current.end_date == today + timedelta(days=41)
    assert db.query(Subscription).count() == 1
    assert PaymentRepository(db).find_by_id(payment_id).subscription_id == "s1"


async def test_conditional_update_has_single_winner(db: Session, provider: AsyncMock):
    payment_id = await create_pending(db, provider)
    repo = PaymentRepository(db)

    assert repo.update_status(payment_id, PaymentStatus.PAID) is True
    assert repo.update_status(payment_id, PaymentStatus.PAID) is False
    assert repo.update_status(payment_id, PaymentStatus.FAILED) is False
    db.commit()

    assert repo.find_by_id(payment_id).status == "paid"


async def test_payment_status_reads_through_to_provider(db: Session, provider: AsyncMock):
    payment_id = await create_pending(db, provider)
    provider_reports(provider, "paid")

    result = await PaymentGateway(db, provider).get_payment_status(payment_id)

    assert result == {"status": "paid", "paymentId": payment_id}
    # local record untouched until the webhook arrives
    assert PaymentRepository(db).find_by_id(payment_id).status == "pending"


async def test_payment_status_errors(db: Session, provider: AsyncMock):
    gateway = PaymentGateway(db, provider)

    with pytest.raises(InvalidRequest):
        await gateway.get_payment_status("")

    provider.get_payment.side_effect = ProviderAPIError("Payment provider error: 503")
    with pytest.raises(StatusUnavailable):
        await gateway.get_payment_status("tr_123")


async def test_webhook_transition_guarded_by_state_machine(db: Session, provider: AsyncMock, offer, monkeypatch):
    payment_id = await create_pending(db, provider)
    provider_reports(provider, "paid")
    monkeypatch.setattr("riskwatch.services.payments.can_transition", lambda current, new: False)

    outcome = await PaymentGateway(db, provider).handle_webhook(payment_id)

    assert outcome is WebhookOutcome.DUPLICATE
    assert PaymentRepository(db).find_by_id(payment_id).status == "pending"
    assert db.query(Subscription).count() == 0


async def test_webhook_survives_failed_rollback(provider: AsyncMock):
    """Connection dropped: the rollback itself fails, the webhook still reports an error outcome"""
    db = MagicMock()
    db.rollback.side_effect = OperationalError("ROLLBACK", {}, Exception("connection lost"))
    provider.get_payment.side_effect = ProviderAPIError("Payment provider timeout after 5.0s")
    failures_before = metric("riskwatch_payment_webhook_failures_total")

    outcome = await PaymentGateway(db, provider).handle_webhook("tr_123")

    assert outcome is WebhookOutcome.ERROR
    db.rollback.assert_called_once()
    assert metric("riskwatch_payment_webhook_failures_total") == failures_before + 1
