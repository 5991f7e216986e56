"""Payment rules - method mapping, amount validation and the status state machine"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from riskwatch.domain.exceptions import InvalidPaymentRequest, UnsupportedPaymentMethod
from riskwatch.domain.models import PaymentRequest, PaymentStatus

# Platform method key -> provider method. Cheques are collected as bank transfers.
PAYMENT_METHOD_MAP = {
    "carte_bancaire": "creditcard",
    "virement": "banktransfer",
    "prelevement": "directdebit",
    "cheque": "banktransfer",
    "card": "creditcard",
    "bank-transfer": "banktransfer",
    "direct-debit": "directdebit",
    "check": "banktransfer",
}

TERMINAL_STATUSES = frozenset(
    {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELED, PaymentStatus.EXPIRED}
)

# Provider statuses that settle a payment; anything else (open, pending, authorized) is intermediate
PROVIDER_TERMINAL_STATUS_MAP = {
    "paid": PaymentStatus.PAID,
    "failed": PaymentStatus.FAILED,
    "canceled": PaymentStatus.CANCELED,
    "expired": PaymentStatus.EXPIRED,
}

PROVIDER_PAYMENT_ID_PATTERN = re.compile(r"^tr_[A-Za-z0-9]+$")

CENT = Decimal("0.01")


def resolve_provider_method(payment_method: str) -> str:
    """Map a platform payment method to the provider's method name"""
    provider_method = PAYMENT_METHOD_MAP.get((payment_method or "").strip().lower())
    if provider_method is None:
        raise UnsupportedPaymentMethod(f"Unsupported payment method: {payment_method}")
    return provider_method


def parse_amount(amount: Union[Decimal, float, int, str, None], max_amount: Decimal) -> Decimal:
    """
    Validate a payment amount.

    Floats go through str() so 29.99 stays 29.99 instead of its binary expansion.

    Raises:
        InvalidPaymentRequest: amount missing, not numeric, <= 0, above max_amount
            or with more than two decimal places
    """
    if amount is None or isinstance(amount, bool):
        raise InvalidPaymentRequest("amount is required")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidPaymentRequest(f"amount is not a number: {amount!r}") from e

    if not value.is_finite():
        raise InvalidPaymentRequest("amount must be finite")
    if value <= 0:
        raise InvalidPaymentRequest("amount must be positive")
    if value > max_amount:
        raise InvalidPaymentRequest(f"amount must not exceed {max_amount}")
    if value != value.quantize(CENT):
        raise InvalidPaymentRequest("amount must have at most 2 decimal places")

    return value.quantize(CENT)


def format_amount(amount: Decimal) -> str:
    """Provider wire format: fixed two decimals, e.g. '29.90'"""
    return str(amount.quantize(CENT))


def build_payment_request(
    tenant_id: str,
    offer_id: str,
    payment_method: str,
    amount: Union[Decimal, float, int, str, None],
    description: str,
    max_amount: Decimal,
    subscription_id: Optional[str] = None,
) -> PaymentRequest:
    """Validate raw creation input into a PaymentRequest"""
    if not isinstance(offer_id, str) or not offer_id.strip():
        raise InvalidPaymentRequest("offerId must be a non-empty string")
    if not isinstance(description, str) or not description.strip():
        raise InvalidPaymentRequest("description must be a non-empty string")

    provider_method = resolve_provider_method(payment_method)
    value = parse_amount(amount, max_amount)

    return PaymentRequest(
        tenant_id=tenant_id,
        offer_id=offer_id.strip(),
        payment_method=payment_method.strip().lower(),
        provider_method=provider_method,
        amount=value,
        description=description.strip(),
        subscription_id=subscription_id or None,
    )


def is_valid_payment_id(payment_id: Optional[str]) -> bool:
    return isinstance(payment_id, str) and bool(PROVIDER_PAYMENT_ID_PATTERN.match(payment_id))


def is_terminal(status: Union[PaymentStatus, str]) -> bool:
    return PaymentStatus(status) in TERMINAL_STATUSES


def target_status(provider_status: str) -> Optional[PaymentStatus]:
    """Local status a provider status settles to, or None while still in flight"""
    return PROVIDER_TERMINAL_STATUS_MAP.get((provider_status or "").lower())


def can_transition(current: Union[PaymentStatus, str], new: Union[PaymentStatus, str]) -> bool:
    """pending -> terminal is the only legal edge"""
    return PaymentStatus(current) is PaymentStatus.PENDING and is_terminal(new)
