"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    """Local payment lifecycle; PENDING is the only non-terminal state"""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELED = "canceled"
    EXPIRED = "expired"


class WebhookOutcome(str, Enum):
    """What a webhook delivery did to the local record"""

    IGNORED = "ignored"  # no usable payment id
    UNKNOWN_PAYMENT = "unknown_payment"
    UNCHANGED = "unchanged"  # provider status still intermediate
    DUPLICATE = "duplicate"  # local record already terminal
    TRANSITIONED = "transitioned"
    ERROR = "error"


@dataclass
class PaymentRequest:
    """Validated payment creation input"""

    tenant_id: str
    offer_id: str
    payment_method: str
    provider_method: str
    amount: Decimal
    description: str
    subscription_id: Optional[str] = None


@dataclass
class ProviderPayment:
    """Payment as reported by the provider"""

    payment_id: str
    status: str
    checkout_url: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckoutSession:
    """Result of a successful payment creation"""

    payment_id: str
    checkout_url: Optional[str]
    status: str


@dataclass
class SubscriptionPeriod:
    """Date span granted by one subscription payment"""

    start_date: date
    end_date: date

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days


@dataclass
class RiskPoint:
    """Risk record as consumed by the nearby query"""

    id: str
    latitude: float
    longitude: float
    title: str = ""
    description: Optional[str] = None
    severity: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class NearbyRisk:
    """Risk annotated with its distance from the query point"""

    risk: RiskPoint
    distance_km: float
