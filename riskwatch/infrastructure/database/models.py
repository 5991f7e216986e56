"""SQLAlchemy ORM models for payments, subscriptions and risks"""

import uuid
from sqlalchemy import Column, String, Float, Integer, Numeric, DateTime, Date, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Payment(Base):
    """Local record of a provider payment"""

    __tablename__ = "payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_payment_id = Column(String(64), nullable=False, unique=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    offer_id = Column(Text, nullable=False)
    subscription_id = Column(Text, nullable=True)
    payment_method = Column(Text, nullable=False)
    provider_method = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)


class Offer(Base):
    """Priced subscription plan"""

    __tablename__ = "offer"

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False, unique=True)
    max_users = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    duration_days = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Subscription(Base):
    """Tenant subscription period paid for an offer"""

    __tablename__ = "subscription"

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(Text, nullable=False, index=True)
    offer_id = Column(Text, nullable=False)
    offer_name = Column(Text, nullable=False)
    payment_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_subscribed = Column(Integer, nullable=False)
    provider_payment_id = Column(String(64), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Risk(Base):
    """Geolocated hazard reported by a tenant's field workers"""

    __tablename__ = "risk"

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(Text, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(Text, nullable=False, default="modéré")
    category = Column(Text, nullable=True)
    latitude = Column(Float, nullable=False, index=True)
    longitude = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
