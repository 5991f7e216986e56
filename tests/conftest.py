"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import importlib.util
import pytest
from decimal import Decimal
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from riskwatch.api.main import create_app
from riskwatch.api.dependencies import get_provider_client
from riskwatch.infrastructure.database.models import Base, Offer, Risk
from riskwatch.infrastructure.database.session import get_db
from riskwatch.infrastructure.clients.mollie import MollieClient
from riskwatch.domain.models import ProviderPayment


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Paris city hall
PARIS = (48.8566, 2.3522)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider() -> AsyncMock:
    """Payment provider double; tests set return values per call"""
    client = AsyncMock(spec=MollieClient)
    client.create_payment.return_value = ProviderPayment(
        payment_id="tr_123",
        status="open",
        checkout_url="https://checkout.example.test/tr_123",
        amount=Decimal("29.99"),
        currency="EUR",
    )
    client.get_payment.return_value = ProviderPayment(payment_id="tr_123", status="open")
    return client


@pytest.fixture
def client(db: Session, provider: AsyncMock) -> TestClient:
    """Create FastAPI test client with test database and provider double"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_client] = lambda: provider
    return TestClient(app)


@pytest.fixture
def offer(db: Session) -> Offer:
    """Pro plan: 30 days for 29.99"""
    db_offer = Offer(id="o1", name="Plan Pro", max_users=10, price=Decimal("29.99"), duration_days=30)
    db.add(db_offer)
    db.commit()
    return db_offer


@pytest.fixture
def paris_risks(db: Session) -> list[Risk]:
    """Risks around Paris at known distances from PARIS, plus one for another tenant"""
    risks = [
        # ~5.2 km north
        Risk(id="r-near", tenant_id="t1", title="Fallen tree", severity="modéré",
             category="naturel", latitude=48.9034, longitude=2.3522),
        # ~12 km north
        Risk(id="r-far", tenant_id="t1", title="Gas leak", severity="élevé",
             category="industriel", latitude=48.9645, longitude=2.3522),
        # ~1.1 km east
        Risk(id="r-closest", tenant_id="t1", title="Open trench", severity="faible",
             category="technologique", latitude=48.8566, longitude=2.3672),
        # same spot as r-closest, other tenant
        Risk(id="r-other-tenant", tenant_id="t2", title="Flooded road", severity="critique",
             category="naturel", latitude=48.8566, longitude=2.3672),
    ]
    db.add_all(risks)
    db.commit()
    return risks


@pytest.fixture
def mock_provider_app():
    """Mock payment provider FastAPI app from mock/provider_server"""
    path = Path(__file__).resolve().parents[1] / "mock" / "provider_server" / "main.py"
    spec = importlib.util.spec_from_file_location("mock_provider_server", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.app
