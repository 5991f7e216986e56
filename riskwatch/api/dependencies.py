"""Dependency injection for FastAPI endpoints"""

from fastapi import Header, Request
from riskwatch.infrastructure.clients.mollie import MollieClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_tenant_id(x_tenant_id: str = Header(..., min_length=1)) -> str:
    """Tenant of the authenticated caller, set by the auth gateway"""
    return x_tenant_id


def get_provider_client() -> MollieClient:
    """Provide payment provider client instance"""
    return MollieClient()
