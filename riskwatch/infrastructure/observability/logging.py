"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from riskwatch.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_payment_created(
    request_id: str,
    tenant_id: str,
    payment_id: str,
    offer_id: str,
    payment_method: str,
    duration_ms: float,
) -> None:
    """Log structured payment creation for reconciliation"""
    logging.info(
        "Payment created",
        extra={
            "request_id": request_id,
            "tenant_id": tenant_id,
            "payment_id": payment_id,
            "offer_id": offer_id,
            "step": "payment_created",
            "payment_method": payment_method,
            "duration_ms": duration_ms,
        },
    )


def log_webhook_outcome(
    payment_id: Optional[str],
    outcome: str,
    provider_status: Optional[str] = None,
    transition: Optional[str] = None,
) -> None:
    """Log how a webhook delivery was reconciled"""
    logging.info(
        "Webhook processed",
        extra={
            "payment_id": payment_id,
            "step": "webhook_reconciled",
            "outcome": outcome,
            "provider_status": provider_status,
            "transition": transition,
        },
    )


def log_nearby_query(
    request_id: str,
    tenant_id: str,
    radius_km: float,
    limit: int,
    result_count: int,
    duration_ms: float,
) -> None:
    logging.info(
        "Nearby risks queried",
        extra={
            "request_id": request_id,
            "tenant_id": tenant_id,
            "step": "nearby_query",
            "radius_km": radius_km,
            "limit": limit,
            "result_count": result_count,
            "duration_ms": duration_ms,
        },
    )
