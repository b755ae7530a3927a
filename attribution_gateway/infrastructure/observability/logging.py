"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from attribution_gateway.config import settings


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


def log_report_built(
    request_id: str,
    organization_id: str,
    match_rate_percent: float,
    transaction_count: int,
    stale: bool,
    duration_ms: float,
) -> None:
    """Log structured report outcome for analysis"""
    logging.info(
        "Attribution report built",
        extra={
            "request_id": request_id,
            "organization_id": organization_id,
            "step": "report_complete",
            "match_rate_percent": match_rate_percent,
            "transaction_count": transaction_count,
            "stale": stale,
            "duration_ms": duration_ms,
        },
    )


def log_mapping_confirmed(
    request_id: str,
    organization_id: str,
    refcode: str,
    mapping_id: str,
    superseded_count: int,
) -> None:
    """Log a manual confirmation and the rows it superseded"""
    logging.info(
        "Attribution mapping confirmed",
        extra={
            "request_id": request_id,
            "organization_id": organization_id,
            "step": "mapping_confirmed",
            "refcode": refcode,
            "mapping_id": mapping_id,
            "superseded_count": superseded_count,
        },
    )
