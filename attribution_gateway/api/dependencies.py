"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from attribution_gateway.infrastructure.clients.store import StoreClient
from attribution_gateway.infrastructure.clients.matcher import MatcherClient
from attribution_gateway.services.attribution import AttributionService, inflight_registry, report_cache


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store_client() -> StoreClient:
    """Provide remote store client instance"""
    return StoreClient()


def get_matcher_client() -> MatcherClient:
    """Provide matcher function client instance"""
    return MatcherClient()


def get_attribution_service() -> AttributionService:
    """Provide attribution service bound to the process-wide cache and registry"""
    return AttributionService(get_store_client(), report_cache, inflight_registry)
