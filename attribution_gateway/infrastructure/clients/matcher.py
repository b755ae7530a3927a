"""Remote matcher function client with connection-level retry"""

import httpx
import asyncio
import logging
from typing import Any, Dict
from attribution_gateway.config import settings
from attribution_gateway.domain.classification import classify_breakdown_key
from attribution_gateway.domain.exceptions import MatcherRunError
from attribution_gateway.domain.models import AttributionType, MatcherRunResult
from attribution_gateway.infrastructure.observability.metrics import matcher_latency_histogram

# Failures where the request provably never reached the function
_UNDELIVERED = (httpx.ConnectError, httpx.ConnectTimeout)


def _as_count(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_run_result(body: Any) -> MatcherRunResult:
    """Read the function response; summary may be nested or top-level"""
    if not isinstance(body, dict):
        raise MatcherRunError(f"Unexpected matcher payload: {type(body).__name__}")
    if body.get("success") is False or "error" in body:
        raise MatcherRunError(f"Matcher reported failure: {body.get('error', 'unknown error')}")

    summary = body.get("summary") if isinstance(body.get("summary"), dict) else body
    breakdown: Dict[AttributionType, int] = {}
    raw_breakdown = summary.get("matchBreakdown") or {}
    if isinstance(raw_breakdown, dict):
        for key, count in raw_breakdown.items():
            tag = classify_breakdown_key(key)
            breakdown[tag] = breakdown.get(tag, 0) + _as_count(count)

    total = summary.get("totalMatched", summary.get("matchesCreated"))
    return MatcherRunResult(
        total_matched=_as_count(total) if total is not None else sum(breakdown.values()),
        match_breakdown=breakdown,
        unmatched_count=_as_count(summary.get("totalUnmatched", 0)),
    )


class MatcherClient:
    """Client for the auto-match-attribution function"""

    def __init__(
        self,
        function_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.function_url = function_url or settings.matcher_function_url
        self.api_key = api_key if api_key is not None else settings.store_api_key
        self.timeout = settings.matcher_timeout_seconds
        self.max_retries = settings.matcher_max_retries
        self.backoff_base = settings.matcher_backoff_base
        self.transport = transport

    async def run(self, organization_id: str) -> MatcherRunResult:
        """
        Trigger a matcher run for one organization and wait for its summary.

        Retry strategy:
        - The run writes mappings, so it is not safe to repeat once delivered
        - Only connection failures (request never sent) are retried
        - Exponential backoff: base, 2*base, 4*base ...
        - Timeouts and HTTP errors surface immediately as MatcherRunError

        Raises:
            MatcherRunError: On any failure after retries
        """
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self.transport) as client:
            while True:
                try:
                    with matcher_latency_histogram.time():
                        response = await client.post(
                            self.function_url,
                            json={"organizationId": organization_id, "dryRun": False},
                        )
                        response.raise_for_status()
                        return parse_run_result(response.json())

                except _UNDELIVERED as e:
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise MatcherRunError(f"Matcher unreachable after {attempt} attempts") from e
                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logging.warning(
                        "Matcher connection failed, retrying",
                        extra={"organization_id": organization_id, "attempt": attempt, "backoff_s": backoff},
                    )
                    await asyncio.sleep(backoff)

                except httpx.TimeoutException as e:
                    raise MatcherRunError(f"Matcher timeout after {self.timeout}s") from e
                except httpx.HTTPStatusError as e:
                    raise MatcherRunError(f"Matcher error: {e.response.status_code}") from e
                except httpx.RequestError as e:
                    raise MatcherRunError(f"Matcher request failed: {e}") from e
                except ValueError as e:
                    raise MatcherRunError(f"Invalid JSON from matcher: {e}") from e
