"""Remote store HTTP client for transactions and attribution mappings"""

import httpx
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from attribution_gateway.domain.models import AttributionMapping, Transaction
from attribution_gateway.domain.normalization import parse_mappings, parse_transactions
from attribution_gateway.domain.exceptions import (
    MappingConflictError,
    StoreAPIError,
    StoreNetworkError,
    StoreServerError,
    StoreValidationError,
)
from attribution_gateway.config import settings

TRANSACTIONS_TABLE = "actblue_transactions"
MAPPINGS_TABLE = "campaign_attribution"

TRANSACTION_COLUMNS = "id,amount,refcode,transaction_date,donor_email,is_recurring"


def _classify_status(exc: httpx.HTTPStatusError, action: str) -> StoreAPIError:
    status = exc.response.status_code
    if status >= 500:
        return StoreServerError(f"Store error during {action}: {status}", status_code=status)
    return StoreValidationError(f"Store rejected {action}: {status}", status_code=status)


class StoreClient:
    """Client for the PostgREST-style store behind the dashboard"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.store_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.store_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.page_size = page_size or settings.store_page_size
        self.transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, headers=self.headers, transport=self.transport)

    async def _fetch_all(self, table: str, params: Dict[str, str], action: str) -> List[Dict[str, Any]]:
        """
        Page through a table with limit/offset until a short page comes back.

        Raises:
            StoreNetworkError: On timeout or connection failure
            StoreServerError: On 5xx
            StoreValidationError: On 4xx or a non-list payload
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        async with self._client() as client:
            try:
                while True:
                    response = await client.get(
                        f"{self.base_url}/{table}",
                        params={**params, "limit": str(self.page_size), "offset": str(offset)},
                    )
                    response.raise_for_status()
                    page = response.json()
                    if not isinstance(page, list):
                        raise StoreValidationError(f"Unexpected {action} payload: {type(page).__name__}")
                    rows.extend(page)
                    if len(page) < self.page_size:
                        return rows
                    offset += self.page_size

            except httpx.TimeoutException as e:
                raise StoreNetworkError(f"Store timeout after {self.timeout}s during {action}") from e
            except httpx.HTTPStatusError as e:
                raise _classify_status(e, action) from e
            except httpx.RequestError as e:
                raise StoreNetworkError(f"Store unreachable during {action}: {e}") from e
            except ValueError as e:
                raise StoreValidationError(f"Invalid JSON from store during {action}: {e}") from e

    async def fetch_transactions(self, organization_id: str) -> Tuple[List[Transaction], int]:
        """
        Fetch every transaction of an organization.

        Returns (transactions, rejected_count); rejected rows had no usable amount.
        """
        rows = await self._fetch_all(
            TRANSACTIONS_TABLE,
            {"select": TRANSACTION_COLUMNS, "organization_id": f"eq.{organization_id}", "order": "id.asc"},
            "transaction fetch",
        )
        return parse_transactions(rows)

    async def fetch_attribution_mappings(self, organization_id: str) -> List[AttributionMapping]:
        """Fetch active (non-superseded) mappings of an organization"""
        rows = await self._fetch_all(
            MAPPINGS_TABLE,
            {
                "select": "*",
                "organization_id": f"eq.{organization_id}",
                "superseded_at": "is.null",
                "order": "created_at.asc",
            },
            "mapping fetch",
        )
        return parse_mappings(rows, organization_id)

    async def insert_mapping(self, payload: Dict[str, Any]) -> AttributionMapping:
        """
        Insert one mapping and return the stored row.

        Raises:
            MappingConflictError: Store reported a uniqueness conflict (409)
        """
        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}/{MAPPINGS_TABLE}",
                    json=payload,
                    headers={"Prefer": "return=representation"},
                )
                response.raise_for_status()
                body = response.json()

            except httpx.TimeoutException as e:
                raise StoreNetworkError(f"Store timeout after {self.timeout}s during mapping insert") from e
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 409:
                    raise MappingConflictError(f"Mapping for refcode {payload.get('refcode')!r} already exists") from e
                raise _classify_status(e, "mapping insert") from e
            except httpx.RequestError as e:
                raise StoreNetworkError(f"Store unreachable during mapping insert: {e}") from e
            except ValueError as e:
                raise StoreValidationError(f"Invalid JSON from store during mapping insert: {e}") from e

        row = body[0] if isinstance(body, list) and body else body
        mappings = parse_mappings([row], payload.get("organization_id"))
        if not mappings:
            raise StoreValidationError("Store returned no usable row for inserted mapping")
        return mappings[0]

    async def supersede_mappings(
        self,
        mapping_ids: Sequence[str],
        superseded_by: str,
        superseded_at: Optional[datetime] = None,
    ) -> None:
        """Mark older mappings as superseded by a confirmed one"""
        if not mapping_ids:
            return
        when = (superseded_at or datetime.now(timezone.utc)).isoformat()
        async with self._client() as client:
            try:
                response = await client.patch(
                    f"{self.base_url}/{MAPPINGS_TABLE}",
                    params={"id": f"in.({','.join(mapping_ids)})"},
                    json={"superseded_at": when, "superseded_by": superseded_by},
                )
                response.raise_for_status()

            except httpx.TimeoutException as e:
                raise StoreNetworkError(f"Store timeout after {self.timeout}s during supersede") from e
            except httpx.HTTPStatusError as e:
                raise _classify_status(e, "supersede") from e
            except httpx.RequestError as e:
                raise StoreNetworkError(f"Store unreachable during supersede: {e}") from e
