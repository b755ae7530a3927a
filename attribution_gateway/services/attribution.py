"""
Attribution service: fetch snapshots, build reports, and run the write paths.

Every computation takes a full snapshot from the store and recomputes from
scratch. The only shared state is the last good report per organization
(served stale when the store is down) and the set of actions in flight.
"""
import asyncio
import dataclasses
import logging
from contextlib import contextmanager
from datetime import date
from typing import Dict, Hashable, Iterator, List, Optional, Set, Tuple

from attribution_gateway.config import settings
from attribution_gateway.domain.exceptions import (
    DuplicateSubmissionError,
    InvalidRefcodeError,
    MappingConflictError,
    MatcherRunError,
    StoreAPIError,
)
from attribution_gateway.domain.models import (
    AttributionMapping,
    AttributionReport,
    RefcodeAggregate,
    SuggestedMatch,
    Transaction,
)
from attribution_gateway.domain.normalization import normalize_refcode
from attribution_gateway.domain.reporting import build_attribution_report, filter_window
from attribution_gateway.domain.suggestions import (
    aggregate_refcodes,
    confirmation_payload,
    generate_suggestions,
    suggest_for_refcode,
)
from attribution_gateway.domain.truth import active_mappings
from attribution_gateway.infrastructure.clients.matcher import MatcherClient
from attribution_gateway.infrastructure.clients.store import StoreClient
from attribution_gateway.infrastructure.database.models import MatcherRun
from attribution_gateway.infrastructure.database.repositories import MatcherRunRepository

logger = logging.getLogger(__name__)

ReportKey = Tuple[str, Optional[date], Optional[date]]


class ReportCache:
    """
    Last good report per (organization, window).

    Each refresh takes a generation number. A result is stored only if no
    newer refresh for the same key started meanwhile, so a slow old fetch
    never overwrites a newer one.
    """

    def __init__(self) -> None:
        self._reports: Dict[ReportKey, AttributionReport] = {}
        self._generations: Dict[ReportKey, int] = {}

    def begin(self, key: ReportKey) -> int:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation

    def store(self, key: ReportKey, generation: int, report: AttributionReport) -> bool:
        if generation != self._generations.get(key):
            return False
        self._reports[key] = report
        return True

    def get(self, key: ReportKey) -> Optional[AttributionReport]:
        return self._reports.get(key)

    def invalidate(self, organization_id: str) -> None:
        """Forget reports and void refreshes in flight for an organization"""
        for key in [k for k in self._reports if k[0] == organization_id]:
            del self._reports[key]
        for key in [k for k in self._generations if k[0] == organization_id]:
            self._generations[key] += 1


class InFlightRegistry:
    """Rejects an action while an identical one is still running"""

    def __init__(self) -> None:
        self._keys: Set[Hashable] = set()

    @contextmanager
    def claim(self, key: Hashable) -> Iterator[None]:
        if key in self._keys:
            raise DuplicateSubmissionError(f"Action already in progress: {key}")
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys


class AttributionService:
    """Orchestrates store snapshots and the pure attribution functions"""

    def __init__(
        self,
        store: StoreClient,
        cache: ReportCache,
        inflight: InFlightRegistry,
    ):
        self.store = store
        self.cache = cache
        self.inflight = inflight

    async def load_snapshot(self, organization_id: str) -> Tuple[List[Transaction], int, List[AttributionMapping]]:
        """Fetch transactions and mappings concurrently"""
        (transactions, rejected), mappings = await asyncio.gather(
            self.store.fetch_transactions(organization_id),
            self.store.fetch_attribution_mappings(organization_id),
        )
        return transactions, rejected, active_mappings(mappings)

    async def get_report(
        self,
        organization_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AttributionReport:
        """
        Build a fresh report, or fall back to the last good one.

        The window filters parsed transactions only; rejected_transactions
        always counts the rows dropped from the whole fetch.

        Raises:
            StoreAPIError: Store failed and no previous report exists
        """
        key = (organization_id, start_date, end_date)
        generation = self.cache.begin(key)
        try:
            transactions, rejected, mappings = await self.load_snapshot(organization_id)
        except StoreAPIError as e:
            previous = self.cache.get(key)
            if previous is None:
                raise
            logger.warning(
                "Serving stale attribution report",
                extra={"organization_id": organization_id, "error": str(e)},
            )
            return dataclasses.replace(previous, stale=True)

        report = build_attribution_report(
            organization_id,
            filter_window(transactions, start_date, end_date),
            mappings,
            rejected_transactions=rejected,
        )
        self.cache.store(key, generation, report)
        return report

    async def get_suggestions(
        self,
        organization_id: str,
        min_revenue_cents: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[SuggestedMatch]:
        transactions, _, mappings = await self.load_snapshot(organization_id)
        return generate_suggestions(
            transactions,
            (m.refcode for m in mappings),
            min_revenue_cents=settings.suggestion_min_revenue_cents if min_revenue_cents is None else min_revenue_cents,
            limit=settings.suggestion_limit if limit is None else limit,
        )

    async def confirm_suggestion(
        self,
        organization_id: str,
        refcode: str,
        suggested_campaign: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Tuple[AttributionMapping, int]:
        """
        Promote a refcode to manual_confirmed and supersede its older mappings.

        Returns (created_mapping, superseded_count).

        Raises:
            InvalidRefcodeError: Refcode is blank
            DuplicateSubmissionError: Same confirmation already in flight
            MappingConflictError: Refcode already has an active truth mapping
            StoreAPIError: Store failure on read, insert or supersede
        """
        code = normalize_refcode(refcode)
        if code is None:
            raise InvalidRefcodeError("Refcode must not be blank")

        with self.inflight.claim(("confirm", organization_id, code)):
            transactions, _, mappings = await self.load_snapshot(organization_id)
            existing = [m for m in mappings if m.refcode == code]
            if any(m.is_truth for m in existing):
                raise MappingConflictError(f"Refcode {code!r} is already confirmed")

            aggregate = aggregate_refcodes(transactions).get(code) or RefcodeAggregate(refcode=code)
            suggestion = suggest_for_refcode(aggregate)
            payload = confirmation_payload(
                organization_id,
                aggregate,
                suggested_campaign or suggestion.suggested_campaign,
                reason or suggestion.reason,
            )

            # A failed insert changed nothing; the last good report stays servable
            created = await self.store.insert_mapping(payload)
            superseded = [m.mapping_id for m in existing if m.mapping_id]
            try:
                await self.store.supersede_mappings(superseded, created.mapping_id)
            except StoreAPIError:
                # Truth still wins over the old rows at partition time
                logger.error(
                    "Confirmed mapping inserted but supersede failed",
                    extra={
                        "organization_id": organization_id,
                        "mapping_id": created.mapping_id,
                        "superseded_ids": superseded,
                    },
                )
                raise
            finally:
                self.cache.invalidate(organization_id)

        return created, len(superseded)

    async def run_matcher(
        self,
        organization_id: str,
        matcher: MatcherClient,
        runs: MatcherRunRepository,
    ) -> MatcherRun:
        """
        Trigger a remote matcher run and record it.

        The failed run is recorded before MatcherRunError propagates; the
        caller owns the commit.
        """
        with self.inflight.claim(("matcher", organization_id)):
            run = runs.start_run(organization_id)
            try:
                result = await matcher.run(organization_id)
            except MatcherRunError as e:
                runs.fail_run(run, str(e))
                raise
            runs.complete_run(run, result)
            self.cache.invalidate(organization_id)
            return run


# Shared across requests within one process
report_cache = ReportCache()
inflight_registry = InFlightRegistry()
