"""
Fan-out Aggregator for Rainz

Queries every registered provider concurrently for one location and
collects whatever comes back inside the per-adapter time bound.

Guarantees:
- Input is validated before any provider is contacted
- One slow or failing provider never delays or aborts the others:
  each call runs under asyncio.wait_for(adapter_timeout) and every
  failure is recorded, logged and dropped
- Results come back in registry order regardless of completion order
- Zero successful providers is a valid outcome (empty list)
- Cancelling the caller cancels every in-flight provider call

Each provider call is accounted for in an AggregationReport, so callers
that care (CLI, diagnostics) can see why a provider is missing.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

import httpx

from rainz.community import CommunityConsensusProvider, ReportStore, SQLiteReportStore
from rainz.config import Settings
from rainz.models import AggregationRequest, WeatherSource
from rainz.providers import PROVIDER_CLASSES, BaseProvider, MetNoProvider, WeatherAPIProvider
from rainz.providers.base import Clock
from rainz.registry import PROVIDER_REGISTRY
from rainz.resilience import categorize_error

logger = logging.getLogger(__name__)


class AdapterStatus(Enum):
    """Outcome of one provider call."""
    OK = "ok"
    ABSENT = "absent"      # Provider handled its own failure or had no data
    FAILED = "failed"      # Provider raised through its boundary
    TIMEOUT = "timeout"    # Provider exceeded the per-adapter bound


@dataclass(frozen=True)
class AdapterResult:
    provider: str
    status: AdapterStatus
    source: Optional[WeatherSource] = None
    elapsed: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is AdapterStatus.OK


@dataclass(frozen=True)
class AggregationReport:
    """All provider outcomes for one aggregation request."""
    request: AggregationRequest
    results: Tuple[AdapterResult, ...]
    elapsed: float

    @property
    def sources(self) -> List[WeatherSource]:
        return [r.source for r in self.results if r.ok]

    def count(self, status: AdapterStatus) -> int:
        return sum(1 for r in self.results if r.status is status)


def build_default_providers(
    settings: Settings,
    store: Optional[ReportStore] = None,
    clock: Optional[Clock] = None,
) -> List[BaseProvider]:
    """
    Instantiate one adapter per registry row, in registry order.

    Args:
        settings: Runtime settings (API key, User-Agent, community DB)
        store: Community report store; defaults to the configured SQLite DB
        clock: Injectable UTC clock, shared by every adapter
    """
    if store is None and settings.community_db_path is not None:
        store = SQLiteReportStore(settings.community_db_path)

    providers: List[BaseProvider] = []
    for config in PROVIDER_REGISTRY:
        if config.family == "community":
            providers.append(CommunityConsensusProvider(store, config=config, clock=clock))
        elif config.family == "weatherapi":
            providers.append(WeatherAPIProvider(config, api_key=settings.weatherapi_key, clock=clock))
        elif config.family == "met_no":
            providers.append(MetNoProvider(config, user_agent=settings.user_agent, clock=clock))
        else:
            providers.append(PROVIDER_CLASSES[config.family](config, clock=clock))

    logger.info(f"[build_default_providers] {len(providers)} providers registered")
    return providers


class WeatherAggregator:
    """
    Concurrent fan-out over a fixed list of providers.

    Args:
        providers: Adapters in priority order (default: the full registry)
        settings: Timeouts and credentials (default: Settings())
        client_factory: Builds the shared httpx.AsyncClient; tests inject a
            client backed by httpx.MockTransport
    """

    def __init__(
        self,
        providers: Optional[Iterable[BaseProvider]] = None,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.settings = settings or Settings()
        if providers is None:
            providers = build_default_providers(self.settings)
        self.providers: List[BaseProvider] = list(providers)
        self.client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.adapter_timeout, follow_redirects=True)

    async def aggregate(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str] = None,
    ) -> List[WeatherSource]:
        """
        Every WeatherSource obtained for the location, in registry order.

        Raises:
            InvalidRequestError: invalid coordinates or label (no provider is called)
        """
        report = await self.aggregate_with_report(lat, lon, location_name)
        return report.sources

    async def aggregate_with_report(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str] = None,
    ) -> AggregationReport:
        request = AggregationRequest.parse({"lat": lat, "lon": lon, "locationName": location_name})
        return await self.run(request)

    async def run(self, request: AggregationRequest) -> AggregationReport:
        """Fan out an already validated request."""
        logger.info(
            f"[WeatherAggregator] Querying {len(self.providers)} providers for "
            f"({request.lat}, {request.lon}) timeout={self.settings.adapter_timeout}s"
        )
        start = time.monotonic()

        async with self.client_factory() as client:
            results = await asyncio.gather(
                *(self._run_one(provider, request, client) for provider in self.providers)
            )

        report = AggregationReport(
            request=request,
            results=tuple(results),
            elapsed=time.monotonic() - start,
        )

        logger.info(
            f"[WeatherAggregator] {len(report.sources)}/{len(results)} providers OK "
            f"({report.count(AdapterStatus.ABSENT)} absent, "
            f"{report.count(AdapterStatus.TIMEOUT)} timed out, "
            f"{report.count(AdapterStatus.FAILED)} failed) in {report.elapsed:.2f}s"
        )
        if not report.sources:
            logger.warning("[WeatherAggregator] No provider returned data")
        return report

    async def _run_one(
        self,
        provider: BaseProvider,
        request: AggregationRequest,
        client: httpx.AsyncClient,
    ) -> AdapterResult:
        start = time.monotonic()
        try:
            source = await asyncio.wait_for(
                provider.fetch(request.lat, request.lon, request.location_name, client),
                timeout=self.settings.adapter_timeout,
            )
        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start
            logger.warning(f"[WeatherAggregator] {provider.name} timed out after {elapsed:.2f}s")
            return AdapterResult(provider.name, AdapterStatus.TIMEOUT, elapsed=elapsed,
                                 error=f"Timed out after {self.settings.adapter_timeout}s")
        except Exception as e:
            elapsed = time.monotonic() - start
            error_type, error_msg = categorize_error(e)
            logger.error(f"[WeatherAggregator] {provider.name} raised {error_type.value}: {error_msg}",
                         exc_info=True)
            return AdapterResult(provider.name, AdapterStatus.FAILED, elapsed=elapsed, error=error_msg)

        elapsed = time.monotonic() - start
        if source is None:
            return AdapterResult(provider.name, AdapterStatus.ABSENT, elapsed=elapsed)
        return AdapterResult(provider.name, AdapterStatus.OK, source=source, elapsed=elapsed)
