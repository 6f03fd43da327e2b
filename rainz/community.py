"""
Community Consensus for Rainz

Turns recent crowd-sourced weather reports near a location into a
condition-only pseudo-source:

1. Reports from the last 60 minutes inside a +/-0.1 degree box
2. Fewer than 2 reports -> no source (one report is not a consensus)
3. Condition = plurality of each report's verified condition (or, if not
   verified, what the user reported); ties go to the newest report
4. Accuracy = min(0.85, 0.62 + 0.08 * n) * mean(self-reported accuracy)

    2 reports, all "accurate" -> 0.78 * 0.8 = 0.624
    3+ reports approach the 0.85 ceiling

The resulting source has no temperature, wind or forecasts; it must only
ever contribute its condition to an ensemble.

The reports table is owned by another part of the product. This module
only reads it.
"""

import asyncio
import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Tuple

import httpx

from rainz.conditions import Condition, condition_from_text, plurality
from rainz.models import CommunityReport, CurrentWeather, SourceKind, WeatherSource
from rainz.providers.base import BaseProvider, location_label, parse_timestamp
from rainz.registry import (
    ACCURACY_LABEL_SCALARS,
    COMMUNITY_ACCURACY_CEILING,
    COMMUNITY_BASE_ACCURACY,
    COMMUNITY_BOX_DEGREES,
    COMMUNITY_MIN_REPORTS,
    COMMUNITY_PER_REPORT,
    COMMUNITY_STATUS,
    COMMUNITY_WINDOW_MINUTES,
    UNSET_ACCURACY_SCALAR,
    ProviderConfig,
    get_provider_config,
)

logger = logging.getLogger(__name__)


class ReportStore(Protocol):
    """Read access to the community reports collaborator."""

    def recent_reports(
        self,
        lat: float,
        lon: float,
        since: datetime,
        box_degrees: float,
        status: str,
    ) -> List[CommunityReport]:
        """Reports created at or after `since` inside the box, newest first."""
        ...


class SQLiteReportStore:
    """
    ReportStore over a SQLite `weather_reports` table.

    Expected columns: location_name, latitude, longitude, reported_condition,
    actual_condition, accuracy, status, created_at (ISO-8601 text).

    The time window is applied in SQL so old rows never leave the database.
    The database is opened read-only, one short-lived connection per query,
    so the store is safe to call from worker threads.
    """

    QUERY = """
        SELECT location_name, latitude, longitude, reported_condition,
               actual_condition, accuracy, status, created_at
        FROM weather_reports
        WHERE latitude BETWEEN ? AND ?
          AND longitude BETWEEN ? AND ?
          AND status = ?
          AND julianday(created_at) >= julianday(?)
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        logger.info(f"[SQLiteReportStore] Using database: {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)

    def _fetch_rows(self, params: Tuple[Any, ...]) -> List[Tuple[Any, ...]]:
        with closing(self._connect()) as conn:
            return conn.execute(self.QUERY, params).fetchall()

    def recent_reports(
        self,
        lat: float,
        lon: float,
        since: datetime,
        box_degrees: float,
        status: str,
    ) -> List[CommunityReport]:
        # julianday() reads naive text as UTC and honors 'Z' / '+00:00' offsets
        params = (
            lat - box_degrees, lat + box_degrees,
            lon - box_degrees, lon + box_degrees,
            status,
            since.isoformat(),
        )
        rows = self._fetch_rows(params)

        reports = []
        for location_name, r_lat, r_lon, reported, actual, accuracy, r_status, created_at in rows:
            try:
                created = parse_timestamp(created_at)
            except (TypeError, ValueError):
                logger.debug(f"[SQLiteReportStore] Skipping row with bad created_at {created_at!r}")
                continue
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            if created < since:
                continue
            reports.append(CommunityReport(
                latitude=r_lat,
                longitude=r_lon,
                reported_condition=reported,
                created_at=created,
                actual_condition=actual,
                accuracy=accuracy,
                location_name=location_name,
                status=r_status,
            ))

        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports


def consensus_condition(reports: Sequence[CommunityReport]) -> Condition:
    """Plurality of normalized report conditions; first seen wins ties."""
    conditions = (condition_from_text(r.condition) for r in reports)
    return plurality(c for c in conditions if c is not Condition.UNKNOWN)


def consensus_accuracy(reports: Sequence[CommunityReport]) -> float:
    """
    Confidence grows with the number of reports (capped) and is scaled by
    the reporters' own accuracy ratings.
    """
    n = len(reports)
    if n == 0:
        return 0.0
    volume = min(COMMUNITY_ACCURACY_CEILING, COMMUNITY_BASE_ACCURACY + n * COMMUNITY_PER_REPORT)
    ratings = [ACCURACY_LABEL_SCALARS.get(r.accuracy, UNSET_ACCURACY_SCALAR) for r in reports]
    return round(volume * sum(ratings) / n, 4)


class CommunityConsensusProvider(BaseProvider):
    """Pseudo-provider built from the community reports store."""

    def __init__(
        self,
        store: Optional[ReportStore],
        config: Optional[ProviderConfig] = None,
        clock=None,
    ):
        super().__init__(config or get_provider_config("community"), clock=clock)
        self.store = store

    async def _fetch(
        self,
        lat: float,
        lon: float,
        location_name: Optional[str],
        client: httpx.AsyncClient,
    ) -> Optional[WeatherSource]:
        if self.store is None:
            logger.debug(f"[{self.name}] No report store configured")
            return None

        since = self.clock() - timedelta(minutes=COMMUNITY_WINDOW_MINUTES)
        try:
            reports = await asyncio.to_thread(
                self.store.recent_reports, lat, lon, since, COMMUNITY_BOX_DEGREES, COMMUNITY_STATUS
            )
        except sqlite3.Error as e:
            logger.warning(f"[{self.name}] Report store query failed: {e}")
            return None

        n = len(reports)
        if n < COMMUNITY_MIN_REPORTS:
            logger.info(f"[{self.name}] {n} report(s) nearby - not enough for consensus")
            return None

        condition = consensus_condition(reports)
        accuracy = consensus_accuracy(reports)
        logger.info(f"[{self.name}] {n} reports -> {condition.value}, accuracy {accuracy:.2f}")

        return WeatherSource(
            source=f"{self.name} ({n})",
            location=location_label(location_name, reports[0].location_name),
            latitude=lat,
            longitude=lon,
            accuracy=accuracy,
            current_weather=CurrentWeather.condition_only(
                condition, f"Based on {n} user reports in the last hour"
            ),
            kind=SourceKind.COMMUNITY,
        )
