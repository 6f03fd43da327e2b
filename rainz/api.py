"""
Request handling for the Rainz aggregation service.

Transport-agnostic: a web framework (or the CLI) hands in the decoded JSON
body and gets back (status_code, payload). Payloads never carry internal
error details beyond the validation message for bad input.

    200 {"sources": [...]}                               (possibly empty)
    400 {"error": "Invalid input parameters", "details": "..."}
    500 {"error": "Service temporarily unavailable. Please try again."}
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

from rainz.aggregator import WeatherAggregator
from rainz.ensemble import EnsembleEngine
from rainz.models import AggregationRequest, InvalidRequestError, WeatherSource
from rainz.selector import select_best

logger = logging.getLogger(__name__)

INVALID_INPUT_MESSAGE = "Invalid input parameters"
UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again."


async def handle_aggregate(body: Any, aggregator: WeatherAggregator) -> Tuple[int, Dict[str, Any]]:
    """
    Validate a request body and run the aggregation.

    Args:
        body: Decoded JSON body ({lat, lon, locationName?})
        aggregator: Configured aggregator

    Returns:
        (HTTP status code, JSON-serializable payload)
    """
    try:
        request = AggregationRequest.parse(body)
    except InvalidRequestError as e:
        logger.info(f"[handle_aggregate] Rejected request: {e}")
        return 400, {"error": INVALID_INPUT_MESSAGE, "details": str(e)}

    try:
        report = await asyncio.wait_for(
            aggregator.run(request), timeout=aggregator.settings.request_timeout
        )
    except asyncio.TimeoutError:
        logger.error(f"[handle_aggregate] Aggregation exceeded {aggregator.settings.request_timeout}s")
        return 500, {"error": UNAVAILABLE_MESSAGE}
    except Exception as e:
        logger.error(f"[handle_aggregate] Aggregation failed: {e}", exc_info=True)
        return 500, {"error": UNAVAILABLE_MESSAGE}

    return 200, {"sources": [s.to_dict() for s in report.sources]}


def build_weather_response(
    request: AggregationRequest,
    sources: Sequence[WeatherSource],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Public API view of an aggregation: every source, the headline pick and
    the ensemble summary.
    """
    now = now or datetime.now(timezone.utc)
    best = select_best(sources)
    summary = EnsembleEngine().summarize(sources)

    return {
        "success": True,
        "timestamp": now.isoformat(),
        "location": {
            "name": request.location_name or f"{request.lat}, {request.lon}",
            "latitude": request.lat,
            "longitude": request.lon,
        },
        "sources": [_source_view(s) for s in sources],
        "mostAccurate": _source_view(best, key="source") if best is not None else None,
        "ensemble": summary.to_dict(),
        "sourceCount": len(sources),
    }


def _source_view(source: WeatherSource, key: str = "name") -> Dict[str, Any]:
    wire = source.to_dict()
    return {
        key: source.source,
        "accuracy": source.accuracy,
        "current": wire["currentWeather"],
        "hourly": wire["hourlyForecast"],
        "daily": wire["dailyForecast"],
    }
