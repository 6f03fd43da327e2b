"""
Rainz: Multi-Source Weather Aggregation

Queries every registered weather provider concurrently for one location,
prints each normalized source with its accuracy weight, the most accurate
pick and how well the models agree.

Sources: Open-Meteo (ECMWF, GFS, ICON, UKMO, METEOFRANCE, JMA, GEM) + WeatherAPI
         + Met.no + Bright Sky DWD + SMHI + 7Timer! + Community Reports

Usage:
    python main.py 59.33 18.07 --location Stockholm
    python main.py 37.64 -120.99 --json

Exit codes: 0 success (even if no provider answered), 2 invalid input, 1 failure.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional

from colorama import Fore, Style, init

from rainz.aggregator import AdapterStatus, AggregationReport, WeatherAggregator
from rainz.api import build_weather_response
from rainz.config import load_settings
from rainz.ensemble import EnsembleEngine
from rainz.models import AggregationRequest, InvalidRequestError
from rainz.selector import select_best

init()

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    AdapterStatus.OK: Fore.GREEN,
    AdapterStatus.ABSENT: Fore.YELLOW,
    AdapterStatus.TIMEOUT: Fore.RED,
    AdapterStatus.FAILED: Fore.RED,
}

VARIANCE_COLORS = {
    "LOW": Fore.GREEN,
    "MODERATE": Fore.YELLOW,
    "CRITICAL": Fore.RED,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Rainz weather aggregator - multi-source ensemble for one location"
    )
    parser.add_argument("lat", type=float, help="Latitude (-90 to 90)")
    parser.add_argument("lon", type=float, help="Longitude (-180 to 180)")
    parser.add_argument("--location", default=None, help="Display label for the location")
    parser.add_argument("--json", action="store_true", help="Print the JSON response instead of a table")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Per-provider timeout in seconds (overrides RAINZ_ADAPTER_TIMEOUT)")
    return parser.parse_args(argv)


def setup_logging(stream=None):
    """File log under logs/ plus a console stream."""
    os.makedirs("logs", exist_ok=True)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler("logs/rainz.log", mode="a", encoding="utf-8"),
            logging.StreamHandler(stream or sys.stdout),
        ],
    )


def print_banner():
    """Print the system banner."""
    print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}   RAINZ: MULTI-SOURCE WEATHER AGGREGATION{Style.RESET_ALL}")
    print(f"{Fore.CYAN}   Accuracy-Weighted Ensemble + Community Consensus{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.WHITE}   [MODELS] ECMWF GFS ICON UKMO METEOFRANCE JMA GEM{Style.RESET_ALL}")
    print(f"{Fore.WHITE}   [SERVICES] WeatherAPI Met.no BrightSky SMHI 7Timer! Community{Style.RESET_ALL}")
    print()


def print_report(report: AggregationReport):
    """Per-provider table, headline pick and ensemble agreement."""
    request = report.request
    print(f"{Fore.WHITE}Location:{Style.RESET_ALL} {request.location_name or 'Selected Location'} "
          f"({request.lat}, {request.lon})\n")

    print(f"{'SOURCE':<26}{'STATUS':<10}{'ACC':>6}{'TEMP':>7}  CONDITION")
    print("-" * 64)
    for result in report.results:
        color = STATUS_COLORS[result.status]
        status = f"{color}{result.status.value.upper():<10}{Style.RESET_ALL}"
        source = result.source
        if source is None:
            print(f"{result.provider:<26}{status}{'-':>6}{'-':>7}  {result.error or ''}")
            continue
        current = source.current_weather
        temp = f"{current.temperature}°F" if source.has_measurements else "-"
        print(f"{source.source:<26}{status}{source.accuracy:>6.2f}{temp:>7}  {current.condition.value}")

    sources = report.sources
    print()
    best = select_best(sources)
    if best is not None:
        current = best.current_weather
        print(f"{Fore.GREEN}Most accurate:{Style.RESET_ALL} {best.source} ({best.accuracy:.2f}) - "
              f"{current.temperature}°F, {current.description}")
    else:
        print(f"{Fore.YELLOW}Most accurate: none (no measured sources){Style.RESET_ALL}")

    summary = EnsembleEngine().summarize(sources)
    if summary.consensus_temperature is not None:
        color = VARIANCE_COLORS.get(summary.variance_level, Fore.WHITE)
        print(f"{Fore.CYAN}Ensemble:{Style.RESET_ALL} {summary.consensus_temperature:.0f}°F, "
              f"{summary.condition.value}, {color}{summary.agreement:.0f}% agreement "
              f"({summary.variance_level} spread {summary.spread_f:.0f}°F){Style.RESET_ALL}")
        for name, temp, delta in summary.outliers:
            print(f"      {Fore.RED}Outlier: {name} = {temp}°F ({delta:.1f}°F from median){Style.RESET_ALL}")

    print(f"\n{len(sources)}/{len(report.results)} providers answered in {report.elapsed:.2f}s")


async def main(args: argparse.Namespace) -> int:
    """Main execution flow."""
    settings = load_settings()
    if args.timeout is not None:
        if args.timeout <= 0:
            print(f"{Fore.RED}ERROR: --timeout must be positive{Style.RESET_ALL}")
            return 2
        settings = replace(settings, adapter_timeout=args.timeout)

    try:
        request = AggregationRequest.parse({"lat": args.lat, "lon": args.lon, "locationName": args.location})
    except InvalidRequestError as e:
        logger.error(f"[main] Invalid input: {e}")
        print(f"{Fore.RED}Invalid input parameters: {e}{Style.RESET_ALL}")
        return 2

    if not args.json:
        print_banner()

    try:
        aggregator = WeatherAggregator(settings=settings)
        report = await asyncio.wait_for(aggregator.run(request), timeout=settings.request_timeout)
    except Exception as e:
        logger.error(f"FAILED: {e}", exc_info=True)
        print(f"\n{Fore.RED}ERROR: Service temporarily unavailable. Please try again.{Style.RESET_ALL}")
        return 1

    if args.json:
        payload = build_weather_response(request, report.sources, now=datetime.now(timezone.utc))
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print_report(report)
    return 0


def cli():
    args = parse_args()
    # Keep stdout clean for machine-readable output
    setup_logging(sys.stderr if args.json else None)
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
