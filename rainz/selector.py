"""
Most-accurate source selection.

Picks the single source a client should headline: the highest accuracy
among sources that actually carry measurements. Community consensus is a
condition-only source and is never headlined, so an ensemble made only of
community data has no "most accurate" pick.

Ties on accuracy are broken by registry priority, then by name, so the
result does not depend on the order providers happened to finish in.
"""

import logging
from typing import Dict, Iterable, Optional, Sequence

from rainz.models import WeatherSource
from rainz.registry import PROVIDER_PRIORITY

logger = logging.getLogger(__name__)


def select_best(
    sources: Iterable[WeatherSource],
    priority: Sequence[str] = PROVIDER_PRIORITY,
) -> Optional[WeatherSource]:
    """
    Args:
        sources: Aggregated sources, in any order
        priority: Provider names, highest priority first

    Returns:
        The most accurate measured source, or None if there is none
    """
    rank: Dict[str, int] = {name: i for i, name in enumerate(priority)}
    unranked = len(rank)

    candidates = [s for s in sources if s.has_measurements]
    if not candidates:
        logger.debug("[select_best] No measured sources to choose from")
        return None

    best = min(candidates, key=lambda s: (-s.accuracy, rank.get(s.source, unranked), s.source))
    logger.debug(f"[select_best] {best.source} ({best.accuracy:.2f}) of {len(candidates)} candidates")
    return best
