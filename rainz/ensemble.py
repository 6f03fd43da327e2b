"""
Ensemble Summary for Rainz

Condenses an aggregated list of sources into the numbers a client shows
next to the source list: a consensus temperature, how much the models
agree, which ones are outliers and what the ensemble says the sky is doing.

1. Weighted median current temperature (weights = source accuracy)
2. Outlier detection (flags sources > 2 stdev from the median)
3. Variance classification on the max-min spread (LOW/MODERATE/CRITICAL)
4. Agreement percentage: 100 - 10 per °F of the largest deviation from
   the mean, floored at 0
5. Accuracy-weighted condition vote

VARIANCE THRESHOLDS (Fahrenheit):
- LOW: spread < 5°F
- MODERATE: spread 5-10°F
- CRITICAL: spread >= 10°F

Only sources with measurements take part in the numeric statistics.
Community consensus votes on the condition and nothing else.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from rainz.conditions import Condition
from rainz.models import WeatherSource

logger = logging.getLogger(__name__)


@dataclass
class EnsembleSummary:
    """Result of summarizing one aggregation."""
    consensus_temperature: Optional[float]
    variance_level: str              # "LOW", "MODERATE", "CRITICAL", "NONE" without data
    spread_f: float
    agreement: float                 # 0-100
    condition: Condition
    outliers: List[Tuple[str, int, float]] = field(default_factory=list)  # (source, temp, delta)
    model_count: int = 0
    community_count: int = 0
    condition_votes: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consensusTemperature": (
                None if self.consensus_temperature is None else round(self.consensus_temperature, 1)
            ),
            "varianceLevel": self.variance_level,
            "spread": round(self.spread_f, 1),
            "agreement": round(self.agreement),
            "condition": self.condition.value,
            "conditionVotes": dict(self.condition_votes),
            "outliers": [
                {"source": name, "temperature": temp, "delta": round(delta, 1)}
                for name, temp, delta in self.outliers
            ],
            "modelCount": self.model_count,
            "communityCount": self.community_count,
        }


class EnsembleEngine:
    """Accuracy-weighted statistics over an aggregated source list."""

    VARIANCE_LOW = 5.0
    VARIANCE_CRITICAL = 10.0
    OUTLIER_STDEV_THRESHOLD = 2.0
    AGREEMENT_PENALTY_PER_DEGREE = 10.0

    def summarize(self, sources: Sequence[WeatherSource]) -> EnsembleSummary:
        models = [s for s in sources if s.has_measurements]
        community_count = len(sources) - len(models)

        condition, votes = self._vote(sources)

        if not models:
            logger.info("[EnsembleEngine] No measured sources; condition-only summary")
            return EnsembleSummary(
                consensus_temperature=None,
                variance_level="NONE",
                spread_f=0.0,
                agreement=0.0,
                condition=condition,
                community_count=community_count,
                condition_votes=votes,
            )

        names = [s.source for s in models]
        values = np.array([s.current_weather.temperature for s in models], dtype=float)
        weights = np.array([s.accuracy for s in models], dtype=float)

        median = float(np.median(values))
        stdev = float(np.std(values)) if len(values) > 1 else 0.0

        outliers = []
        for name, value in zip(names, values):
            delta = abs(float(value) - median)
            if stdev > 0 and delta > self.OUTLIER_STDEV_THRESHOLD * stdev:
                outliers.append((name, int(value), delta))
                logger.warning(f"[EnsembleEngine] OUTLIER: {name} = {value:.0f}°F "
                               f"(delta: {delta:.1f}°F from median)")

        spread = float(np.max(values) - np.min(values))
        if spread < self.VARIANCE_LOW:
            variance_level = "LOW"
        elif spread < self.VARIANCE_CRITICAL:
            variance_level = "MODERATE"
        else:
            variance_level = "CRITICAL"

        max_deviation = float(np.max(np.abs(values - values.mean())))
        agreement = max(0.0, 100.0 - max_deviation * self.AGREEMENT_PENALTY_PER_DEGREE)

        consensus = self._weighted_median(values, weights)

        if variance_level == "CRITICAL":
            logger.warning(f"[EnsembleEngine] CRITICAL VARIANCE: "
                           f"spread={spread:.1f}°F across {len(models)} sources")
        else:
            logger.debug(f"[EnsembleEngine] {variance_level} variance: "
                         f"spread={spread:.1f}°F, consensus={consensus:.1f}°F")

        return EnsembleSummary(
            consensus_temperature=consensus,
            variance_level=variance_level,
            spread_f=spread,
            agreement=agreement,
            condition=condition,
            outliers=outliers,
            model_count=len(models),
            community_count=community_count,
            condition_votes=votes,
        )

    def _weighted_median(self, values: np.ndarray, weights: np.ndarray) -> float:
        """
        Calculate weighted median.

        The weighted median is the value where cumulative weight reaches 50%.
        """
        if len(values) == 1:
            return float(values[0])

        sorted_indices = np.argsort(values, kind="stable")
        sorted_values = values[sorted_indices]
        cumulative_weight = np.cumsum(weights[sorted_indices])
        total_weight = cumulative_weight[-1]
        if total_weight <= 0:
            return float(np.median(values))

        median_idx = int(np.searchsorted(cumulative_weight, total_weight / 2))
        median_idx = min(median_idx, len(sorted_values) - 1)
        return float(sorted_values[median_idx])

    @staticmethod
    def _vote(sources: Sequence[WeatherSource]) -> Tuple[Condition, Dict[str, float]]:
        """Accuracy-weighted condition vote; ties go to the first source listed."""
        votes: Dict[Condition, float] = {}
        for source in sources:
            condition = source.current_weather.condition
            if condition is Condition.UNKNOWN:
                continue
            votes[condition] = votes.get(condition, 0.0) + source.accuracy

        winner = Condition.UNKNOWN
        for condition, weight in votes.items():
            if winner is Condition.UNKNOWN or weight > votes[winner]:
                winner = condition
        return winner, {c.value: round(w, 4) for c, w in votes.items()}
