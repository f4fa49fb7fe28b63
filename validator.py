"""
Model validation: internal consistency of analysis results and agreement
between the Monte Carlo engine and the closed-form Poisson figures.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from scipy import stats

import config
from aggregator import AnalysisResult
from models import MatchConfiguration, PoissonCalculator
from rates import ExpectedRates
from simulation import SimulationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineComparison:
    """How closely a simulation run matches its Poisson rates"""
    trials: int
    side_a_rate: float
    side_b_rate: float
    side_a_mean: float
    side_b_mean: float
    side_a_relative_error: float
    side_b_relative_error: float
    chi_square: float
    p_value: float

    @property
    def max_relative_error(self) -> float:
        return max(self.side_a_relative_error, self.side_b_relative_error)


class ModelValidator:
    """Checks results for consistency and engines for agreement"""

    def __init__(self, tolerance: float = config.PROBABILITY_TOLERANCE):
        self.tolerance = tolerance

    def check_consistency(self, result: AnalysisResult,
                          configuration: MatchConfiguration) -> List[str]:
        """
        List every broken invariant of a result.

        Returns:
            Human-readable issues, empty when the result is consistent
        """
        issues = []
        p = result.probabilities

        outcome_sum = p.side_a_win + p.side_b_win + p.draw
        if abs(outcome_sum - 100) > self.tolerance:
            issues.append(f"Outcome probabilities sum to {outcome_sum:.4f}")

        markets = [
            ("totals", configuration.has_totals_line, (p.over, p.under, p.push)),
            ("spread", configuration.has_point_spread,
             (p.favorite_covers, p.underdog_covers, p.spread_push)),
        ]
        for name, configured, values in markets:
            total = sum(values)
            if configured and abs(total - 100) > self.tolerance:
                issues.append(f"{name} market sums to {total:.4f}")
            if not configured and any(values):
                issues.append(f"{name} market has probabilities but no line is configured")

        distribution_sum = sum(result.scores.score_distribution)
        if abs(distribution_sum - 100) > self.tolerance:
            issues.append(f"Score distribution sums to {distribution_sum:.4f}")

        common = [score.probability for score in result.scores.most_common_scores]
        if any(later > earlier for earlier, later in zip(common, common[1:])):
            issues.append("Most common scores are not ordered by probability")

        for name, value in vars(p).items():
            if not 0 <= value <= 100:
                issues.append(f"{name} outside 0-100: {value}")

        for issue in issues:
            logger.warning("Inconsistent result: %s", issue)
        return issues

    def compare_engines(self, rates: ExpectedRates, configuration: MatchConfiguration,
                        trials: int = 200000, seed: Optional[int] = None,
                        workers: int = 1) -> EngineComparison:
        """Simulate at the given rates and test the sample against the Poisson model"""
        engine = SimulationEngine(configuration, trial_count=trials, seed=seed, workers=workers)
        tally = engine.run(rates)

        side_a_mean = tally.side_a_goals / tally.trials
        side_b_mean = tally.side_b_goals / tally.trials

        expected = PoissonCalculator.total_goal_distribution(rates.side_a, rates.side_b) * tally.trials
        observed = tally.total_histogram.astype(float)
        chi_square, p_value = stats.chisquare(observed, expected)

        comparison = EngineComparison(
            trials=tally.trials,
            side_a_rate=rates.side_a,
            side_b_rate=rates.side_b,
            side_a_mean=side_a_mean,
            side_b_mean=side_b_mean,
            side_a_relative_error=abs(side_a_mean - rates.side_a) / rates.side_a,
            side_b_relative_error=abs(side_b_mean - rates.side_b) / rates.side_b,
            chi_square=float(chi_square),
            p_value=float(p_value),
        )
        logger.info("Engine agreement over %d trials: max relative error %.4f, p=%.3f",
                    comparison.trials, comparison.max_relative_error, comparison.p_value)
        return comparison
