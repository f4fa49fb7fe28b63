"""
Result schema and the aggregator that fills it from either engine.

All probabilities in an AnalysisResult are percentages (0-100).
"""
import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

import config
from analytic import AnalyticEstimate
from models import (AnalysisMode, DataQuality, FeatureSet, MatchConfiguration,
                    PoissonCalculator, Side)
from rates import ExpectedRates, formation_adjustments
from simulation import SimulationTally
from utils import to_percent

logger = logging.getLogger(__name__)

# ============================================================================
# RESULT SCHEMA
# ============================================================================


@dataclass(frozen=True)
class Probabilities:
    side_a_win: float
    side_b_win: float
    draw: float
    over: float = 0.0
    under: float = 0.0
    push: float = 0.0
    favorite_covers: float = 0.0
    underdog_covers: float = 0.0
    spread_push: float = 0.0


@dataclass(frozen=True)
class ScoreLine:
    side_a: int
    side_b: int
    probability: float

    @property
    def label(self) -> str:
        return f"{self.side_a}-{self.side_b}"


@dataclass(frozen=True)
class ScoreSummary:
    avg_side_a: float
    avg_side_b: float
    avg_total: float
    most_likely_score: ScoreLine
    most_common_scores: Tuple[ScoreLine, ...]
    score_distribution: Tuple[float, ...]


@dataclass(frozen=True)
class FormationProfile:
    name: str
    description: str
    attacking: float
    defending: float


@dataclass(frozen=True)
class FormationInsights:
    """Matchup profile; the strong/weak flags follow the sign of the net tactical edge"""
    tactical_advantage: float
    side_a: FormationProfile
    side_b: FormationProfile
    side_a_strong: bool
    side_a_weak: bool


@dataclass(frozen=True)
class MatchFlow:
    first_half_goals: float
    second_half_goals: float
    side_a_first_half_strength: float
    side_a_second_half_strength: float
    side_b_first_half_strength: float
    side_b_second_half_strength: float


@dataclass(frozen=True)
class Insights:
    clean_sheet_side_a: float
    clean_sheet_side_b: float
    both_sides_score: float
    margin_distribution: Tuple[float, ...]
    side_a_goal_distribution: Tuple[float, ...]
    side_b_goal_distribution: Tuple[float, ...]
    all_score_probabilities: Tuple[ScoreLine, ...]
    match_flow: MatchFlow
    momentum_side_a: float
    momentum_side_b: float
    formation_insights: Optional[FormationInsights] = None


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one analysis run produces"""
    mode: AnalysisMode
    probabilities: Probabilities
    scores: ScoreSummary
    insights: Insights
    data_quality: DataQuality
    expected_rates: Tuple[float, float]
    trials: Optional[int] = None
    degraded: bool = False
    feature_importance: Mapping[str, float] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data export (enums as values, tuples as lists)"""
        data = _plain(asdict(self))
        data['data_quality']['level'] = self.data_quality.level
        data['feature_importance'] = dict(self.feature_importance)
        return data


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, np.generic):
        return value.item()
    return value


# ============================================================================
# AGGREGATOR
# ============================================================================


class ProbabilityAggregator:
    """Normalises simulation tallies and analytic estimates into AnalysisResult"""

    def __init__(self, configuration: MatchConfiguration, features: FeatureSet):
        self.configuration = configuration
        self.features = features

    # ------------------------------------------------------------------ simulation

    def from_simulation(self, tally: SimulationTally, rates: ExpectedRates) -> AnalysisResult:
        trials = tally.trials
        if trials < 1:
            raise ValueError("Cannot aggregate an empty simulation")

        def pct(count) -> float:
            return count / trials * 100

        probabilities = Probabilities(
            side_a_win=pct(tally.side_a_wins),
            side_b_win=pct(tally.side_b_wins),
            draw=pct(tally.draws),
            over=pct(tally.over),
            under=pct(tally.under),
            push=pct(tally.totals_push),
            favorite_covers=pct(tally.favorite_covers),
            underdog_covers=pct(tally.underdog_covers),
            spread_push=pct(tally.spread_push),
        )

        ranked = [ScoreLine(a, b, pct(count)) for (a, b), count in tally.score_counts.most_common()]
        avg_side_a = tally.side_a_goals / trials
        avg_side_b = tally.side_b_goals / trials

        scores = ScoreSummary(
            avg_side_a=avg_side_a,
            avg_side_b=avg_side_b,
            avg_total=avg_side_a + avg_side_b,
            most_likely_score=ranked[0],
            most_common_scores=tuple(ranked[:config.TOP_SCORES]),
            score_distribution=tuple(float(pct(c)) for c in tally.total_histogram),
        )

        insights = Insights(
            clean_sheet_side_a=pct(tally.side_a_clean_sheets),
            clean_sheet_side_b=pct(tally.side_b_clean_sheets),
            both_sides_score=pct(tally.both_scored),
            margin_distribution=tuple(float(pct(c)) for c in tally.margin_histogram),
            side_a_goal_distribution=tuple(float(pct(c)) for c in tally.side_a_goal_histogram),
            side_b_goal_distribution=tuple(float(pct(c)) for c in tally.side_b_goal_histogram),
            all_score_probabilities=tuple(ranked),
            match_flow=self.match_flow(scores.avg_total),
            momentum_side_a=self.features.side_a.momentum,
            momentum_side_b=self.features.side_b.momentum,
            formation_insights=self.formation_insights(),
        )

        return AnalysisResult(
            mode=AnalysisMode.SIMULATE,
            probabilities=probabilities,
            scores=scores,
            insights=insights,
            data_quality=self.features.data_quality,
            expected_rates=(rates.side_a, rates.side_b),
            trials=trials,
        )

    # ------------------------------------------------------------------ analytic

    def from_analytic(self, estimate: AnalyticEstimate, degraded: bool = False) -> AnalysisResult:
        rate_a, rate_b = estimate.side_a_rate, estimate.side_b_rate
        over = under = push = 0.0
        if self.configuration.has_totals_line:
            over, under, push = (to_percent(p) for p in PoissonCalculator.totals_probabilities(
                estimate.projected_total, self.configuration.totals_line))

        covers = not_covers = spread_push = 0.0
        if self.configuration.has_point_spread:
            rates = {Side.A: rate_a, Side.B: rate_b}
            favorite = self.configuration.spread_favorite
            covers, not_covers, spread_push = (to_percent(p) for p in PoissonCalculator.spread_probabilities(
                rates[favorite], rates[favorite.opponent], self.configuration.point_spread))

        probabilities = Probabilities(
            side_a_win=estimate.side_a_win,
            side_b_win=estimate.side_b_win,
            draw=estimate.draw,
            over=over,
            under=under,
            push=push,
            favorite_covers=covers,
            underdog_covers=not_covers,
            spread_push=spread_push,
        )

        likely = self._scorelines(rate_a, rate_b, config.LIKELY_SCORE_GRID)
        distribution = PoissonCalculator.capped_pmf(estimate.projected_total,
                                                    config.SCORE_DISTRIBUTION_BUCKETS)
        scores = ScoreSummary(
            avg_side_a=rate_a,
            avg_side_b=rate_b,
            avg_total=estimate.projected_total,
            most_likely_score=likely[0],
            most_common_scores=tuple(likely[:config.TOP_SCORES]),
            score_distribution=tuple(float(to_percent(p)) for p in distribution),
        )

        insights = Insights(
            clean_sheet_side_a=to_percent(math.exp(-rate_b)),
            clean_sheet_side_b=to_percent(math.exp(-rate_a)),
            both_sides_score=to_percent((1 - math.exp(-rate_a)) * (1 - math.exp(-rate_b))),
            margin_distribution=self._margin_distribution(rate_a, rate_b),
            side_a_goal_distribution=tuple(
                float(to_percent(p)) for p in PoissonCalculator.capped_pmf(rate_a, config.GOAL_BUCKETS)),
            side_b_goal_distribution=tuple(
                float(to_percent(p)) for p in PoissonCalculator.capped_pmf(rate_b, config.GOAL_BUCKETS)),
            all_score_probabilities=tuple(self._scorelines(rate_a, rate_b, config.SCORE_LIST_GRID)),
            match_flow=self.match_flow(scores.avg_total),
            momentum_side_a=self.features.side_a.momentum,
            momentum_side_b=self.features.side_b.momentum,
            formation_insights=self.formation_insights(),
        )

        return AnalysisResult(
            mode=AnalysisMode.ANALYTIC,
            probabilities=probabilities,
            scores=scores,
            insights=insights,
            data_quality=self.features.data_quality,
            expected_rates=(rate_a, rate_b),
            degraded=degraded,
        )

    @staticmethod
    def _scorelines(rate_a: float, rate_b: float, max_goals: int) -> List[ScoreLine]:
        return [ScoreLine(s["side_a"], s["side_b"], to_percent(s["probability"]))
                for s in PoissonCalculator.scoreline_probabilities(rate_a, rate_b, max_goals)]

    @staticmethod
    def _margin_distribution(rate_a: float, rate_b: float) -> Tuple[float, ...]:
        grid = PoissonCalculator.score_grid(rate_a, rate_b)
        goals = np.arange(grid.shape[0])
        margins = np.minimum(np.abs(goals[:, None] - goals[None, :]), config.MARGIN_BUCKETS - 1)
        masses = np.bincount(margins.ravel(), weights=grid.ravel(), minlength=config.MARGIN_BUCKETS)
        return tuple(float(to_percent(m)) for m in masses / masses.sum())

    # ------------------------------------------------------------------ shared insights

    def formation_insights(self) -> Optional[FormationInsights]:
        if not self.configuration.formations_active:
            return None

        formation_a = self.configuration.formation_of(Side.A)
        formation_b = self.configuration.formation_of(Side.B)

        def profile(formation) -> FormationProfile:
            return FormationProfile(formation.name, formation.description,
                                    formation.attacking, formation.defending)

        advantage = formation_adjustments(self.configuration).tactical_advantage
        return FormationInsights(
            tactical_advantage=advantage,
            side_a=profile(formation_a),
            side_b=profile(formation_b),
            side_a_strong=advantage > 0,
            side_a_weak=advantage < 0,
        )

    def match_flow(self, expected_total: float) -> MatchFlow:
        """Goals per half from head-to-head history, else split the expected total"""
        h2h = self.features.head_to_head
        if h2h is not None:
            first_half, second_half = h2h.first_half_avg_goals, h2h.second_half_avg_goals
        else:
            first_half = expected_total * config.FIRST_HALF_SHARE
            second_half = expected_total * config.SECOND_HALF_SHARE

        record_a = self.features.side_a.record
        record_b = self.features.side_b.record
        return MatchFlow(
            first_half_goals=first_half,
            second_half_goals=second_half,
            side_a_first_half_strength=record_a.first_half_strength,
            side_a_second_half_strength=record_a.second_half_strength,
            side_b_first_half_strength=record_b.first_half_strength,
            side_b_second_half_strength=record_b.second_half_strength,
        )
