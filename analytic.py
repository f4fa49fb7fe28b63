"""
Closed-form match model used when simulation is not wanted or fails
"""
import logging
from dataclasses import dataclass
from typing import Tuple

from scipy.special import expit

import config
from models import FeatureSet, MatchConfiguration
from rates import FormationAdjustment, formation_adjustments
from utils import clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticEstimate:
    """Outcome percentages plus the goal expectations behind them"""
    advantage: float
    side_a_win: float
    side_b_win: float
    draw: float
    projected_total: float
    side_a_rate: float
    side_b_rate: float


class AnalyticModel:
    """Weighted-advantage model with a logistic outcome split"""

    def __init__(self, configuration: MatchConfiguration):
        self.configuration = configuration
        self.weights = config.WEIGHTS

    def advantage(self, features: FeatureSet, formation: FormationAdjustment) -> float:
        """Signed edge for side A; 0 means an even match"""
        a, b = features.side_a, features.side_b

        attack_diff = (a.attack_strength - b.defense_strength) - (b.attack_strength - a.defense_strength)
        advantage = attack_diff * self.weights['overall_performance']
        advantage += (a.recent_form - b.recent_form) * self.weights['recent_form']
        advantage += features.h2h_advantage * self.weights['h2h_matches']

        location = features.location_factor
        if location:
            # An away penalty weighs less than the matching home bonus
            venue_scale = 1.0 if location > 0 else config.AWAY_VENUE_FACTOR
            advantage += location * self.weights['home_advantage'] * venue_scale

        if formation.active:
            advantage += formation.tactical_advantage * self.weights['formation_compatibility']

        if features.ranking_diff is not None:
            ranking = clamp(features.ranking_diff / config.RANKING_SPAN, -1.0, 1.0)
            advantage += ranking * self.weights['ranking']

        return advantage

    def outcome_probabilities(self, advantage: float, features: FeatureSet) -> Tuple[float, float, float]:
        """(side A win, draw, side B win) as percentages summing to 100"""
        side_a_win = 50 + 50 * (2 * expit(advantage) - 1)
        side_b_win = 50 + 50 * (2 * expit(-advantage) - 1)

        settings = config.DRAW_SETTINGS
        scoring = features.side_a.avg_scored + features.side_b.avg_scored
        draw = clamp(settings['base']
                     - settings['scoring_penalty'] * scoring
                     - settings['gap_penalty'] * abs(side_a_win - side_b_win),
                     settings['floor'], settings['ceiling'])

        side_a_win *= 1 - draw / 100
        side_b_win *= 1 - draw / 100
        total = side_a_win + draw + side_b_win
        return (float(side_a_win / total * 100),
                float(draw / total * 100),
                float(side_b_win / total * 100))

    def projected_total(self, features: FeatureSet, formation: FormationAdjustment) -> float:
        a, b = features.side_a, features.side_b
        total = (a.avg_scored + b.avg_scored + a.avg_conceded + b.avg_conceded) / 2

        h2h = features.head_to_head
        if h2h is not None and h2h.matches >= config.MIN_H2H_MATCHES:
            blend = config.H2H_TOTAL_BLEND
            weight = min(blend['max_weight'], h2h.matches * blend['per_match'])
            total = total * (1 - weight) + h2h.avg_total_goals * weight

        settings = config.IMPORTANCE_TOTAL_SETTINGS
        importance = features.importance
        if importance > settings['high_threshold']:
            total -= (importance - settings['high_threshold']) * settings['factor']
        elif importance < settings['low_threshold']:
            total += (settings['low_threshold'] - importance) * settings['factor']

        if formation.active:
            mean_offense = (formation.side_a.offense + formation.side_b.offense) / 2
            total += mean_offense * config.FORMATION_TOTAL_FACTOR

        return max(config.MIN_PROJECTED_TOTAL, total)

    def estimate(self, features: FeatureSet) -> AnalyticEstimate:
        formation = formation_adjustments(self.configuration)
        advantage = self.advantage(features, formation)
        side_a_win, draw, side_b_win = self.outcome_probabilities(advantage, features)
        total = self.projected_total(features, formation)

        split = advantage / config.ADVANTAGE_GOAL_SPLIT
        side_a_rate = max(config.MIN_EXPECTED_RATE, total / 2 + split)
        side_b_rate = max(config.MIN_EXPECTED_RATE, total / 2 - split)

        logger.debug("Analytic: advantage %.3f, A %.1f%% D %.1f%% B %.1f%%, total %.2f",
                     advantage, side_a_win, draw, side_b_win, total)

        return AnalyticEstimate(
            advantage=advantage,
            side_a_win=side_a_win,
            side_b_win=side_b_win,
            draw=draw,
            projected_total=total,
            side_a_rate=side_a_rate,
            side_b_rate=side_b_rate,
        )
