"""
Feature extraction: turns stored match records into per-side strengths,
form, trends and head-to-head figures for one analysis run.
"""
import logging
from typing import List, Optional, Sequence

import numpy as np
from scipy import stats

import config
from data_loader import MatchRecordStore
from models import (Category, DataQuality, FeatureSet, HeadToHeadSummary,
                    MatchConfiguration, MatchRecord, Side, SideFeatures,
                    SideRecordSummary)
from utils import clamp, mean, safe_divide

logger = logging.getLogger(__name__)

# ============================================================================
# FEATURE FUNCTIONS
# ============================================================================


def _points(scored: int, conceded: int) -> float:
    if scored > conceded:
        return 1.0
    if scored == conceded:
        return 0.5
    return 0.0


def weighted_form(results: Sequence[float]) -> float:
    """Decay-weighted mean of results (1/0.5/0) ordered most recent first"""
    results = list(results)[:config.FORM_WINDOW]
    if not results:
        return config.NEUTRAL_FORM
    weights = [config.FORM_DECAY ** i for i in range(len(results))]
    return sum(w * r for w, r in zip(weights, results)) / sum(weights)


def trend_slope(values: Sequence[float]) -> Optional[float]:
    """Least-squares slope of values over match index, None on too few matches"""
    if len(values) < config.MIN_TREND_MATCHES:
        return None
    x = np.arange(len(values), dtype=float)
    return float(stats.linregress(x, np.asarray(values, dtype=float)).slope)


def scoring_trend(goals_scored: Sequence[float]) -> float:
    """Above 0.5 when a side scores more over time"""
    slope = trend_slope(goals_scored)
    if slope is None:
        return config.NEUTRAL_TREND
    return clamp(config.NEUTRAL_TREND + config.TREND_SCALE * slope, 0.0, 1.0)


def defensive_trend(goals_conceded: Sequence[float]) -> float:
    """Above 0.5 when a side concedes less over time"""
    slope = trend_slope(goals_conceded)
    if slope is None:
        return config.NEUTRAL_TREND
    return clamp(config.NEUTRAL_TREND - config.TREND_SCALE * slope, 0.0, 1.0)


def attack_strength(avg_scored: float) -> float:
    return clamp(avg_scored / config.LEAGUE_AVG_SCORING, *config.STRENGTH_BOUNDS)


def defense_strength(avg_conceded: float) -> float:
    return clamp(config.LEAGUE_AVG_SCORING / max(config.MIN_CONCEDED_RATE, avg_conceded),
                 *config.STRENGTH_BOUNDS)


def h2h_advantage(records: Sequence[MatchRecord]) -> float:
    """Points share difference in [-1, 1], positive when side A leads"""
    points_a = points_b = 0
    for record in records:
        result = record.result_for(Side.A)
        if result == 1.0:
            points_a += config.H2H_POINTS['win']
            points_b += config.H2H_POINTS['loss']
        elif result == 0.0:
            points_a += config.H2H_POINTS['loss']
            points_b += config.H2H_POINTS['win']
        else:
            points_a += config.H2H_POINTS['draw']
            points_b += config.H2H_POINTS['draw']
    return safe_divide(points_a - points_b, points_a + points_b)


def momentum_index(form: float, scoring: float, defensive: float) -> float:
    weights = config.MOMENTUM_WEIGHTS
    return (weights['form'] * form
            + weights['scoring_trend'] * scoring
            + weights['defensive_trend'] * defensive)


# ============================================================================
# EXTRACTOR
# ============================================================================


class FeatureExtractor:
    """Derives a FeatureSet from a record store and the match configuration"""

    def __init__(self, store: MatchRecordStore, configuration: MatchConfiguration):
        self.store = store
        self.configuration = configuration

    def extract(self) -> FeatureSet:
        h2h_records = self.store.records(Category.H2H)

        features = FeatureSet(
            side_a=self._side_features(Side.A),
            side_b=self._side_features(Side.B),
            h2h_advantage=h2h_advantage(h2h_records),
            head_to_head=self._head_to_head_summary(h2h_records),
            location_factor=self.configuration.venue.location_factor,
            importance=self.configuration.importance,
            ranking_diff=self.configuration.ranking_diff,
            data_quality=self._data_quality(),
        )

        logger.debug(
            "Features: A avg %.2f/%.2f form %.3f, B avg %.2f/%.2f form %.3f, h2h %.3f, quality %s",
            features.side_a.avg_scored, features.side_a.avg_conceded, features.side_a.recent_form,
            features.side_b.avg_scored, features.side_b.avg_conceded, features.side_b.recent_form,
            features.h2h_advantage, features.data_quality.level)
        return features

    def _side_features(self, side: Side) -> SideFeatures:
        matches = self.store.side_matches(side)
        scored = [match.goals_for(side) for match in matches]
        conceded = [match.goals_against(side) for match in matches]

        avg_scored = mean(scored)
        avg_conceded = mean(conceded)

        most_recent_first = sorted(matches, key=lambda match: match.timestamp, reverse=True)
        form = weighted_form([match.result_for(side) for match in most_recent_first])
        s_trend = scoring_trend(scored)
        d_trend = defensive_trend(conceded)

        return SideFeatures(
            avg_scored=avg_scored,
            avg_conceded=avg_conceded,
            matches=len(matches),
            attack_strength=attack_strength(avg_scored),
            defense_strength=defense_strength(avg_conceded),
            recent_form=form,
            scoring_trend=s_trend,
            defensive_trend=d_trend,
            momentum=momentum_index(form, s_trend, d_trend),
            record=self._record_summary(side, matches),
        )

    def _record_summary(self, side: Side, matches: List[MatchRecord]) -> SideRecordSummary:
        results = [match.result_for(side) for match in matches]
        half_times = [(match, match.half_time_for(side)) for match in matches
                      if match.half_time_score is not None]

        if half_times:
            first_half_goals = mean(first[0] for _, first in half_times)
            second_half_goals = mean(match.goals_for(side) - first[0] for match, first in half_times)
            first_half_strength = mean(_points(*first) for _, first in half_times)
            second_half_strength = mean(
                _points(match.goals_for(side) - first[0], match.goals_against(side) - first[1])
                for match, first in half_times)
        else:
            avg_scored = mean(match.goals_for(side) for match in matches)
            first_half_goals = avg_scored * config.FIRST_HALF_SHARE
            second_half_goals = avg_scored * config.SECOND_HALF_SHARE
            first_half_strength = second_half_strength = 0.5

        return SideRecordSummary(
            matches=len(matches),
            wins=results.count(1.0),
            draws=results.count(0.5),
            losses=results.count(0.0),
            first_half_goals=first_half_goals,
            second_half_goals=second_half_goals,
            first_half_strength=first_half_strength,
            second_half_strength=second_half_strength,
        )

    def _head_to_head_summary(self, records: List[MatchRecord]) -> Optional[HeadToHeadSummary]:
        if not records:
            return None

        avg_total = mean(record.total_score for record in records)
        with_half_time = [record for record in records if record.half_time_score is not None]
        if with_half_time:
            first_half = mean(sum(record.half_time_score) for record in with_half_time)
            second_half = mean(record.total_score - sum(record.half_time_score)
                               for record in with_half_time)
        else:
            first_half = avg_total * config.FIRST_HALF_SHARE
            second_half = avg_total * config.SECOND_HALF_SHARE

        outcomes = [record.result_for(Side.A) for record in records]
        last = records[-1]
        return HeadToHeadSummary(
            matches=len(records),
            side_a_wins=outcomes.count(1.0),
            side_b_wins=outcomes.count(0.0),
            draws=outcomes.count(0.5),
            side_a_avg_goals=mean(record.side_a_score for record in records),
            side_b_avg_goals=mean(record.side_b_score for record in records),
            avg_total_goals=avg_total,
            first_half_avg_goals=first_half,
            second_half_avg_goals=second_half,
            last_result=(last.side_a_score, last.side_b_score),
        )

    def _data_quality(self) -> DataQuality:
        total = self.store.total_count
        h2h = self.store.count(Category.H2H)
        return DataQuality(
            total_matches=total,
            h2h_matches=h2h,
            side_a_matches=self.store.count(Category.SIDE_A_OTHER),
            side_b_matches=self.store.count(Category.SIDE_B_OTHER),
            sufficient=total >= self.configuration.min_good_matches,
            excellent=(total >= config.MIN_MATCHES_FOR_EXCELLENT_ANALYSIS
                       and h2h >= config.MIN_H2H_MATCHES),
        )
