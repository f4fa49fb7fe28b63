"""Tests for expected scoring rates and their adjustments."""
import itertools

import pytest

from conftest import build_store
from features import FeatureExtractor
from models import FORMATION_BOOK, MatchConfiguration, Side, Venue, lookup_formation
from rates import (ExpectedRateModel, context_adjustments, formation_adjustments,
                   tactical_advantage)


def rates_for(store, **config_kwargs):
    configuration = MatchConfiguration(**config_kwargs)
    features = FeatureExtractor(store, configuration).extract()
    return ExpectedRateModel(configuration).estimate(features)


class TestBaseRate:
    def test_balanced_sides_keep_their_average(self, balanced_store):
        rates = rates_for(balanced_store)
        assert rates.side_a == pytest.approx(2.5)
        assert rates.side_b == pytest.approx(2.5)

    def test_floor_without_data(self):
        rates = rates_for(build_store())
        assert rates.side_a == pytest.approx(0.1)
        assert rates.side_b == pytest.approx(0.1)

    def test_weak_opponent_defense_raises_rate(self):
        # Side B concedes 5 a game: defense strength 0.5
        store = build_store(side_a=([2, 3], [2, 3]), side_b=([5, 5], [5, 5]))
        rates = rates_for(store)
        assert rates.side_a == pytest.approx(2.5 * 1.5)

    def test_form_factor(self):
        # Side A won every game 3-2: form 1.0
        store = build_store(side_a=([3, 3], [2, 2]), side_b=([2, 3], [2, 3]))
        rates = rates_for(store)
        defense_b = 1.0
        assert rates.base_side_a == pytest.approx(3 * (1 + (1 - defense_b)) * 1.25)


class TestContext:
    def test_home_side(self, balanced_store):
        rates = rates_for(balanced_store, venue=Venue.SIDE_A)
        assert rates.side_a == pytest.approx(2.5 * 1.10)
        assert rates.side_b == pytest.approx(2.5 * 0.95)

    def test_away_side_a(self, balanced_store):
        rates = rates_for(balanced_store, venue=Venue.SIDE_B)
        assert rates.side_a == pytest.approx(2.5 * 0.95)
        assert rates.side_b == pytest.approx(2.5 * 1.10)

    def test_high_importance(self):
        adjustment = context_adjustments(MatchConfiguration(venue=Venue.SIDE_A, importance=1.5))
        assert adjustment.side_a.offense == pytest.approx(0.125)
        assert adjustment.side_a.defense == pytest.approx(0.15)
        assert adjustment.side_b.offense == pytest.approx(-0.05)
        assert adjustment.side_b.defense == pytest.approx(0.05)

    def test_low_importance_opens_play(self):
        adjustment = context_adjustments(MatchConfiguration(importance=0.5))
        for side in Side:
            assert adjustment.for_side(side).offense == pytest.approx(0.05)
            assert adjustment.for_side(side).defense == pytest.approx(-0.05)

    def test_neutral_baseline(self):
        adjustment = context_adjustments(MatchConfiguration())
        assert adjustment.side_a.offense == 0
        assert adjustment.side_b.defense == 0


class TestFormations:
    def test_favourable_matchup(self, balanced_store):
        rates = rates_for(balanced_store, side_a_formation="4-3-3", side_b_formation="4-4-2")
        assert rates.formation.tactical_advantage == pytest.approx(0.15)
        assert rates.formation.side_a.offense == pytest.approx(0.2)
        assert rates.formation.side_b.offense == pytest.approx(-0.15)
        assert rates.side_a == pytest.approx(3.0)
        assert rates.side_b == pytest.approx(2.125)

    def test_defensive_deltas(self):
        adjustment = formation_adjustments(
            MatchConfiguration(side_a_formation="5-3-2", side_b_formation="3-4-3"))
        # 3-4-3 is strong against 5-3-2
        assert adjustment.tactical_advantage == pytest.approx(-0.15)
        assert adjustment.side_a.defense == pytest.approx(0.1 - 0.15)
        assert adjustment.side_b.defense == pytest.approx(-0.1 + 0.15)

    def test_default_formation_has_no_effect(self, balanced_store):
        rates = rates_for(balanced_store, side_a_formation="4-3-3")
        assert not rates.formation.active
        assert rates.side_a == pytest.approx(2.5)

    def test_mutual_claims_cancel(self):
        # 4-3-3 and 5-3-2 each list the other as a favourable matchup
        assert tactical_advantage(lookup_formation("football", "4-3-3"),
                                  lookup_formation("football", "5-3-2")) == 0

    @pytest.mark.parametrize("sport", ["football", "basketball"])
    def test_tactical_advantage_is_antisymmetric(self, sport):
        formations = list(FORMATION_BOOK[sport].values())
        for first, second in itertools.product(formations, repeat=2):
            assert tactical_advantage(first, second) == -tactical_advantage(second, first)
            assert abs(tactical_advantage(first, second)) <= 0.15
