"""Tests for configuration validation, market settlement and Poisson figures."""
import math

import pytest

from models import (FORMATION_BOOK, InputError, MatchConfiguration,
                    PoissonCalculator, Side, SpreadCover, TotalsResult, Venue,
                    available_formations, lookup_formation, settle_spread,
                    settle_totals)


class TestMatchConfiguration:
    def test_defaults_are_valid(self):
        configuration = MatchConfiguration()
        assert configuration.venue is Venue.NEUTRAL
        assert not configuration.has_totals_line
        assert not configuration.formations_active

    @pytest.mark.parametrize("names", [("Rovers", "Rovers"), ("Rovers ", " Rovers"), ("", "City")])
    def test_names_must_differ(self, names):
        with pytest.raises(InputError):
            MatchConfiguration(side_a_name=names[0], side_b_name=names[1])

    @pytest.mark.parametrize("kwargs", [
        {"importance": 0},
        {"importance": -1.0},
        {"importance": float("nan")},
        {"totals_line": 0},
        {"point_spread": -0.5},
        {"side_a_ranking": 0},
        {"min_good_matches": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(InputError):
            MatchConfiguration(**kwargs)

    def test_string_enums_are_coerced(self):
        configuration = MatchConfiguration(venue="side_b", spread_favorite="side_b")
        assert configuration.venue is Venue.SIDE_B
        assert configuration.spread_favorite is Side.B

    def test_unknown_venue(self):
        with pytest.raises(InputError, match="venue"):
            MatchConfiguration(venue="moon")

    def test_formations_need_both_sides_and_known_sport(self):
        assert MatchConfiguration(side_a_formation="4-3-3", side_b_formation="4-4-2").formations_active
        assert not MatchConfiguration(side_a_formation="4-3-3").formations_active
        assert not MatchConfiguration(sport="hockey", side_a_formation="4-3-3",
                                      side_b_formation="4-4-2").formations_active
        assert not MatchConfiguration(side_a_formation="4-3-3",
                                      side_b_formation="Triangle").formations_active

    def test_ranking_diff_positive_when_side_a_ranked_higher(self):
        assert MatchConfiguration(side_a_ranking=1, side_b_ranking=5).ranking_diff == 4
        assert MatchConfiguration(side_a_ranking=1).ranking_diff is None


class TestSettlement:
    def test_totals_half_line_never_pushes(self):
        assert settle_totals(3, 2.5) is TotalsResult.OVER
        assert settle_totals(2, 2.5) is TotalsResult.UNDER

    def test_totals_whole_line_pushes(self):
        assert settle_totals(3, 3.0) is TotalsResult.PUSH

    def test_spread(self):
        assert settle_spread(3, 1, 1.5) is SpreadCover.FAVORITE_COVERED
        assert settle_spread(2, 1, 1.5) is SpreadCover.UNDERDOG_COVERED
        assert settle_spread(2, 1, 1.0) is SpreadCover.PUSH


class TestFormationBook:
    def test_lookup(self):
        formation = lookup_formation("football", "5-3-2")
        assert formation.defending == 0.9
        assert "4-3-3" in formation.strong_against

    def test_unknown_lookups(self):
        assert lookup_formation("football", "2-2-6") is None
        assert lookup_formation("cricket", "4-3-3") is None

    def test_book_is_read_only(self):
        with pytest.raises(TypeError):
            FORMATION_BOOK["football"]["9-0-1"] = None

    def test_available_formations(self):
        assert "Princeton" in available_formations("basketball")
        assert available_formations("cricket") == []


class TestPoissonCalculator:
    def test_over_probability_example(self):
        over, under, push = PoissonCalculator.totals_probabilities(2.9, 2.5)
        assert over == pytest.approx(0.5540, abs=1e-3)
        assert push == 0.0
        assert over + under == pytest.approx(1.0)

    def test_whole_line_has_push_mass(self):
        over, under, push = PoissonCalculator.totals_probabilities(2.9, 3.0)
        assert push == pytest.approx(math.exp(-2.9) * 2.9 ** 3 / 6)
        assert over + under + push == pytest.approx(1.0)

    def test_outcomes_sum_to_one(self):
        result = PoissonCalculator.outcome_probabilities(1.8, 1.1)
        assert sum(result) == pytest.approx(1.0)
        assert result[0] > result[2]

    def test_spread_probabilities(self):
        covered, not_covered, push = PoissonCalculator.spread_probabilities(1.8, 1.1, 1.5)
        assert push == 0.0
        assert covered + not_covered == pytest.approx(1.0)
        assert covered < 0.5

    def test_total_goal_distribution_tail_bucket(self):
        distribution = PoissonCalculator.total_goal_distribution(4.0, 4.0)
        assert len(distribution) == 10
        assert distribution.sum() == pytest.approx(1.0)
        assert distribution[-1] > distribution[0]

    def test_scorelines_sorted(self):
        lines = PoissonCalculator.scoreline_probabilities(1.2, 0.9, 4)
        assert len(lines) == 25
        assert lines[0]["probability"] >= lines[-1]["probability"]
        assert (lines[0]["side_a"], lines[0]["side_b"]) == (1, 0)
