"""End-to-end tests for the analysis pipeline and session object."""
import threading
import warnings

import pytest

from analytic import AnalyticEstimate, AnalyticModel
from analyzer import MatchAnalyzer, analyze
from conftest import build_store
from models import (AnalysisError, AnalysisMode, Category, DataWarning,
                    InputError, MatchConfiguration, SimulationAborted,
                    SimulationError)
from simulation import SimulationEngine


def assert_consistent(result, configuration):
    p = result.probabilities
    assert p.side_a_win + p.side_b_win + p.draw == pytest.approx(100, abs=0.01)
    if configuration.has_totals_line:
        assert p.over + p.under + p.push == pytest.approx(100, abs=0.01)
    else:
        assert p.over == p.under == 0
    if configuration.has_point_spread:
        assert p.favorite_covers + p.underdog_covers + p.spread_push == pytest.approx(100, abs=0.01)
    else:
        assert p.favorite_covers == p.underdog_covers == 0
    assert sum(result.scores.score_distribution) == pytest.approx(100, abs=0.01)
    common = [s.probability for s in result.scores.most_common_scores]
    assert common == sorted(common, reverse=True)
    assert len(common) <= 5


class TestAnalyze:
    def test_simulation_run(self, store, configuration):
        result = analyze(store, configuration, AnalysisMode.SIMULATE, 20000, seed=7)
        assert result.mode is AnalysisMode.SIMULATE
        assert not result.degraded
        assert result.trials == 20000
        assert_consistent(result, configuration)

    def test_analytic_run(self, store, configuration):
        result = analyze(store, configuration, "analytic")
        assert result.mode is AnalysisMode.ANALYTIC
        assert result.trials is None
        assert_consistent(result, configuration)
        assert result.warnings == ()

    def test_seeded_runs_match(self, store, configuration):
        first = analyze(store, configuration, trial_count=5000, seed=3)
        second = analyze(store, configuration, trial_count=5000, seed=3)
        assert first == second

    def test_analytic_is_deterministic(self, store, configuration):
        assert analyze(store, configuration, "analytic").to_dict() == \
            analyze(store, configuration, "analytic").to_dict()

    def test_feature_importance(self, store, configuration):
        importance = analyze(store, configuration, "analytic").feature_importance
        assert len(importance) == 8
        scores = list(importance.values())
        assert scores == sorted(scores, reverse=True)
        assert all(10 <= score <= 100 for score in scores)

    def test_formation_insights_and_match_flow(self, store, configuration):
        insights = analyze(store, configuration, trial_count=2000, seed=1).insights
        formation = insights.formation_insights
        assert formation.side_a.name == "4-3-3"
        assert formation.side_a_weak and not formation.side_a_strong
        assert formation.tactical_advantage == pytest.approx(-0.15)
        # Five head-to-head games with 11 goals, no half-time scores
        assert insights.match_flow.first_half_goals == pytest.approx(11 / 5 * 0.4)

    @pytest.mark.parametrize("side_b_formation, edge, strong, weak", [
        ("5-3-2", 0.0, False, False),
        ("4-4-2", 0.15, True, False),
        ("4-2-3-1", -0.15, False, True),
    ])
    def test_formation_flags_follow_net_edge(self, store, side_b_formation, edge, strong, weak):
        configuration = MatchConfiguration(side_a_formation="4-3-3",
                                           side_b_formation=side_b_formation)
        formation = analyze(store, configuration, "analytic").insights.formation_insights
        assert formation.tactical_advantage == pytest.approx(edge)
        assert (formation.side_a_strong, formation.side_a_weak) == (strong, weak)

    def test_store_is_not_modified(self, store, configuration):
        analyze(store, configuration, "analytic")
        assert all(record.over_line is None for record in store.all_records())

    def test_workers(self, store, configuration):
        result = analyze(store, configuration, trial_count=8000, seed=5, workers=4)
        assert result.trials == 8000
        assert_consistent(result, configuration)


class TestErrors:
    def test_unknown_mode(self, store, configuration):
        with pytest.raises(InputError, match="mode"):
            analyze(store, configuration, "guess")

    def test_bad_trial_count(self, store, configuration):
        with pytest.raises(InputError):
            analyze(store, configuration, trial_count=0)

    def test_insufficient_data_warns_and_proceeds(self, neutral_configuration):
        with pytest.warns(DataWarning):
            result = analyze(build_store(h2h=([1], [0])), neutral_configuration, "analytic")
        assert result.data_quality.level == "insufficient"
        assert result.warnings
        assert_consistent(result, neutral_configuration)

    def test_empty_store_still_produces_result(self, neutral_configuration):
        with pytest.warns(DataWarning):
            result = analyze(build_store(), neutral_configuration, trial_count=1000, seed=1)
        assert_consistent(result, neutral_configuration)

    def test_extreme_rates_fall_back_to_analytic(self, neutral_configuration):
        store = build_store(side_a=([40, 40, 40], [0, 0, 0]), side_b=([0, 0, 0], [10, 10, 10]))
        result = analyze(store, neutral_configuration, trial_count=1000, seed=1)
        assert result.degraded
        assert result.mode is AnalysisMode.ANALYTIC
        assert any("Simulation failed" in note for note in result.warnings)
        assert_consistent(result, neutral_configuration)

    def test_engine_failure_falls_back(self, store, configuration, monkeypatch):
        def boom(self, rates):
            raise SimulationError("overflow")

        monkeypatch.setattr(SimulationEngine, "run", boom)
        result = analyze(store, configuration, trial_count=1000)
        assert result.degraded
        assert_consistent(result, configuration)

    def test_abort_is_not_swallowed(self, store, configuration):
        event = threading.Event()
        event.set()
        with pytest.raises(SimulationAborted):
            analyze(store, configuration, trial_count=1000, abort_event=event)

    def test_analytic_failure_reports_no_result(self, store, configuration, monkeypatch):
        def boom(self, features):
            raise ArithmeticError("bad")

        monkeypatch.setattr(AnalyticModel, "estimate", boom)
        with pytest.raises(AnalysisError):
            analyze(store, configuration, "analytic")

    def test_inconsistent_result_is_reported_in_warnings(self, store, configuration, monkeypatch):
        def lopsided(self, features):
            return AnalyticEstimate(advantage=0.0, side_a_win=50.0, side_b_win=30.0, draw=10.0,
                                    projected_total=2.5, side_a_rate=1.5, side_b_rate=1.0)

        monkeypatch.setattr(AnalyticModel, "estimate", lopsided)
        result = analyze(store, configuration, "analytic")
        assert any("Outcome probabilities" in note for note in result.warnings)

    def test_failed_fallback_is_an_analysis_error(self, store, configuration, monkeypatch):
        def sim_boom(self, rates):
            raise SimulationError("overflow")

        def analytic_boom(self, features):
            raise ArithmeticError("bad")

        monkeypatch.setattr(SimulationEngine, "run", sim_boom)
        monkeypatch.setattr(AnalyticModel, "estimate", analytic_boom)
        with pytest.raises(AnalysisError):
            analyze(store, configuration, trial_count=100)


class TestResultExport:
    def test_to_dict(self, store, configuration):
        data = analyze(store, configuration, trial_count=2000, seed=2).to_dict()
        assert data["mode"] == "simulate"
        assert set(data["probabilities"]) >= {"side_a_win", "side_b_win", "draw", "over", "under"}
        assert data["data_quality"]["level"] == "excellent"
        assert isinstance(data["scores"]["most_common_scores"], list)
        assert isinstance(data["feature_importance"], dict)
        assert data["insights"]["formation_insights"]["side_b"]["name"] == "4-2-3-1"


class TestMatchAnalyzer:
    def test_session_flow(self):
        session = MatchAnalyzer()
        session.load_sample()
        assert session.last_result is None
        assert session.export_last_result() is None
        assert session.recommendations() == []

        result = session.run("analytic")
        assert session.last_result is result
        assert session.export_last_result()["mode"] == "analytic"
        assert isinstance(session.recommendations(), list)

    def test_configuration_changes_recompute_lines(self):
        session = MatchAnalyzer(MatchConfiguration(totals_line=2.5))
        session.add_records(Category.H2H, [3], [0])
        assert session.store.records(Category.H2H)[0].over_line is True

        session.set_configuration(totals_line=3.5)
        assert session.configuration.totals_line == 3.5
        assert session.store.records(Category.H2H)[0].over_line is False

    def test_invalid_update_keeps_previous_configuration(self):
        session = MatchAnalyzer(MatchConfiguration(side_a_name="North", side_b_name="South"))
        with pytest.raises(InputError):
            session.set_configuration(side_b_name="North")
        assert session.configuration.side_b_name == "South"

    def test_clear(self):
        session = MatchAnalyzer()
        session.load_sample()
        session.clear(Category.H2H)
        assert session.store.count(Category.H2H) == 0
        session.clear()
        assert len(session.store) == 0
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DataWarning)
            assert session.run("analytic").data_quality.total_matches == 0
