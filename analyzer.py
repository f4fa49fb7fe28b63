"""
Analysis pipeline.

analyze() is a pure function of (store, configuration, mode): records ->
features -> expected rates -> simulation or analytic model -> aggregated
result with feature importance. MatchAnalyzer wraps it in a small session
object that owns the records and configuration and keeps the last result.
"""
import logging
import threading
import warnings
from dataclasses import replace
from typing import Dict, List, Optional

import numpy as np

import config
from aggregator import AnalysisResult, ProbabilityAggregator
from analytic import AnalyticModel
from betting_advisor import BettingAdvisor, Recommendation
from data_loader import MatchRecordStore, sample_configuration, sample_store
from features import FeatureExtractor
from importance import FeatureImportanceEstimator
from models import (AnalysisError, AnalysisMode, DataWarning, FeatureSet,
                    InputError, MatchConfiguration, SimulationError)
from rates import ExpectedRateModel
from simulation import SimulationEngine
from validator import ModelValidator

logger = logging.getLogger(__name__)


def _coerce_mode(mode) -> AnalysisMode:
    if isinstance(mode, AnalysisMode):
        return mode
    try:
        return AnalysisMode(str(mode).lower())
    except ValueError:
        raise InputError(f"Unknown analysis mode '{mode}' (expected 'simulate' or 'analytic')") from None


def _run_analytic(configuration: MatchConfiguration, features: FeatureSet,
                  aggregator: ProbabilityAggregator, degraded: bool) -> AnalysisResult:
    try:
        estimate = AnalyticModel(configuration).estimate(features)
        return aggregator.from_analytic(estimate, degraded=degraded)
    except (ArithmeticError, ValueError) as e:
        raise AnalysisError(f"Analytic model failed: {e}") from e


def analyze(store: MatchRecordStore,
            configuration: MatchConfiguration,
            mode=AnalysisMode.SIMULATE,
            trial_count: Optional[int] = None,
            *,
            rng: Optional[np.random.Generator] = None,
            seed: Optional[int] = None,
            workers: int = 1,
            abort_event: Optional[threading.Event] = None) -> AnalysisResult:
    """
    Run one analysis.

    Args:
        store: Historical records; not modified
        configuration: Match setup and betting lines
        mode: AnalysisMode.SIMULATE or AnalysisMode.ANALYTIC (or their values)
        trial_count: Simulation trials, default DEFAULT_SIMULATION_COUNT
        rng: Generator for the simulation, takes precedence over seed
        seed: Seed for a fresh generator
        workers: Threads to spread simulation trials over
        abort_event: Set it to stop a running simulation

    Returns:
        AnalysisResult; degraded=True when simulation failed and the
        analytic model stood in

    Raises:
        InputError: invalid mode or trial count
        SimulationAborted: abort_event was set during the run
        AnalysisError: the analytic model failed
    """
    mode = _coerce_mode(mode)
    trial_count = config.DEFAULT_SIMULATION_COUNT if trial_count is None else trial_count

    engine = None
    if mode is AnalysisMode.SIMULATE:
        engine = SimulationEngine(configuration, trial_count=trial_count, rng=rng, seed=seed,
                                  workers=workers, abort_event=abort_event)

    snapshot = store.snapshot(configuration)
    features = FeatureExtractor(snapshot, configuration).extract()

    notes: List[str] = []
    quality = features.data_quality
    if not quality.sufficient:
        message = (f"Only {quality.total_matches} matches available, at least "
                   f"{configuration.min_good_matches} recommended; neutral defaults fill the gaps")
        logger.warning(message)
        warnings.warn(message, DataWarning, stacklevel=2)
        notes.append(message)

    aggregator = ProbabilityAggregator(configuration, features)

    if engine is not None:
        rates = ExpectedRateModel(configuration).estimate(features)
        try:
            result = aggregator.from_simulation(engine.run(rates), rates)
        except (SimulationError, ArithmeticError, MemoryError) as e:
            logger.exception("Simulation failed, falling back to the analytic model")
            notes.append(f"Simulation failed ({e}); analytic estimate used instead")
            result = _run_analytic(configuration, features, aggregator, degraded=True)
    else:
        result = _run_analytic(configuration, features, aggregator, degraded=False)

    importance = FeatureImportanceEstimator(configuration).estimate(features)
    result = replace(result, feature_importance=importance)

    issues = ModelValidator().check_consistency(result, configuration)
    notes.extend(f"Inconsistent result: {issue}" for issue in issues)
    result = replace(result, warnings=tuple(notes))

    logger.info("%s vs %s (%s%s): %.1f / %.1f / %.1f",
                configuration.side_a_name, configuration.side_b_name, result.mode.value,
                ", degraded" if result.degraded else "",
                result.probabilities.side_a_win, result.probabilities.draw,
                result.probabilities.side_b_win)
    return result


class MatchAnalyzer:
    """Session state for an interactive front end: records, setup, last result"""

    def __init__(self, configuration: Optional[MatchConfiguration] = None,
                 store: Optional[MatchRecordStore] = None):
        self.store = store if store is not None else MatchRecordStore()
        self.configuration = configuration if configuration is not None else MatchConfiguration()
        self.last_result: Optional[AnalysisResult] = None
        self.advisor = BettingAdvisor()
        self.store.apply_betting_lines(self.configuration)

    def add_records(self, category, scores, opponent_scores, **kwargs) -> int:
        count = self.store.add_records(category, scores, opponent_scores, **kwargs)
        self.store.apply_betting_lines(self.configuration)
        return count

    def clear(self, category=None) -> None:
        self.store.clear(category)

    def set_configuration(self, configuration: Optional[MatchConfiguration] = None,
                          **changes) -> MatchConfiguration:
        """Replace the configuration, or update fields of the current one"""
        updated = configuration if configuration is not None else self.configuration
        if changes:
            updated = replace(updated, **changes)
        self.configuration = updated
        self.store.apply_betting_lines(updated)
        return updated

    def load_sample(self) -> None:
        self.store = sample_store()
        self.set_configuration(sample_configuration())

    def run(self, mode=AnalysisMode.SIMULATE, trial_count: Optional[int] = None,
            **options) -> AnalysisResult:
        result = analyze(self.store, self.configuration, mode, trial_count, **options)
        self.last_result = result
        return result

    def export_last_result(self) -> Optional[Dict]:
        return self.last_result.to_dict() if self.last_result is not None else None

    def recommendations(self) -> List[Recommendation]:
        if self.last_result is None:
            return []
        return self.advisor.recommendations(self.last_result, self.configuration)
