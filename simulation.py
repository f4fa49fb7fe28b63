"""
Monte Carlo match simulation.

Each trial draws independent Poisson goal counts for both sides with the
multiplication method, classifies the result against the configured
markets and adds it to a SimulationTally. Trials run in chunks so a
caller-supplied event can stop a long run between chunks; chunks can be
spread over worker threads, each with its own generator, and the
per-worker tallies are merged by summation.
"""
import logging
import math
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

import config
from models import (InputError, MatchConfiguration, Outcome, Side,
                    SimulationAborted, SimulationError, SpreadCover,
                    TotalsResult, settle_spread, settle_totals)
from rates import ExpectedRates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationTrial:
    """One simulated match"""
    side_a_goals: int
    side_b_goals: int
    outcome: Outcome
    totals: Optional[TotalsResult] = None
    spread: Optional[SpreadCover] = None


def _histogram(values: np.ndarray, buckets: int) -> np.ndarray:
    """Counts per value with everything past the last bucket folded into it"""
    return np.bincount(np.minimum(values, buckets - 1), minlength=buckets)


@dataclass
class SimulationTally:
    """Aggregate counts over a batch of trials"""
    trials: int = 0
    side_a_wins: int = 0
    side_b_wins: int = 0
    draws: int = 0
    over: int = 0
    under: int = 0
    totals_push: int = 0
    favorite_covers: int = 0
    underdog_covers: int = 0
    spread_push: int = 0
    side_a_goals: int = 0
    side_b_goals: int = 0
    side_a_clean_sheets: int = 0
    side_b_clean_sheets: int = 0
    both_scored: int = 0
    score_counts: Counter = field(default_factory=Counter)
    total_histogram: np.ndarray = field(
        default_factory=lambda: np.zeros(config.SCORE_DISTRIBUTION_BUCKETS, dtype=np.int64))
    margin_histogram: np.ndarray = field(
        default_factory=lambda: np.zeros(config.MARGIN_BUCKETS, dtype=np.int64))
    side_a_goal_histogram: np.ndarray = field(
        default_factory=lambda: np.zeros(config.GOAL_BUCKETS, dtype=np.int64))
    side_b_goal_histogram: np.ndarray = field(
        default_factory=lambda: np.zeros(config.GOAL_BUCKETS, dtype=np.int64))

    COUNT_FIELDS = ('trials', 'side_a_wins', 'side_b_wins', 'draws', 'over', 'under',
                    'totals_push', 'favorite_covers', 'underdog_covers', 'spread_push',
                    'side_a_goals', 'side_b_goals', 'side_a_clean_sheets',
                    'side_b_clean_sheets', 'both_scored')
    HISTOGRAM_FIELDS = ('total_histogram', 'margin_histogram',
                        'side_a_goal_histogram', 'side_b_goal_histogram')

    @classmethod
    def from_goals(cls, side_a: np.ndarray, side_b: np.ndarray,
                   configuration: MatchConfiguration) -> "SimulationTally":
        """Tally one chunk of simulated scores"""
        total = side_a + side_b
        tally = cls(
            trials=int(side_a.size),
            side_a_wins=int(np.count_nonzero(side_a > side_b)),
            side_b_wins=int(np.count_nonzero(side_a < side_b)),
            draws=int(np.count_nonzero(side_a == side_b)),
            side_a_goals=int(side_a.sum()),
            side_b_goals=int(side_b.sum()),
            side_a_clean_sheets=int(np.count_nonzero(side_b == 0)),
            side_b_clean_sheets=int(np.count_nonzero(side_a == 0)),
            both_scored=int(np.count_nonzero((side_a > 0) & (side_b > 0))),
            total_histogram=_histogram(total, config.SCORE_DISTRIBUTION_BUCKETS),
            margin_histogram=_histogram(np.abs(side_a - side_b), config.MARGIN_BUCKETS),
            side_a_goal_histogram=_histogram(side_a, config.GOAL_BUCKETS),
            side_b_goal_histogram=_histogram(side_b, config.GOAL_BUCKETS),
        )

        if configuration.has_totals_line:
            line = configuration.totals_line
            tally.over = int(np.count_nonzero(total > line))
            tally.under = int(np.count_nonzero(total < line))
            # Integer totals can only equal a whole-number line
            tally.totals_push = int(np.count_nonzero(total == line))

        if configuration.has_point_spread:
            if configuration.spread_favorite is Side.A:
                favorite, underdog = side_a, side_b
            else:
                favorite, underdog = side_b, side_a
            adjusted = favorite - configuration.point_spread
            tally.favorite_covers = int(np.count_nonzero(adjusted > underdog))
            tally.underdog_covers = int(np.count_nonzero(adjusted < underdog))
            tally.spread_push = int(np.count_nonzero(adjusted == underdog))

        pairs, counts = np.unique(np.column_stack((side_a, side_b)), axis=0, return_counts=True)
        tally.score_counts = Counter({(int(a), int(b)): int(n) for (a, b), n in zip(pairs, counts)})
        return tally

    def merge(self, other: "SimulationTally") -> "SimulationTally":
        merged = SimulationTally()
        for name in self.COUNT_FIELDS:
            setattr(merged, name, getattr(self, name) + getattr(other, name))
        for name in self.HISTOGRAM_FIELDS:
            setattr(merged, name, getattr(self, name) + getattr(other, name))
        merged.score_counts = self.score_counts + other.score_counts
        return merged


# ============================================================================
# SAMPLING
# ============================================================================


def poisson_sample(rate: float, size: int, rng: np.random.Generator) -> np.ndarray:
    """Multiplication-method Poisson draws, vectorised over size.

    Multiplies uniform draws until the running product drops to e^-rate;
    the number of multiplications minus one is the sample.
    """
    limit = math.exp(-rate)
    counts = np.full(size, -1, dtype=np.int64)
    product = np.ones(size)
    active = np.ones(size, dtype=bool)
    while active.any():
        counts[active] += 1
        product[active] *= rng.random(int(active.sum()))
        active &= product > limit
    return counts


def _chunk_sizes(total: int, chunk_size: int) -> List[int]:
    full, rest = divmod(total, chunk_size)
    return [chunk_size] * full + ([rest] if rest else [])


def _split(total: int, parts: int) -> List[int]:
    base, extra = divmod(total, parts)
    return [base + (1 if i < extra else 0) for i in range(parts)]


class SimulationEngine:
    """Runs Monte Carlo trials for a pair of expected rates"""

    def __init__(self, configuration: MatchConfiguration,
                 trial_count: int = config.DEFAULT_SIMULATION_COUNT,
                 rng: Optional[np.random.Generator] = None,
                 seed: Optional[int] = None,
                 workers: int = 1,
                 chunk_size: int = config.SIMULATION_CHUNK_SIZE,
                 abort_event: Optional[threading.Event] = None):
        if trial_count is None or int(trial_count) < 1:
            raise InputError(f"Trial count must be at least 1, got {trial_count}")
        if workers < 1:
            raise InputError(f"Worker count must be at least 1, got {workers}")
        if chunk_size < 1:
            raise InputError(f"Chunk size must be at least 1, got {chunk_size}")

        self.configuration = configuration
        self.trial_count = int(trial_count)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.workers = workers
        self.chunk_size = chunk_size
        self.abort_event = abort_event

    def _check_rates(self, rates: ExpectedRates) -> None:
        for side in Side:
            rate = rates.for_side(side)
            if not math.isfinite(rate) or rate <= 0:
                raise SimulationError(f"Invalid expected rate for {side.value}: {rate}")
            if rate > config.MAX_SIMULATION_RATE:
                raise SimulationError(
                    f"Expected rate {rate:.2f} for {side.value} exceeds the sampler limit "
                    f"of {config.MAX_SIMULATION_RATE}")

    def _run_worker(self, rates: ExpectedRates, trials: int,
                    rng: np.random.Generator) -> SimulationTally:
        tally = SimulationTally()
        for size in _chunk_sizes(trials, self.chunk_size):
            if self.abort_event is not None and self.abort_event.is_set():
                raise SimulationAborted(f"Simulation aborted after {tally.trials} trials")
            try:
                with np.errstate(over='raise', invalid='raise', divide='raise'):
                    side_a = poisson_sample(rates.side_a, size, rng)
                    side_b = poisson_sample(rates.side_b, size, rng)
            except (FloatingPointError, MemoryError) as e:
                raise SimulationError(f"Sampling failed: {e}") from e
            tally = tally.merge(SimulationTally.from_goals(side_a, side_b, self.configuration))
        return tally

    def run(self, rates: ExpectedRates) -> SimulationTally:
        """Simulate trial_count matches and return the merged tally"""
        self._check_rates(rates)
        logger.info("Simulating %d trials (λA=%.3f, λB=%.3f, workers=%d)",
                    self.trial_count, rates.side_a, rates.side_b, self.workers)

        workers = min(self.workers, self.trial_count)
        if workers == 1:
            return self._run_worker(rates, self.trial_count, self.rng)

        # Each worker gets an independent generator derived from the parent
        seeds = self.rng.integers(0, 2 ** 63 - 1, size=workers)
        generators = [np.random.default_rng(int(seed)) for seed in seeds]

        tally = SimulationTally()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._run_worker, rates, trials, generator)
                       for trials, generator in zip(_split(self.trial_count, workers), generators)]
            for future in futures:
                tally = tally.merge(future.result())

        logger.debug("Simulation complete: %d trials, %d distinct scores",
                     tally.trials, len(tally.score_counts))
        return tally

    def iter_trials(self, rates: ExpectedRates, count: int) -> Iterator[SimulationTrial]:
        """Yield individual trials, for inspection rather than aggregation"""
        self._check_rates(rates)
        line = self.configuration.totals_line
        spread = self.configuration.point_spread
        favorite = self.configuration.spread_favorite

        for _ in range(count):
            side_a = int(poisson_sample(rates.side_a, 1, self.rng)[0])
            side_b = int(poisson_sample(rates.side_b, 1, self.rng)[0])
            goals = {Side.A: side_a, Side.B: side_b}

            if side_a > side_b:
                outcome = Outcome.SIDE_A_WIN
            elif side_a < side_b:
                outcome = Outcome.SIDE_B_WIN
            else:
                outcome = Outcome.DRAW

            yield SimulationTrial(
                side_a_goals=side_a,
                side_b_goals=side_b,
                outcome=outcome,
                totals=settle_totals(side_a + side_b, line) if line is not None else None,
                spread=(settle_spread(goals[favorite], goals[favorite.opponent], spread)
                        if spread is not None else None),
            )
