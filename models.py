"""
Core data models for the match analyzer.

Records, run configuration, formations, the per-run feature set and the
Poisson calculator shared by the simulation and analytic paths.
"""
import math
import warnings
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
from scipy import stats

import config

# ============================================================================
# ERRORS
# ============================================================================


class InputError(ValueError):
    """Invalid records or configuration supplied by the caller"""


class SimulationError(RuntimeError):
    """The Monte Carlo engine could not produce a result"""


class SimulationAborted(RuntimeError):
    """A running simulation was cancelled by its caller"""


class AnalysisError(RuntimeError):
    """Neither estimation path could produce a result"""


class DataWarning(UserWarning):
    """Data is usable but thin or inconsistent"""


# ============================================================================
# ENUMERATIONS
# ============================================================================


class Side(Enum):
    A = "side_a"
    B = "side_b"

    @property
    def opponent(self) -> "Side":
        return Side.B if self is Side.A else Side.A


class Category(Enum):
    H2H = "h2h"
    SIDE_A_OTHER = "side_a_other"
    SIDE_B_OTHER = "side_b_other"

    @property
    def side(self) -> Optional[Side]:
        """Side whose own record this category holds, None for head-to-head"""
        if self is Category.SIDE_A_OTHER:
            return Side.A
        if self is Category.SIDE_B_OTHER:
            return Side.B
        return None


class Venue(Enum):
    SIDE_A = "side_a"
    SIDE_B = "side_b"
    NEUTRAL = "neutral"

    @property
    def location_factor(self) -> int:
        """+1 when side A hosts, -1 when side B hosts, 0 on neutral ground"""
        if self is Venue.SIDE_A:
            return 1
        if self is Venue.SIDE_B:
            return -1
        return 0

    @property
    def home_side(self) -> Optional[Side]:
        if self is Venue.SIDE_A:
            return Side.A
        if self is Venue.SIDE_B:
            return Side.B
        return None


class Outcome(Enum):
    SIDE_A_WIN = "side_a_win"
    SIDE_B_WIN = "side_b_win"
    DRAW = "draw"


class TotalsResult(Enum):
    OVER = "over"
    UNDER = "under"
    PUSH = "push"


class SpreadCover(Enum):
    FAVORITE_COVERED = "favorite_covered"
    UNDERDOG_COVERED = "underdog_covered"
    PUSH = "push"


class AnalysisMode(Enum):
    SIMULATE = "simulate"
    ANALYTIC = "analytic"


# ============================================================================
# MARKET SETTLEMENT
# ============================================================================


def settle_totals(total: int, line: float) -> TotalsResult:
    """Over is strictly above the line; push only on a whole-number line"""
    if total > line:
        return TotalsResult.OVER
    if total < line:
        return TotalsResult.UNDER
    return TotalsResult.PUSH


def settle_spread(favorite_goals: int, underdog_goals: int, spread: float) -> SpreadCover:
    """Handicap the favourite by the spread and compare with the underdog"""
    adjusted = favorite_goals - spread
    if adjusted > underdog_goals:
        return SpreadCover.FAVORITE_COVERED
    if adjusted < underdog_goals:
        return SpreadCover.UNDERDOG_COVERED
    return SpreadCover.PUSH


# ============================================================================
# MATCH RECORDS
# ============================================================================


@dataclass(frozen=True)
class MatchRecord:
    """One historical result, stored from the side A / side B perspective.

    For SIDE_A_OTHER records the side B column holds the unnamed opponent,
    for SIDE_B_OTHER records the side A column does.
    """
    side_a_score: int
    side_b_score: int
    category: Category
    timestamp: datetime
    half_time_score: Optional[Tuple[int, int]] = None
    over_line: Optional[bool] = None
    spread_cover: Optional[SpreadCover] = None

    def __post_init__(self):
        if self.side_a_score < 0 or self.side_b_score < 0:
            raise InputError(
                f"Scores must be non-negative, got {self.side_a_score}-{self.side_b_score}")
        if self.half_time_score is not None:
            first_a, first_b = self.half_time_score
            if not (0 <= first_a <= self.side_a_score and 0 <= first_b <= self.side_b_score):
                raise InputError(
                    f"Half-time score {first_a}-{first_b} does not fit full time "
                    f"{self.side_a_score}-{self.side_b_score}")

    @property
    def total_score(self) -> int:
        return self.side_a_score + self.side_b_score

    @property
    def margin_of_victory(self) -> int:
        return abs(self.side_a_score - self.side_b_score)

    @property
    def clean_sheet(self) -> bool:
        return self.side_a_score == 0 or self.side_b_score == 0

    @property
    def outcome(self) -> Outcome:
        if self.side_a_score > self.side_b_score:
            return Outcome.SIDE_A_WIN
        if self.side_a_score < self.side_b_score:
            return Outcome.SIDE_B_WIN
        return Outcome.DRAW

    def goals_for(self, side: Side) -> int:
        return self.side_a_score if side is Side.A else self.side_b_score

    def goals_against(self, side: Side) -> int:
        return self.goals_for(side.opponent)

    def result_for(self, side: Side) -> float:
        """1 for a win, 0.5 for a draw, 0 for a loss"""
        scored, conceded = self.goals_for(side), self.goals_against(side)
        if scored > conceded:
            return 1.0
        if scored == conceded:
            return 0.5
        return 0.0

    def half_time_for(self, side: Side) -> Optional[Tuple[int, int]]:
        """(scored, conceded) at half time from the given side's view"""
        if self.half_time_score is None:
            return None
        first_a, first_b = self.half_time_score
        return (first_a, first_b) if side is Side.A else (first_b, first_a)

    def with_lines(self, totals_line: Optional[float], point_spread: Optional[float],
                   favorite: "Side" = Side.A) -> "MatchRecord":
        """Copy of the record with the betting-line flags recomputed"""
        over_line = None
        if totals_line is not None and totals_line > 0:
            over_line = self.total_score > totals_line

        spread_cover = None
        if point_spread is not None and point_spread > 0:
            spread_cover = settle_spread(self.goals_for(favorite),
                                         self.goals_against(favorite),
                                         point_spread)

        return replace(self, over_line=over_line, spread_cover=spread_cover)


# ============================================================================
# FORMATIONS
# ============================================================================


@dataclass(frozen=True)
class Formation:
    """Tactical setup with its attacking/defending tendency"""
    name: str
    attacking: float
    defending: float
    strong_against: frozenset
    weak_against: frozenset
    description: str = ""

    def is_strong_against(self, other: "Formation") -> bool:
        return other.name in self.strong_against

    def is_weak_against(self, other: "Formation") -> bool:
        return other.name in self.weak_against


def _build_formation_book() -> Mapping[str, Mapping[str, Formation]]:
    book = {}
    for sport, formations in config.FORMATIONS.items():
        book[sport] = MappingProxyType({
            name: Formation(
                name=name,
                attacking=entry['attacking'],
                defending=entry['defending'],
                strong_against=frozenset(entry['strong_against']),
                weak_against=frozenset(entry['weak_against']),
                description=entry['description'],
            )
            for name, entry in formations.items()
        })
    return MappingProxyType(book)


FORMATION_BOOK = _build_formation_book()


def lookup_formation(sport: str, name: str) -> Optional[Formation]:
    """Formation for a sport, None when either is unknown"""
    return FORMATION_BOOK.get(sport, {}).get(name)


def available_formations(sport: str) -> List[str]:
    return list(FORMATION_BOOK.get(sport, {}).keys())


# ============================================================================
# RUN CONFIGURATION
# ============================================================================


@dataclass(frozen=True)
class MatchConfiguration:
    """Everything about the upcoming match that is not historical data"""
    side_a_name: str = "Side A"
    side_b_name: str = "Side B"
    side_a_ranking: Optional[int] = None
    side_b_ranking: Optional[int] = None
    sport: str = config.DEFAULT_SPORT
    side_a_formation: str = config.DEFAULT_FORMATION
    side_b_formation: str = config.DEFAULT_FORMATION
    venue: Venue = Venue.NEUTRAL
    importance: float = 1.0
    totals_line: Optional[float] = None
    point_spread: Optional[float] = None
    spread_favorite: Side = Side.A
    min_good_matches: int = config.MIN_MATCHES_FOR_GOOD_ANALYSIS

    def __post_init__(self):
        # Accept plain strings for the enum fields
        if not isinstance(self.venue, Venue):
            object.__setattr__(self, 'venue', self._coerce(Venue, self.venue, 'venue'))
        if not isinstance(self.spread_favorite, Side):
            object.__setattr__(self, 'spread_favorite',
                               self._coerce(Side, self.spread_favorite, 'spread favorite'))

        name_a = (self.side_a_name or "").strip()
        name_b = (self.side_b_name or "").strip()
        if not name_a or not name_b:
            raise InputError("Both sides need a name")
        if name_a == name_b:
            raise InputError(f"Side names must differ, both are '{name_a}'")
        object.__setattr__(self, 'side_a_name', name_a)
        object.__setattr__(self, 'side_b_name', name_b)

        for label, ranking in (("side A", self.side_a_ranking), ("side B", self.side_b_ranking)):
            if ranking is not None and ranking < 1:
                raise InputError(f"Ranking for {label} must be 1 or higher, got {ranking}")

        if not math.isfinite(self.importance) or self.importance <= 0:
            raise InputError(f"Match importance must be positive, got {self.importance}")
        if self.totals_line is not None and not self.totals_line > 0:
            raise InputError(f"Totals line must be positive, got {self.totals_line}")
        if self.point_spread is not None and not self.point_spread > 0:
            raise InputError(f"Point spread must be positive, got {self.point_spread}")
        if self.min_good_matches < 1:
            raise InputError("Minimum match count must be at least 1")

    @staticmethod
    def _coerce(enum_type, value, label: str):
        try:
            return enum_type(value)
        except ValueError:
            options = ", ".join(member.value for member in enum_type)
            raise InputError(f"Unknown {label} '{value}' (expected one of: {options})") from None

    @property
    def has_totals_line(self) -> bool:
        return self.totals_line is not None

    @property
    def has_point_spread(self) -> bool:
        return self.point_spread is not None

    @property
    def has_rankings(self) -> bool:
        return self.side_a_ranking is not None and self.side_b_ranking is not None

    @property
    def ranking_diff(self) -> Optional[int]:
        """Positive when side A is ranked better (smaller number)"""
        if not self.has_rankings:
            return None
        return self.side_b_ranking - self.side_a_ranking

    def name_of(self, side: Side) -> str:
        return self.side_a_name if side is Side.A else self.side_b_name

    def formation_of(self, side: Side) -> Optional[Formation]:
        name = self.side_a_formation if side is Side.A else self.side_b_formation
        return lookup_formation(self.sport, name)

    @property
    def formations_active(self) -> bool:
        """Both sides picked a real formation that exists for the sport"""
        if config.DEFAULT_FORMATION in (self.side_a_formation, self.side_b_formation):
            return False
        return self.formation_of(Side.A) is not None and self.formation_of(Side.B) is not None


# ============================================================================
# FEATURE SET
# ============================================================================


@dataclass(frozen=True)
class SideRecordSummary:
    """Win/draw/loss tally and half-by-half figures for one side"""
    matches: int
    wins: int
    draws: int
    losses: int
    first_half_goals: float
    second_half_goals: float
    first_half_strength: float
    second_half_strength: float

    @property
    def win_rate(self) -> float:
        return self.wins / self.matches if self.matches else 0.0


@dataclass(frozen=True)
class HeadToHeadSummary:
    matches: int
    side_a_wins: int
    side_b_wins: int
    draws: int
    side_a_avg_goals: float
    side_b_avg_goals: float
    avg_total_goals: float
    first_half_avg_goals: float
    second_half_avg_goals: float
    last_result: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class SideFeatures:
    avg_scored: float
    avg_conceded: float
    matches: int
    attack_strength: float
    defense_strength: float
    recent_form: float
    scoring_trend: float
    defensive_trend: float
    momentum: float
    record: SideRecordSummary


@dataclass(frozen=True)
class DataQuality:
    total_matches: int
    h2h_matches: int
    side_a_matches: int
    side_b_matches: int
    sufficient: bool
    excellent: bool

    @property
    def level(self) -> str:
        if self.excellent:
            return "excellent"
        if self.sufficient:
            return "good"
        return "insufficient"


@dataclass(frozen=True)
class FeatureSet:
    """Derived features for one analysis run"""
    side_a: SideFeatures
    side_b: SideFeatures
    h2h_advantage: float
    head_to_head: Optional[HeadToHeadSummary]
    location_factor: int
    importance: float
    ranking_diff: Optional[int]
    data_quality: DataQuality

    def side(self, side: Side) -> SideFeatures:
        return self.side_a if side is Side.A else self.side_b


# ============================================================================
# POISSON CALCULATOR
# ============================================================================


class PoissonCalculator:
    """Closed-form Poisson market probabilities (fractions, not percentages)"""

    @staticmethod
    def pmf(rate: float, max_goals: int = config.ANALYTIC_MAX_GOALS) -> np.ndarray:
        return stats.poisson.pmf(np.arange(max_goals + 1), rate)

    @staticmethod
    def score_grid(rate_a: float, rate_b: float,
                   max_goals: int = config.ANALYTIC_MAX_GOALS) -> np.ndarray:
        """Joint probability of every score; rows are side A goals"""
        return np.outer(PoissonCalculator.pmf(rate_a, max_goals),
                        PoissonCalculator.pmf(rate_b, max_goals))

    @staticmethod
    def outcome_probabilities(rate_a: float, rate_b: float,
                              max_goals: int = config.ANALYTIC_MAX_GOALS) -> Tuple[float, float, float]:
        """(side A win, draw, side B win)"""
        grid = PoissonCalculator.score_grid(rate_a, rate_b, max_goals)
        side_a_win = float(np.tril(grid, -1).sum())
        draw = float(np.trace(grid))
        side_b_win = float(np.triu(grid, 1).sum())

        total = side_a_win + draw + side_b_win
        if abs(total - 1.0) > 0.001:
            warnings.warn(f"Poisson probabilities sum to {total:.4f}, normalizing")
            side_a_win /= total
            draw /= total
            side_b_win /= total

        return side_a_win, draw, side_b_win

    @staticmethod
    def totals_probabilities(total_rate: float, line: float) -> Tuple[float, float, float]:
        """(over, under, push) for a Poisson total against a line"""
        whole_line = float(line).is_integer()
        threshold = math.floor(line)
        over = float(stats.poisson.sf(threshold, total_rate))
        if whole_line:
            push = float(stats.poisson.pmf(threshold, total_rate))
            under = float(stats.poisson.cdf(threshold - 1, total_rate))
        else:
            push = 0.0
            under = float(stats.poisson.cdf(threshold, total_rate))
        return over, under, push

    @staticmethod
    def spread_probabilities(favorite_rate: float, underdog_rate: float, spread: float,
                             max_goals: int = config.ANALYTIC_MAX_GOALS) -> Tuple[float, float, float]:
        """(favourite covers, underdog covers, push)"""
        grid = PoissonCalculator.score_grid(favorite_rate, underdog_rate, max_goals)
        goals = np.arange(max_goals + 1)
        adjusted = goals[:, None] - spread - goals[None, :]

        covered = float(grid[adjusted > 0].sum())
        not_covered = float(grid[adjusted < 0].sum())
        push = float(grid[adjusted == 0].sum())

        total = covered + not_covered + push
        if total <= 0:
            raise ArithmeticError("Score grid carries no probability mass")
        return covered / total, not_covered / total, push / total

    @staticmethod
    def total_goal_distribution(rate_a: float, rate_b: float,
                                buckets: int = config.SCORE_DISTRIBUTION_BUCKETS) -> np.ndarray:
        """P(total goals = k) for k < buckets-1, last bucket holds the tail"""
        # The sum of independent Poisson counts is Poisson in the summed rate
        return PoissonCalculator.capped_pmf(rate_a + rate_b, buckets)

    @staticmethod
    def capped_pmf(rate: float, buckets: int) -> np.ndarray:
        """PMF over 0..buckets-1 with the last bucket holding the tail"""
        head = stats.poisson.pmf(np.arange(buckets - 1), rate)
        return np.append(head, max(0.0, 1.0 - head.sum()))

    @staticmethod
    def scoreline_probabilities(rate_a: float, rate_b: float, max_goals: int) -> List[Dict]:
        """Every score up to max_goals per side, most likely first"""
        grid = PoissonCalculator.score_grid(rate_a, rate_b, max_goals)
        scorelines = [
            {"side_a": i, "side_b": j, "probability": float(grid[i, j])}
            for i in range(max_goals + 1)
            for j in range(max_goals + 1)
        ]
        scorelines.sort(key=lambda x: x["probability"], reverse=True)
        return scorelines
