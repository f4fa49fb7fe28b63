"""
Expected scoring rates per side, with formation and match-context adjustments
"""
import logging
from dataclasses import dataclass

import config
from models import Formation, FeatureSet, MatchConfiguration, Side
from utils import clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SideAdjustment:
    offense: float = 0.0
    defense: float = 0.0


@dataclass(frozen=True)
class FormationAdjustment:
    side_a: SideAdjustment = SideAdjustment()
    side_b: SideAdjustment = SideAdjustment()
    tactical_advantage: float = 0.0
    active: bool = False

    def for_side(self, side: Side) -> SideAdjustment:
        return self.side_a if side is Side.A else self.side_b


@dataclass(frozen=True)
class ContextAdjustment:
    side_a: SideAdjustment = SideAdjustment()
    side_b: SideAdjustment = SideAdjustment()

    def for_side(self, side: Side) -> SideAdjustment:
        return self.side_a if side is Side.A else self.side_b


@dataclass(frozen=True)
class ExpectedRates:
    """Poisson rates for the match plus the pieces they were built from"""
    side_a: float
    side_b: float
    base_side_a: float
    base_side_b: float
    formation: FormationAdjustment
    context: ContextAdjustment

    @property
    def total(self) -> float:
        return self.side_a + self.side_b

    def for_side(self, side: Side) -> float:
        return self.side_a if side is Side.A else self.side_b


# ============================================================================
# ADJUSTMENTS
# ============================================================================


def tactical_advantage(formation_a: Formation, formation_b: Formation) -> float:
    """Matchup edge for side A, antisymmetric in its arguments.

    Each side's strong/weak lists vote for or against A; the net vote is
    capped at one step of TACTICAL_ADVANTAGE either way.
    """
    votes = 0
    votes += formation_a.is_strong_against(formation_b)
    votes -= formation_a.is_weak_against(formation_b)
    votes -= formation_b.is_strong_against(formation_a)
    votes += formation_b.is_weak_against(formation_a)
    return config.TACTICAL_ADVANTAGE * clamp(votes, -1, 1)


def formation_adjustments(configuration: MatchConfiguration) -> FormationAdjustment:
    if not configuration.formations_active:
        return FormationAdjustment()

    formation_a = configuration.formation_of(Side.A)
    formation_b = configuration.formation_of(Side.B)
    advantage = tactical_advantage(formation_a, formation_b)

    def deltas(formation: Formation, edge: float) -> SideAdjustment:
        return SideAdjustment(
            offense=(formation.attacking - config.FORMATION_BASELINE) * config.FORMATION_SCALE + edge,
            defense=(formation.defending - config.FORMATION_BASELINE) * config.FORMATION_SCALE + edge,
        )

    return FormationAdjustment(
        side_a=deltas(formation_a, advantage),
        side_b=deltas(formation_b, -advantage),
        tactical_advantage=advantage,
        active=True,
    )


def context_adjustments(configuration: MatchConfiguration) -> ContextAdjustment:
    """Venue and match-importance adjustments"""
    offense = {Side.A: 0.0, Side.B: 0.0}
    defense = {Side.A: 0.0, Side.B: 0.0}

    home = configuration.venue.home_side
    if home is not None:
        offense[home] += config.VENUE_ADJUSTMENTS['home_offense']
        defense[home] += config.VENUE_ADJUSTMENTS['home_defense']
        offense[home.opponent] += config.VENUE_ADJUSTMENTS['away_offense']

    importance = configuration.importance
    if importance > 1:
        # Big games are played more cautiously
        caution = (importance - 1) * config.IMPORTANCE_FACTOR
        for side in Side:
            defense[side] += caution
        if home is not None:
            offense[home] += caution * config.IMPORTANCE_HOME_OFFENSE_SHARE
    elif importance < 1:
        openness = (1 - importance) * config.IMPORTANCE_FACTOR
        for side in Side:
            offense[side] += openness
            defense[side] -= openness

    return ContextAdjustment(
        side_a=SideAdjustment(offense[Side.A], defense[Side.A]),
        side_b=SideAdjustment(offense[Side.B], defense[Side.B]),
    )


# ============================================================================
# MODEL
# ============================================================================


class ExpectedRateModel:
    """Per-side Poisson rate from averages, opponent defense and form"""

    def __init__(self, configuration: MatchConfiguration):
        self.configuration = configuration

    def base_rate(self, features: FeatureSet, side: Side) -> float:
        own = features.side(side)
        opponent = features.side(side.opponent)

        rate = own.avg_scored
        rate *= 1 + (1 - opponent.defense_strength)
        rate *= 1 + (own.recent_form - 0.5) * config.FORM_RATE_SENSITIVITY
        return max(config.MIN_EXPECTED_RATE, rate)

    def estimate(self, features: FeatureSet) -> ExpectedRates:
        formation = formation_adjustments(self.configuration)
        context = context_adjustments(self.configuration)

        rates = {}
        bases = {}
        for side in Side:
            bases[side] = self.base_rate(features, side)
            rates[side] = max(
                config.MIN_EXPECTED_RATE,
                bases[side]
                * (1 + formation.for_side(side).offense)
                * (1 + context.for_side(side).offense),
            )

        logger.debug("Expected rates: A %.3f (base %.3f), B %.3f (base %.3f), tactical %.2f",
                     rates[Side.A], bases[Side.A], rates[Side.B], bases[Side.B],
                     formation.tactical_advantage)

        return ExpectedRates(
            side_a=rates[Side.A],
            side_b=rates[Side.B],
            base_side_a=bases[Side.A],
            base_side_b=bases[Side.B],
            formation=formation,
            context=context,
        )
