"""
Betting recommendations derived from an analysis result
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

import config
from aggregator import AnalysisResult
from models import MatchConfiguration


@dataclass(frozen=True)
class Recommendation:
    market: str
    selection: str
    probability: float
    strength: str


def _format_line(value: float) -> str:
    return f"{value:g}"


class BettingAdvisor:
    """Turns market probabilities into plays above per-market thresholds"""

    STRENGTH_ORDER = {'Strong': 0, 'Moderate': 1, 'Slight': 2}

    def __init__(self, thresholds: Optional[Dict[str, float]] = None):
        self.thresholds = dict(config.RECOMMENDATION_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)

    @staticmethod
    def strength_for(probability: float) -> str:
        for label, floor in config.CONFIDENCE_THRESHOLDS.items():
            if probability >= floor:
                return label
        return 'Slight'

    def _recommend(self, market: str, selection: str, probability: float) -> Recommendation:
        return Recommendation(market, selection, probability, self.strength_for(probability))

    def recommendations(self, result: AnalysisResult,
                        configuration: MatchConfiguration) -> List[Recommendation]:
        """Plays whose probability clears the market threshold, strongest first"""
        p = result.probabilities
        plays = []

        outcomes = [
            (p.side_a_win, f"{configuration.side_a_name} to Win"),
            (p.side_b_win, f"{configuration.side_b_name} to Win"),
            (p.draw, "Draw"),
        ]
        probability, selection = max(outcomes, key=lambda item: item[0])
        if probability > self.thresholds['outcome']:
            plays.append(self._recommend("Match Result", selection, probability))

        if configuration.has_totals_line:
            line = _format_line(configuration.totals_line)
            if p.over > self.thresholds['totals']:
                plays.append(self._recommend("Total Goals", f"Over {line}", p.over))
            elif p.under > self.thresholds['totals']:
                plays.append(self._recommend("Total Goals", f"Under {line}", p.under))

        if configuration.has_point_spread:
            spread = _format_line(configuration.point_spread)
            favorite = configuration.spread_favorite
            if p.favorite_covers > self.thresholds['spread']:
                plays.append(self._recommend(
                    "Point Spread", f"{configuration.name_of(favorite)} -{spread}", p.favorite_covers))
            elif p.underdog_covers > self.thresholds['spread']:
                plays.append(self._recommend(
                    "Point Spread", f"{configuration.name_of(favorite.opponent)} +{spread}",
                    p.underdog_covers))

        btts = result.insights.both_sides_score
        if btts > self.thresholds['btts']:
            plays.append(self._recommend("Both Teams to Score", "Yes", btts))
        elif 100 - btts > self.thresholds['btts']:
            plays.append(self._recommend("Both Teams to Score", "No", 100 - btts))

        plays.sort(key=lambda play: (self.STRENGTH_ORDER[play.strength], -play.probability))
        return plays

    def generate_advice(self, result: AnalysisResult,
                        configuration: MatchConfiguration) -> Dict:
        """Group recommendations by strength with a one-line summary"""
        advice = {
            "strong_plays": [],
            "moderate_plays": [],
            "light_plays": [],
            "summary": "",
        }
        buckets = {'Strong': "strong_plays", 'Moderate': "moderate_plays", 'Slight': "light_plays"}

        plays = self.recommendations(result, configuration)
        for play in plays:
            advice[buckets[play.strength]].append(play)

        if not plays:
            advice["summary"] = "No market clears its confidence threshold"
        else:
            best = plays[0]
            advice["summary"] = (f"{len(plays)} play(s); best: {best.selection} "
                                 f"({best.market}, {best.probability:.1f}%, {best.strength})")
        return advice
