"""
Heuristic feature-importance scores for explaining a prediction
"""
from typing import Dict

import config
from models import FeatureSet, MatchConfiguration
from utils import clamp


class FeatureImportanceEstimator:
    """Scores each factor 10-100 by how far it sits from neutral"""

    def __init__(self, configuration: MatchConfiguration):
        self.configuration = configuration

    def estimate(self, features: FeatureSet) -> Dict[str, float]:
        scales = config.IMPORTANCE_SCALES
        defaults = config.IMPORTANCE_DEFAULTS
        a, b = features.side_a, features.side_b

        if features.data_quality.h2h_matches >= config.MIN_H2H_MATCHES:
            h2h = abs(features.h2h_advantage) * scales['h2h']
        else:
            h2h = defaults['h2h']

        if features.location_factor != 0:
            location = defaults['location_active']
        else:
            location = defaults['location_neutral']

        if features.ranking_diff is not None:
            ranking = min(100, abs(features.ranking_diff) * scales['ranking'])
        else:
            ranking = defaults['ranking']

        if self.configuration.formations_active:
            formation = defaults['formation_active']
        else:
            formation = defaults['formation_inactive']

        if features.importance != 1:
            importance = abs(features.importance - 1) * scales['importance']
        else:
            importance = defaults['importance']

        raw = {
            "Head-to-Head History": h2h,
            "Recent Form": abs(a.recent_form - b.recent_form) * scales['form'],
            "Attacking Strength": abs(a.attack_strength - b.attack_strength) * scales['attack'],
            "Defensive Solidity": abs(a.defense_strength - b.defense_strength) * scales['defense'],
            "Location Factor": location,
            "Team Ranking": ranking,
            "Tactical Formation": formation,
            "Match Importance": importance,
        }

        low, high = config.IMPORTANCE_RANGE
        scored = {name: float(clamp(value, low, high)) for name, value in raw.items()}
        return dict(sorted(scored.items(), key=lambda item: item[1], reverse=True))
