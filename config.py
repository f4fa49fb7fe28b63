"""
Configuration for model constants, weights and thresholds
"""

# ============================================================================
# DATA QUALITY
# ============================================================================

MIN_MATCHES_FOR_GOOD_ANALYSIS = 3
MIN_MATCHES_FOR_EXCELLENT_ANALYSIS = 6
MIN_H2H_MATCHES = 2

# Synthetic timestamps when the caller supplies none
MATCH_SPACING_DAYS = 7

# ============================================================================
# FEATURE EXTRACTION
# ============================================================================

LEAGUE_AVG_SCORING = 2.5     # Goals per side used to scale strengths
STRENGTH_BOUNDS = (0.5, 2.0)
MIN_CONCEDED_RATE = 0.1

FORM_WINDOW = 5
FORM_DECAY = 0.8
NEUTRAL_FORM = 0.5

MIN_TREND_MATCHES = 3
TREND_SCALE = 0.2
NEUTRAL_TREND = 0.5

H2H_POINTS = {'win': 3, 'draw': 1, 'loss': 0}

MOMENTUM_WEIGHTS = {
    'form': 0.6,
    'scoring_trend': 0.25,
    'defensive_trend': 0.15
}

# First/second half split when no half-time score was recorded
FIRST_HALF_SHARE = 0.4
SECOND_HALF_SHARE = 0.6

# ============================================================================
# EXPECTED RATES
# ============================================================================

MIN_EXPECTED_RATE = 0.1
FORM_RATE_SENSITIVITY = 0.5

FORMATION_BASELINE = 0.7
FORMATION_SCALE = 0.5
TACTICAL_ADVANTAGE = 0.15

VENUE_ADJUSTMENTS = {
    'home_offense': 0.10,
    'home_defense': 0.10,
    'away_offense': -0.05
}

IMPORTANCE_FACTOR = 0.1
IMPORTANCE_HOME_OFFENSE_SHARE = 0.5

# ============================================================================
# SIMULATION
# ============================================================================

DEFAULT_SIMULATION_COUNT = 10000
SIMULATION_CHUNK_SIZE = 2500
MAX_SIMULATION_RATE = 30.0

# ============================================================================
# ANALYTIC MODEL
# ============================================================================

WEIGHTS = {
    'recent_form': 3.5,
    'h2h_matches': 3.0,
    'overall_performance': 2.2,
    'home_advantage': 2.0,
    'formation_compatibility': 1.8,
    'ranking': 1.2
}

AWAY_VENUE_FACTOR = 0.8
RANKING_SPAN = 20

DRAW_SETTINGS = {
    'base': 30.0,
    'scoring_penalty': 4.0,
    'gap_penalty': 0.3,
    'floor': 5.0,
    'ceiling': 40.0
}

H2H_TOTAL_BLEND = {
    'per_match': 0.08,
    'max_weight': 0.4
}

IMPORTANCE_TOTAL_SETTINGS = {
    'high_threshold': 1.2,
    'low_threshold': 0.8,
    'factor': 0.5
}

FORMATION_TOTAL_FACTOR = 0.5
MIN_PROJECTED_TOTAL = 0.5
ADVANTAGE_GOAL_SPLIT = 4.0

# ============================================================================
# MARKETS & DISTRIBUTIONS
# ============================================================================

ANALYTIC_MAX_GOALS = 20          # Upper summation bound for Poisson tails
LIKELY_SCORE_GRID = 4            # Most common scores drawn from 0..4 x 0..4
SCORE_LIST_GRID = 10             # Full analytic score list covers 0..10 x 0..10
TOP_SCORES = 5
SCORE_DISTRIBUTION_BUCKETS = 10  # Total goals 0..9, last bucket is 9+
MARGIN_BUCKETS = 7               # Margin 0..6, last bucket is 6+
GOAL_BUCKETS = 7                 # Goals per side 0..6, last bucket is 6+

PROBABILITY_TOLERANCE = 0.01

# ============================================================================
# FEATURE IMPORTANCE
# ============================================================================

IMPORTANCE_SCALES = {
    'h2h': 100,
    'form': 100,
    'attack': 50,
    'defense': 50,
    'ranking': 2,
    'importance': 50
}

IMPORTANCE_DEFAULTS = {
    'h2h': 30,
    'location_active': 60,
    'location_neutral': 20,
    'ranking': 20,
    'formation_active': 60,
    'formation_inactive': 30,
    'importance': 20
}

IMPORTANCE_RANGE = (10, 100)

# ============================================================================
# RECOMMENDATIONS
# ============================================================================

RECOMMENDATION_THRESHOLDS = {
    'outcome': 60,
    'totals': 65,
    'spread': 60,
    'btts': 70
}

CONFIDENCE_THRESHOLDS = {
    'Strong': 70,
    'Moderate': 60,
    'Slight': 0
}

# ============================================================================
# FORMATIONS
# ============================================================================

DEFAULT_FORMATION = 'default'
DEFAULT_SPORT = 'football'

FORMATIONS = {
    'football': {
        '4-3-3': {
            'attacking': 0.8,
            'defending': 0.6,
            'strong_against': ['5-3-2', '4-4-2'],
            'weak_against': ['4-2-3-1', '3-5-2'],
            'description': 'Offensive formation with wingers providing width'
        },
        '4-4-2': {
            'attacking': 0.7,
            'defending': 0.7,
            'strong_against': ['3-4-3', '3-5-2'],
            'weak_against': ['4-3-3', '4-2-3-1'],
            'description': 'Balanced formation with two strikers'
        },
        '4-2-3-1': {
            'attacking': 0.7,
            'defending': 0.8,
            'strong_against': ['4-3-3', '4-4-2'],
            'weak_against': ['3-5-2', '5-3-2'],
            'description': 'Defensive stability with attacking midfielders'
        },
        '3-5-2': {
            'attacking': 0.7,
            'defending': 0.6,
            'strong_against': ['4-2-3-1', '4-3-3'],
            'weak_against': ['4-4-2', '4-3-3 (wide)'],
            'description': 'Midfield control with wing-backs'
        },
        '5-3-2': {
            'attacking': 0.5,
            'defending': 0.9,
            'strong_against': ['4-3-3', '4-2-3-1'],
            'weak_against': ['3-5-2', '4-4-2'],
            'description': 'Defensive formation with counter-attack focus'
        },
        '3-4-3': {
            'attacking': 0.9,
            'defending': 0.5,
            'strong_against': ['5-3-2', '4-2-3-1'],
            'weak_against': ['4-4-2', '4-3-3'],
            'description': 'Very offensive with three forwards'
        }
    },
    'basketball': {
        '1-3-1': {
            'attacking': 0.6,
            'defending': 0.8,
            'strong_against': ['Princeton', 'Motion'],
            'weak_against': ['Triangle', 'Pick and Roll'],
            'description': 'Zone defense with traps'
        },
        'Triangle': {
            'attacking': 0.8,
            'defending': 0.6,
            'strong_against': ['1-3-1', '2-3'],
            'weak_against': ['Man-to-Man', 'Full Court Press'],
            'description': 'Post-oriented offense with spacing'
        },
        'Motion': {
            'attacking': 0.8,
            'defending': 0.6,
            'strong_against': ['2-3', '3-2'],
            'weak_against': ['1-3-1', 'Man-to-Man'],
            'description': 'Player and ball movement offense'
        },
        'Princeton': {
            'attacking': 0.7,
            'defending': 0.6,
            'strong_against': ['Man-to-Man', 'Full Court Press'],
            'weak_against': ['1-3-1', '2-3'],
            'description': 'Backdoor cuts and constant motion'
        },
        'Man-to-Man': {
            'attacking': 0.6,
            'defending': 0.8,
            'strong_against': ['Motion', 'Princeton'],
            'weak_against': ['Pick and Roll', 'Triangle'],
            'description': 'Individual defensive assignments'
        },
        '2-3': {
            'attacking': 0.5,
            'defending': 0.9,
            'strong_against': ['Princeton', 'Pick and Roll'],
            'weak_against': ['Motion', 'Triangle'],
            'description': 'Zone defense protecting the paint'
        }
    },
    'default': {
        'default': {
            'attacking': 0.7,
            'defending': 0.7,
            'strong_against': [],
            'weak_against': [],
            'description': 'Standard formation'
        }
    }
}
