"""Centralized constants for the mnemo scheduling engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Ratings ----------
MIN_RATING = 1
MAX_RATING = 5
PERFECT_RATING = 5
PASSING_QUALITY = 3  # quality = rating - 1
SUCCESS_RATING = 3  # retention counts ratings >= 3 as recalled
FAILED_RATING = 3  # error rate counts ratings < 3 as failed

# ---------- Ease ----------
EASE_FLOOR = 1.3
EASE_CEILING = 2.5
EASE_PENALTY = 0.2

# ---------- Intervals ----------
FIRST_INTERVAL = 1
GRADUATING_INTERVAL = 6
DEFAULT_MAXIMUM_INTERVAL = 36500
SECONDS_PER_DAY = 86400

# ---------- Expected Time ----------
BASE_EXPECTED_TIME = 10.0  # seconds
LONG_CONTENT_CHARS = 500
LONG_CONTENT_BONUS = 10.0
MEDIUM_CONTENT_CHARS = 200
MEDIUM_CONTENT_BONUS = 5.0
IMAGE_BONUS = 5.0
FORMULA_BONUS = 15.0
EXPECTED_TIME_WINDOW = 3

# ---------- Adaptive Factors ----------
SLOW_RATIO = 2.0
FAST_RATIO = 0.5
TIME_FACTOR_FLOOR = 0.7
TIME_FACTOR_CEILING = 1.3
ERROR_WINDOW = 5
DIFFICULTY_STEP = 0.1
DIFFICULTY_FLOOR = 0.7
DIFFICULTY_CEILING = 1.3
RETENTION_MIN_REVIEWS = 5
RETENTION_MARGIN = 0.1
RETENTION_TIGHTEN = 0.9
RETENTION_RELAX = 1.1

# ---------- Session Nudge ----------
# interval_modifier is a percentage (100 == neutral)
NUDGE_HIGH_RATING = 4.5
NUDGE_LOW_RATING = 3.0
NUDGE_UP = 1.05
NUDGE_DOWN = 0.95
MODIFIER_CEILING = 150.0
MODIFIER_FLOOR = 50.0

# ---------- Queue ----------
DEFAULT_DUE_LIMIT = 20
DEFAULT_UPCOMING_DAYS = 7

# ---------- Learning Pattern Analysis ----------
ANALYSIS_HISTORY_LIMIT = 500
MIN_TAG_OBSERVATIONS = 5
MAX_DIFFICULT_TAGS = 5
MIN_HOUR_OBSERVATIONS = 5
MAX_OPTIMAL_HOURS = 3
BASE_NEW_CARDS = 20
NEW_CARDS_MIN = 5
NEW_CARDS_MAX = 30
BASE_RETENTION = 0.9
MODIFIER_RECOMMEND_MIN = 80
MODIFIER_RECOMMEND_MAX = 120
RETENTION_TARGET_MIN = 0.8
RETENTION_TARGET_MAX = 0.95

# ---------- Learning Statistics ----------
RETENTION_SCORE_DAYS = 30
RETENTION_SCORE_RATING = 4
RECENT_SESSIONS = 10
