"""Centralized constants for the cekatan engines.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduling ----------
BATCH_SIZE = 50
NEW_CARDS_FALLBACK_LIMIT = 10
NEW_CARD_INTERLEAVE_RATIO = 3

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
AGAIN_EASE_PENALTY = 0.20
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_FIRST_INTERVAL = 4
AGAIN_RELEARN_MINUTES = 10
CORRECT_RATING_THRESHOLD = 3

# ---------- Assessment ----------
MAX_SCORE = 100

# ---------- Auto-Scan ----------
MAX_ATTEMPTS_PER_PAGE = 2
MAX_CONSECUTIVE_ERRORS = 3
SCAN_DELAY_SECONDS = 1.5
MIN_PAGE_TEXT_LENGTH = 50
CHECKPOINT_KEY_PREFIX = "autoscan_state"

# ---------- HTTP collaborators ----------
REQUEST_TIMEOUT = 30.0
