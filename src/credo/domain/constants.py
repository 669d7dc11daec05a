"""Centralized constants for Credo Mastery.

Scheduling tuning values and storage defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Time ----------
DAY_MS = 86_400_000

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

# ---------- Progress ----------
MASTERY_REPETITIONS = 5

# Buttons shown after revealing a card: quality -> label
GRADE_LABELS = {1: "Again", 3: "Hard", 4: "Good", 5: "Easy"}

# ---------- Content ----------
PRINCIPLE_TYPE = "kekich"
RULE_SET_TYPE = "paulism"
CONTENT_TYPES = (PRINCIPLE_TYPE, RULE_SET_TYPE)
DISPLAY_TRUNCATE_LEN = 50

# ---------- Storage ----------
DEFAULT_NAMESPACE = "credo_"
CARDS_KEY = "cards"
GOALS_KEY = "goals"
APPLICATIONS_KEY = "applications"
STATS_KEY = "stats"

# ---------- Reporting ----------
RECENT_APPLICATIONS = 5
DASHBOARD_GOALS = 3
