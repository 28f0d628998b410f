"""Tunable limits shared across the engine."""

# Stop evaluating further strategies once a candidate reaches this confidence
EARLY_EXIT_CONFIDENCE = 0.95

DEFAULT_MIN_CONFIDENCE = 0.7
DEFAULT_TIMEOUT_MS = 5000

# History retained by the in-memory store
MAX_HISTORY_RECORDS = 1000
RECENT_HEALINGS_LIMIT = 10

# Leading slice of stored text compared against candidates
TEXT_PREFIX_LENGTH = 20

# Class-combination search is exponential in the class count
MAX_CLASS_COMBINATION_SIZE = 6

# Pages whose latest healing event the bus keeps; oldest page is evicted first
MAX_LATEST_EVENTS = 500
