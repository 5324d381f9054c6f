"""Application constants - centralized configuration values."""

# =============================================================================
# Request payload limits
# =============================================================================
MAX_HISTORY_ENTRIES = 30
MAX_QUESTION_LENGTH = 500
MAX_ANSWER_LENGTH = 500
MAX_ANSWER_ITEMS = 20
MAX_ANSWER_ITEM_LENGTH = 100

MAX_WATCHED_SHOWS = 100
MAX_WATCHED_TITLE_LENGTH = 200
MAX_REGION_LENGTH = 100

# Preference field limits
MAX_PREFERENCE_TEXT_LENGTH = 100
MAX_CONTENT_TYPE_LENGTH = 50
MAX_GENRES = 20
MAX_GENRE_LENGTH = 50

# Embedding ingestion
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000

# =============================================================================
# Recommendations
# =============================================================================
RECOMMENDATION_BATCH_SIZE = 6
MAX_PER_GENRE = 2
HISTORY_PAGE_SIZE = 50
RECENT_RATINGS_WINDOW = 10

# =============================================================================
# Rating
# =============================================================================
RATING_MIN = 1
RATING_MAX = 5
EMBEDDING_RATING_FLOOR = 4  # Only loved items feed retrieval
LOVED_RATING = 4
DISLIKED_RATING = 2
TOP_GENRE_AVG = 4.0
POOR_GENRE_AVG = 2.5
TYPE_PREFERENCE_MARGIN = 0.5

# =============================================================================
# Provider timeouts (in seconds)
# =============================================================================
API_TIMEOUT_LLM = 30.0

# =============================================================================
# Background tasks
# =============================================================================
WORKER_SHUTDOWN_TIMEOUT = 10.0

# =============================================================================
# Cache
# =============================================================================
CACHE_NAMESPACE_INTERPRETATION = "questionnaire:interpret"

# =============================================================================
# CORS
# =============================================================================
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
