# =============================================================================
# Acceptance Policy
# =============================================================================

REQUIRED_MIN_FIELDS = 4  # Valid fields needed to accept a reading without fallback
ACCEPTABLE_CONFIDENCE = 0.6  # Minimum overall confidence to accept a reading


# =============================================================================
# Label Matching
# =============================================================================

MIN_LABEL_SIMILARITY = 0.5  # Normalized token overlap needed to bind a row to a field
LOOSE_LABEL_SIMILARITY = 0.3  # Threshold used by the loose label fallback
LABEL_PHRASE_FLOOR = 0.8  # Similarity floor when a synonym appears verbatim in a label
LABEL_TOKEN_FUZZ_RATIO = 80  # rapidfuzz ratio (0-100) for two label words to count as equal
LABEL_TOKEN_FUZZ_MIN_LENGTH = 4  # Shorter words must match exactly


# =============================================================================
# Coercion
# =============================================================================

CLEAN_COERCION_FACTOR = 1.0
REPAIRED_COERCION_FACTOR = 0.5  # Digits needed OCR repair (O->0, l->1, ...)
FAILED_COERCION_FACTOR = 0.0

MISSING_CELL_MARKERS = frozenset({"-", "--", "---", "—", "–", "_", "n/a", "na", "none"})


# =============================================================================
# Fallback Strategies
# =============================================================================

ADJACENT_HOUR_PENALTY = 0.8  # Multiplier for values borrowed from a neighbouring hour
REGEX_ONLY_CONFIDENCE = 0.4  # Base confidence of unit-adjacent scanning
REGEX_CONTEXT_TOKENS = 4  # Words inspected before a unit marker to pick the field


# =============================================================================
# Validation
# =============================================================================

REVIEW_CONFIDENCE_THRESHOLD = 0.7  # Below this a valid reading is queued for review
PRECISION_BASE_DIGITS = 3.0  # Significant digits allowed at zero confidence
PRECISION_DIGITS_PER_CONFIDENCE = 6.0  # Extra digits allowed per unit of confidence
OUTLET_TO_INLET_MAX_RATIO = 0.1  # Outlet PPM above this share of inlet PPM is suspicious


# =============================================================================
# Quality Assessment
# =============================================================================

QUALITY_MIN_FIELDS = 4
QUALITY_LOW_CONFIDENCE = 0.6
QUALITY_HIGH_SCORE = 0.8
QUALITY_NEEDS_IMPROVEMENT_SCORE = 0.6


# =============================================================================
# Batch Processing
# =============================================================================

BATCH_MAX_WORKERS = 4  # 1 processes requests sequentially


# =============================================================================
# External OCR Service (seconds)
# =============================================================================

OCR_TIMEOUT_SECONDS = 300  # Total time to wait for a recognition result
OCR_CLIENT_TIMEOUT_SECONDS = 60  # HTTP client timeout for OCR requests
OCR_POLL_INTERVAL_SECONDS = 0.5  # First polling interval, grows with backoff
OCR_POLL_MAX_INTERVAL_SECONDS = 5.0
OCR_POLL_BACKOFF = 1.5

ERROR_BODY_MAX_CHARS = 200  # Maximum chars from error response bodies
