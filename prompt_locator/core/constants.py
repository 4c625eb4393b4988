"""Application-wide constants for the Prompt Locator engine.

This module contains every threshold, limit and marker used by the
strategy generator, the search tiers, the validator and the publisher.
"""

# ========================================
# Strategy Generation Constants
# ========================================

# Confidence per strategy family
FULL_TEXT_CONFIDENCE = 1.0  # Full literal prompt
PREFIX_CONFIDENCE = 0.9  # First N characters
FIRST_SENTENCE_CONFIDENCE = 0.8  # First sentence/clause
HALF_CONFIDENCE = 0.8  # First half / last half
MIDDLE_SECTION_CONFIDENCE = 0.65  # Quarter trimmed off each end
FIRST_QUARTER_CONFIDENCE = 0.6  # Long prompts only

# Recursive divide-and-conquer over words
SEGMENT_BASE_CONFIDENCE = 0.5
SEGMENT_DEPTH_PENALTY = 0.1
SEGMENT_CONFIDENCE_FLOOR = 0.2
SEGMENT_MAX_DEPTH = 3
MIN_SEGMENT_WORDS = 3

# Overlapping word windows
WORD_WINDOW_SIZE = 10
WORD_WINDOW_MAX_COUNT = 5
WORD_WINDOW_BASE_CONFIDENCE = 0.55
WORD_WINDOW_CONFIDENCE_STEP = 0.05

# Length guards
MIN_SPLIT_TEXT_LENGTH = 20  # Halves/middle only above this many characters
MIN_SENTENCE_LENGTH = 20  # First sentence must be longer than this
LONG_PROMPT_LENGTH = 200  # First quarter only above this many characters
PREFIX_LENGTH_DEFAULT = 50
MAX_QUERY_LENGTH_DEFAULT = 256  # Code search query limit
MAX_STRATEGIES_DEFAULT = 25
MAX_STRATEGIES_MIN = 5

# ========================================
# Search Orchestration Constants
# ========================================

EARLY_EXIT_CONFIDENCE = 0.9  # Stop Phase 1 once a strategy this strong has hits
FALLBACK_CONFIDENCE_FACTOR = 0.9  # Discount for hits from the fallback scan tier
LOCAL_MARKER_CONFIDENCE = 0.3  # Generic role/message markers in the clone tier
SEARCH_REQUEST_DELAY_DEFAULT = 1.0  # Seconds between indexed-search calls
RATE_LIMIT_BACKOFF_DEFAULT = 5.0  # Seconds to wait after a rate-limit response

FALLBACK_SCAN_MAX_DEPTH_DEFAULT = 5
LOCAL_SCAN_MAX_DEPTH_DEFAULT = 12
FALLBACK_SCAN_CONCURRENCY = 8  # Concurrent file reads in the fallback scan tier
MAX_FILE_SIZE_BYTES_DEFAULT = 1_000_000
CLONE_TIMEOUT_DEFAULT = 120

CLONE_DIR_PREFIX = "prompt-locator-scan-"

SEARCHABLE_EXTENSIONS = frozenset(
    {
        ".js",
        ".ts",
        ".jsx",
        ".tsx",
        ".mjs",
        ".cjs",
        ".py",
        ".java",
        ".go",
        ".php",
        ".rb",
        ".cs",
        ".cpp",
        ".c",
        ".h",
        ".json",
        ".yaml",
        ".yml",
        ".md",
        ".txt",
        ".toml",
        ".j2",
        ".jinja",
        ".prompt",
    },
)

SKIP_DIRECTORIES = frozenset(
    {
        ".git",
        "node_modules",
        "dist",
        "build",
        "coverage",
        ".next",
        "__pycache__",
        "vendor",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        "target",
        "out",
    },
)

# Generic markers scanned in the clone tier when no strategy matched
FALLBACK_MARKERS: tuple[tuple[str, str], ...] = (
    ("fallback_messages", "messages: ["),
    ("fallback_role_system", 'role: "system"'),
    ("fallback_role_system_single", "role: 'system'"),
    ("fallback_you_are", "You are"),
    ("fallback_prompt_template", "PromptTemplate"),
    ("fallback_py_messages", "messages = ["),
    ("fallback_py_role_system_single", "'role': 'system'"),
    ("fallback_py_role_system_double", '"role": "system"'),
)

# ========================================
# Validation Constants
# ========================================

VALIDATION_CONFIDENCE_THRESHOLD = 0.7  # Classifier confidence needed to keep a candidate
VALIDATION_FAILURE_CONFIDENCE = 0.5  # Confidence assigned when the classifier fails
VALIDATION_CONTEXT_LINES = 5
CONTEXT_FALLBACK_CHARS = 500

# ========================================
# LLM Constants
# ========================================

VALIDATION_MODEL_DEFAULT = "gpt-4o"
REPLACEMENT_MODEL_DEFAULT = "gpt-4o-mini"
LLM_TEMPERATURE_DETERMINISTIC = 0.0
LLM_API_TIMEOUT_DEFAULT = 60
MAX_RETRIES_DEFAULT = 3

MAX_DETECTED_PROMPTS_DEFAULT = 2
DETECTION_CONTENT_LIMIT = 8000

# ========================================
# Discovery Constants
# ========================================

DISCOVERY_MAX_FILES_DEFAULT = 10  # top-scored files sent to detection
DISCOVERY_INDICATOR_WEIGHT = 1.0
DISCOVERY_PROVIDER_WEIGHT = 2.0
DISCOVERY_FRAMEWORK_WEIGHT = 1.5
DISCOVERY_PROMPT_PHRASE_WEIGHT = 1.25
SNIPPET_CONTEXT_LINES = 5

# ========================================
# Publication Constants
# ========================================

BRANCH_PREFIX_DEFAULT = "prompt-optimization"
DEFAULT_BRANCH_FALLBACK = "main"

# ========================================
# Network & Timeout Constants
# ========================================

GITHUB_API_URL_DEFAULT = "https://api.github.com"
GITHUB_HOST_DEFAULT = "github.com"
HTTP_REQUEST_TIMEOUT_DEFAULT = 30

# ========================================
# Security Constants
# ========================================

MAX_INPUT_SIZE = 50000  # 50KB max prompt text

# ========================================
# HTTP Status Codes
# ========================================

HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_TOO_MANY_REQUESTS = 429
