"""
Centralized constants for Layout Translator.
All magic numbers of the translation pipeline live here.
"""

# ===========================================
# BATCHING / DISPATCH
# ===========================================
DEFAULT_MAX_BATCH_CHARS = 4000        # character budget per translation request
DEFAULT_MAX_CONCURRENCY = 8           # parallel batch requests per file (0 = unbounded)
DEFAULT_REQUEST_TIMEOUT = 120.0       # seconds per batch request
TRANSLATION_TEMPERATURE = 0.3         # LLM temperature
TRANSLATION_MAX_TOKENS = 8192         # max tokens per response

# ===========================================
# JOB PIPELINE
# ===========================================
# Percentage reached once each step is done
STEP_PERCENTAGES = {
    "UPLOAD": 25,
    "EXTRACT": 50,
    "TRANSLATE": 75,
    "GENERATE": 100,
}
DEFAULT_PARALLEL_JOBS = 2             # jobs processed at the same time

GENERATION_POLICY_FAIL_JOB = "fail_job"
GENERATION_POLICY_ISOLATE_FILE = "isolate_file"

# ===========================================
# MARKUP STRUCTURE
# ===========================================
CONTAINER_TAGS = frozenset({
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6",
    "li", "td", "th", "caption", "blockquote", "pre",
    "dt", "dd", "figcaption", "label", "title",
})
SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})
PAGE_CONTEXT_ATTRIBUTES = ("data-page-no", "data-page", "data-page-number")

# Stringified values that leak from malformed backend responses
PLACEHOLDER_TOKENS = ("undefined", "null", "NaN")

# ===========================================
# CONVERSION / RENDERING
# ===========================================
CONVERTER_COMMAND = "pdf2htmlEX"
CONVERTER_TIMEOUT_SECONDS = 300
RENDERER_API_URL = "https://api-staging.luminapdf.xyz/api/v1/generate/pdf"
RENDERER_TIMEOUT_SECONDS = 120.0
DEFAULT_PAGE_FORMAT = "A4"
TRANSLATED_PREFIX = "translated_"

# ===========================================
# FILE HANDLING
# ===========================================
MAX_UPLOAD_FILES = 5
MAX_UPLOAD_SIZE_MB = 5
SUPPORTED_EXTENSIONS = ['.pdf']
PDF_CONTENT_TYPE = "application/pdf"

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/layout_translator.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
