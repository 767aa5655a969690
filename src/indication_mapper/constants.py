"""Project-wide constants."""

# -- Base client defaults ---------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
# Pipeline stages never retry on their own; callers decide on backoff.
DEFAULT_MAX_RETRIES: int = 0

# -- DailyMed ---------------------------------------------------------------
DAILYMED_BASE_URL: str = "https://dailymed.nlm.nih.gov/dailymed/services/v2"
DAILYMED_SEARCH_PAGE_SIZE: int = 1

# SPL section identifiers for INDICATIONS AND USAGE
INDICATIONS_SECTION_ID: str = "S1"
INDICATIONS_LOINC_CODE: str = "34067-9"

# First narrative fragment of the Dupixent highlights excerpt; it describes
# the pharmacological class rather than an indication.
DEFAULT_PREAMBLE_MARKERS: tuple[str, ...] = (
    "interleukin-4 receptor alpha antagonist",
)

# -- Classification (OpenAI) -----------------------------------------------
CLASSIFICATION_MODEL: str = "gpt-4-turbo"
CLASSIFICATION_TEMPERATURE: float = 0.2
CLASSIFICATION_TIMEOUT: float = 60.0

# -- Cache ------------------------------------------------------------------
DRUG_CACHE_PREFIX: str = "indications:"
# Outside the "indications:" namespace so no drug name can collide with it
ALL_INDICATIONS_KEY: str = "indications-all"
RECORD_CACHE_PREFIX: str = "indication:"
SEARCH_CACHE_TTL: int = 86400  # 24 hours in seconds
RECORD_CACHE_TTL: int = 3600  # 1 hour in seconds
