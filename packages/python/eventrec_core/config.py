TICKETMASTER_BASE_URL = "https://app.ticketmaster.com/discovery/v2"

# Regions queried in world mode (ISO-3166 alpha-2, Ticketmaster market coverage)
REGION_CATALOG: tuple[str, ...] = (
    "US", "CA", "MX", "BR", "AR", "CL",
    "GB", "IE", "FR", "DE", "ES", "IT",
    "NL", "BE", "CH", "AT", "SE", "NO",
    "DK", "FI", "PL", "CZ", "PT", "TR",
    "AE", "ZA", "AU", "NZ", "JP", "SG",
)

# Country values that mean "no filter"
WORLD_ALIASES = frozenset({"WORLD", "ALL", "GLOBAL"})
COUNTRY_ALIASES = {"UK": "GB"}
ALL_CATEGORY = "all"
DEFAULT_CATEGORY = "Other"

MIN_REASONABLE_PRICE = 0.0
MAX_REASONABLE_PRICE = 100_000.0
PRICE_EMA_ALPHA = 0.3

DEFAULT_MAX_DISTANCE_KM = 50.0
TIME_WINDOW_HOURS = 24 * 30

LIKED_RATING = 4

# Live-path diversification: share of the page reserved for the preferred country
PREFERRED_QUOTA_SHARE = 0.4
PREFERRED_QUOTA_CAP = 8

DEFAULT_PAGE_SIZE = 100
DEFAULT_REGION_TIMEOUT_S = 8.0
DEFAULT_RESULT_LIMIT = 20
SEARCH_PAGE_SIZE = 20
INTERNAL_CANDIDATE_LIMIT = 500
