"""Constants for Clinic Sentinel."""

from typing import Literal

DOMAIN = "clinic_sentinel"

Cadence = Literal["hourly", "daily", "weekly"]
SiteStatus = Literal["inactive", "active", "warning"]
TreatmentKind = Literal["panoramic", "periapical"]
GapMode = Literal["business", "wall_clock"]

CADENCES: tuple[Cadence, ...] = ("hourly", "daily", "weekly")
SITE_STATUSES: tuple[SiteStatus, ...] = ("inactive", "active", "warning")

# ---- Log fetch service ----
CONF_LOG_API_URL = "log_api_url"

CONF_LOG_API_VERSION = "log_api_version"
RECOMMENDED_LOG_API_VERSION = "2.4.5"

CONF_LOG_FETCH_LIMIT = "log_fetch_limit"
RECOMMENDED_LOG_FETCH_LIMIT = 1000

CONF_LOG_FETCH_TIMEOUT_SECONDS = "log_fetch_timeout_seconds"
RECOMMENDED_LOG_FETCH_TIMEOUT_SECONDS = 10.0

# Query window per cadence, in hours.
FETCH_WINDOW_HOURS: dict[str, int] = {
    "hourly": 24,
    "daily": 24,
    "weekly": 24 * 7,
}

# ---- Notifications (webhook) ----
CONF_NOTIFY_TIMEOUT_SECONDS = "notify_timeout_seconds"
RECOMMENDED_NOTIFY_TIMEOUT_SECONDS = 8.0

CONF_NOTIFY_THROTTLE_MINUTES = "notify_throttle_minutes"
RECOMMENDED_NOTIFY_THROTTLE_MINUTES = 30

# ---- Scheduler ----
CONF_SCAN_INTERVAL_MINUTES = "scan_interval_minutes"
RECOMMENDED_SCAN_INTERVAL_MINUTES = 15

CONF_RUN_COOLDOWN_MINUTES = "run_cooldown_minutes"
RECOMMENDED_RUN_COOLDOWN_MINUTES = 120

# ---- Health evaluation ----
CONF_STALE_AFTER_HOURS = "stale_after_hours"
RECOMMENDED_STALE_AFTER_HOURS = 5.0

CONF_BUSINESS_TIME_ZONE = "business_time_zone"
RECOMMENDED_BUSINESS_TIME_ZONE = "UTC"

CONF_STALE_GAP_MODE = "stale_gap_mode"
RECOMMENDED_STALE_GAP_MODE: GapMode = "business"

BUSINESS_DAYS = frozenset({0, 1, 2, 3, 4})  # Monday..Friday
BUSINESS_START_HOUR = 9
BUSINESS_END_HOUR = 17

# ---- Storage ----
CONF_STORAGE_PATH = "storage_path"
RECOMMENDED_STORAGE_PATH = "data/sites.json"
STORE_VERSION = 1

# ---- Logging ----
CONF_LOG_LEVEL = "log_level"
RECOMMENDED_LOG_LEVEL = "INFO"

# ---- Log message markers ----
TREATMENT_CREATED_MARKER = "Treatment created successfully"
CREATE_TREATMENT_MARKER = "createTreatment"
PERIAPICAL_KEYWORD = "periapical"
MASK_CHAR = "*"
