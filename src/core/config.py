"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("TIMESHEET_DB_PATH") or PROJECT_ROOT / "data" / "db" / "timesheet-activity.db")
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# CACHE CONFIGURATION
# =============================================================================

CACHE_FILE = Path(
    os.environ.get("TIMESHEET_CACHE_FILE") or Path.home() / ".timesheet-activity-cache.json"
).expanduser()
CACHE_TTL_SECONDS = int(os.environ.get("TIMESHEET_CACHE_TTL_SECONDS", "3600"))  # 1 hour

# =============================================================================
# CALENDAR DAY CONFIGURATION
# =============================================================================

# IANA name, e.g. "America/New_York". Empty means the system local timezone.
TIMEZONE_NAME = os.environ.get("TIMESHEET_TIMEZONE", "")
DAY_KEY_FORMAT = "%Y-%m-%d"
MAX_DAYS_PER_REQUEST = int(os.environ.get("MAX_DAYS_PER_REQUEST", "62"))

# =============================================================================
# PROVIDER CONFIGURATION
# =============================================================================

# Comma-separated provider kinds, e.g. "gitlab,outlook_calendar".
# Empty enables every provider that has credentials.
ENABLED_PROVIDERS = [
    name.strip() for name in os.environ.get("TIMESHEET_PROVIDERS", "").split(",") if name.strip()
]
PROVIDER_TIMEOUT_SECONDS = float(os.environ.get("PROVIDER_TIMEOUT_SECONDS", "30"))

GITLAB_URL = os.environ.get("GITLAB_URL", "https://gitlab.com").rstrip("/")
GITLAB_TOKEN = os.environ.get("GITLAB_TOKEN", "")

GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com").rstrip("/")
GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN", "")

GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REFRESH_TOKEN = os.environ.get("GOOGLE_REFRESH_TOKEN", "")
GOOGLE_CALENDAR_ID = os.environ.get("GOOGLE_CALENDAR_ID", "primary")

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")
OUTLOOK_USER_ID = os.environ.get("OUTLOOK_USER_ID", "")  # mailbox UPN or object id

# =============================================================================
# DISTRIBUTION CONFIGURATION
# =============================================================================

DISTRIBUTION_MODE = os.environ.get("TIMESHEET_DISTRIBUTION_MODE", "proportional")

# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

ACTIVITY_HEADERS = ["Date", "Day", "Meetings", "Commits", "Reviews", "Issues", "Description"]

# =============================================================================
# API CONFIGURATION
# =============================================================================

TIMESHEET_API_KEY = os.environ.get("TIMESHEET_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)-7s] [%(name)-24s] %(message)s"
