"""
Configuration constants and environment setup.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() == "true"


# =============================================================================
# SHEET BACKEND
# =============================================================================

SHEET_BACKEND = os.environ.get("SHEET_BACKEND", "graph").strip().lower()  # "graph" or "apps_script"

# Google Apps Script web app (alternative backend)
APPS_SCRIPT_URL = os.environ.get("APPS_SCRIPT_URL", "").strip()
APPS_SCRIPT_TIMEOUT_SECONDS = float(os.environ.get("APPS_SCRIPT_TIMEOUT_SECONDS", "30"))

# Transient 5xx responses are retried up to this many attempts in total
UPSTREAM_MAX_ATTEMPTS = int(os.environ.get("UPSTREAM_MAX_ATTEMPTS", "2"))
UPSTREAM_BACKOFF_SECONDS = float(os.environ.get("UPSTREAM_BACKOFF_SECONDS", "0.5"))

# Upstream error bodies are truncated to this many characters
ERROR_BODY_PREVIEW_CHARS = 500

# =============================================================================
# MS GRAPH CREDENTIALS AND WORKBOOK ADDRESSING (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MS_TENANT_ID", "")
GRAPH_CLIENT_ID = os.environ.get("MS_CLIENT_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MS_CLIENT_SECRET", "")

EXCEL_SITE_HOST = os.environ.get("MS_EXCEL_SITE_HOST", "")  # e.g. contoso-my.sharepoint.com
EXCEL_SITE_PATH = os.environ.get("MS_EXCEL_SITE_PATH", "")  # e.g. /personal/jane_contoso_com
EXCEL_DRIVE_ID = os.environ.get("MS_EXCEL_DRIVE_ID", "")  # skips site resolution when set
EXCEL_FILE_ID = os.environ.get("MS_EXCEL_FILE_ID", "")

# =============================================================================
# SHEET SELECTION
# =============================================================================

# Worksheets never treated as month sheets (matched case-insensitively)
EXCLUDED_SHEETS = {
    name.strip().lower()
    for name in os.environ.get("EXCLUDED_SHEETS", "Logs,Tech").split(",")
    if name.strip()
}

BOOKED_STATUS = "BOOKED"

# =============================================================================
# ROW NORMALIZATION
# =============================================================================

# Fixed output column order of a normalized row
OUTPUT_COLUMNS = [
    "Email", "Name", "Date", "StartTime", "EndTime",
    "BookedFlag", "Site", "Account", "Ticket", "MID",
]

# "header" resolves columns by name, "positional" uses LEGACY_COLUMN_POSITIONS
COLUMN_MODE = os.environ.get("COLUMN_MODE", "header").strip().lower()

LEGACY_COLUMN_POSITIONS = {
    "Date": 0,
    "Email": 1,
    "Name": 2,
    "Site": 3,
    "Account": 4,
    "StartTime": 5,
    "EndTime": 6,
    "BookedFlag": 7,
    "Ticket": 8,
    "MID": 9,
}

# Header aliases, compared after lowercasing and collapsing whitespace
COLUMN_ALIASES = {
    "Email": ["email", "e-mail", "email address"],
    "Name": ["name", "full name", "merchant name"],
    "Date": ["date", "booking date"],
    "StartTime": ["start time", "start", "starttime"],
    "EndTime": ["end time", "end", "endtime"],
    "BookedFlag": ["booked", "status", "booked flag", "booking status"],
    "Site": ["site", "location"],
    "Account": ["account", "account name"],
    "Ticket": ["ticket", "ticket #", "ticket number"],
    "MID": ["mid", "merchant id"],
}

# Fallback when no alias matches: first header containing this word
COLUMN_KEYWORDS = {
    "StartTime": "start",
    "EndTime": "end",
}

# IANA name for display formatting; empty means the runtime's local zone
VIEWER_TIMEZONE = os.environ.get("VIEWER_TIMEZONE", "").strip()

# =============================================================================
# VIEW CONFIGURATION
# =============================================================================

DEFAULT_VIEW_POLICY = os.environ.get("DEFAULT_VIEW_POLICY", "year").strip().lower()  # "year" or "month"
SINGLE_MONTH_BOOKED_ONLY = _env_flag("SINGLE_MONTH_BOOKED_ONLY")
DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "15"))
PAGE_SIZE_CHOICES = [10, 15, 25, 50, 100]
PAGE_WINDOW = 5
REFRESH_DEBOUNCE_SECONDS = float(os.environ.get("REFRESH_DEBOUNCE_SECONDS", "0.1"))
POLL_INTERVAL_SECONDS = float(os.environ.get("POLL_INTERVAL_SECONDS", "60"))

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = _env_flag("API_DEBUG")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.0.0"
