"""
Configuration module for the Viva backend.
Centralizes environment variables, logging setup, and constants.
"""
import os
import logging
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()

# ============================================================================
# Environment Configuration
# ============================================================================

# Environment identifier (production, staging, development, etc.)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ============================================================================
# Admin Database Configuration
# ============================================================================

# Optional: secondary store for viva results. The service runs without it.
ADMIN_DATABASE_URL = os.environ.get("ADMIN_DATABASE_URL")

# ============================================================================
# VAPI Configuration
# ============================================================================

# Shared secret used to sign webhook bodies (HMAC-SHA256, hex)
VAPI_WEBHOOK_SECRET = os.environ.get("VAPI_WEBHOOK_SECRET", "")

# Private API key for the results backfill (GET /call). Accepts "NAME=key" too.
VAPI_PRIVATE_KEY = os.environ.get("VAPI_PRIVATE_KEY", "")
VAPI_API_BASE = os.environ.get("VAPI_API_BASE", "https://api.vapi.ai")

# ============================================================================
# Google Sheets Configuration
# ============================================================================

# Spreadsheet ID or the full spreadsheet URL
GOOGLE_SHEET_ID = os.environ.get("GOOGLE_SHEET_ID", "")
GOOGLE_CLIENT_EMAIL = (
    os.environ.get("GOOGLE_CLIENT_EMAIL")
    or os.environ.get("GOOGLE_SERVICE_ACCOUNT_EMAIL", "")
)
GOOGLE_PRIVATE_KEY = os.environ.get("GOOGLE_PRIVATE_KEY", "")
GOOGLE_SERVICE_ACCOUNT_FILE = os.environ.get("GOOGLE_SERVICE_ACCOUNT_FILE", "")

# ============================================================================
# Evaluation (Gemini) Configuration
# ============================================================================

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
USE_LLM_EVALUATION = os.environ.get("USE_LLM_EVALUATION", "true").lower() == "true"

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# Application Constants
# ============================================================================

SHEET_NAME = "Viva Results"

# Timezone used for the human-readable "Date & Time" column
DISPLAY_TIMEZONE = os.environ.get("DISPLAY_TIMEZONE", "Asia/Kolkata")

SHEET_HEADERS = [
    "Date & Time",
    "Student Name",
    "Email",
    "Subject",
    "Topics",
    "Questions Answered",
    "Score (out of 100)",
    "Overall Feedback",
    "Transcript",
    "Recording",
    "Evaluation (JSON)",
]

# Stored transcripts are cut at this length
MAX_TRANSCRIPT_CHARS = 50000

# In-request retry around result persistence
SAVE_MAX_ATTEMPTS = 2
SAVE_RETRY_DELAY_SECONDS = 1.0

MAX_MARKS_PER_QUESTION = 3

# Events that carry the final call data
TERMINAL_MESSAGE_TYPES = {"end-of-call-report"}
TERMINAL_CALL_STATUSES = {"ended", "completed"}

# Raw payloads are truncated to this many characters in debug logs
PAYLOAD_LOG_CHARS = 2000
