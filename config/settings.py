"""
Configuration settings for the Wonderland Account Assistant.

Environment variables:
    GOOGLE_CLOUD_PROJECT: GCP project ID (Vertex AI Gemini)
    GOOGLE_APPLICATION_CREDENTIALS: Path to service account key
    AIRTABLE_API_KEY: Airtable personal access token
    AIRTABLE_BASE_ID: Airtable base holding the Accounts table
"""

import logging
import os
import warnings
from pathlib import Path

_settings_logger = logging.getLogger(__name__)


# =============================================================================
# Streamlit Secrets helper (for Streamlit Community Cloud deployment)
# =============================================================================

def _get_secret(key: str, default: str = "") -> str:
    """Read a config value from Streamlit secrets (if available) or env var."""
    try:
        import streamlit as st
        if key in st.secrets:
            return str(st.secrets[key])
    except Exception:
        pass
    return os.getenv(key, default)


def _get_int(key: str, default: int) -> int:
    raw = _get_secret(key, "")
    if not raw:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        _settings_logger.warning("Invalid integer for %s: %r, using %d", key, raw, default)
        return default


# =============================================================================
# Version
# =============================================================================

VERSION = "1.0.0"

# =============================================================================
# Product / Domain Configuration
# =============================================================================

PRODUCT_NAME = _get_secret("PRODUCT_NAME", "Wonderland")

# =============================================================================
# Google Cloud Configuration
# =============================================================================

PROJECT_ID = _get_secret("GOOGLE_CLOUD_PROJECT", "")
if not PROJECT_ID:
    warnings.warn(
        "GOOGLE_CLOUD_PROJECT is not set. Set it in your environment or Streamlit secrets. "
        "All Gemini calls will fail until this is configured.",
        stacklevel=1,
    )

VERTEX_LOCATION = _get_secret("VERTEX_LOCATION", "us-central1")

# NOTE: default is empty string, not a relative filename, so a stray key file
# in the working directory is never picked up by accident.
KEY_PATH = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")

# =============================================================================
# Models
# =============================================================================

MODEL_PRO = _get_secret("MODEL_PRO", "gemini-2.5-pro")
MODEL_FLASH = _get_secret("MODEL_FLASH", "gemini-2.5-flash")

# Role model assignments
AGENT_MODELS = {
    "intent_classifier": MODEL_FLASH,
    "field_extractor": MODEL_FLASH,
    "assistant": MODEL_PRO,
    "account_actions": MODEL_PRO,
}

AGENT_TEMPERATURES = {
    "intent_classifier": 0.0,
    "field_extractor": 0.0,
    "assistant": 0.3,
    "account_actions": 0.1,
}

# =============================================================================
# Thinking Budget Configuration (gemini-2.5-pro/flash thinking control)
# =============================================================================
# Gemini 2.5 counts thinking tokens against max_output_tokens.
# 0 = disable thinking (flash models only)
# 128 = minimum for gemini-2.5-pro (cannot disable thinking)
# None = model default (no ThinkingConfig set)

THINKING_BUDGET_OFF = 0
THINKING_BUDGET_LIGHT = 2048   # Tool selection

AGENT_THINKING_BUDGETS = {
    "intent_classifier": THINKING_BUDGET_OFF,
    "field_extractor": THINKING_BUDGET_OFF,
    "assistant": None,
    "account_actions": THINKING_BUDGET_LIGHT,
}

# =============================================================================
# Record Store (Airtable)
# =============================================================================

AIRTABLE_API_KEY = _get_secret("AIRTABLE_API_KEY", "")
AIRTABLE_BASE_ID = _get_secret("AIRTABLE_BASE_ID", "")
AIRTABLE_API_URL = _get_secret("AIRTABLE_API_URL", "https://api.airtable.com/v0").rstrip("/")
ACCOUNTS_TABLE = _get_secret("AIRTABLE_ACCOUNTS_TABLE", "Accounts")
RECORD_STORE_TIMEOUT = _get_int("RECORD_STORE_TIMEOUT", 20)

# =============================================================================
# Conversation behaviour
# =============================================================================

# Auto-generated descriptions are padded to this length for downstream consumers
DESCRIPTION_MIN_LENGTH = _get_int("DESCRIPTION_MIN_LENGTH", 600)

# Name prompts before giving up on a creation request
MAX_NAME_PROMPTS = _get_int("MAX_NAME_PROMPTS", 2)

# History window sent to the intent classifier (messages, not turns)
INTENT_HISTORY_WINDOW = _get_int("INTENT_HISTORY_WINDOW", 6)

# =============================================================================
# Paths
# =============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_FOLDER = BASE_DIR / "data"
SESSIONS_FOLDER = Path(_get_secret("SESSIONS_FOLDER", str(DATA_FOLDER / "sessions")))


def ensure_data_dirs() -> None:
    """Create all required data directories. Call this at application startup."""
    for _folder in (DATA_FOLDER, SESSIONS_FOLDER):
        _folder.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Helper Functions
# =============================================================================

def get_credentials():
    """Get Google Cloud credentials.

    Priority:
    1. Streamlit secrets (gcp_service_account) → from_service_account_info()
    2. Key file on disk (local dev) → from_service_account_file()
    3. Application Default Credentials (ADC) → google.auth.default()
    """
    try:
        import streamlit as st
        if "gcp_service_account" in st.secrets:
            from google.oauth2 import service_account
            sa_info = dict(st.secrets["gcp_service_account"])
            return service_account.Credentials.from_service_account_info(sa_info)
    except Exception:
        pass

    if KEY_PATH and os.path.exists(KEY_PATH):
        from google.oauth2 import service_account
        return service_account.Credentials.from_service_account_file(KEY_PATH)

    import google.auth
    credentials, _ = google.auth.default()
    return credentials


def setup_environment():
    """Set up environment variables for Vertex AI and create data directories."""
    os.environ["GOOGLE_CLOUD_PROJECT"] = PROJECT_ID
    os.environ["GOOGLE_CLOUD_LOCATION"] = VERTEX_LOCATION
    os.environ["GOOGLE_GENAI_USE_VERTEXAI"] = "true"

    if KEY_PATH and os.path.exists(KEY_PATH):
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = KEY_PATH

    ensure_data_dirs()


def validate_config() -> dict[str, bool]:
    """Validate configuration and return status dict."""
    has_credentials = bool(KEY_PATH and os.path.exists(KEY_PATH))
    try:
        import streamlit as st
        if "gcp_service_account" in st.secrets:
            has_credentials = True
    except Exception:
        pass

    status = {
        "project_id": bool(PROJECT_ID),
        "credentials": has_credentials,
        "airtable_api_key": bool(AIRTABLE_API_KEY),
        "airtable_base": bool(AIRTABLE_BASE_ID),
    }
    # ADC can stand in for a key file, so credentials are not required
    status["all_ok"] = all(v for k, v in status.items() if k != "credentials")
    return status
