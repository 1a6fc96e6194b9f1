"""
Runtime settings for ACE Prep.
Values are read from the environment (a local .env is loaded first), falling back to the exam defaults.
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_BANK_PATH = PACKAGE_DIR / "data" / "questions.json"


def _env_int(name: str, default: int) -> int:
    """Read a positive integer setting; malformed values fall back to the default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive, using {default}")
        return default
    return value


# Exam composition
EXAM_SIZE = _env_int("ACE_EXAM_SIZE", 50)

# Timing
EXAM_DURATION_SECONDS = _env_int("ACE_EXAM_DURATION_SECONDS", 2 * 60 * 60)
TIME_WARNING_SECONDS = _env_int("ACE_TIME_WARNING_SECONDS", 15 * 60)

# Scoring (display only)
PASS_THRESHOLD = _env_int("ACE_PASS_THRESHOLD", 70)

# History
HISTORY_LIMIT = _env_int("ACE_HISTORY_LIMIT", 20)

# Practice
DEFAULT_PRACTICE_SIZE = _env_int("ACE_PRACTICE_SIZE", 20)

# Question bank
BANK_PATH = Path(os.getenv("ACE_BANK_PATH") or DEFAULT_BANK_PATH)

# Storage: "file" (default), "memory", "session" or "supabase"
STORAGE_BACKEND = (os.getenv("ACE_STORAGE") or "file").strip().lower()
STATE_FILE = Path(os.getenv("ACE_STATE_FILE") or ".aceprep_state.json")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_TABLE = os.getenv("ACE_SUPABASE_TABLE") or "kv_store"

LOG_LEVEL = (os.getenv("ACE_LOG_LEVEL") or "INFO").upper()


def configure_logging(level: str | None = None):
    """Set up root logging for scripts and the Streamlit app."""
    logging.basicConfig(level=level or LOG_LEVEL, format="%(levelname)s: %(message)s")
