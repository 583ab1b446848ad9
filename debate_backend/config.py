"""Shared environment configuration constants for the debate backend."""
import os

# --- API Keys ---
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")

# --- AI check ---
AI_CHECK_MODEL = os.getenv("AI_CHECK_MODEL", "claude-3-7-sonnet-20250219")
AI_CHECK_MAX_TOKENS = int(os.getenv("AI_CHECK_MAX_TOKENS", "2000"))
AI_CHECK_TIMEOUT_SECONDS = float(os.getenv("AI_CHECK_TIMEOUT_SECONDS", "60"))
MAX_DEBUG_LOGS = int(os.getenv("MAX_DEBUG_LOGS", "20"))
MAX_OPEN_REVIEWS = int(os.getenv("MAX_OPEN_REVIEWS", "100"))
PROMPT_OVERRIDES_FILE = os.getenv("PROMPT_OVERRIDES_FILE")

# --- Debate tree ---
OBJECTION_CHAR_LIMIT = int(os.getenv("OBJECTION_CHAR_LIMIT", "300"))

# --- Storage ---
DEBATE_STORE = os.getenv("DEBATE_STORE", "sql").strip().lower()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./debates.db")

# --- HTTP ---
DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:5174",
]
ALLOWED_ORIGINS = (
    [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()]
    or DEFAULT_ALLOWED_ORIGINS
)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
