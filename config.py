"""Global configuration values."""

import os
from pathlib import Path

# LLM provider used for chat and insight extraction ("openai" or "gemini")
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "openai").lower()

# Default chat model (OpenAI)
CHAT_MODEL = os.environ.get("CHAT_MODEL", "gpt-4o-mini")

# Default Gemini model (can be overridden via env)
DEFAULT_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# Scoring policy for connection suggestions ("baseline" or "promotional")
MATCH_MODE = os.environ.get("MATCH_MODE", "baseline").lower()

# Merge seed profiles into suggestions when fewer real candidates exist
MIN_CANDIDATE_POOL = int(os.environ.get("MIN_CANDIDATE_POOL", "0"))
USE_SEED_PROFILES = os.environ.get("USE_SEED_PROFILES", "false").lower() in ("1", "true", "yes")

DEFAULT_MATCH_LIMIT = int(os.environ.get("DEFAULT_MATCH_LIMIT", "5"))

# Lifetime of issued API access tokens
TOKEN_TTL_SECONDS = int(os.environ.get("TOKEN_TTL_SECONDS", "3600"))

# OAuth client allowed to exchange for tokens at /oauth/token
OAUTH_CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "")
OAUTH_CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET", "")

# Local data directory (profile snapshots)
DATA_DIR = Path(os.environ.get("DATA_DIR", "./data"))
PERSIST_PROFILES = os.environ.get("PERSIST_PROFILES", "false").lower() in ("1", "true", "yes")

APP_URL = os.environ.get("APP_URL", "http://localhost:5000")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

SECRET_KEY = os.environ.get("SECRET_KEY", "synaps-dev-secret")
