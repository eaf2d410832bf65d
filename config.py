"""Global configuration values."""

import os
from pathlib import Path

# LLM provider used for keyword extraction ("gemini" or "openai")
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "gemini").lower()

# Default Gemini model (can be overridden via env)
DEFAULT_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# Model used when LLM_PROVIDER=openai
OPENAI_KEYWORD_MODEL = os.environ.get("OPENAI_KEYWORD_MODEL", "gpt-4o-mini")

# Seconds between successive keyword extraction calls
KEYWORD_CALL_DELAY = float(os.environ.get("KEYWORD_CALL_DELAY", "0.1"))

# Upper bound on keywords kept per profile
MAX_KEYWORDS = int(os.environ.get("MAX_KEYWORDS", "8"))

# An item is "sold out" once recommended this many times in one batch
SOLD_OUT_CAP = 3

# Ranking weights
KEYWORD_WEIGHT = float(os.environ.get("KEYWORD_WEIGHT", "2.0"))
ARCHETYPE_WEIGHT = float(os.environ.get("ARCHETYPE_WEIGHT", "1.0"))

# Data directory: ./data locally, a mounted disk in production
DATA_DIR = Path(os.environ.get("DATA_DIR", Path(__file__).resolve().parent / "data"))

# Catalog sheet served by the single-profile endpoint
CATALOG_PATH = Path(os.environ.get("CATALOG_PATH", DATA_DIR / "catalog.csv"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

MAX_UPLOAD_MB = int(os.environ.get("MAX_UPLOAD_MB", "16"))
