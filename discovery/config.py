"""
Runtime configuration.

Every value is read from the environment once, at import time. Tests override
them by setting environment variables before importing the package.
"""

import os


def _csv_env(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(term.strip().lower() for term in raw.split(",") if term.strip())


# Persistence
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./discovery.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Moderation
MODERATION_DENYLIST = _csv_env("MODERATION_DENYLIST", "spam,fake,scam")
MODERATION_SERVICE_URL = os.getenv("MODERATION_SERVICE_URL", "")
MODERATION_TIMEOUT_SECONDS = float(os.getenv("MODERATION_TIMEOUT_SECONDS", "5"))

# Search
CATEGORY_MATCH_MODE = os.getenv("CATEGORY_MATCH_MODE", "substring")
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))

# Aggregates
RECOMPUTE_ATTEMPTS = int(os.getenv("RECOMPUTE_ATTEMPTS", "2"))
