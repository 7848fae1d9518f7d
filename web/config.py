"""Centralized configuration for the catalog web app."""

import os
from pathlib import Path
from typing import Dict

from catalog.config import DB_PATH  # noqa: F401  (same database as the CLI)

# Determine project root (parent of 'web' directory)
_THIS_DIR = Path(__file__).parent
_PROJECT_ROOT = _THIS_DIR.parent

# Flask app settings (allow env overrides; default debug off for safety)
# Render sets PORT dynamically; fall back to FLASK_PORT or 5000 for local.
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# Routes
URL_PREFIX = os.getenv("URL_PREFIX", "/api/products")
# Write and slug routes are declared but only mounted when enabled
MOUNT_OPTIONAL_ROUTES = os.getenv("MOUNT_OPTIONAL_ROUTES", "False").lower() == "true"

# Bearer tokens accepted by protected routes: "token1=user1,token2=user2".
# Empty disables auth.
API_TOKENS = os.getenv("API_TOKENS", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", str(_PROJECT_ROOT / "logs"))
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "True").lower() == "true"


def parse_api_tokens(raw: str) -> Dict[str, str]:
    """Parse ``token=user`` pairs into a token -> user id mapping."""
    tokens: Dict[str, str] = {}
    for pair in raw.split(","):
        token, sep, user_id = pair.strip().partition("=")
        if token and sep and user_id:
            tokens[token.strip()] = user_id.strip()
    return tokens
