"""
Configuration, constants, and logging setup.
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# --- LOAD ENV ---
load_dotenv()

# --- LOGGING ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("metawatch")


def log_event(level: int, message: str, **data):
    """Lightweight structured logging helper."""
    try:
        serialized = " | ".join(f"{k}={v}" for k, v in data.items())
        logger.log(level, f"{message}{' | ' + serialized if serialized else ''}")
    except Exception:
        logger.log(level, message)


# --- PATHS ---
VAULT_DIR = Path(os.getenv("METAWATCH_VAULT_DIR", "vault")).expanduser()
SETTINGS_FILE = Path(
    os.getenv("METAWATCH_SETTINGS_FILE", str(VAULT_DIR / ".metawatch" / "settings.json"))
).expanduser()

# --- CONSTANTS ---
PORT = int(os.getenv("PORT", 5060))
ACTION_TIMEOUT = float(os.getenv("METAWATCH_ACTION_TIMEOUT", 60))
WATCH_ENABLED = os.getenv("METAWATCH_WATCH", "1").lower() not in ("0", "false", "no")
MARKDOWN_SUFFIX = ".md"
MAX_RECENT_NOTICES = 50
MAX_PROCESSING_RESULTS = 100

# --- DEFAULT SETTINGS ---
DEFAULT_SETTINGS = {
    "header_rules": [
        {"watched_field": "exampleField", "header": "## Start Date", "active": True},
    ],
    "action_rules": [
        {"watched_field": "exampleField", "action": "", "active": True},
    ],
    "shell_actions": [],
}
