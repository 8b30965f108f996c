"""Configuration management for SmartSpend.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.  A ``.env`` file in the
project root is honoured for local development.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Base project root - assumes this file is in smartspend/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

load_dotenv(_PROJECT_ROOT / ".env")

# Data directories
DATA_DIR = Path(os.getenv("SMARTSPEND_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORTS_DIR = DATA_DIR / "exports"

# Database
DB_PATH = Path(
    os.getenv("SMARTSPEND_DB_PATH", DATA_DIR / "smartspend.db")
).resolve()

# Logging
LOG_LEVEL = os.getenv("SMARTSPEND_LOG_LEVEL", "INFO")

# Language model used for free-text expense entry
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("SMARTSPEND_OPENAI_MODEL", "gpt-4o-mini")

# Display
CURRENCY_CODE = "INR"
CURRENCY_SYMBOL = "₹"
EXPORT_PREFIX = "smartspend-expenses"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)
