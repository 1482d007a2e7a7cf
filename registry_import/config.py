"""
This module contains configuration settings for the registry import engine.
"""
import logging
import os

# Logging level
LOG_LEVEL = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

# Database paths
ADDRESS_DB_PATH = os.environ.get("ADDRESS_DB_PATH", "address_catalog.db")

# Registry file format
CSV_DELIMITER = os.environ.get("CSV_DELIMITER", ";")
PRIMARY_ENCODING = os.environ.get("PRIMARY_ENCODING", "utf-8-sig")
FALLBACK_ENCODING = os.environ.get("FALLBACK_ENCODING", "cp1250")

# Import summary settings
DUPLICATE_PREVIEW_LIMIT = int(os.environ.get("DUPLICATE_PREVIEW_LIMIT", 20))

# Manual correction suggestions
SUGGESTION_SCORE_CUTOFF = int(os.environ.get("SUGGESTION_SCORE_CUTOFF", 80))
SUGGESTION_LIMIT = int(os.environ.get("SUGGESTION_LIMIT", 5))

# Dashboard
DASHBOARD_SECRET_KEY = os.environ.get("DASHBOARD_SECRET_KEY", "change-me")
DASHBOARD_HOST = os.environ.get("DASHBOARD_HOST", "0.0.0.0")
DASHBOARD_PORT = int(os.environ.get("DASHBOARD_PORT", 8080))
