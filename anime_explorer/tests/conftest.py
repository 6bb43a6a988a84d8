"""
Pytest configuration - runs before any test imports.

This file is automatically loaded by pytest. We use it to set up
environment variables that must be present before importing app modules.

Note: Tests use in-memory SQLite databases (created in each test file),
not the production PostgreSQL database.
"""
import os

# Settings are read once at import time, so these must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
