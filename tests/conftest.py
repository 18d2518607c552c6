# tests/conftest.py
"""
Global test bootstrap
- Disables SlowAPI before the app is imported (decorators become no-ops)
- Points the app's own engine at in-memory SQLite and blanks the catalog key
- Pulls in the DB, HTTP and app fixtures
"""

from __future__ import annotations

import os

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the app/fixtures so it takes effect)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["TMDB_API_KEY"] = ""  # catalog unconfigured unless a test injects a client

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.db import *    # noqa: F401,F403,E402
from tests.fixtures.http import *  # noqa: F401,F403,E402
from tests.fixtures.app import *   # noqa: F401,F403,E402
