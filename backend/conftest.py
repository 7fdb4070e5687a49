# backend/conftest.py
"""
Root pytest configuration.

Test environment variables must be in place before ``activityhub`` is first
imported: settings are read and the default engine is built at import time.
"""

import os

os.environ.setdefault("CI", "true")
os.environ.setdefault("SITE_MODE", "test")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULE_LOCK_BACKEND"] = "memory"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ.setdefault("BUSINESS_TIMEZONE", "UTC")
