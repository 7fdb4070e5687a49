#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Creates missing tables on the configured database, then serves the API with
auto-reload. Production runs migrations and a process manager instead.
"""
import logging

import uvicorn

from activityhub.database import init_db

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    uvicorn.run("activityhub.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
