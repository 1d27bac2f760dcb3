"""
app.py - re-exports the application for hosts that expect `app:app`.

The application lives in healthdash/main.py:
- healthdash/models/ - Pydantic request models
- healthdash/routes/ - API endpoints organized by domain
- healthdash/services/ - Business logic
- healthdash/database/ - Tables, connection, retries and seed data
- healthdash/utils/ - Validation, time, upload and response helpers

Prefer importing from healthdash.main directly:
    from healthdash.main import app
"""

from healthdash.main import app

__all__ = ['app']
