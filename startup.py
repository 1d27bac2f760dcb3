#!/usr/bin/env python3
"""Startup script - reads PORT/HOST from environment and runs uvicorn."""
import logging
import os
import sys

logger = logging.getLogger("healthdash.startup")


def main():
    # Read PORT from environment, default to 5004
    port = int(os.environ.get("PORT", "5004"))
    host = os.environ.get("HOST", "0.0.0.0")

    # Import uvicorn
    import uvicorn

    # Ensure current directory is in Python path
    current_dir = os.path.dirname(os.path.abspath(__file__))
    if current_dir not in sys.path:
        sys.path.insert(0, current_dir)

    from healthdash.main import app as fastapi_app
    logger.info("Starting Health Dashboard backend on %s:%d", host, port)
    uvicorn.run(fastapi_app, host=host, port=port)


if __name__ == "__main__":
    main()
