"""
Pytest configuration and shared fixtures.
"""

import importlib
import os
import sys

import pytest


@pytest.fixture(autouse=True, scope="function")
def reset_auth_module():
    """
    Reset auth module state before each test.

    This ensures tests run with API_AUTH_ENABLED=false by default,
    unless the test explicitly sets it otherwise.
    """
    original_auth_enabled = os.environ.get("API_AUTH_ENABLED")
    original_api_key = os.environ.get("API_KEY")

    os.environ["API_AUTH_ENABLED"] = "false"

    yield

    if original_auth_enabled is not None:
        os.environ["API_AUTH_ENABLED"] = original_auth_enabled
    elif "API_AUTH_ENABLED" in os.environ:
        del os.environ["API_AUTH_ENABLED"]

    if original_api_key is not None:
        os.environ["API_KEY"] = original_api_key
    elif "API_KEY" in os.environ:
        del os.environ["API_KEY"]

    # Reload auth, then the app that captured its flag at import time
    if "src.api.dependencies.auth" in sys.modules:
        importlib.reload(sys.modules["src.api.dependencies.auth"])
    if "src.api.main" in sys.modules:
        importlib.reload(sys.modules["src.api.main"])


@pytest.fixture(autouse=True)
def reset_job_store_singleton():
    """Drop the API's job store singleton after each test."""
    yield

    from src.api._store_state import shutdown_job_store

    shutdown_job_store()
