"""Runtime configuration for the taskdesk console.

Values come from the environment (TASKDESK_*) and are read at call time so
tests and long-running sessions can change them without re-importing.
"""

import os

DEFAULT_API_BASE_URL = "https://task-manager.codionslab.com/api/v1"
DEFAULT_REQUEST_TIMEOUT = 30.0


def api_base_url() -> str:
    """Return the remote API root, without a trailing slash."""
    raw = (os.environ.get("TASKDESK_API_BASE_URL") or "").strip()
    return (raw or DEFAULT_API_BASE_URL).rstrip("/")


def request_timeout() -> float:
    """Total per-request timeout in seconds. Invalid values fall back to the default."""
    raw = (os.environ.get("TASKDESK_REQUEST_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT


def session_token() -> str | None:
    return (os.environ.get("TASKDESK_TOKEN") or "").strip() or None


def session_role() -> str | None:
    return (os.environ.get("TASKDESK_ROLE") or "").strip() or None
