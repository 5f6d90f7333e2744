"""
Centralized configuration for FlagSync.
All settings come from environment variables for 12-factor deployment.
"""

import os


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    return max(minimum, int(os.environ.get(name, str(default))))


def _env_float(name: str, default: float) -> float:
    return max(0.0, float(os.environ.get(name, str(default))))


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------
BACKEND_URL = os.environ.get("BACKEND_URL", "http://localhost:8080/api/")
BACKEND_TOKEN = os.environ.get("BACKEND_TOKEN", "").strip()
HTTP_TIMEOUT_SECONDS = _env_float("HTTP_TIMEOUT_SECONDS", 15.0)
MAX_CONCURRENT_REQUESTS = _env_int("MAX_CONCURRENT_REQUESTS", 8, minimum=1)

# ---------------------------------------------------------------------------
# Propagation-delay budgets
# ---------------------------------------------------------------------------
# Re-reads of the global definition list after a create whose response did
# not carry a usable definition.
FIELD_CREATE_VERIFY_ATTEMPTS = _env_int("FIELD_CREATE_VERIFY_ATTEMPTS", 3, minimum=1)
FIELD_CREATE_VERIFY_DELAY_SECONDS = _env_float("FIELD_CREATE_VERIFY_DELAY_SECONDS", 1.0)

# Lookups of a project's Flag attachment before giving up.
ATTACHMENT_LOOKUP_ATTEMPTS = _env_int("ATTACHMENT_LOOKUP_ATTEMPTS", 5, minimum=1)
ATTACHMENT_LOOKUP_DELAY_SECONDS = _env_float("ATTACHMENT_LOOKUP_DELAY_SECONDS", 0.5)

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
PORT = int(os.environ.get("PORT", "8001"))
CORS_ORIGINS = [
    s.strip()
    for s in os.environ.get("CORS_ORIGINS", "*").split(",")
    if s.strip()
]
