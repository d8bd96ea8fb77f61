"""
Shop planner configuration.

Settings come from environment variables. Outside of pytest a .env file is
loaded into os.environ first (backend/.env, the repository root or the
working directory, first match wins).
"""

import os
import pathlib
import sys
from typing import Optional

from dotenv import load_dotenv

_BACKEND_DIR = pathlib.Path(__file__).resolve().parent.parent.parent


def _running_under_pytest() -> bool:
    # Tests set their own environment before importing the application
    return "PYTEST_VERSION" in os.environ or "pytest" in sys.modules


def _find_env_file() -> Optional[pathlib.Path]:
    for candidate in (
        _BACKEND_DIR / ".env",
        _BACKEND_DIR.parent / ".env",
        pathlib.Path.cwd() / ".env",
    ):
        if candidate.exists():
            return candidate
    return None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


if not _running_under_pytest():
    env_file = _find_env_file()
    if env_file is not None:
        load_dotenv(env_file)


# Server
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost/shop_planner_dev")
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Planner
ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Europe/Vilnius")  # IANA zone of every board computation
PLANNER_API_URL = os.getenv("PLANNER_API_URL", f"{API_BASE_URL}/api/planner")
PLANNER_HTTP_TIMEOUT_SECONDS = _float_env("PLANNER_HTTP_TIMEOUT_SECONDS", 10.0)
