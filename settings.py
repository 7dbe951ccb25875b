import os
import re
from typing import List, Union


OriginRule = Union[str, re.Pattern]


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


def _allowed_origins() -> List[OriginRule]:
    raw = os.environ.get("ALLOWED_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:8080",
        "http://127.0.0.1:8080",
        re.compile(r"https://.*\.netlify\.app"),
        re.compile(r"https://.*\.onrender\.com"),
        re.compile(r"https://.*\.up\.railway\.app"),
    ]


HOST: str = os.environ.get("HOST", "0.0.0.0")
PORT: int = _env_int("PORT", 3000)
ALLOWED_ORIGINS: List[OriginRule] = _allowed_origins()
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

# keepalive, seconds
PING_INTERVAL: float = _env_float("PING_INTERVAL", 25.0)
PING_TIMEOUT: float = _env_float("PING_TIMEOUT", 60.0)
MAX_MESSAGE_SIZE: int = _env_int("MAX_MESSAGE_SIZE", 1_000_000)

RATE_LIMIT_WINDOW: float = _env_float("RATE_LIMIT_WINDOW", 1.0)
RATE_LIMIT_MAX: int = _env_int("RATE_LIMIT_MAX", 10)

SHUTDOWN_GRACE: float = _env_float("SHUTDOWN_GRACE", 1.0)
