from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field

from accounts_reports.core.pagination import DEFAULT_PAGE_SIZE

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
DEFAULT_CLEANUP_TIMEOUT = 1.5
# Fallback cleanup delay while an external print command reads the file.
COMMAND_CLEANUP_TIMEOUT = 120.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(slots=True)
class ReportSettings:
    source_url: str | None = None
    source_token: str | None = None
    source_timeout: float = 30.0
    page_size: int = DEFAULT_PAGE_SIZE
    print_command: list[str] = field(default_factory=list)
    print_settle_delay: float = 0.25
    print_cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str | None = None

    @classmethod
    def from_env(cls) -> "ReportSettings":
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
        command = os.getenv("REPORTS_PRINT_COMMAND", "").strip()
        return cls(
            source_url=os.getenv("REPORTS_SOURCE_URL") or None,
            source_token=os.getenv("REPORTS_SOURCE_TOKEN") or None,
            source_timeout=_float_env("REPORTS_SOURCE_TIMEOUT", 30.0),
            page_size=_int_env("REPORTS_PAGE_SIZE", DEFAULT_PAGE_SIZE),
            print_command=shlex.split(command) if command else [],
            print_settle_delay=_float_env("REPORTS_PRINT_SETTLE_DELAY", 0.25),
            print_cleanup_timeout=_float_env(
                "REPORTS_PRINT_CLEANUP_TIMEOUT",
                COMMAND_CLEANUP_TIMEOUT if command else DEFAULT_CLEANUP_TIMEOUT,
            ),
            cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
            log_level=os.getenv("REPORTS_LOG_LEVEL") or None,
        )
