"""Runtime settings read from the environment.

    HTTPDOC_ENV_FILE     dotenv file loaded into every parse context
    HTTPDOC_TIMEOUT      transport timeout in seconds (default 30)
    HTTPDOC_VERIFY_TLS   set to 0/false/no to skip certificate checks
    HTTPDOC_LOG_LEVEL    default log level (default WARNING)

Command-line flags take precedence over these values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    env_file: str | None
    timeout: float
    verify_tls: bool
    log_level: str


def _timeout_from(raw: str | None) -> float:
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"HTTPDOC_TIMEOUT must be a number, got {raw!r}") from None


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        env_file=env.get("HTTPDOC_ENV_FILE") or None,
        timeout=_timeout_from(env.get("HTTPDOC_TIMEOUT")),
        verify_tls=(env.get("HTTPDOC_VERIFY_TLS") or "1").strip().lower() not in _FALSE_VALUES,
        log_level=(env.get("HTTPDOC_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper(),
    )
