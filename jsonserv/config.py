from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    max_body_size: int = 0
    log_requests: bool = False
    gzip: bool = True


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_config() -> ServerConfig:
    return ServerConfig(
        host=os.environ.get("JSONSERV_HOST", "0.0.0.0"),
        port=_env_int("JSONSERV_PORT", 8080),
        debug=_env_flag("JSONSERV_DEBUG", False),
        max_body_size=_env_int("JSONSERV_MAX_BODY_SIZE", 0),
        log_requests=_env_flag("JSONSERV_LOG_REQUESTS", False),
        gzip=_env_flag("JSONSERV_GZIP", True),
    )


__all__ = ["ServerConfig", "load_config"]
