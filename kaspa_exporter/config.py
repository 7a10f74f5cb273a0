from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class Settings:
    """Exporter settings; every field can be overridden from the environment."""

    port: int = 9110
    listen_host: str = "0.0.0.0"
    kaspa_host: str = "localhost"
    kaspa_grpc_port: int = 16110
    kaspa_json_rpc_port: int = 18110
    kaspa_rpc_path: str = "/"
    cache_seconds: float = 30.0
    call_timeout: float = 3.0
    connect_timeout: float = 5.0
    probe_timeout: float = 2.0
    log_level: str = "INFO"


# (environment variable, attribute, converter)
ENV_VARS = (
    ("PORT", "port", int),
    ("LISTEN_HOST", "listen_host", str),
    ("KASPA_HOST", "kaspa_host", str),
    ("KASPA_GRPC_PORT", "kaspa_grpc_port", int),
    ("KASPA_JSON_RPC_PORT", "kaspa_json_rpc_port", int),
    ("KASPA_RPC_PATH", "kaspa_rpc_path", str),
    ("CACHE_SECONDS", "cache_seconds", float),
    ("CALL_TIMEOUT", "call_timeout", float),
    ("CONNECT_TIMEOUT", "connect_timeout", float),
    ("PROBE_TIMEOUT", "probe_timeout", float),
    ("LOG_LEVEL", "log_level", str),
)


def load_settings(env_path: str | None = ".env", environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from an optional .env file and the process environment."""
    if env_path and Path(env_path).exists():
        load_dotenv(env_path)
    if environ is None:
        environ = dict(os.environ)

    settings = Settings()
    for var, attr, convert in ENV_VARS:
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            setattr(settings, attr, convert(raw))
        except ValueError as exc:
            raise ValueError(f"Invalid value for {var}: {raw!r}") from exc
    return settings


__all__ = ["Settings", "ENV_VARS", "load_settings"]
