from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    cors_origins: tuple[str, ...]
    trusted_proxies: tuple[IPNetwork, ...] = ()

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_networks(name: str, raw: str) -> tuple[IPNetwork, ...]:
    networks = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            networks.append(ipaddress.ip_network(item, strict=False))
        except ValueError:
            raise ValueError(f"{name} entries must be IPs or CIDRs (got {item!r})") from None
    return tuple(networks)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    log_json = _parse_bool("LOG_JSON", _getenv("LOG_JSON", "false"))
    database_url = _getenv("DATABASE_URL", "") or None
    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    )
    trusted_proxies = _parse_networks("TRUSTED_PROXIES", _getenv("TRUSTED_PROXIES", ""))

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        cors_origins=cors_origins,
        trusted_proxies=trusted_proxies,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
