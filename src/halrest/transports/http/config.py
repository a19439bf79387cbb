from __future__ import annotations

import os
from dataclasses import dataclass
from ipaddress import ip_network
from typing import List, Tuple

from dotenv import load_dotenv

from halrest.core.config import _get_bool_env, _split_csv_env

_SCHEMES = {"http", "https"}


def _idna_lower(host: str) -> str:
    """Lowercase + IDNA encode a host[:port] value; raise on failure."""
    host = host.strip().rstrip(".")
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit() and not name.endswith("]"):
        return f"{name.encode('idna').decode('ascii').lower()}:{port}"
    return host.encode("idna").decode("ascii").lower()


@dataclass(frozen=True)
class HttpConfig:
    """Configuration for the Starlette integration."""

    server_scheme: str | None = None
    server_host: str | None = None
    trust_proxy_headers: bool = False
    trusted_proxies: Tuple[str, ...] = ()
    page_param: str = "page"
    page_size_param: str | None = None

    def __post_init__(self) -> None:
        if self.server_scheme is not None and self.server_scheme not in _SCHEMES:
            raise ValueError("HAL_SERVER_SCHEME must be http or https")
        if self.trust_proxy_headers and not self.trusted_proxies:
            raise ValueError(
                "HAL_TRUSTED_PROXIES must be set when HAL_TRUST_PROXY_HEADERS is true"
            )
        for item in self.trusted_proxies:
            # Validate format early
            ip_network(item, strict=False)

    @classmethod
    def from_env(cls, *, use_dotenv: bool = True) -> "HttpConfig":
        if use_dotenv:
            load_dotenv()

        scheme = os.getenv("HAL_SERVER_SCHEME", "").strip().lower() or None
        host = os.getenv("HAL_SERVER_HOST", "").strip()
        trusted_proxies: List[str] = _split_csv_env("HAL_TRUSTED_PROXIES")

        return cls(
            server_scheme=scheme,
            server_host=_idna_lower(host) if host else None,
            trust_proxy_headers=_get_bool_env("HAL_TRUST_PROXY_HEADERS", False),
            trusted_proxies=tuple(trusted_proxies),
            page_param=os.getenv("HAL_PAGE_PARAM", "").strip() or cls.page_param,
            page_size_param=os.getenv("HAL_PAGE_SIZE_PARAM", "").strip() or None,
        )


__all__ = ["HttpConfig"]
