from __future__ import annotations

from ipaddress import ip_address, ip_network
from typing import Dict, Iterable

from starlette.requests import Request

from halrest.transports.http.config import HttpConfig


def _client_ip(request: Request) -> str | None:
    # Starlette places client in scope under "client": (host, port)
    client = request.client
    return client.host if client else None


def _ip_in_trusted(ip: str, trusted_cidrs: Iterable[str]) -> bool:
    try:
        candidate = ip_address(ip)
    except ValueError:
        # e.g. "testclient" from Starlette's TestClient
        return False
    for cidr in trusted_cidrs:
        if candidate in ip_network(cidr, strict=False):
            return True
    return False


def is_trusted_proxy(request: Request, cfg: HttpConfig) -> bool:
    if not cfg.trust_proxy_headers:
        return False
    client_ip = _client_ip(request)
    return bool(client_ip) and _ip_in_trusted(client_ip, cfg.trusted_proxies)


def _forwarded_pairs(header_value: str | None) -> Dict[str, str]:
    """Key/value pairs of the first ``Forwarded`` entry (RFC 7239)."""
    if not header_value:
        return {}
    first = header_value.split(",", 1)[0]
    pairs: Dict[str, str] = {}
    for part in first.split(";"):
        key, sep, value = part.strip().partition("=")
        if sep:
            pairs[key.strip().lower()] = value.strip().strip('"')
    return pairs


def forwarded_scheme(request: Request, cfg: HttpConfig) -> str:
    """Scheme as seen by the client; proxy headers honoured from trusted peers only."""
    if request.url.scheme.lower() == "https":
        return "https"

    if not is_trusted_proxy(request, cfg):
        return request.url.scheme.lower()

    proto = _forwarded_pairs(request.headers.get("forwarded")).get("proto")
    if proto and proto.lower() in {"http", "https"}:
        return proto.lower()

    xf_proto = request.headers.get("x-forwarded-proto")
    if xf_proto:
        value = xf_proto.split(",")[0].strip().lower()
        if value in {"http", "https"}:
            return value

    return request.url.scheme.lower()


def forwarded_host(request: Request, cfg: HttpConfig) -> str:
    """Host[:port] as seen by the client."""
    if is_trusted_proxy(request, cfg):
        host = _forwarded_pairs(request.headers.get("forwarded")).get("host")
        if host:
            return host
        xf_host = request.headers.get("x-forwarded-host")
        if xf_host and xf_host.split(",")[0].strip():
            return xf_host.split(",")[0].strip()

    return request.headers.get("host") or request.url.netloc


__all__ = ["is_trusted_proxy", "forwarded_scheme", "forwarded_host"]
