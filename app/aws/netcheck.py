"""Proxy egress check.

Asks an IP-geolocation API which address a request leaves from when it is
sent through a key's proxy, so the operator can confirm that AWS calls made
with that key really go out through the intended network.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import httpx

from app.aws.clients import normalize_proxy_url
from app.core.config import settings
from app.core.exceptions import ProxyCheckError

logger = logging.getLogger(__name__)


@dataclass
class ProxyExitInfo:
    ip: str
    as_text: str = "N/A"
    city: str = ""
    region: str = ""
    country: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_http_client(
    proxy: str,
    timeout: float,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Client whose single transport carries the proxy; env proxies are ignored."""
    return httpx.Client(
        timeout=timeout,
        transport=transport or httpx.HTTPTransport(proxy=proxy or None),
        trust_env=False,
    )


def check_proxy_exit_ip(
    proxy: Optional[str],
    url: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ProxyExitInfo:
    """Return the exit IP and owning network (``org``, usually "AS<n> <name>")."""
    proxy_url = normalize_proxy_url(proxy)
    url = url or settings.ipinfo_url
    timeout = timeout if timeout is not None else settings.ipinfo_timeout

    try:
        with _build_http_client(proxy_url, timeout, transport) as client:
            response = client.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise ProxyCheckError(f"ipinfo request error: {e}", details={"proxy": bool(proxy_url)}) from e

    if response.status_code != 200:
        raise ProxyCheckError(f"ipinfo http status: {response.status_code}")

    try:
        payload = response.json()
    except ValueError as e:
        raise ProxyCheckError(f"ipinfo decode error: {e}") from e
    if not isinstance(payload, dict):
        raise ProxyCheckError("ipinfo decode error: unexpected payload")

    ip = str(payload.get("ip") or "").strip()
    if not ip:
        raise ProxyCheckError("ipinfo returned empty ip")

    info = ProxyExitInfo(
        ip=ip,
        as_text=str(payload.get("org") or "").strip() or "N/A",
        city=str(payload.get("city") or "").strip(),
        region=str(payload.get("region") or "").strip(),
        country=str(payload.get("country") or "").strip(),
    )
    logger.info("netcheck: exit ip %s (%s) via %s", info.ip, info.as_text, "proxy" if proxy_url else "direct")
    return info
