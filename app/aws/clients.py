"""boto3 client construction for stored API keys.

Every AWS call the console makes goes through a client built here from one
stored ``ApiKey``: its key pair, the region chosen for the session, and the
key's optional HTTP(S) proxy.
"""

import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

import boto3
from botocore.config import Config

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.db.models import ApiKey

logger = logging.getLogger(__name__)

_REGION_RE = re.compile(r"^[a-z]{2}(?:-[a-z]+)+-\d+$")
_ZONE_RE = re.compile(r"^([a-z]{2}(?:-[a-z]+)+-\d+)[a-z]$")

PROXY_SCHEMES = ("http", "https")


def normalize_region(value: Optional[str], default: Optional[str] = None) -> str:
    """Turn a region or availability-zone name into a region name.

    ``us-east-1a`` becomes ``us-east-1``; a region name is returned unchanged;
    anything without a region shape (empty, a bare zone letter) falls back to
    ``default`` or the configured default region.
    """
    fallback = default or settings.default_region
    candidate = (value or "").strip().lower()

    zone = _ZONE_RE.match(candidate)
    if zone:
        return zone.group(1)
    if _REGION_RE.match(candidate):
        return candidate
    return fallback


def normalize_proxy_url(value: Optional[str]) -> str:
    """Return a proxy URL with an explicit scheme, or "" for no proxy."""
    proxy = (value or "").strip()
    if not proxy:
        return ""
    if "://" not in proxy:
        proxy = f"http://{proxy}"

    parts = urlsplit(proxy)
    if parts.scheme.lower() not in PROXY_SCHEMES or not parts.hostname:
        raise ValidationError(
            f"Unsupported proxy URL '{value}'. Use http://host:port or https://host:port.",
            field="proxy",
        )
    return proxy


class AWSClientFactory:
    """Builds boto3 clients for a stored key and region."""

    def __init__(
        self,
        connect_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
    ):
        self.connect_timeout = connect_timeout or settings.aws_connect_timeout
        self.read_timeout = read_timeout or settings.aws_read_timeout

    def _config(self, key: ApiKey) -> Config:
        proxy = normalize_proxy_url(key.proxy)
        return Config(
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            proxies={"http": proxy, "https": proxy} if proxy else None,
        )

    def _session(self, key: ApiKey, region: str) -> boto3.Session:
        return boto3.Session(
            aws_access_key_id=key.access_key,
            aws_secret_access_key=key.secret_key,
            region_name=normalize_region(region),
        )

    def client(self, service: str, key: ApiKey, region: str) -> Any:
        region = normalize_region(region)
        logger.debug("aws: building %s client for key id=%s region=%s", service, key.id, region)
        return self._session(key, region).client(service, config=self._config(key))

    def lightsail(self, key: ApiKey, region: str) -> Any:
        return self.client("lightsail", key, region)

    def service_quotas(self, key: ApiKey, region: str) -> Any:
        return self.client("service-quotas", key, region)
