"""AWS operations: Lightsail instances and static IPs, vCPU quotas, proxy egress."""

from app.aws.clients import AWSClientFactory, normalize_proxy_url, normalize_region

__all__ = [
    "AWSClientFactory",
    "normalize_proxy_url",
    "normalize_region",
]
