"""Lightsail instance and static IP operations.

Each operation is a short sequence of boto3 calls. Calls that AWS commonly
rejects while a previous change is still settling (reboot, delete, static IP
attach/detach/release) go through ``safe_retry``; eventual consistency after
a detach or release is awaited with plain deadline loops.
"""

import base64
import logging
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from app.core.exceptions import AWSOperationError, ValidationError
from app.core.retry import DEFAULT_POLICY, RELEASE_POLICY, STATIC_IP_POLICY, safe_retry

logger = logging.getLogger(__name__)

AWS_ERRORS = (ClientError, BotoCoreError)

CREATED_FORMAT = "%Y-%m-%d %H:%M:%S"
IP_ADDRESS_TYPES = ("dualstack", "ipv4", "ipv6")
DEFAULT_IP_ADDRESS_TYPE = "dualstack"

# Lightsail needs a moment after CreateInstances before it accepts port changes
OPEN_PORTS_DELAY = 4.0
DETACH_TIMEOUT = 120.0
RELEASE_TIMEOUT = 90.0
POLL_INTERVAL = 2.0

ALL_PORTS = {"fromPort": 0, "toPort": 65535, "protocol": "all"}


@dataclass
class InstanceView:
    name: str
    state: str = ""
    public_ipv4: str = ""
    public_ipv6: str = ""
    static_ipv4: str = ""
    zone: str = ""
    bundle_id: str = ""
    blueprint_id: str = ""
    created: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreateInstanceInput:
    instance_name: str
    availability_zone: str
    blueprint_id: str
    bundle_id: str
    user_data: str = ""
    ip_address_type: str = DEFAULT_IP_ADDRESS_TYPE
    enable_firewall_all: bool = False


@dataclass
class StaticIPSwapResult:
    instance_name: str
    new_static_ip_name: str
    old_static_ip_name: str = ""
    new_ip_address: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RegionView:
    name: str
    display_name: str = ""
    availability_zones: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BlueprintView:
    blueprint_id: str
    name: str = ""
    group: str = ""
    version: str = ""
    platform: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BundleView:
    bundle_id: str
    name: str = ""
    price: float = 0.0
    cpu_count: int = 0
    ram_size_in_gb: float = 0.0
    disk_size_in_gb: int = 0
    transfer_per_month_in_gb: int = 0
    supported_platforms: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def sanitize(value: str) -> str:
    """Reduce ``value`` to lower-case letters, digits and dashes ("x" if nothing is left)."""
    kept = "".join(ch for ch in value.lower() if ("a" <= ch <= "z") or ("0" <= ch <= "9") or ch == "-")
    return kept or "x"


def _paged(call: Callable[..., Dict[str, Any]], result_key: str, **kwargs: Any) -> List[Dict[str, Any]]:
    """Collect ``result_key`` items across Lightsail's nextPageToken pages."""
    items: List[Dict[str, Any]] = []
    token = None
    while True:
        params = dict(kwargs)
        if token:
            params["pageToken"] = token
        page = call(**params) or {}
        items.extend(page.get(result_key) or [])
        token = page.get("nextPageToken")
        if not token:
            return items


def _attached_static_ips(client: Any) -> Dict[str, str]:
    """Map instance name -> attached static IPv4. Lookup failures give an empty map."""
    try:
        static_ips = _paged(client.get_static_ips, "staticIps")
    except AWS_ERRORS as e:
        logger.warning("lightsail: could not read static IPs: %s", e)
        return {}

    attached: Dict[str, str] = {}
    for sip in static_ips:
        instance_name = sip.get("attachedTo")
        address = sip.get("ipAddress")
        if instance_name and address and sip.get("isAttached", True):
            attached[instance_name] = address
    return attached


def list_instances(client: Any) -> List[InstanceView]:
    try:
        instances = _paged(client.get_instances, "instances")
    except AWS_ERRORS as e:
        raise AWSOperationError(f"failed to list instances: {e}", action="list instances") from e

    static_map = _attached_static_ips(client)

    views = []
    for ins in instances:
        name = ins.get("name") or ""
        created_at = ins.get("createdAt")
        ipv6 = ins.get("ipv6Addresses") or []
        views.append(InstanceView(
            name=name,
            state=(ins.get("state") or {}).get("name") or "",
            public_ipv4=ins.get("publicIpAddress") or "",
            public_ipv6=ipv6[0] if ipv6 else "",
            static_ipv4=static_map.get(name, ""),
            zone=(ins.get("location") or {}).get("availabilityZone") or "",
            bundle_id=ins.get("bundleId") or "",
            blueprint_id=ins.get("blueprintId") or "",
            created=created_at.strftime(CREATED_FORMAT) if created_at else "",
        ))
    return views


def create_instance(client: Any, options: CreateInstanceInput) -> None:
    """Create one instance; optionally open every port once it exists."""
    ip_type = options.ip_address_type or DEFAULT_IP_ADDRESS_TYPE
    if ip_type not in IP_ADDRESS_TYPES:
        raise ValidationError(
            f"Unsupported IP address type '{ip_type}'; expected one of {', '.join(IP_ADDRESS_TYPES)}.",
            field="ip_address_type",
        )
    params: Dict[str, Any] = {
        "instanceNames": [options.instance_name],
        "availabilityZone": options.availability_zone,
        "blueprintId": options.blueprint_id,
        "bundleId": options.bundle_id,
        "ipAddressType": ip_type,
    }
    if options.user_data:
        params["userData"] = options.user_data

    try:
        client.create_instances(**params)
    except AWS_ERRORS as e:
        raise AWSOperationError(f"failed to create instance: {e}", action="create instance") from e
    logger.info(
        "lightsail: created instance %s in %s (bundle=%s, blueprint=%s, ip=%s)",
        options.instance_name,
        options.availability_zone,
        options.bundle_id,
        options.blueprint_id,
        ip_type,
    )

    if options.enable_firewall_all:
        time.sleep(OPEN_PORTS_DELAY)
        try:
            client.open_instance_public_ports(instanceName=options.instance_name, portInfo=dict(ALL_PORTS))
        except AWS_ERRORS as e:
            raise AWSOperationError(
                f"instance created but opening all ports failed: {e}",
                action="open all ports",
                details={"instance_name": options.instance_name, "instance_created": True},
            ) from e


def reboot_instance(client: Any, name: str) -> None:
    safe_retry("reboot instance", lambda: client.reboot_instance(instanceName=name), DEFAULT_POLICY)
    logger.info("lightsail: reboot requested for %s", name)


def open_all_ports(client: Any, instance_name: str) -> None:
    safe_retry(
        "open all ports",
        lambda: client.open_instance_public_ports(instanceName=instance_name, portInfo=dict(ALL_PORTS)),
        DEFAULT_POLICY,
    )
    logger.info("lightsail: opened all ports on %s", instance_name)


def delete_instance_with_static_ip_cleanup(client: Any, name: str) -> None:
    """Release the instance's static IP (best effort), then delete the instance."""
    try:
        delete_previous_static_ip_for_instance(client, name)
    except AWSOperationError as e:
        logger.warning("lightsail: static IP cleanup for %s failed, deleting anyway: %s", name, e)

    safe_retry("delete instance", lambda: client.delete_instance(instanceName=name), STATIC_IP_POLICY)
    logger.info("lightsail: deleted instance %s", name)


def _find_instance(client: Any, instance_name: str) -> Optional[Dict[str, Any]]:
    try:
        instances = _paged(client.get_instances, "instances")
    except AWS_ERRORS as e:
        logger.warning("lightsail: could not read instances before static IP swap: %s", e)
        return None
    for ins in instances:
        if ins.get("name") == instance_name:
            return ins
    return None


def swap_static_ip_for_instance(client: Any, instance_name: str) -> StaticIPSwapResult:
    """Replace the instance's static IP with a freshly allocated one."""
    instance = _find_instance(client, instance_name)
    if instance is not None and not instance.get("publicIpAddress"):
        raise AWSOperationError(
            f"instance {instance_name} has no public IPv4 (IPv6-only?) and cannot take a static IP",
            action="swap static IP",
            recovery_hint="Switch the instance to dualstack networking before assigning a static IP.",
        )

    old_name = ""
    try:
        old_name = delete_previous_static_ip_for_instance(client, instance_name)
    except AWSOperationError as e:
        logger.warning("lightsail: releasing old static IP of %s failed: %s", instance_name, e)

    new_name = f"sip-{sanitize(instance_name)}-{int(time.time())}"
    safe_retry(
        "allocate new static IP",
        lambda: client.allocate_static_ip(staticIpName=new_name),
        STATIC_IP_POLICY,
    )
    safe_retry(
        "attach new static IP",
        lambda: client.attach_static_ip(staticIpName=new_name, instanceName=instance_name),
        STATIC_IP_POLICY,
    )

    new_address = ""
    try:
        new_address = (client.get_static_ip(staticIpName=new_name).get("staticIp") or {}).get("ipAddress") or ""
    except AWS_ERRORS as e:
        logger.debug("lightsail: could not read back %s: %s", new_name, e)

    logger.info(
        "lightsail: swapped static IP of %s: %s -> %s (%s)",
        instance_name,
        old_name or "<none>",
        new_name,
        new_address or "pending",
    )
    return StaticIPSwapResult(
        instance_name=instance_name,
        new_static_ip_name=new_name,
        old_static_ip_name=old_name,
        new_ip_address=new_address,
    )


def delete_previous_static_ip_for_instance(
    client: Any,
    instance_name: str,
    detach_timeout: float = DETACH_TIMEOUT,
    release_timeout: float = RELEASE_TIMEOUT,
    poll_interval: float = POLL_INTERVAL,
) -> str:
    """Detach and release the static IP attached to ``instance_name``.

    Returns the released static IP's name, or "" when none was attached.
    """
    old_name, _ = find_attached_static_ip(client, instance_name)
    if not old_name:
        return ""

    safe_retry(
        "detach old static IP",
        lambda: client.detach_static_ip(staticIpName=old_name),
        STATIC_IP_POLICY,
    )

    if not wait_static_ip_detached(client, old_name, timeout=detach_timeout, poll_interval=poll_interval):
        raise AWSOperationError(f"timed out waiting for old static IP {old_name} to detach", action="detach old static IP")

    safe_retry(
        "release old static IP",
        lambda: client.release_static_ip(staticIpName=old_name),
        RELEASE_POLICY,
    )

    deadline = time.monotonic() + release_timeout
    while time.monotonic() < deadline:
        try:
            client.get_static_ip(staticIpName=old_name)
        except AWS_ERRORS:
            # Not found: the release has taken effect
            logger.info("lightsail: released static IP %s from %s", old_name, instance_name)
            return old_name
        time.sleep(poll_interval)

    raise AWSOperationError(f"old static IP {old_name} still exists after release", action="release old static IP")


def find_attached_static_ip(client: Any, instance_name: str) -> Tuple[str, str]:
    """Return (static IP name, address) attached to the instance, or ("", "")."""
    try:
        static_ips = _paged(client.get_static_ips, "staticIps")
    except AWS_ERRORS as e:
        logger.warning("lightsail: could not read static IPs: %s", e)
        return "", ""

    for sip in static_ips:
        if sip.get("attachedTo") == instance_name and sip.get("isAttached", True):
            return sip.get("name") or "", sip.get("ipAddress") or ""
    return "", ""


def wait_static_ip_detached(
    client: Any,
    static_ip_name: str,
    timeout: float = DETACH_TIMEOUT,
    poll_interval: float = POLL_INTERVAL,
) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            static_ip = (client.get_static_ip(staticIpName=static_ip_name) or {}).get("staticIp")
        except AWS_ERRORS:
            return True
        if not static_ip:
            return True
        if static_ip.get("isAttached") is False:
            return True
        if not static_ip.get("attachedTo"):
            return True
        time.sleep(poll_interval)
    return False


def list_regions(client: Any) -> List[RegionView]:
    try:
        regions = (client.get_regions(includeAvailabilityZones=True) or {}).get("regions") or []
    except AWS_ERRORS as e:
        raise AWSOperationError(f"failed to list regions: {e}", action="list regions") from e

    return [
        RegionView(
            name=r.get("name") or "",
            display_name=r.get("displayName") or "",
            availability_zones=[
                z.get("zoneName") for z in r.get("availabilityZones") or []
                if z.get("zoneName") and z.get("state", "available") == "available"
            ],
        )
        for r in regions
    ]


def list_blueprints(client: Any) -> List[BlueprintView]:
    """Active operating-system blueprints (applications are left out)."""
    try:
        blueprints = _paged(client.get_blueprints, "blueprints", includeInactive=False)
    except AWS_ERRORS as e:
        raise AWSOperationError(f"failed to list blueprints: {e}", action="list blueprints") from e

    return [
        BlueprintView(
            blueprint_id=b.get("blueprintId") or "",
            name=b.get("name") or "",
            group=b.get("group") or "",
            version=b.get("version") or "",
            platform=b.get("platform") or "",
        )
        for b in blueprints
        if b.get("isActive", True) and b.get("type", "os") == "os"
    ]


def list_bundles(client: Any) -> List[BundleView]:
    try:
        bundles = _paged(client.get_bundles, "bundles", includeInactive=False)
    except AWS_ERRORS as e:
        raise AWSOperationError(f"failed to list bundles: {e}", action="list bundles") from e

    views = [
        BundleView(
            bundle_id=b.get("bundleId") or "",
            name=b.get("name") or "",
            price=float(b.get("price") or 0.0),
            cpu_count=int(b.get("cpuCount") or 0),
            ram_size_in_gb=float(b.get("ramSizeInGb") or 0.0),
            disk_size_in_gb=int(b.get("diskSizeInGb") or 0),
            transfer_per_month_in_gb=int(b.get("transferPerMonthInGb") or 0),
            supported_platforms=list(b.get("supportedPlatforms") or []),
        )
        for b in bundles
        if b.get("isActive", True)
    ]
    return sorted(views, key=lambda v: v.price)


_ROOT_PASSWORD_SCRIPT = r"""#!/bin/bash
set -e

if [[ $(id -u) != 0 ]]; then
  echo -e "\033[31m this script must run as root \033[0m"
  exit 1
fi

password_b64="__PASSWORD_B64__"
password="$(printf '%s' "$password_b64" | base64 -d)"

echo "root:$password" | chpasswd
passwd -u root || true

sed -i 's@^\(Include[ ]*/etc/ssh/sshd_config.d/\*\.conf\)@# \1@' /etc/ssh/sshd_config
sed -i 's/^#\?PermitRootLogin.*/PermitRootLogin yes/g;s/^#\?PasswordAuthentication.*/PasswordAuthentication yes/g' /etc/ssh/sshd_config
sed -i 's/^#\?PubkeyAuthentication.*/PubkeyAuthentication no/g' /etc/ssh/sshd_config
sed -i '/^AuthorizedKeysFile/s/^/#/' /etc/ssh/sshd_config
sed -i 's/^#[[:space:]]*KbdInteractiveAuthentication.*\|^KbdInteractiveAuthentication.*/KbdInteractiveAuthentication yes/' /etc/ssh/sshd_config

# restart sshd under whichever service name the distribution uses
if [ -f /etc/os-release ]; then
  if [ "$(awk -F= '/VERSION_CODENAME/{print $2}' /etc/os-release)" = 'noble' ]; then
    systemctl restart ssh || true
  elif [[ "$(grep 'PRETTY_NAME' /etc/os-release)" =~ 'Alpine' ]]; then
    service sshd restart || true
  else
    systemctl restart sshd || true
  fi
else
  systemctl restart ssh >/dev/null 2>&1 || true
  systemctl restart sshd >/dev/null 2>&1 || true
  service sshd restart >/dev/null 2>&1 || true
fi

echo -e "\033[32m root password login enabled, log in again as root \033[0m"
"""


def build_root_password_user_data(password: str) -> str:
    """Launch script that sets the root password and enables password SSH logins.

    The password travels base64-encoded so quotes, ``$`` and backslashes
    survive the shell untouched.
    """
    encoded = base64.b64encode(password.encode("utf-8")).decode("ascii")
    return _ROOT_PASSWORD_SCRIPT.replace("__PASSWORD_B64__", encoded)
