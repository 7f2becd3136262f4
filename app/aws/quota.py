"""EC2 vCPU quota lookup through Service Quotas.

Quotas are read by code rather than by listing and matching names, so the
result does not depend on AWS renaming a quota.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from app.core.exceptions import AWSOperationError

logger = logging.getLogger(__name__)

SERVICE_CODE = "ec2"
# Running On-Demand Standard (A, C, D, H, I, M, R, T, Z) instances
QUOTA_CODE_ON_DEMAND_STANDARD_VCPU = "L-1216C47A"
# All Standard (A, C, D, H, I, M, R, T, Z) Spot Instance Requests
QUOTA_CODE_SPOT_STANDARD_VCPU = "L-34B43A08"


@dataclass
class VCPUQuotas:
    on_demand_value: str = ""
    spot_value: str = ""
    on_demand_name: str = ""
    spot_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def float_to_string(value: Optional[float]) -> str:
    """Render a quota value: ``None`` -> "", ``1.0`` -> "1", ``1.25`` -> "1.25"."""
    if value is None:
        return ""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _get_quota(client: Any, quota_code: str) -> Tuple[str, str, Optional[Exception]]:
    """Return (name, value, error) for one quota code."""
    try:
        response = client.get_service_quota(ServiceCode=SERVICE_CODE, QuotaCode=quota_code)
    except (ClientError, BotoCoreError) as e:
        logger.debug("quota: %s lookup failed: %s", quota_code, e)
        return "", "", e

    quota = (response or {}).get("Quota") or {}
    return quota.get("QuotaName") or "", float_to_string(quota.get("Value")), None


def get_vcpu_quotas(client: Any) -> VCPUQuotas:
    """Read the on-demand and spot standard vCPU quotas.

    Either quota may be missing; only when both are missing is it an error,
    and the error names both underlying failures.
    """
    if client is None:
        raise AWSOperationError("service quotas client is not configured", action="read vCPU quotas")

    on_name, on_value, on_error = _get_quota(client, QUOTA_CODE_ON_DEMAND_STANDARD_VCPU)
    spot_name, spot_value, spot_error = _get_quota(client, QUOTA_CODE_SPOT_STANDARD_VCPU)

    if not on_value and not spot_value:
        raise AWSOperationError(
            "no quota values returned (missing permission, wrong region, or a network/proxy problem): "
            f"on_demand_error={on_error}; spot_error={spot_error}",
            action="read vCPU quotas",
        )

    return VCPUQuotas(
        on_demand_value=on_value,
        spot_value=spot_value,
        on_demand_name=on_name,
        spot_name=spot_name,
    )
