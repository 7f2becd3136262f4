"""Pydantic models for Lightsail instance routes."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class InstanceInfo(BaseModel):
    name: str
    state: str
    public_ipv4: str
    public_ipv6: str
    static_ipv4: str
    zone: str
    bundle_id: str
    blueprint_id: str
    created: str


class InstancesListResponse(BaseModel):
    region: str
    instances: List[InstanceInfo]
    count: int


class CreateInstanceRequest(BaseModel):
    instance_name: str = Field(..., min_length=1, max_length=255)
    availability_zone: str = Field(..., min_length=1, description="e.g. us-east-1a")
    blueprint_id: str = Field(..., min_length=1, description="e.g. debian_12")
    bundle_id: str = Field(..., min_length=1, description="e.g. nano_3_0")
    ip_address_type: Literal["dualstack", "ipv4", "ipv6"] = "dualstack"
    root_password: Optional[str] = Field(
        None,
        description="When set, a launch script enables root SSH login with this password"
    )
    enable_firewall_all: bool = Field(False, description="Open ports 0-65535 after creation")


class CreateInstanceResponse(BaseModel):
    instance_name: str
    region: str
    message: str


class StaticIPSwapResponse(BaseModel):
    instance_name: str
    new_static_ip_name: str
    old_static_ip_name: str
    new_ip_address: str


class RegionInfo(BaseModel):
    name: str
    display_name: str
    availability_zones: List[str]


class BlueprintInfo(BaseModel):
    blueprint_id: str
    name: str
    group: str
    version: str
    platform: str


class BundleInfo(BaseModel):
    bundle_id: str
    name: str
    price: float
    cpu_count: int
    ram_size_in_gb: float
    disk_size_in_gb: int
    transfer_per_month_in_gb: int
    supported_platforms: List[str]


class QuotaResponse(BaseModel):
    region: str
    on_demand_value: str
    spot_value: str
    on_demand_name: str
    spot_name: str
