"""Lightsail instance routes.

All routes act with the key and region selected in the session. Instance
creation takes its region from the requested availability zone instead.
"""

import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import AWSContext, get_aws_context, get_client_factory, run_blocking
from app.aws import lightsail
from app.aws.clients import AWSClientFactory, normalize_region
from app.models.instances import (
    CreateInstanceRequest,
    CreateInstanceResponse,
    InstanceInfo,
    InstancesListResponse,
    StaticIPSwapResponse,
)
from app.models.request import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/instances", tags=["instances"])


@router.get("", response_model=InstancesListResponse, summary="List instances")
async def list_instances(
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> InstancesListResponse:
    client = factory.lightsail(ctx.key, ctx.region)
    views = await run_blocking(lightsail.list_instances, client)
    return InstancesListResponse(
        region=ctx.region,
        instances=[InstanceInfo(**v.to_dict()) for v in views],
        count=len(views),
    )


@router.post(
    "",
    response_model=CreateInstanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an instance",
)
async def create_instance(
    body: CreateInstanceRequest,
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> CreateInstanceResponse:
    region = normalize_region(body.availability_zone, default=ctx.region)
    user_data = lightsail.build_root_password_user_data(body.root_password) if body.root_password else ""

    client = factory.lightsail(ctx.key, region)
    await run_blocking(
        lightsail.create_instance,
        client,
        lightsail.CreateInstanceInput(
            instance_name=body.instance_name.strip(),
            availability_zone=body.availability_zone.strip(),
            blueprint_id=body.blueprint_id,
            bundle_id=body.bundle_id,
            user_data=user_data,
            ip_address_type=body.ip_address_type,
            enable_firewall_all=body.enable_firewall_all,
        ),
    )
    return CreateInstanceResponse(
        instance_name=body.instance_name.strip(),
        region=region,
        message="Instance creation requested.",
    )


@router.post("/{name}/reboot", response_model=MessageResponse, summary="Reboot an instance")
async def reboot_instance(
    name: str,
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> MessageResponse:
    await run_blocking(lightsail.reboot_instance, factory.lightsail(ctx.key, ctx.region), name)
    return MessageResponse(message=f"Reboot requested for {name}.")


@router.post("/{name}/open-ports", response_model=MessageResponse, summary="Open all ports")
async def open_all_ports(
    name: str,
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> MessageResponse:
    await run_blocking(lightsail.open_all_ports, factory.lightsail(ctx.key, ctx.region), name)
    return MessageResponse(message=f"All ports opened on {name}.")


@router.post("/{name}/static-ip", response_model=StaticIPSwapResponse, summary="Swap the static IP")
async def swap_static_ip(
    name: str,
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> StaticIPSwapResponse:
    result = await run_blocking(
        lightsail.swap_static_ip_for_instance,
        factory.lightsail(ctx.key, ctx.region),
        name,
    )
    return StaticIPSwapResponse(**result.to_dict())


@router.delete("/{name}", response_model=MessageResponse, summary="Delete an instance")
async def delete_instance(
    name: str,
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> MessageResponse:
    await run_blocking(
        lightsail.delete_instance_with_static_ip_cleanup,
        factory.lightsail(ctx.key, ctx.region),
        name,
    )
    return MessageResponse(message=f"Instance {name} deleted.")
