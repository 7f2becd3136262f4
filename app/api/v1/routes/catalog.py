"""Lookups that fill the create-instance form: regions, blueprints, bundles."""

from fastapi import APIRouter, Depends

from app.api.deps import AWSContext, get_aws_context, get_client_factory, run_blocking
from app.aws import lightsail
from app.aws.clients import AWSClientFactory
from app.models.instances import BlueprintInfo, BundleInfo, RegionInfo

router = APIRouter(prefix="/api/v1/catalog", tags=["catalog"])


@router.get("/regions", response_model=list[RegionInfo], summary="Regions and availability zones")
async def list_regions(
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> list[RegionInfo]:
    regions = await run_blocking(lightsail.list_regions, factory.lightsail(ctx.key, ctx.region))
    return [RegionInfo(**r.to_dict()) for r in regions]


@router.get("/blueprints", response_model=list[BlueprintInfo], summary="Operating system images")
async def list_blueprints(
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> list[BlueprintInfo]:
    blueprints = await run_blocking(lightsail.list_blueprints, factory.lightsail(ctx.key, ctx.region))
    return [BlueprintInfo(**b.to_dict()) for b in blueprints]


@router.get("/bundles", response_model=list[BundleInfo], summary="Instance plans")
async def list_bundles(
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> list[BundleInfo]:
    bundles = await run_blocking(lightsail.list_bundles, factory.lightsail(ctx.key, ctx.region))
    return [BundleInfo(**b.to_dict()) for b in bundles]
