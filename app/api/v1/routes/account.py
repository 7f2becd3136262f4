"""Account-level lookups for the selected key."""

from fastapi import APIRouter, Depends

from app.api.deps import AWSContext, get_aws_context, get_client_factory, run_blocking
from app.aws.clients import AWSClientFactory
from app.aws.quota import get_vcpu_quotas
from app.models.instances import QuotaResponse

router = APIRouter(prefix="/api/v1/account", tags=["account"])


@router.get("/quotas", response_model=QuotaResponse, summary="EC2 standard vCPU quotas")
async def vcpu_quotas(
    ctx: AWSContext = Depends(get_aws_context),
    factory: AWSClientFactory = Depends(get_client_factory),
) -> QuotaResponse:
    quotas = await run_blocking(get_vcpu_quotas, factory.service_quotas(ctx.key, ctx.region))
    return QuotaResponse(region=ctx.region, **quotas.to_dict())
