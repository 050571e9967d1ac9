"""
Usage counters for plan-capped resources.

Business services reserve a slot before creating a resident or property
and release it when one is removed. Reservation runs the quota gate on
live counters, then a conditional UPDATE that cannot overshoot the
ceiling under concurrency.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.guards import AuthorizationContext, authorize, check_quota
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.subscriptions import (
    ReleaseUsageUseCase,
    ReserveUsageUseCase,
    UsageResponse,
)
from haven_auth.depends import get_token_service, get_unit_of_work
from haven_auth.domain.entities import ResourceKind
from haven_auth.domain.permissions import Permission

router = APIRouter(tags=["Usage"])

RESERVE_GUARDS = {
    ResourceKind.residents: check_quota(
        ResourceKind.residents,
        permission=Permission.RESIDENTS_WRITE,
        active_subscription=True,
        organization_param="organization_id",
    ),
    ResourceKind.properties: check_quota(
        ResourceKind.properties,
        permission=Permission.PROPERTIES_WRITE,
        active_subscription=True,
        organization_param="organization_id",
    ),
}

RELEASE_GUARDS = {
    ResourceKind.residents: authorize(
        permission=Permission.RESIDENTS_DELETE, organization_param="organization_id"
    ),
    ResourceKind.properties: authorize(
        permission=Permission.PROPERTIES_DELETE, organization_param="organization_id"
    ),
}


async def reserve_guard(
    resource_kind: ResourceKind,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
) -> AuthorizationContext:
    return await RESERVE_GUARDS[resource_kind](request, uow, token_service)


async def release_guard(
    resource_kind: ResourceKind,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
) -> AuthorizationContext:
    return await RELEASE_GUARDS[resource_kind](request, uow, token_service)


@router.post(
    "/organizations/{organization_id}/usage/{resource_kind}",
    status_code=status.HTTP_200_OK,
    response_model=UsageResponse,
)
async def reserve_usage(
    organization_id: UUID,
    resource_kind: ResourceKind,
    ctx: AuthorizationContext = Depends(reserve_guard),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Raises:
        - 403 Forbidden: quota reached ("Resident limit reached" /
          "Property limit reached" with currentCount and maxAllowed),
          missing permission, inactive subscription, foreign organization
    """
    result = await ReserveUsageUseCase(uow).execute(
        UUID(ctx.organization_id), resource_kind, ctx.user_id
    )

    if result.is_err():
        error = result.error
        if error.code == "ORGANIZATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        if "maxAllowed" in error.context:
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value


@router.delete(
    "/organizations/{organization_id}/usage/{resource_kind}",
    status_code=status.HTTP_200_OK,
    response_model=UsageResponse,
)
async def release_usage(
    organization_id: UUID,
    resource_kind: ResourceKind,
    ctx: AuthorizationContext = Depends(release_guard),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    result = await ReleaseUsageUseCase(uow).execute(UUID(ctx.organization_id), resource_kind)

    if result.is_err():
        error = result.error
        if error.code == "ORGANIZATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        if error.code == "NOTHING_TO_RELEASE":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value
