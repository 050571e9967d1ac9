"""
Entitlement reads for UI clients ("what can I do").

Always answered from live storage with lazy expiry applied, never from
the token snapshot.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.guards import AuthorizationContext, authorize
from haven_auth.app.services.entitlements import Entitlements
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.subscriptions import GetCurrentEntitlementsUseCase
from haven_auth.depends import get_unit_of_work

router = APIRouter(tags=["Subscription"])


async def _current_entitlements(uow: UnitOfWork, organization_id: str) -> Entitlements:
    result = await GetCurrentEntitlementsUseCase(uow).execute(UUID(organization_id))

    if result.is_err():
        error = result.error
        if error.code == "ORGANIZATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.get("/entitlements", status_code=status.HTTP_200_OK, response_model=Entitlements)
async def get_primary_entitlements(
    ctx: AuthorizationContext = Depends(authorize(tenant_scoped=True)),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Entitlements of the caller's primary organization."""
    return await _current_entitlements(uow, ctx.organization_id)


@router.get(
    "/organizations/{organization_id}/entitlements",
    status_code=status.HTTP_200_OK,
    response_model=Entitlements,
)
async def get_organization_entitlements(
    organization_id: UUID,
    ctx: AuthorizationContext = Depends(authorize(organization_param="organization_id")),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Raises:
        - 403 Forbidden: ORGANIZATION_ACCESS_DENIED when the caller is not
          an active member of organization_id
    """
    return await _current_entitlements(uow, ctx.organization_id)
