"""
Platform Admin Routes

Cross-tenant operator endpoints. Every route depends on
require_platform_admin, so no aggregate is read before the role, MFA and
IP checks have passed.
"""

from fastapi import APIRouter, Depends, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.platform_admin_guard import require_platform_admin
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.platform_admin import (
    AuthorizationDecision,
    EmergencyActionCommand,
    EmergencyActionResponse,
    EmergencyActionUseCase,
    GetPlatformOverviewUseCase,
    PlatformOverviewResponse,
)
from haven_auth.depends import get_unit_of_work
from haven_auth.domain.claims import AccessClaims

router = APIRouter(prefix="/platform-admin", tags=["Platform Admin"])


@router.get("/overview", status_code=status.HTTP_200_OK, response_model=PlatformOverviewResponse)
async def get_overview(
    operator: AccessClaims = Depends(require_platform_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    result = await GetPlatformOverviewUseCase(uow).execute()

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.post(
    "/emergency-actions/authorize",
    status_code=status.HTTP_200_OK,
    response_model=AuthorizationDecision,
)
async def authorize_emergency_action(
    command: EmergencyActionCommand,
    operator: AccessClaims = Depends(require_platform_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Pre-check only: {authorized, reason}. Nothing is changed."""
    return await EmergencyActionUseCase(uow).check(operator, command)


@router.post(
    "/emergency-actions",
    status_code=status.HTTP_200_OK,
    response_model=EmergencyActionResponse,
)
async def execute_emergency_action(
    command: EmergencyActionCommand,
    operator: AccessClaims = Depends(require_platform_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Raises:
        - 403 Forbidden: EMERGENCY_ACTION_DENIED with the pre-check reason
    """
    result = await EmergencyActionUseCase(uow).execute(operator, command)

    if result.is_err():
        error = result.error
        if error.code == "EMERGENCY_ACTION_DENIED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value
