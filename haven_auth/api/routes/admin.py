"""
Admin API Routes - Billing Collaborator Endpoints

Authentication is via Admin API Key, not user tokens.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.admin_auth import verify_admin_api_key
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.subscriptions import (
    ApplySubscriptionEventUseCase,
    SubscriptionEventCommand,
    SubscriptionStateResponse,
)
from haven_auth.depends import get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/organizations/{organization_id}/subscription-events",
    status_code=status.HTTP_200_OK,
    response_model=SubscriptionStateResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def apply_subscription_event(
    organization_id: UUID,
    command: SubscriptionEventCommand,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Applies the effect of a billing-provider event to an organization.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
        - 400 Bad Request: TIER_REQUIRED
        - 404 Not Found: ORGANIZATION_NOT_FOUND
        - 409 Conflict: INVALID_SUBSCRIPTION_TRANSITION
    """
    result = await ApplySubscriptionEventUseCase(uow).execute(organization_id, command)

    if result.is_err():
        error = result.error
        if error.code == "ORGANIZATION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        if error.code == "TIER_REQUIRED":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        if error.code == "INVALID_SUBSCRIPTION_TRANSITION":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value
