"""
Audit API Routes

Organization-scoped audit trail.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.guards import AuthorizationContext, require_permission
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.audit import AuditEventsResponse, GetAuditEventsUseCase
from haven_auth.depends import get_unit_of_work
from haven_auth.domain.permissions import Permission

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("/events", status_code=status.HTTP_200_OK, response_model=AuditEventsResponse)
async def get_audit_events(
    ctx: AuthorizationContext = Depends(
        require_permission(Permission.AUDIT_READ, organization_param="organization_id")
    ),
    uow: UnitOfWork = Depends(get_unit_of_work),
    organization_id: Optional[UUID] = Query(
        None, description="Organization to read; defaults to the primary organization"
    ),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
    risk_level: Optional[str] = Query(None, description="low, medium, high or critical"),
):
    """
    Returns the organization's audit events, newest first.

    Raises:
        - 401 Unauthorized: Invalid or expired token
        - 403 Forbidden: INSUFFICIENT_PERMISSION (audit:read) or
          ORGANIZATION_ACCESS_DENIED
    """
    result = await GetAuditEventsUseCase(uow).execute(
        UUID(ctx.organization_id), limit=limit, cursor=cursor, risk_level=risk_level
    )

    if result.is_err():
        error = result.error
        if error.code == "INVALID_RISK_LEVEL":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
