from fastapi import APIRouter, Depends, status

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.guards import AuthorizationContext, require_auth
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.users import GetProfileUseCase, ProfileResponse
from haven_auth.depends import get_unit_of_work

router = APIRouter(tags=["User"])


@router.get("/me", status_code=status.HTTP_200_OK, response_model=ProfileResponse)
async def get_me(
    ctx: AuthorizationContext = Depends(require_auth()),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Current user and the tenant context carried by the access token.

    Raises:
        - 401 Unauthorized: missing, invalid or expired token
        - 404 Not Found: user no longer exists or is deactivated
    """
    result = await GetProfileUseCase(uow).execute(ctx.claims)

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value
