"""
MFA enrolment: setup stores a fresh secret, enable confirms it with a code.
"""

from uuid import UUID

from haven_auth.app.services import mfa
from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.entities import RiskLevel
from haven_auth.libs.result import Error, Result, Return
from .dtos import MfaSetupResponse, StatusResponse


class SetupMfaUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: str) -> Result[MfaSetupResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))
            if user.mfa_enabled:
                return Return.err(Error("MFA_ALREADY_ENABLED", "MFA is already enabled"))

            user.mfa_secret = mfa.generate_secret()
            await self.uow.users.update(user)
            await self.uow.commit()

            return Return.ok(
                MfaSetupResponse(
                    secret=user.mfa_secret,
                    provisioning_uri=mfa.provisioning_uri(user.mfa_secret, user.email),
                )
            )


class EnableMfaUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: str, code: str) -> Result[StatusResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))
            if user.mfa_enabled:
                return Return.err(Error("MFA_ALREADY_ENABLED", "MFA is already enabled"))
            if not user.mfa_secret:
                return Return.err(Error("MFA_NOT_SET_UP", "Run MFA setup first"))
            if not mfa.verify_code(user.mfa_secret, code):
                return Return.err(Error("INVALID_MFA_CODE", "Invalid verification code"))

            user.mfa_enabled = True
            await self.uow.users.update(user)
            await AuditLedger(self.uow).record(
                "mfa_enabled", user_id=user.id, risk_level=RiskLevel.medium
            )
            await self.uow.commit()

            return Return.ok(StatusResponse(status="enabled", message="MFA has been enabled"))
