"""
Emergency Action Use Case

Break-glass operations on a single tenant or account:

- disable_organization: status=disabled; the organization drops out of
  every token issued afterwards
- force_password_reset: clears the password hash and issues a reset token
  (delivery is external)

The intent is audited and committed before anything is changed, so an
action that crashes half-way still leaves a critical-risk record.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.auth.request_password_reset_use_case import create_reset_token
from haven_auth.domain.base import utcnow
from haven_auth.domain.claims import AccessClaims
from haven_auth.domain.entities import AuditOutcome, OrganizationStatus, RiskLevel
from haven_auth.libs.result import Error, Result, Return
from .dtos import (
    AuthorizationDecision,
    EmergencyActionCommand,
    EmergencyActionResponse,
    EmergencyActionType,
)

MIN_REASON_LENGTH = 10


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _deny(reason: str) -> AuthorizationDecision:
    return AuthorizationDecision(authorized=False, reason=reason)


class EmergencyActionUseCase:
    """
    Business Rules:
    - Caller must be a platform operator with MFA verified in this session
    - A written reason of at least 10 characters is mandatory
    - The target must exist
    - Operators cannot force-reset their own account
    - Denials are audited at high risk; executions at critical risk
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def authorize(
        self, operator: AccessClaims, command: EmergencyActionCommand
    ) -> AuthorizationDecision:
        """Pre-check only; nothing is written."""
        if not operator.is_platform_admin:
            return _deny("Platform admin role required")
        if not operator.mfa_verified:
            return _deny("Multi-factor authentication must be verified for this session")
        if len(command.reason.strip()) < MIN_REASON_LENGTH:
            return _deny(f"A reason of at least {MIN_REASON_LENGTH} characters is required")

        target_id = _parse_uuid(command.target_id)
        if target_id is None:
            return _deny("Target not found")

        if command.action == EmergencyActionType.disable_organization:
            organization = await self.uow.organizations.get_by_id(target_id)
            if organization is None:
                return _deny("Target not found")
            if organization.status == OrganizationStatus.disabled:
                return _deny("Organization is already disabled")
        else:
            if str(target_id) == operator.user_id:
                return _deny("Operators cannot target their own account")
            user = await self.uow.users.get_by_id(target_id)
            if user is None:
                return _deny("Target not found")

        return AuthorizationDecision(authorized=True, reason="Authorized")

    async def check(
        self, operator: AccessClaims, command: EmergencyActionCommand
    ) -> AuthorizationDecision:
        async with self.uow:
            return await self.authorize(operator, command)

    async def execute(
        self, operator: AccessClaims, command: EmergencyActionCommand
    ) -> Result[EmergencyActionResponse]:
        async with self.uow:
            ledger = AuditLedger(self.uow)
            audit_fields = {
                "user_id": operator.user_id,
                "resource": f"{command.action.value}:{command.target_id}",
            }

            decision = await self.authorize(operator, command)
            if not decision.authorized:
                await ledger.record(
                    "emergency_action_denied",
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.high,
                    metadata={"reason": command.reason, "denied_because": decision.reason},
                    **audit_fields,
                )
                await self.uow.commit()
                return Return.err(
                    Error("EMERGENCY_ACTION_DENIED", decision.reason, authorized=False)
                )

            initiated = await ledger.record(
                "emergency_action_initiated",
                risk_level=RiskLevel.critical,
                metadata={"reason": command.reason},
                **audit_fields,
            )
            await self.uow.commit()

            target_id = UUID(command.target_id)
            if command.action == EmergencyActionType.disable_organization:
                organization = await self.uow.organizations.get_by_id(target_id)
                organization.status = OrganizationStatus.disabled
                await self.uow.organizations.update(organization)
            else:
                user = await self.uow.users.get_by_id(target_id)
                user.password_hash = None
                await self.uow.users.update(user)
                await create_reset_token(self.uow, user, self._clock())

            await ledger.record(
                "emergency_action_completed",
                risk_level=RiskLevel.critical,
                metadata={"reason": command.reason, "initiated_event_id": str(initiated.id)},
                **audit_fields,
            )
            await self.uow.commit()

            return Return.ok(
                EmergencyActionResponse(
                    action=command.action,
                    target_id=command.target_id,
                    status="completed",
                    audit_event_id=str(initiated.id),
                )
            )
