"""
Platform Admin Use Cases

Cross-tenant operations for platform operators.
"""

from .get_platform_overview_use_case import GetPlatformOverviewUseCase
from .emergency_action_use_case import EmergencyActionUseCase
from .dtos import (
    AuthorizationDecision,
    EmergencyActionCommand,
    EmergencyActionResponse,
    EmergencyActionType,
    PlatformOverviewResponse,
)

__all__ = [
    "GetPlatformOverviewUseCase",
    "EmergencyActionUseCase",
    "AuthorizationDecision",
    "EmergencyActionCommand",
    "EmergencyActionResponse",
    "EmergencyActionType",
    "PlatformOverviewResponse",
]
