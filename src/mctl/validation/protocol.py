"""Validation gateway interface"""
from abc import ABC, abstractmethod

from mctl.orchestration.models import ValidationResult, Workspace


class ValidationGateway(ABC):
    """Validates the contents of an agent workspace"""

    @abstractmethod
    async def validate(self, workspace: Workspace) -> ValidationResult:
        """Run checks against the workspace and return a fresh result"""
        pass
