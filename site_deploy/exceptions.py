"""
Exception hierarchy for the deployment pipeline.

Every stage raises one of these; ``deploy.main`` turns them into exit code 1.
"""

from typing import Optional


class DeployError(Exception):
    """Base exception for all deployment errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message


class ConfigurationError(DeployError):
    """Raised when the config file or a required variable is missing."""


class ValidationError(DeployError):
    """Raised when the derived bucket name breaks S3 naming rules."""


class ProvisioningError(DeployError):
    """Raised when creating or configuring the bucket fails."""


class BuildError(DeployError):
    """Raised when the build tool is missing or exits non-zero."""

    def __init__(self, message: str, context: Optional[str] = None, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message, context)


class UploadError(DeployError):
    """Raised when the build output is missing or the sync fails."""
