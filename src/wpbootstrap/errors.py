"""Domain errors for wpbootstrap."""

from typing import Iterable


class BootstrapError(RuntimeError):
    """Raised when container bootstrap cannot continue safely."""


class ConfigurationError(BootstrapError):
    """Required environment input is missing or invalid."""

    def __init__(self, message: str, names: Iterable[str] = ()):
        super().__init__(message)
        self.names = list(names)


class DependencyTimeoutError(BootstrapError):
    """A dependent service never became reachable within the attempt bound."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class ProvisioningError(BootstrapError):
    """A provisioning command failed despite its idempotent phrasing."""
