"""Exceptions that are allowed to end a sweep early."""


class SweepError(Exception):
    """Base class for fatal sweep errors."""


class ConfigurationError(SweepError):
    """The run was asked to do something it cannot do with its inputs."""


class InventoryUnavailableError(SweepError):
    """The inventory database could not be queried."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")
