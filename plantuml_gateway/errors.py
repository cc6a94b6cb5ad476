"""Exceptions raised while bringing the renderer process up."""
from __future__ import annotations


class GatewayError(RuntimeError):
    pass


class ConfigurationError(GatewayError):
    """Java runtime or the PlantUML jar could not be found."""


class ProcessStartupError(GatewayError):
    """The renderer process failed or exited before it became ready."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
