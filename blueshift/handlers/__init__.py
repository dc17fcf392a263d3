"""Optional lifecycle event handlers."""

from blueshift.handlers.healthchecker import HealthCheckError, HealthChecker

__all__ = ["HealthCheckError", "HealthChecker"]
