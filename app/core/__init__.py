"""Core module for exceptions, admin checks, token validation and telemetry."""

from app.core.admin import is_admin, require_admin
from app.core.exceptions import BadRequestError, OllamaAPIError, UnauthorizedError
from app.core.telemetry import get_tracer, setup_all_instrumentation, setup_telemetry

__all__ = [
    "BadRequestError",
    "OllamaAPIError",
    "UnauthorizedError",
    "is_admin",
    "require_admin",
    "get_tracer",
    "setup_telemetry",
    "setup_all_instrumentation",
]
