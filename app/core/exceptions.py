"""Custom HTTP exceptions and domain errors."""

from typing import Any

from fastapi import HTTPException, status


class OllamaAPIError(HTTPException):
    """Exception raised when the Ollama server fails or cannot be reached."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Ollama API error: {detail}",
        )


class UnauthorizedError(HTTPException):
    """Exception raised for authentication failures."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class BadRequestError(HTTPException):
    """Exception raised for bad requests."""

    def __init__(self, detail: str | dict[str, Any]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class ModelConfigValidationError(ValueError):
    """Raised when a model list would break the enabled/default invariants."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class ModelFetchError(Exception):
    """Raised when model discovery against the Ollama server fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ModelNotAvailableError(LookupError):
    """Raised when a chat request names a model that is not enabled."""

    def __init__(self, model_id: str):
        super().__init__(f"Model '{model_id}' is not available")
        self.model_id = model_id
