"""Domain errors for the Lightdash backend.

Every error raised across the data layer is a LightdashError carrying an
HTTP-style status code, so the API layer can render it without inspecting
the concrete type.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError


class LightdashError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_name: str = "LightdashError"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        name: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.name = name or self.default_name
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "name": self.name,
            "message": self.message,
            "data": self.data,
        }


class NotExistsError(LightdashError):
    """A referenced organization, project, user or explore does not exist."""

    status_code = 404
    default_name = "NotExistsError"


class AlreadyExistsError(LightdashError):
    """A uniqueness constraint was violated."""

    status_code = 409
    default_name = "AlreadyExistsError"


class ParseError(LightdashError):
    status_code = 400
    default_name = "ParseError"


class UnexpectedServerError(LightdashError):
    status_code = 500
    default_name = "UnexpectedServerError"


class CloneMappingError(UnexpectedServerError):
    """An id referenced during a content clone has no entry in its mapping."""

    default_name = "CloneMappingError"


def error_handler(error: Exception) -> LightdashError:
    """Translate any exception into a LightdashError."""
    if isinstance(error, ValidationError):
        return LightdashError(
            message=str(error),
            status_code=422,
            name="ValidateError",
            data={"fields": error.errors(include_url=False)},
        )
    if isinstance(error, LightdashError):
        return error
    return UnexpectedServerError(f"{error}")
