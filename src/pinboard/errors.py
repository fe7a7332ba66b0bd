"""Error taxonomy and JSON rendering for API failures.

Every expected failure is a ``PinboardError`` subclass carrying an HTTP status
and a machine-readable code. Handlers registered on the app render them as
``{"message": ..., "error": ...}``. Anything else becomes a generic 500 whose
detail is only exposed in development.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PinboardError(Exception):
    """Base class for failures surfaced to API clients."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.code}


class BadRequest(PinboardError):
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Bad request"


class NotFound(PinboardError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class Forbidden(PinboardError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class CredentialError(PinboardError):
    """A bearer credential could not be turned into a verified identity."""

    status_code = 401
    code = "INVALID_TOKEN"
    default_message = "Invalid authentication token"


class InvalidToken(CredentialError):
    pass


class UnsupportedProvider(CredentialError):
    status_code = 403
    code = "UNSUPPORTED_PROVIDER"
    default_message = "Only GitHub authentication is supported"


class AuthenticationRequired(PinboardError):
    """Raised by the strict authentication gate; ``code`` is the resolver reason."""

    status_code = 401
    code = "UNAUTHORIZED_ACCESS"
    default_message = "Authentication required. Please log in to access this resource."

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["authenticated"] = False
        return body


class InvalidImageUrl(BadRequest):
    code = "INVALID_IMAGE_URL"
    default_message = "Invalid image URL. Please provide a direct link to an image file."


class UnsupportedFileType(BadRequest):
    code = "UNSUPPORTED_FILE_TYPE"
    default_message = "Only image files are allowed!"


class FileTooLarge(PinboardError):
    status_code = 413
    code = "FILE_TOO_LARGE"
    default_message = "File exceeds the upload size limit"


class MalformedTags(BadRequest):
    code = "MALFORMED_TAGS"
    default_message = "Tags must be a JSON-encoded array of strings"


class ValidationFailed(BadRequest):
    code = "VALIDATION_FAILED"
    default_message = "Validation failed"


class MissingQuery(BadRequest):
    code = "MISSING_QUERY"
    default_message = "Search query is required"


def register_exception_handlers(app: FastAPI, *, expose_details: bool = False) -> None:
    """Attach JSON handlers for PinboardError and unexpected exceptions."""

    async def handle_pinboard_error(request: Request, exc: PinboardError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "message": "Server Error",
                "error": str(exc) if expose_details else {},
            },
        )

    app.add_exception_handler(PinboardError, handle_pinboard_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
