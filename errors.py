"""Error taxonomy shared by the services and the HTTP layer."""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse


class GalleryError(Exception):
    """Base error; ``status_code`` is the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(GalleryError):
    status_code = 400


class NotFound(GalleryError):
    status_code = 404


class InternalError(GalleryError):
    status_code = 500


class StoreError(InternalError):
    """Metadata store failure."""


def _error_response(request: Request, status_code: int, message: str):
    if request.url.path.startswith("/api/"):
        return JSONResponse({"detail": message}, status_code=status_code)
    return PlainTextResponse(message, status_code=status_code)


async def gallery_error_handler(request: Request, exc: GalleryError):
    return _error_response(request, exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, 400, "invalid request")
