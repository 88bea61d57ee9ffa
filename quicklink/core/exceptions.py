"""Domain errors and their HTTP rendering."""

from datetime import datetime

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class QuickLinkError(Exception):
    """Base class for errors raised by the link services.

    Each subclass carries the HTTP status it maps to and a stable error code
    that clients can branch on.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "InternalFailure"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "error": self.code}


class InvalidUrl(QuickLinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "InvalidUrl"
    default_detail = "Invalid URL provided"


class AliasInvalid(QuickLinkError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "AliasInvalid"
    default_detail = (
        "Custom alias must be 3-15 characters of letters, numbers, hyphens and underscores"
    )


class AliasTaken(QuickLinkError):
    status_code = status.HTTP_409_CONFLICT
    code = "AliasTaken"
    default_detail = "Custom alias already exists"


class LinkNotFound(QuickLinkError):
    """Unknown or inactive short code. The two are deliberately indistinguishable."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NotFound"
    default_detail = "Link not found"


class LinkExpired(QuickLinkError):
    status_code = status.HTTP_410_GONE
    code = "Expired"
    default_detail = "Link has expired"

    def __init__(self, expires_at: datetime | None = None, detail: str | None = None) -> None:
        super().__init__(detail)
        self.expires_at = expires_at

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data


class GenerationExhausted(QuickLinkError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "GenerationExhausted"
    default_detail = "Unable to generate a unique short code, please retry"


class InternalFailure(QuickLinkError):
    pass


async def quicklink_error_handler(request: Request, exc: QuickLinkError) -> JSONResponse:
    """Render a domain error as JSON with its mapped status."""
    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.code, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report request body/query validation failures as 400 Bad Request."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "error": "ValidationError", "errors": errors},
    )
