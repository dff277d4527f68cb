"""Exception handler middleware for structured error responses."""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ..core.config import settings
from ..exceptions import LoginRequiredError, WikiException

logger = logging.getLogger(__name__)


def login_redirect_url(return_url: Optional[str]) -> str:
    """Login entry point, carrying the page to come back to."""
    if not return_url:
        return settings.login_path
    return f"{settings.login_path}?{urlencode({'return_url': return_url})}"


async def wiki_exception_handler(request: Request, exc: WikiException) -> Response:
    """
    Handle custom exceptions and return structured responses.

    ``LoginRequiredError`` becomes a 303 redirect to the login entry point;
    every other error is converted to the standard JSON body.

    Args:
        request: FastAPI request object
        exc: WikiException instance

    Returns:
        RedirectResponse or JSONResponse with error details
    """
    if isinstance(exc, LoginRequiredError):
        logger.info(
            "Redirecting anonymous request to login",
            extra={"path": request.url.path, "method": request.method},
        )
        return RedirectResponse(login_redirect_url(exc.return_url), status_code=303)

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"WikiException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
