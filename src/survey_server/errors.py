"""Global exception handlers — map SDK exceptions to HTTP status codes.

Every SDK error carries its own ``status_code``, so a single handler
covers the whole ``SurveyError`` hierarchy.  Client errors (4xx) return the
exception message, which names the offending schema path or question id.
Server errors (5xx) return a generic message; the detail stays in the log.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from survey_core.errors import SurveyError

logger = logging.getLogger(__name__)

# --- Client-safe messages for server-side failures ---
_SAFE_MESSAGES: dict[int, str] = {
    500: "Internal server error",
}


async def survey_error_handler(request: Request, exc: SurveyError) -> JSONResponse:
    """Map a ``SurveyError`` to ``{"detail": ...}`` with its status code."""
    status = exc.status_code
    if status >= 500:
        logger.error("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc,
                     exc_info=exc)
        detail = _SAFE_MESSAGES.get(status, "Internal server error")
    else:
        logger.warning("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc)
        detail = str(exc)
    return JSONResponse(status_code=status, content={"detail": detail})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
