"""Exception handler for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import MediaFoldersError

logger = logging.getLogger(__name__)


async def mediafolders_exception_handler(request: Request, exc: MediaFoldersError) -> JSONResponse:
    """
    Convert a MediaFoldersError into its JSON error body.

    Client errors (4xx) are logged at WARNING, server and remote failures at ERROR.

    Args:
        request: FastAPI request object
        exc: MediaFoldersError instance

    Returns:
        JSONResponse with error details
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"MediaFoldersError: {exc.error_code.value}",
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
