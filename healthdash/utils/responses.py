"""
Shared JSON error responses
"""
import logging

from fastapi.responses import JSONResponse

from healthdash.config import settings

logger = logging.getLogger(__name__)


def server_error(context: str, error: Exception, message: str = "Internal server error") -> JSONResponse:
    """
    Log an unexpected handler error and build the 500 response

    The exception detail is only exposed outside production.
    """
    error_type = type(error).__name__
    logger.exception("Error in %s: %s: %s", context, error_type, error)
    content = {"status": "error", "success": False, "message": message}
    if settings.is_development:
        content["detail"] = str(error)
        content["error_type"] = error_type
    return JSONResponse(status_code=500, content=content)
