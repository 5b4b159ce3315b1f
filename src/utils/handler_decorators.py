"""
Handler decorators for reducing boilerplate code in Lambda handlers.

These decorators take care of authentication, error mapping and request
logging so handlers can focus on business logic and return raw data.
"""

import logging
import time
from functools import wraps
from typing import Dict, Any, Callable, Optional, Tuple, Type

from pydantic import ValidationError

from utils.auth import get_user_from_event
from utils.db.base import NotAuthorized, NotFound, ConflictError
from utils.lambda_utils import create_response

logger = logging.getLogger(__name__)


# Checked in order; pydantic's ValidationError is a ValueError subclass.
ERROR_STATUS_CODES: Tuple[Tuple[Tuple[Type[Exception], ...], int, str], ...] = (
    ((ValidationError, ValueError, KeyError), 400, "Invalid request"),
    ((NotFound,), 404, "Not found"),
    ((NotAuthorized,), 403, "Forbidden"),
    ((ConflictError,), 409, "Conflict"),
)


def _expected_error_response(error: Exception, handler_name: str) -> Optional[Dict[str, Any]]:
    for error_types, status_code, label in ERROR_STATUS_CODES:
        if isinstance(error, error_types):
            logger.warning(f"{label} in {handler_name}: {error}")
            return create_response(status_code, {"message": str(error)})
    return None


def standard_error_handling(func: Callable) -> Callable:
    """
    Turn a handler's return value or exception into an API response.

    Raw results are wrapped in a 200; dicts that already carry a
    statusCode pass through. Exceptions map through ERROR_STATUS_CODES
    (400 / 404 / 403 / 409); anything else is a 500 whose message names
    the operation but hides the details.
    """
    @wraps(func)
    def wrapper(*args, **kwargs) -> Dict[str, Any]:
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            response = _expected_error_response(e, func.__name__)
            if response is not None:
                return response
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            return create_response(500, {"message": f"Error in {func.__name__.replace('_handler', '')}"})

        if isinstance(result, dict) and "statusCode" in result:
            return result
        return create_response(200, result)

    return wrapper


def log_request_response(func: Callable) -> Callable:
    """
    Decorator that logs request and response details.

    Logs request ID, method and route at the start, then the status code
    and duration (or the error) at the end.
    """
    @wraps(func)
    def wrapper(event: Dict[str, Any], *args, **kwargs) -> Dict[str, Any]:
        request_context = event.get("requestContext") or {}
        request_id = request_context.get("requestId", "unknown")
        method = (request_context.get("http") or {}).get("method", "unknown")
        route = event.get("routeKey", "unknown")

        start_time = time.time()
        logger.info(f"[{request_id}] {method} {route} - Request started")

        try:
            result = func(event, *args, **kwargs)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"[{request_id}] {method} {route} - Error after {duration_ms:.1f}ms: {str(e)}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        status_code = result.get("statusCode", "unknown") if isinstance(result, dict) else "unknown"
        logger.info(f"[{request_id}] {method} {route} - Response {status_code} in {duration_ms:.1f}ms")
        return result

    return wrapper


def require_authenticated_user(func: Callable) -> Callable:
    """
    Decorator that extracts the authenticated user from the event and passes
    their id as the second parameter to the handler.
    """
    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any, *args, **kwargs) -> Dict[str, Any]:
        user = get_user_from_event(event)
        if not user:
            logger.warning("Authentication required but no user found in event")
            return create_response(401, {"message": "Unauthorized"})

        return func(event, user["id"], *args, **kwargs)

    return wrapper


def api_handler(log_requests: bool = True, handle_errors: bool = True):
    """
    Convenience decorator factory for route functions.

    Route functions receive ``(event, user_id)`` and return raw data.

    Example:
        @api_handler()
        def get_history_handler(event, user_id):
            return {"history": ...}
    """
    def decorator(func: Callable) -> Callable:
        decorated_func = func

        if handle_errors:
            decorated_func = standard_error_handling(decorated_func)

        if log_requests:
            decorated_func = log_request_response(decorated_func)

        return decorated_func

    return decorator
