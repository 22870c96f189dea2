"""
Decorators for API endpoints and service functions.

This module provides decorators for consistent error handling
and session checks.
"""

from functools import wraps
from quart import jsonify, session
from werkzeug.exceptions import HTTPException
from typing import Callable, Any

from core.errors import AuthenticationError, BooruError
from utils.logging_config import get_logger

logger = get_logger('API')


def api_handler(log_errors: bool = True):
    """
    Decorator for API endpoints that handles:
    - Mapping the error taxonomy to status codes
    - Consistent response format

    Args:
        log_errors: If True, logs a traceback for unexpected errors

    Usage:
        @posts_blueprint.route('/<int:post_id>')
        @api_handler()
        async def show_post(post_id):
            # Just the logic, no try/except needed
            return {"post": ...}  # Auto-wrapped with success=True
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            try:
                result = await func(*args, **kwargs)

                # Auto-wrap dict responses
                if isinstance(result, dict):
                    if 'success' not in result:
                        result = {"success": True, **result}
                    return jsonify(result)

                return result

            except BooruError as e:
                if e.status_code >= 500 and log_errors:
                    logger.error(f"{func.__name__} failed: {e.message}", exc_info=True)
                body = {"success": False, "error": e.message}
                existing = getattr(e, 'existing_post_id', None)
                if existing is not None:
                    body["post_id"] = existing
                return jsonify(body), e.status_code
            except HTTPException:
                # Routing and body-size errors go to the app error handlers
                raise
            except ValueError as e:
                return jsonify({"success": False, "error": str(e)}), 400
            except PermissionError as e:
                return jsonify({"success": False, "error": str(e)}), 403
            except Exception as e:
                if log_errors:
                    logger.error(f"{func.__name__} failed: {e}", exc_info=True)
                return jsonify({"success": False, "error": "Internal server error"}), 500

        return wrapper
    return decorator


def login_required(func: Callable) -> Callable:
    """
    Reject the request with 401 unless the session carries a user_id.

    Place it under @api_handler so the error is rendered as JSON.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        if session.get('user_id') is None:
            raise AuthenticationError()
        return await func(*args, **kwargs)
    return wrapper
