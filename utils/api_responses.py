"""
Standardized API response utilities.
App-level error handlers use these to answer in the same shape as @api_handler.
"""

from quart import jsonify, Response
from typing import Any, Dict, Tuple


def error_response(error: str, status_code: int = 400, data: Dict[str, Any] = None) -> Tuple[Response, int]:
    """
    Create a standardized error response.

    Example:
        return error_response("Invalid input", 400)
        # Returns: {"success": False, "error": "Invalid input"}, 400
    """
    response = {"success": False, "error": str(error)}
    if data:
        response.update(data)
    return jsonify(response), status_code


def not_found_response(message: str = "Resource not found") -> Tuple[Response, int]:
    """Create a 404 response."""
    return error_response(message, 404)


def payload_too_large_response(limit_mb: int) -> Tuple[Response, int]:
    """Create a 413 response for uploads over MAX_CONTENT_LENGTH."""
    return error_response(f"File too large (limit {limit_mb} MB)", 413)
