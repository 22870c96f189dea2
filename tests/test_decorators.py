"""
Tests for API decorators
"""
import pytest
from unittest.mock import patch
from quart import Quart, jsonify

from core.errors import (
    AuthenticationError,
    ConflictError,
    DuplicateContentError,
    NotFoundError,
    PermissionDeniedError,
    ProcessingError,
    ValidationError,
)
from utils.decorators import api_handler, login_required


@pytest.fixture
def app():
    """Create a test Quart app."""
    app = Quart(__name__)
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test'
    return app


class TestApiHandlerDecorator:
    """Test @api_handler decorator."""

    @pytest.mark.asyncio
    async def test_successful_response_wrapping(self, app):
        """Dict responses are auto-wrapped with success=True."""
        @api_handler()
        async def test_endpoint():
            return {"data": "value", "count": 10}

        async with app.app_context():
            result = await test_endpoint()
            data = await result.get_json()

            assert data["success"] is True
            assert data["data"] == "value"
            assert data["count"] == 10

    @pytest.mark.asyncio
    async def test_successful_response_with_existing_success(self, app):
        @api_handler()
        async def test_endpoint():
            return {"success": False, "data": "value"}

        async with app.app_context():
            result = await test_endpoint()
            data = await result.get_json()
            assert data["success"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize('error,status', [
        (ValidationError("Tags are required."), 400),
        (AuthenticationError(), 401),
        (PermissionDeniedError(), 403),
        (NotFoundError("Post not found."), 404),
        (DuplicateContentError(), 409),
        (ConflictError(), 409),
        (ProcessingError("Server error during upload."), 500),
    ])
    async def test_error_taxonomy_maps_to_status(self, app, error, status):
        @api_handler(log_errors=False)
        async def test_endpoint():
            raise error

        async with app.app_context():
            response, status_code = await test_endpoint()
            data = await response.get_json()

            assert status_code == status
            assert data == {"success": False, "error": error.message}

    @pytest.mark.asyncio
    async def test_duplicate_carries_existing_post_id(self, app):
        @api_handler()
        async def test_endpoint():
            raise DuplicateContentError(existing_post_id=7)

        async with app.app_context():
            response, status_code = await test_endpoint()
            data = await response.get_json()

            assert status_code == 409
            assert data["post_id"] == 7
            assert data["error"] == "This file has already been uploaded."

    @pytest.mark.asyncio
    async def test_value_error_returns_400(self, app):
        @api_handler()
        async def test_endpoint():
            raise ValueError("Invalid input")

        async with app.app_context():
            response, status_code = await test_endpoint()
            data = await response.get_json()

            assert status_code == 400
            assert data["error"] == "Invalid input"

    @pytest.mark.asyncio
    async def test_permission_error_returns_403(self, app):
        @api_handler()
        async def test_endpoint():
            raise PermissionError("Access denied")

        async with app.app_context():
            response, status_code = await test_endpoint()
            assert status_code == 403

    @pytest.mark.asyncio
    async def test_generic_exception_hides_details(self, app):
        """Unexpected errors answer 500 without leaking the message."""
        @api_handler(log_errors=False)
        async def test_endpoint():
            raise RuntimeError("database password is hunter2")

        async with app.app_context():
            response, status_code = await test_endpoint()
            data = await response.get_json()

            assert status_code == 500
            assert data == {"success": False, "error": "Internal server error"}

    @pytest.mark.asyncio
    async def test_non_dict_response_passed_through(self, app):
        @api_handler()
        async def test_endpoint():
            return jsonify({"custom": "response"}), 201

        async with app.app_context():
            result = await test_endpoint()
            assert isinstance(result, tuple)
            assert result[1] == 201

    @pytest.mark.asyncio
    async def test_log_errors_disabled(self, app):
        @api_handler(log_errors=False)
        async def test_endpoint():
            raise RuntimeError("quiet")

        async with app.app_context():
            with patch('utils.decorators.logger') as mock_logger:
                await test_endpoint()
                mock_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_server_errors_logged(self, app):
        @api_handler()
        async def test_endpoint():
            raise ProcessingError("ffmpeg exploded")

        async with app.app_context():
            with patch('utils.decorators.logger') as mock_logger:
                await test_endpoint()
                mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_http_exceptions_reach_app_handlers(self, app):
        from werkzeug.exceptions import RequestEntityTooLarge

        @api_handler()
        async def test_endpoint():
            raise RequestEntityTooLarge()

        async with app.app_context():
            with pytest.raises(RequestEntityTooLarge):
                await test_endpoint()


class TestLoginRequired:
    """Test @login_required combined with @api_handler."""

    @pytest.mark.asyncio
    async def test_anonymous_gets_401(self, app):
        @api_handler()
        @login_required
        async def test_endpoint():
            return {"data": "protected"}

        async with app.test_request_context('/'):
            response, status_code = await test_endpoint()
            data = await response.get_json()

            assert status_code == 401
            assert data["error"] == "You must be logged in."

    @pytest.mark.asyncio
    async def test_logged_in_passes(self, app):
        from quart import session

        @api_handler()
        @login_required
        async def test_endpoint():
            return {"user_id": session['user_id']}

        async with app.test_request_context('/'):
            session['user_id'] = 3
            result = await test_endpoint()
            data = await result.get_json()

            assert data == {"success": True, "user_id": 3}

