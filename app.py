import config
from quart import Quart
from datetime import timedelta
from werkzeug.exceptions import NotFound, RequestEntityTooLarge

from routers import posts_blueprint, users_blueprint, admin_blueprint, api_blueprint
from database import initialize_database
from services.background_tasks import ingestion_tracker
from utils.api_responses import not_found_response, payload_too_large_response
from utils.logging_config import setup_logging, get_logger
from utils.video_utils import is_ffmpeg_available


def create_app():
    """Create and configure the Quart application."""
    # Initialize logging first
    setup_logging(level=config.LOG_LEVEL)
    logger = get_logger('App')
    logger.info(f"Initializing {config.APP_NAME} application...")

    app = Quart(__name__)

    # Quart config
    app.config['SECRET_KEY'] = config.SECRET_KEY
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=4)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH_MB * 1024 * 1024

    # Ensure the database file and tables exist.
    initialize_database()

    app.register_blueprint(posts_blueprint, url_prefix='/posts')
    app.register_blueprint(users_blueprint, url_prefix='/users')
    app.register_blueprint(admin_blueprint, url_prefix='/admin')
    app.register_blueprint(api_blueprint, url_prefix='/api')

    @app.errorhandler(NotFound)
    async def handle_not_found(error):
        return not_found_response()

    @app.errorhandler(RequestEntityTooLarge)
    async def handle_too_large(error):
        return payload_too_large_response(config.MAX_CONTENT_LENGTH_MB)

    @app.after_serving
    async def drain_ingestions():
        # Let running uploads reach a terminal state so no partial assets remain
        await ingestion_tracker.wait_for_all()

    logger.info(f"Search index: {config.SEARCH_INDEX}, auto-tagger: "
                f"{'enabled' if config.ENABLE_AUTO_TAGGER else 'disabled'}")
    if not is_ffmpeg_available():
        logger.warning("ffmpeg not found in PATH, video uploads will fail")
    return app


if __name__ == '__main__':
    import uvicorn
    app = create_app()
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
