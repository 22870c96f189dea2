from . import api_blueprint
from core.errors import NotFoundError
from services.background_tasks import ingestion_tracker
from utils.decorators import api_handler


@api_blueprint.route('/uploads/<task_id>')
@api_handler()
async def upload_status(task_id):
    """Status of an ingestion, for clients that lost the progress stream."""
    status = ingestion_tracker.get_task_status(task_id)
    if status is None:
        raise NotFoundError("Upload not found.")
    return {"upload": status}
