"""
Post routes: upload (streaming progress), listing, search, detail, edit, delete.
"""

import asyncio
import os

from quart import request, session, Response
from werkzeug.utils import secure_filename

import config
from core.errors import ValidationError
from services import post_service
from services.ingestion_pipeline import (
    UploadRequest,
    validate_upload,
    start_ingestion,
    iter_progress,
    discard_upload,
)
from services.query.search import perform_search
from utils.decorators import api_handler, login_required
from utils.file_utils import new_temp_upload_path
from utils.logging_config import get_logger
from utils.validation import parse_page, validate_category

logger = get_logger('PostRoutes')

NDJSON_MIMETYPE = 'application/x-ndjson'


async def _viewer():
    return await asyncio.to_thread(post_service.get_optional_user, session.get('user_id'))


async def _current_user():
    return await asyncio.to_thread(post_service.get_current_user, session.get('user_id'))


def register_routes(blueprint):
    """Register post routes on the given blueprint."""

    @blueprint.route('/upload', methods=['POST'])
    @api_handler()
    @login_required
    async def upload():
        """
        Accept one file and stream the ingestion progress back as NDJSON.

        Everything that can be rejected without touching the file (login,
        missing fields, MIME type) is answered with a plain status code.
        """
        user = await _current_user()
        files = await request.files
        form = await request.form

        upload_file = files.get('file')
        tag_string = form.get('tags', '')
        if upload_file is None or not upload_file.filename:
            raise ValidationError("File and tags are required.")

        mimetype = upload_file.mimetype
        validate_upload(mimetype, tag_string)
        category = validate_category(form.get('category'), config.DEFAULT_TAG_CATEGORY)

        filename = secure_filename(upload_file.filename)
        temp_path = new_temp_upload_path(os.path.splitext(filename)[1].lower())
        try:
            await upload_file.save(temp_path)
            _, events = start_ingestion(UploadRequest(
                temp_path=temp_path,
                mimetype=mimetype,
                tag_string=tag_string,
                uploader_id=user.id,
                category=category,
                original_filename=filename,
            ))
        except BaseException:
            discard_upload(temp_path)
            raise

        response = Response(iter_progress(events), mimetype=NDJSON_MIMETYPE)
        # Transcoding plus tagging can outlast the default response timeout
        response.timeout = None
        return response

    @blueprint.route('', methods=['GET'])
    @api_handler()
    async def latest_posts():
        page = parse_page(request.args.get('page'))
        viewer = await _viewer()
        result = await asyncio.to_thread(post_service.get_latest_posts, viewer, page)
        return result.to_dict()

    @blueprint.route('/search', methods=['GET'])
    @api_handler()
    async def search_posts():
        query = request.args.get('tags', '')
        page = parse_page(request.args.get('page'))
        viewer = await _viewer()
        result = await asyncio.to_thread(perform_search, query, viewer, page, config.POSTS_PER_PAGE)
        return result.to_dict()

    @blueprint.route('/<int:post_id>', methods=['GET'])
    @api_handler()
    async def show_post(post_id):
        post = await asyncio.to_thread(post_service.get_post_detail, post_id)
        return {"post": post}

    @blueprint.route('/<int:post_id>/edit', methods=['POST'])
    @api_handler()
    @login_required
    async def edit_post(post_id):
        user = await _current_user()
        form = await request.form
        category = validate_category(form.get('category'), config.DEFAULT_TAG_CATEGORY)
        post = await asyncio.to_thread(
            post_service.edit_post_tags, post_id, user, form.get('tags', ''), category
        )
        return {"post": post, "redirect": f"/posts/{post_id}"}

    @blueprint.route('/<int:post_id>', methods=['DELETE'])
    @blueprint.route('/<int:post_id>/delete', methods=['POST'])
    @api_handler()
    @login_required
    async def delete_post(post_id):
        user = await _current_user()
        await asyncio.to_thread(post_service.delete_post, post_id, user)
        return {"deleted": post_id, "redirect": "/"}
