"""
Admin routes: tag catalog management.
"""

import asyncio

from quart import request, session

from services import post_service, tag_service
from utils.decorators import api_handler, login_required


async def _admin():
    user = await asyncio.to_thread(post_service.get_current_user, session.get('user_id'))
    return tag_service.require_admin(user)


def register_routes(blueprint):
    """Register admin routes on the given blueprint."""

    @blueprint.route('/tags', methods=['GET'])
    @api_handler()
    @login_required
    async def list_tags():
        user = await _admin()
        tags = await asyncio.to_thread(tag_service.list_tags, user)
        return {"tags": tags}

    @blueprint.route('/tags/<int:tag_id>/edit', methods=['POST'])
    @api_handler()
    @login_required
    async def edit_tag(tag_id):
        user = await _admin()
        form = await request.form
        tag = await asyncio.to_thread(
            tag_service.edit_tag, user, tag_id, form.get('name', ''), form.get('category', '')
        )
        return {"tag": tag}

    @blueprint.route('/tags/<int:tag_id>/delete', methods=['POST'])
    @api_handler()
    @login_required
    async def delete_tag(tag_id):
        user = await _admin()
        return await asyncio.to_thread(tag_service.delete_tag, user, tag_id)
