"""
User routes: profile post listings and blacklist settings.
"""

import asyncio

from quart import request, session

from services import post_service, user_service
from utils.decorators import api_handler, login_required
from utils.validation import parse_page


def register_routes(blueprint):
    """Register user routes on the given blueprint."""

    @blueprint.route('/<username>/posts', methods=['GET'])
    @api_handler()
    async def user_posts(username):
        page = parse_page(request.args.get('page'))
        viewer = await asyncio.to_thread(post_service.get_optional_user, session.get('user_id'))
        return await asyncio.to_thread(post_service.get_user_posts, username, viewer, page)

    @blueprint.route('/settings/blacklist', methods=['GET'])
    @api_handler()
    @login_required
    async def get_blacklist():
        user = await asyncio.to_thread(post_service.get_current_user, session.get('user_id'))
        return {"blacklist": user.blacklist}

    @blueprint.route('/settings/blacklist', methods=['POST'])
    @api_handler()
    @login_required
    async def save_blacklist():
        user = await asyncio.to_thread(post_service.get_current_user, session.get('user_id'))
        form = await request.form
        blacklist = await asyncio.to_thread(user_service.save_blacklist, user, form.get('blacklist', ''))
        return {"blacklist": blacklist}
