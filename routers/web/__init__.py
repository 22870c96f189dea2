"""
Web routes package.

This package contains the routes organized by functionality:
- posts: Upload, search, listing, detail, edit and delete
- users: Profile listings and blacklist settings
- admin: Tag catalog management
"""

from quart import Blueprint
from . import posts, users, admin

posts_blueprint = Blueprint('posts', __name__)
users_blueprint = Blueprint('users', __name__)
admin_blueprint = Blueprint('admin', __name__)

posts.register_routes(posts_blueprint)
users.register_routes(users_blueprint)
admin.register_routes(admin_blueprint)

__all__ = ['posts_blueprint', 'users_blueprint', 'admin_blueprint']
