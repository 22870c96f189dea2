from .web import posts_blueprint, users_blueprint, admin_blueprint
from .api import api_blueprint

__all__ = ['posts_blueprint', 'users_blueprint', 'admin_blueprint', 'api_blueprint']
