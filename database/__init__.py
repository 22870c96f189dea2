from .core import (
    DB_FILE,
    get_db_connection,
    db_transaction,
    initialize_database,
    next_id,
)
from .models import Post, Tag, User, MediaType, Role

__all__ = [
    'DB_FILE',
    'get_db_connection',
    'db_transaction',
    'initialize_database',
    'next_id',
    'Post',
    'Tag',
    'User',
    'MediaType',
    'Role',
]
