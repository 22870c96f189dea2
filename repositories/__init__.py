"""
Repository modules for the data access layer.

- post_repository: post records
- tag_repository: the tag catalog (get-or-create, admin edits)
- dedup_repository: content digest -> post id index
- user_repository: user records consumed from the auth collaborator

Import the modules directly, e.g. `from repositories import tag_repository`.
"""

__all__ = [
    'dedup_repository',
    'post_repository',
    'tag_repository',
    'user_repository',
]
