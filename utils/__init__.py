from .logging_config import setup_logging, get_logger
from .deduplication import get_content_digest, hash_stream
from .file_utils import (
    get_asset_path,
    get_preview_path,
    get_asset_url,
    get_preview_url,
    remove_file,
    remove_files,
)
from .tag_extraction import (
    normalize_tag_name,
    split_tag_string,
    parse_tag_input,
    parse_auto_tags,
    parse_search_query,
    merge_tag_lists,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'get_content_digest',
    'hash_stream',
    'get_asset_path',
    'get_preview_path',
    'get_asset_url',
    'get_preview_url',
    'remove_file',
    'remove_files',
    'normalize_tag_name',
    'split_tag_string',
    'parse_tag_input',
    'parse_auto_tags',
    'parse_search_query',
    'merge_tag_lists',
]
