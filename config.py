"""
Centralized configuration for all modules
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Application name (shown in responses and logs)
APP_NAME = os.environ.get('APP_NAME', 'Sambooru')

# Secret key for Quart sessions
# Set this in your .env file to a long, random string
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-for-production')

# ==================== PATHS ====================

# Canonical assets and previews
IMAGE_DIRECTORY = os.environ.get('IMAGE_DIRECTORY', './static/images')
THUMB_DIR = os.environ.get('THUMB_DIR', './static/thumbnails')

# Transient uploads land here until the pipeline finishes with them
UPLOAD_TEMP_DIR = os.environ.get('UPLOAD_TEMP_DIR', './uploads')

# Number of leading digest characters used as bucket directory (3 = 4096 buckets)
BUCKET_CHARS = 3

# ==================== DATABASE ====================

DATABASE_PATH = os.environ.get('DATABASE_PATH', './sambooru.db')

# SQLite cache size in MB
DB_CACHE_SIZE_MB = int(os.environ.get('DB_CACHE_SIZE_MB', 64))

# Memory-mapped I/O size in MB
DB_MMAP_SIZE_MB = int(os.environ.get('DB_MMAP_SIZE_MB', 256))

# WAL checkpoint interval (number of frames)
DB_WAL_AUTOCHECKPOINT = int(os.environ.get('DB_WAL_AUTOCHECKPOINT', 1000))

# ==================== MEDIA PROCESSING ====================

# Streaming read size for content hashing
HASH_CHUNK_SIZE = 64 * 1024

# MIME allow-list, mapped to the stored media type
ALLOWED_MIME_TYPES = {
    'image/jpeg': 'image',
    'image/png': 'image',
    'image/gif': 'image',
    'video/mp4': 'video',
    'video/webm': 'video',
    'video/quicktime': 'video',
}

# Stored as uploaded; re-encoding would drop the animation
ANIMATED_MIME_TYPES = ('image/gif',)

# Static images are normalized to PNG
CANONICAL_IMAGE_EXTENSION = '.png'
CANONICAL_PNG_COMPRESS_LEVEL = 7

# Videos are normalized to H.264/AAC MP4 with the moov atom up front
CANONICAL_VIDEO_EXTENSION = '.mp4'
FFMPEG_VIDEO_ARGS = [
    '-c:v', 'libx264',
    '-preset', 'veryfast',
    '-crf', '23',
    '-pix_fmt', 'yuv420p',
    '-c:a', 'aac',
    '-b:a', '128k',
    '-movflags', '+faststart',
]

# Seconds
TRANSCODE_TIMEOUT = int(os.environ.get('TRANSCODE_TIMEOUT', 600))

# Upper bound on concurrently running ffmpeg processes
MAX_CONCURRENT_TRANSCODES = int(os.environ.get('MAX_CONCURRENT_TRANSCODES', 2))

# Previews
PREVIEW_SIZE = 150  # Max dimension for previews
PREVIEW_QUALITY = 85
PREVIEW_EXTENSION = '.webp'
PREVIEW_FRAME_OFFSET = 1.0  # seconds into the transcoded video

# ==================== AUTO TAGGER (OLLAMA) ====================

ENABLE_AUTO_TAGGER = os.environ.get('ENABLE_AUTO_TAGGER', 'true').lower() in ('true', '1', 'yes')
OLLAMA_HOST = os.environ.get('OLLAMA_HOST', 'http://localhost:11434')
AUTO_TAGGER_MODEL = os.environ.get('AUTO_TAGGER_MODEL', 'moondream')
AUTO_TAGGER_PROMPT = (
    'List keywords for this image, separated by spaces. '
    'Example: "1girl cat_ears blue_hair smile"'
)

# Hard wall-clock limit around one tagging call (seconds)
AUTO_TAGGER_TIMEOUT = float(os.environ.get('AUTO_TAGGER_TIMEOUT', 120))

# Free-text models ramble; keep the first N tokens
AUTO_TAGGER_MAX_TAGS = int(os.environ.get('AUTO_TAGGER_MAX_TAGS', 30))

# ==================== TAGS & SEARCH ====================

DEFAULT_TAG_CATEGORY = 'general'

# Search index: 'scan' reads the store on every query, 'inverted' keeps
# tag -> posts in memory (only valid with a single server process)
SEARCH_INDEX = os.environ.get('SEARCH_INDEX', 'scan')

# Pagination
POSTS_PER_PAGE = 50
LATEST_POSTS_PER_PAGE = 20

# ==================== UPLOAD STREAM ====================

# Seconds of silence before a keepalive event is written to the upload stream
KEEPALIVE_INTERVAL = float(os.environ.get('KEEPALIVE_INTERVAL', 10))

# Finished ingestion records stay queryable this long (seconds)
INGESTION_RETENTION_SECONDS = int(os.environ.get('INGESTION_RETENTION_SECONDS', 3600))

# Max request size (MB)
MAX_CONTENT_LENGTH_MB = int(os.environ.get('MAX_CONTENT_LENGTH_MB', 200))

# ==================== LOGGING ====================

# Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# ==================== WEB SERVER ====================

HOST = os.environ.get('HOST', '0.0.0.0')
PORT = int(os.environ.get('PORT', 3000))


def get_media_type(mimetype: str):
    """Return 'image' / 'video' for an allow-listed MIME type, else None."""
    if not mimetype:
        return None
    return ALLOWED_MIME_TYPES.get(mimetype.lower())


def is_animated_mimetype(mimetype: str) -> bool:
    """Check if a MIME type is stored untouched to keep its animation."""
    return bool(mimetype) and mimetype.lower() in ANIMATED_MIME_TYPES
