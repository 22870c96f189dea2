"""
Tests for file utilities (utils/file_utils.py)
"""
import os

import pytest
import config
from utils.file_utils import (
    get_hash_bucket,
    get_bucketed_path,
    get_asset_path,
    get_preview_path,
    get_asset_url,
    get_preview_url,
    new_temp_upload_path,
    remove_file,
    remove_files,
)

DIGEST = 'a3f' + '0' * 61


@pytest.mark.unit
class TestBucketedPaths:
    """Storage layout derived from the digest."""

    def test_bucket_is_digest_prefix(self):
        assert get_hash_bucket(DIGEST) == 'a3f'
        assert get_hash_bucket(DIGEST, bucket_chars=2) == 'a3'

    def test_bucketed_url_path(self):
        assert get_bucketed_path(f"{DIGEST}.png") == f"images/a3f/{DIGEST}.png"

    def test_asset_and_preview_paths(self, storage_dirs):
        assert get_asset_path(DIGEST, '.mp4') == os.path.join(
            storage_dirs['images'], 'a3f', f"{DIGEST}.mp4"
        )
        assert get_preview_path(DIGEST) == os.path.join(
            storage_dirs['thumbnails'], 'a3f', f"{DIGEST}{config.PREVIEW_EXTENSION}"
        )

    def test_urls(self):
        assert get_asset_url(DIGEST, '.gif') == f"images/a3f/{DIGEST}.gif"
        assert get_preview_url(DIGEST) == f"thumbnails/a3f/{DIGEST}.webp"

    def test_temp_upload_paths_are_unique(self, storage_dirs):
        first = new_temp_upload_path('.png')
        second = new_temp_upload_path('.png')
        assert first != second
        assert os.path.dirname(first) == storage_dirs['uploads']
        assert first.endswith('.png')


@pytest.mark.unit
class TestRemoval:
    """Best-effort cleanup helpers."""

    def test_remove_file(self, temp_dir):
        path = os.path.join(temp_dir, 'x.txt')
        open(path, 'w').close()
        assert remove_file(path) is True
        assert remove_file(path) is False
        assert remove_file(None) is False

    def test_remove_files_reports_failures(self, temp_dir):
        path = os.path.join(temp_dir, 'y.txt')
        open(path, 'w').close()
        directory = os.path.join(temp_dir, 'subdir')
        os.makedirs(directory)

        failed = remove_files([path, os.path.join(temp_dir, 'missing'), directory])

        assert not os.path.exists(path)
        # os.remove refuses directories; the failure is reported, not raised
        assert failed == [directory]
