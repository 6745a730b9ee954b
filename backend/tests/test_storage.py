"""
Unit tests for the Supabase Storage media adapter.
Tests upload, locator generation and parsing, and deletion.
"""

import os
import pytest
from unittest.mock import Mock, patch

# Mock environment variables before importing app modules
os.environ.setdefault('SUPABASE_URL', 'https://test.supabase.co')
os.environ.setdefault('SUPABASE_KEY', 'test-anon-key')

from gateway.errors import DeleteError, LocatorNotFoundError, UploadError
from gateway.services.storage import (
    MediaStore,
    _rewrite_url_host,
    build_storage_path,
    sanitize_filename,
)

PUBLIC_BASE = "https://test.supabase.co/storage/v1/object/public/media"


def _make_store(public_url=None):
    client = Mock()
    bucket = client.storage.from_.return_value
    bucket.get_public_url.side_effect = lambda path: f"{PUBLIC_BASE}/{path}"
    return MediaStore(client, "media", public_url=public_url), bucket


class TestSanitizeFilename:

    def test_special_characters_replaced(self):
        assert sanitize_filename("My Photo (2024).jpg") == "My_Photo__2024_.jpg"

    def test_directory_components_dropped(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"

    def test_empty_name_falls_back(self):
        assert sanitize_filename("") == "file"
        assert sanitize_filename("...") == "file"

    def test_storage_path_is_unique_per_upload(self):
        """Two uploads of the same filename must never share a path."""
        first = build_storage_path("cat.jpg")
        second = build_storage_path("cat.jpg")
        assert first != second
        assert first.startswith("uploads/")
        assert first.endswith("/cat.jpg")


class TestUpload:

    def test_successful_upload_returns_public_locator(self, tmp_path):
        local = tmp_path / "cat.jpg"
        content = b"\xff\xd8\xff" + b"0" * 100
        local.write_bytes(content)
        store, bucket = _make_store()

        with patch('gateway.services.storage.uuid4') as mock_uuid:
            mock_uuid.return_value = Mock(hex="abc123")
            stored = store.upload(str(local), "cat.jpg", "image/jpeg")

        assert stored.path == "uploads/abc123/cat.jpg"
        assert stored.url == f"{PUBLIC_BASE}/uploads/abc123/cat.jpg"
        assert stored.size == 103
        assert stored.content_type == "image/jpeg"

        store.client.storage.from_.assert_called_with("media")
        args = bucket.upload.call_args[0]
        assert args[0] == "uploads/abc123/cat.jpg"
        assert args[1] == content
        assert args[2] == {"content-type": "image/jpeg", "upsert": "false"}

    def test_local_file_removed_after_success(self, tmp_path):
        local = tmp_path / "doc.pdf"
        local.write_bytes(b"%PDF-1.4")
        store, _ = _make_store()

        store.upload(str(local))

        assert not local.exists()

    def test_content_type_guessed_from_filename(self, tmp_path):
        local = tmp_path / "staged.tmp"
        local.write_bytes(b"png")
        store, bucket = _make_store()

        stored = store.upload(str(local), "avatar.png")

        assert stored.content_type == "image/png"
        assert bucket.upload.call_args[0][2]["content-type"] == "image/png"

    def test_missing_local_file_raises_upload_error(self, tmp_path):
        store, bucket = _make_store()

        with pytest.raises(UploadError) as exc_info:
            store.upload(str(tmp_path / "nope.jpg"))

        assert "not found" in str(exc_info.value)
        bucket.upload.assert_not_called()

    def test_store_failure_raises_upload_error_and_keeps_local_file(self, tmp_path):
        local = tmp_path / "cat.jpg"
        local.write_bytes(b"jpeg")
        store, bucket = _make_store()
        bucket.upload.side_effect = Exception("Storage error")

        with pytest.raises(UploadError) as exc_info:
            store.upload(str(local))

        assert "Storage error" in str(exc_info.value)
        assert exc_info.value.status_code == 500
        assert local.exists()

    def test_trailing_question_mark_stripped(self, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"a")
        store, bucket = _make_store()
        bucket.get_public_url.side_effect = lambda path: f"{PUBLIC_BASE}/{path}?"

        stored = store.upload(str(local))

        assert not stored.url.endswith("?")

    def test_public_url_rewrites_host(self, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"a")
        store, bucket = _make_store(public_url="https://cdn.example.com")
        bucket.get_public_url.side_effect = (
            lambda path: f"http://host.docker.internal:54321/storage/v1/object/public/media/{path}"
        )

        stored = store.upload(str(local))

        assert stored.url.startswith("https://cdn.example.com/storage/v1/object/public/media/uploads/")


class TestRewriteUrlHost:

    def test_no_public_url_returns_unchanged(self):
        url = "http://host.docker.internal:54321/storage/v1/object/public/media/uploads/a/b.jpg"
        assert _rewrite_url_host(url, None) == url
        assert _rewrite_url_host(url, "") == url

    def test_path_and_query_preserved(self):
        url = "http://host.docker.internal:54321/storage/v1/object/sign/media/uploads/a/b.jpg?token=t"
        result = _rewrite_url_host(url, "http://localhost:54321")
        assert result == "http://localhost:54321/storage/v1/object/sign/media/uploads/a/b.jpg?token=t"


class TestLocatorToPath:

    def test_public_url(self):
        store, _ = _make_store()
        assert store.locator_to_path(f"{PUBLIC_BASE}/uploads/ab12/cat.jpg") == "uploads/ab12/cat.jpg"

    def test_signed_url_with_query(self):
        store, _ = _make_store()
        url = "https://test.supabase.co/storage/v1/object/sign/media/uploads/ab12/cat.jpg?token=abc"
        assert store.locator_to_path(url) == "uploads/ab12/cat.jpg"

    def test_percent_encoded_path_is_decoded(self):
        store, _ = _make_store()
        assert store.locator_to_path(f"{PUBLIC_BASE}/uploads/ab12/my%20cat.jpg") == "uploads/ab12/my cat.jpg"

    def test_bare_storage_path(self):
        store, _ = _make_store()
        assert store.locator_to_path("uploads/ab12/cat.jpg") == "uploads/ab12/cat.jpg"

    @pytest.mark.parametrize("locator", [
        "",
        "   ",
        "https://example.com/cat.jpg",
        "https://test.supabase.co/storage/v1/object/public/other-bucket/uploads/ab12/cat.jpg",
        f"{PUBLIC_BASE}/uploads/../secrets.txt",
        "avatars/cat.jpg",
        "uploads",
    ])
    def test_malformed_locators_rejected(self, locator):
        store, _ = _make_store()
        with pytest.raises(DeleteError):
            store.locator_to_path(locator)

    def test_non_string_rejected(self):
        store, _ = _make_store()
        with pytest.raises(DeleteError):
            store.locator_to_path(None)


class TestDelete:

    def test_successful_delete_returns_storage_path(self):
        store, bucket = _make_store()
        bucket.remove.return_value = [{"name": "uploads/ab12/cat.jpg"}]

        result = store.delete(f"{PUBLIC_BASE}/uploads/ab12/cat.jpg")

        assert result == "uploads/ab12/cat.jpg"
        bucket.remove.assert_called_once_with(["uploads/ab12/cat.jpg"])

    def test_missing_object_raises_not_found(self):
        """Supabase returns an empty list when nothing was removed."""
        store, bucket = _make_store()
        bucket.remove.return_value = []

        with pytest.raises(LocatorNotFoundError) as exc_info:
            store.delete(f"{PUBLIC_BASE}/uploads/ab12/cat.jpg")

        assert exc_info.value.status_code == 404
        assert exc_info.value.public_message == "File not found"

    def test_store_failure_raises_delete_error(self):
        store, bucket = _make_store()
        bucket.remove.side_effect = Exception("connection refused")

        with pytest.raises(DeleteError) as exc_info:
            store.delete("uploads/ab12/cat.jpg")

        assert not isinstance(exc_info.value, LocatorNotFoundError)
        assert "connection refused" in str(exc_info.value)

    def test_malformed_locator_never_reaches_store(self):
        store, bucket = _make_store()

        with pytest.raises(DeleteError):
            store.delete("not a locator")

        bucket.remove.assert_not_called()


class TestBucketExists:

    def test_bucket_found(self):
        store, _ = _make_store()
        media = Mock()
        media.name = "media"
        store.client.storage.list_buckets.return_value = [media]
        assert store.bucket_exists() is True

    def test_bucket_missing(self):
        store, _ = _make_store()
        store.client.storage.list_buckets.return_value = []
        assert store.bucket_exists() is False
