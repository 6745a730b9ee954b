"""
Unit tests for upload intake (staging multipart files to local disk).
"""

import os
import pytest
from unittest.mock import AsyncMock, Mock

from fastapi import UploadFile

os.environ.setdefault('SUPABASE_URL', 'https://test.supabase.co')
os.environ.setdefault('SUPABASE_KEY', 'test-anon-key')

from gateway.config import Settings
from gateway.errors import PayloadTooLargeError
from gateway.services.intake import stage_upload


def _mock_upload(chunks, filename="cat.jpg", content_type="image/jpeg"):
    mock_file = Mock(spec=UploadFile)
    mock_file.filename = filename
    mock_file.content_type = content_type
    mock_file.read = AsyncMock(side_effect=list(chunks) + [b""])
    return mock_file


class TestStageUpload:

    @pytest.mark.asyncio
    async def test_no_file_returns_none(self, tmp_path):
        settings = Settings(upload_temp_dir=str(tmp_path))
        assert await stage_upload(None, settings) is None

    @pytest.mark.asyncio
    async def test_file_is_written_to_temp_dir(self, tmp_path):
        settings = Settings(upload_temp_dir=str(tmp_path))

        staged = await stage_upload(_mock_upload([b"abc", b"def"]), settings)

        assert staged.filename == "cat.jpg"
        assert staged.content_type == "image/jpeg"
        assert staged.size == 6
        assert os.path.dirname(staged.path) == str(tmp_path)
        assert staged.path.endswith(".jpg")
        with open(staged.path, "rb") as f:
            assert f.read() == b"abcdef"

    @pytest.mark.asyncio
    async def test_temp_dir_created_when_missing(self, tmp_path):
        target = tmp_path / "nested" / "staging"
        settings = Settings(upload_temp_dir=str(target))

        staged = await stage_upload(_mock_upload([b"x"]), settings)

        assert os.path.exists(staged.path)
        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_missing_filename_and_type_get_defaults(self, tmp_path):
        settings = Settings(upload_temp_dir=str(tmp_path))

        staged = await stage_upload(_mock_upload([b"x"], filename=None, content_type=None), settings)

        assert staged.filename == "upload"
        assert staged.content_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected_and_removed(self, tmp_path):
        settings = Settings(upload_temp_dir=str(tmp_path), upload_max_bytes=4)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await stage_upload(_mock_upload([b"abc", b"def"]), settings)

        assert exc_info.value.status_code == 413
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_discard_removes_staged_file(self, tmp_path):
        settings = Settings(upload_temp_dir=str(tmp_path))
        staged = await stage_upload(_mock_upload([b"x"]), settings)

        staged.discard()
        staged.discard()  # second call is a no-op

        assert not os.path.exists(staged.path)
