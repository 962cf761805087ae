"""
Unit tests for upload validation and scoped audio staging.
"""
import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from src.voice.audio import detect_audio_format, staged_audio
from src.voice.exceptions import InputError


def _upload(content: bytes, filename: str = "note.webm", content_type: str = "audio/webm") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestDetectAudioFormat:

    @pytest.mark.parametrize(
        "filename,content_type,expected",
        [
            ("note.webm", "audio/webm", "webm"),
            ("NOTE.WAV", None, "wav"),
            ("clip.m4a", "application/octet-stream", "m4a"),
            ("blob", "audio/mpeg", "mp3"),
            ("blob", "audio/x-wav", "wav"),
            ("blob", "audio/ogg; codecs=opus", "ogg"),
            ("blob", "audio/mp4", "m4a"),
            # Any other audio type is sent as webm
            ("blob", "audio/aac", "webm"),
        ],
    )
    @pytest.mark.unit
    def test_supported(self, filename, content_type, expected):
        assert detect_audio_format(filename, content_type) == expected

    @pytest.mark.parametrize(
        "filename,content_type",
        [
            ("notes.txt", "text/plain"),
            ("photo.jpg", "image/jpeg"),
            (None, None),
        ],
    )
    @pytest.mark.unit
    def test_unsupported(self, filename, content_type):
        with pytest.raises(InputError):
            detect_audio_format(filename, content_type)


class TestStagedAudio:

    @pytest.mark.unit
    async def test_file_exists_only_inside_the_block(self, tmp_path):
        async with staged_audio(_upload(b"fake-audio"), upload_dir=tmp_path) as staged:
            path = staged.path
            assert path.exists()
            assert path.read_bytes() == b"fake-audio"
            assert path.suffix == ".webm"
            assert staged.size_bytes == 10
            assert staged.audio_format == "webm"

        assert not path.exists()

    @pytest.mark.unit
    async def test_file_removed_when_block_fails(self, tmp_path):
        with pytest.raises(RuntimeError):
            async with staged_audio(_upload(b"fake-audio"), upload_dir=tmp_path) as staged:
                path = staged.path
                raise RuntimeError("speech service exploded")

        assert not path.exists()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.unit
    async def test_unique_names(self, tmp_path):
        async with staged_audio(_upload(b"a"), upload_dir=tmp_path) as first:
            async with staged_audio(_upload(b"b"), upload_dir=tmp_path) as second:
                assert first.path != second.path

    @pytest.mark.unit
    async def test_empty_upload(self, tmp_path):
        with pytest.raises(InputError, match="empty"):
            async with staged_audio(_upload(b""), upload_dir=tmp_path):
                pass

    @pytest.mark.unit
    async def test_oversized_upload(self, tmp_path):
        with pytest.raises(InputError, match="too large"):
            async with staged_audio(_upload(b"x" * 11), upload_dir=tmp_path, max_bytes=10):
                pass

        assert not tmp_path.exists() or list(tmp_path.iterdir()) == []

    @pytest.mark.unit
    async def test_not_audio(self, tmp_path):
        with pytest.raises(InputError, match="Unsupported audio format"):
            async with staged_audio(_upload(b"hello", "notes.txt", "text/plain"), upload_dir=tmp_path):
                pass
