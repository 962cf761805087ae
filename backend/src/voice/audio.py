"""
Scoped staging of uploaded audio.

The upload is written to a uniquely named file for the speech service and
removed when the scope exits, on success and on failure alike.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import UploadFile

from src.config import settings
from src.voice.exceptions import InputError
from src.voice.schemas import AudioInput

logger = logging.getLogger(__name__)

ALLOWED_AUDIO_FORMATS = ("webm", "wav", "mp3", "flac", "ogg", "m4a")
CHUNK_SIZE = 64 * 1024


def detect_audio_format(filename: Optional[str], content_type: Optional[str]) -> str:
    """
    Audio container from the file extension, else from an audio/* MIME type.

    Raises:
        InputError: If neither names a supported audio format
    """
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    if suffix in ALLOWED_AUDIO_FORMATS:
        return suffix

    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type.startswith("audio/"):
        subtype = content_type.split("/", 1)[1]
        aliases = {"mpeg": "mp3", "x-wav": "wav", "wave": "wav", "mp4": "m4a", "x-m4a": "m4a", "x-flac": "flac"}
        subtype = aliases.get(subtype, subtype)
        if subtype in ALLOWED_AUDIO_FORMATS:
            return subtype
        # Any other audio/* is accepted and sent as webm
        return "webm"

    raise InputError(
        f"Unsupported audio format. Allowed: {', '.join(ALLOWED_AUDIO_FORMATS)}"
    )


async def _read_limited(upload: UploadFile, max_bytes: int) -> bytes:
    chunks = []
    size = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise InputError(f"Audio file too large. Max size: {max_bytes / (1024 * 1024):.0f}MB")
        chunks.append(chunk)
    return b"".join(chunks)


@asynccontextmanager
async def staged_audio(
    upload: UploadFile,
    upload_dir: Optional[Path] = None,
    max_bytes: int = settings.VOICE_MAX_AUDIO_BYTES,
) -> AsyncIterator[AudioInput]:
    """
    Validates an upload and stages it on disk for the duration of the block.

    Raises:
        InputError: If the audio is empty, too large or not audio
    """
    audio_format = detect_audio_format(upload.filename, upload.content_type)
    content = await _read_limited(upload, max_bytes)
    if not content:
        raise InputError("Audio file is empty")

    directory = Path(upload_dir or settings.VOICE_UPLOAD_DIR)
    path = directory / f"{uuid.uuid4().hex}.{audio_format}"

    try:
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, content)
        logger.info(f"Staged audio {path.name} ({len(content)} bytes)")
        yield AudioInput(path=path, size_bytes=len(content), audio_format=audio_format)
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete staged audio {path}: {e}")
