"""Upload acceptance: media-type allow-list and size cap, checked before any processing."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .config import get_config
from .errors import ErrorCategory, InvalidUpload

logger = logging.getLogger(__name__)

ACCEPTED_MEDIA_TYPES: frozenset[str] = frozenset({
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
})

# Extension -> declared type, including types we recognise but reject.
EXTENSION_MEDIA_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
    ".qt": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".mpeg": "video/mpeg",
    ".wmv": "video/x-ms-wmv",
    ".3gpp": "video/3gpp",
}

UNSUPPORTED_TYPE_MESSAGE = "Please upload an MP4, MOV, or QuickTime video file."


class UploadedVideo(BaseModel):
    """A user-selected video: where it is, what type it claims to be, how big it is."""

    model_config = ConfigDict(frozen=True)

    path: Path
    media_type: str
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


def declared_media_type(path: Path) -> str:
    """Media type implied by the file extension (``application/octet-stream`` if unknown)."""
    return EXTENSION_MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")


def load_upload(file_path: str, media_type: str | None = None) -> UploadedVideo:
    """Describe a local video file for validation.

    Raises:
        InvalidUpload: If the path does not exist or is not a regular file.
    """
    p = Path(file_path).expanduser().resolve()
    if not p.is_file():
        raise InvalidUpload(f"Video file not found: {file_path}", category=ErrorCategory.FILE_NOT_FOUND)
    return UploadedVideo(
        path=p,
        media_type=(media_type or declared_media_type(p)).strip().lower(),
        size_bytes=p.stat().st_size,
    )


def validate_upload(upload: UploadedVideo, *, max_bytes: int | None = None) -> UploadedVideo:
    """Reject an upload with the wrong media type or an oversized payload.

    Type is checked before size, so an oversized file of the wrong type is
    reported as the wrong type.

    Raises:
        InvalidUpload: With a message suitable for showing to the user.
    """
    cfg = get_config()
    limit = max_bytes if max_bytes is not None else cfg.max_upload_bytes

    if upload.media_type not in ACCEPTED_MEDIA_TYPES:
        logger.info("Rejected upload %s: type %s", upload.path.name, upload.media_type)
        raise InvalidUpload(UNSUPPORTED_TYPE_MESSAGE, category=ErrorCategory.UPLOAD_UNSUPPORTED_TYPE)
    if upload.size_bytes > limit:
        logger.info("Rejected upload %s: %.1f MB", upload.path.name, upload.size_mb)
        raise InvalidUpload(
            f"File size exceeds {limit // (1024 * 1024)}MB limit.",
            category=ErrorCategory.UPLOAD_TOO_LARGE,
        )
    return upload
