"""Evenly spaced, downscaled JPEG stills from the start of a video.

Sampling is sequential: each seek must settle and its frame be read before
the next seek is issued, so output order always equals sampling order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from .errors import ExtractionFailure
from .models.analysis import ExtractionRequest, Frame

logger = logging.getLogger(__name__)


@dataclass
class VideoSource:
    """An open, decodable video and its playable duration in seconds."""

    capture: cv2.VideoCapture
    duration: float
    label: str = ""


def _probe_duration(capture: cv2.VideoCapture) -> float:
    fps = capture.get(cv2.CAP_PROP_FPS)
    frame_total = capture.get(cv2.CAP_PROP_FRAME_COUNT)
    if not fps or fps <= 0 or not frame_total or frame_total <= 0:
        raise ExtractionFailure(
            f"Cannot determine video duration (fps={fps!r}, frames={frame_total!r})"
        )
    return float(frame_total) / float(fps)


@contextmanager
def open_video_source(path: str | Path) -> Iterator[VideoSource]:
    """Open *path* for sampling; the capture is released on every exit path.

    Raises:
        ExtractionFailure: If the file cannot be opened or has no usable duration.
    """
    capture = cv2.VideoCapture(str(path))
    try:
        if not capture.isOpened():
            raise ExtractionFailure(f"Error loading video: {path}")
        yield VideoSource(capture=capture, duration=_probe_duration(capture), label=str(path))
    finally:
        capture.release()
        logger.debug("Released video handle for %s", path)


def plan_timestamps(duration: float, request: ExtractionRequest) -> list[float]:
    """Sample times in seconds: ``i * span / frame_count``, all strictly below the span."""
    span = min(duration, request.max_span_seconds)
    if request.frame_count == 0 or span <= 0:
        return []
    interval = span / request.frame_count
    times = (i * interval for i in range(request.frame_count))
    return [t for t in times if t < span]


def scaled_size(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """Shrink (never enlarge) so the longer edge equals *max_edge*, keeping aspect."""
    if width <= max_edge and height <= max_edge:
        return width, height
    if width > height:
        return max_edge, max(1, round(height / width * max_edge))
    return max(1, round(width / height * max_edge)), max_edge


def _encode_jpeg(image: np.ndarray, quality: float) -> bytes:
    ok, buf = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), round(quality * 100)])
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return buf.tobytes()


def _capture_frame(source: VideoSource, index: int, timestamp: float, request: ExtractionRequest) -> Frame:
    """Seek to *timestamp*, read the frame shown there, and encode it."""
    source.capture.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
    ok, image = source.capture.read()
    if not ok or image is None:
        raise RuntimeError(f"no frame decoded at {timestamp:.3f}s")

    height, width = image.shape[:2]
    new_width, new_height = scaled_size(width, height, request.max_edge)
    if (new_width, new_height) != (width, height):
        image = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)

    return Frame(
        index=index,
        timestamp=timestamp,
        width=new_width,
        height=new_height,
        data=_encode_jpeg(image, request.quality),
    )


def extract_frames(
    source: VideoSource,
    request: ExtractionRequest,
    *,
    deadline: float | None = None,
) -> list[Frame]:
    """Sample up to ``request.frame_count`` frames from the first seconds of *source*.

    A frame that fails to seek, decode, or encode is logged and skipped, so
    the result may be shorter than requested.

    Args:
        source: An open video from ``open_video_source``.
        request: Count, span, size and quality of the samples.
        deadline: ``time.monotonic()`` value after which no further seek is
            issued. A read already in progress is not interrupted.
    """
    frames: list[Frame] = []
    for index, timestamp in enumerate(plan_timestamps(source.duration, request)):
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning(
                "Deadline reached after %d frames of %s; stopping", len(frames), source.label
            )
            break
        try:
            frames.append(_capture_frame(source, index, timestamp, request))
        except Exception as exc:
            logger.warning("Skipping frame %d at %.3fs of %s: %s", index, timestamp, source.label, exc)
    return frames


def extract_frames_from_file(
    path: str | Path,
    request: ExtractionRequest | None = None,
    *,
    deadline: float | None = None,
) -> list[Frame]:
    """Open *path*, sample it until done or *deadline*, and release it.

    Raises:
        ExtractionFailure: If the video cannot be loaded at all.
    """
    request = request or ExtractionRequest.from_config()
    with open_video_source(path) as source:
        frames = extract_frames(source, request, deadline=deadline)
        logger.info(
            "Extracted %d/%d frames from %s (duration %.2fs, span %.2fs)",
            len(frames),
            request.frame_count,
            path,
            source.duration,
            min(source.duration, request.max_span_seconds),
        )
    return frames
