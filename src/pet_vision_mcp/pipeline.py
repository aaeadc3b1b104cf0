"""Pet video analysis pipeline: validate, sample frames, ask Gemini, interpret.

``analyze_pet_video`` reports failures as an ``AnalysisOutcome`` error
instead of hiding them. ``analyze_or_fallback`` is the user-facing boundary:
it substitutes ``FALLBACK_RESULT`` for any failure except an invalid upload,
and flags the response as degraded.
"""

from __future__ import annotations

import asyncio
import logging
import time

from google.genai import types

from .client import GeminiClient
from .config import get_config
from .errors import AnalysisError, ErrorCategory, ExtractionFailure, UpstreamCallFailure, categorize_error
from .frames import extract_frames_from_file
from .interpreter import parse
from .models.analysis import AnalysisOutcome, AnalysisResult, ExtractionRequest, Frame, PetInfo
from .prompts.analysis import build_prompt
from .uploads import UploadedVideo, validate_upload

logger = logging.getLogger(__name__)

FALLBACK_RESULT = AnalysisResult(
    pet_info=PetInfo(breed="Golden Retriever", video_duration="10 seconds"),
    concern_level="Medium",
    summary=(
        "The pet shows signs of mild discomfort in the right hind leg, with occasional "
        "limping and weight shifting. Overall energy level appears normal, but there are "
        "indications of potential joint discomfort."
    ),
    observations=(
        "Intermittent limping on right hind leg",
        "Weight shifting away from right side when standing",
        "Slight hesitation before jumping or running",
        "Normal breathing pattern",
        "Alert and responsive to surroundings",
    ),
    possible_causes=(
        "Early-stage arthritis or joint inflammation",
        "Minor soft tissue injury (strain or sprain)",
        "Hip dysplasia (common in this breed)",
        "Recent overexertion during exercise",
    ),
    recommendations=(
        "Limit high-impact activities for 7-10 days",
        "Apply warm compress to the affected leg for 10-15 minutes twice daily",
        "Consider joint supplements containing glucosamine and chondroitin",
        "Monitor for worsening symptoms",
        "Ensure the pet maintains a healthy weight to reduce joint stress",
    ),
    veterinary_recommendation=(
        "A veterinary examination is recommended within the next 1-2 weeks if symptoms "
        "persist. If limping worsens or the pet shows signs of increased pain, seek "
        "veterinary care sooner."
    ),
)


async def _sample_frames(upload: UploadedVideo, request: ExtractionRequest) -> list[Frame]:
    """Run the blocking sampler in a worker thread, bounded by the extraction timeout.

    ``wait_for`` can only abandon the await, not the thread, so the sampler
    gets the same deadline and stops seeking on its own once it passes. The
    capture is released when the thread finishes its current read.
    """
    timeout = get_config().extraction_timeout_seconds
    deadline = time.monotonic() + timeout
    try:
        frames = await asyncio.wait_for(
            asyncio.to_thread(extract_frames_from_file, upload.path, request, deadline=deadline),
            timeout=timeout,
        )
    except ExtractionFailure:
        raise
    except TimeoutError as exc:
        raise ExtractionFailure(f"Frame extraction timed out after {timeout:g}s") from exc
    except Exception as exc:
        raise ExtractionFailure(f"Error loading video: {exc}") from exc

    if not frames:
        raise ExtractionFailure(f"No frames could be extracted from {upload.path.name}")
    return frames


def _build_contents(frames: list[Frame], request: ExtractionRequest) -> types.Content:
    """Prompt text first, then one inline JPEG part per frame in sampling order."""
    parts = [types.Part(text=build_prompt(len(frames), request.max_span_seconds))]
    parts.extend(types.Part.from_bytes(data=f.data, mime_type=f.mime_type) for f in frames)

    payload_chars = sum(len(f.b64()) for f in frames)
    logger.info(
        "Sending %d frames to Gemini (~%d KB base64, ~%d tokens est.)",
        len(frames),
        payload_chars // 1024,
        payload_chars // 4,
    )
    return types.Content(role="user", parts=parts)


async def _ask_model(contents: types.Content) -> str:
    try:
        text = await GeminiClient.generate(contents)
    except TimeoutError as exc:
        raise UpstreamCallFailure(
            f"Gemini request timed out after {get_config().upstream_timeout_seconds:g}s",
            category=ErrorCategory.NETWORK_ERROR,
        ) from exc
    except Exception as exc:
        category, _ = categorize_error(exc)
        if category == ErrorCategory.UNKNOWN:
            category = ErrorCategory.UPSTREAM_FAILED
        raise UpstreamCallFailure(f"Gemini request failed: {exc}", category=category) from exc

    logger.info("Received Gemini response (%d chars)", len(text))
    logger.debug("Response preview: %s", text[:200])
    return text


async def analyze_pet_video(
    upload: UploadedVideo,
    request: ExtractionRequest | None = None,
) -> AnalysisOutcome:
    """Analyze one uploaded pet video.

    Args:
        upload: The user's video; validated before anything else happens.
        request: Sampling settings (defaults from config).

    Returns:
        Outcome with the interpreted record, or with the ExtractionFailure /
        UpstreamCallFailure that prevented one.

    Raises:
        InvalidUpload: Wrong media type or oversized file. Nothing is
            extracted or sent in that case.
    """
    validate_upload(upload)
    request = request or ExtractionRequest.from_config()

    try:
        frames = await _sample_frames(upload, request)
        text = await _ask_model(_build_contents(frames, request))
    except AnalysisError as exc:
        logger.warning("Analysis of %s failed [%s]: %s", upload.path.name, exc.category.value, exc)
        return AnalysisOutcome(error=exc)

    return AnalysisOutcome(result=parse(text))


async def analyze_or_fallback(
    upload: UploadedVideo,
    request: ExtractionRequest | None = None,
) -> tuple[AnalysisResult, bool]:
    """Like ``analyze_pet_video`` but always yields a record.

    Returns:
        ``(record, degraded)``; *degraded* is True when *record* is the
        fixed ``FALLBACK_RESULT`` rather than a real analysis.
    """
    outcome = await analyze_pet_video(upload, request)
    if outcome.ok:
        return outcome.result, False
    logger.warning("Using fallback record, not a real analysis: %s", outcome.error)
    return FALLBACK_RESULT, True
