"""Pet video tools — upload/analyze and results view on a FastMCP sub-server."""

from __future__ import annotations

import logging

from fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..errors import InvalidUpload, make_tool_error
from ..handoff import result_store
from ..pipeline import analyze_or_fallback
from ..types import MediaType, ResultId, VideoFilePath
from ..uploads import load_upload

logger = logging.getLogger(__name__)
analysis_server = FastMCP("pet-video")

LANDING_VIEW = "landing"


@analysis_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def pet_video_analyze(
    file_path: VideoFilePath,
    media_type: MediaType = None,
) -> dict:
    """Screen a short pet video for visible health concerns.

    Samples frames from the first seconds of the video, asks Gemini for a
    veterinary-style assessment, and returns it as a structured record.
    If the analysis itself cannot be completed, a fixed demonstration
    record is returned with ``degraded`` set to True.

    Args:
        file_path: Path to the local video file.
        media_type: Declared media type; inferred from the extension when omitted.

    Returns:
        Dict with result_id (for pet_video_results), degraded flag, and the
        analysis record; or a tool error when the upload is rejected.
    """
    try:
        upload = load_upload(file_path, media_type)
        record, degraded = await analyze_or_fallback(upload)
    except InvalidUpload as exc:
        return make_tool_error(exc)

    stored = result_store.put(record, degraded=degraded, source_name=upload.path.name)
    logger.info("Stored analysis %s for %s (degraded=%s)", stored.result_id, upload.path.name, degraded)
    return {
        "result_id": stored.result_id,
        "degraded": degraded,
        "analysis": record.to_view(),
    }


@analysis_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pet_video_results(result_id: ResultId) -> dict:
    """Show a previous analysis by id, or redirect to the upload view if it is gone.

    Args:
        result_id: Id returned by pet_video_analyze.

    Returns:
        Dict with the analysis record, or ``{"redirect": "landing", ...}`` when
        no analysis is held under that id.
    """
    stored = result_store.get(result_id)
    if stored is None:
        return {
            "redirect": LANDING_VIEW,
            "reason": "No analysis found for this id — upload a video to start a new one.",
        }
    return {
        "result_id": stored.result_id,
        "degraded": stored.degraded,
        "source": stored.source_name,
        "analysis": stored.result.to_view(),
    }
