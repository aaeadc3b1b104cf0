"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

VideoFilePath = Annotated[str, Field(
    min_length=1,
    description="Path to a local pet video (MP4, MOV, or QuickTime; max 100 MB, first 10 s analysed)",
)]
MediaType = Annotated[str | None, Field(
    description="Declared media type, e.g. 'video/mp4'. Defaults to the type implied by the file extension.",
)]
ResultId = Annotated[str, Field(
    min_length=1,
    description="result_id returned by pet_video_analyze",
)]
