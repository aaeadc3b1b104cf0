"""Frames in, structured pet health assessment out.

``AnalysisResult`` serialises with camelCase aliases (``petInfo``,
``concernLevel``...) so tool responses keep the record shape the results
view renders.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AnalysisError


class ExtractionRequest(BaseModel):
    """How many frames to sample, from how much video, at what size and quality."""

    model_config = ConfigDict(frozen=True)

    frame_count: int = Field(default=100, ge=0)
    max_span_seconds: float = Field(default=10.0, gt=0)
    max_edge: int = Field(default=640, ge=1)
    quality: float = Field(default=0.7, gt=0, le=1)

    @classmethod
    def from_config(cls) -> ExtractionRequest:
        """Build a request from the live server config."""
        from ..config import get_config

        cfg = get_config()
        return cls(
            frame_count=cfg.frame_count,
            max_span_seconds=cfg.max_span_seconds,
            max_edge=cfg.max_frame_edge,
            quality=cfg.jpeg_quality,
        )


class Frame(BaseModel):
    """One encoded still sampled from the video."""

    model_config = ConfigDict(frozen=True)

    index: int
    timestamp: float
    width: int
    height: int
    data: bytes
    mime_type: str = "image/jpeg"

    def b64(self) -> str:
        """Bare base64 payload, without a ``data:`` URL prefix."""
        return base64.b64encode(self.data).decode("ascii")


class PetInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    breed: str = "Not specified"
    video_duration: str = Field(default="10 seconds", alias="videoDuration")


class AnalysisResult(BaseModel):
    """Structured health assessment parsed from the model's answer.

    Every field has a default, so a record is always complete even when
    the answer matched none of the expected sections.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pet_info: PetInfo = Field(default_factory=PetInfo, alias="petInfo")
    concern_level: str = Field(default="Medium", alias="concernLevel")
    summary: str = ""
    observations: tuple[str, ...] = Field(default_factory=tuple)
    possible_causes: tuple[str, ...] = Field(default_factory=tuple, alias="possibleCauses")
    recommendations: tuple[str, ...] = Field(default_factory=tuple)
    veterinary_recommendation: str = Field(default="", alias="veterinaryRecommendation")

    def to_view(self) -> dict:
        """camelCase dict for the results view."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either a parsed record or the error that prevented one."""

    result: AnalysisResult | None = None
    error: AnalysisError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("AnalysisOutcome needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.result is not None
