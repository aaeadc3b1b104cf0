"""Tests for the analysis pipeline — ordering of steps, error outcomes, fallback."""

from __future__ import annotations

import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pet_vision_mcp.errors import ErrorCategory, ExtractionFailure, InvalidUpload, UpstreamCallFailure
from pet_vision_mcp.models.analysis import ExtractionRequest, Frame
from pet_vision_mcp.pipeline import (
    FALLBACK_RESULT,
    _build_contents,
    analyze_or_fallback,
    analyze_pet_video,
)
from pet_vision_mcp.uploads import UploadedVideo

MB = 1024 * 1024

RESPONSE = """\
CONCERN_LEVEL: Low

SUMMARY: A healthy, active cat.

OBSERVATIONS:
- Smooth, even gait
- Relaxed breathing

POSSIBLE_CAUSES:
- None apparent

RECOMMENDATIONS:
- Continue regular play

VETERINARY_RECOMMENDATION: Routine annual check-up.
"""


def _frame(i: int) -> Frame:
    return Frame(index=i, timestamp=i * 0.1, width=64, height=48, data=b"\xff\xd8\xff" + bytes([i]))


def _upload(media_type: str = "video/mp4", size_bytes: int = MB) -> UploadedVideo:
    return UploadedVideo(path=Path("/videos/cat.mp4"), media_type=media_type, size_bytes=size_bytes)


@pytest.fixture()
def mock_sampler():
    with patch(
        "pet_vision_mcp.pipeline.extract_frames_from_file",
        return_value=[_frame(i) for i in range(3)],
    ) as m:
        yield m


class TestAnalyzePetVideo:
    async def test_success_parses_response(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].return_value = RESPONSE

        outcome = await analyze_pet_video(_upload())

        assert outcome.ok
        assert outcome.error is None
        assert outcome.result.concern_level == "Low"
        assert outcome.result.observations == ("Smooth, even gait", "Relaxed breathing")
        mock_sampler.assert_called_once()
        assert mock_sampler.call_args.args[0] == Path("/videos/cat.mp4")

    async def test_request_carries_prompt_then_frames(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].return_value = RESPONSE

        await analyze_pet_video(_upload())

        contents = mock_gemini_client["generate"].call_args.args[0]
        assert "CONCERN_LEVEL:" in contents.parts[0].text
        image_parts = contents.parts[1:]
        assert len(image_parts) == 3
        assert all(p.inline_data.mime_type == "image/jpeg" for p in image_parts)
        assert [p.inline_data.data[-1] for p in image_parts] == [0, 1, 2]

    async def test_webm_rejected_before_extraction_or_network(self, mock_sampler, mock_gemini_client):
        with pytest.raises(InvalidUpload):
            await analyze_pet_video(_upload("video/webm"))
        mock_sampler.assert_not_called()
        mock_gemini_client["generate"].assert_not_awaited()

    async def test_oversized_rejected_before_extraction(self, mock_sampler, mock_gemini_client):
        with pytest.raises(InvalidUpload, match="File size"):
            await analyze_pet_video(_upload("video/mp4", 101 * MB))
        mock_sampler.assert_not_called()
        mock_gemini_client["generate"].assert_not_awaited()

    async def test_extraction_failure_is_reported(self, mock_gemini_client):
        with patch(
            "pet_vision_mcp.pipeline.extract_frames_from_file",
            side_effect=ExtractionFailure("Error loading video: bad codec"),
        ):
            outcome = await analyze_pet_video(_upload())

        assert not outcome.ok
        assert isinstance(outcome.error, ExtractionFailure)
        mock_gemini_client["generate"].assert_not_awaited()

    async def test_unexpected_sampler_error_becomes_extraction_failure(self, mock_gemini_client):
        with patch("pet_vision_mcp.pipeline.extract_frames_from_file", side_effect=OSError("disk")):
            outcome = await analyze_pet_video(_upload())
        assert isinstance(outcome.error, ExtractionFailure)
        assert "disk" in str(outcome.error)

    async def test_no_frames_is_extraction_failure(self, mock_gemini_client):
        with patch("pet_vision_mcp.pipeline.extract_frames_from_file", return_value=[]):
            outcome = await analyze_pet_video(_upload())
        assert isinstance(outcome.error, ExtractionFailure)
        mock_gemini_client["generate"].assert_not_awaited()

    async def test_upstream_error_is_reported(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].side_effect = Exception("429 RESOURCE_EXHAUSTED")

        outcome = await analyze_pet_video(_upload())

        assert isinstance(outcome.error, UpstreamCallFailure)
        assert outcome.error.category == ErrorCategory.API_QUOTA_EXCEEDED

    async def test_upstream_timeout_is_network_error(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].side_effect = TimeoutError()

        outcome = await analyze_pet_video(_upload())

        assert isinstance(outcome.error, UpstreamCallFailure)
        assert outcome.error.category == ErrorCategory.NETWORK_ERROR
        assert "timed out" in str(outcome.error)

    async def test_missing_api_key_is_upstream_failure(self, mock_sampler, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("pet_vision_mcp.client.GeminiClient._clients", {}):
            outcome = await analyze_pet_video(_upload())
        assert isinstance(outcome.error, UpstreamCallFailure)
        assert outcome.error.category == ErrorCategory.API_KEY_MISSING

    async def test_explicit_request_passed_to_sampler(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].return_value = RESPONSE
        request = ExtractionRequest(frame_count=12, max_edge=320)

        await analyze_pet_video(_upload(), request)

        assert mock_sampler.call_args.args[1] is request


class TestAnalyzeOrFallback:
    async def test_real_result_not_degraded(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].return_value = RESPONSE
        record, degraded = await analyze_or_fallback(_upload())
        assert degraded is False
        assert record.concern_level == "Low"

    async def test_upstream_failure_yields_fallback(self, mock_sampler, mock_gemini_client):
        mock_gemini_client["generate"].side_effect = Exception("503 Service Unavailable")

        record, degraded = await analyze_or_fallback(_upload())

        assert degraded is True
        assert record is FALLBACK_RESULT
        assert record.pet_info.breed == "Golden Retriever"
        assert record.concern_level == "Medium"

    async def test_extraction_failure_yields_fallback(self, mock_gemini_client):
        with patch(
            "pet_vision_mcp.pipeline.extract_frames_from_file",
            side_effect=ExtractionFailure("Error loading video"),
        ):
            record, degraded = await analyze_or_fallback(_upload())
        assert degraded is True
        assert record == FALLBACK_RESULT

    async def test_invalid_upload_still_raises(self, mock_sampler, mock_gemini_client):
        with pytest.raises(InvalidUpload):
            await analyze_or_fallback(_upload("video/webm"))


class TestFallbackRecord:
    def test_fixed_values(self):
        assert FALLBACK_RESULT.pet_info.breed == "Golden Retriever"
        assert FALLBACK_RESULT.pet_info.video_duration == "10 seconds"
        assert FALLBACK_RESULT.concern_level == "Medium"
        assert len(FALLBACK_RESULT.observations) == 5
        assert len(FALLBACK_RESULT.possible_causes) == 4
        assert len(FALLBACK_RESULT.recommendations) == 5
        assert FALLBACK_RESULT.veterinary_recommendation

    async def test_callers_cannot_corrupt_shared_fallback(self, mock_gemini_client):
        with patch("pet_vision_mcp.pipeline.extract_frames_from_file", return_value=[]):
            record, degraded = await analyze_or_fallback(_upload())
        assert degraded
        with pytest.raises(AttributeError):
            record.observations.append("Injected")
        assert len(FALLBACK_RESULT.observations) == 5
        assert "Injected" not in FALLBACK_RESULT.observations


class TestBuildContents:
    def test_prompt_mentions_frame_count(self):
        contents = _build_contents([_frame(0), _frame(1)], ExtractionRequest(frame_count=100))
        assert "These are 2 frames" in contents.parts[0].text
        assert "first 10 seconds" in contents.parts[0].text
        assert contents.role == "user"


class TestWorkerThread:
    async def test_sampler_runs_off_the_event_loop(self, mock_gemini_client):
        mock_gemini_client["generate"].return_value = RESPONSE
        to_thread = AsyncMock(return_value=[_frame(0)])
        with patch("pet_vision_mcp.pipeline.asyncio.to_thread", to_thread):
            outcome = await analyze_pet_video(_upload())
        assert outcome.ok
        assert to_thread.await_args.args[0].__name__ == "extract_frames_from_file"

    async def test_sampler_gets_extraction_deadline(self, mock_gemini_client, monkeypatch):
        monkeypatch.setenv("PETVISION_EXTRACTION_TIMEOUT", "30")
        mock_gemini_client["generate"].return_value = RESPONSE
        to_thread = AsyncMock(return_value=[_frame(0)])
        before = time.monotonic()
        with patch("pet_vision_mcp.pipeline.asyncio.to_thread", to_thread):
            await analyze_pet_video(_upload())
        deadline = to_thread.await_args.kwargs["deadline"]
        assert before + 30 <= deadline <= time.monotonic() + 30
