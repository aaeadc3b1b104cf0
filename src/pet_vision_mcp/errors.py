"""Structured error handling — analysis error kinds, classification, and tool error model."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    UPLOAD_UNSUPPORTED_TYPE = "UPLOAD_UNSUPPORTED_TYPE"
    UPLOAD_TOO_LARGE = "UPLOAD_TOO_LARGE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    API_KEY_MISSING = "API_KEY_MISSING"
    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_INVALID_ARGUMENT = "API_INVALID_ARGUMENT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UPSTREAM_FAILED = "UPSTREAM_FAILED"
    UNKNOWN = "UNKNOWN"


class AnalysisError(Exception):
    """Base class for failures of the pet video analysis pipeline."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, *, category: ErrorCategory | None = None) -> None:
        super().__init__(message)
        if category is not None:
            self.category = category


class InvalidUpload(AnalysisError):
    """Rejected before processing; the message is shown to the user as-is."""

    category = ErrorCategory.UPLOAD_UNSUPPORTED_TYPE


class ExtractionFailure(AnalysisError):
    """The video could not be opened or decoded."""

    category = ErrorCategory.EXTRACTION_FAILED


class UpstreamCallFailure(AnalysisError):
    """The Gemini request failed, timed out, or could not be made."""

    category = ErrorCategory.UPSTREAM_FAILED


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, InvalidUpload):
        return error.category, str(error)
    if isinstance(error, ExtractionFailure):
        return (
            ErrorCategory.EXTRACTION_FAILED,
            "Video could not be decoded — re-export it as H.264 MP4 and try again",
        )
    if isinstance(error, FileNotFoundError):
        return ErrorCategory.FILE_NOT_FOUND, "File not found — check the path"
    if isinstance(error, TimeoutError):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )

    s = str(error).lower()

    if "no gemini api key" in s:
        return (
            ErrorCategory.API_KEY_MISSING,
            "Set GEMINI_API_KEY in the environment or ~/.config/pet-vision-mcp/.env",
        )
    if "403" in s or "permission" in s or "api key not valid" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "API key is invalid or lacks access to the configured model",
        )
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return (
            ErrorCategory.API_QUOTA_EXCEEDED,
            "Rate limit hit — wait a minute and retry, or lower PETVISION_FRAME_COUNT",
        )
    if "400" in s:
        return (
            ErrorCategory.API_INVALID_ARGUMENT,
            "Bad request — the frame payload may exceed the model's input limit",
        )
    if "timeout" in s or "timed out" in s or "connection" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )
    if isinstance(error, UpstreamCallFailure):
        return ErrorCategory.UPSTREAM_FAILED, "Gemini request failed — see server logs"

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
