"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for validation, response
serialization and the generated OpenAPI docs.

HOW: One model per response shape; request bodies that are not multipart
(segmentation) get their own model too. Enums are reused from the render
package so the API cannot drift from what the renderer accepts.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Response models never expose internal paths or cancel events
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class WordIn(BaseModel):
    """One transcript word with millisecond timing."""

    text: str = Field(description="Word text; punctuation may be its own word.")
    start_ms: int = Field(ge=0, description="Start time in milliseconds.")
    end_ms: int = Field(ge=0, description="End time in milliseconds.")


class SegmentRequest(BaseModel):
    """Words to segment into caption cues.

    RULES:
    - max_chars overrides the preset's character ceiling when given
    - preset defaults to "social" (25 chars)
    """

    words: List[WordIn] = Field(description="Transcript words in spoken order.")
    preset: str = Field(default="social", description="Segmentation preset: social, some, broadcast.")
    max_chars: Optional[int] = Field(default=None, gt=0, description="Character ceiling per cue.")
    max_duration_ms: Optional[int] = Field(
        default=None, gt=0, description="Duration ceiling per cue in milliseconds."
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class CueOut(BaseModel):
    """One caption cue."""

    start_ms: int = Field(description="Start time in milliseconds.")
    end_ms: int = Field(description="End time in milliseconds.")
    text: str = Field(description="Caption text.")


class SegmentResponse(BaseModel):
    """Segmentation result, both as cues and as SRT text."""

    cues: List[CueOut] = Field(description="Cues in time order.")
    srt: str = Field(description="The same cues serialized as SRT.")


class RenderJobResponse(BaseModel):
    """Render job status response.

    RULES:
    - progress is 0.0-1.0 and never decreases
    - error and log are only set when status is failed or cancelled
    - output_file is only set when status is completed
    """

    id: str = Field(description="Unique job identifier.")
    status: str = Field(description="Current job status.")
    filename: str = Field(description="Uploaded video filename.")
    progress: float = Field(description="Render progress between 0.0 and 1.0.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    target_resolution: str = Field(description="Requested output resolution.")
    languages: List[str] = Field(description="Caption languages burned in, in order.")
    error: Optional[str] = Field(default=None, description="Failure status line.")
    log: Optional[str] = Field(default=None, description="Tail of the encoder output on failure.")
    output_file: Optional[str] = Field(default=None, description="Rendered video filename.")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "status": "encoding",
                "filename": "clip.mp4",
                "progress": 0.42,
                "created_at": 1739959200.0,
                "target_resolution": "1080p",
                "languages": ["en", "es"],
                "error": None,
                "log": None,
                "output_file": None,
            }
        ]
    }}


class RenderCreatedResponse(BaseModel):
    """Response returned when a render job is accepted."""

    id: str = Field(description="Job identifier for polling and download.")
    status: str = Field(description="Initial job status (always 'pending').")
    filename: str = Field(description="Uploaded video filename.")


class ResolutionInfo(BaseModel):
    """A selectable output resolution."""

    key: str = Field(description="Resolution identifier used in requests.")
    short_side: Optional[int] = Field(description="Short side in pixels; null for original.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
    encoder_available: bool = Field(description="Whether the configured ffmpeg can be started.")
