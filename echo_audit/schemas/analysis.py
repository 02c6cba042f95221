"""
Analysis request schemas
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TIMESTAMP_PATTERN = r"^\d{2,}:[0-5]\d$"


class Frame(BaseModel):
    """One sampled video frame: ``MM:SS`` offset plus base64 image bytes."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: str = Field(..., pattern=TIMESTAMP_PATTERN, description="Offset as MM:SS")
    image_data: str = Field(..., alias="imageData", min_length=1, description="Base64 image, no data: prefix")
    mime_type: str = Field(default="image/jpeg", alias="mimeType")


class AnalyzeRequest(BaseModel):
    """Frames from a screen recording plus the source file they exercise."""
    frames: List[Frame] = Field(..., min_length=1, description="Sampled frames")
    code: str = Field(..., description="Source file contents")
    code_filename: Optional[str] = Field(None, description="Source file name")


class CaptureSettings(BaseModel):
    """Sampling contract the browser follows when extracting frames."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    frame_interval_seconds: float
    max_frames: int
    max_code_chars: int
    capture_points: Optional[List[str]] = Field(
        None, description="MM:SS seek positions for a video of the requested duration"
    )
