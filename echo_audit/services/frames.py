"""
Frame sampling and normalization.

Frames are extracted in the browser and uploaded already sampled.
:func:`sample_offsets` and :func:`format_timestamp` produce the seek plan
served by ``GET /api/audits/capture-settings``; :func:`prepare_frames`
re-validates and re-encodes the uploads before they reach the oracle.
"""

from __future__ import annotations

import base64
import binascii
import io
from typing import Iterator, List, Sequence

import structlog
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import BadRequestError
from ..schemas.analysis import Frame

logger = structlog.get_logger(__name__)

DEFAULT_MAX_FRAMES = 10
DEFAULT_MAX_DIMENSION = 960
DEFAULT_JPEG_QUALITY = 70


def format_timestamp(seconds: float) -> str:
    """Format an offset as ``MM:SS``, truncating fractions."""
    whole = int(max(0.0, seconds))
    return f"{whole // 60:02d}:{whole % 60:02d}"


def sample_offsets(duration: float, interval: float, max_frames: int) -> Iterator[float]:
    """Offsets 0, interval, 2*interval, ... below ``duration``, at most ``max_frames`` of them."""
    if interval <= 0:
        raise ValueError("interval must be positive")
    offset = 0.0
    emitted = 0
    while offset < duration and emitted < max_frames:
        yield offset
        emitted += 1
        offset += interval


def encode_jpeg(image: Image.Image, max_dimension: int, quality: int) -> str:
    """Downscale ``image`` to fit ``max_dimension`` and return base64 JPEG data."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    if max(image.size) > max_dimension:
        image = image.copy()
        image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _decode_image(frame: Frame) -> Image.Image:
    try:
        raw = base64.b64decode(frame.image_data, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequestError(f"Frame at {frame.timestamp} is not valid base64", code="INVALID_FRAME")
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError):
        raise BadRequestError(f"Frame at {frame.timestamp} is not a readable image", code="INVALID_FRAME")
    return image


def prepare_frames(
    frames: Sequence[Frame],
    max_frames: int = DEFAULT_MAX_FRAMES,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> List[Frame]:
    """Cap, decode and re-encode uploaded frames as bounded JPEGs."""
    if not frames:
        raise BadRequestError("At least one frame is required", code="INVALID_FRAME")
    if len(frames) > max_frames:
        logger.info("Dropping frames over cap", received=len(frames), max_frames=max_frames)

    prepared = []
    for frame in frames[:max_frames]:
        image = _decode_image(frame)
        prepared.append(
            Frame(timestamp=frame.timestamp, image_data=encode_jpeg(image, max_dimension, quality))
        )
    return prepared
