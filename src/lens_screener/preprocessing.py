"""Image decoding and downsampling for lens dirtiness analysis."""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image
from pydantic import Field
from pydantic.dataclasses import dataclass

from lens_screener.constants import (
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_WIDTH,
    LUMA_BLUE,
    LUMA_GREEN,
    LUMA_RED,
    PROCESSING_SCALE_FACTOR,
)
from lens_screener.errors import DecodeError, InputError

logger = logging.getLogger(__name__)

__all__ = [
    'PixelBuffer',
    'ImageDecoder',
    'calculate_in_sample_size',
    'box_blur',
    'to_luma',
]

LUMA_COEFFICIENTS = np.array([LUMA_RED, LUMA_GREEN, LUMA_BLUE], dtype=np.float64)


class PixelBuffer:
    """
    Immutable grid of 8-bit RGBA pixels, row-major, channel-last.

    The underlying array is flagged read-only so it can be shared between
    feature extractors without copying.
    """

    def __init__(self, pixels: np.ndarray):
        """
        Args:
            pixels: Array of shape (H, W), (H, W, 3) or (H, W, 4). Grayscale is
                broadcast to RGB and a missing alpha channel is filled with 255.
                Integer arrays must hold values in [0, 255]; float arrays must
                be normalized to [0, 1] and are scaled by 255.

        Raises:
            ValueError: If the array has an unsupported shape, zero size,
                dtype or value range
        """
        pixels = np.asarray(pixels)
        if pixels.ndim == 2:
            pixels = np.repeat(pixels[:, :, np.newaxis], 3, axis=2)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected (H, W), (H, W, 3) or (H, W, 4) array, got shape {pixels.shape}")
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            raise ValueError(f"Pixel buffer must be at least 1x1, got shape {pixels.shape}")

        if pixels.dtype != np.uint8:
            pixels = _to_uint8(pixels)

        if pixels.shape[2] == 3:
            alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
            pixels = np.concatenate([pixels, alpha], axis=2)
        else:
            pixels = pixels.copy()

        pixels.flags.writeable = False
        self._pixels = pixels

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Build a buffer from a Pillow image of any mode."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (H, W, 4) RGBA array."""
        return self._pixels

    @property
    def rgb(self) -> np.ndarray:
        """Read-only (H, W, 3) view of the color channels."""
        return self._pixels[:, :, :3]

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def num_pixels(self) -> int:
        return self.width * self.height

    def luma(self) -> np.ndarray:
        """Per-pixel luma on a 0-255 scale (see to_luma)."""
        return to_luma(self.rgb)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"


def _to_uint8(pixels: np.ndarray) -> np.ndarray:
    """Convert integer [0, 255] or float [0, 1] pixels to uint8, rejecting anything else."""
    if np.issubdtype(pixels.dtype, np.integer):
        low, high = pixels.min(), pixels.max()
        if low < 0 or high > 255:
            raise ValueError(
                f"Integer pixels must lie in [0, 255], got range [{low}, {high}]"
            )
        return pixels.astype(np.uint8)

    if np.issubdtype(pixels.dtype, np.floating):
        if not np.all(np.isfinite(pixels)):
            raise ValueError("Float pixels must be finite")
        low, high = pixels.min(), pixels.max()
        if low < 0.0 or high > 1.0:
            raise ValueError(
                f"Float pixels must be normalized to [0, 1], got range [{low:.3f}, {high:.3f}]"
            )
        return np.round(pixels * 255.0).astype(np.uint8)

    raise ValueError(f"Unsupported pixel dtype: {pixels.dtype}")


def to_luma(rgb: np.ndarray) -> np.ndarray:
    """
    Convert an RGB array to luma using the perceptual Rec. 709 coefficients.

    Args:
        rgb: Array (H, W, 3) of 8-bit channel values

    Returns:
        Read-only float64 array (H, W) on a 0-255 scale
    """
    luma = rgb.astype(np.float64) @ LUMA_COEFFICIENTS
    luma.flags.writeable = False
    return luma


def calculate_in_sample_size(
    width: int, height: int, req_width: int, req_height: int
) -> int:
    """
    Pick a power-of-two subsample factor for decoding.

    Returns the largest power of two that keeps both half-dimensions at or
    above the requested size, then keeps doubling while the sampled image
    would still be more than twice the requested size.

    Args:
        width: Source image width
        height: Source image height
        req_width: Requested width bound
        req_height: Requested height bound

    Returns:
        Subsample factor (1, 2, 4, ...)
    """
    in_sample_size = 1

    if height > req_height or width > req_width:
        half_height = height // 2
        half_width = width // 2
        while (half_height // in_sample_size) >= req_height and (
            half_width // in_sample_size
        ) >= req_width:
            in_sample_size *= 2

        # Very large or very elongated sources
        while (width // in_sample_size) > req_width * 2 or (
            height // in_sample_size
        ) > req_height * 2:
            in_sample_size *= 2

    return in_sample_size


def box_blur(buffer: PixelBuffer) -> PixelBuffer:
    """
    Apply a 3x3 box blur to the interior pixels of a buffer.

    Each interior channel value becomes the floor of the mean of its 3x3
    neighbourhood; border pixels are copied unchanged.

    Args:
        buffer: Source buffer

    Returns:
        New blurred buffer (the input buffer is returned if smaller than 3x3)
    """
    if buffer.width < 3 or buffer.height < 3:
        return buffer

    src = buffer.pixels.astype(np.int32)
    h, w = buffer.height, buffer.width

    total = np.zeros((h - 2, w - 2, 4), dtype=np.int32)
    for dy in range(3):
        for dx in range(3):
            total += src[dy:dy + h - 2, dx:dx + w - 2]

    blurred = src.copy()
    blurred[1:-1, 1:-1] = total // 9

    return PixelBuffer(blurred.astype(np.uint8))


@dataclass
class ImageDecoder:
    """Decodes images at a bounded size and scales them to working resolution."""

    max_width: int = Field(default=DEFAULT_MAX_WIDTH, ge=1)
    max_height: int = Field(default=DEFAULT_MAX_HEIGHT, ge=1)
    working_scale: float = Field(default=PROCESSING_SCALE_FACTOR, gt=0.0, le=1.0)
    prefilter: bool = Field(default=False)

    def decode(self, image_path: Optional[Union[str, Path]]) -> PixelBuffer:
        """
        Decode an image with power-of-two subsampling.

        Args:
            image_path: Path to the image file

        Returns:
            PixelBuffer whose dimensions are close to, but not far above,
            (max_width, max_height)

        Raises:
            InputError: If the path is missing or blank
            DecodeError: If the file is missing or cannot be decoded
        """
        if image_path is None or not str(image_path).strip():
            raise InputError("Image path is required")

        path = Path(image_path)
        if not path.is_file():
            raise DecodeError(f"Image not found: {image_path}")

        logger.debug(f"Decoding image: {image_path}")
        try:
            with Image.open(path) as img:
                width, height = img.size
                if width == 0 or height == 0:
                    raise DecodeError(f"Image has zero dimensions: {image_path}")

                sample_size = calculate_in_sample_size(
                    width, height, self.max_width, self.max_height
                )
                target = (max(1, width // sample_size), max(1, height // sample_size))

                if sample_size > 1:
                    # Lets the JPEG decoder scale in the DCT domain; no-op for other formats
                    img.draft(None, target)

                decoded = img.convert("RGBA")
                if decoded.size != target:
                    decoded = decoded.resize(target, Image.Resampling.BOX)
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"Failed to decode image {image_path}: {e}") from e

        logger.debug(
            f"Decoded {image_path}: source {width}x{height}, "
            f"sample size {sample_size}, decoded {target[0]}x{target[1]}"
        )

        return PixelBuffer.from_image(decoded)

    def to_working_resolution(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        Scale a decoded buffer down to the working resolution.

        Args:
            buffer: Decoded buffer

        Returns:
            Bilinearly resized buffer (each side at least 1 pixel)
        """
        new_width = max(1, int(buffer.width * self.working_scale))
        new_height = max(1, int(buffer.height * self.working_scale))

        if (new_width, new_height) == (buffer.width, buffer.height):
            return buffer

        img = Image.fromarray(buffer.pixels.copy())
        resized = img.resize((new_width, new_height), Image.Resampling.BILINEAR)

        logger.debug(
            f"Scaled buffer from {buffer.width}x{buffer.height} to "
            f"{new_width}x{new_height} (scale: {self.working_scale:.3f})"
        )

        return PixelBuffer.from_image(resized)

    def decode_for_analysis(self, image_path: Optional[Union[str, Path]]) -> PixelBuffer:
        """
        Complete decoding pipeline: sampled decode, working-resolution scale,
        optional box pre-filter.

        Args:
            image_path: Path to the image file

        Returns:
            Working-resolution PixelBuffer
        """
        buffer = self.to_working_resolution(self.decode(image_path))
        if self.prefilter:
            buffer = box_blur(buffer)
            logger.debug("Applied 3x3 box pre-filter")
        return buffer
