"""Solid-color detection used to short-circuit the scoring pipeline."""

import logging
from typing import Optional

import numpy as np
from pydantic import Field
from pydantic.dataclasses import dataclass

from lens_screener.constants import (
    SOLID_MIN_SAMPLES,
    SOLID_RGB_STD_DEV_THRESHOLD,
    SOLID_SAMPLE_RATIO,
    SOLID_SAMPLE_SEED,
)

logger = logging.getLogger(__name__)

__all__ = ['UniformityDetector']


@dataclass
class UniformityDetector:
    """
    Decides whether an image is (nearly) a single solid color.

    A random sample of pixel positions is drawn and the population standard
    deviation of each RGB channel is compared against a fixed threshold.
    Uniform regions such as blank walls or UI screenshots are not dirty-lens
    candidates, so the pipeline scores them 0.0 without feature extraction.
    """

    std_threshold: float = Field(default=SOLID_RGB_STD_DEV_THRESHOLD, gt=0.0)
    sample_ratio: float = Field(default=SOLID_SAMPLE_RATIO, gt=0.0, le=1.0)
    min_samples: int = Field(default=SOLID_MIN_SAMPLES, ge=1)
    seed: Optional[int] = Field(default=SOLID_SAMPLE_SEED)

    def sample_count(self, num_pixels: int) -> int:
        """Number of pixels to sample for an image of num_pixels."""
        return min(max(self.min_samples, int(num_pixels * self.sample_ratio)), num_pixels)

    def channel_std_devs(self, rgb: np.ndarray) -> np.ndarray:
        """
        Estimate per-channel standard deviation from a random pixel sample.

        Args:
            rgb: Array (H, W, 3) of channel values

        Returns:
            Array of 3 population standard deviations (R, G, B)
        """
        flat = rgb.reshape(-1, 3).astype(np.float64)
        num_samples = self.sample_count(len(flat))

        rng = np.random.default_rng(self.seed)
        indices = rng.integers(0, len(flat), size=num_samples)
        samples = flat[indices]

        return samples.std(axis=0)

    def is_mostly_solid(self, rgb: np.ndarray) -> bool:
        """
        Test whether an image is mostly a single solid color.

        Args:
            rgb: Array (H, W, 3) of channel values

        Returns:
            True if every channel's sampled std is below std_threshold, or if
            the image has at most one pixel

        Raises:
            ValueError: If rgb is not an (H, W, 3) array
        """
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) RGB array, got shape {rgb.shape}")

        num_pixels = rgb.shape[0] * rgb.shape[1]
        if num_pixels <= 1:
            return True

        if self.sample_count(num_pixels) < 2:
            return True

        std_devs = self.channel_std_devs(rgb)
        solid = bool(np.all(std_devs < self.std_threshold))

        logger.debug(
            f"Uniformity check: std R={std_devs[0]:.2f}, G={std_devs[1]:.2f}, "
            f"B={std_devs[2]:.2f} (threshold {self.std_threshold}) -> solid={solid}"
        )

        return solid
