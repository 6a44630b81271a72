"""Fusion of raw image-quality features into a single dirtiness score."""

import logging

import numpy as np
from pydantic import Field
from pydantic.dataclasses import dataclass

from lens_screener import constants as C
from lens_screener.types import FeatureSet, FusionResult

logger = logging.getLogger(__name__)

__all__ = ['FusionPolicy']


def _clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


@dataclass
class FusionPolicy:
    """
    Combines the five features into a dirtiness score in [0, 1].

    Steps:
    1. Normalize each feature with a fixed divisor and clamp.
    2. Blend the two sharpness signals, favouring Tenengrad on low-contrast,
       bright or already hazy images where the Laplacian is unreliable.
    3. Weighted sum of haze, low contrast and lack of focus.
    4. Non-monotonic edge-strength correction.
    5. Haze override for clear haze cases the weighted sum under-reports.

    The defaults are frozen tuned values; override them only for calibration.
    """

    laplacian_divisor: float = Field(default=C.LAPLACIAN_DIVISOR, gt=0.0)
    laplacian_max: float = Field(default=C.LAPLACIAN_MAX, gt=0.0)
    tenengrad_divisor: float = Field(default=C.TENENGRAD_DIVISOR, gt=0.0)
    tenengrad_max: float = Field(default=C.TENENGRAD_MAX, gt=0.0)
    contrast_divisor: float = Field(default=C.CONTRAST_DIVISOR, gt=0.0)
    contrast_max: float = Field(default=C.CONTRAST_MAX, gt=0.0)
    dark_channel_divisor: float = Field(default=C.DARK_CHANNEL_DIVISOR, gt=0.0)
    dark_channel_max: float = Field(default=C.DARK_CHANNEL_MAX, gt=0.0)

    low_contrast_std: float = Field(default=C.LOW_CONTRAST_STD, ge=0.0)
    bright_threshold: float = Field(default=C.BRIGHT_THRESHOLD, ge=0.0, le=255.0)
    haze_dark_channel_threshold: float = Field(default=C.HAZE_DARK_CHANNEL_THRESHOLD, ge=0.0)
    preferred_signal_weight: float = Field(default=C.PREFERRED_SIGNAL_WEIGHT, ge=0.5, le=1.0)

    dark_channel_weight: float = Field(default=C.DARK_CHANNEL_WEIGHT, ge=0.0, le=1.0)
    contrast_weight: float = Field(default=C.CONTRAST_WEIGHT, ge=0.0, le=1.0)
    edge_focus_weight: float = Field(default=C.EDGE_FOCUS_WEIGHT, ge=0.0, le=1.0)

    unfocused_edge_score: float = Field(default=C.UNFOCUSED_EDGE_SCORE)
    unfocused_factor: float = Field(default=C.UNFOCUSED_FACTOR, ge=0.0)
    sharp_edge_score: float = Field(default=C.SHARP_EDGE_SCORE)
    sharp_factor: float = Field(default=C.SHARP_FACTOR, ge=0.0)

    haze_dark_scaled_threshold: float = Field(default=C.HAZE_DARK_SCALED_THRESHOLD, ge=0.0)
    strong_haze_dark_scaled_threshold: float = Field(
        default=C.STRONG_HAZE_DARK_SCALED_THRESHOLD, ge=0.0
    )
    haze_override_ceiling: float = Field(default=C.HAZE_OVERRIDE_CEILING, ge=0.0, le=1.0)
    haze_override_score: float = Field(default=C.HAZE_OVERRIDE_SCORE, ge=0.0, le=1.0)

    def __post_init__(self):
        """Ensure the sharp breakpoint lies below the unfocused breakpoint."""
        if self.sharp_edge_score >= self.unfocused_edge_score:
            raise ValueError(
                f"sharp_edge_score ({self.sharp_edge_score}) must be below "
                f"unfocused_edge_score ({self.unfocused_edge_score})"
            )

    def prefers_tenengrad(self, features: FeatureSet) -> bool:
        """Whether the gradient signal should dominate the sharpness blend."""
        return (
            features.contrast_std_dev < self.low_contrast_std
            or features.brightness > self.bright_threshold
            or features.dark_channel_avg > self.haze_dark_channel_threshold
        )

    def edge_correction(self, edge_focus_score: float) -> float:
        """Multiplier for the weighted sum based on edge_focus_score."""
        if edge_focus_score > self.unfocused_edge_score:
            # Very unfocused: more likely a textureless scene than a dirty lens
            return self.unfocused_factor
        if edge_focus_score < self.sharp_edge_score:
            return self.sharp_factor
        return 1.0

    def is_haze(self, dark_channel_scaled: float, contrast_std_dev: float) -> bool:
        """Whether the haze override trigger condition holds."""
        return (
            dark_channel_scaled > self.haze_dark_scaled_threshold
            and contrast_std_dev < self.low_contrast_std
        ) or dark_channel_scaled > self.strong_haze_dark_scaled_threshold

    def fuse(self, features: FeatureSet) -> FusionResult:
        """
        Fuse a feature set into a dirtiness score.

        Args:
            features: Raw features from extract_features

        Returns:
            FusionResult with the final score and all intermediates
        """
        laplacian_scaled = _clamp(
            features.laplacian_std_dev / self.laplacian_divisor, 0.0, self.laplacian_max
        )
        tenengrad_scaled = _clamp(
            features.tenengrad / self.tenengrad_divisor, 0.0, self.tenengrad_max
        )
        contrast_scaled = _clamp(
            features.contrast_std_dev / self.contrast_divisor, 0.0, self.contrast_max
        )
        dark_channel_scaled = _clamp(
            features.dark_channel_avg / self.dark_channel_divisor, 0.0, self.dark_channel_max
        )

        use_tenengrad = self.prefers_tenengrad(features)
        if use_tenengrad:
            blend = self.preferred_signal_weight
        else:
            blend = 1.0 - self.preferred_signal_weight

        # Inverted: higher means less sharp
        edge_focus_score = 1.0 - (
            blend * tenengrad_scaled + (1.0 - blend) * laplacian_scaled
        )

        weighted = (
            self.dark_channel_weight * dark_channel_scaled
            + self.contrast_weight * (1.0 - contrast_scaled)
            + self.edge_focus_weight * edge_focus_score
        )

        correction = self.edge_correction(edge_focus_score)
        adjusted = weighted * correction

        haze_override = (
            self.is_haze(dark_channel_scaled, features.contrast_std_dev)
            and adjusted < self.haze_override_ceiling
        )
        if haze_override:
            dirty_score = self.haze_override_score
        else:
            dirty_score = _clamp(adjusted, 0.0, 1.0)

        logger.debug(
            f"Fusion: lap={laplacian_scaled:.3f}, ten={tenengrad_scaled:.3f}, "
            f"contrast={contrast_scaled:.3f}, dark={dark_channel_scaled:.3f}, "
            f"use_tenengrad={use_tenengrad}, edge_focus={edge_focus_score:.3f}, "
            f"weighted={weighted:.3f}, correction={correction}, "
            f"haze_override={haze_override}, score={dirty_score:.4f}"
        )

        return FusionResult(
            dirty_score=dirty_score,
            laplacian_scaled=laplacian_scaled,
            tenengrad_scaled=tenengrad_scaled,
            contrast_scaled=contrast_scaled,
            dark_channel_scaled=dark_channel_scaled,
            use_tenengrad=use_tenengrad,
            edge_focus_score=edge_focus_score,
            edge_correction=correction,
            haze_override=haze_override,
        )
