"""Shared result types for lens dirtiness scoring."""

from typing import NamedTuple


class FeatureSet(NamedTuple):
    """Raw image-quality signals computed at working resolution."""

    laplacian_std_dev: float  # Std of Laplacian response (sharpness proxy)
    edge_count: int  # Laplacian responses above the edge threshold (diagnostic only)
    tenengrad: float  # Mean Sobel gradient magnitude
    contrast_std_dev: float  # Population std of luma (0-255)
    brightness: float  # Mean luma (0-255)
    dark_channel_avg: float  # Mean of the local-minimum dark channel (0-255)


class FusionResult(NamedTuple):
    """Fused dirtiness score together with every intermediate value."""

    dirty_score: float
    laplacian_scaled: float
    tenengrad_scaled: float
    contrast_scaled: float
    dark_channel_scaled: float
    use_tenengrad: bool
    edge_focus_score: float  # Higher means less sharp
    edge_correction: float  # Multiplier applied to the weighted sum
    haze_override: bool


class ScoreResult(NamedTuple):
    """Score plus its classification against a threshold."""

    dirty_score: float
    is_dirty: bool
    threshold: float
