"""Image-quality feature extraction for lens dirtiness scoring.

Five independent signals are computed at working resolution:
1. Laplacian variance (fine-detail sharpness)
2. Tenengrad / mean Sobel gradient magnitude (edge sharpness)
3. Global contrast (luma standard deviation)
4. Average brightness (luma mean)
5. Dark channel average (haze / veiling light)

Every function is pure; the luma and RGB arrays are shared read-only.
Convolution-based extractors only use interior pixels (no padding), so they
need at least a 3x3 image and return zeros below that.
"""

import logging
from typing import Tuple

import numpy as np
from scipy import signal
from scipy.ndimage import minimum_filter

from lens_screener.constants import DARK_CHANNEL_WINDOW, LAPLACIAN_EDGE_THRESHOLD
from lens_screener.types import FeatureSet

logger = logging.getLogger(__name__)

__all__ = [
    'LAPLACIAN_KERNEL',
    'SOBEL_X_KERNEL',
    'SOBEL_Y_KERNEL',
    'laplacian_response',
    'sobel_gradients',
    'gradient_magnitude',
    'dark_channel',
    'compute_laplacian_variance',
    'compute_tenengrad',
    'compute_global_contrast',
    'compute_average_brightness',
    'compute_dark_channel_average',
    'extract_features',
]

LAPLACIAN_KERNEL = np.array(
    [[0, -1, 0],
     [-1, 4, -1],
     [0, -1, 0]],
    dtype=np.float64,
)

SOBEL_X_KERNEL = np.array(
    [[-1, 0, 1],
     [-2, 0, 2],
     [-1, 0, 1]],
    dtype=np.float64,
)

SOBEL_Y_KERNEL = np.array(
    [[1, 2, 1],
     [0, 0, 0],
     [-1, -2, -1]],
    dtype=np.float64,
)

MIN_KERNEL_SIZE = 3


def _too_small(luma: np.ndarray) -> bool:
    return luma.ndim != 2 or luma.shape[0] < MIN_KERNEL_SIZE or luma.shape[1] < MIN_KERNEL_SIZE


def laplacian_response(luma: np.ndarray) -> np.ndarray:
    """
    Apply the 3x3 Laplacian kernel to the interior of a luma image.

    Args:
        luma: Luma array (H, W)

    Returns:
        Response array (H-2, W-2); empty if the image is smaller than 3x3
    """
    if _too_small(luma):
        return np.zeros((0, 0), dtype=np.float64)
    return signal.correlate2d(luma, LAPLACIAN_KERNEL, mode="valid")


def sobel_gradients(luma: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Apply the Sobel X and Y kernels to the interior of a luma image.

    Args:
        luma: Luma array (H, W)

    Returns:
        Tuple of (gx, gy), each (H-2, W-2)
    """
    if _too_small(luma):
        empty = np.zeros((0, 0), dtype=np.float64)
        return empty, empty
    gx = signal.correlate2d(luma, SOBEL_X_KERNEL, mode="valid")
    gy = signal.correlate2d(luma, SOBEL_Y_KERNEL, mode="valid")
    return gx, gy


def gradient_magnitude(luma: np.ndarray) -> np.ndarray:
    """Per-pixel Sobel gradient magnitude sqrt(gx^2 + gy^2) over the interior."""
    gx, gy = sobel_gradients(luma)
    return np.sqrt(gx * gx + gy * gy)


def dark_channel(rgb: np.ndarray, window_size: int = DARK_CHANNEL_WINDOW) -> np.ndarray:
    """
    Compute the dark channel of an RGB image.

    The per-pixel minimum over R, G and B is followed by a local minimum
    filter over a window_size x window_size neighbourhood clamped to the
    image bounds.

    Args:
        rgb: Array (H, W, 3)
        window_size: Odd neighbourhood size

    Returns:
        Float64 array (H, W) on the input's 0-255 scale

    Raises:
        ValueError: If window_size is not a positive odd integer
    """
    if window_size < 1 or window_size % 2 == 0:
        raise ValueError(f"Dark channel window must be a positive odd integer, got {window_size}")

    channel_min = rgb.min(axis=2).astype(np.float64)
    # Edge replication keeps the window minimum equal to the in-bounds minimum
    return minimum_filter(channel_min, size=window_size, mode="nearest")


def compute_laplacian_variance(
    luma: np.ndarray, edge_threshold: float = LAPLACIAN_EDGE_THRESHOLD
) -> Tuple[float, int]:
    """
    Compute the standard deviation of the Laplacian response.

    Low values indicate a lack of fine detail (blur).

    Args:
        luma: Luma array (H, W) on a 0-255 scale
        edge_threshold: Absolute response above which a pixel counts as a strong edge

    Returns:
        Tuple of (std_dev, edge_count)
    """
    response = laplacian_response(luma)
    count = response.size
    if count == 0:
        logger.warning(f"Image too small for Laplacian: {luma.shape}")
        return 0.0, 0

    total = float(np.sum(response))
    total_sq = float(np.sum(response * response))
    edge_count = int(np.count_nonzero(np.abs(response) > edge_threshold))

    mean = total / count
    variance = (total_sq / count) - (mean * mean)
    std_dev = float(np.sqrt(max(variance, 0.0)))

    return std_dev, edge_count


def compute_tenengrad(luma: np.ndarray) -> float:
    """
    Compute the mean Sobel gradient magnitude (Tenengrad).

    More sensitive to strong directional edges than the Laplacian and more
    robust on low-contrast scenes.

    Args:
        luma: Luma array (H, W) on a 0-255 scale

    Returns:
        Mean gradient magnitude over interior pixels (0.0 below 3x3)
    """
    magnitude = gradient_magnitude(luma)
    if magnitude.size == 0:
        logger.warning(f"Image too small for Sobel gradients: {luma.shape}")
        return 0.0
    return float(np.mean(magnitude))


def compute_global_contrast(luma: np.ndarray) -> float:
    """Population standard deviation of luma over the whole image."""
    if luma.size == 0:
        return 0.0
    return float(np.std(luma))


def compute_average_brightness(luma: np.ndarray) -> float:
    """Mean luma over the whole image, on a 0-255 scale."""
    if luma.size == 0:
        return 0.0
    return float(np.mean(luma))


def compute_dark_channel_average(
    rgb: np.ndarray, window_size: int = DARK_CHANNEL_WINDOW
) -> float:
    """
    Average of the dark channel over all pixels.

    Hazy or fogged-lens images have elevated values because no local patch
    reaches true black in any channel.

    Args:
        rgb: Array (H, W, 3)
        window_size: Odd neighbourhood size for the local minimum

    Returns:
        Mean dark channel value (0-255)
    """
    if rgb.size == 0:
        return 0.0
    return float(np.mean(dark_channel(rgb, window_size)))


def extract_features(
    luma: np.ndarray,
    rgb: np.ndarray,
    edge_threshold: float = LAPLACIAN_EDGE_THRESHOLD,
    dark_window: int = DARK_CHANNEL_WINDOW,
) -> FeatureSet:
    """
    Extract all five signals from a working-resolution image.

    Args:
        luma: Luma array (H, W) on a 0-255 scale, computed once by the caller
        rgb: Array (H, W, 3) the luma was derived from
        edge_threshold: Laplacian strong-edge threshold
        dark_window: Dark channel neighbourhood size

    Returns:
        FeatureSet with raw, unnormalized values
    """
    laplacian_std_dev, edge_count = compute_laplacian_variance(luma, edge_threshold)

    features = FeatureSet(
        laplacian_std_dev=laplacian_std_dev,
        edge_count=edge_count,
        tenengrad=compute_tenengrad(luma),
        contrast_std_dev=compute_global_contrast(luma),
        brightness=compute_average_brightness(luma),
        dark_channel_avg=compute_dark_channel_average(rgb, dark_window),
    )

    logger.debug(
        f"Features: laplacian_std={features.laplacian_std_dev:.3f}, "
        f"edge_count={features.edge_count}, tenengrad={features.tenengrad:.3f}, "
        f"contrast={features.contrast_std_dev:.3f}, brightness={features.brightness:.3f}, "
        f"dark_channel={features.dark_channel_avg:.3f}"
    )

    return features
