"""Shared synthetic images for lens screener tests."""

import numpy as np
import pytest


@pytest.fixture
def flat_gray():
    """100x100 flat mid-gray RGB image."""
    return np.full((100, 100, 3), 128, dtype=np.uint8)


@pytest.fixture
def checkerboard():
    """100x100 black/white checkerboard with 2x2 tiles."""
    y, x = np.mgrid[:100, :100]
    tiles = ((y // 2 + x // 2) % 2).astype(np.uint8) * 255
    return np.repeat(tiles[:, :, np.newaxis], 3, axis=2)


@pytest.fixture
def hazy():
    """100x100 soft low-contrast pattern lifted toward mid-gray (no true blacks)."""
    x = np.arange(100)
    row = 120.0 + 30.0 * np.sin(2.0 * np.pi * x / 40.0)
    gray = np.round(np.tile(row, (100, 1))).astype(np.uint8)
    return np.repeat(gray[:, :, np.newaxis], 3, axis=2)


@pytest.fixture
def noise():
    """64x64 uniform random RGB noise."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
