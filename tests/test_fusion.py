"""Tests for feature fusion policy."""

import pytest

from lens_screener.fusion import FusionPolicy
from lens_screener.types import FeatureSet


def _features(
    laplacian_std_dev=15.0,
    tenengrad=25.0,
    contrast_std_dev=30.0,
    brightness=120.0,
    dark_channel_avg=20.0,
    edge_count=0,
):
    return FeatureSet(
        laplacian_std_dev=laplacian_std_dev,
        edge_count=edge_count,
        tenengrad=tenengrad,
        contrast_std_dev=contrast_std_dev,
        brightness=brightness,
        dark_channel_avg=dark_channel_avg,
    )


def test_fusion_policy_initialization():
    """Test FusionPolicy defaults match the tuned constants."""
    policy = FusionPolicy()
    assert policy.laplacian_divisor == 30.0
    assert policy.laplacian_max == 1.5
    assert policy.tenengrad_divisor == 50.0
    assert policy.contrast_divisor == 50.0
    assert policy.dark_channel_divisor == 60.0
    assert policy.dark_channel_max == 2.0
    assert policy.haze_override_score == 0.75


def test_fusion_policy_rejects_inverted_breakpoints():
    """Test that the sharp breakpoint must be below the unfocused one."""
    with pytest.raises(ValueError):
        FusionPolicy(sharp_edge_score=0.9, unfocused_edge_score=0.8)


def test_normalization_clamps():
    """Test each feature is divided and clamped to its range."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=300.0, tenengrad=500.0, contrast_std_dev=500.0, dark_channel_avg=255.0)
    )
    assert result.laplacian_scaled == 1.5
    assert result.tenengrad_scaled == 1.0
    assert result.contrast_scaled == 1.0
    assert result.dark_channel_scaled == 2.0


def test_weighted_sum_middle_band():
    """Test the weighted sum with no correction or override."""
    # lap 0.5, ten 0.5, contrast 0.6, dark 20/60; Laplacian preferred
    result = FusionPolicy().fuse(_features())

    assert not result.use_tenengrad
    assert result.edge_focus_score == pytest.approx(0.5)
    assert result.edge_correction == 1.0
    expected = 0.4 * (20.0 / 60.0) + 0.35 * (1.0 - 0.6) + 0.25 * 0.5
    assert result.dirty_score == pytest.approx(expected)
    assert not result.haze_override


@pytest.mark.parametrize(
    "overrides",
    [
        {"contrast_std_dev": 10.0},
        {"brightness": 200.0},
        {"dark_channel_avg": 40.0},
    ],
)
def test_tenengrad_preferred(overrides):
    """Test low contrast, bright or hazy images favour the gradient signal."""
    features = _features(laplacian_std_dev=30.0, tenengrad=0.0, **overrides)
    result = FusionPolicy().fuse(features)

    assert result.use_tenengrad
    # 1 - (0.7 * 0 + 0.3 * 1.0)
    assert result.edge_focus_score == pytest.approx(0.7)


def test_laplacian_preferred():
    """Test ordinary images favour the Laplacian signal."""
    result = FusionPolicy().fuse(_features(laplacian_std_dev=30.0, tenengrad=0.0))

    assert not result.use_tenengrad
    # 1 - (0.3 * 0 + 0.7 * 1.0)
    assert result.edge_focus_score == pytest.approx(0.3)


def test_edge_correction_breakpoints():
    """Test the non-monotonic correction at and around its breakpoints."""
    policy = FusionPolicy()
    assert policy.edge_correction(0.81) == 0.5
    assert policy.edge_correction(0.8) == 1.0
    assert policy.edge_correction(0.5) == 1.0
    assert policy.edge_correction(0.3) == 1.0
    assert policy.edge_correction(0.29) == 0.85
    assert policy.edge_correction(-0.35) == 0.85


def test_sharp_high_contrast_scores_zero():
    """Test very sharp, high-contrast, haze-free features clamp to 0."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=60.0, tenengrad=80.0, contrast_std_dev=60.0, dark_channel_avg=0.0)
    )

    assert result.edge_focus_score == pytest.approx(-0.35)
    assert result.edge_correction == 0.85
    assert result.dirty_score == 0.0


def test_haze_override_strong_dark_channel():
    """Test strong haze forces the override score when the sum under-reports."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=0.3, tenengrad=2.5, contrast_std_dev=20.0, dark_channel_avg=70.0)
    )

    assert result.dark_channel_scaled > 1.0
    assert result.edge_correction == 0.5
    assert result.haze_override
    assert result.dirty_score == 0.75


def test_haze_override_low_contrast():
    """Test moderate haze with low contrast triggers the override."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=0.3, tenengrad=2.5, contrast_std_dev=10.0, dark_channel_avg=45.0)
    )

    assert result.dark_channel_scaled == pytest.approx(0.75)
    assert result.haze_override
    assert result.dirty_score == 0.75


def test_no_override_without_low_contrast():
    """Test moderate haze alone does not trigger the override."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=0.3, tenengrad=2.5, contrast_std_dev=20.0, dark_channel_avg=45.0)
    )

    assert not result.haze_override
    assert result.dirty_score < 0.6
    assert result.dirty_score != 0.75


def test_no_override_when_score_already_high():
    """Test the override only lifts scores below the ceiling."""
    result = FusionPolicy().fuse(
        _features(laplacian_std_dev=15.0, tenengrad=25.0, contrast_std_dev=20.0, dark_channel_avg=110.0)
    )

    assert not result.haze_override
    assert result.dirty_score == 1.0


def test_edge_count_not_weighted():
    """Test the edge count diagnostic does not affect the score."""
    policy = FusionPolicy()
    low = policy.fuse(_features(edge_count=0))
    high = policy.fuse(_features(edge_count=10000))
    assert low.dirty_score == high.dirty_score
