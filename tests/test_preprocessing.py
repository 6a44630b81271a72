"""Tests for image decoding and downsampling module."""

import numpy as np
import pytest
from PIL import Image

from lens_screener.errors import DecodeError, InputError
from lens_screener.lens_dirt_detector import LensDirtDetector
from lens_screener.preprocessing import (
    ImageDecoder,
    PixelBuffer,
    box_blur,
    calculate_in_sample_size,
    to_luma,
)


def test_image_decoder_initialization():
    """Test ImageDecoder initialization."""
    decoder = ImageDecoder()
    assert decoder.max_width == 640
    assert decoder.max_height == 640
    assert decoder.working_scale == 0.15
    assert decoder.prefilter is False


def test_image_decoder_rejects_invalid_scale():
    """Test that a non-positive working scale is rejected."""
    with pytest.raises(ValueError):
        ImageDecoder(working_scale=0.0)


def test_sample_size_small_image():
    """Test that images within bounds are not subsampled."""
    assert calculate_in_sample_size(100, 100, 640, 640) == 1
    assert calculate_in_sample_size(640, 640, 640, 640) == 1


def test_sample_size_large_image():
    """Test power-of-two sample size for a large photo."""
    # Half dimensions 2000x1500 -> 1000x750 at s=2 -> 500x375 fails at s=4
    assert calculate_in_sample_size(4000, 3000, 640, 640) == 4
    assert calculate_in_sample_size(1280, 1280, 640, 640) == 2


def test_sample_size_elongated_image():
    """Test that very wide images keep halving until within twice the bound."""
    # Height never allows the first loop; width forces 10000 -> 1250
    assert calculate_in_sample_size(10000, 500, 640, 640) == 8


def test_pixel_buffer_from_grayscale():
    """Test building a buffer from a 2D array."""
    buffer = PixelBuffer(np.full((4, 5), 77, dtype=np.uint8))

    assert buffer.width == 5
    assert buffer.height == 4
    assert buffer.num_pixels == 20
    assert buffer.pixels.shape == (4, 5, 4)
    assert np.all(buffer.rgb == 77)
    assert np.all(buffer.pixels[:, :, 3] == 255)


def test_pixel_buffer_is_read_only():
    """Test that buffer pixels cannot be modified after construction."""
    source = np.zeros((3, 3, 3), dtype=np.uint8)
    buffer = PixelBuffer(source)

    with pytest.raises(ValueError):
        buffer.pixels[0, 0, 0] = 10

    # Later changes to the source array do not leak in
    source[0, 0, 0] = 10
    assert buffer.pixels[0, 0, 0] == 0


def test_pixel_buffer_rejects_bad_shapes():
    """Test error handling for empty and malformed arrays."""
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros((0, 10, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros((4, 4, 2), dtype=np.uint8))


def test_pixel_buffer_scales_normalized_floats(hazy):
    """Test that float pixels in [0, 1] are scaled to the 8-bit range."""
    normalized = hazy.astype(np.float32) / 255.0
    buffer = PixelBuffer(normalized)

    assert buffer.pixels.dtype == np.uint8
    np.testing.assert_array_equal(buffer.rgb, hazy)


def test_normalized_float_scores_like_uint8(hazy):
    """Test that a normalized float image is not mistaken for a solid color."""
    detector = LensDirtDetector()
    float_score = detector.compute_dirty_score(PixelBuffer(hazy.astype(np.float32) / 255.0))

    assert float_score == detector.compute_dirty_score(PixelBuffer(hazy))
    assert float_score > 0.0


def test_pixel_buffer_rejects_out_of_range_values():
    """Test error handling for pixel values outside the supported ranges."""
    with pytest.raises(ValueError, match=r"\[0, 1\]"):
        PixelBuffer(np.full((4, 4, 3), 128.0))
    with pytest.raises(ValueError, match="finite"):
        PixelBuffer(np.full((4, 4, 3), np.nan))
    with pytest.raises(ValueError, match=r"\[0, 255\]"):
        PixelBuffer(np.full((4, 4, 3), 300, dtype=np.int32))
    with pytest.raises(ValueError, match=r"\[0, 255\]"):
        PixelBuffer(np.full((4, 4, 3), -1, dtype=np.int16))
    with pytest.raises(ValueError, match="dtype"):
        PixelBuffer(np.ones((4, 4, 3), dtype=bool))


def test_pixel_buffer_accepts_wide_integer_dtypes():
    """Test that in-range integer arrays of any width are accepted."""
    buffer = PixelBuffer(np.full((2, 2, 3), 200, dtype=np.int64))
    assert buffer.pixels.dtype == np.uint8
    assert np.all(buffer.rgb == 200)


def test_to_luma_coefficients():
    """Test perceptual luma conversion on a 0-255 scale."""
    rgb = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255], [200, 200, 200]]], dtype=np.uint8)
    luma = to_luma(rgb)

    assert luma.shape == (1, 4)
    assert luma.dtype == np.float64
    assert luma[0, 0] == pytest.approx(0.2126 * 255)
    assert luma[0, 1] == pytest.approx(0.7152 * 255)
    assert luma[0, 2] == pytest.approx(0.0722 * 255)
    assert luma[0, 3] == pytest.approx(200.0)


def test_box_blur_interior_and_border():
    """Test 3x3 box blur floors the mean and keeps borders."""
    pixels = np.zeros((3, 3, 3), dtype=np.uint8)
    pixels[1, 1] = 255
    blurred = box_blur(PixelBuffer(pixels))

    assert np.all(blurred.rgb[1, 1] == 255 // 9)
    assert np.all(blurred.pixels[1, 1, 3] == 255)
    assert np.all(blurred.rgb[0, :] == 0)
    assert np.all(blurred.rgb[:, 0] == 0)


def test_box_blur_small_buffer():
    """Test that buffers below 3x3 are returned unchanged."""
    buffer = PixelBuffer(np.zeros((2, 2, 3), dtype=np.uint8))
    assert box_blur(buffer) is buffer


def test_decode_png_with_sampling(tmp_path):
    """Test decoding a PNG that needs subsampling."""
    img = Image.new("RGB", (2000, 1000), color=(10, 20, 30))
    img_path = tmp_path / "wide.png"
    img.save(img_path)

    decoder = ImageDecoder()
    buffer = decoder.decode(img_path)

    assert (buffer.width, buffer.height) == (1000, 500)
    assert tuple(buffer.rgb[0, 0]) == (10, 20, 30)


def test_decode_jpeg_with_draft(tmp_path):
    """Test decoding a JPEG with DCT-domain reduction."""
    img = Image.new("RGB", (2600, 1300), color=(128, 128, 128))
    img_path = tmp_path / "large.jpg"
    img.save(img_path)

    buffer = ImageDecoder().decode(img_path)

    assert (buffer.width, buffer.height) == (650, 325)


def test_decode_for_analysis_working_resolution(tmp_path):
    """Test complete decode pipeline down to working resolution."""
    img = Image.new("L", (400, 200), color=90)
    img_path = tmp_path / "gray.png"
    img.save(img_path)

    buffer = ImageDecoder().decode_for_analysis(img_path)

    assert (buffer.width, buffer.height) == (60, 30)
    assert np.all(buffer.rgb == 90)


def test_working_resolution_never_below_one_pixel():
    """Test that tiny images scale to at least 1x1."""
    decoder = ImageDecoder()
    buffer = decoder.to_working_resolution(PixelBuffer(np.zeros((5, 5, 3), dtype=np.uint8)))
    assert (buffer.width, buffer.height) == (1, 1)


def test_decode_for_analysis_with_prefilter(tmp_path):
    """Test that the optional box pre-filter softens edges."""
    pixels = np.zeros((20, 20, 3), dtype=np.uint8)
    pixels[:, 10:] = 255
    img_path = tmp_path / "edge.png"
    Image.fromarray(pixels).save(img_path)

    plain = ImageDecoder(working_scale=1.0).decode_for_analysis(img_path)
    filtered = ImageDecoder(working_scale=1.0, prefilter=True).decode_for_analysis(img_path)

    assert plain.rgb[5, 9, 0] == 0
    assert filtered.rgb[5, 9, 0] == 255 * 3 // 9


def test_decode_missing_path():
    """Test error handling for missing or blank paths."""
    decoder = ImageDecoder()

    with pytest.raises(InputError):
        decoder.decode("")
    with pytest.raises(InputError):
        decoder.decode(None)


def test_decode_not_found():
    """Test error handling for missing files."""
    with pytest.raises(DecodeError, match="Image not found"):
        ImageDecoder().decode("nonexistent.png")


def test_decode_corrupt_file(tmp_path):
    """Test error handling for files that are not images."""
    invalid_path = tmp_path / "test.png"
    invalid_path.write_text("not an image")

    with pytest.raises(DecodeError, match="Failed to decode image"):
        ImageDecoder().decode(invalid_path)
