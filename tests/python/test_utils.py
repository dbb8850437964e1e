#!/usr/bin/env python3
"""
Tests for synthetic frames and raster I/O
"""

import numpy as np
import pytest

from serialimage import DynamicSerialImage, ElementKind, create_test_frame, load_image, save_image


class TestCreateTestFrame:
    """Synthetic frame generation"""

    def test_default_frame(self):
        """Test default frame"""
        image = create_test_frame(320, 240, 0.5)
        assert image.shape == (240, 320, 3)
        assert image.dtype == np.uint8
        assert np.all(image == 128)

    @pytest.mark.parametrize("channels,shape", [
        (1, (8, 16)),
        (2, (8, 16, 2)),
        (4, (8, 16, 4)),
    ])
    def test_channels(self, channels, shape):
        """Test channel counts"""
        image = create_test_frame(16, 8, 0.25, channels=channels, dtype=np.uint16)
        assert image.shape == shape
        assert image.dtype == np.uint16
        if channels in (2, 4):
            assert np.all(image[..., -1] == 65535)

    @pytest.mark.parametrize("pattern", ["uniform", "gradient", "checkerboard", "noise"])
    def test_patterns_in_range(self, pattern):
        """Test patterns in range"""
        image = create_test_frame(64, 48, 0.8, pattern=pattern, dtype=np.float32)
        assert image.dtype == np.float32
        assert image.min() >= 0.0
        assert image.max() <= 1.0

    def test_gradient_increases(self):
        """Test gradient increases"""
        image = create_test_frame(4, 10, 1.0, pattern="gradient", channels=1)
        assert np.all(np.diff(image[:, 0].astype(int)) >= 0)
        assert image[0, 0] < image[-1, 0]

    def test_checkerboard_levels(self):
        """Test checkerboard levels"""
        image = create_test_frame(16, 16, 1.0, pattern="checkerboard", channels=1)
        assert set(np.unique(image)) == {128, 255}

    def test_invalid_brightness(self):
        """Test invalid brightness"""
        with pytest.raises(ValueError):
            create_test_frame(10, 10, 1.5)

    def test_invalid_pattern(self):
        """Test invalid pattern"""
        with pytest.raises(ValueError):
            create_test_frame(10, 10, pattern="stripes")

    def test_invalid_dtype(self):
        """Test invalid dtype"""
        with pytest.raises(ValueError):
            create_test_frame(10, 10, dtype=np.int32)

    def test_frame_feeds_buffer(self):
        """Test frame feeds buffer"""
        image = DynamicSerialImage.from_packed(create_test_frame(8, 6, channels=4, dtype=np.float32))
        assert image.variant is ElementKind.F32
        assert image.buffer.pixel_elems == 4


class TestRasterIO:
    """OpenCV-backed load and save"""

    @pytest.fixture
    def rgb_u8(self):
        image = np.zeros((6, 8, 3), dtype=np.uint8)
        image[..., 0] = 200
        image[..., 2] = 30
        return image

    def test_save_load_keeps_channel_order(self, tmp_path, rgb_u8):
        """Test save load keeps channel order"""
        path = tmp_path / "frame.png"
        assert save_image(rgb_u8, path)
        np.testing.assert_array_equal(load_image(path), rgb_u8)

    def test_sixteen_bit_gray(self, tmp_path):
        """Test sixteen bit gray"""
        image = create_test_frame(8, 6, 0.7, pattern="gradient", channels=1, dtype=np.uint16)
        path = tmp_path / "gray16.png"
        assert save_image(image, path)
        loaded = load_image(path)
        assert loaded.dtype == np.uint16
        np.testing.assert_array_equal(loaded, image)

    def test_missing_file(self, tmp_path):
        """Test missing file"""
        with pytest.raises(ValueError):
            load_image(tmp_path / "missing.png")

    def test_unknown_extension(self, tmp_path, rgb_u8):
        """Test unknown extension"""
        assert save_image(rgb_u8, tmp_path / "frame.unknown") is False

    def test_dynamic_image_round_trip(self, tmp_path):
        """Test dynamic image round trip"""
        data = np.arange(3 * 2 * 4, dtype=np.uint8) * 10
        image = DynamicSerialImage.from_vec_u8(3, 2, data)
        path = tmp_path / "rgba.png"
        assert image.save(path)
        assert DynamicSerialImage.open(path) == image


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
