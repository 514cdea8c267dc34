"""Tests for image loading and field construction."""

import numpy as np
import pytest
from PIL import Image

from hcp_calibration.core.preprocessing import (
    field_from_array,
    get_image_info,
    load_image,
    to_display_bytes,
    to_grayscale,
)
from hcp_calibration.models import DataField


class TestLoadImage:
    """Tests for reading images from disk."""

    def test_float_tiff_keeps_values(self, tmp_path):
        data = np.linspace(-2.0, 5.0, 12, dtype=np.float32).reshape(3, 4)
        path = tmp_path / "height.tif"
        Image.fromarray(data).save(path)

        loaded = load_image(path)

        assert loaded.dtype == np.float64
        assert np.allclose(loaded, data)

    def test_8bit_png_scaled(self, tmp_path):
        data = np.array([[0, 255], [51, 102]], dtype=np.uint8)
        path = tmp_path / "scan.png"
        Image.fromarray(data).save(path)

        loaded = load_image(path)

        assert loaded.max() == 1.0
        assert loaded.min() == 0.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "nope.tif")


class TestFieldFromArray:
    """Tests for wrapping rasters in fields."""

    def test_geometry(self):
        field = field_from_array(np.zeros((20, 30)), pixel_size=0.05, unit="nm")

        assert (field.xres, field.yres) == (30, 20)
        assert field.xreal == pytest.approx(1.5)
        assert field.yreal == pytest.approx(1.0)
        assert field.si_unit_xy == "nm"
        assert (field.xoff, field.yoff) == (0.0, 0.0)

    def test_separate_y_pixel(self):
        field = field_from_array(np.zeros((10, 10)), pixel_size=0.1, pixel_size_y=0.2)

        assert field.yreal == pytest.approx(2.0)

    def test_rgb_converted(self):
        field = field_from_array(np.ones((5, 6, 3)), pixel_size=1.0)

        assert field.data.shape == (5, 6)

    def test_non_positive_pixel(self):
        with pytest.raises(ValueError):
            field_from_array(np.zeros((4, 4)), pixel_size=0.0)


class TestDataField:
    """Tests for field validation and coordinate helpers."""

    def test_rejects_bad_extent(self):
        with pytest.raises(ValueError):
            DataField(data=np.zeros((2, 2)), xreal=0.0, yreal=1.0)

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            DataField(data=np.zeros((0, 3)), xreal=1.0, yreal=1.0)

    def test_coordinate_round_trip(self, random_field):
        for col in range(random_field.xres):
            assert random_field.rtoj(random_field.jtor(col)) == col

    def test_area_extract(self, random_field):
        block = random_field.area_extract(2, 3, 5, 4)

        assert block.data.shape == (4, 5)
        assert block.dx == pytest.approx(random_field.dx)
        assert np.array_equal(block.data, random_field.data[3:7, 2:7])

    def test_area_extract_out_of_bounds(self, random_field):
        with pytest.raises(ValueError):
            random_field.area_extract(30, 0, 5, 5)

    def test_resample_keeps_extent(self, random_field):
        resampled = random_field.resample(16, 48)

        assert resampled.data.shape == (48, 16)
        assert resampled.xreal == random_field.xreal
        assert resampled.yreal == random_field.yreal


class TestHelpers:
    """Tests for small conversion helpers."""

    def test_grayscale_passthrough(self):
        gray = np.random.rand(10, 10)

        assert to_grayscale(gray).shape == gray.shape

    def test_display_bytes(self, random_field):
        out = to_display_bytes(random_field)

        assert out.dtype == np.uint8
        assert out.min() == 0
        assert out.max() == 255

    def test_display_bytes_flat(self):
        field = DataField(data=np.ones((3, 3)), xreal=1.0, yreal=1.0)

        assert to_display_bytes(field).max() == 0

    def test_image_info(self, random_field):
        info = get_image_info(random_field)

        assert info["xres"] == 32
        assert info["unit_xy"] == "nm"
