"""Pytest fixtures for HCP calibration tests."""

import numpy as np
import pytest
from PIL import Image

from hcp_calibration.collection import ImageCollection
from hcp_calibration.models import DataField
from hcp_calibration.services import logging as event_log
from hcp_calibration.services.settings import SettingsStore

# Synthetic lattice geometry: 64x64 pixels, peaks on exact FFT bins
LATTICE_RES = 64
LATTICE_DX = 0.1  # nm
LATTICE_DY = 0.125  # nm
# (kx, ky) bin offsets of the two wave vectors from the spectrum centre
LATTICE_BINS = [(8, 3), (3, 8)]


def make_wave_image(res, bins):
    """Sum of cosines whose Fourier peaks fall exactly on the given bins."""
    rows, cols = np.mgrid[:res, :res]
    image = np.zeros((res, res), dtype=np.float64)
    for kx, ky in bins:
        image += np.cos(2 * np.pi * (kx * cols + ky * rows) / res)
    return image


@pytest.fixture
def lattice_field():
    """Anisotropically sampled field with two known Fourier peaks."""
    return DataField(
        data=make_wave_image(LATTICE_RES, LATTICE_BINS),
        xreal=LATTICE_RES * LATTICE_DX,
        yreal=LATTICE_RES * LATTICE_DY,
        si_unit_xy="nm",
        si_unit_z="m",
    )


@pytest.fixture
def random_field():
    """Small random field with non-zero offsets."""
    rng = np.random.default_rng(42)
    return DataField(
        data=rng.normal(size=(24, 32)),
        xreal=3.2,
        yreal=2.4,
        xoff=1.0,
        yoff=-2.0,
        si_unit_xy="nm",
        si_unit_z="A",
    )


@pytest.fixture
def ramp_spectrum():
    """Field whose value equals its flat index, centred like a spectrum."""
    data = np.arange(16 * 16, dtype=np.float64).reshape(16, 16)
    return DataField(data=data, xreal=16.0, yreal=16.0, xoff=-8.0, yoff=-8.0, si_unit_xy="1/nm")


@pytest.fixture
def lattice_collection(lattice_field):
    """Collection holding the lattice field as its current channel."""
    collection = ImageCollection()
    collection.add(lattice_field, title="HOPG scan", meta={"Operator": "lab"})
    return collection


@pytest.fixture
def settings_store(tmp_path):
    """Settings store backed by a temporary file."""
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture(autouse=True)
def reset_event_log():
    """Keep the module-level event log closed between tests."""
    event_log.close_logging()
    yield
    event_log.close_logging()


@pytest.fixture
def lattice_tiff(tmp_path):
    """The lattice image written as a 32-bit float TIFF."""
    path = tmp_path / "hopg.tif"
    image = make_wave_image(LATTICE_RES, LATTICE_BINS).astype(np.float32)
    Image.fromarray(image).save(path)
    return path
