"""FFT magnitude spectrum of a real-space field.

The spectrum is centred (zero frequency in the middle of the raster), its
axes are in reciprocal length and its values are shifted so the minimum is 0.
"""

from typing import Tuple

import numpy as np
from scipy import fft
from scipy.signal import windows

from ..models import DataField, invert_unit


def hann_window_2d(yres: int, xres: int) -> np.ndarray:
    """Separable 2D Hann window of the given shape."""
    return np.outer(windows.hann(yres), windows.hann(xres))


def forward_fft(field: DataField) -> Tuple[np.ndarray, np.ndarray]:
    """
    Mean-subtracted, Hann-windowed forward 2D FFT.

    Args:
        field: Real-space field

    Returns:
        Tuple of (real part, imaginary part), each shaped like the input
    """
    data = field.data - field.data.mean()
    data = data * hann_window_2d(field.yres, field.xres)
    transformed = fft.fft2(data, norm="ortho")
    return transformed.real.copy(), transformed.imag.copy()


def modulus(re: np.ndarray, im: np.ndarray) -> np.ndarray:
    """Elementwise magnitude into a new array."""
    return np.hypot(re, im)


def fft_postprocess(spectrum: DataField) -> DataField:
    """
    Centre the zero frequency and switch axes to reciprocal units.

    Extents become the reciprocal of the original sampling interval and the
    offsets put the centred bin at physical (0, 0). The minimum is
    subtracted so every value is non-negative.

    Args:
        spectrum: Magnitude field still carrying real-space geometry

    Returns:
        New post-processed field
    """
    data = fft.fftshift(spectrum.data)

    xreal = 1.0 / spectrum.dx
    yreal = 1.0 / spectrum.dy
    xoff = -(spectrum.xres / 2.0) * (xreal / spectrum.xres)
    yoff = -(spectrum.yres / 2.0) * (yreal / spectrum.yres)

    data = data - data.min()

    return DataField(
        data=data,
        xreal=xreal,
        yreal=yreal,
        xoff=xoff,
        yoff=yoff,
        si_unit_xy=invert_unit(spectrum.si_unit_xy),
        si_unit_z=spectrum.si_unit_z,
    )


def compute_spectrum(field: DataField) -> DataField:
    """
    Complete spectral transform used for peak picking.

    Args:
        field: Real-space field (not modified)

    Returns:
        Centred magnitude spectrum in reciprocal units
    """
    re, im = forward_fft(field)
    magnitude = DataField(
        data=modulus(re, im),
        xreal=field.xreal,
        yreal=field.yreal,
        xoff=field.xoff,
        yoff=field.yoff,
        si_unit_xy=field.si_unit_xy,
        si_unit_z=field.si_unit_z,
    )
    return fft_postprocess(magnitude)
