"""HCP lattice calibration of scanning-probe microscope images.

Two first-ring peaks picked in the FFT of an image of a known hexagonal
close-packed lattice give independent X and Y scale factors; the image is
then resampled so its lattice spacing matches the known constant.
"""

__version__ = "0.1.0"

from .models import CalibrationArgs, DataField, Peak, ScaleFactors, Selection
from .collection import ImageCollection, NoImageError
from .core import (
    CalibrationError,
    apply_calibration,
    compute_spectrum,
    map_point,
    refine_peak,
    solve_scale_factors,
    zoom_spectrum,
)
from .session import CalibrationSession

__all__ = [
    "__version__",
    "CalibrationArgs",
    "DataField",
    "Peak",
    "ScaleFactors",
    "Selection",
    "ImageCollection",
    "NoImageError",
    "CalibrationError",
    "apply_calibration",
    "compute_spectrum",
    "map_point",
    "refine_peak",
    "solve_scale_factors",
    "zoom_spectrum",
    "CalibrationSession",
]
