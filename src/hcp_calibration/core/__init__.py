"""Numeric core of the calibration pipeline."""

from .spectrum import compute_spectrum
from .peaks import refine_peak
from .lattice import solve_scale_factors, ring_radius
from .zoom import zoom_spectrum, map_point, clamp_intensity
from .calibration import CalibrationError, apply_calibration, calibrate_into_collection
from .preprocessing import load_image, field_from_array

__all__ = [
    "compute_spectrum",
    "refine_peak",
    "solve_scale_factors",
    "ring_radius",
    "zoom_spectrum",
    "map_point",
    "clamp_intensity",
    "CalibrationError",
    "apply_calibration",
    "calibrate_into_collection",
    "load_image",
    "field_from_array",
]
