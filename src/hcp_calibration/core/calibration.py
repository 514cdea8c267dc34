"""Apply X/Y scale factors to a real-space field."""

import math
from typing import Optional

from ..collection import ImageCollection
from ..models import DataField, ScaleFactors
from ..services.logging import log_event

CALIBRATE_OPERATION = "proc::calibrate_hcp"
OUTPUT_TITLE = "Calibrated"


class CalibrationError(ValueError):
    """Scale factors that cannot be turned into a resampled field."""


def round_half_up(value: float) -> int:
    """Round half up."""
    return int(math.floor(value + 0.5))


def calibrated_resolution(field: DataField, xscale: float, yscale: float):
    """
    Output resolution for the given scale factors.

    X resolution is kept; Y is scaled by ``yscale / xscale`` so the pixel
    aspect follows the independently scaled extents.

    Returns:
        Tuple of (xres, yres)
    """
    for name, value in (("X", xscale), ("Y", yscale)):
        if not math.isfinite(value) or value <= 0:
            raise CalibrationError(f"{name} scale factor must be positive and finite, got {value}")

    new_xres = round_half_up(field.xres)
    new_yres = round_half_up(field.yres * yscale / xscale)
    if new_yres < 1:
        raise CalibrationError(
            f"Scale factors {xscale:g}/{yscale:g} leave no rows (Y resolution {new_yres})"
        )
    return new_xres, new_yres


def apply_calibration(field: DataField, scales: ScaleFactors) -> DataField:
    """
    Resample a field so its lattice matches the known constant.

    Args:
        field: Original real-space field (not modified)
        scales: X/Y scale factors

    Returns:
        New field with the calibrated resolution and extents
    """
    new_xres, new_yres = calibrated_resolution(field, scales.xscale, scales.yscale)
    calibrated = field.resample(new_xres, new_yres)
    calibrated.xreal = field.xreal * scales.xscale
    calibrated.yreal = field.yreal * scales.yscale
    return calibrated


def build_output_metadata(
    source_meta: Optional[dict],
    source_title: str,
    scales: ScaleFactors,
) -> dict:
    """
    Metadata for a calibrated channel.

    Args:
        source_meta: Metadata of the source channel, if any (not modified)
        source_title: Title of the source channel
        scales: Applied scale factors

    Returns:
        New metadata dict
    """
    meta = dict(source_meta) if source_meta else {}
    meta["Source Title"] = source_title or ""
    meta["X Scaling Factor"] = f"{scales.xscale:.5f}"
    meta["Y Scaling Factor"] = f"{scales.yscale:.5f}"
    return meta


def calibrate_into_collection(
    collection: ImageCollection,
    source_id: int,
    scales: ScaleFactors,
) -> int:
    """
    Calibrate a channel and append the result to the collection.

    Args:
        collection: Host image collection
        source_id: Channel to calibrate
        scales: X/Y scale factors

    Returns:
        Id of the new channel
    """
    source = collection.get(source_id)
    field = apply_calibration(source.field, scales)
    meta = build_output_metadata(source.meta, source.title, scales)

    new_id = collection.add(field, title=OUTPUT_TITLE, meta=meta)
    collection.log_operation(source_id, new_id, CALIBRATE_OPERATION)
    log_event(CALIBRATE_OPERATION, {
        "source_id": source_id,
        "output_id": new_id,
        "xscale": scales.xscale,
        "yscale": scales.yscale,
        "xres": field.xres,
        "yres": field.yres,
    })
    return new_id
