"""Magnified display of the spectrum centre and point mapping between zooms."""

import numpy as np

from ..models import ZOOM_LEVELS, DataField, Point


def _check_level(level: int):
    if level not in ZOOM_LEVELS:
        raise ValueError(f"Unsupported zoom level {level}, expected one of {ZOOM_LEVELS}")


def zoom_spectrum(spectrum: DataField, level: int) -> DataField:
    """
    Build the display field for a zoom level.

    For level N > 1 the centred block of ``(xres // N) | 1`` by
    ``(yres // N) | 1`` samples is resampled back to full resolution. The odd
    size keeps a true centre sample. Extents and offsets are divided by N so
    display coordinates stay in the spectrum's physical units.

    Args:
        spectrum: Native spectrum (not modified)
        level: Zoom level

    Returns:
        New display field
    """
    _check_level(level)

    if level == 1:
        display = spectrum.duplicate()
    else:
        xres, yres = spectrum.xres, spectrum.yres
        width = min((xres // level) | 1, xres)
        height = min((yres // level) | 1, yres)
        block = spectrum.area_extract(
            (xres - width) // 2, (yres - height) // 2, width, height
        )
        display = block.resample(xres, yres)

    display.xreal = spectrum.xreal / level
    display.yreal = spectrum.yreal / level
    display.xoff = spectrum.xoff / level
    display.yoff = spectrum.yoff / level
    display.si_unit_xy = spectrum.si_unit_xy
    display.si_unit_z = spectrum.si_unit_z
    return display


def map_point(
    point: Point,
    xoff: float,
    yoff: float,
    from_level: int,
    to_level: int,
) -> Point:
    """
    Re-express an offset-relative display point at another zoom level.

    The absolute physical position ``point + offset / level`` is kept.

    Args:
        point: (x, y) relative to the display origin at ``from_level``
        xoff: X offset of the native spectrum
        yoff: Y offset of the native spectrum
        from_level: Zoom level the point was picked at
        to_level: Zoom level to map to

    Returns:
        (x, y) relative to the display origin at ``to_level``
    """
    _check_level(from_level)
    _check_level(to_level)
    if from_level == to_level:
        return (point[0], point[1])
    return (
        point[0] + xoff / from_level - xoff / to_level,
        point[1] + yoff / from_level - yoff / to_level,
    )


def clamp_intensity(field: DataField, lower: float, upper: float) -> DataField:
    """
    Clamp display values to ``[min(lower, upper), max(lower, upper)]``.

    Args:
        field: Display field (not modified)
        lower: One bound
        upper: Other bound

    Returns:
        New clamped field
    """
    lo, hi = min(lower, upper), max(lower, upper)
    clamped = field.duplicate()
    clamped.data = np.clip(clamped.data, lo, hi)
    return clamped
