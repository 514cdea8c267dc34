"""Local peak refinement in the spectrum."""

from typing import Optional, Tuple

from ..models import DataField, Peak, Point


def refine_peak(
    spectrum: DataField,
    point: Point,
    radius: int,
) -> Tuple[Peak, Optional[Point]]:
    """
    Snap an approximate point to the local maximum around it.

    The window ``[col0 - r, col0 + r) x [row0 - r, row0 + r)`` is scanned row
    by row, clamped to the raster. The sample under the point seeds the
    search and is only replaced by a strictly larger value, so the first
    maximum in scan order wins and a point already on a maximum stays put.

    Args:
        spectrum: Field to search (native, unzoomed spectrum)
        point: Approximate (x, y), relative to the field origin
        radius: Half window size in pixels; 0 checks the single sample

    Returns:
        Tuple of (peak in absolute physical coordinates, snapped point or
        None when the point already sat on the maximum). The snapped point
        is relative to the field origin, like the input.
    """
    if radius < 0:
        raise ValueError("Peak search radius must be non-negative")

    col0 = spectrum.rtoj(point[0])
    row0 = spectrum.rtoi(point[1])

    best_col, best_row = col0, row0
    best_z = spectrum.get_val(col0, row0)

    low_col = max(col0 - radius, 0)
    high_col = min(col0 + radius, spectrum.xres)
    low_row = max(row0 - radius, 0)
    high_row = min(row0 + radius, spectrum.yres)

    data = spectrum.data
    for row in range(low_row, high_row):
        for col in range(low_col, high_col):
            value = data[row, col]
            if value > best_z:
                best_col, best_row, best_z = col, row, float(value)

    peak = Peak(
        x=spectrum.jtor(best_col) + spectrum.xoff,
        y=spectrum.itor(best_row) + spectrum.yoff,
        z=best_z,
    )

    snapped = None
    if (best_col, best_row) != (col0, row0):
        snapped = (spectrum.jtor(best_col), spectrum.itor(best_row))

    return peak, snapped
