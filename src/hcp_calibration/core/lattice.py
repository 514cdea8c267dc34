"""Two-peak solve for anisotropic X/Y scale factors.

For an HCP lattice with nearest-neighbour spacing ``a`` the first ring of
Fourier peaks lies on a circle of radius ``R = 2 / (sqrt(3) * a)``. With two
measured peaks (x1, y1) and (x2, y2), the corrections xcorr and ycorr that
put both on that circle satisfy

    (xcorr * x1)^2 + (ycorr * y1)^2 = R^2
    (xcorr * x2)^2 + (ycorr * y2)^2 = R^2

and the scale factors are their reciprocals.
"""

import math
from typing import Optional

import numpy as np

from ..models import Peak, ScaleFactors


def ring_radius(lattice: float) -> float:
    """Reciprocal-space radius of the first HCP peak ring."""
    return 2.0 / (math.sqrt(3.0) * lattice)


def solve_scale_factors(p1: Peak, p2: Peak, lattice: float) -> ScaleFactors:
    """
    Solve for X and Y scale factors from two first-ring peaks.

    Degenerate configurations do not raise. They produce non-finite or
    meaningless factors and set the corresponding warning flags; it is up
    to the caller whether to apply them anyway.

    Args:
        p1: First refined peak (absolute reciprocal coordinates)
        p2: Second refined peak
        lattice: Known real-space lattice constant, in the inverse of the
            peaks' units

    Returns:
        ScaleFactors with xwarning/ywarning flags
    """
    x1, y1 = np.float64(p1.x), np.float64(p1.y)
    x2, y2 = np.float64(p2.x), np.float64(p2.y)
    r = np.float64(ring_radius(lattice))

    x1_2 = x1 * x1
    y1_2 = y1 * y1
    x2_2 = x2 * x2
    y2_2 = y2 * y2

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        ycorr = r * np.sqrt((x1_2 - x2_2) / (x1_2 * y2_2 - x2_2 * y1_2))
        xcorr = np.sqrt((r * r - ycorr * ycorr * y1_2) / x1_2)
        xscale = np.float64(1.0) / xcorr
        yscale = np.float64(1.0) / ycorr

    xwarning = False
    ywarning = False
    if x1_2 == x2_2:
        xwarning = True
    if y1_2 == y2_2:
        ywarning = True
    if x1_2 == 0:
        xwarning = True
    if not np.isfinite(xscale):
        xwarning = True
    if not np.isfinite(yscale):
        ywarning = True
    # Singular system: both peaks on the same line through the origin
    if x1_2 * y2_2 == x2_2 * y1_2:
        xwarning = True
        ywarning = True

    return ScaleFactors(
        xscale=float(xscale),
        yscale=float(yscale),
        xwarning=xwarning,
        ywarning=ywarning,
    )


def merge_manual_override(
    solved: ScaleFactors,
    xscale: Optional[float] = None,
    yscale: Optional[float] = None,
) -> ScaleFactors:
    """
    Replace solved factors with operator-entered ones.

    Only positive entries are taken; anything else leaves the solved value.
    Warning flags are left as the solver set them.
    """
    result = ScaleFactors(solved.xscale, solved.yscale, solved.xwarning, solved.ywarning)
    if xscale is not None and xscale > 0:
        result.xscale = float(xscale)
    if yscale is not None and yscale > 0:
        result.yscale = float(yscale)
    return result
