"""Data models for HCP lattice calibration."""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from skimage.transform import resize

# Zoom levels offered for the spectrum display
ZOOM_LEVELS = (1, 2)

# Peak search radius bounds in pixels
MIN_RADIUS_PX = 0
MAX_RADIUS_PX = 10

Point = Tuple[float, float]


def invert_unit(unit: str) -> str:
    """Return the reciprocal of a unit tag ('nm' -> '1/nm', '1/nm' -> 'nm')."""
    if not unit:
        return ""
    if unit.startswith("1/"):
        return unit[2:]
    return f"1/{unit}"


# Metres per lateral unit tag
LENGTH_UNITS = {
    "m": 1.0,
    "mm": 1e-3,
    "um": 1e-6,
    "µm": 1e-6,
    "nm": 1e-9,
    "A": 1e-10,
    "Å": 1e-10,
    "pm": 1e-12,
}


def metres_per_unit(unit: str) -> float:
    """Length of one ``unit`` in metres; unknown tags are taken as metres."""
    return LENGTH_UNITS.get(unit, 1.0)


@dataclass
class DataField:
    """A 2D real-valued raster with physical geometry.

    ``data`` is indexed ``[row, col]``; ``xres`` is the number of columns.
    Coordinates passed to ``rtoj``/``rtoi`` and returned by ``jtor``/``itor``
    are relative to the field origin, i.e. they do not include the offsets.
    """

    data: np.ndarray
    xreal: float
    yreal: float
    xoff: float = 0.0
    yoff: float = 0.0
    si_unit_xy: str = "m"
    si_unit_z: str = ""

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float64)
        if self.data.ndim != 2 or self.data.size == 0:
            raise ValueError(f"Field data must be a non-empty 2D array, got shape {self.data.shape}")
        for name in ("xreal", "yreal"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive and finite, got {value}")
        if not (math.isfinite(self.xoff) and math.isfinite(self.yoff)):
            raise ValueError("Offsets must be finite")

    @property
    def xres(self) -> int:
        return self.data.shape[1]

    @property
    def yres(self) -> int:
        return self.data.shape[0]

    @property
    def dx(self) -> float:
        """Physical sampling interval along X."""
        return self.xreal / self.xres

    @property
    def dy(self) -> float:
        """Physical sampling interval along Y."""
        return self.yreal / self.yres

    def rtoj(self, x: float) -> int:
        """Nearest column index for an offset-relative X coordinate."""
        col = int(math.floor(x / self.dx + 0.5))
        return min(max(col, 0), self.xres - 1)

    def rtoi(self, y: float) -> int:
        """Nearest row index for an offset-relative Y coordinate."""
        row = int(math.floor(y / self.dy + 0.5))
        return min(max(row, 0), self.yres - 1)

    def jtor(self, col: float) -> float:
        return col * self.dx

    def itor(self, row: float) -> float:
        return row * self.dy

    def get_val(self, col: int, row: int) -> float:
        return float(self.data[row, col])

    def get_min_max(self) -> Tuple[float, float]:
        return float(self.data.min()), float(self.data.max())

    def duplicate(self) -> "DataField":
        return DataField(
            data=self.data.copy(),
            xreal=self.xreal,
            yreal=self.yreal,
            xoff=self.xoff,
            yoff=self.yoff,
            si_unit_xy=self.si_unit_xy,
            si_unit_z=self.si_unit_z,
        )

    def area_extract(self, col: int, row: int, width: int, height: int) -> "DataField":
        """Copy a rectangular block into a new field with matching sampling."""
        if width < 1 or height < 1:
            raise ValueError(f"Extracted area must be at least 1x1, got {width}x{height}")
        if col < 0 or row < 0 or col + width > self.xres or row + height > self.yres:
            raise ValueError(
                f"Area ({col}, {row}, {width}x{height}) outside {self.xres}x{self.yres} field"
            )
        return DataField(
            data=self.data[row:row + height, col:col + width].copy(),
            xreal=width * self.dx,
            yreal=height * self.dy,
            xoff=self.xoff + col * self.dx,
            yoff=self.yoff + row * self.dy,
            si_unit_xy=self.si_unit_xy,
            si_unit_z=self.si_unit_z,
        )

    def resample(self, xres: int, yres: int) -> "DataField":
        """
        Bilinearly resample to a new resolution.

        Physical extents and offsets are kept, so the sampling interval
        changes with the resolution.

        Args:
            xres: New number of columns
            yres: New number of rows

        Returns:
            New DataField
        """
        if xres < 1 or yres < 1:
            raise ValueError(f"Resolution must be at least 1x1, got {xres}x{yres}")

        if (yres, xres) == self.data.shape:
            data = self.data.copy()
        else:
            data = resize(
                self.data,
                (yres, xres),
                order=1,
                mode="edge",
                anti_aliasing=False,
                preserve_range=True,
            )

        return DataField(
            data=data,
            xreal=self.xreal,
            yreal=self.yreal,
            xoff=self.xoff,
            yoff=self.yoff,
            si_unit_xy=self.si_unit_xy,
            si_unit_z=self.si_unit_z,
        )


@dataclass(frozen=True)
class Peak:
    """A refined spectrum peak in absolute physical reciprocal coordinates."""

    x: float
    y: float
    z: float  # spectrum value at the peak

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass
class ScaleFactors:
    """X/Y scale factors with their advisory degeneracy flags."""

    xscale: float
    yscale: float
    xwarning: bool = False
    ywarning: bool = False

    @property
    def has_warning(self) -> bool:
        return self.xwarning or self.ywarning

    def is_extreme(self, bound: float = 1e3) -> bool:
        """True if either factor is outside ``[1/bound, bound]``.

        Advisory only: this does not touch the degeneracy flags.
        """
        for value in (self.xscale, self.yscale):
            if not math.isfinite(value) or value <= 0:
                return True
            if value > bound or value < 1.0 / bound:
                return True
        return False


@dataclass
class CalibrationArgs:
    """Configuration state of one calibration session."""

    lower: float = 0.0
    upper: float = 0.0
    lattice: float = 1e-9  # real-space nearest-neighbour spacing
    xscale: float = 0.0  # 0 = not yet determined
    yscale: float = 0.0
    xwarning: bool = False
    ywarning: bool = False
    zoom: int = 1
    radius: int = 3

    def clamp_bounds(self) -> Tuple[float, float]:
        """Intensity clamp bounds in ascending order."""
        return min(self.lower, self.upper), max(self.lower, self.upper)

    def scale_factors(self) -> ScaleFactors:
        return ScaleFactors(self.xscale, self.yscale, self.xwarning, self.ywarning)


@dataclass
class Selection:
    """Up to two pick points in the displayed frame (offset-relative)."""

    max_objects: int = 2
    points: List[Optional[Point]] = field(default_factory=list)

    def __post_init__(self):
        if not self.points:
            self.points = [None] * self.max_objects
        if len(self.points) != self.max_objects:
            raise ValueError(f"Selection holds exactly {self.max_objects} slots")

    def _check_index(self, index: int):
        if not 0 <= index < self.max_objects:
            raise ValueError(f"Selection index {index} out of range 0..{self.max_objects - 1}")

    def get(self, index: int) -> Optional[Point]:
        self._check_index(index)
        return self.points[index]

    def set(self, index: int, point: Point):
        self._check_index(index)
        self.points[index] = (float(point[0]), float(point[1]))

    def first_free(self) -> Optional[int]:
        for i, p in enumerate(self.points):
            if p is None:
                return i
        return None

    def filled(self) -> List[int]:
        return [i for i, p in enumerate(self.points) if p is not None]

    @property
    def is_full(self) -> bool:
        return all(p is not None for p in self.points)

    def clear(self):
        self.points = [None] * self.max_objects
