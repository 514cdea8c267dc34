"""State and operations of one interactive calibration session.

A session owns the spectrum of the source channel, the two pick slots and
the ``CalibrationArgs``. The host UI calls the methods below in response to
user events; nothing here touches global state except the event log.
"""

from dataclasses import replace
from typing import List, Optional

from .collection import ImageCollection
from .core.calibration import calibrate_into_collection
from .core.lattice import merge_manual_override, solve_scale_factors
from .core.peaks import refine_peak
from .core.spectrum import compute_spectrum
from .core.zoom import clamp_intensity, map_point, zoom_spectrum
from .models import (
    MAX_RADIUS_PX,
    MIN_RADIUS_PX,
    ZOOM_LEVELS,
    CalibrationArgs,
    DataField,
    Peak,
    Point,
    ScaleFactors,
    Selection,
    metres_per_unit,
)
from .services.logging import log_event
from .services.settings import SettingsStore, load_args, save_args

# Factors outside [1/bound, bound] are reported as implausible
EXTREME_SCALE_BOUND = 1e3


class CalibrationSession:
    """One calibration dialog over a single source channel."""

    def __init__(
        self,
        collection: ImageCollection,
        channel_id: int,
        args: CalibrationArgs,
        settings: Optional[SettingsStore] = None,
    ):
        source = collection.get(channel_id)

        self.collection = collection
        self.channel_id = channel_id
        self.args = args
        self.settings = settings
        self.unit_length = metres_per_unit(source.field.si_unit_xy)

        self.spectrum: DataField = compute_spectrum(source.field)
        self.range_min, self.range_max = self.spectrum.get_min_max()

        self.selection = Selection()
        self._peaks: List[Optional[Peak]] = [None] * self.selection.max_objects
        self.manual_xscale: Optional[float] = None
        self.manual_yscale: Optional[float] = None
        self._display: Optional[DataField] = None

        log_event('session_start', {
            'channel_id': channel_id,
            'xres': source.field.xres,
            'yres': source.field.yres,
            'lattice': args.lattice,
            'radius': args.radius,
        })
        self.update_scales()

    @classmethod
    def start(
        cls,
        collection: ImageCollection,
        channel_id: Optional[int] = None,
        settings: Optional[SettingsStore] = None,
    ) -> "CalibrationSession":
        """
        Open a session on a channel, reading persisted arguments.

        The persisted lattice constant is in metres and is converted to the
        lateral unit of the channel.

        Raises:
            NoImageError: if the channel (or a current channel) is missing
        """
        if channel_id is None:
            source = collection.current()
        else:
            source = collection.get(channel_id)

        args = load_args(settings) if settings is not None else CalibrationArgs()
        args.lattice /= metres_per_unit(source.field.si_unit_xy)
        return cls(collection, source.id, args, settings)

    # Display

    def display_field(self) -> DataField:
        """Spectrum at the current zoom, without the intensity clamp."""
        if self._display is None:
            self._display = zoom_spectrum(self.spectrum, self.args.zoom)
        return self._display

    def display_image(self) -> DataField:
        """Spectrum at the current zoom with the intensity clamp applied."""
        return clamp_intensity(self.display_field(), self.args.lower, self.args.upper)

    def _clamp_to_range(self, value: float) -> float:
        return min(max(value, self.range_min), self.range_max)

    def set_lower(self, value: float) -> float:
        self.args.lower = self._clamp_to_range(value)
        return self.args.lower

    def set_upper(self, value: float) -> float:
        self.args.upper = self._clamp_to_range(value)
        return self.args.upper

    def set_full_range(self):
        self.args.lower = self.range_min
        self.args.upper = self.range_max

    def set_zoom(self, level: int):
        """Change zoom, keeping picks on the same physical positions."""
        if level not in ZOOM_LEVELS:
            raise ValueError(f"Unsupported zoom level {level}, expected one of {ZOOM_LEVELS}")
        old = self.args.zoom
        for index in self.selection.filled():
            point = self.selection.get(index)
            self.selection.set(index, map_point(
                point, self.spectrum.xoff, self.spectrum.yoff, old, level
            ))
        self.args.zoom = level
        self._display = None
        self.refind_peaks()

    # Picks and peaks

    def _to_native(self, point: Point) -> Point:
        return map_point(point, self.spectrum.xoff, self.spectrum.yoff, self.args.zoom, 1)

    def _to_display(self, point: Point) -> Point:
        return map_point(point, self.spectrum.xoff, self.spectrum.yoff, 1, self.args.zoom)

    def _refine(self, index: int) -> Peak:
        point = self.selection.get(index)
        peak, snapped = refine_peak(self.spectrum, self._to_native(point), self.args.radius)
        self._peaks[index] = peak
        if snapped is not None:
            self.selection.set(index, self._to_display(snapped))
        log_event('peak_refined', {
            'index': index,
            'x': peak.x,
            'y': peak.y,
            'z': peak.z,
            'snapped': snapped is not None,
        })
        return peak

    def pick(self, index: int, point: Point) -> Peak:
        """
        Place (or move) pick ``index`` and refine it.

        Args:
            index: Slot, 0 or 1
            point: (x, y) in the displayed frame, relative to its origin

        Returns:
            Refined peak
        """
        self.selection.set(index, point)
        peak = self._refine(index)
        self.update_scales()
        return peak

    def add_pick(self, point: Point) -> Peak:
        """Place a pick in the first free slot."""
        index = self.selection.first_free()
        if index is None:
            raise ValueError("Both peak slots are already filled")
        return self.pick(index, point)

    def refind_peaks(self):
        for index in self.selection.filled():
            self._refine(index)
        self.update_scales()

    def clear_points(self):
        """Empty both pick slots and drop manual scale factors."""
        self.selection.clear()
        self.manual_xscale = None
        self.manual_yscale = None
        self._peaks = [None] * self.selection.max_objects
        self.update_scales()

    def peaks(self) -> List[Optional[Peak]]:
        return list(self._peaks)

    def set_radius(self, radius: int) -> int:
        self.args.radius = min(max(int(radius), MIN_RADIUS_PX), MAX_RADIUS_PX)
        self.refind_peaks()
        return self.args.radius

    # Scale factors

    def set_lattice(self, lattice: float) -> bool:
        """Set the lattice constant; non-positive values are ignored."""
        if lattice > 0:
            self.args.lattice = lattice
            self.update_scales()
            return True
        return False

    def set_manual_xscale(self, value: float) -> bool:
        if value > 0:
            self.manual_xscale = value
            self.update_scales()
            return True
        return False

    def set_manual_yscale(self, value: float) -> bool:
        if value > 0:
            self.manual_yscale = value
            self.update_scales()
            return True
        return False

    def clear_manual_scales(self):
        self.manual_xscale = None
        self.manual_yscale = None
        self.update_scales()

    def update_scales(self) -> ScaleFactors:
        """Recompute the scale factors from the current peaks and overrides."""
        if self.selection.is_full:
            solved = solve_scale_factors(self._peaks[0], self._peaks[1], self.args.lattice)
            log_event('scales_solved', {
                'xscale': solved.xscale,
                'yscale': solved.yscale,
                'xwarning': solved.xwarning,
                'ywarning': solved.ywarning,
            })
        else:
            solved = ScaleFactors(0.0, 0.0)

        scales = merge_manual_override(solved, self.manual_xscale, self.manual_yscale)
        self.args.xscale = scales.xscale
        self.args.yscale = scales.yscale
        self.args.xwarning = scales.xwarning
        self.args.ywarning = scales.ywarning

        if self.selection.is_full:
            if scales.has_warning:
                log_event('scale_warning', {
                    'xwarning': scales.xwarning,
                    'ywarning': scales.ywarning,
                })
            elif scales.is_extreme(EXTREME_SCALE_BOUND):
                log_event('scale_extreme', {
                    'xscale': scales.xscale,
                    'yscale': scales.yscale,
                    'bound': EXTREME_SCALE_BOUND,
                })
        return scales

    def scale_factors(self) -> ScaleFactors:
        return self.args.scale_factors()

    def can_calibrate(self) -> bool:
        return self.selection.is_full or (self.args.xscale > 0 and self.args.yscale > 0)

    # Session end

    def _persist(self):
        if self.settings is None:
            return
        save_args(self.settings, replace(self.args, lattice=self.args.lattice * self.unit_length))
        log_event('settings_saved', {'path': str(self.settings.path)})

    def accept(self) -> Optional[int]:
        """
        Persist settings and calibrate if possible.

        Returns:
            Id of the new channel, or None when neither two peaks nor both
            scale factors are available

        Raises:
            CalibrationError: if the factors are non-finite, non-positive or
                leave no rows; settings are still persisted
        """
        self._persist()
        if not self.can_calibrate():
            log_event('calibration_skipped', {'channel_id': self.channel_id})
            return None
        return calibrate_into_collection(self.collection, self.channel_id, self.scale_factors())

    def cancel(self):
        """Persist settings and discard the session."""
        self._persist()
