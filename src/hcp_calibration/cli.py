"""Command-line interface for HCP lattice calibration."""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich_argparse import RichHelpFormatter

from .collection import ImageCollection, NoImageError
from .core.calibration import CalibrationError
from .core.preprocessing import field_from_array, get_image_info, load_image, to_display_bytes
from .models import LENGTH_UNITS, ZOOM_LEVELS, DataField
from .services.logging import init_logging, log_event
from .services.settings import SettingsStore
from .session import CalibrationSession

console = Console()


def parse_point(text: str) -> Tuple[float, float]:
    """Parse 'X,Y' into a float pair."""
    parts = text.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected X,Y but got '{text}'")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Non-numeric point '{text}'") from None


def _add_image_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "image",
        type=Path,
        help="Path to the image file (TIFF, PNG, ...)",
    )
    parser.add_argument(
        "--pixel-size",
        type=float,
        required=True,
        help="Physical X sampling interval of the image",
    )
    parser.add_argument(
        "--pixel-size-y",
        type=float,
        default=None,
        help="Physical Y sampling interval (default: same as --pixel-size)",
    )
    parser.add_argument(
        "--unit",
        type=str,
        choices=list(LENGTH_UNITS),
        default="nm",
        help="Lateral unit of the pixel size and lattice constant (default: nm)",
    )
    parser.add_argument(
        "--zoom",
        type=int,
        choices=ZOOM_LEVELS,
        default=1,
        help="Spectrum display zoom; picks are given in this frame (default: 1)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Settings file (default: $HCP_CALIBRATION_SETTINGS or ~/.hcp_calibration/settings.json)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hcp-calibrate",
        description="Calibrate SPM image X/Y scale against a known HCP lattice",
        epilog="Run 'hcp-calibrate <command> --help' for command-specific options.",
        formatter_class=RichHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Spectrum command
    spectrum_parser = subparsers.add_parser(
        "spectrum",
        help="Write the FFT magnitude image for picking peaks",
        formatter_class=RichHelpFormatter,
    )
    _add_image_arguments(spectrum_parser)
    spectrum_parser.add_argument(
        "--lower",
        type=float,
        default=None,
        help="Lower intensity clamp (default: full range)",
    )
    spectrum_parser.add_argument(
        "--upper",
        type=float,
        default=None,
        help="Upper intensity clamp (default: full range)",
    )
    spectrum_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("spectrum.png"),
        help="Output PNG (default: ./spectrum.png)",
    )

    # Calibrate command
    calibrate_parser = subparsers.add_parser(
        "calibrate",
        help="Calibrate an image from two first-ring peaks",
        formatter_class=RichHelpFormatter,
    )
    _add_image_arguments(calibrate_parser)
    calibrate_parser.add_argument(
        "--peak",
        type=parse_point,
        action="append",
        default=[],
        metavar="X,Y",
        help="Approximate peak position in the displayed spectrum, relative to its origin "
             "(reciprocal units); give twice",
    )
    calibrate_parser.add_argument(
        "--lattice",
        type=float,
        default=None,
        help="Known HCP lattice constant in --unit (default: stored setting, initially 1 nm)",
    )
    calibrate_parser.add_argument(
        "--radius",
        type=int,
        default=None,
        help="Peak search radius in pixels, 0-10 (default: stored setting, 3)",
    )
    calibrate_parser.add_argument(
        "--xscale",
        type=float,
        default=None,
        help="Manual X scale factor (overrides the solved value)",
    )
    calibrate_parser.add_argument(
        "--yscale",
        type=float,
        default=None,
        help="Manual Y scale factor (overrides the solved value)",
    )
    calibrate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report peaks and scale factors without writing output",
    )
    calibrate_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: ./output)",
    )

    return parser


def create_session_dir(output_root: Path) -> Path:
    """Create a timestamped directory for one run."""
    session_dir = Path(output_root) / datetime.now().strftime("%Y-%m-%d_%H%M%S")
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def load_field(args: argparse.Namespace) -> DataField:
    image = load_image(args.image)
    return field_from_array(
        image,
        pixel_size=args.pixel_size,
        unit=args.unit,
        pixel_size_y=args.pixel_size_y,
    )


def open_session(args: argparse.Namespace) -> CalibrationSession:
    field = load_field(args)
    collection = ImageCollection()
    collection.add(field, title=args.image.stem)
    session = CalibrationSession.start(collection, settings=SettingsStore(args.settings))
    if args.zoom != session.args.zoom:
        session.set_zoom(args.zoom)
    return session


def save_field(field: DataField, meta: dict, path: Path) -> Path:
    """Write a field as 32-bit float TIFF plus a JSON sidecar."""
    Image.fromarray(field.data.astype(np.float32)).save(path)
    sidecar = path.with_suffix(".json")
    with open(sidecar, "w", encoding="utf-8") as f:
        json.dump({"geometry": get_image_info(field), "meta": meta}, f, indent=2)
    return sidecar


def print_geometry(field: DataField, title: str):
    table = Table(title=title)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Resolution", f"{field.xres} × {field.yres}")
    table.add_row("Extent", f"{field.xreal:.6g} × {field.yreal:.6g} {field.si_unit_xy}")
    table.add_row("Offset", f"{field.xoff:.6g}, {field.yoff:.6g} {field.si_unit_xy}")
    table.add_row("Pixel", f"{field.dx:.6g} × {field.dy:.6g} {field.si_unit_xy}")
    console.print(table)


def print_peaks(session: CalibrationSession):
    unit = session.spectrum.si_unit_xy
    table = Table(title="Peak Positions")
    table.add_column("n", style="cyan")
    table.add_column(f"x [{unit}]", style="white")
    table.add_column(f"y [{unit}]", style="white")
    table.add_column("value", style="white")
    for i, peak in enumerate(session.peaks()):
        if peak is None:
            table.add_row(str(i + 1), "", "", "")
        else:
            table.add_row(str(i + 1), f"{peak.x:.5g}", f"{peak.y:.5g}", f"{peak.z:.4g}")
    console.print(table)


def print_scales(session: CalibrationSession):
    scales = session.scale_factors()
    table = Table(title="Scale Factors")
    table.add_column("Axis", style="cyan")
    table.add_column("Factor", style="green")
    table.add_column("", style="bold red")
    table.add_row("X", f"{scales.xscale:f}", "X" if scales.xwarning else "")
    table.add_row("Y", f"{scales.yscale:f}", "X" if scales.ywarning else "")
    console.print(table)
    if scales.has_warning:
        console.print("[bold red]Warning![/bold red] Peaks are degenerate; factors may be meaningless")


def run_spectrum(args: argparse.Namespace) -> int:
    """Write the display spectrum as an 8-bit PNG."""
    try:
        session = open_session(args)
        session.set_full_range()
        if args.lower is not None:
            session.set_lower(args.lower)
        if args.upper is not None:
            session.set_upper(args.upper)

        display = session.display_image()
        args.output.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(to_display_bytes(display)).save(args.output)

        print_geometry(display, f"Spectrum (zoom ×{session.args.zoom})")
        console.print(f"Intensity range: {session.range_min:.4g} – {session.range_max:.4g}")
        console.print(f"[bold]Spectrum saved to:[/bold] {args.output}")
        session.cancel()
        return 0

    except (OSError, ValueError, NoImageError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            console.print_exception()
        return 1


def run_calibrate(args: argparse.Namespace) -> int:
    """Calibrate an image from command-line picks."""
    if len(args.peak) > 2:
        console.print("[red]At most two --peak values are allowed[/red]")
        return 1

    session_dir = None
    if not args.dry_run:
        session_dir = create_session_dir(args.output)
        init_logging(session_dir)

    try:
        session = open_session(args)
        log_event('image_loaded', {'path': str(args.image)})

        if args.lattice is not None and not session.set_lattice(args.lattice):
            console.print(f"[yellow]Ignoring non-positive lattice constant {args.lattice}[/yellow]")
        if args.radius is not None:
            session.set_radius(args.radius)
        for point in args.peak:
            session.add_pick(point)
        if args.xscale is not None and not session.set_manual_xscale(args.xscale):
            console.print(f"[yellow]Ignoring non-positive X scale {args.xscale}[/yellow]")
        if args.yscale is not None and not session.set_manual_yscale(args.yscale):
            console.print(f"[yellow]Ignoring non-positive Y scale {args.yscale}[/yellow]")

        console.print(Panel.fit(
            f"[bold]Lattice constant:[/bold] {session.args.lattice:g} {args.unit}   "
            f"[bold]Search radius:[/bold] {session.args.radius} px"
        ))
        print_peaks(session)
        print_scales(session)

        if args.dry_run:
            session.cancel()
            return 0

        new_id = session.accept()
        if new_id is None:
            console.print("[yellow]Nothing to do: give two --peak values or both --xscale and --yscale[/yellow]")
            return 1

        channel = session.collection.get(new_id)
        out_path = session_dir / f"{args.image.stem}_calibrated.tif"
        save_field(channel.field, channel.meta, out_path)
        print_geometry(channel.field, channel.title)
        console.print(f"\n[bold]Results saved to:[/bold] {session_dir}")
        return 0

    except (OSError, ValueError, NoImageError) as e:
        # CalibrationError is a ValueError
        kind = "Calibration failed" if isinstance(e, CalibrationError) else "Error"
        console.print(f"[red]{kind}: {e}[/red]")
        log_event('error', {'message': str(e)})
        if args.verbose:
            console.print_exception()
        return 1


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "spectrum":
        return run_spectrum(args)
    elif args.command == "calibrate":
        return run_calibrate(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
