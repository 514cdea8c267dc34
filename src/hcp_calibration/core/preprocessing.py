"""Image loading and conversion into physical data fields."""

from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image
from skimage.util import img_as_float

from ..models import DataField

# PIL modes that already carry physical (non 8-bit) sample values
_NUMERIC_MODES = {"F", "I", "I;16", "I;16B", "I;16L"}


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from disk.

    Supports TIFF, PNG, JPG and other PIL-supported formats. Float and
    16/32-bit integer images keep their raw sample values; everything else
    is converted to grayscale in the range 0-1.

    Args:
        path: Path to image file

    Returns:
        Image as numpy array (grayscale, float64)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    with Image.open(path) as img:
        if img.mode in _NUMERIC_MODES:
            return np.array(img, dtype=np.float64)
        if img.mode != "L":
            img = img.convert("L")
        image = np.array(img)

    return img_as_float(image)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert image to grayscale if needed.

    Args:
        image: Input image (can be RGB or grayscale)

    Returns:
        Grayscale image as float64
    """
    if image.ndim == 3:
        # RGB to grayscale using luminosity method
        return np.dot(image[..., :3], [0.2989, 0.5870, 0.1140])
    return np.asarray(image, dtype=np.float64)


def field_from_array(
    image: np.ndarray,
    pixel_size: float,
    unit: str = "nm",
    pixel_size_y: float = None,
    z_unit: str = "",
) -> DataField:
    """
    Wrap a raster into a DataField with physical extents.

    Args:
        image: 2D (or RGB) raster
        pixel_size: Physical X sampling interval
        unit: Lateral unit tag
        pixel_size_y: Physical Y sampling interval (defaults to pixel_size)
        z_unit: Value unit tag

    Returns:
        DataField with zero offsets
    """
    if pixel_size <= 0:
        raise ValueError("Pixel size must be positive")
    if pixel_size_y is None:
        pixel_size_y = pixel_size
    elif pixel_size_y <= 0:
        raise ValueError("Y pixel size must be positive")

    gray = to_grayscale(image)
    yres, xres = gray.shape
    return DataField(
        data=gray,
        xreal=xres * pixel_size,
        yreal=yres * pixel_size_y,
        si_unit_xy=unit,
        si_unit_z=z_unit,
    )


def to_display_bytes(field: DataField) -> np.ndarray:
    """
    Scale a field linearly to 8-bit for viewing.

    Args:
        field: Input field

    Returns:
        uint8 array, min mapped to 0 and max to 255
    """
    img_min, img_max = field.get_min_max()
    if img_max - img_min < 1e-300:
        return np.zeros(field.data.shape, dtype=np.uint8)
    scaled = (field.data - img_min) / (img_max - img_min)
    return np.round(scaled * 255).astype(np.uint8)


def get_image_info(field: DataField) -> dict:
    """
    Get basic field geometry and statistics.

    Args:
        field: Input field

    Returns:
        Dictionary with field info
    """
    return {
        "xres": field.xres,
        "yres": field.yres,
        "xreal": field.xreal,
        "yreal": field.yreal,
        "xoff": field.xoff,
        "yoff": field.yoff,
        "unit_xy": field.si_unit_xy,
        "unit_z": field.si_unit_z,
        "min": float(field.data.min()),
        "max": float(field.data.max()),
        "mean": float(field.data.mean()),
        "std": float(field.data.std()),
    }
