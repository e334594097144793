"""
Raster export of label regions.

Each region's hull minus its holes is scan-converted into an 8-bit,
3-channel image filled with (region.id, 0, 0). Unknown regions are left
at zero.
"""

from pathlib import Path
from typing import Sequence

import numpy as np
from PIL import Image
from skimage.draw import polygon as sk_polygon

try:
    from .geometry import Point
    from .labels import Label, LABEL_COLORS
    from .regions import Region
except ImportError:
    from geometry import Point
    from labels import Label, LABEL_COLORS
    from regions import Region


def _image_shape(width: float, height: float) -> tuple[int, int]:
    return int(round(height)), int(round(width))


def region_mask(region: Region, points: Sequence[Point], shape: tuple[int, int]) -> np.ndarray:
    """Boolean mask of the pixels covered by hull minus holes."""
    mask = np.zeros(shape, dtype=bool)
    hull = region.hull_points(points)
    xs = np.asarray([p.x for p in hull], dtype=np.float64)
    ys = np.asarray([p.y for p in hull], dtype=np.float64)
    rr, cc = sk_polygon(ys, xs, shape=shape)
    mask[rr, cc] = True

    for hole in region.hole_points(points):
        xs = np.asarray([p.x for p in hole], dtype=np.float64)
        ys = np.asarray([p.y for p in hole], dtype=np.float64)
        rr, cc = sk_polygon(ys, xs, shape=shape)
        mask[rr, cc] = False
    return mask


def rasterize_regions(regions: Sequence[Region], points: Sequence[Point],
                      width: float, height: float) -> np.ndarray:
    """
    Render regions as a label image.

    Returns:
        (height, width, 3) uint8 array; red channel holds the region ID.
    """
    shape = _image_shape(width, height)
    image = np.zeros((*shape, 3), dtype=np.uint8)
    for region in regions:
        if region.label is Label.UNKNOWN:
            continue
        mask = region_mask(region, points, shape)
        image[mask, 0] = np.uint8(min(region.id, 255))
        image[mask, 1] = 0
        image[mask, 2] = 0
    return image


def render_preview(regions: Sequence[Region], points: Sequence[Point],
                   width: float, height: float) -> np.ndarray:
    """
    Render regions in their palette colours.

    Returns:
        (height, width, 4) uint8 RGBA array; unknown regions stay transparent.
    """
    shape = _image_shape(width, height)
    image = np.zeros((*shape, 4), dtype=np.uint8)
    for region in regions:
        color = LABEL_COLORS[region.label]
        if color is None:
            continue
        mask = region_mask(region, points, shape)
        image[mask, :3] = color
        image[mask, 3] = 255
    return image


def save_label_image(image: np.ndarray, path: Path | str) -> Path:
    """Write an RGB or RGBA array as PNG."""
    path = Path(path)
    Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8)).save(path)
    return path
