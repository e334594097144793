#!/usr/bin/env python3
"""
Matplotlib preview of a label mesh.

Draws triangle outlines, inserted points and filled label regions
(holes cut out via compound paths). Running the module builds a random
demo mesh and saves the plot.
"""

import random
from typing import Optional

import matplotlib.pyplot as plt
from matplotlib.path import Path as MplPath
from matplotlib.patches import PathPatch, Polygon as MplPolygon

try:
    from .labels import Label, LABEL_COLORS
    from .mesh import LabelMesh
    from .regions import Region
except ImportError:
    from labels import Label, LABEL_COLORS
    from mesh import LabelMesh
    from regions import Region


def _rgb(color: tuple[int, int, int]) -> tuple[float, float, float]:
    return (color[0] / 255, color[1] / 255, color[2] / 255)


def region_patch(region: Region, points, alpha: float = 0.5) -> Optional[PathPatch]:
    """Compound path patch for a region (hull with holes); None for unknown."""
    color = LABEL_COLORS[region.label]
    if color is None:
        return None

    vertices = []
    codes = []
    for loop in [region.hull] + region.holes:
        coords = [points[i].to_tuple() for i in loop]
        vertices.extend(coords + [coords[0]])
        codes.extend([MplPath.MOVETO] + [MplPath.LINETO] * (len(coords) - 1) + [MplPath.CLOSEPOLY])

    return PathPatch(MplPath(vertices, codes), facecolor=_rgb(color), alpha=alpha,
                     edgecolor='black', linewidth=1.5)


def plot_mesh(mesh: LabelMesh, ax=None, show_regions: bool = True, show_points: bool = True):
    """
    Plot a mesh in image coordinates (y axis pointing down).

    Returns:
        The matplotlib axes.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 6))

    points = mesh.points()

    if show_regions:
        for region in mesh.regions():
            patch = region_patch(region, points)
            if patch is not None:
                ax.add_patch(patch)

    for tri in mesh.triangles():
        outline = MplPolygon([p.to_tuple() for p in tri.vertices], closed=True,
                             fill=False, edgecolor='gray', linewidth=0.5)
        ax.add_patch(outline)

    if show_points:
        ax.plot([p.x for p in points], [p.y for p in points], 'o', color='red', markersize=3)

    ax.set_xlim(0, mesh.width)
    ax.set_ylim(mesh.height, 0)
    ax.set_aspect('equal')
    return ax


def main():
    random.seed(42)  # For reproducibility

    mesh = LabelMesh(800, 600)
    for _ in range(60):
        mesh.insert_point((random.uniform(0, 800), random.uniform(0, 600)))

    brushes = [Label.BODY, Label.PICK_SURFACE, Label.LEAD, Label.BACKGROUND]
    for i in range(40):
        mesh.paint((random.uniform(0, 800), random.uniform(0, 600)), brushes[i % len(brushes)])

    regions = mesh.regions()
    print(f"Number of regions: {len(regions)}")
    for region in regions:
        print(f"  Region {region.id} ({region.label.value}): "
              f"{len(region.hull)} hull vertices, {len(region.holes)} holes")

    fig, ax = plt.subplots(figsize=(10, 7.5))
    plot_mesh(mesh, ax)
    ax.set_title(f'{len(mesh.triangles())} triangles, {len(regions)} regions')
    plt.tight_layout()
    plt.savefig('/tmp/label_mesh.png', dpi=150)
    print("\nSaved plot to /tmp/label_mesh.png")
    plt.close(fig)


if __name__ == '__main__':
    main()
