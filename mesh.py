"""
Label mesh: the editable triangulation behind an annotation session.

The mesh starts as two triangles spanning the image rectangle. Points
are inserted with constrained Delaunay refinement, triangles are
painted with labels, and label regions are extracted on demand.
All operations are synchronous; callers that share a mesh between
threads must serialize access themselves.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union
import json

import structlog

try:
    from .geometry import Point, Triangle, DegenerateGeometryError
    from .labels import Label
    from .triangulation import (
        LabeledTriangle, compute_cavity, retriangulate,
        partition_degenerate_triangles, collapse_degenerate,
    )
    from .regions import Region, extract_regions, component_of
    from .config import MeshConfig
    from .logging_config import configure_default_logging
    from . import raster
except ImportError:
    from geometry import Point, Triangle, DegenerateGeometryError
    from labels import Label
    from triangulation import (
        LabeledTriangle, compute_cavity, retriangulate,
        partition_degenerate_triangles, collapse_degenerate,
    )
    from regions import Region, extract_regions, component_of
    from config import MeshConfig
    from logging_config import configure_default_logging
    import raster


logger = structlog.get_logger(__name__)

PointLike = Union[Point, tuple[float, float], list[float]]


class InsertionResult(Enum):
    """Outcome of LabelMesh.insert_point."""
    INSERTED = "inserted"
    REJECTED = "rejected"      # inside a labeled triangle without force
    OUTSIDE = "outside"        # inside no triangle
    DUPLICATE = "duplicate"    # coincides with an existing vertex


def _as_point(point: PointLike) -> Point:
    if isinstance(point, Point):
        return point
    x, y = point
    return Point(float(x), float(y))


class LabelMesh:
    """
    Labeled triangular mesh over a width x height image.

    Example:
        >>> mesh = LabelMesh(800, 600)
        >>> mesh.insert_point((400, 300))
        >>> mesh.paint((100, 300), Label.BODY)
        >>> regions = mesh.regions()
    """

    def __init__(
        self,
        width: float = 800.0,
        height: float = 600.0,
        area_tolerance: float = 1e-9,
        degenerate_threshold: float = 0.5
    ):
        configure_default_logging()

        self.width = float(width)
        self.height = float(height)
        self.area_tolerance = area_tolerance
        self.degenerate_threshold = degenerate_threshold

        self._points: list[Point] = [
            Point(0.0, 0.0),
            Point(self.width, 0.0),
            Point(self.width, self.height),
            Point(0.0, self.height),
        ]
        self._triangles: list[LabeledTriangle] = [
            LabeledTriangle.build(self._points, Triangle(0, 1, 2)),
            LabeledTriangle.build(self._points, Triangle(0, 2, 3)),
        ]

    @classmethod
    def from_config(cls, config: MeshConfig) -> "LabelMesh":
        return cls(
            width=config.width,
            height=config.height,
            area_tolerance=config.area_tolerance,
            degenerate_threshold=config.degenerate_threshold,
        )

    # -------------------------------------------------------------------------
    # Read-only snapshots
    # -------------------------------------------------------------------------

    def points(self) -> list[Point]:
        """Points in insertion order."""
        return list(self._points)

    def triangles(self) -> list[LabeledTriangle]:
        return list(self._triangles)

    def triangles_at(self, point: PointLike) -> list[LabeledTriangle]:
        """All triangles containing the point (several if it lies on an edge)."""
        p = _as_point(point)
        return [t for t in self._triangles if t.contains(p, self.area_tolerance)]

    def triangle_at(self, point: PointLike) -> Optional[LabeledTriangle]:
        found = self.triangles_at(point)
        return found[0] if found else None

    def regions(self) -> list[Region]:
        """Label regions of the current mesh, recomputed on every call."""
        return extract_regions(self._points, self._triangles)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def insert_point(self, point: PointLike, force: bool = False) -> InsertionResult:
        """
        Insert a point and retriangulate around it.

        Args:
            point: (x, y) position
            force: Reopen a labeled region containing the point instead of
                rejecting the insertion

        Returns:
            InsertionResult; anything but INSERTED leaves the mesh unchanged.
        """
        p = _as_point(point)

        if p in self._points:
            logger.warning("insertion skipped, duplicate vertex", x=p.x, y=p.y)
            return InsertionResult.DUPLICATE

        containing = self.triangles_at(p)
        if not containing:
            logger.warning("insertion skipped, point outside mesh", x=p.x, y=p.y)
            return InsertionResult.OUTSIDE

        labeled = [t for t in containing if t.label.is_constrained]
        if labeled and not force:
            logger.info("insertion rejected, point inside labeled region",
                        x=p.x, y=p.y, label=labeled[0].label.value)
            return InsertionResult.REJECTED

        saved = {}
        for tri in labeled:
            if tri.label.is_constrained:
                for member in component_of(self._triangles, tri):
                    saved[id(member)] = (member, member.label)
                self.reset_component(tri)

        points = self._points + [p]
        index = len(points) - 1
        cavity = compute_cavity(points, self._triangles, index, self.area_tolerance)
        if not cavity.removed:
            for member, label in saved.values():
                member.label = label
            logger.warning("insertion skipped, empty cavity", x=p.x, y=p.y,
                           restored=len(saved))
            return InsertionResult.OUTSIDE

        triangles = retriangulate(points, cavity, index)
        self._points = points
        self._triangles = triangles

        logger.info(
            "point inserted",
            index=index,
            removed=len(cavity.removed),
            added=len(triangles) - len(cavity.retained),
            triangles=len(triangles),
        )
        return InsertionResult.INSERTED

    def paint(self, point: PointLike, label: Label | str,
              override_labeled: bool = False) -> Optional[int]:
        """
        Set the label of every triangle containing the point.

        Labeled triangles are only repainted with override_labeled.

        Returns:
            Number of triangles whose label changed, or None if the point
            lies in no triangle.
        """
        p = _as_point(point)
        label = Label.parse(label)

        containing = self.triangles_at(p)
        if not containing:
            logger.warning("paint skipped, point outside mesh", x=p.x, y=p.y)
            return None

        changed = 0
        for tri in containing:
            if tri.label is Label.UNKNOWN or override_labeled:
                if tri.label is not label:
                    tri.label = label
                    changed += 1

        logger.info("painted", x=p.x, y=p.y, label=label.value, changed=changed)
        return changed

    def reset_component(self, triangle: LabeledTriangle) -> int:
        """
        Reset the whole connected label component of a triangle to unknown.

        Returns:
            Number of triangles reset.
        """
        component = component_of(self._triangles, triangle)
        label = triangle.label
        for tri in component:
            tri.label = Label.UNKNOWN
        logger.info("component reset", label=label.value, triangles=len(component))
        return len(component)

    def clean_degenerate(self, threshold: Optional[float] = None) -> int:
        """
        Collapse sliver triangles.

        Not run automatically; call it as an explicit maintenance step.

        Returns:
            Number of slivers collapsed.
        """
        if threshold is None:
            threshold = self.degenerate_threshold

        collapsed = 0
        skipped: set[Triangle] = set()
        for _ in range(len(self._triangles)):
            _, degenerate = partition_degenerate_triangles(self._points, self._triangles, threshold)
            candidates = [t for t in degenerate if t.triangle not in skipped]
            if not candidates:
                break

            target = candidates[0]
            try:
                self._points, self._triangles = collapse_degenerate(
                    self._points, self._triangles, target
                )
            except DegenerateGeometryError as e:
                logger.warning("sliver left in place", triangle=tuple(target.triangle), error=str(e))
                skipped.add(target.triangle)
                continue
            collapsed += 1

        logger.info("degenerate cleanup finished", collapsed=collapsed, skipped=len(skipped))
        return collapsed

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_label_image(self, path: Optional[Path | str] = None):
        """
        Rasterize the label regions.

        Returns:
            (height, width, 3) uint8 array; also written as PNG if path is given.
        """
        image = raster.rasterize_regions(self.regions(), self._points, self.width, self.height)
        if path is not None:
            raster.save_label_image(image, path)
        return image

    # -------------------------------------------------------------------------
    # Session persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "width": self.width,
            "height": self.height,
            "points": [[p.x, p.y] for p in self._points],
            "triangles": [[*t.triangle, t.label.value] for t in self._triangles],
        }

    @classmethod
    def from_dict(cls, data: dict, config: Optional[MeshConfig] = None) -> "LabelMesh":
        """Create from dictionary; circumcircles are recomputed."""
        config = config or MeshConfig()
        mesh = cls(
            width=data.get("width", config.width),
            height=data.get("height", config.height),
            area_tolerance=config.area_tolerance,
            degenerate_threshold=config.degenerate_threshold,
        )
        if "points" in data:
            mesh._points = [Point(float(x), float(y)) for x, y in data["points"]]
            mesh._triangles = [
                LabeledTriangle.build(mesh._points, Triangle(int(a), int(b), int(c)), Label.parse(label))
                for a, b, c, label in data.get("triangles", [])
            ]
        return mesh

    def save(self, filepath: Path | str) -> None:
        """Save the session to a JSON file."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str, config: Optional[MeshConfig] = None) -> "LabelMesh":
        """Load a session from a JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data, config)
