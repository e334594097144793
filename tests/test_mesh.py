"""
Unit tests for mesh module.

Covers point insertion, painting, component reset, degenerate cleanup
and session persistence, plus triangulation-wide properties (Delaunay
condition, exact coverage, constraint preservation) on random meshes.
"""

import pytest
import random
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import MeshConfig
from geometry import Point
from labels import Label
from mesh import LabelMesh, InsertionResult


WIDTH = 800.0
HEIGHT = 600.0


def assert_valid_triangulation(mesh):
    """Triangles tile the rectangle: no flats, no overlaps, no gaps."""
    total = 0.0
    counts = {}
    for tri in mesh.triangles():
        assert tri.area > 0
        total += tri.area
        for edge in tri.edges():
            counts[edge] = counts.get(edge, 0) + 1
    assert total == pytest.approx(mesh.width * mesh.height, rel=1e-9)
    assert all(count <= 2 for count in counts.values())

    points = mesh.points()
    for edge, count in counts.items():
        if count == 1:
            a, b = points[edge.a], points[edge.b]
            on_border = (
                (a.x == b.x and a.x in (0.0, mesh.width)) or
                (a.y == b.y and a.y in (0.0, mesh.height))
            )
            assert on_border, f"interior edge {edge.key} has only one triangle"


def assert_delaunay(mesh, rel=1e-9):
    points = mesh.points()
    for tri in mesh.triangles():
        center, radius = tri.circle.center, tri.circle.radius
        for i, q in enumerate(points):
            if tri.triangle.has_vertex(i):
                continue
            d2 = (q.x - center.x) ** 2 + (q.y - center.y) ** 2
            assert d2 >= radius ** 2 * (1 - rel)


class TestInitialMesh:
    """Tests for the default two-triangle mesh."""

    def test_corners(self, mesh):
        assert mesh.points() == [
            Point(0, 0), Point(WIDTH, 0), Point(WIDTH, HEIGHT), Point(0, HEIGHT)
        ]

    def test_two_unknown_triangles(self, mesh):
        triangles = mesh.triangles()
        assert len(triangles) == 2
        assert all(t.label is Label.UNKNOWN for t in triangles)
        assert_valid_triangulation(mesh)

    def test_from_config(self):
        mesh = LabelMesh.from_config(MeshConfig(width=100, height=50, degenerate_threshold=2.0))
        assert mesh.points()[2] == Point(100, 50)
        assert mesh.degenerate_threshold == 2.0

    def test_snapshots_are_copies(self, mesh):
        mesh.points().append(Point(1, 1))
        mesh.triangles().clear()
        assert len(mesh.points()) == 4
        assert len(mesh.triangles()) == 2

    def test_triangle_at(self, mesh):
        assert mesh.triangle_at((100, 500)) is mesh.triangles()[1]
        assert mesh.triangle_at((900, 100)) is None

    def test_triangles_at_shared_edge(self, mesh):
        assert len(mesh.triangles_at((400, 300))) == 2


class TestInsertPoint:
    """Tests for LabelMesh.insert_point."""

    def test_center_insertion(self, mesh):
        result = mesh.insert_point((WIDTH / 2, HEIGHT / 2))

        assert result is InsertionResult.INSERTED
        triangles = mesh.triangles()
        assert len(triangles) == 4
        assert all(t.triangle.has_vertex(4) for t in triangles)
        assert all(t.label is Label.UNKNOWN for t in triangles)
        assert_valid_triangulation(mesh)

    def test_accepts_point_instance(self, mesh):
        assert mesh.insert_point(Point(200, 100)) is InsertionResult.INSERTED
        assert mesh.points()[-1] == Point(200, 100)

    def test_duplicate_is_noop(self, mesh):
        assert mesh.insert_point((0, 0)) is InsertionResult.DUPLICATE
        assert len(mesh.points()) == 4
        assert len(mesh.triangles()) == 2

    def test_outside_is_noop(self, mesh):
        assert mesh.insert_point((900, 100)) is InsertionResult.OUTSIDE
        assert mesh.insert_point((-1, -1)) is InsertionResult.OUTSIDE
        assert len(mesh.points()) == 4

    def test_border_point_becomes_hull_vertex(self, mesh):
        assert mesh.insert_point((400, 0)) is InsertionResult.INSERTED
        assert len(mesh.triangles()) == 3
        assert_valid_triangulation(mesh)

    def test_rejected_inside_labeled(self, body_mesh):
        body = body_mesh.triangle_at((100, 500))

        result = body_mesh.insert_point((100, 500))

        assert result is InsertionResult.REJECTED
        assert len(body_mesh.points()) == 4
        assert body_mesh.triangles()[1] is body
        assert body.label is Label.BODY

    def test_labeled_triangle_survives_neighbor_insertion(self, body_mesh):
        body = body_mesh.triangle_at((100, 500))

        result = body_mesh.insert_point((600, 100))

        assert result is InsertionResult.INSERTED
        assert body in body_mesh.triangles()
        assert body.label is Label.BODY
        assert len(body_mesh.triangles()) == 4
        assert_valid_triangulation(body_mesh)

    def test_forced_insertion_resets_component(self, body_mesh):
        result = body_mesh.insert_point((100, 500), force=True)

        assert result is InsertionResult.INSERTED
        assert len(body_mesh.triangles()) == 4
        assert all(t.label is Label.UNKNOWN for t in body_mesh.triangles())
        assert not [r for r in body_mesh.regions() if r.label is Label.BODY]

    def test_forced_insertion_outside_keeps_labels(self, body_mesh):
        # within the area tolerance of the body triangle, but outside the hull
        result = body_mesh.insert_point((-1e-7, 300.0), force=True)

        assert result is InsertionResult.OUTSIDE
        assert len(body_mesh.points()) == 4
        assert [t.label for t in body_mesh.triangles()] == [Label.UNKNOWN, Label.BODY]
        assert len([r for r in body_mesh.regions() if r.label is Label.BODY]) == 1

    def test_forced_insertion_in_unknown_is_plain(self, body_mesh):
        result = body_mesh.insert_point((600, 100), force=True)
        assert result is InsertionResult.INSERTED
        assert body_mesh.triangle_at((100, 500)).label is Label.BODY


class TestPaint:
    """Tests for LabelMesh.paint and reset_component."""

    def test_paint_single_triangle(self, mesh):
        changed = mesh.paint((100, 500), Label.BODY)

        assert changed == 1
        body = [r for r in mesh.regions() if r.label is Label.BODY]
        assert len(body) == 1
        assert set(body[0].hull) == {0, 2, 3}
        assert body[0].area(mesh.points()) == pytest.approx(WIDTH * HEIGHT / 2)

    def test_paint_on_shared_edge_labels_both(self, mesh):
        assert mesh.paint((400, 300), Label.LEAD) == 2
        assert all(t.label is Label.LEAD for t in mesh.triangles())

    def test_paint_accepts_label_strings(self, mesh):
        mesh.paint((100, 500), "pick-surface")
        mesh.paint((600, 100), "BACKGROUND")
        assert mesh.triangle_at((100, 500)).label is Label.PICK_SURFACE
        assert mesh.triangle_at((600, 100)).label is Label.BACKGROUND

    def test_paint_invalid_label(self, mesh):
        with pytest.raises(ValueError):
            mesh.paint((100, 500), "tentacle")

    def test_paint_keeps_existing_label(self, body_mesh):
        assert body_mesh.paint((100, 500), Label.LEAD) == 0
        assert body_mesh.triangle_at((100, 500)).label is Label.BODY

    def test_paint_override(self, body_mesh):
        assert body_mesh.paint((100, 500), Label.LEAD, override_labeled=True) == 1
        assert body_mesh.triangle_at((100, 500)).label is Label.LEAD

    def test_paint_same_label_counts_nothing(self, body_mesh):
        assert body_mesh.paint((100, 500), Label.BODY, override_labeled=True) == 0

    def test_paint_outside(self, mesh):
        assert mesh.paint((-5, 10), Label.BODY) is None

    def test_paint_inside_distinguished_from_outside(self, body_mesh):
        assert body_mesh.paint((100, 500), Label.LEAD) == 0
        assert body_mesh.paint((900, 500), Label.LEAD) is None

    def test_reset_component(self, mesh):
        mesh.insert_point((400, 300))
        mesh.paint((400, 50), Label.BODY)
        mesh.paint((750, 300), Label.BODY)
        mesh.paint((400, 550), Label.LEAD)

        count = mesh.reset_component(mesh.triangle_at((400, 50)))

        assert count == 2
        labels = sorted(t.label.value for t in mesh.triangles())
        assert labels == ["lead", "unknown", "unknown", "unknown"]

    def test_vertex_touching_triangles_are_separate_regions(self, mesh):
        mesh.insert_point((400, 300))
        mesh.paint((400, 50), Label.BODY)
        mesh.paint((400, 550), Label.BODY)

        body = [r for r in mesh.regions() if r.label is Label.BODY]

        assert len(body) == 2
        assert sorted(r.id for r in body) == [3, 4]


class TestRandomMeshes:
    """Property checks over seeded random insertion sequences."""

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_unconstrained_is_delaunay(self, seed):
        rng = random.Random(seed)
        mesh = LabelMesh(WIDTH, HEIGHT)
        for _ in range(40):
            mesh.insert_point((rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT)))

        assert_valid_triangulation(mesh)
        assert_delaunay(mesh)

    def test_vertex_count(self, refined_mesh):
        assert len(refined_mesh.points()) == 34
        # Euler: 2n - 2 - h triangles for n points with h on the hull
        assert len(refined_mesh.triangles()) == 2 * 34 - 2 - 4

    @pytest.mark.parametrize("seed", [10, 11, 12])
    def test_constraints_preserved(self, refined_mesh, seed):
        rng = random.Random(seed)
        for _ in range(6):
            refined_mesh.paint((rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT)), Label.BODY)
        labeled = [(t, t.triangle, t.label) for t in refined_mesh.triangles() if t.label.is_constrained]

        results = [
            refined_mesh.insert_point((rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT)))
            for _ in range(30)
        ]

        current = refined_mesh.triangles()
        for tri, triangle, label in labeled:
            assert tri in current
            assert tri.triangle == triangle
            assert tri.label is label
        assert InsertionResult.INSERTED in results
        assert_valid_triangulation(refined_mesh)

    @pytest.mark.parametrize("seed", [20, 21])
    def test_forced_insertions_stay_valid(self, refined_mesh, seed):
        rng = random.Random(seed)
        brushes = [Label.BODY, Label.LEAD, Label.IGNORE]
        for i in range(10):
            refined_mesh.paint((rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT)), brushes[i % 3])

        for _ in range(20):
            refined_mesh.insert_point((rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT)), force=True)

        assert_valid_triangulation(refined_mesh)
        refined_mesh.regions()


class TestCleanDegenerate:
    """Tests for sliver collapse on the mesh."""

    SLIVER = {
        "width": 10.0,
        "height": 10.0,
        "points": [[0, 0], [10, 0], [10, 10], [0, 10], [5, 0.2]],
        "triangles": [
            [0, 1, 4, "unknown"],
            [1, 2, 4, "unknown"],
            [2, 3, 4, "body"],
            [3, 0, 4, "unknown"],
        ],
    }

    def test_collapses_sliver(self):
        mesh = LabelMesh.from_dict(self.SLIVER)

        collapsed = mesh.clean_degenerate()

        assert collapsed == 1
        assert mesh.points()[4] == Point(5.0, 0.0)
        assert len(mesh.triangles()) == 3
        assert_valid_triangulation(mesh)

    def test_keeps_labels(self):
        mesh = LabelMesh.from_dict(self.SLIVER)
        mesh.clean_degenerate()
        body = [t for t in mesh.triangles() if t.label is Label.BODY]
        assert len(body) == 1
        assert body[0].area == pytest.approx(50.0)

    def test_threshold_below_sliver_height(self):
        mesh = LabelMesh.from_dict(self.SLIVER)
        assert mesh.clean_degenerate(threshold=0.1) == 0
        assert len(mesh.triangles()) == 4

    def test_clean_mesh_untouched(self, refined_mesh):
        before = refined_mesh.triangles()
        assert refined_mesh.clean_degenerate(threshold=0.0) == 0
        assert refined_mesh.triangles() == before


class TestPersistence:
    """Tests for session save/load."""

    def test_to_dict(self, body_mesh):
        data = body_mesh.to_dict()
        assert data["width"] == WIDTH
        assert data["points"][2] == [WIDTH, HEIGHT]
        assert data["triangles"] == [[0, 1, 2, "unknown"], [0, 2, 3, "body"]]

    def test_round_trip(self, refined_mesh, tmp_path):
        refined_mesh.paint((100, 100), Label.BODY)
        refined_mesh.paint((700, 500), Label.PICK_SURFACE)
        path = tmp_path / "session.json"

        refined_mesh.save(path)
        loaded = LabelMesh.load(path)

        assert loaded.points() == refined_mesh.points()
        assert [(t.triangle, t.label) for t in loaded.triangles()] == \
            [(t.triangle, t.label) for t in refined_mesh.triangles()]
        assert [(r.id, r.label, r.hull) for r in loaded.regions()] == \
            [(r.id, r.label, r.hull) for r in refined_mesh.regions()]

    def test_loaded_mesh_accepts_insertions(self, body_mesh, tmp_path):
        path = tmp_path / "session.json"
        body_mesh.save(path)
        loaded = LabelMesh.load(path)
        assert loaded.insert_point((600, 100)) is InsertionResult.INSERTED
        assert loaded.insert_point((100, 500)) is InsertionResult.REJECTED

    def test_from_dict_without_points(self):
        mesh = LabelMesh.from_dict({"width": 64, "height": 32})
        assert mesh.points()[2] == Point(64, 32)
        assert len(mesh.triangles()) == 2

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LabelMesh.load(tmp_path / "missing.json")

    def test_export_label_image(self, body_mesh, tmp_path):
        path = tmp_path / "labels.png"
        image = body_mesh.export_label_image(path)
        assert image.shape == (600, 800, 3)
        assert list(image[500, 100]) == [3, 0, 0]
        assert list(image[100, 600]) == [0, 0, 0]
        assert path.exists()
