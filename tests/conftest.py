"""Pytest fixtures for label mesh tests."""

import random
import sys
from pathlib import Path

import logging

import pytest
import structlog

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from labels import Label
from mesh import LabelMesh


WIDTH = 800.0
HEIGHT = 600.0


@pytest.fixture
def mesh() -> LabelMesh:
    """Fresh mesh: two triangles spanning the 800x600 rectangle."""
    return LabelMesh(WIDTH, HEIGHT)


@pytest.fixture
def refined_mesh() -> LabelMesh:
    """Mesh with 30 seeded random interior points."""
    rng = random.Random(7)
    m = LabelMesh(WIDTH, HEIGHT)
    for _ in range(30):
        m.insert_point((rng.uniform(1, WIDTH - 1), rng.uniform(1, HEIGHT - 1)))
    return m


@pytest.fixture
def body_mesh(mesh) -> LabelMesh:
    """Default mesh whose lower-left triangle is painted as body."""
    mesh.paint((100, 500), Label.BODY)
    return mesh


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo structlog and root handler changes made by a test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
