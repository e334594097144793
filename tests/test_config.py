"""Unit tests for config module."""

import pytest
import json
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import MeshConfig


class TestMeshConfig:
    """Tests for MeshConfig."""

    def test_defaults(self):
        config = MeshConfig()
        assert config.width == 800.0
        assert config.height == 600.0
        assert config.area_tolerance == 1e-9
        assert config.degenerate_threshold == 0.5
        assert config.log_level == "INFO"
        assert config.validate() == []

    def test_validate_extent(self):
        errors = MeshConfig(width=0, height=-1).validate()
        assert len(errors) == 2
        assert "width" in errors[0]
        assert "height" in errors[1]

    def test_validate_tolerances(self):
        errors = MeshConfig(area_tolerance=-1e-3, degenerate_threshold=-1).validate()
        assert len(errors) == 2

    def test_validate_log_level(self):
        assert MeshConfig(log_level="debug").validate() == []
        errors = MeshConfig(log_level="CHATTY").validate()
        assert len(errors) == 1
        assert "CHATTY" in errors[0]

    def test_from_dict_partial(self):
        config = MeshConfig.from_dict({"width": 1024, "log_level": "WARNING"})
        assert config.width == 1024.0
        assert config.height == 600.0
        assert config.log_level == "WARNING"

    def test_save_load(self, tmp_path):
        path = tmp_path / "custom.json"
        MeshConfig(width=320, height=240, degenerate_threshold=1.5).save(path)

        with open(path) as f:
            assert json.load(f)["width"] == 320

        config = MeshConfig.load(path)
        assert config == MeshConfig(width=320.0, height=240.0, degenerate_threshold=1.5)

    def test_load_missing_returns_defaults(self, tmp_path):
        assert MeshConfig.load(tmp_path / "missing.json") == MeshConfig()

    def test_load_for_session(self, tmp_path):
        MeshConfig(width=64).save(tmp_path / "scan.mesh_config.json")
        config = MeshConfig.load_for_session(tmp_path / "scan.json")
        assert config.width == 64.0

    def test_load_for_session_defaults(self, tmp_path):
        assert MeshConfig.load_for_session(tmp_path / "other.json") == MeshConfig()
