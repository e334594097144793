"""
Configuration for the label mesh.

Defines the image extent, numeric tolerances and logging level.
"""

from dataclasses import dataclass
import json
import logging
from pathlib import Path


@dataclass
class MeshConfig:
    """
    Configuration for an annotation session.

    Attributes:
        width: Logical image width; the initial mesh spans [0, width]
        height: Logical image height; the initial mesh spans [0, height]
        area_tolerance: Relative tolerance of the point-in-triangle area test
        degenerate_threshold: Minimum vertex-to-opposite-edge distance before
            a triangle counts as a sliver
        log_level: Logging level name
    """
    # Image extent
    width: float = 800.0
    height: float = 600.0

    # Numerics
    area_tolerance: float = 1e-9
    degenerate_threshold: float = 0.5

    # Logging
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.width <= 0:
            errors.append(f"width must be positive, got {self.width}")
        if self.height <= 0:
            errors.append(f"height must be positive, got {self.height}")

        if self.area_tolerance < 0:
            errors.append(f"area_tolerance cannot be negative, got {self.area_tolerance}")
        if self.degenerate_threshold < 0:
            errors.append(f"degenerate_threshold cannot be negative, got {self.degenerate_threshold}")

        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            errors.append(f"log_level {self.log_level!r} is not a logging level")

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "width": self.width,
            "height": self.height,
            "area_tolerance": self.area_tolerance,
            "degenerate_threshold": self.degenerate_threshold,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MeshConfig":
        """Create from dictionary."""
        return cls(
            width=float(data.get("width", 800.0)),
            height=float(data.get("height", 600.0)),
            area_tolerance=float(data.get("area_tolerance", 1e-9)),
            degenerate_threshold=float(data.get("degenerate_threshold", 0.5)),
            log_level=data.get("log_level", "INFO"),
        )

    def save(self, filepath: Path | str) -> None:
        """Save configuration to JSON file."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str) -> "MeshConfig":
        """Load configuration from JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            return cls()  # Return defaults if file doesn't exist

        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load_for_session(cls, session_filepath: Path | str) -> "MeshConfig":
        """
        Load configuration for a specific session file.

        Looks for <session_name>.mesh_config.json next to the session file.
        Returns defaults if config file doesn't exist.
        """
        session_path = Path(session_filepath)
        return cls.load(session_path.with_suffix('.mesh_config.json'))
