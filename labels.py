"""
Semantic labels carried by mesh triangles.

The label set is closed. Three labels have fixed export IDs; every
other connected region gets a sequential ID starting at 3.
"""

from enum import Enum
from typing import Optional


class Label(str, Enum):
    """Triangle label. Values match the annotation toolbox identifiers."""
    UNKNOWN = "unknown"
    IGNORE = "ignore"
    BACKGROUND = "background"
    BODY = "body"
    PICK_SURFACE = "pick-surface"
    LEAD = "lead"

    @property
    def is_constrained(self) -> bool:
        """Labeled triangles are protected from cavity removal."""
        return self is not Label.UNKNOWN

    @property
    def fixed_region_id(self) -> Optional[int]:
        return FIXED_REGION_IDS.get(self)

    @classmethod
    def parse(cls, value) -> "Label":
        """Accept a Label, its value ("pick-surface") or its name ("PICK_SURFACE")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for label in cls:
            if text == label.value or text.upper().replace("-", "_") == label.name:
                return label
        raise ValueError(f"Unknown label: {value!r}")


FIXED_REGION_IDS = {
    Label.UNKNOWN: 0,
    Label.BACKGROUND: 1,
    Label.IGNORE: 2,
}
FIRST_DYNAMIC_REGION_ID = 3

# Toolbox palette (r, g, b); None = transparent
LABEL_COLORS: dict[Label, Optional[tuple[int, int, int]]] = {
    Label.UNKNOWN: None,
    Label.IGNORE: (128, 128, 128),
    Label.BACKGROUND: (255, 255, 255),
    Label.BODY: (255, 0, 0),
    Label.PICK_SURFACE: (0, 128, 0),
    Label.LEAD: (0, 0, 255),
}
