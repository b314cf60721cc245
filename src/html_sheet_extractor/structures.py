from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import re

# hOCR usa `title="bbox x1 y1 x2 y2"`; los volcados del navegador traen decimales.
BBOX_RE = re.compile(r"bbox\s+(-?[\d.]+)\s+(-?[\d.]+)\s+(-?[\d.]+)\s+(-?[\d.]+)")
PLAIN_BOX_RE = re.compile(r"^\s*(-?[\d.]+)[\s,]+(-?[\d.]+)[\s,]+(-?[\d.]+)[\s,]+(-?[\d.]+)\s*$")

def parse_bbox(title_attr: str) -> Optional[Tuple[float, float, float, float]]:
    if not title_attr:
        return None
    m = BBOX_RE.search(title_attr) or PLAIN_BOX_RE.match(title_attr)
    if not m:
        return None
    try:
        x1, y1, x2, y2 = map(float, m.groups())
    except ValueError:
        return None
    return x1, y1, x2, y2

@dataclass(frozen=True)
class Rect:
    """Rectángulo medido en un espacio de coordenadas compartido."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def relative_to(self, origin: "Rect") -> "Rect":
        return Rect(
            left=self.left - origin.left,
            top=self.top - origin.top,
            right=self.right - origin.left,
            bottom=self.bottom - origin.top,
        )

    @classmethod
    def from_bbox(cls, bbox: Tuple[float, float, float, float]) -> "Rect":
        x1, y1, x2, y2 = bbox
        return cls(left=x1, top=y1, right=x2, bottom=y2)

@dataclass(frozen=True)
class BorderSide:
    style: str = "none"
    width: float = 0.0
    color: str = ""

    @property
    def is_visible(self) -> bool:
        return self.style not in ("none", "hidden") and self.width > 0

@dataclass(frozen=True)
class StyleSnapshot:
    """Atributos de estilo reconocidos, resueltos una sola vez por el proveedor de medidas."""
    display: str = "block"
    position: str = "static"
    visibility: str = "visible"
    opacity: float = 1.0
    z_index: int = 0
    font_family: str = ""
    font_size: Optional[float] = None
    font_weight: str = "normal"
    font_style: str = "normal"
    text_decoration: str = ""
    text_align: str = ""
    vertical_align: str = ""
    white_space: str = "normal"
    color: str = ""
    background_color: str = ""
    border_top: BorderSide = field(default_factory=BorderSide)
    border_right: BorderSide = field(default_factory=BorderSide)
    border_bottom: BorderSide = field(default_factory=BorderSide)
    border_left: BorderSide = field(default_factory=BorderSide)

    @property
    def is_bold(self) -> bool:
        weight = (self.font_weight or "").strip().lower()
        if weight.isdigit():
            return int(weight) >= 600
        return "bold" in weight

    @property
    def is_hidden(self) -> bool:
        return self.display == "none" or self.visibility == "hidden" or self.opacity == 0

    @property
    def borders(self) -> Tuple[BorderSide, BorderSide, BorderSide, BorderSide]:
        return self.border_top, self.border_right, self.border_bottom, self.border_left
