from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag

from .measurement import MeasurementProvider, parse_css_length, parse_inline_style, px_to_col_width
from .structures import BorderSide, StyleSnapshot

HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)
RGB_RE = re.compile(r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+%?)\s*)?\)$", re.IGNORECASE)

NAMED_COLORS = {
    "black": "000000", "white": "FFFFFF", "red": "FF0000", "green": "008000",
    "blue": "0000FF", "yellow": "FFFF00", "gray": "808080", "grey": "808080",
    "silver": "C0C0C0", "navy": "000080", "orange": "FFA500", "purple": "800080",
    "maroon": "800000", "teal": "008080", "lightgray": "D3D3D3", "lightgrey": "D3D3D3",
}

# estilos de borde CSS -> estilos de borde de la hoja
BORDER_STYLE_MAP = {
    "solid": "thin",
    "dotted": "dotted",
    "dashed": "dashed",
    "double": "double",
    "groove": "thin",
    "ridge": "thin",
    "inset": "thin",
    "outset": "thin",
}

HEADER_FILL_ARGB = "FFE9ECEF"
DEFAULT_BORDER_ARGB = "FF000000"

@dataclass(frozen=True)
class CellFont:
    name: Optional[str] = None
    size: Optional[float] = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: Optional[str] = None

@dataclass(frozen=True)
class CellAlignment:
    horizontal: str = "left"
    vertical: str = "top"
    wrap_text: bool = True

@dataclass(frozen=True)
class BorderEdge:
    style: str = "thin"
    color: str = DEFAULT_BORDER_ARGB

@dataclass(frozen=True)
class CellBorder:
    top: Optional[BorderEdge] = None
    right: Optional[BorderEdge] = None
    bottom: Optional[BorderEdge] = None
    left: Optional[BorderEdge] = None

@dataclass(frozen=True)
class CellFill:
    argb: str

@dataclass(frozen=True)
class CellFormat:
    """Descriptor de estilo de celda, independiente del formato de salida."""
    alignment: Optional[CellAlignment] = None
    font: Optional[CellFont] = None
    border: Optional[CellBorder] = None
    fill: Optional[CellFill] = None

def is_transparent(color: Optional[str]) -> bool:
    if not color:
        return True
    c = color.strip().lower()
    if c == "transparent":
        return True
    m = RGB_RE.match(c)
    if m and m.group(4) is not None:
        alpha = m.group(4)
        return float(alpha.rstrip("%")) == 0
    return False

def css_color_to_argb(color: Optional[str], fallback: str = "FF000000") -> str:
    """Traducción aproximada de un color CSS a ARGB; lo que no se reconoce cae en `fallback`."""
    if is_transparent(color):
        return fallback
    c = color.strip()
    m = HEX_RE.match(c)
    if m:
        hexa = m.group(1)
        if len(hexa) == 3:
            hexa = "".join(ch * 2 for ch in hexa)
        return f"FF{hexa[:6].upper()}"
    m = RGB_RE.match(c)
    if m:
        r, g, b = (max(0, min(255, int(round(float(v))))) for v in m.groups()[:3])
        return f"FF{r:02X}{g:02X}{b:02X}"
    named = NAMED_COLORS.get(c.lower())
    if named:
        return f"FF{named}"
    return fallback

def normalize_horizontal(text_align: Optional[str], default: str = "left") -> str:
    if not text_align:
        return default
    if re.search(r"center|middle", text_align, re.IGNORECASE):
        return "center"
    if re.search(r"right|end", text_align, re.IGNORECASE):
        return "right"
    return "left"

def normalize_vertical(vertical_align: Optional[str], default: str = "top") -> str:
    if not vertical_align:
        return default
    if re.search(r"bottom", vertical_align, re.IGNORECASE):
        return "bottom"
    if re.search(r"middle|center", vertical_align, re.IGNORECASE):
        return "middle"
    return "top"

def default_border() -> CellBorder:
    edge = BorderEdge(style="thin", color=DEFAULT_BORDER_ARGB)
    return CellBorder(top=edge, right=edge, bottom=edge, left=edge)

def _border_edge(side: BorderSide) -> Optional[BorderEdge]:
    if not side.is_visible:
        return None
    style = "medium" if side.width >= 2 else BORDER_STYLE_MAP.get(side.style, "thin")
    return BorderEdge(style=style, color=css_color_to_argb(side.color, DEFAULT_BORDER_ARGB))

def _build_font(st: StyleSnapshot, header: bool) -> Optional[CellFont]:
    font = CellFont(
        name=st.font_family or None,
        size=round(st.font_size, 2) if st.font_size else None,
        bold=header or st.is_bold,
        italic=st.font_style == "italic",
        underline="underline" in (st.text_decoration or ""),
    )
    if font == CellFont():
        return None
    return font

def _build_fill(st: StyleSnapshot, header: bool) -> Optional[CellFill]:
    if is_transparent(st.background_color):
        return CellFill(argb=HEADER_FILL_ARGB) if header else None
    return CellFill(argb=css_color_to_argb(st.background_color, "FFFFFFFF"))

def extract_cell_style(st: Optional[StyleSnapshot], header: bool = False) -> CellFormat:
    """Estilo de celda de tabla: fuente, alineación, bordes (fino por defecto) y relleno."""
    if st is None:
        return CellFormat(
            alignment=CellAlignment(horizontal="center", vertical="middle") if header
            else CellAlignment(horizontal="left", vertical="top"),
            font=CellFont(bold=True) if header else None,
            border=default_border(),
            fill=CellFill(argb=HEADER_FILL_ARGB) if header else None,
        )
    alignment = CellAlignment(
        horizontal=normalize_horizontal(st.text_align, "center" if header else "left"),
        vertical=normalize_vertical(st.vertical_align, "middle" if header else "top"),
        wrap_text=st.white_space != "nowrap",
    )
    edges = [_border_edge(side) for side in st.borders]
    border = CellBorder(*edges) if any(edges) else default_border()
    return CellFormat(
        alignment=alignment,
        font=_build_font(st, header),
        border=border,
        fill=_build_fill(st, header),
    )

def column_width_from_element(node: Optional[Tag], provider: MeasurementProvider) -> float:
    if node is None:
        return 16.0
    rect = provider.rect(node)
    width_px = rect.width if rect and rect.width else None
    if not width_px:
        declared = parse_inline_style(node.get("style")).get("width") or node.get("width")
        width_px = parse_css_length(declared)
    return px_to_col_width(width_px or 120)
