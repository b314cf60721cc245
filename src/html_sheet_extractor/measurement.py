from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from bs4 import Tag

from .structures import BorderSide, Rect, StyleSnapshot, parse_bbox

log = logging.getLogger(__name__)

PX_PER_INCH = 96
CM_PER_INCH = 2.54

LENGTH_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(px|cm|mm|in|pt|%)?$")
BORDER_STYLES = {"none", "hidden", "solid", "dotted", "dashed", "double", "groove", "ridge", "inset", "outset"}
BORDER_KEYWORD_WIDTHS = {"thin": 1.0, "medium": 3.0, "thick": 5.0}
CSS_TOKEN_RE = re.compile(r"[^\s(]+(?:\([^)]*\))?")

# Propiedades que el navegador hereda del padre.
INHERITED_PROPERTIES = {
    "visibility", "font-family", "font-size", "font-weight", "font-style",
    "text-align", "white-space", "color",
}

# Hoja de estilos mínima del agente de usuario.
UA_DEFAULTS: Dict[str, Dict[str, str]] = {
    "th": {"font-weight": "bold", "text-align": "center", "vertical-align": "middle"},
    "b": {"font-weight": "bold"},
    "strong": {"font-weight": "bold"},
    "em": {"font-style": "italic"},
    "i": {"font-style": "italic"},
    "u": {"text-decoration": "underline"},
    "center": {"text-align": "center"},
    "span": {"display": "inline"},
    "a": {"display": "inline"},
    "img": {"display": "inline"},
    "td": {"display": "table-cell"},
    "tr": {"display": "table-row"},
    "table": {"display": "table"},
    **{f"h{n}": {"font-weight": "bold"} for n in range(1, 7)},
}


def px_to_pt(px: float) -> float:
    return round(px * 72 / PX_PER_INCH, 2)


def px_to_col_width(px: float) -> float:
    """Convierte píxeles al ancho de columna de hoja de cálculo (unidades de carácter)."""
    return max(6.0, round((px - 12) / 7, 2))


def parse_css_length(value: Optional[str], context_px: float = 0) -> Optional[float]:
    if not value:
        return None
    m = LENGTH_RE.match(value.strip().lower())
    if not m:
        return None
    number = float(m.group(1))
    unit = m.group(2) or "px"
    if unit == "px":
        return number
    if unit == "cm":
        return number * PX_PER_INCH / CM_PER_INCH
    if unit == "mm":
        return number * PX_PER_INCH / (CM_PER_INCH * 10)
    if unit == "in":
        return number * PX_PER_INCH
    if unit == "pt":
        return number * PX_PER_INCH / 72
    # porcentaje: solo con contexto
    return context_px * number / 100 if context_px else None


def parse_inline_style(style_attr: Optional[str]) -> Dict[str, str]:
    """`"color: red; font-weight:bold"` -> {"color": "red", "font-weight": "bold"}"""
    declarations: Dict[str, str] = {}
    if not style_attr:
        return declarations
    for chunk in style_attr.split(";"):
        if ":" not in chunk:
            continue
        prop, _, value = chunk.partition(":")
        prop = prop.strip().lower()
        value = value.replace("!important", "").strip()
        if prop and value:
            declarations[prop] = value
    return declarations


def _border_width(value: str) -> Optional[float]:
    low = value.strip().lower()
    if low in BORDER_KEYWORD_WIDTHS:
        return BORDER_KEYWORD_WIDTHS[low]
    return parse_css_length(low)


def parse_border(value: str) -> BorderSide:
    """Interpreta la forma abreviada `border: 1px solid #000`."""
    style, width, color = "none", None, ""
    for token in CSS_TOKEN_RE.findall(value or ""):
        low = token.lower()
        if low in BORDER_STYLES:
            style = low
        elif _border_width(low) is not None:
            width = _border_width(low)
        else:
            color = token
    if width is None:
        width = BORDER_KEYWORD_WIDTHS["medium"] if style not in ("none", "hidden") else 0.0
    return BorderSide(style=style, width=width, color=color)


def _border_side(decl: Mapping[str, str], side: str) -> BorderSide:
    base = parse_border(decl["border"]) if "border" in decl else BorderSide()
    if f"border-{side}" in decl:
        base = parse_border(decl[f"border-{side}"])
    style = decl.get(f"border-{side}-style", base.style).strip().lower()
    width = _border_width(decl[f"border-{side}-width"]) if f"border-{side}-width" in decl else base.width
    color = decl.get(f"border-{side}-color", base.color)
    return BorderSide(style=style, width=width or 0.0, color=color)


def style_from_declarations(decl: Mapping[str, str]) -> StyleSnapshot:
    """Construye el struct fijo de estilo; cualquier otra propiedad se ignora."""
    try:
        opacity = float(decl.get("opacity", "1"))
    except ValueError:
        opacity = 1.0
    try:
        z_index = int(decl.get("z-index", "0"))
    except ValueError:
        z_index = 0
    family = decl.get("font-family", "").split(",")[0].strip().strip("'\"")
    return StyleSnapshot(
        display=decl.get("display", "block").strip().lower(),
        position=decl.get("position", "static").strip().lower(),
        visibility=decl.get("visibility", "visible").strip().lower(),
        opacity=opacity,
        z_index=z_index,
        font_family=family,
        font_size=parse_css_length(decl.get("font-size")),
        font_weight=decl.get("font-weight", "normal"),
        font_style=decl.get("font-style", "normal").strip().lower(),
        text_decoration=decl.get("text-decoration-line", decl.get("text-decoration", "")),
        text_align=decl.get("text-align", "").strip().lower(),
        vertical_align=decl.get("vertical-align", "").strip().lower(),
        white_space=decl.get("white-space", "normal").strip().lower(),
        color=decl.get("color", ""),
        background_color=decl.get("background-color", decl.get("background", "")),
        border_top=_border_side(decl, "top"),
        border_right=_border_side(decl, "right"),
        border_bottom=_border_side(decl, "bottom"),
        border_left=_border_side(decl, "left"),
    )


def _ancestry(node: Tag) -> List[Tag]:
    """Del nodo hacia la raíz, sin incluir el objeto documento."""
    chain: List[Tag] = []
    current: Optional[Tag] = node
    while current is not None and current.name != "[document]":
        chain.append(current)
        current = current.parent
    return chain


class MeasurementProvider(Protocol):
    def rect(self, node: Tag) -> Optional[Rect]: ...

    def style(self, node: Tag) -> StyleSnapshot: ...

    def is_visible(self, node: Tag) -> bool: ...


class _ProviderBase:
    """Visibilidad común a los proveedores: `display:none` en cualquier ancestro oculta el nodo."""

    def rect(self, node: Tag) -> Optional[Rect]:
        """Cada proveedor debe implementarlo."""
        raise NotImplementedError

    def style(self, node: Tag) -> StyleSnapshot:
        """Cada proveedor debe implementarlo."""
        raise NotImplementedError

    def is_visible(self, node: Tag) -> bool:
        if not isinstance(node, Tag):
            return False
        if any(self.style(el).display == "none" for el in _ancestry(node)):
            return False
        st = self.style(node)
        if st.visibility == "hidden" or st.opacity == 0:
            return False
        rect = self.rect(node)
        return rect is None or not rect.is_empty


class AttributeMeasurementProvider(_ProviderBase):
    """
    Lee la geometría de `data-bbox="x1 y1 x2 y2"` o del `title="bbox ..."` estilo hOCR,
    y el estilo de los atributos de presentación, el `style` en línea y la herencia.
    Los nodos sin caja se consideran de geometría desconocida (no vacía).
    """

    def __init__(self) -> None:
        self._inherited: Dict[int, Dict[str, str]] = {}
        self._styles: Dict[int, StyleSnapshot] = {}

    def rect(self, node: Tag) -> Optional[Rect]:
        bbox = parse_bbox(node.get("data-bbox", "")) or parse_bbox(node.get("title", ""))
        return Rect.from_bbox(bbox) if bbox else None

    def _own_declarations(self, node: Tag) -> Dict[str, str]:
        decl = dict(UA_DEFAULTS.get(node.name, {}))
        if node.has_attr("hidden"):
            decl["display"] = "none"
        if node.get("align"):
            decl["text-align"] = node["align"]
        if node.get("valign"):
            decl["vertical-align"] = node["valign"]
        if node.get("bgcolor"):
            decl["background-color"] = node["bgcolor"]
        decl.update(parse_inline_style(node.get("style")))
        return decl

    def declarations(self, node: Tag) -> Dict[str, str]:
        chain = _ancestry(node)
        inherited: Dict[str, str] = {}
        # de la raíz hacia el nodo, reutilizando lo ya calculado
        for el in reversed(chain[1:]):
            cached = self._inherited.get(id(el))
            if cached is None:
                merged = {**inherited, **self._own_declarations(el)}
                cached = {k: v for k, v in merged.items() if k in INHERITED_PROPERTIES}
                self._inherited[id(el)] = cached
            inherited = cached
        return {**inherited, **self._own_declarations(node)}

    def style(self, node: Tag) -> StyleSnapshot:
        key = id(node)
        if key not in self._styles:
            self._styles[key] = style_from_declarations(self.declarations(node))
        return self._styles[key]


class SnapshotMeasurementProvider(_ProviderBase):
    """
    Geometría y estilo volcados por un navegador, indexados por el `id` del elemento:
    {"logo": {"rect": [x1, y1, x2, y2], "style": {"font-weight": "700", ...}}, ...}
    """

    def __init__(self, records: Mapping[str, Mapping[str, Any]]) -> None:
        self.records = dict(records)

    @classmethod
    def from_json(cls, path: str) -> "SnapshotMeasurementProvider":
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        log.info("Snapshot de medidas cargado: %d elementos (%s)", len(data), Path(path).name)
        return cls(data)

    def _record(self, node: Tag) -> Mapping[str, Any]:
        node_id = node.get("id") if isinstance(node, Tag) else None
        return self.records.get(node_id, {}) if node_id else {}

    def rect(self, node: Tag) -> Optional[Rect]:
        raw = self._record(node).get("rect")
        if raw is None:
            return None
        if isinstance(raw, Mapping):
            return Rect(left=float(raw["left"]), top=float(raw["top"]),
                        right=float(raw["right"]), bottom=float(raw["bottom"]))
        x1, y1, x2, y2 = (float(v) for v in raw)
        return Rect(left=x1, top=y1, right=x2, bottom=y2)

    def style(self, node: Tag) -> StyleSnapshot:
        return style_from_declarations(self._record(node).get("style", {}))


@dataclass
class Measurement:
    width: float
    height: float
    rect: Optional[Rect]


def measure_element(node: Optional[Tag], provider: MeasurementProvider) -> Measurement:
    if node is None:
        return Measurement(width=0.0, height=0.0, rect=None)
    rect = provider.rect(node)
    if rect is None:
        return Measurement(width=0.0, height=0.0, rect=None)
    return Measurement(width=rect.width, height=rect.height, rect=rect)


def ensure_row_height(sink: Any, row: int, target_px: float) -> None:
    """Solo crece: nunca reduce una altura de fila ya fijada."""
    if not target_px:
        return
    current = sink.get_row_height(row) or 0
    sink.set_row_height(row, max(current, px_to_pt(target_px)))
