# src/html_sheet_extractor/layout.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import Tag

from .blocks import is_skipped
from .errors import ExportError
from .grid_mapper import GridCell, map_elements_to_grid
from .guides import DEFAULT_TOLERANCE_PX, GuideSet, build_guides
from .measurement import MeasurementProvider
from .structures import Rect, StyleSnapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutOptions:
    tolerance_px: float = DEFAULT_TOLERANCE_PX
    include_images: bool = True
    include_text: bool = True


@dataclass
class LayoutElement:
    """Elemento medido: rectángulo relativo al contenedor + snapshot de estilo."""

    node: Tag = field(repr=False)
    rect: Rect
    style: StyleSnapshot = field(repr=False)
    tag: str
    type: str
    text: str = ""
    image_src: Optional[str] = None


@dataclass
class LayoutAnalysis:
    column_guides: GuideSet
    row_guides: GuideSet
    elements: List[LayoutElement]
    cells: List[GridCell]

    @property
    def column_widths(self) -> List[float]:
        return self.column_guides.widths

    @property
    def row_heights(self) -> List[float]:
        return self.row_guides.widths


def describe_element(node: Tag, origin: Rect, provider: MeasurementProvider,
                     options: LayoutOptions) -> Optional[LayoutElement]:
    rect = provider.rect(node)
    if rect is None or rect.width < 1 or rect.height < 1:
        return None
    relative = rect.relative_to(origin)
    style = provider.style(node)
    tag = node.name

    if tag in ("table", "tr"):
        # contenedores: sus celdas se miden por separado
        return None
    img = node if tag == "img" else node.find("img")
    if img is not None:
        if not options.include_images:
            return None
        return LayoutElement(node=node, rect=relative, style=style, tag=tag,
                             type="image", image_src=img.get("src"))
    text = node.get_text(" ", strip=True)
    if tag in ("td", "th"):
        return LayoutElement(node=node, rect=relative, style=style, tag=tag, type="table-cell", text=text)
    if text and not options.include_text:
        return None
    return LayoutElement(node=node, rect=relative, style=style, tag=tag,
                         type="text" if text else "block", text=text)


def collect_elements(container: Tag, origin: Rect, provider: MeasurementProvider,
                     options: LayoutOptions) -> List[LayoutElement]:
    """Recorrido en orden de documento; un nodo invisible u omitido descarta todo su subárbol."""
    items: List[LayoutElement] = []
    stack: List[Tag] = list(reversed(container.find_all(recursive=False)))
    while stack:
        node = stack.pop()
        if not provider.is_visible(node) or is_skipped(node):
            continue
        info = describe_element(node, origin, provider, options)
        if info is not None:
            items.append(info)
        stack.extend(reversed(node.find_all(recursive=False)))
    return items


def analyze_layout(container: Optional[Tag], provider: MeasurementProvider,
                   options: Optional[LayoutOptions] = None) -> LayoutAnalysis:
    """
    Mide los elementos visibles del contenedor y los proyecta en una rejilla
    normalizada (guías de columna y fila + celdas mapeadas).
    """
    if container is None:
        raise ExportError("analyze_layout: se requiere un contenedor")
    opts = options or LayoutOptions()
    origin = provider.rect(container)
    if origin is None:
        raise ExportError(f"El contenedor <{container.name}> no tiene geometría medida")

    elements = collect_elements(container, origin, provider, opts)
    log.info(f"Elementos medidos: {len(elements)}")

    col_values: List[float] = [0.0]
    row_values: List[float] = [0.0]
    if origin.width:
        col_values.append(origin.width)
    if origin.height:
        row_values.append(origin.height)
    for item in elements:
        col_values.extend((item.rect.left, item.rect.right))
        row_values.extend((item.rect.top, item.rect.bottom))

    column_guides = build_guides(col_values, opts.tolerance_px)
    row_guides = build_guides(row_values, opts.tolerance_px)
    log.info(f"Rejilla: {column_guides.interval_count} columnas x {row_guides.interval_count} filas")

    cells = map_elements_to_grid(elements, column_guides, row_guides, opts.tolerance_px)
    return LayoutAnalysis(column_guides=column_guides, row_guides=row_guides,
                          elements=elements, cells=cells)
