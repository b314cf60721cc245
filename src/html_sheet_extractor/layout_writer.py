from __future__ import annotations

import logging
from typing import Optional

from .images import ImageManager
from .layout import LayoutAnalysis, LayoutElement
from .measurement import px_to_col_width, px_to_pt
from .placement import place_cells
from .sink import ImageAnchor, WorkbookSink
from .style import CellAlignment, CellFill, CellFont, CellFormat, css_color_to_argb, is_transparent, normalize_horizontal

log = logging.getLogger(__name__)


def _layout_format(element: LayoutElement) -> CellFormat:
    st = element.style
    fill = None
    if not is_transparent(st.background_color):
        fill = CellFill(argb=css_color_to_argb(st.background_color, "FFFFFFFF"))
    return CellFormat(
        alignment=CellAlignment(horizontal=normalize_horizontal(st.text_align), vertical="top", wrap_text=True),
        font=CellFont(bold=True) if st.is_bold else None,
        fill=fill,
    )


def write_layout(sink: WorkbookSink, analysis: LayoutAnalysis,
                 images: Optional[ImageManager] = None) -> int:
    """
    Vuelca el análisis de layout en la hoja: anchos, altos, celdas colocadas por
    ocupación, combinaciones, texto e imágenes. Devuelve cuántas celdas se escribieron.
    """
    if analysis.column_widths:
        sink.set_column_widths([px_to_col_width(px) for px in analysis.column_widths])
    for index, px in enumerate(analysis.row_heights, start=1):
        if px > 0:
            sink.set_row_height(index, px_to_pt(px))

    placed = place_cells(analysis.cells,
                         analysis.row_guides.interval_count,
                         analysis.column_guides.interval_count)
    for cell in placed:
        element: LayoutElement = cell.content
        row, col = cell.row_start + 1, cell.col_start + 1
        if cell.is_merged:
            sink.merge(row, col, cell.row_end + 1, cell.col_end + 1)
        if element.type == "image":
            if images is not None:
                images.queue(element.image_src, ImageAnchor(
                    row=row, col=col, width=element.rect.width, height=element.rect.height))
            sink.write_value(row, col, "")
        else:
            sink.write_value(row, col, element.text or "")
        sink.apply_format(row, col, _layout_format(element))
    log.info("Layout escrito: %d celdas", len(placed))
    return len(placed)
