from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Optional, Sequence

from openpyxl.drawing.image import Image as XLImage
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, OneCellAnchor
from openpyxl.drawing.xdr import XDRPositiveSize2D
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.units import pixels_to_EMU
from openpyxl.worksheet.cell_range import CellRange
from openpyxl.worksheet.worksheet import Worksheet

from .sink import ImageAnchor, ImagePayload
from .style import BorderEdge, CellFormat

log = logging.getLogger(__name__)

# Tamaño de celda por defecto para convertir desplazamientos fraccionales a píxeles.
DEFAULT_COL_PX = 64
DEFAULT_ROW_PX = 20

# openpyxl llama "center" a lo que CSS llama "middle"
VERTICAL_MAP = {"top": "top", "middle": "center", "center": "center", "bottom": "bottom"}


def _side(edge: Optional[BorderEdge]) -> Side:
    if edge is None:
        return Side()
    return Side(style=edge.style, color=edge.color)


class OpenpyxlSink:
    """Adaptador de `WorkbookSink` sobre una hoja de openpyxl (índices base 1)."""

    def __init__(self, worksheet: Worksheet) -> None:
        self.ws = worksheet
        self._defined_columns = 0

    @property
    def name(self) -> str:
        return self.ws.title

    @property
    def column_count(self) -> int:
        return max(self._defined_columns, self.ws.max_column)

    def set_column_widths(self, widths: Sequence[float]) -> None:
        for idx, width in enumerate(widths, start=1):
            self.ws.column_dimensions[get_column_letter(idx)].width = width
        self._defined_columns = len(widths)

    def set_row_height(self, row: int, height_pt: float) -> None:
        self.ws.row_dimensions[row].height = height_pt

    def get_row_height(self, row: int) -> Optional[float]:
        return self.ws.row_dimensions[row].height

    def write_value(self, row: int, col: int, value: Any, *,
                    number_format: Optional[str] = None, hyperlink: Optional[str] = None) -> None:
        cell = self.ws.cell(row=row, column=col)
        cell.value = value
        if number_format:
            cell.number_format = number_format
        if hyperlink:
            cell.hyperlink = hyperlink
            cell.style = "Hyperlink"

    def merge(self, start_row: int, start_col: int, end_row: int, end_col: int) -> None:
        if end_row < start_row or end_col < start_col:
            raise ValueError(f"Rango inválido: ({start_row},{start_col})-({end_row},{end_col})")
        new = CellRange(min_col=start_col, min_row=start_row, max_col=end_col, max_row=end_row)
        # openpyxl acepta rangos solapados y el .xlsx resultante queda corrupto
        for existing in self.ws.merged_cells.ranges:
            if not new.isdisjoint(existing):
                raise ValueError(f"El rango {new.coord} se solapa con {existing.coord}")
        self.ws.merge_cells(start_row=start_row, start_column=start_col,
                            end_row=end_row, end_column=end_col)

    def apply_format(self, row: int, col: int, fmt: CellFormat) -> None:
        cell = self.ws.cell(row=row, column=col)
        if fmt.font is not None:
            cell.font = Font(
                name=fmt.font.name,
                size=fmt.font.size,
                bold=fmt.font.bold,
                italic=fmt.font.italic,
                underline="single" if fmt.font.underline else None,
                color=fmt.font.color,
            )
        if fmt.alignment is not None:
            cell.alignment = Alignment(
                horizontal=fmt.alignment.horizontal,
                vertical=VERTICAL_MAP.get(fmt.alignment.vertical, "top"),
                wrap_text=fmt.alignment.wrap_text,
            )
        if fmt.border is not None:
            cell.border = Border(
                top=_side(fmt.border.top),
                right=_side(fmt.border.right),
                bottom=_side(fmt.border.bottom),
                left=_side(fmt.border.left),
            )
        if fmt.fill is not None:
            cell.fill = PatternFill(fill_type="solid", fgColor=fmt.fill.argb)

    def add_image(self, payload: ImagePayload, anchor: ImageAnchor) -> None:
        img = XLImage(BytesIO(payload.data))
        img.width = int(round(anchor.width))
        img.height = int(round(anchor.height))
        marker = AnchorMarker(
            col=anchor.col - 1,
            colOff=pixels_to_EMU(anchor.offset_col * DEFAULT_COL_PX),
            row=anchor.row - 1,
            rowOff=pixels_to_EMU(anchor.offset_row * DEFAULT_ROW_PX),
        )
        size = XDRPositiveSize2D(pixels_to_EMU(img.width), pixels_to_EMU(img.height))
        img.anchor = OneCellAnchor(_from=marker, ext=size)
        self.ws.add_image(img)
        log.debug("Imagen anclada en %s%d (%dx%d px)", get_column_letter(anchor.col), anchor.row,
                  anchor.width, anchor.height)
