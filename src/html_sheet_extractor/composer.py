from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from bs4 import Tag

from .blocks import Block
from .images import ImageManager
from .measurement import MeasurementProvider, ensure_row_height, measure_element, px_to_col_width
from .sink import ImageAnchor, WorkbookSink
from .style import CellAlignment, CellFill, CellFont, CellFormat
from .table_grid import (
    ImageValue,
    LinkValue,
    NumberValue,
    TableCellRecord,
    build_column_definitions,
    extract_table,
)

log = logging.getLogger(__name__)

DEFAULT_COLUMN_WIDTHS_PX = (70, 150, 360, 110, 110, 150)
DEFAULT_SPACING_PX = 12
HEADING_SIZES = {1: 16, 2: 14, 3: 13, 4: 12, 5: 11, 6: 11}

WRAP = CellAlignment(horizontal="left", vertical="top", wrap_text=True)
BOLD = CellFormat(font=CellFont(bold=True))


@dataclass
class InfoPair:
    label: str
    value: str
    label2: str = ""
    value2: str = ""
    height_px: float = 0.0


def _text(node: Optional[Tag]) -> str:
    return node.get_text(" ", strip=True) if node is not None else ""


class WorksheetComposer:
    """
    Escribe bloques semánticos uno debajo de otro sobre una hoja de columnas fijas.
    `self.row` es la última fila usada (base 1).
    """

    def __init__(
        self,
        sink: WorkbookSink,
        images: ImageManager,
        provider: MeasurementProvider,
        *,
        column_widths_px: Optional[Sequence[float]] = None,
        spacing_px: float = DEFAULT_SPACING_PX,
    ) -> None:
        self.sink = sink
        self.images = images
        self.provider = provider
        self.row = 1
        self.spacing_px = spacing_px
        widths = list(column_widths_px or DEFAULT_COLUMN_WIDTHS_PX)
        self.sink.set_column_widths([px_to_col_width(px) for px in widths])
        self.default_column_count = len(widths)

    @property
    def column_count(self) -> int:
        return max(self.sink.column_count, self.default_column_count, 1)

    def _height(self, node: Optional[Tag]) -> float:
        return measure_element(node, self.provider).height

    def _merge(self, start_row: int, start_col: int, end_row: int, end_col: int) -> None:
        if end_row > start_row or end_col > start_col:
            self.sink.merge(start_row, start_col, end_row, end_col)

    def add_spacer(self, px: Optional[float] = None) -> None:
        self.row += 1
        ensure_row_height(self.sink, self.row, px if px is not None else self.spacing_px)

    def write_block(self, block: Block) -> None:
        writers = {
            "letterhead": self.write_letterhead,
            "info-grid": self.write_info_grid,
            "remarks": self.write_remarks,
            "table": self.write_table,
            "footer": self.write_footer,
            "note": self.write_note,
        }
        if block.type == "text":
            self.write_text(block.element, block.meta)
            return
        # cualquier otro tipo (firma, tipos propios) se escribe como nota
        writers.get(block.type, self.write_note)(block.element)

    def write_letterhead(self, element: Optional[Tag]) -> None:
        if element is None:
            return
        logo = element.find("img")
        texts = [el for el in element.select("h1, h2, h3, p, .code, .sub") if _text(el)]
        last_column = max(3, self.column_count)

        self._merge(self.row, 1, self.row + 1, 2)
        self._merge(self.row, 3, self.row, last_column)
        self.sink.write_value(self.row, 3, _text(texts[0]) if texts else _text(element))
        self.sink.apply_format(self.row, 3, CellFormat(
            font=CellFont(bold=True, size=16),
            alignment=CellAlignment(vertical="middle", wrap_text=False),
        ))
        if len(texts) > 1:
            self._merge(self.row + 1, 3, self.row + 1, last_column)
            self.sink.write_value(self.row + 1, 3, "\n".join(_text(el) for el in texts[1:]))
            self.sink.apply_format(self.row + 1, 3, CellFormat(font=CellFont(size=11), alignment=WRAP))

        if logo is not None and logo.get("src"):
            m = measure_element(logo, self.provider)
            self.images.queue(logo["src"], ImageAnchor(
                row=self.row, col=1,
                width=max(60, m.width or 120), height=max(40, m.height or 60),
                offset_col=0.05, offset_row=0.05,
            ))
            ensure_row_height(self.sink, self.row, m.height + 16)
        self.row += 2
        self.add_spacer(6)

    def write_info_grid(self, element: Optional[Tag]) -> None:
        if element is None:
            return
        for pair in collect_info_pairs(element, self.provider):
            self.row += 1
            self.sink.write_value(self.row, 1, pair.label)
            self.sink.apply_format(self.row, 1, BOLD)
            self._merge(self.row, 2, self.row, 3)
            self.sink.write_value(self.row, 2, pair.value)
            self.sink.apply_format(self.row, 2, CellFormat(alignment=WRAP))
            if pair.label2:
                self.sink.write_value(self.row, 4, pair.label2)
                self.sink.apply_format(self.row, 4, BOLD)
                self._merge(self.row, 5, self.row, self.column_count)
                self.sink.write_value(self.row, 5, pair.value2)
                self.sink.apply_format(self.row, 5, CellFormat(alignment=WRAP))
            ensure_row_height(self.sink, self.row, pair.height_px or 24)
        self.add_spacer()

    def write_remarks(self, element: Optional[Tag]) -> None:
        if element is None:
            return
        self.row += 1
        self._merge(self.row, 1, self.row, self.column_count)
        self.sink.write_value(self.row, 1, _text(element.find("h3")) or "Remarks")
        self.sink.apply_format(self.row, 1, CellFormat(font=CellFont(bold=True), fill=CellFill(argb="FFFCFCFC")))

        self.row += 1
        self._merge(self.row, 1, self.row, self.column_count)
        self.sink.write_value(self.row, 1, _text(element.find("p")) or _text(element))
        self.sink.apply_format(self.row, 1, CellFormat(alignment=WRAP))
        ensure_row_height(self.sink, self.row, self._height(element) or 36)
        self.add_spacer()

    def write_table(self, element: Optional[Tag], *, apply_column_widths: bool = False) -> None:
        if element is None:
            return
        result = extract_table(element, self.provider)
        if apply_column_widths:
            widths = build_column_definitions(element, self.provider)
            if widths:
                self.sink.set_column_widths(widths)

        table_start = self.row + 1
        for data_row in result.rows:
            self.row += 1
            for record in data_row.cells:
                col = record.column + 1
                self._write_cell_value(self.row, col, record)
                if record.style is not None:
                    self.sink.apply_format(self.row, col, record.style)
                ensure_row_height(self.sink, self.row, self._height(record.node) or 24)

        for m in result.merges:
            try:
                self.sink.merge(table_start + m.start_row - 1, m.start_col,
                                table_start + m.end_row - 1, m.end_col)
            except ValueError as exc:
                # tablas mal formadas: un colspan puede pisar un rowspan de la fila anterior
                log.warning("Combinación omitida: %s", exc)
        # un rowspan que desborda la última fila reserva también esas filas
        last_merged = max((table_start + m.end_row - 1 for m in result.merges), default=self.row)
        self.row = max(self.row, last_merged)
        self.add_spacer()

    def _write_cell_value(self, row: int, col: int, record: TableCellRecord) -> None:
        value = record.value
        if isinstance(value, NumberValue):
            self.sink.write_value(row, col, value.numeric, number_format="0.00")
        elif isinstance(value, LinkValue):
            self.sink.write_value(row, col, value.text, hyperlink=value.href)
        elif isinstance(value, ImageValue):
            box = record.node.select_one(".imgbox") if record.node is not None else None
            m = measure_element(box or record.node, self.provider)
            width, height = max(24, m.width or 120), max(24, m.height or 120)
            self.images.queue(value.src, ImageAnchor(
                row=row, col=col, width=width, height=height, offset_col=0.05, offset_row=0.05))
            self.sink.write_value(row, col, "")
            ensure_row_height(self.sink, row, height + 12)
        else:
            self.sink.write_value(row, col, value.text or "")

    def write_note(self, element: Optional[Tag]) -> None:
        if element is None:
            return
        self.row += 1
        self._merge(self.row, 1, self.row, self.column_count)
        self.sink.write_value(self.row, 1, _text(element))
        self.sink.apply_format(self.row, 1, CellFormat(
            font=CellFont(italic=True, color="FF555555"), alignment=WRAP))
        ensure_row_height(self.sink, self.row, self._height(element) or 20)

    def write_text(self, element: Optional[Tag], meta: Optional[Dict[str, Any]] = None) -> None:
        if element is None:
            return
        meta = meta or {}
        level = meta.get("heading_level")
        self.row += 1
        self._merge(self.row, 1, self.row, self.column_count)
        self.sink.write_value(self.row, 1, _text(element))
        font = CellFont(bold=True, size=HEADING_SIZES[level]) if level else None
        self.sink.apply_format(self.row, 1, CellFormat(
            font=font,
            alignment=CellAlignment(horizontal=meta.get("align", "left"), vertical="top", wrap_text=True),
        ))
        ensure_row_height(self.sink, self.row, self._height(element) or 20)

    def write_footer(self, element: Optional[Tag]) -> None:
        if element is None:
            return
        self.row += 1
        text_el = element.select_one(".footnote, [data-export-footnote]")
        if text_el is not None:
            self._merge(self.row, 1, self.row, max(1, self.column_count - 1))
            self.sink.write_value(self.row, 1, _text(text_el))
            self.sink.apply_format(self.row, 1, CellFormat(alignment=WRAP))
            ensure_row_height(self.sink, self.row, self._height(text_el) or 20)
        logo = element.find("img")
        if logo is not None and logo.get("src"):
            m = measure_element(logo, self.provider)
            self.images.queue(logo["src"], ImageAnchor(
                row=self.row, col=self.column_count,
                width=max(40, m.width or 80), height=max(24, m.height or 40),
                offset_col=0.1, offset_row=0.1,
            ))
            ensure_row_height(self.sink, self.row, m.height + 12)
        self.add_spacer()


def collect_info_pairs(element: Tag, provider: MeasurementProvider) -> List[InfoPair]:
    """Pares etiqueta/valor: por `.k` (dos pares por fila) o por hijos alternos (dt/dd...)."""
    def height(*nodes: Optional[Tag]) -> float:
        return max(measure_element(n, provider).height for n in nodes)

    items: List[InfoPair] = []
    keys = element.select(".k")
    if keys:
        for i in range(0, len(keys), 2):
            label = keys[i]
            value = label.find_next_sibling()
            label2 = keys[i + 1] if i + 1 < len(keys) else None
            value2 = label2.find_next_sibling() if label2 is not None else None
            items.append(InfoPair(
                label=_text(label), value=_text(value),
                label2=_text(label2), value2=_text(value2),
                height_px=height(label, value),
            ))
        return items
    children = [el for el in element.find_all(recursive=False) if _text(el)]
    for i in range(0, len(children), 2):
        value = children[i + 1] if i + 1 < len(children) else None
        items.append(InfoPair(label=_text(children[i]), value=_text(value),
                              height_px=height(children[i], value)))
    return items
