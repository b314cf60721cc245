# src/html_sheet_extractor/table_grid.py
from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from bs4 import Tag

from .measurement import MeasurementProvider, parse_css_length, parse_inline_style
from .style import CellFormat, column_width_from_element, extract_cell_style

log = logging.getLogger(__name__)

NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
SPAN_RE = re.compile(r"^\s*(\d+)")
SECTION_ORDER = ("thead", "tbody", "tfoot")
DEFAULT_COLUMN_WIDTH = 18.0
MIN_COLUMN_WIDTH = 8.0
# mismos topes que aplica un navegador
MAX_COLSPAN = 1000
MAX_ROWSPAN = 65534


@dataclass(frozen=True)
class TextValue:
    text: str
    kind: str = field(default="text", init=False)


@dataclass(frozen=True)
class NumberValue:
    text: str
    numeric: float
    kind: str = field(default="number", init=False)


@dataclass(frozen=True)
class LinkValue:
    text: str
    href: str
    kind: str = field(default="link", init=False)


@dataclass(frozen=True)
class ImageValue:
    src: str
    kind: str = field(default="image", init=False)


CellValue = Union[TextValue, NumberValue, LinkValue, ImageValue]


@dataclass
class TableCellRecord:
    column: int
    colspan: int
    rowspan: int
    value: CellValue
    style: Optional[CellFormat] = None
    is_header: bool = False
    node: Optional[Tag] = field(default=None, repr=False, compare=False)


@dataclass
class TableRow:
    section: str
    cells: List[TableCellRecord] = field(default_factory=list)


@dataclass(frozen=True)
class MergeRange:
    """Rango combinado, base 1 e inclusivo, relativo a la primera fila de la tabla."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int


@dataclass
class TableExtractionResult:
    column_count: int
    rows: List[TableRow]
    merges: List[MergeRange]


def parse_span(cell: Tag, attr: str) -> int:
    """Dígitos iniciales del atributo ("2.5" -> 2, "3px" -> 3); 1 si no hay número válido."""
    m = SPAN_RE.match(str(cell.get(attr, "")))
    if not m:
        return 1
    span = int(m.group(1))
    if span < 1:
        return 1
    return min(span, MAX_ROWSPAN if attr == "rowspan" else MAX_COLSPAN)


def detect_value(cell: Tag) -> CellValue:
    img = cell.find("img")
    if img is not None:
        return ImageValue(src=img.get("src", ""))
    text = cell.get_text(" ", strip=True)
    link = cell.find("a", href=True)
    if link is not None and link["href"]:
        return LinkValue(text=link.get_text(" ", strip=True) or link["href"], href=link["href"])
    compact = re.sub(r"[,\s]", "", text)
    if NUMBER_RE.match(compact):
        return NumberValue(text=text, numeric=float(compact))
    return TextValue(text=text)


def _section_rows(table: Tag) -> Dict[str, List[Tag]]:
    """Filas por sección. Las filas directas de <table> (sin tbody sintetizado) cuentan como cuerpo."""
    rows: Dict[str, List[Tag]] = {name: [] for name in SECTION_ORDER}
    for child in table.find_all(recursive=False):
        if child.name in SECTION_ORDER:
            rows[child.name].extend(child.find_all("tr", recursive=False))
        elif child.name == "tr":
            rows["tbody"].append(child)
    return rows


def extract_table(table: Tag, provider: Optional[MeasurementProvider] = None) -> TableExtractionResult:
    """
    Recorre las filas (thead, tbody, tfoot) con un cursor de columna por fila.

    La ocupación se guarda por fila y crece a demanda: un rowspan que baja de
    la última fila conocida simplemente crea filas nuevas en el mapa.
    """
    rows: List[TableRow] = []
    merges: List[MergeRange] = []
    occupancy: Dict[int, Set[int]] = defaultdict(set)

    sections = _section_rows(table)
    for section in SECTION_ORDER:
        for tr in sections[section]:
            row_index = len(rows)
            out_row = TableRow(section=section)
            cursor = 0
            for cell in tr.find_all(["td", "th"], recursive=False):
                while cursor in occupancy[row_index]:
                    cursor += 1
                colspan = parse_span(cell, "colspan")
                rowspan = parse_span(cell, "rowspan")
                col_start, col_end = cursor, cursor + colspan - 1
                for r in range(row_index, row_index + rowspan):
                    occupancy[r].update(range(col_start, col_end + 1))

                is_header = cell.name == "th"
                snapshot = provider.style(cell) if provider is not None else None
                out_row.cells.append(TableCellRecord(
                    column=col_start,
                    colspan=colspan,
                    rowspan=rowspan,
                    value=detect_value(cell),
                    style=extract_cell_style(snapshot, header=is_header),
                    is_header=is_header,
                    node=cell,
                ))
                if colspan > 1 or rowspan > 1:
                    merges.append(MergeRange(
                        start_row=row_index + 1,
                        start_col=col_start + 1,
                        end_row=row_index + rowspan,
                        end_col=col_start + colspan,
                    ))
                cursor = col_end + 1
            rows.append(out_row)

    column_count = max((max(cols) + 1 for cols in occupancy.values() if cols), default=0)
    log.info(f"Tabla extraída: {len(rows)} filas, {column_count} columnas, {len(merges)} rangos combinados.")
    return TableExtractionResult(column_count=column_count, rows=rows, merges=merges)


def build_column_definitions(table: Tag, provider: MeasurementProvider) -> List[float]:
    """Anchos sugeridos (unidades de hoja) desde <colgroup><col> o, si no hay, desde la cabecera."""
    cols = table.select("colgroup > col")
    if cols:
        widths: List[float] = []
        for col in cols:
            declared = parse_inline_style(col.get("style")).get("width") or col.get("width")
            px = parse_css_length(declared)
            if px:
                widths.append(max(MIN_COLUMN_WIDTH, round((px - 12) / 7, 2)))
            else:
                widths.append(DEFAULT_COLUMN_WIDTH)
        return widths
    header_row = table.select_one("thead > tr")
    if header_row is None:
        return []
    return [column_width_from_element(th, provider) for th in header_row.find_all(["td", "th"], recursive=False)]
