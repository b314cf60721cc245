from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import pandas as pd

from .style import CellFormat

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    extension: str = "png"


@dataclass(frozen=True)
class ImageAnchor:
    """Celda ancla (base 1) con desplazamiento fraccional y extensión exacta en píxeles."""

    row: int
    col: int
    width: float
    height: float
    offset_col: float = 0.0
    offset_row: float = 0.0


class WorkbookSink(Protocol):
    name: str

    @property
    def column_count(self) -> int: ...

    def set_column_widths(self, widths: Sequence[float]) -> None: ...

    def set_row_height(self, row: int, height_pt: float) -> None: ...

    def get_row_height(self, row: int) -> Optional[float]: ...

    def write_value(self, row: int, col: int, value: Any, *,
                    number_format: Optional[str] = None, hyperlink: Optional[str] = None) -> None: ...

    def merge(self, start_row: int, start_col: int, end_row: int, end_col: int) -> None: ...

    def apply_format(self, row: int, col: int, fmt: CellFormat) -> None: ...

    def add_image(self, payload: ImagePayload, anchor: ImageAnchor) -> None: ...


MergeBox = Tuple[int, int, int, int]


def _overlaps(a: MergeBox, b: MergeBox) -> bool:
    return not (a[2] < b[0] or b[2] < a[0] or a[3] < b[1] or b[3] < a[1])


class GridSheet:
    """Hoja en memoria: guarda valores, estilos, combinaciones e imágenes tal como llegan."""

    def __init__(self, name: str = "Export") -> None:
        self.name = name
        self.values: Dict[Tuple[int, int], Any] = {}
        self.number_formats: Dict[Tuple[int, int], str] = {}
        self.hyperlinks: Dict[Tuple[int, int], str] = {}
        self.formats: Dict[Tuple[int, int], CellFormat] = {}
        self.merges: List[MergeBox] = []
        self.images: List[Tuple[ImagePayload, ImageAnchor]] = []
        self.column_widths: List[float] = []
        self.row_heights: Dict[int, float] = {}

    @property
    def column_count(self) -> int:
        used = max((c for _, c in self.values), default=0)
        merged = max((m[3] for m in self.merges), default=0)
        return max(len(self.column_widths), used, merged)

    @property
    def row_count(self) -> int:
        used = max((r for r, _ in self.values), default=0)
        merged = max((m[2] for m in self.merges), default=0)
        return max(used, merged, max(self.row_heights, default=0))

    def set_column_widths(self, widths: Sequence[float]) -> None:
        self.column_widths = [float(w) for w in widths]

    def set_row_height(self, row: int, height_pt: float) -> None:
        self.row_heights[row] = height_pt

    def get_row_height(self, row: int) -> Optional[float]:
        return self.row_heights.get(row)

    def write_value(self, row: int, col: int, value: Any, *,
                    number_format: Optional[str] = None, hyperlink: Optional[str] = None) -> None:
        self.values[(row, col)] = value
        if number_format:
            self.number_formats[(row, col)] = number_format
        if hyperlink:
            self.hyperlinks[(row, col)] = hyperlink

    def merge(self, start_row: int, start_col: int, end_row: int, end_col: int) -> None:
        box = (start_row, start_col, end_row, end_col)
        if end_row < start_row or end_col < start_col:
            raise ValueError(f"Rango combinado inválido: {box}")
        for existing in self.merges:
            if _overlaps(existing, box):
                raise ValueError(f"El rango {box} se solapa con {existing}")
        self.merges.append(box)

    def apply_format(self, row: int, col: int, fmt: CellFormat) -> None:
        self.formats[(row, col)] = fmt

    def add_image(self, payload: ImagePayload, anchor: ImageAnchor) -> None:
        self.images.append((payload, anchor))

    def value_at(self, row: int, col: int) -> Any:
        return self.values.get((row, col))

    def to_rows(self) -> List[List[Any]]:
        """Rejilla rectangular desde A1; las celdas vacías quedan como ""."""
        n_rows, n_cols = self.row_count, self.column_count
        return [
            ["" if self.values.get((r, c)) is None else self.values[(r, c)] for c in range(1, n_cols + 1)]
            for r in range(1, n_rows + 1)
        ]

    def to_frame(self) -> pd.DataFrame:
        rows = self.to_rows()
        frame = pd.DataFrame(rows, columns=[f"col_{i + 1}" for i in range(self.column_count)])
        frame.index = pd.RangeIndex(start=1, stop=len(rows) + 1)
        return frame
