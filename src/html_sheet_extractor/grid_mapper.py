from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .errors import DropReason
from .guides import GuideSet
from .structures import Rect

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCell:
    """Rango inclusivo (base 0) de intervalos de guías que ocupa un rectángulo."""

    col_start: int
    col_end: int
    row_start: int
    row_end: int
    content: Any = field(default=None, compare=False, repr=False)

    @property
    def area(self) -> int:
        return (self.col_end - self.col_start + 1) * (self.row_end - self.row_start + 1)

    @property
    def is_merged(self) -> bool:
        return self.col_end > self.col_start or self.row_end > self.row_start


def find_guide_index(guides: Sequence[float], value: float, tolerance: float) -> Optional[int]:
    """Índice de la guía dentro de tolerancia; si no, el punto de inserción; None si no hay guías."""
    for i, g in enumerate(guides):
        if abs(g - value) <= tolerance:
            return i
        if value < g:
            return i
    return len(guides) - 1 if len(guides) else None


def _resolve(
    rect: Rect,
    col_guides: GuideSet,
    row_guides: GuideSet,
    tolerance_px: float,
) -> Tuple[Optional[Tuple[int, int, int, int]], Optional[DropReason]]:
    col_start = find_guide_index(col_guides.values, rect.left, tolerance_px)
    col_right = find_guide_index(col_guides.values, rect.right, tolerance_px)
    row_start = find_guide_index(row_guides.values, rect.top, tolerance_px)
    row_bottom = find_guide_index(row_guides.values, rect.bottom, tolerance_px)
    if col_start is None or col_right is None or row_start is None or row_bottom is None:
        return None, DropReason.UNRESOLVABLE_GUIDE
    col_end = col_right - 1
    row_end = row_bottom - 1
    if col_end < col_start or row_end < row_start:
        return None, DropReason.DEGENERATE_RECTANGLE
    return (col_start, col_end, row_start, row_end), None


def map_to_grid(
    rect: Rect,
    col_guides: GuideSet,
    row_guides: GuideSet,
    tolerance_px: float,
    content: Any = None,
) -> Optional[GridCell]:
    span, _reason = _resolve(rect, col_guides, row_guides, tolerance_px)
    if span is None:
        return None
    col_start, col_end, row_start, row_end = span
    return GridCell(col_start, col_end, row_start, row_end, content=content)


def map_elements_to_grid(
    elements: Iterable[Any],
    col_guides: GuideSet,
    row_guides: GuideSet,
    tolerance_px: float,
) -> List[GridCell]:
    """Mapea cada elemento (con atributo `rect`) a su celda; descarta los que no resuelven."""
    cells: List[GridCell] = []
    dropped: Counter = Counter()
    for item in elements:
        span, reason = _resolve(item.rect, col_guides, row_guides, tolerance_px)
        if span is None:
            dropped[reason] += 1
            log.debug("Elemento <%s> descartado: %s", getattr(item, "tag", "?"), reason.value)
            continue
        col_start, col_end, row_start, row_end = span
        cells.append(GridCell(col_start, col_end, row_start, row_end, content=item))
    if dropped:
        log.info("Celdas mapeadas: %d; descartadas: %s", len(cells),
                 {reason.value: n for reason, n in dropped.items()})
    return cells
