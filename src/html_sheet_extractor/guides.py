# src/html_sheet_extractor/guides.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple
import numpy as np

log = logging.getLogger(__name__)

DEFAULT_TOLERANCE_PX = 2.0

@dataclass(frozen=True)
class GuideSet:
    """Líneas de corte ordenadas de un eje, separadas entre sí por más de `tolerance`."""
    values: Tuple[float, ...]
    tolerance: float = DEFAULT_TOLERANCE_PX

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __getitem__(self, idx: int) -> float:
        return self.values[idx]

    @property
    def widths(self) -> List[float]:
        """Anchos de columna / altos de fila entre guías consecutivas."""
        if len(self.values) < 2:
            return []
        return [float(d) for d in np.diff(np.asarray(self.values, dtype=float))]

    @property
    def interval_count(self) -> int:
        return max(0, len(self.values) - 1)

def push_guide(guides: List[float], value: float, tolerance: float) -> None:
    """Inserta `value`; si cae dentro de la tolerancia de una guía existente, la promedia."""
    for i, g in enumerate(guides):
        if abs(g - value) <= tolerance:
            guides[i] = (g + value) / 2.0
            return
    guides.append(value)

def normalize_guides(values: Iterable[float], tolerance: float) -> List[float]:
    """Segunda pasada sobre valores ordenados: funde cada valor con el anterior si el hueco <= tolerancia."""
    ordered = sorted(values)
    if not ordered:
        return []
    result = [ordered[0]]
    for value in ordered[1:]:
        last = result[-1]
        if abs(last - value) > tolerance:
            result.append(value)
        else:
            result[-1] = (last + value) / 2.0
    return result

def build_guides(values: Iterable[float], tolerance_px: float = DEFAULT_TOLERANCE_PX) -> GuideSet:
    """
    Cuantiza coordenadas de un eje en guías.

    La inserción incremental puede dejar guías vecinas a menos de la tolerancia
    (dependiendo del orden de llegada); la consolidación ordenada lo corrige.
    """
    guides: List[float] = []
    for value in values:
        push_guide(guides, float(value), tolerance_px)
    merged = normalize_guides(guides, tolerance_px)
    log.debug("Guías: %d valores tras consolidar (tolerancia %.2fpx)", len(merged), tolerance_px)
    return GuideSet(values=tuple(merged), tolerance=tolerance_px)
