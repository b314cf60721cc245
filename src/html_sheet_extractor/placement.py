from __future__ import annotations
import logging
from typing import Iterable, List
import numpy as np

from .errors import DropReason
from .grid_mapper import GridCell

log = logging.getLogger(__name__)

def place_cells(cells: Iterable[GridCell], n_rows: int, n_cols: int) -> List[GridCell]:
    """
    Coloca celdas en orden de área ascendente (orden estable), la primera que escribe gana.

    Los elementos pequeños (textos, etiquetas) suelen estar medidos con más
    precisión que sus contenedores; si el contenedor se colocara antes taparía
    las celdas de sus propios hijos. Las celdas que chocan con la ocupación ya
    marcada se descartan sin reintento.
    """
    occupancy = np.zeros((max(0, n_rows), max(0, n_cols)), dtype=bool)
    accepted: List[GridCell] = []
    rejected = 0
    for cell in sorted(cells, key=lambda c: c.area):
        footprint = occupancy[cell.row_start:cell.row_end + 1, cell.col_start:cell.col_end + 1]
        if footprint.any():
            rejected += 1
            log.debug("Celda %s descartada: %s", (cell.row_start, cell.col_start),
                      DropReason.OVERLAP_REJECTED.value)
            continue
        footprint[...] = True
        accepted.append(cell)
    log.info("Ocupación: %d celdas colocadas, %d solapadas descartadas.", len(accepted), rejected)
    return accepted
