from __future__ import annotations
from enum import Enum


class DropReason(str, Enum):
    """Motivos por los que un elemento no llega a la rejilla. Nunca se lanzan."""

    DEGENERATE_RECTANGLE = "degenerate_rectangle"
    UNRESOLVABLE_GUIDE = "unresolvable_guide"
    OVERLAP_REJECTED = "overlap_rejected"


class ExportError(ValueError):
    """Fallo de precondición visible para el llamador (raíz ausente, modo desconocido...)."""
