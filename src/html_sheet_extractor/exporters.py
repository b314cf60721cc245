# src/html_sheet_extractor/exporters.py
from __future__ import annotations
from pathlib import Path
from typing import Any, List, Optional
import csv

from .sink import GridSheet

def rows_to_csv(rows: List[List[Any]], header: Optional[List[str]], csv_path: str) -> None:
    Path(csv_path).parent.mkdir(parents=True, exist_ok=True)
    with open(csv_path, "w", encoding="utf-8-sig", newline="") as f:
        w = csv.writer(f)
        if header:
            w.writerow(header)
        w.writerows(rows)

def _display(value: Any) -> Any:
    # exporta int si es entero
    if isinstance(value, float) and abs(value - int(value)) < 1e-9:
        return int(value)
    return value

def sheet_to_csv(sheet: GridSheet, csv_path: str) -> None:
    """
    Vuelca la hoja en memoria a CSV. Las combinaciones se pierden: el valor
    queda solo en la celda ancla.
    """
    rows = [[_display(v) for v in row] for row in sheet.to_rows()]
    rows_to_csv(rows, None, csv_path)
