from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from bs4 import BeautifulSoup, Tag
from openpyxl import Workbook

from .blocks import BlockOptions, collect_blocks
from .composer import DEFAULT_COLUMN_WIDTHS_PX, WorksheetComposer
from .errors import ExportError
from .exporters import sheet_to_csv
from .images import ImageManager, LocalImageProvider
from .layout import LayoutOptions, analyze_layout
from .layout_writer import write_layout
from .measurement import AttributeMeasurementProvider, MeasurementProvider, SnapshotMeasurementProvider
from .sink import GridSheet, WorkbookSink
from .xlsx_sink import OpenpyxlSink

log = logging.getLogger(__name__)

MODES = ("structure", "layout")
DEFAULT_SHEET_NAME = "Export"


@dataclass(frozen=True)
class ExportOptions:
    mode: str = "structure"
    sheet_name: str = DEFAULT_SHEET_NAME
    scope_selector: str = "body"
    container_selector: str = ".a4"
    column_widths_px: Sequence[float] = DEFAULT_COLUMN_WIDTHS_PX
    layout: LayoutOptions = field(default_factory=LayoutOptions)
    blocks: BlockOptions = field(default_factory=BlockOptions)


def load_soup(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "lxml")


def resolve_root(soup: BeautifulSoup, options: ExportOptions) -> Tag:
    """Ámbito de exportación y, dentro de él, el contenedor (o el propio ámbito si no existe)."""
    scope = soup.select_one(options.scope_selector) if options.scope_selector else soup
    if scope is None:
        raise ExportError(f"No se encontró el ámbito de exportación: {options.scope_selector!r}")
    container = scope.select_one(options.container_selector) if options.container_selector else None
    return container if container is not None else scope


def build_sheet(
    root: Tag,
    sink: WorkbookSink,
    *,
    provider: MeasurementProvider,
    images: ImageManager,
    options: Optional[ExportOptions] = None,
) -> int:
    """
    Compone la hoja a partir de `root` según el modo y devuelve el número de
    imágenes bloqueadas.
    """
    opts = options or ExportOptions()
    if root is None:
        raise ExportError("Se requiere un nodo raíz para exportar.")
    mode = (opts.mode or "structure").lower()
    log.info("Modo seleccionado: %s", mode)

    if mode == "layout":
        analysis = analyze_layout(root, provider, opts.layout)
        write_layout(sink, analysis, images)
    elif mode == "structure":
        composer = WorksheetComposer(sink, images, provider, column_widths_px=opts.column_widths_px)
        blocks = collect_blocks(root, provider, opts.blocks)
        if not blocks:
            table = root.find("table")
            if table is not None:
                log.info("Sin bloques reconocidos; se exporta la primera tabla.")
                composer.write_table(table, apply_column_widths=True)
            else:
                log.warning("No se encontraron bloques ni tablas. La hoja quedará vacía.")
        for block in blocks:
            composer.write_block(block)
    else:
        raise ExportError(f"Modo desconocido: {opts.mode!r}")

    return images.embed_all(sink)


def html_to_workbook(
    html_path: str,
    output_path: str,
    *,
    mode: str = "structure",
    sheet_name: str = DEFAULT_SHEET_NAME,
    scope_selector: str = "body",
    container_selector: str = ".a4",
    measurements_path: Optional[str] = None,
    tolerance_px: Optional[float] = None,
    image_base_dir: Optional[str] = None,
) -> int:
    """
    Orquesta la conversión HTML -> hoja. La salida se elige por extensión:
    `.xlsx` (openpyxl) o `.csv` (hoja en memoria). Devuelve las imágenes bloqueadas.
    """
    suffix = Path(output_path).suffix.lower()
    if suffix not in (".xlsx", ".csv"):
        raise ExportError(f"Extensión de salida no soportada: {suffix!r} (use .xlsx o .csv)")

    log.info("Leyendo HTML desde: %s", html_path)
    with open(html_path, "r", encoding="utf-8") as fh:
        soup = load_soup(fh.read())

    layout_opts = LayoutOptions(tolerance_px=tolerance_px) if tolerance_px is not None else LayoutOptions()
    options = ExportOptions(mode=mode, sheet_name=sheet_name, scope_selector=scope_selector,
                            container_selector=container_selector, layout=layout_opts)
    root = resolve_root(soup, options)

    if measurements_path:
        provider: MeasurementProvider = SnapshotMeasurementProvider.from_json(measurements_path)
    else:
        provider = AttributeMeasurementProvider()
    images = ImageManager(LocalImageProvider(image_base_dir or Path(html_path).parent))

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".xlsx":
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name
        blocked = build_sheet(root, OpenpyxlSink(ws), provider=provider, images=images, options=options)
        wb.save(output_path)
    else:
        sheet = GridSheet(name=sheet_name)
        blocked = build_sheet(root, sheet, provider=provider, images=images, options=options)
        sheet_to_csv(sheet, output_path)

    if blocked:
        log.warning("Completado, pero %d imagen(es) no se pudieron incrustar.", blocked)
    log.info("Hoja escrita en: %s", output_path)
    return blocked
