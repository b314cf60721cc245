from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .main import MODES, html_to_workbook

log = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Exporta un documento HTML maquetado a una hoja (.xlsx o .csv).")
    parser.add_argument("html_path", type=str, help="Ruta al archivo HTML de entrada")
    parser.add_argument("output_path", type=str, help="Ruta de salida (.xlsx o .csv)")
    parser.add_argument("--mode", type=str, default="structure", choices=list(MODES),
                        help="'structure' escribe bloques semánticos; 'layout' replica la rejilla visual (default: structure)")
    parser.add_argument("--sheet-name", type=str, default="Export", help="Nombre de la hoja (default: Export)")
    parser.add_argument("--scope", type=str, default="body", help="Selector CSS del ámbito a exportar (default: body)")
    parser.add_argument("--container", type=str, default=".a4",
                        help="Selector CSS del contenedor dentro del ámbito (default: .a4)")
    parser.add_argument("--measurements", type=str,
                        help="JSON con geometría/estilo volcados por un navegador, indexados por id de elemento")
    parser.add_argument("--tolerance", type=float, help="Tolerancia en píxeles para fusionar guías (modo layout)")
    parser.add_argument("--image-dir", type=str, help="Directorio base para resolver imágenes locales")
    parser.add_argument("--loglevel", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Nivel de verbosidad del log (default: INFO)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.loglevel, format="%(asctime)s - %(levelname)s - %(message)s")
    log.info(f"HTML: {args.html_path}")
    log.info(f"SALIDA: {args.output_path}")

    try:
        blocked = html_to_workbook(
            args.html_path,
            args.output_path,
            mode=args.mode,
            sheet_name=args.sheet_name,
            scope_selector=args.scope,
            container_selector=args.container,
            measurements_path=args.measurements,
            tolerance_px=args.tolerance,
            image_base_dir=args.image_dir,
        )
    except FileNotFoundError as e:
        log.error(f"Error: No se encontró el archivo de entrada: {e.filename}")
        sys.exit(1)
    except Exception as e:
        log.error(f"Ocurrió un error inesperado: {e}", exc_info=True)
        sys.exit(1)

    if blocked:
        log.info(f"✔ Proceso completado ({blocked} imagen(es) omitidas).")
    else:
        log.info("✔ Proceso completado.")


if __name__ == "__main__":
    main()
