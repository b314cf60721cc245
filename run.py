# run.py
from __future__ import annotations
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent / "src"))
from importlib import import_module
export_cli = import_module("html_sheet_extractor.export_cli")

if __name__ == "__main__":
    export_cli.main()
