from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from PIL import Image, UnidentifiedImageError

from .sink import ImageAnchor, ImagePayload, WorkbookSink

log = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:image/([a-z0-9.+-]+)(;base64)?,(.*)$", re.IGNORECASE | re.DOTALL)
REMOTE_RE = re.compile(r"^(https?:)?//", re.IGNORECASE)
PASSTHROUGH_FORMATS = {"PNG": "png", "JPEG": "jpeg"}


class ImageProvider(Protocol):
    def fetch(self, src: str) -> Optional[ImagePayload]: ...


class LocalImageProvider:
    """
    Resuelve URLs `data:` y rutas locales. PNG/JPEG pasan tal cual; GIF, WebP,
    BMP... se recodifican a PNG con Pillow. SVG y URLs remotas no se incrustan.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def fetch(self, src: str) -> Optional[ImagePayload]:
        if not src:
            return None
        m = DATA_URL_RE.match(src.strip())
        if m:
            subtype, is_b64, body = m.groups()
            if "svg" in subtype.lower():
                log.warning("Imagen SVG no soportada, se omite.")
                return None
            try:
                data = base64.b64decode(body) if is_b64 else body.encode("latin-1")
            except (binascii.Error, ValueError):
                log.warning("URL data: con base64 inválido, se omite.")
                return None
            return self._sheet_friendly(data, src[:40])
        if REMOTE_RE.match(src):
            log.warning("Imagen remota bloqueada (sin acceso a red): %s", src)
            return None
        path = Path(src[len("file://"):] if src.startswith("file://") else src)
        if not path.is_absolute():
            path = self.base_dir / path
        if path.suffix.lower() == ".svg":
            log.warning("Imagen SVG no soportada, se omite: %s", path)
            return None
        if not path.is_file():
            log.warning("No se encontró la imagen: %s", path)
            return None
        return self._sheet_friendly(path.read_bytes(), str(path))

    @staticmethod
    def _sheet_friendly(data: bytes, label: str) -> Optional[ImagePayload]:
        try:
            with Image.open(BytesIO(data)) as img:
                fmt = (img.format or "").upper()
                if fmt in PASSTHROUGH_FORMATS:
                    return ImagePayload(data=data, extension=PASSTHROUGH_FORMATS[fmt])
                out = BytesIO()
                img.convert("RGBA").save(out, format="PNG")
        except (UnidentifiedImageError, OSError) as exc:
            log.warning("No se pudo decodificar la imagen %s: %s", label, exc)
            return None
        log.debug("Imagen %s recodificada de %s a PNG", label, fmt or "?")
        return ImagePayload(data=out.getvalue(), extension="png")


@dataclass(frozen=True)
class ImageJob:
    src: str
    anchor: ImageAnchor


class ImageManager:
    """Cola de imágenes pendientes; la incrustación ocurre al final, una vez por fuente."""

    def __init__(self, provider: Optional[ImageProvider] = None) -> None:
        self.provider = provider or LocalImageProvider()
        self.jobs: List[ImageJob] = []
        self._cache: Dict[str, Optional[ImagePayload]] = {}

    def queue(self, src: Optional[str], anchor: ImageAnchor) -> None:
        if not src:
            return
        self.jobs.append(ImageJob(src=src, anchor=anchor))

    def payload_for(self, src: str) -> Optional[ImagePayload]:
        if src not in self._cache:
            self._cache[src] = self.provider.fetch(src)
        return self._cache[src]

    def embed_all(self, sink: WorkbookSink) -> int:
        """Incrusta todo lo encolado y devuelve cuántas imágenes quedaron bloqueadas."""
        blocked = 0
        for job in self.jobs:
            payload = self.payload_for(job.src)
            if payload is None:
                blocked += 1
                continue
            sink.add_image(payload, job.anchor)
        if blocked:
            log.warning("%d imagen(es) no se pudieron incrustar.", blocked)
        log.info("Imágenes incrustadas: %d de %d", len(self.jobs) - blocked, len(self.jobs))
        return blocked
