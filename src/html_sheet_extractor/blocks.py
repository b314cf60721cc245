from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import soupsieve as sv
from bs4 import Tag

from .measurement import MeasurementProvider

log = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^h([1-6])$")
SKIP_ATTR = "data-export-skip"
TEXT_CANDIDATES = "p, h1, h2, h3, h4, h5, h6, li, blockquote"


@dataclass
class Block:
    type: str
    element: Tag = field(repr=False)
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BlockMatch:
    type: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BlockDefinition:
    """Definición por selector CSS (o función `find(root)`) para la primera pasada."""

    type: str
    selector: Optional[str] = None
    find: Optional[Callable[[Tag], Iterable[Tag]]] = None
    meta: Dict[str, Any] = field(default_factory=dict)


DEFAULT_BLOCK_DEFS: Sequence[BlockDefinition] = (
    BlockDefinition("letterhead", '[data-export-block="letterhead"], .letterhead, header[role="banner"]'),
    BlockDefinition("info-grid", '[data-export-block="info"], .info, dl[data-export-block], dl.info, dl.kv'),
    BlockDefinition("remarks", '[data-export-block="remarks"], .remarks, blockquote[data-type="remarks"]'),
    BlockDefinition("signature", '[data-export-block="signature"], .signature'),
    BlockDefinition("footer", '[data-export-block="footer"], footer, .footer, [role="contentinfo"]'),
    BlockDefinition("note", '[data-export-block="note"], .note, aside[data-role="note"]'),
    BlockDefinition("table", '[data-export-block="table"], table'),
)


@dataclass(frozen=True)
class BlockOptions:
    block_definitions: Optional[Sequence[BlockDefinition]] = None
    include_generic_text: bool = True


def _heading_level(node: Tag) -> Optional[int]:
    m = HEADING_RE.match(node.name or "")
    return int(m.group(1)) if m else None


def _matcher(selector: str) -> Callable[[Tag], bool]:
    compiled = sv.compile(selector)
    return compiled.match


# (predicado, tipo, extractor de meta); se evalúan en orden y gana la primera.
ClassifierRule = Tuple[Callable[[Tag], bool], Union[str, Callable[[Tag], str]], Callable[[Tag], Dict[str, Any]]]
CLASSIFIER_RULES: Sequence[ClassifierRule] = (
    (lambda n: bool((n.get("data-export-block") or "").strip()),
     lambda n: n["data-export-block"].strip(), lambda n: {}),
    (lambda n: n.name == "table", "table", lambda n: {}),
    (lambda n: _heading_level(n) is not None, "text", lambda n: {"heading_level": _heading_level(n)}),
    (lambda n: n.name == "dl", "info-grid", lambda n: {}),
    (_matcher('.letterhead, header[role="banner"]'), "letterhead", lambda n: {}),
    (_matcher('.remarks, blockquote[data-type="remarks"]'), "remarks", lambda n: {}),
    (_matcher('footer, .footer, [role="contentinfo"]'), "footer", lambda n: {}),
    (_matcher('aside, .note, [data-role="note"]'), "note", lambda n: {}),
    (_matcher(".signature, [data-signature]"), "signature", lambda n: {}),
    (_matcher('section[data-export="text"]'), "text", lambda n: {}),
)

_CENTER = _matcher('p[align="center"], .text-center, [data-align="center"]')
_RIGHT = _matcher('p[align="right"], .text-right, [data-align="right"]')


def classify_node(node: Any) -> Optional[BlockMatch]:
    if not isinstance(node, Tag):
        return None
    for predicate, block_type, meta in CLASSIFIER_RULES:
        if predicate(node):
            resolved = block_type(node) if callable(block_type) else block_type
            return BlockMatch(type=resolved, meta=meta(node))
    return None


def derive_text_meta(node: Tag) -> Dict[str, Any]:
    level = _heading_level(node)
    if level is not None:
        return {"heading_level": level}
    if node.name == "li":
        return {"add_spacing": False}
    if _CENTER(node):
        return {"align": "center"}
    if _RIGHT(node):
        return {"align": "right"}
    return {}


def is_skipped(node: Tag) -> bool:
    """True si el nodo o un ancestro lleva data-export-skip="true"."""
    current: Optional[Tag] = node
    while isinstance(current, Tag):
        if current.get(SKIP_ATTR) == "true":
            return True
        current = current.parent
    return False


def _has_ancestor_in(node: Tag, claimed: Set[int]) -> bool:
    return any(id(parent) in claimed for parent in node.parents)


def _resolve_matches(root: Tag, definition: BlockDefinition) -> List[Tag]:
    if definition.find is not None:
        result = definition.find(root) or []
        return [result] if isinstance(result, Tag) else list(result)
    if definition.selector:
        return root.select(definition.selector)
    return []


def _document_positions(root: Tag) -> Dict[int, int]:
    positions = {id(root): -1}
    for i, tag in enumerate(root.find_all(True)):
        positions[id(tag)] = i
    return positions


def detect_standalone_text_blocks(root: Tag, claimed: Set[int], provider: MeasurementProvider) -> List[Block]:
    """Bloques de texto sueltos que ninguna pasada anterior reclamó (fuera de tablas)."""
    blocks: List[Block] = []
    emitted: Set[int] = set()
    for node in root.select(TEXT_CANDIDATES):
        if id(node) in claimed or _has_ancestor_in(node, claimed):
            continue
        if not provider.is_visible(node) or is_skipped(node):
            continue
        if node.find_parent("table") is not None:
            continue
        if not node.get_text(strip=True):
            continue
        # los candidatos llegan en orden de documento: un ancestro emitido ya contiene a este nodo
        if _has_ancestor_in(node, emitted):
            continue
        emitted.add(id(node))
        blocks.append(Block(type="text", element=node, meta=derive_text_meta(node)))
    return blocks


def collect_blocks(
    root: Optional[Tag],
    provider: MeasurementProvider,
    options: Optional[BlockOptions] = None,
) -> List[Block]:
    """
    Clasifica el árbol en bloques semánticos.

    1) pasada por definiciones (selectores); 2) recorrido en orden de documento
    que se detiene en el primer nodo clasificado; 3) texto suelto de respaldo.
    La deduplicación es por identidad del nodo: los Tag de bs4 comparan por
    contenido, así que se usa `id()`.
    """
    if root is None:
        return []
    opts = options or BlockOptions()
    definitions = opts.block_definitions or DEFAULT_BLOCK_DEFS
    claimed: Set[int] = set()
    blocks: List[Block] = []

    def push_block(block_type: str, element: Optional[Tag], meta: Dict[str, Any]) -> None:
        if element is None or id(element) in claimed:
            return
        if not provider.is_visible(element) or is_skipped(element):
            return
        claimed.add(id(element))
        blocks.append(Block(type=block_type, element=element, meta=dict(meta)))

    for definition in definitions:
        for el in _resolve_matches(root, definition):
            push_block(definition.type, el, definition.meta)
    log.debug("Pasada por definiciones: %d bloques", len(blocks))

    stack: List[Tag] = list(reversed(root.find_all(recursive=False)))
    while stack:
        node = stack.pop()
        if id(node) in claimed:
            continue
        if not provider.is_visible(node) or is_skipped(node):
            continue
        match = classify_node(node)
        if match is not None:
            push_block(match.type, node, match.meta)
            continue
        stack.extend(reversed(node.find_all(recursive=False)))

    if opts.include_generic_text:
        for block in detect_standalone_text_blocks(root, claimed, provider):
            push_block(block.type, block.element, block.meta)

    positions = _document_positions(root)
    blocks.sort(key=lambda b: positions.get(id(b.element), 0))
    log.info("Bloques detectados: %s", [b.type for b in blocks])
    return blocks
