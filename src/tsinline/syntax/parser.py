from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    from tree_sitter import Node  # type: ignore
    from tree_sitter_languages import get_parser  # type: ignore

    _TS_AVAILABLE = True
except Exception:
    try:
        from tree_sitter import Node  # type: ignore
        from tree_sitter_language_pack import get_parser  # type: ignore

        _TS_AVAILABLE = True
    except Exception:
        Node = object  # type: ignore
        get_parser = None  # type: ignore
        _TS_AVAILABLE = False

TS_AVAILABLE = _TS_AVAILABLE
UNAVAILABLE_REASON = None if _TS_AVAILABLE else "tree_sitter_languages not installed"

log = logging.getLogger(__name__)

_warned_unavailable = False


@dataclass
class SourceModule:
    """A parsed TypeScript file plus the offset bookkeeping around it."""

    path: Path
    text: str
    source: bytes
    tree: Any
    language: str
    _char_starts: list[int] = field(default_factory=list, repr=False)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def node_text(self, node: Node) -> str:
        return _node_text(self.source, node)

    def slice(self, start_byte: int, end_byte: int) -> str:
        return self.source[start_byte:end_byte].decode("utf-8", errors="replace")

    def char_to_byte(self, offset: int) -> int:
        offset = max(0, min(offset, len(self.text)))
        return len(self.text[:offset].encode("utf-8"))

    def byte_to_char(self, offset: int) -> int:
        if not self._char_starts:
            pos = 0
            for ch in self.text:
                self._char_starts.append(pos)
                pos += len(ch.encode("utf-8"))
            self._char_starts.append(pos)
        return bisect.bisect_right(self._char_starts, offset) - 1

    def memo(self, key: str, factory: Any) -> Any:
        """Per-module cache for indexes computed once per parse."""
        if key not in self._cache:
            self._cache[key] = factory(self)
        return self._cache[key]


def _node_text(src: bytes, node: Node) -> str:
    return src[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _languages_for_path(path: Path) -> list[str]:
    suffix = path.suffix.lower()
    if suffix in {".tsx", ".jsx"}:
        return ["tsx", "typescript"]
    return ["typescript", "tsx"]


def parse_source(path: Path, text: str) -> SourceModule | None:
    global _warned_unavailable
    if not TS_AVAILABLE or get_parser is None:
        if not _warned_unavailable:
            log.warning("TypeScript parsing unavailable: %s", UNAVAILABLE_REASON)
            _warned_unavailable = True
        return None
    src = text.encode("utf-8")
    fallback: SourceModule | None = None
    for lang in _languages_for_path(path):
        try:
            parser = get_parser(lang)
            tree = parser.parse(src)
        except Exception as e:
            log.debug("Parser %s failed for %s: %s", lang, path, e)
            continue
        module = SourceModule(path=path, text=text, source=src, tree=tree, language=lang)
        if not tree.root_node.has_error:
            return module
        if fallback is None:
            fallback = module
    if fallback is not None:
        log.debug("Parsed %s with syntax errors", path)
    return fallback


def iter_named(node: Node) -> list[Node]:
    """Named children without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def contains(node: Node, start: int, end: int) -> bool:
    return node.start_byte <= start and end <= node.end_byte


def descend(root: Node, start: int, end: int) -> list[Node]:
    """Nodes whose byte range covers [start, end), outermost first."""
    chain = [root]
    node = root
    while True:
        nxt = None
        for child in node.children:
            if contains(child, start, end) and child.end_byte > child.start_byte:
                nxt = child
                break
        if nxt is None:
            return chain
        chain.append(nxt)
        node = nxt
