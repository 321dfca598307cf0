from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import unquote_plus
from xml.etree.ElementTree import Element

from policybridge.errors import StructuralParseError


_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def local_name(node: Element) -> str:
    tag = node.tag if isinstance(node.tag, str) else ""
    return tag.rsplit("}", 1)[-1]


def _matches(node: Element, name: str) -> bool:
    return local_name(node).lower() == name.lower()


def _text(node: Element) -> Optional[str]:
    value = (node.text or "").strip()
    return value or None


def find_child(node: Element, name: str) -> Optional[Element]:
    for child in node:
        if _matches(child, name):
            return child
    return None


def find_all(root: Element, name: str) -> Iterator[Element]:
    """Every descendant named ``name`` in document order, at any depth."""
    for node in root.iter():
        if node is not root and _matches(node, name):
            yield node


def iter_members(root: Element) -> Iterator[Element]:
    """Top-level ``member`` entries of a listing; members nested inside a member are skipped."""
    for child in root:
        if _matches(child, "member"):
            yield child
        else:
            yield from iter_members(child)


def extract_field(node: Element, *path: str) -> Optional[str]:
    """
    Trimmed text of the first child matching ``path`` that has text content.
    Names match case-insensitively and ignore XML namespaces. Absence is
    ``None``, not an error.
    """
    if not path:
        return _text(node)
    parents: List[Element] = [node]
    for name in path[:-1]:
        parents = [child for parent in parents for child in parent if _matches(child, name)]
        if not parents:
            return None
    for parent in parents:
        for child in parent:
            if _matches(child, path[-1]):
                value = _text(child)
                if value is not None:
                    return value
    return None


def extract_first(root: Element, name: str) -> Optional[str]:
    for node in find_all(root, name):
        value = _text(node)
        if value is not None:
            return value
    return None


def decode_embedded_json(raw: str) -> Dict[str, Any]:
    """Percent-decode then parse a JSON object embedded as character data."""
    text = str(raw or "").strip()
    bad = _BAD_ESCAPE_RE.search(text)
    if bad:
        raise StructuralParseError(f"malformed percent-encoding at offset {bad.start()}")
    try:
        decoded = unquote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise StructuralParseError(f"percent-encoded document is not valid UTF-8: {exc}") from exc
    try:
        document = json.loads(decoded)
    except json.JSONDecodeError as exc:
        raise StructuralParseError(f"embedded document is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise StructuralParseError("embedded document must be a JSON object")
    return document


def extract_embedded_document(node: Element, field: str) -> Optional[Dict[str, Any]]:
    raw = extract_field(node, field)
    if raw is None:
        return None
    return decode_embedded_json(raw)
