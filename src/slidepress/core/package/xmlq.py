"""Namespace-agnostic queries over lxml element trees.

Producers write the same DrawingML element under different prefixes, so every
lookup here matches on the local (unprefixed) tag name only.
"""
from __future__ import annotations

from typing import Any, Iterator

from lxml import etree
from pptx.oxml import parse_xml

from slidepress.core.errors import MalformedPart, PartialResolutionLoss


def parse(data: bytes, *, name: str = "<xml>") -> Any:
    """Parse XML bytes with python-pptx's hardened parser (no entity resolution)."""
    try:
        return parse_xml(data)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MalformedPart(f"{name}: {e}") from e


def local_name(el: Any) -> str:
    tag = getattr(el, "tag", None)
    if not isinstance(tag, str):
        # comments / processing instructions
        return ""
    return tag.rsplit("}", 1)[-1]


def children(el: Any) -> Iterator[Any]:
    if el is None:
        return
    for child in el:
        if isinstance(child.tag, str):
            yield child


def find_child(el: Any, name: str) -> Any | None:
    for child in children(el):
        if local_name(child) == name:
            return child
    return None


def find_children(el: Any, name: str) -> list[Any]:
    return [c for c in children(el) if local_name(c) == name]


def find_descendant(el: Any, name: str) -> Any | None:
    """First matching descendant in document (pre-)order, excluding `el` itself."""
    if el is None:
        return None
    for node in el.iterdescendants():
        if local_name(node) == name:
            return node
    return None


def find_all(el: Any, name: str) -> list[Any]:
    if el is None:
        return []
    return [n for n in el.iterdescendants() if local_name(n) == name]


def attr(el: Any, name: str, default: str = "") -> str:
    """Attribute value by local name (`embed` matches `r:embed`)."""
    if el is None:
        return default
    v = el.get(name)
    if v is not None:
        return v
    for key, value in el.attrib.items():
        if key.rsplit("}", 1)[-1] == name:
            return value
    return default


def int_attr(el: Any, name: str, default: int | None = None) -> int | None:
    """Integer attribute; absent → `default`, malformed → PartialResolutionLoss."""
    raw = attr(el, name)
    if raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise PartialResolutionLoss(
            f"malformed numeric attribute {local_name(el)}@{name}={raw!r}"
        ) from None


def text_of(el: Any) -> str:
    if el is None:
        return ""
    return el.text or ""
