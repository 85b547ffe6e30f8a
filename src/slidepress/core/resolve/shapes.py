"""
shapes.py — Shape tree walk and draw-order flattening.

build_shape_tree() turns an spTree (or grpSp) into Group / Picture / Shape
nodes with absolute pixel placements; flatten() emits draw primitives in
document order. Each node is built independently: an element that fails to
resolve is recorded as a loss and skipped, never aborting the slide.
"""
from __future__ import annotations

import logging
from typing import Any

from slidepress.core.errors import PartialResolutionLoss
from slidepress.core.package.xmlq import (
    attr,
    children,
    find_all,
    find_child,
    find_children,
    find_descendant,
    int_attr,
    local_name,
    text_of,
)
from slidepress.core.resolve.color import resolve_color
from slidepress.core.resolve.context import PartContext
from slidepress.core.resolve.fill import resolve_shape_fill
from slidepress.core.resolve.inherit import InheritanceChain
from slidepress.core.resolve.model import (
    IDENTITY,
    DrawPrimitive,
    FilledRect,
    Group,
    ImageFill,
    LineBreak,
    Paragraph,
    Picture,
    PlacedImage,
    Shape,
    ShapeNode,
    TextBlock,
    TextRun,
    Transform2D,
    is_visible_fill,
)
from slidepress.core.resolve.units import (
    Xfrm,
    compose_child_transform,
    compose_group_transform,
    read_xfrm,
)

logger = logging.getLogger(__name__)

_ALIGN: dict[str, str] = {"l": "left", "ctr": "center", "r": "right", "rgt": "right"}
_ANCHOR: dict[str, str] = {"t": "top", "ctr": "center", "b": "bottom"}
_TRUE = ("1", "true")

# Container property children that are not shapes.
_NON_SHAPES = frozenset({"nvGrpSpPr", "grpSpPr", "extLst"})


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def build_run(r: Any, ctx: PartContext) -> TextRun | None:
    text = text_of(find_child(r, "t"))
    if not text:
        return None

    cfg = ctx.config
    rpr = find_child(r, "rPr")
    size = cfg.default_font_px
    try:
        sz = int_attr(rpr, "sz")
    except PartialResolutionLoss as e:
        ctx.lose(f"run size defaulted: {e}")
        sz = None
    if sz is not None and sz > 0:
        size = sz / 100.0 * cfg.font_scale

    color = None
    fill = find_child(rpr, "solidFill")
    if fill is not None:
        color = resolve_color(fill, ctx.colors)

    underline = attr(rpr, "u")
    return TextRun(
        text=text,
        font_size_px=size,
        color=color,
        bold=attr(rpr, "b") in _TRUE,
        italic=attr(rpr, "i") in _TRUE,
        underline=bool(underline) and underline != "none",
    )


def build_paragraph(p: Any, ctx: PartContext) -> Paragraph:
    """Runs (and text fields) in document order; a paragraph with no runs stays as an empty line."""
    items: list[TextRun | LineBreak] = []
    for child in children(p):
        tag = local_name(child)
        if tag in ("r", "fld"):
            run = build_run(child, ctx)
            if run is not None:
                items.append(run)
        elif tag == "br":
            items.append(LineBreak())
    align = _ALIGN.get(attr(find_child(p, "pPr"), "algn"), "left")
    return Paragraph(items=tuple(items), align=align)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def _node_xfrm(node: Any, tag: str, chain: InheritanceChain | None) -> Xfrm:
    props = find_child(node, "grpSpPr" if tag == "grpSp" else "spPr")
    el = find_child(props, "xfrm")
    if el is None and chain is not None:
        el = chain.inherited_xfrm(node)
    return read_xfrm(el) or Xfrm()


def _build_picture(node: Any, ctx: PartContext, parent: Transform2D, chain: InheritanceChain | None) -> Picture | None:
    placement = compose_child_transform(parent, _node_xfrm(node, "pic", chain))
    if not placement.has_area:
        return None
    rids: list[str] = []
    for blip in find_all(node, "blip"):
        rid = attr(blip, "embed") or attr(blip, "link")
        media = ctx.media(rid)
        if media is not None:
            return Picture(placement=placement, media=media)
        rids.append(rid or "<no id>")
    ctx.lose(f"picture skipped, no media for {', '.join(rids) or 'missing blip'}")
    return None


def _build_shape(node: Any, ctx: PartContext, parent: Transform2D, chain: InheritanceChain | None) -> Shape:
    placement = compose_child_transform(parent, _node_xfrm(node, "sp", chain))
    fill = resolve_shape_fill(node, ctx) if placement.has_area else None

    tx = find_child(node, "txBody")
    if tx is None:
        return Shape(placement=placement, fill=fill)
    anchor = _ANCHOR.get(attr(find_child(tx, "bodyPr"), "anchor"), "top")
    paragraphs = tuple(build_paragraph(p, ctx) for p in find_children(tx, "p"))
    return Shape(
        placement=placement,
        fill=fill,
        paragraphs=paragraphs,
        anchor=anchor,
        has_text_body=True,
    )


def _build_group(node: Any, ctx: PartContext, parent: Transform2D, chain: InheritanceChain | None) -> Group:
    xfrm = _node_xfrm(node, "grpSp", chain)
    transform = compose_group_transform(parent, xfrm)
    return Group(children=tuple(build_shape_tree(node, ctx, transform, chain)))


def _build_node(
    node: Any,
    tag: str,
    ctx: PartContext,
    parent: Transform2D,
    chain: InheritanceChain | None,
) -> ShapeNode | None:
    if tag == "grpSp":
        return _build_group(node, ctx, parent, chain)
    if tag == "pic":
        return _build_picture(node, ctx, parent, chain)
    return _build_shape(node, ctx, parent, chain)


def build_shape_tree(
    container: Any,
    ctx: PartContext,
    parent: Transform2D = IDENTITY,
    chain: InheritanceChain | None = None,
) -> list[ShapeNode]:
    out: list[ShapeNode] = []
    for node in children(container):
        tag = local_name(node)
        if tag == "AlternateContent":
            # Fallback holds the plain sp/pic rendering of newer content.
            fallback = find_child(node, "Fallback")
            if fallback is not None:
                out.extend(build_shape_tree(fallback, ctx, parent, chain))
            continue
        if tag not in ("sp", "cxnSp", "pic", "grpSp"):
            if tag not in _NON_SHAPES:
                logger.debug("%s: skipping unsupported <%s>", ctx.part_name, tag)
            continue
        try:
            built = _build_node(node, tag, ctx, parent, chain)
        except (PartialResolutionLoss, ValueError) as e:
            ctx.lose(f"<{tag}> skipped: {e}")
            continue
        if built is not None:
            out.append(built)
    return out


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


def flatten(nodes: list[ShapeNode] | tuple[ShapeNode, ...]) -> list[DrawPrimitive]:
    """Draw primitives in painter's order (later ones draw over earlier ones)."""
    out: list[DrawPrimitive] = []
    for node in nodes:
        if isinstance(node, Group):
            out.extend(flatten(node.children))
        elif isinstance(node, Picture):
            out.append(PlacedImage(rect=node.placement, media=node.media))
        elif isinstance(node, Shape):
            if not node.placement.has_area:
                continue
            if isinstance(node.fill, ImageFill):
                out.append(PlacedImage(rect=node.placement, media=node.fill.media))
            elif is_visible_fill(node.fill):
                out.append(FilledRect(rect=node.placement, fill=node.fill))
            if node.has_text_body and node.paragraphs:
                out.append(TextBlock(rect=node.placement, paragraphs=node.paragraphs, anchor=node.anchor))
    return out


def build_draw_order(root: Any, ctx: PartContext, chain: InheritanceChain | None = None) -> list[DrawPrimitive]:
    sp_tree = find_descendant(root, "spTree")
    if sp_tree is None:
        return []
    return flatten(build_shape_tree(sp_tree, ctx, IDENTITY, chain))
