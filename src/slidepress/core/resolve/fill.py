from __future__ import annotations

from typing import Any

from slidepress.core.errors import PartialResolutionLoss
from slidepress.core.package.xmlq import attr, find_child, find_descendant, find_all, int_attr, local_name
from slidepress.core.resolve.color import resolve_color
from slidepress.core.resolve.context import PartContext
from slidepress.core.resolve.model import (
    FillSpec,
    GradientFill,
    GradientStop,
    ImageFill,
    NoFill,
    ResolvedColor,
    SolidFill,
)

# Image fill takes priority over solid/gradient.
FILL_PRECEDENCE: tuple[str, ...] = ("blipFill", "solidFill", "gradFill", "noFill")


def _image_fill(el: Any, ctx: PartContext) -> FillSpec | None:
    blip = el if local_name(el) == "blip" else find_descendant(el, "blip")
    if blip is None:
        return None
    rid = attr(blip, "embed") or attr(blip, "link")
    media = ctx.media(rid)
    if media is None:
        ctx.lose(f"image fill {rid or '<no id>'} does not resolve to media")
        return None
    return ImageFill(media)


def _gradient_fill(el: Any, ctx: PartContext, placeholder: ResolvedColor | None) -> FillSpec | None:
    fallback = ResolvedColor.from_hex(ctx.config.gradient_fallback)
    stops: list[GradientStop] = []
    for gs in find_all(el, "gs"):
        try:
            pos = int_attr(gs, "pos", 0) or 0
        except PartialResolutionLoss as e:
            ctx.lose(f"gradient stop skipped: {e}")
            continue
        color = resolve_color(gs, ctx.colors, placeholder)
        if color is None:
            ctx.lose("gradient stop color unresolvable; using fallback")
            color = fallback
        stops.append(GradientStop(offset=pos / 1000.0, color=color))

    if not stops:
        return None
    if len(stops) == 1:
        return SolidFill(stops[0].color)

    angle = 90.0
    lin = find_child(el, "lin")
    if lin is not None:
        try:
            angle = (int_attr(lin, "ang", 5400000) or 0) / 60000.0
        except PartialResolutionLoss as e:
            ctx.lose(str(e))
    return GradientFill(tuple(sorted(stops, key=lambda s: s.offset)), angle)


def resolve_fill_element(
    el: Any,
    ctx: PartContext,
    *,
    placeholder: ResolvedColor | None = None,
) -> FillSpec | None:
    """One fill choice element (solidFill, gradFill, blipFill, noFill) → FillSpec."""
    kind = local_name(el)
    if kind == "noFill":
        return NoFill()
    if kind == "solidFill":
        color = resolve_color(el, ctx.colors, placeholder)
        if color is None:
            ctx.lose("solid fill color unresolvable")
            return None
        return SolidFill(color)
    if kind == "gradFill":
        return _gradient_fill(el, ctx, placeholder)
    if kind == "blipFill":
        return _image_fill(el, ctx)
    return None


def resolve_fill(props: Any, ctx: PartContext) -> FillSpec | None:
    """Fill declared directly on a property element (spPr, bgPr); None if none resolves."""
    if props is None:
        return None
    for tag in FILL_PRECEDENCE:
        el = find_child(props, tag)
        if el is None:
            continue
        fill = resolve_fill_element(el, ctx)
        if fill is not None:
            return fill
    return None


def resolve_style_reference(ref: Any, ctx: PartContext) -> FillSpec | None:
    """A fillRef / bgRef: theme style matrix entry, colored by the reference's own color.

    When the theme has no matching style entry the reference color is used as a
    plain solid fill.
    """
    if ref is None:
        return None
    try:
        idx = int_attr(ref, "idx", 0) or 0
    except PartialResolutionLoss as e:
        ctx.lose(str(e))
        idx = 0
    if idx == 0 and local_name(ref) == "fillRef":
        return None

    color = resolve_color(ref, ctx.colors)
    style = ctx.theme.style_fill(idx)
    if style is not None:
        fill = resolve_fill_element(style, ctx, placeholder=color)
        if fill is not None:
            return fill
    if color is not None:
        return SolidFill(color)
    return None


def resolve_shape_fill(node: Any, ctx: PartContext) -> FillSpec | None:
    """Fill of an sp / cxnSp: explicit spPr fill, else its p:style fillRef."""
    explicit = resolve_fill(find_child(node, "spPr"), ctx)
    if explicit is not None:
        return explicit
    style = find_child(node, "style")
    return resolve_style_reference(find_child(style, "fillRef"), ctx)
