"""
inherit.py — Slide → layout → master inheritance.

Background fallback order (first hit wins):
  1. slide bg/bgPr       2. slide bg/bgRef
  3. layout (1, 2)       4. master (1, 2)
  5. a top-level sp covering >= background_coverage of the slide, with a fill
  6. opaque white

Placeholders without their own xfrm take the geometry of the matching layout
placeholder (by idx, then type), then of the master's (by type).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from slidepress.core.config import ResolverConfig
from slidepress.core.errors import EntryNotFound, MalformedPart, PartialResolutionLoss
from slidepress.core.package.archive import Package
from slidepress.core.package.xmlq import (
    attr,
    children,
    find_all,
    find_child,
    find_descendant,
    int_attr,
    local_name,
)
from slidepress.core.resolve.color import Theme, build_theme
from slidepress.core.resolve.context import PartContext
from slidepress.core.resolve.fill import resolve_fill, resolve_shape_fill, resolve_style_reference
from slidepress.core.resolve.model import (
    WHITE,
    FillSpec,
    SlideDimensions,
    SolidFill,
    is_visible_fill,
)
from slidepress.core.resolve.units import emu_to_px

logger = logging.getLogger(__name__)

LAYOUT_REL = "slideLayout"
MASTER_REL = "slideMaster"
THEME_REL = "/theme"

# Master placeholders only come in a few types; layout/slide types fold onto them.
_MASTER_PH_TYPE: dict[str, str] = {
    "ctrTitle": "title",
    "title": "title",
    "subTitle": "body",
    "obj": "body",
    "body": "body",
    "dt": "dt",
    "ftr": "ftr",
    "sldNum": "sldNum",
}


# ---------------------------------------------------------------------------
# Themes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThemeSet:
    """Every theme part of a package, parsed once before any slide is resolved."""

    default: Theme
    by_part: Mapping[str, Theme] = field(default_factory=lambda: MappingProxyType({}))

    def for_master(self, package: Package, master_part: str | None) -> Theme:
        if master_part:
            target = package.related(master_part, THEME_REL)
            if target and target in self.by_part:
                return self.by_part[target]
        return self.default


def _theme_sort_key(name: str) -> tuple[int, str]:
    digits = "".join(ch for ch in name.rsplit("/", 1)[-1] if ch.isdigit())
    return (int(digits) if digits else 0, name)


def load_themes(package: Package) -> ThemeSet:
    names = sorted(
        (n for n in package.names if n.startswith("ppt/theme/") and n.endswith(".xml")),
        key=_theme_sort_key,
    )
    by_part: dict[str, Theme] = {}
    for name in names:
        try:
            by_part[name] = build_theme(package.xml(name))
        except MalformedPart as e:
            logger.warning("ignoring theme part: %s", e)

    if "ppt/theme/theme1.xml" in by_part:
        default = by_part["ppt/theme/theme1.xml"]
    elif by_part:
        default = by_part[next(iter(by_part))]
    else:
        default = build_theme(None)
    return ThemeSet(default=default, by_part=MappingProxyType(by_part))


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------


def placeholder_of(node: Any) -> tuple[str, str | None] | None:
    """(type, idx) of a placeholder shape, or None for ordinary shapes."""
    for child in children(node):
        if local_name(child).startswith("nv"):
            ph = find_descendant(child, "ph")
            if ph is None:
                return None
            return (attr(ph, "type") or "obj", attr(ph, "idx") or None)
    return None


@dataclass(frozen=True)
class PlaceholderIndex:
    by_idx: Mapping[str, Any]
    by_type: Mapping[str, Any]

    def lookup(self, ph_type: str, idx: str | None, *, master: bool = False) -> Any | None:
        if not master and idx is not None and idx in self.by_idx:
            return self.by_idx[idx]
        if ph_type in self.by_type:
            return self.by_type[ph_type]
        folded = _MASTER_PH_TYPE.get(ph_type)
        if folded is not None:
            return self.by_type.get(folded)
        return None


EMPTY_PLACEHOLDERS = PlaceholderIndex(MappingProxyType({}), MappingProxyType({}))


def index_placeholders(root: Any) -> PlaceholderIndex:
    by_idx: dict[str, Any] = {}
    by_type: dict[str, Any] = {}
    for sp in find_all(find_descendant(root, "spTree"), "sp"):
        ph = placeholder_of(sp)
        if ph is None:
            continue
        xfrm = find_child(find_child(sp, "spPr"), "xfrm")
        if xfrm is None:
            continue
        ph_type, idx = ph
        if idx is not None:
            by_idx.setdefault(idx, xfrm)
        by_type.setdefault(ph_type, xfrm)
    return PlaceholderIndex(MappingProxyType(by_idx), MappingProxyType(by_type))


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PartDoc:
    root: Any
    ctx: PartContext


@dataclass(frozen=True)
class InheritanceChain:
    slide: PartDoc
    layout: PartDoc | None = None
    master: PartDoc | None = None
    layout_placeholders: PlaceholderIndex = EMPTY_PLACEHOLDERS
    master_placeholders: PlaceholderIndex = EMPTY_PLACEHOLDERS

    def levels(self) -> list[PartDoc]:
        return [d for d in (self.slide, self.layout, self.master) if d is not None]

    def inherited_xfrm(self, node: Any) -> Any | None:
        ph = placeholder_of(node)
        if ph is None:
            return None
        ph_type, idx = ph
        found = self.layout_placeholders.lookup(ph_type, idx)
        if found is None:
            found = self.master_placeholders.lookup(ph_type, idx, master=True)
        return found


def _load_part(package: Package, part: str | None, losses: list[str], label: str) -> Any | None:
    if not part:
        return None
    try:
        return package.xml(part)
    except (EntryNotFound, MalformedPart) as e:
        losses.append(f"{label}: {e}")
        logger.debug("%s unavailable: %s", label, e)
        return None


def _clr_map(master_root: Any | None) -> dict[str, str]:
    el = find_child(master_root, "clrMap") if master_root is not None else None
    if el is None:
        return {}
    return {key.rsplit("}", 1)[-1]: value for key, value in el.attrib.items()}


def load_chain(
    package: Package,
    slide_part: str,
    slide_root: Any,
    themes: ThemeSet,
    config: ResolverConfig,
    losses: list[str],
) -> InheritanceChain:
    """Follow slide → layout → master relationships and build per-part contexts."""
    layout_part = package.related(slide_part, LAYOUT_REL)
    layout_root = _load_part(package, layout_part, losses, "layout")
    if layout_root is None:
        layout_part = None

    master_part = package.related(layout_part, MASTER_REL) if layout_part else None
    master_root = _load_part(package, master_part, losses, "master")
    if master_root is None:
        master_part = None

    theme = themes.for_master(package, master_part)
    colors = theme.colors.with_color_map(_clr_map(master_root))
    ctx = PartContext(
        package=package,
        part_name=slide_part,
        theme=theme,
        colors=colors,
        config=config,
        losses=losses,
    )
    return InheritanceChain(
        slide=PartDoc(slide_root, ctx),
        layout=PartDoc(layout_root, ctx.for_part(layout_part)) if layout_part else None,
        master=PartDoc(master_root, ctx.for_part(master_part)) if master_part else None,
        layout_placeholders=index_placeholders(layout_root) if layout_root is not None else EMPTY_PLACEHOLDERS,
        master_placeholders=index_placeholders(master_root) if master_root is not None else EMPTY_PLACEHOLDERS,
    )


# ---------------------------------------------------------------------------
# Background
# ---------------------------------------------------------------------------


def extract_background(root: Any, ctx: PartContext) -> FillSpec | None:
    """Background declared by one part: bgPr first, then bgRef."""
    for bg in find_all(root, "bg"):
        fill = resolve_fill(find_child(bg, "bgPr"), ctx)
        if fill is not None:
            return fill
        fill = resolve_style_reference(find_child(bg, "bgRef"), ctx)
        if fill is not None:
            return fill
    return None


def implied_background(root: Any, ctx: PartContext, dims: SlideDimensions) -> FillSpec | None:
    """Fill of the first top-level shape that covers (almost) the whole slide."""
    coverage = ctx.config.background_coverage
    for node in children(find_descendant(root, "spTree")):
        if local_name(node) != "sp":
            continue
        ext = find_child(find_child(find_child(node, "spPr"), "xfrm"), "ext")
        if ext is None:
            continue
        try:
            cx = emu_to_px(int_attr(ext, "cx", 0) or 0)
            cy = emu_to_px(int_attr(ext, "cy", 0) or 0)
        except PartialResolutionLoss as e:
            ctx.lose(str(e))
            continue
        if cx >= dims.width_px * coverage and cy >= dims.height_px * coverage:
            fill = resolve_shape_fill(node, ctx)
            if is_visible_fill(fill):
                logger.debug("%s: using full-slide shape as background", ctx.part_name)
                return fill
    return None


def resolve_background(chain: InheritanceChain, dims: SlideDimensions) -> FillSpec:
    for level in chain.levels():
        fill = extract_background(level.root, level.ctx)
        if fill is not None:
            return fill
    fill = implied_background(chain.slide.root, chain.slide.ctx, dims)
    if fill is not None:
        return fill
    return SolidFill(WHITE)
