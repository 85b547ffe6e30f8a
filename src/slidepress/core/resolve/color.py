"""
color.py — Theme color table and the DrawingML color computation chain.

A color element resolves in two steps:
  1. base RGB from srgbClr / schemeClr / sysClr / prstClr (first found wins)
  2. modifiers, always in this order regardless of document order:
       alpha, alphaMod, alphaOff → lumMod, lumOff (in HSL) → tint → shade

Modifier values are in 1/100000 (50000 = 50%); "50%" strings are accepted too.
"""
from __future__ import annotations

import colorsys
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from slidepress.core.package.xmlq import (
    attr,
    children,
    find_child,
    find_descendant,
    local_name,
)
from slidepress.core.resolve.model import ResolvedColor

logger = logging.getLogger(__name__)

# Built-in scheme used for every slot the theme does not define.
DEFAULT_SCHEME: dict[str, str] = {
    "dk1": "000000",
    "dk2": "1F2937",
    "lt1": "FFFFFF",
    "lt2": "F3F4F6",
    "tx1": "000000",
    "tx2": "374151",
    "bg1": "FFFFFF",
    "bg2": "E5E7EB",
    "accent1": "4472C4",
    "accent2": "ED7D31",
    "accent3": "A5A5A5",
    "accent4": "FFC000",
    "accent5": "5B9BD5",
    "accent6": "70AD47",
    "hlink": "0563C1",
    "folHlink": "954F72",
}

# Usage slots and the scheme slot they follow unless a clrMap says otherwise.
SLOT_ALIASES: dict[str, str] = {
    "tx1": "dk1",
    "tx2": "dk2",
    "bg1": "lt1",
    "bg2": "lt2",
}

# Subset of ST_PresetColorVal; keys lower-cased for lookup.
PRESET_COLORS: dict[str, str] = {
    "black": "000000",
    "white": "FFFFFF",
    "red": "FF0000",
    "green": "008000",
    "blue": "0000FF",
    "yellow": "FFFF00",
    "cyan": "00FFFF",
    "aqua": "00FFFF",
    "magenta": "FF00FF",
    "fuchsia": "FF00FF",
    "lime": "00FF00",
    "gray": "808080",
    "grey": "808080",
    "dkgray": "A9A9A9",
    "darkgray": "A9A9A9",
    "ltgray": "D3D3D3",
    "lightgray": "D3D3D3",
    "silver": "C0C0C0",
    "orange": "FFA500",
    "purple": "800080",
    "pink": "FFC0CB",
    "brown": "A52A2A",
    "navy": "000080",
    "teal": "008080",
    "olive": "808000",
    "maroon": "800000",
    "gold": "FFD700",
    "indigo": "4B0082",
    "violet": "EE82EE",
    "dkblue": "00008B",
    "darkblue": "00008B",
    "dkred": "8B0000",
    "darkred": "8B0000",
    "dkgreen": "006400",
    "darkgreen": "006400",
    "ltblue": "ADD8E6",
    "lightblue": "ADD8E6",
    "skyblue": "87CEEB",
    "coral": "FF7F50",
    "salmon": "FA8072",
    "tan": "D2B48C",
    "beige": "F5F5DC",
    "ivory": "FFFFF0",
}

# sysClr without lastClr: typical Windows values.
SYSTEM_COLORS: dict[str, str] = {
    "windowText": "000000",
    "window": "FFFFFF",
    "btnFace": "F0F0F0",
    "btnText": "000000",
    "highlight": "0078D7",
    "highlightText": "FFFFFF",
    "grayText": "6D6D6D",
    "menu": "F0F0F0",
    "menuText": "000000",
    "captionText": "000000",
    "infoBk": "FFFFE1",
    "infoText": "000000",
    "3dDkShadow": "696969",
    "3dLight": "E3E3E3",
}

COLOR_KINDS: tuple[str, ...] = ("srgbClr", "schemeClr", "sysClr", "prstClr")


def _hex_color(value: str) -> ResolvedColor | None:
    try:
        return ResolvedColor.from_hex(value)
    except ValueError:
        logger.debug("ignoring malformed hex color %r", value)
        return None


# ---------------------------------------------------------------------------
# Theme table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThemeColorTable:
    colors: Mapping[str, ResolvedColor]

    def lookup(self, slot: str) -> ResolvedColor | None:
        return self.colors.get(slot)

    def with_color_map(self, clr_map: Mapping[str, str]) -> "ThemeColorTable":
        """Re-point usage slots (bg1 → lt1, tx1 → dk1, ...) per a master's clrMap."""
        out = dict(self.colors)
        for slot, target in clr_map.items():
            color = self.colors.get(target)
            if color is not None:
                out[slot] = color
        return ThemeColorTable(MappingProxyType(out))


def default_theme_table() -> ThemeColorTable:
    return ThemeColorTable(
        MappingProxyType({k: ResolvedColor.from_hex(v) for k, v in DEFAULT_SCHEME.items()})
    )


def _scheme_literal(slot_el: Any) -> ResolvedColor | None:
    srgb = find_descendant(slot_el, "srgbClr")
    if srgb is not None and attr(srgb, "val"):
        return _hex_color(attr(srgb, "val"))
    sysc = find_descendant(slot_el, "sysClr")
    if sysc is not None and attr(sysc, "lastClr"):
        return _hex_color(attr(sysc, "lastClr"))
    return None


def build_theme_table(theme_xml: Any | None) -> ThemeColorTable:
    """Scheme-color table from a theme root (or a clrScheme element). Never fails."""
    base = default_theme_table()
    if theme_xml is None:
        return base
    scheme = theme_xml if local_name(theme_xml) == "clrScheme" else find_descendant(theme_xml, "clrScheme")
    if scheme is None:
        return base

    colors = dict(base.colors)
    found: set[str] = set()
    for slot_el in children(scheme):
        slot = local_name(slot_el)
        color = _scheme_literal(slot_el)
        if color is not None:
            colors[slot] = color
            found.add(slot)
    for alias, target in SLOT_ALIASES.items():
        if target in found:
            colors[alias] = colors[target]
    return ThemeColorTable(MappingProxyType(colors))


@dataclass(frozen=True)
class Theme:
    """Theme colors plus the fill style matrix (fillStyleLst / bgFillStyleLst)."""

    colors: ThemeColorTable
    fill_styles: tuple[Any, ...] = ()
    bg_fill_styles: tuple[Any, ...] = ()

    def style_fill(self, idx: int) -> Any | None:
        """Fill element for a style matrix index: 1..999 fills, 1001.. backgrounds."""
        if 1 <= idx <= len(self.fill_styles):
            return self.fill_styles[idx - 1]
        if idx >= 1001 and idx - 1001 < len(self.bg_fill_styles):
            return self.bg_fill_styles[idx - 1001]
        return None


def build_theme(theme_xml: Any | None) -> Theme:
    colors = build_theme_table(theme_xml)
    if theme_xml is None:
        return Theme(colors)
    fmt = find_descendant(theme_xml, "fmtScheme")
    return Theme(
        colors=colors,
        fill_styles=tuple(children(find_child(fmt, "fillStyleLst"))),
        bg_fill_styles=tuple(children(find_child(fmt, "bgFillStyleLst"))),
    )


# ---------------------------------------------------------------------------
# Color chain
# ---------------------------------------------------------------------------


def _fraction(el: Any, name: str) -> float | None:
    mod = find_child(el, name)
    if mod is None:
        return None
    raw = attr(mod, "val").strip()
    try:
        if raw.endswith("%"):
            return float(raw[:-1]) / 100.0
        return int(raw) / 100000.0
    except ValueError:
        logger.debug("ignoring malformed %s val=%r", name, raw)
        return None


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else v


def _channel(v: float) -> int:
    return max(0, min(255, int(v + 0.5)))


def find_color_element(el: Any) -> Any | None:
    """The color choice element at or under `el`, in srgb/scheme/sys/preset priority."""
    if el is None:
        return None
    if local_name(el) in COLOR_KINDS:
        return el
    for kind in COLOR_KINDS:
        found = find_descendant(el, kind)
        if found is not None:
            return found
    return None


def base_color(
    color_el: Any,
    table: ThemeColorTable,
    placeholder: ResolvedColor | None = None,
) -> ResolvedColor | None:
    kind = local_name(color_el)
    if kind == "srgbClr":
        return _hex_color(attr(color_el, "val"))
    if kind == "schemeClr":
        val = attr(color_el, "val")
        if val == "phClr":
            return placeholder
        return table.lookup(val)
    if kind == "sysClr":
        last = attr(color_el, "lastClr")
        if last:
            return _hex_color(last)
        known = SYSTEM_COLORS.get(attr(color_el, "val"))
        return ResolvedColor.from_hex(known) if known else None
    if kind == "prstClr":
        known = PRESET_COLORS.get(attr(color_el, "val").lower())
        return ResolvedColor.from_hex(known) if known else None
    return None


def apply_color_transforms(base: ResolvedColor, color_el: Any) -> ResolvedColor:
    r, g, b = float(base.r), float(base.g), float(base.b)

    alpha = base.alpha
    absolute = _fraction(color_el, "alpha")
    if absolute is not None:
        alpha = absolute
    alpha_mod = _fraction(color_el, "alphaMod")
    if alpha_mod is not None:
        alpha *= alpha_mod
    alpha_off = _fraction(color_el, "alphaOff")
    if alpha_off is not None:
        alpha += alpha_off

    lum_mod = _fraction(color_el, "lumMod")
    lum_off = _fraction(color_el, "lumOff")
    if lum_mod is not None or lum_off is not None:
        h, l, s = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
        if lum_mod is not None:
            l *= lum_mod
        if lum_off is not None:
            l += lum_off
        r, g, b = (c * 255.0 for c in colorsys.hls_to_rgb(h, _clamp01(l), s))

    tint = _fraction(color_el, "tint")
    if tint is not None:
        t = _clamp01(tint)
        r, g, b = r + (255.0 - r) * t, g + (255.0 - g) * t, b + (255.0 - b) * t

    shade = _fraction(color_el, "shade")
    if shade is not None:
        s = _clamp01(shade)
        r, g, b = r * (1.0 - s), g * (1.0 - s), b * (1.0 - s)

    return ResolvedColor(_channel(r), _channel(g), _channel(b), round(_clamp01(alpha), 6))


def resolve_color(
    el: Any,
    table: ThemeColorTable,
    placeholder: ResolvedColor | None = None,
) -> ResolvedColor | None:
    """Resolve the color at or under `el`; None means "no color" (transparent).

    `placeholder` stands in for schemeClr val="phClr" inside theme style fills.
    """
    color_el = find_color_element(el)
    if color_el is None:
        return None
    base = base_color(color_el, table, placeholder)
    if base is None:
        logger.debug("unresolvable %s val=%r", local_name(color_el), attr(color_el, "val"))
        return None
    return apply_color_transforms(base, color_el)
