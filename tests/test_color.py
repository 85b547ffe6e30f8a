"""
Tests for the theme color table and color computation chain (color.py).
"""

import colorsys

import pytest

from slidepress.core.package.xmlq import parse
from slidepress.core.resolve.color import (
    DEFAULT_SCHEME,
    build_theme,
    build_theme_table,
    default_theme_table,
    resolve_color,
)
from slidepress.core.resolve.model import ResolvedColor

from conftest import NS, theme_xml


def _color(inner: str):
    return parse(f"<a:solidFill {NS}>{inner}</a:solidFill>".encode())


def _resolve(inner: str, table=None, placeholder=None):
    return resolve_color(_color(inner), table or default_theme_table(), placeholder)


# ---------------------------------------------------------------------------
# Theme table
# ---------------------------------------------------------------------------

class TestThemeTable:
    def test_none_gives_defaults(self):
        table = build_theme_table(None)
        for slot, hex_value in DEFAULT_SCHEME.items():
            assert table.lookup(slot).hex == hex_value

    def test_theme_slots_override_defaults(self):
        table = build_theme_table(parse(theme_xml(accent1="112233").encode()))
        assert table.lookup("accent1").hex == "112233"
        # not declared by the test theme
        assert table.lookup("accent6").hex == DEFAULT_SCHEME["accent6"]

    def test_sys_color_uses_last_color(self):
        table = build_theme_table(parse(theme_xml(dk1="101010").encode()))
        assert table.lookup("dk1").hex == "101010"

    def test_usage_slots_alias_scheme_slots(self):
        table = build_theme_table(parse(theme_xml(dk1="101010", lt1="FAFAFA").encode()))
        assert table.lookup("tx1").hex == "101010"
        assert table.lookup("bg1").hex == "FAFAFA"
        assert table.lookup("tx2").hex == "44546A"

    def test_color_map_repoints_usage_slots(self):
        table = build_theme_table(parse(theme_xml(dk1="101010", lt1="FAFAFA").encode()))
        dark = table.with_color_map({"bg1": "dk1", "tx1": "lt1"})
        assert dark.lookup("bg1").hex == "101010"
        assert dark.lookup("tx1").hex == "FAFAFA"
        # source table untouched
        assert table.lookup("bg1").hex == "FAFAFA"

    def test_style_matrix(self):
        theme = build_theme(parse(theme_xml(
            fill_styles='<a:solidFill><a:schemeClr val="phClr"/></a:solidFill><a:noFill/>',
            bg_fill_styles='<a:solidFill><a:srgbClr val="ABCDEF"/></a:solidFill>',
        ).encode()))
        assert theme.style_fill(1).tag.endswith("solidFill")
        assert theme.style_fill(2).tag.endswith("noFill")
        assert theme.style_fill(1001).tag.endswith("solidFill")
        assert theme.style_fill(0) is None
        assert theme.style_fill(3) is None
        assert theme.style_fill(1002) is None


# ---------------------------------------------------------------------------
# Base colors
# ---------------------------------------------------------------------------

class TestBaseColor:
    def test_literal_is_idempotent(self):
        c = _resolve('<a:srgbClr val="3A7BD5"/>')
        assert c == ResolvedColor(0x3A, 0x7B, 0xD5, 1.0)

    def test_scheme_lookup(self):
        assert _resolve('<a:schemeClr val="accent2"/>').hex == "ED7D31"

    def test_scheme_alias(self):
        assert _resolve('<a:schemeClr val="tx1"/>').hex == "000000"

    def test_unknown_scheme_slot(self):
        assert _resolve('<a:schemeClr val="nope"/>') is None

    def test_preset_case_insensitive(self):
        assert _resolve('<a:prstClr val="Red"/>').hex == "FF0000"

    def test_unknown_preset(self):
        assert _resolve('<a:prstClr val="notAColor"/>') is None

    def test_system_color_without_last_color(self):
        assert _resolve('<a:sysClr val="window"/>').hex == "FFFFFF"

    def test_no_color_child(self):
        assert _resolve("") is None

    def test_srgb_wins_over_scheme(self):
        c = _resolve('<a:schemeClr val="accent1"/><a:srgbClr val="00FF00"/>')
        assert c.hex == "00FF00"

    def test_placeholder_color(self):
        ph = ResolvedColor(10, 20, 30)
        assert _resolve('<a:schemeClr val="phClr"/>', placeholder=ph) == ph
        assert _resolve('<a:schemeClr val="phClr"/>') is None

    def test_malformed_literal(self):
        assert _resolve('<a:srgbClr val="XYZ"/>') is None


# ---------------------------------------------------------------------------
# Modifiers
# ---------------------------------------------------------------------------

class TestModifiers:
    def test_tint_full_is_white(self):
        assert _resolve('<a:srgbClr val="3A7BD5"><a:tint val="100000"/></a:srgbClr>').hex == "FFFFFF"

    def test_tint_half(self):
        c = _resolve('<a:srgbClr val="000000"><a:tint val="50000"/></a:srgbClr>')
        assert (c.r, c.g, c.b) == (128, 128, 128)

    def test_shade_full_is_black(self):
        assert _resolve('<a:srgbClr val="3A7BD5"><a:shade val="100000"/></a:srgbClr>').hex == "000000"

    def test_shade_half(self):
        c = _resolve('<a:srgbClr val="FFFFFF"><a:shade val="50000"/></a:srgbClr>')
        assert (c.r, c.g, c.b) == (128, 128, 128)

    def test_lum_mod_zero_is_black(self):
        c = _resolve('<a:srgbClr val="3A7BD5"><a:lumMod val="0"/></a:srgbClr>')
        _, lightness, _ = colorsys.rgb_to_hls(*c.rgb01)
        assert lightness == 0.0

    def test_lum_mod_and_off(self):
        # white at 50% lightness plus 25% offset -> lightness 0.75, gray
        c = _resolve('<a:srgbClr val="FFFFFF"><a:lumMod val="50000"/><a:lumOff val="25000"/></a:srgbClr>')
        assert (c.r, c.g, c.b) == (191, 191, 191)

    def test_lum_off_clamps(self):
        c = _resolve('<a:srgbClr val="808080"><a:lumOff val="90000"/></a:srgbClr>')
        assert c.hex == "FFFFFF"

    def test_alpha(self):
        c = _resolve('<a:srgbClr val="FF0000"><a:alpha val="40000"/></a:srgbClr>')
        assert c.alpha == pytest.approx(0.4)
        assert c.hex == "FF0000"

    def test_alpha_mod_and_off(self):
        c = _resolve(
            '<a:srgbClr val="FF0000"><a:alpha val="50000"/><a:alphaMod val="50000"/>'
            '<a:alphaOff val="10000"/></a:srgbClr>'
        )
        assert c.alpha == pytest.approx(0.35)

    def test_percent_values(self):
        c = _resolve('<a:srgbClr val="000000"><a:tint val="50%"/></a:srgbClr>')
        assert (c.r, c.g, c.b) == (128, 128, 128)

    def test_fixed_order_regardless_of_document_order(self):
        # shade listed first still applies after tint: tint(1) -> white, shade(0.5) -> gray
        c = _resolve('<a:srgbClr val="000000"><a:shade val="50000"/><a:tint val="100000"/></a:srgbClr>')
        assert (c.r, c.g, c.b) == (128, 128, 128)

    def test_modifiers_on_scheme_color(self):
        c = _resolve('<a:schemeClr val="bg1"><a:lumMod val="50000"/></a:schemeClr>')
        assert (c.r, c.g, c.b) == (128, 128, 128)
