"""
Pytest configuration for slidepress tests.

Provides an in-memory PPTX builder: packages are assembled from small XML
snippets so every test states exactly which parts exist. No binary fixtures.
"""
from __future__ import annotations

import io
import zipfile

import fitz
import pytest

NS = (
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main" '
    'xmlns:mc="http://schemas.openxmlformats.org/markup-compatibility/2006"'
)
REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
RT = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/"

EMU = 9525  # one pixel at 96 dpi
DEFAULT_CLR_MAP = (
    '<p:clrMap bg1="lt1" tx1="dk1" bg2="lt2" tx2="dk2" accent1="accent1" accent2="accent2" '
    'accent3="accent3" accent4="accent4" accent5="accent5" accent6="accent6" '
    'hlink="hlink" folHlink="folHlink"/>'
)


def px(v: float) -> int:
    return int(round(v * EMU))


# ---------------------------------------------------------------------------
# XML snippets
# ---------------------------------------------------------------------------


def solid(hex_or_inner: str) -> str:
    inner = hex_or_inner if hex_or_inner.startswith("<") else f'<a:srgbClr val="{hex_or_inner}"/>'
    return f"<a:solidFill>{inner}</a:solidFill>"


def xfrm(x: float, y: float, w: float, h: float, *, rot: int = 0, tag: str = "a:xfrm") -> str:
    rot_attr = f' rot="{rot}"' if rot else ""
    return f'<{tag}{rot_attr}><a:off x="{px(x)}" y="{px(y)}"/><a:ext cx="{px(w)}" cy="{px(h)}"/></{tag}>'


def run(text: str, *, sz: int | None = None, b: bool = False, i: bool = False,
        u: str | None = None, color: str | None = None) -> str:
    attrs = ' lang="en-US"'
    if sz is not None:
        attrs += f' sz="{sz}"'
    if b:
        attrs += ' b="1"'
    if i:
        attrs += ' i="1"'
    if u is not None:
        attrs += f' u="{u}"'
    fill = solid(color) if color else ""
    return f"<a:r><a:rPr{attrs}>{fill}</a:rPr><a:t>{text}</a:t></a:r>"


def para(*items: str, algn: str | None = None) -> str:
    ppr = f'<a:pPr algn="{algn}"/>' if algn else ""
    return f"<a:p>{ppr}{''.join(items)}</a:p>"


def sp(
    x: float = 0,
    y: float = 0,
    w: float = 100,
    h: float = 50,
    *,
    fill: str = "",
    paragraphs: list[str] | None = None,
    anchor: str | None = None,
    ph: str = "",
    style: str = "",
    has_xfrm: bool = True,
    rot: int = 0,
    shape_id: int = 2,
) -> str:
    nv_pr = f"<p:nvPr>{ph}</p:nvPr>"
    geo = xfrm(x, y, w, h, rot=rot) if has_xfrm else ""
    tx = ""
    if paragraphs is not None:
        body_attr = f' anchor="{anchor}"' if anchor else ""
        tx = f"<p:txBody><a:bodyPr{body_attr}/><a:lstStyle/>{''.join(paragraphs)}</p:txBody>"
    return (
        f'<p:sp><p:nvSpPr><p:cNvPr id="{shape_id}" name="Shape {shape_id}"/><p:cNvSpPr/>{nv_pr}</p:nvSpPr>'
        f'<p:spPr>{geo}<a:prstGeom prst="rect"><a:avLst/></a:prstGeom>{fill}</p:spPr>'
        f"{style}{tx}</p:sp>"
    )


def pic(x: float, y: float, w: float, h: float, rid: str, *, rot: int = 0) -> str:
    return (
        '<p:pic><p:nvPicPr><p:cNvPr id="9" name="Picture"/><p:cNvPicPr/><p:nvPr/></p:nvPicPr>'
        f'<p:blipFill><a:blip r:embed="{rid}"/><a:stretch><a:fillRect/></a:stretch></p:blipFill>'
        f'<p:spPr>{xfrm(x, y, w, h, rot=rot)}<a:prstGeom prst="rect"><a:avLst/></a:prstGeom></p:spPr></p:pic>'
    )


def grp(x: float, y: float, w: float, h: float, ch_x: float, ch_y: float, ch_w: float, ch_h: float, *inner: str) -> str:
    geo = (
        f'<a:xfrm><a:off x="{px(x)}" y="{px(y)}"/><a:ext cx="{px(w)}" cy="{px(h)}"/>'
        f'<a:chOff x="{px(ch_x)}" y="{px(ch_y)}"/><a:chExt cx="{px(ch_w)}" cy="{px(ch_h)}"/></a:xfrm>'
    )
    return (
        '<p:grpSp><p:nvGrpSpPr><p:cNvPr id="20" name="Group"/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        f"<p:grpSpPr>{geo}</p:grpSpPr>{''.join(inner)}</p:grpSp>"
    )


def bg_pr(fill: str) -> str:
    return f"<p:bg><p:bgPr>{fill}<a:effectLst/></p:bgPr></p:bg>"


def bg_ref(idx: int, color: str) -> str:
    inner = color if color.startswith("<") else f'<a:srgbClr val="{color}"/>'
    return f'<p:bg><p:bgRef idx="{idx}">{inner}</p:bgRef></p:bg>'


def _c_sld(shapes: str, bg: str) -> str:
    return (
        f"<p:cSld>{bg}<p:spTree><p:nvGrpSpPr><p:cNvPr id=\"1\" name=\"\"/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>"
        f"<p:grpSpPr/>{shapes}</p:spTree></p:cSld>"
    )


def slide_xml(*shapes: str, bg: str = "") -> str:
    return f"<p:sld {NS}>{_c_sld(''.join(shapes), bg)}</p:sld>"


def layout_xml(*shapes: str, bg: str = "") -> str:
    return f"<p:sldLayout {NS}>{_c_sld(''.join(shapes), bg)}</p:sldLayout>"


def master_xml(*shapes: str, bg: str = "", clr_map: str = DEFAULT_CLR_MAP) -> str:
    return f"<p:sldMaster {NS}>{_c_sld(''.join(shapes), bg)}{clr_map}</p:sldMaster>"


def theme_xml(*, accent1: str = "4472C4", dk1: str = "000000", lt1: str = "FFFFFF",
              fill_styles: str = "", bg_fill_styles: str = "") -> str:
    return (
        f'<a:theme {NS} name="Test"><a:themeElements>'
        '<a:clrScheme name="Test">'
        f'<a:dk1><a:sysClr val="windowText" lastClr="{dk1}"/></a:dk1>'
        f'<a:lt1><a:sysClr val="window" lastClr="{lt1}"/></a:lt1>'
        '<a:dk2><a:srgbClr val="44546A"/></a:dk2>'
        '<a:lt2><a:srgbClr val="E7E6E6"/></a:lt2>'
        f'<a:accent1><a:srgbClr val="{accent1}"/></a:accent1>'
        '<a:accent2><a:srgbClr val="ED7D31"/></a:accent2>'
        "</a:clrScheme>"
        '<a:fontScheme name="Test"/>'
        f'<a:fmtScheme name="Test"><a:fillStyleLst>{fill_styles}</a:fillStyleLst>'
        f"<a:bgFillStyleLst>{bg_fill_styles}</a:bgFillStyleLst></a:fmtScheme>"
        "</a:themeElements></a:theme>"
    )


def rels_xml(rels: list[tuple[str, str, str]]) -> str:
    body = "".join(f'<Relationship Id="{rid}" Type="{RT}{kind}" Target="{target}"/>' for rid, kind, target in rels)
    return f'<Relationships xmlns="{REL_NS}">{body}</Relationships>'


# ---------------------------------------------------------------------------
# Package builder
# ---------------------------------------------------------------------------


class PptxBuilder:
    """One theme, one master, one layout by default; slides are added in order."""

    def __init__(self, width_px: float = 960, height_px: float = 540) -> None:
        self.entries: dict[str, bytes] = {}
        self._slides = 0
        self.set_presentation(width_px, height_px)
        self.set_theme(theme_xml())
        self.set_master(master_xml())
        self.set_layout(layout_xml())

    def put(self, name: str, xml: str | bytes) -> "PptxBuilder":
        self.entries[name] = xml.encode("utf-8") if isinstance(xml, str) else xml
        return self

    def set_presentation(self, width_px: float, height_px: float) -> "PptxBuilder":
        return self.put(
            "ppt/presentation.xml",
            f'<p:presentation {NS}><p:sldSz cx="{px(width_px)}" cy="{px(height_px)}"/></p:presentation>',
        )

    def set_theme(self, xml: str) -> "PptxBuilder":
        return self.put("ppt/theme/theme1.xml", xml)

    def set_master(self, xml: str) -> "PptxBuilder":
        self.put("ppt/slideMasters/slideMaster1.xml", xml)
        return self.put(
            "ppt/slideMasters/_rels/slideMaster1.xml.rels",
            rels_xml([("rId1", "slideLayout", "../slideLayouts/slideLayout1.xml"), ("rId2", "theme", "../theme/theme1.xml")]),
        )

    def set_layout(self, xml: str) -> "PptxBuilder":
        self.put("ppt/slideLayouts/slideLayout1.xml", xml)
        return self.put(
            "ppt/slideLayouts/_rels/slideLayout1.xml.rels",
            rels_xml([("rId1", "slideMaster", "../slideMasters/slideMaster1.xml")]),
        )

    def add_media(self, name: str, data: bytes) -> "PptxBuilder":
        return self.put(f"ppt/media/{name}", data)

    def add_slide(self, xml: str, *, images: dict[str, str] | None = None, number: int | None = None,
                  layout: bool = True) -> int:
        self._slides += 1
        n = number if number is not None else self._slides
        rels: list[tuple[str, str, str]] = []
        if layout:
            rels.append(("rIdLayout", "slideLayout", "../slideLayouts/slideLayout1.xml"))
        for rid, media_name in (images or {}).items():
            rels.append((rid, "image", f"../media/{media_name}"))
        self.put(f"ppt/slides/slide{n}.xml", xml)
        self.put(f"ppt/slides/_rels/slide{n}.xml.rels", rels_xml(rels))
        return n

    def build(self) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, data in self.entries.items():
                zf.writestr(name, data)
        return buf.getvalue()


def png_bytes(rgb: tuple[int, int, int] = (0, 0, 255), size: int = 8) -> bytes:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, size, size), False)
    pix.set_rect(pix.irect, rgb)
    return pix.tobytes("png")


@pytest.fixture
def builder() -> PptxBuilder:
    return PptxBuilder()


@pytest.fixture
def png() -> bytes:
    return png_bytes()
