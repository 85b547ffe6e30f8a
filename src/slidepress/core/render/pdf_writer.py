"""
pdf_writer.py — Rasterizer and PDF output writer for SlideRenderModels (PyMuPDF).

  rasterize(model, *, scale, font_family) → fitz.Pixmap
      Paints the model onto a scratch page whose unit is one slide pixel, then
      renders it at `scale` raster pixels per slide pixel.
  write_pdf(pages, out_path, *, image_format, jpeg_quality) → bytes
      One output page per RasterPage, sized at 96 px per inch (0.75 pt per px).
  render_pdf(models, out_path, config) → Path
      Both of the above; a slide that fails to rasterize becomes an error page.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

import fitz  # PyMuPDF

from slidepress.core.config import RenderConfig
from slidepress.core.resolve.model import (
    FilledRect,
    FillSpec,
    GradientFill,
    ImageFill,
    LineBreak,
    Paragraph,
    PlacedImage,
    Placement,
    ResolvedColor,
    SlideRenderModel,
    SolidFill,
    TextBlock,
)

logger = logging.getLogger(__name__)

PT_PER_PX = 72.0 / 96.0
GRADIENT_BANDS = 64
TEXT_PAD_X = 8.0
TEXT_PAD_Y = 4.0
ERROR_FONT_SIZE = 20.0
ERROR_MARGIN_PT = 8.0

_CSS = """
p{margin:0;padding:0;line-height:1.3}
p.empty{font-size:9px}
"""


def _suppress_mupdf_noise() -> None:
    """Best-effort suppression of MuPDF stderr spam (version-tolerant)."""
    tools = getattr(fitz, "TOOLS", None)
    if tools is None:
        return

    for name in ("mupdf_display_errors", "mupdf_display_warnings"):
        fn = getattr(tools, name, None)
        if callable(fn):
            try:
                fn(False)
            except Exception:
                pass


def _rect(p: Placement) -> fitz.Rect:
    return fitz.Rect(p.x, p.y, p.right, p.bottom)


def _morph(p: Placement) -> tuple[fitz.Point, fitz.Matrix] | None:
    if not p.rotation:
        return None
    center = fitz.Point(p.x + p.width / 2.0, p.y + p.height / 2.0)
    return (center, fitz.Matrix(p.rotation))


def _quarter_turns(rotation: float) -> int:
    """Clockwise slide rotation → PyMuPDF's anticlockwise multiple of 90 (0 if not a right angle)."""
    nearest = round(rotation / 90.0) * 90
    if abs(nearest - rotation) > 0.5:
        return 0
    return int(-nearest) % 360


# ---------------------------------------------------------------------------
# Fills
# ---------------------------------------------------------------------------


def _color_at(fill: GradientFill, percent: float) -> ResolvedColor:
    stops = fill.stops
    if percent <= stops[0].offset:
        return stops[0].color
    for a, b in zip(stops, stops[1:]):
        if percent <= b.offset:
            span = b.offset - a.offset
            t = (percent - a.offset) / span if span > 0 else 1.0
            return ResolvedColor(
                int(a.color.r + (b.color.r - a.color.r) * t + 0.5),
                int(a.color.g + (b.color.g - a.color.g) * t + 0.5),
                int(a.color.b + (b.color.b - a.color.b) * t + 0.5),
                a.color.alpha + (b.color.alpha - a.color.alpha) * t,
            )
    return stops[-1].color


def _paint_solid(page: fitz.Page, rect: fitz.Rect, color: ResolvedColor, morph=None) -> None:
    shape = page.new_shape()
    shape.draw_rect(rect)
    shape.finish(width=0, color=None, fill=color.rgb01, fill_opacity=color.alpha, morph=morph)
    shape.commit()


def _paint_gradient(page: fitz.Page, rect: fitz.Rect, fill: GradientFill, morph=None) -> None:
    """Linear gradient approximated by flat bands along the dominant axis."""
    a = fill.angle % 360.0
    vertical = 45.0 <= a % 180.0 < 135.0
    reverse = 135.0 <= a < 315.0
    length = rect.height if vertical else rect.width
    step = length / GRADIENT_BANDS

    shape = page.new_shape()
    for i in range(GRADIENT_BANDS):
        pos = (i + 0.5) / GRADIENT_BANDS * 100.0
        color = _color_at(fill, 100.0 - pos if reverse else pos)
        lo = i * step
        hi = min(length, lo + step + 0.5)
        if vertical:
            band = fitz.Rect(rect.x0, rect.y0 + lo, rect.x1, rect.y0 + hi)
        else:
            band = fitz.Rect(rect.x0 + lo, rect.y0, rect.x0 + hi, rect.y1)
        shape.draw_rect(band)
        shape.finish(width=0, color=None, fill=color.rgb01, fill_opacity=color.alpha, morph=morph)
    shape.commit()


def _paint_image(page: fitz.Page, rect: fitz.Rect, data: bytes, name: str, rotation: float = 0.0) -> None:
    try:
        page.insert_image(rect, stream=data, keep_proportion=False, rotate=_quarter_turns(rotation))
    except Exception as e:
        # mupdf raises its own error classes; unsupported formats (emf/wmf) land here
        logger.warning("image %s not rendered: %s", name, e)


def paint_fill(page: fitz.Page, placement: Placement, fill: FillSpec | None) -> None:
    rect = _rect(placement)
    if isinstance(fill, SolidFill):
        _paint_solid(page, rect, fill.color, _morph(placement))
    elif isinstance(fill, GradientFill):
        _paint_gradient(page, rect, fill, _morph(placement))
    elif isinstance(fill, ImageFill):
        _paint_image(page, rect, fill.media.data, fill.media.name, placement.rotation)


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def paragraphs_html(paragraphs: Iterable[Paragraph]) -> str:
    out: list[str] = []
    for para in paragraphs:
        parts: list[str] = []
        for item in para.items:
            if isinstance(item, LineBreak):
                parts.append("<br/>")
                continue
            styles = [f"font-size:{item.font_size_px:.2f}px"]
            if item.color is not None:
                styles.append(f"color:#{item.color.hex}")
            if item.bold:
                styles.append("font-weight:bold")
            if item.italic:
                styles.append("font-style:italic")
            if item.underline:
                styles.append("text-decoration:underline")
            parts.append(f'<span style="{";".join(styles)}">{html.escape(item.text)}</span>')
        if parts:
            out.append(f'<p style="text-align:{para.align}">{"".join(parts)}</p>')
        else:
            out.append('<p class="empty">&nbsp;</p>')
    return "".join(out)


def _text_rect(p: Placement) -> fitz.Rect:
    r = _rect(p)
    if r.width > 2 * TEXT_PAD_X and r.height > 2 * TEXT_PAD_Y:
        r = fitz.Rect(r.x0 + TEXT_PAD_X, r.y0 + TEXT_PAD_Y, r.x1 - TEXT_PAD_X, r.y1 - TEXT_PAD_Y)
    return r


def _anchored(page: fitz.Page, rect: fitz.Rect, body: str, css: str, anchor: str) -> fitz.Rect:
    """Shift `rect` down by the unused height for center/bottom anchoring."""
    if anchor == "top":
        return rect
    scratch = fitz.open()
    try:
        probe = scratch.new_page(width=page.rect.width, height=page.rect.height)
        spare, _ = probe.insert_htmlbox(rect, body, css=css)
    finally:
        scratch.close()
    if spare <= 0:
        return rect
    shift = spare if anchor == "bottom" else spare / 2.0
    return fitz.Rect(rect.x0, rect.y0 + shift, rect.x1, rect.y1 + shift)


def paint_text(page: fitz.Page, block: TextBlock, *, font_family: str) -> None:
    body = paragraphs_html(block.paragraphs)
    css = _CSS + f"*{{font-family:{font_family}}}"
    rect = _anchored(page, _text_rect(block.rect), body, css, block.anchor)
    page.insert_htmlbox(rect, body, css=css, rotate=_quarter_turns(block.rect.rotation))


# ---------------------------------------------------------------------------
# Slides
# ---------------------------------------------------------------------------


def paint_slide(page: fitz.Page, model: SlideRenderModel, *, font_family: str) -> None:
    paint_fill(page, Placement(0.0, 0.0, model.width, model.height), model.background)
    for prim in model.draw_order:
        if isinstance(prim, FilledRect):
            paint_fill(page, prim.rect, prim.fill)
        elif isinstance(prim, PlacedImage):
            _paint_image(page, _rect(prim.rect), prim.media.data, prim.media.name, prim.rect.rotation)
        elif isinstance(prim, TextBlock):
            paint_text(page, prim, font_family=font_family)


def rasterize(model: SlideRenderModel, *, scale: float = 2.0, font_family: str = "sans-serif") -> fitz.Pixmap:
    doc = fitz.open()
    try:
        page = doc.new_page(width=model.width, height=model.height)
        paint_slide(page, model, font_family=font_family)
        return page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    finally:
        doc.close()


@dataclass(frozen=True)
class RasterPage:
    index: int
    width_px: float
    height_px: float
    pixmap: fitz.Pixmap | None = None   # None: rasterization failed


def _encode(pix: fitz.Pixmap, image_format: str, jpeg_quality: int) -> bytes:
    if image_format == "png":
        return pix.tobytes("png")
    return pix.tobytes("jpeg", jpg_quality=jpeg_quality)


def _error_page(page: fitz.Page, message: str) -> None:
    # shrink below the default size so the message fits narrow pages
    room = max(page.rect.width - 2 * ERROR_MARGIN_PT, 1.0)
    size = min(ERROR_FONT_SIZE, room / fitz.get_text_length(message, fontname="helv", fontsize=1))
    width = fitz.get_text_length(message, fontname="helv", fontsize=size)
    page.insert_text(
        fitz.Point((page.rect.width - width) / 2.0, (page.rect.height + size) / 2.0),
        message,
        fontname="helv",
        fontsize=size,
    )


def write_pdf(
    pages: Iterable[RasterPage],
    out_path: str | Path | None = None,
    *,
    image_format: str = "jpeg",
    jpeg_quality: int = 92,
) -> bytes:
    out = fitz.open()
    try:
        for pg in pages:
            page = out.new_page(width=pg.width_px * PT_PER_PX, height=pg.height_px * PT_PER_PX)
            if pg.pixmap is None:
                _error_page(page, f"Slide {pg.index} - Render Error")
                continue
            page.insert_image(page.rect, stream=_encode(pg.pixmap, image_format, jpeg_quality))
        if out.page_count == 0:
            raise ValueError("no pages to write")
        data = out.tobytes(garbage=3, deflate=True)
    finally:
        out.close()

    if out_path is not None:
        p = Path(out_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    return data


def _raster_pages(models: Iterable[SlideRenderModel], config: RenderConfig) -> Iterator[RasterPage]:
    for model in models:
        try:
            pix = rasterize(model, scale=config.scale, font_family=config.font_family)
        except Exception as e:
            logger.error("[slide %d] render error: %s", model.index, e)
            pix = None
        yield RasterPage(model.index, model.width, model.height, pix)


def render_pdf(
    models: Iterable[SlideRenderModel],
    out_path: str | Path,
    config: RenderConfig | None = None,
) -> Path:
    cfg = config or RenderConfig()
    _suppress_mupdf_noise()
    write_pdf(
        _raster_pages(models, cfg),
        out_path,
        image_format=cfg.image_format,
        jpeg_quality=cfg.jpeg_quality,
    )
    return Path(out_path)
