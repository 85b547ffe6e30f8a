from __future__ import annotations

import hashlib
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

from slidepress.core.config import SCHEMA_DIR
from slidepress.core.package.archive import MediaRef
from slidepress.core.resolve.model import (
    FilledRect,
    FillSpec,
    GradientFill,
    ImageFill,
    LineBreak,
    NoFill,
    Paragraph,
    PlacedImage,
    Placement,
    ResolvedColor,
    SlideRenderModel,
    SolidFill,
    TextBlock,
)
from slidepress.core.utils.schema_validate import validate_against_schema

SCHEMA_VERSION = "0.1"
RENDER_MODEL_SCHEMA = SCHEMA_DIR / "render_model.schema.json"


def _slugify_ascii(name: str) -> str:
    s = name.strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^a-zA-Z0-9_\-]", "_", s)
    s = re.sub(r"_+", "_", s).strip("_")
    if not s:
        s = "document"
    return s[:64]


def _round(v: float) -> float:
    return round(float(v), 3)


def media_info(media: MediaRef) -> Dict[str, Any]:
    """Stable identifiers for embedded media; the bytes themselves are not dumped."""
    return {
        "name": media.name,
        "content_type": media.content_type,
        "byte_size": len(media.data),
        "sha256": hashlib.sha256(media.data).hexdigest(),
    }


def color_to_dict(c: ResolvedColor) -> Dict[str, Any]:
    return {"rgb": c.hex, "alpha": _round(c.alpha)}


def placement_to_dict(p: Placement) -> Dict[str, Any]:
    out = {"x": _round(p.x), "y": _round(p.y), "w": _round(p.width), "h": _round(p.height)}
    if p.rotation:
        out["rotation"] = _round(p.rotation)
    return out


def fill_to_dict(fill: FillSpec) -> Dict[str, Any]:
    if isinstance(fill, SolidFill):
        return {"type": "solid", "color": color_to_dict(fill.color)}
    if isinstance(fill, GradientFill):
        return {
            "type": "gradient",
            "angle": _round(fill.angle),
            "stops": [{"offset": _round(s.offset), "color": color_to_dict(s.color)} for s in fill.stops],
        }
    if isinstance(fill, ImageFill):
        return {"type": "image", "media": media_info(fill.media)}
    if isinstance(fill, NoFill):
        return {"type": "none"}
    raise TypeError(f"unknown fill: {type(fill).__name__}")


def paragraph_to_dict(p: Paragraph) -> Dict[str, Any]:
    items: List[Dict[str, Any]] = []
    for item in p.items:
        if isinstance(item, LineBreak):
            items.append({"type": "break"})
            continue
        run: Dict[str, Any] = {
            "type": "run",
            "text": item.text,
            "font_size_px": _round(item.font_size_px),
            "bold": item.bold,
            "italic": item.italic,
            "underline": item.underline,
        }
        if item.color is not None:
            run["color"] = color_to_dict(item.color)
        items.append(run)
    return {"align": p.align, "items": items}


def primitive_to_dict(prim: Any) -> Dict[str, Any]:
    if isinstance(prim, FilledRect):
        return {"kind": "rect", "rect": placement_to_dict(prim.rect), "fill": fill_to_dict(prim.fill)}
    if isinstance(prim, PlacedImage):
        return {"kind": "image", "rect": placement_to_dict(prim.rect), "media": media_info(prim.media)}
    if isinstance(prim, TextBlock):
        return {
            "kind": "text",
            "rect": placement_to_dict(prim.rect),
            "anchor": prim.anchor,
            "paragraphs": [paragraph_to_dict(p) for p in prim.paragraphs],
        }
    raise TypeError(f"unknown draw primitive: {type(prim).__name__}")


def model_to_dict(model: SlideRenderModel) -> Dict[str, Any]:
    return {
        "index": model.index,
        "part_name": model.part_name,
        "width": _round(model.width),
        "height": _round(model.height),
        "background": fill_to_dict(model.background),
        "draw_order": [primitive_to_dict(p) for p in model.draw_order],
        "losses": list(model.losses),
    }


def build_document(models: Sequence[SlideRenderModel], source_path: str | Path | None = None) -> Dict[str, Any]:
    src = Path(source_path) if source_path is not None else None
    return {
        "schema_version": SCHEMA_VERSION,
        "document": {
            "document_id": _slugify_ascii(src.stem if src else ""),
            "source_path": str(src) if src else "",
            "slide_count": len(models),
        },
        "slides": [model_to_dict(m) for m in models],
    }


def validate_document(doc: Any) -> List[str]:
    return validate_against_schema(RENDER_MODEL_SCHEMA, doc)


def dump_models(
    models: Sequence[SlideRenderModel],
    out_path: str | Path,
    source_path: str | Path | None = None,
) -> List[str]:
    """Write the render-model document; nothing is written when it fails validation."""
    doc = build_document(models, source_path)
    errs = validate_document(doc)
    if errs:
        return errs
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
    return []
