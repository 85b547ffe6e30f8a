"""Render-model consumers: PDF output and JSON dump.

Public API:

    render_pdf(models, out_path, config=None) -> Path
    dump_models(models, out_path, source_path=None) -> list[str]   # schema errors, empty on success
"""

from __future__ import annotations

from slidepress.core.render.model_json import build_document, dump_models, validate_document
from slidepress.core.render.pdf_writer import RasterPage, rasterize, render_pdf, write_pdf

__all__ = [
    "RasterPage",
    "build_document",
    "dump_models",
    "rasterize",
    "render_pdf",
    "validate_document",
    "write_pdf",
]
