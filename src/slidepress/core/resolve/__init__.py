"""Presentation resolution engine.

Public API:

    resolve_presentation(data_or_package, config=None, *, workers=None) -> list[SlideRenderModel]
    resolve_file(path, config=None, *, workers=None) -> list[SlideRenderModel]

Keep this module a thin re-export layer so callers can import a stable path:

    from slidepress.core.resolve import resolve_presentation
"""

from __future__ import annotations

from slidepress.core.resolve.engine import resolve_file, resolve_presentation
from slidepress.core.resolve.model import SlideRenderModel

__all__ = [
    "SlideRenderModel",
    "resolve_file",
    "resolve_presentation",
]
