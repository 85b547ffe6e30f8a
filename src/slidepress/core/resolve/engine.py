"""
engine.py — Package → ordered list of SlideRenderModel.

Shared state (Package, ThemeSet, SlideDimensions, config) is built once and
only read afterwards, so slides can be resolved on a thread pool. Output order
is always the numeric slide order, whatever order the workers finish in.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from slidepress.core.config import ResolverConfig
from slidepress.core.errors import (
    EntryNotFound,
    MalformedPart,
    NoSlidesFound,
    PartialResolutionLoss,
)
from slidepress.core.package.archive import Package
from slidepress.core.package.xmlq import find_descendant, int_attr
from slidepress.core.resolve.inherit import ThemeSet, load_chain, load_themes, resolve_background
from slidepress.core.resolve.model import WHITE, SlideDimensions, SlideRenderModel, SolidFill
from slidepress.core.resolve.shapes import build_draw_order
from slidepress.core.resolve.units import emu_to_px

logger = logging.getLogger(__name__)

PRESENTATION_PART = "ppt/presentation.xml"


def read_slide_dimensions(package: Package, config: ResolverConfig | None = None) -> SlideDimensions:
    cfg = config or ResolverConfig()
    default = SlideDimensions(cfg.default_width_px, cfg.default_height_px)
    try:
        root = package.xml(PRESENTATION_PART)
    except (EntryNotFound, MalformedPart) as e:
        logger.debug("slide size defaulted: %s", e)
        return default
    sld_sz = find_descendant(root, "sldSz")
    try:
        cx = int_attr(sld_sz, "cx", 0) or 0
        cy = int_attr(sld_sz, "cy", 0) or 0
    except PartialResolutionLoss as e:
        logger.debug("slide size defaulted: %s", e)
        return default
    if cx <= 0 or cy <= 0:
        return default
    return SlideDimensions(emu_to_px(cx), emu_to_px(cy))


def blank_slide(index: int, part_name: str, dims: SlideDimensions, reason: str) -> SlideRenderModel:
    return SlideRenderModel(
        index=index,
        part_name=part_name,
        width=dims.width_px,
        height=dims.height_px,
        background=SolidFill(WHITE),
        losses=(reason,),
    )


def resolve_slide(
    package: Package,
    part_name: str,
    index: int,
    *,
    dims: SlideDimensions,
    themes: ThemeSet,
    config: ResolverConfig,
) -> SlideRenderModel:
    """Resolve one slide. Only a missing or unparseable slide part degrades it to blank."""
    try:
        root = package.xml(part_name)
    except (EntryNotFound, MalformedPart) as e:
        logger.warning("[slide %d] %s; emitting blank slide", index, e)
        return blank_slide(index, part_name, dims, str(e))

    losses: list[str] = []
    chain = load_chain(package, part_name, root, themes, config, losses)
    background = resolve_background(chain, dims)
    draw_order = build_draw_order(root, chain.slide.ctx, chain)
    if losses:
        logger.debug("[slide %d] %d partial resolution loss(es)", index, len(losses))
    return SlideRenderModel(
        index=index,
        part_name=part_name,
        width=dims.width_px,
        height=dims.height_px,
        background=background,
        draw_order=tuple(draw_order),
        losses=tuple(losses),
    )


def resolve_presentation(
    source: bytes | Package,
    config: ResolverConfig | None = None,
    *,
    workers: int | None = None,
) -> list[SlideRenderModel]:
    """All slides of a package, in presentation order.

    Raises MalformedPackage or NoSlidesFound; nothing else is surfaced.
    """
    cfg = config or ResolverConfig()
    package = source if isinstance(source, Package) else Package.from_bytes(source)
    slide_parts = package.slide_parts()
    if not slide_parts:
        raise NoSlidesFound("package contains no slides")

    dims = read_slide_dimensions(package, cfg)
    themes = load_themes(package)
    total = len(slide_parts)

    def _one(job: tuple[int, str]) -> SlideRenderModel:
        index, part_name = job
        logger.info("[slide %d/%d] %s", index, total, part_name)
        return resolve_slide(package, part_name, index, dims=dims, themes=themes, config=cfg)

    jobs = list(enumerate(slide_parts, start=1))
    n_workers = cfg.workers if workers is None else workers
    if n_workers > 1 and total > 1:
        with ThreadPoolExecutor(max_workers=min(n_workers, total)) as pool:
            return list(pool.map(_one, jobs))
    return [_one(job) for job in jobs]


def resolve_file(
    path: str | Path,
    config: ResolverConfig | None = None,
    *,
    workers: int | None = None,
) -> list[SlideRenderModel]:
    return resolve_presentation(Package.open(path), config, workers=workers)
