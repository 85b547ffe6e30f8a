"""
model.py — Render model types.

Everything in here is pixel-space and format-free: once a SlideRenderModel is
built it carries no EMU values, no theme indirection and no package paths
beyond the decoded media bytes.

Variants are closed sets of frozen dataclasses (FillSpec, ShapeNode,
DrawPrimitive); consumers dispatch with isinstance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from slidepress.core.package.archive import MediaRef


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedColor:
    r: int
    g: int
    b: int
    alpha: float = 1.0

    @classmethod
    def from_hex(cls, value: str) -> "ResolvedColor":
        v = value.strip().lstrip("#")
        if len(v) != 6:
            raise ValueError(f"expected RRGGBB, got {value!r}")
        n = int(v, 16)
        return cls((n >> 16) & 255, (n >> 8) & 255, n & 255)

    @property
    def hex(self) -> str:
        return f"{self.r:02X}{self.g:02X}{self.b:02X}"

    @property
    def rgb01(self) -> tuple[float, float, float]:
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0)


WHITE = ResolvedColor(255, 255, 255)
BLACK = ResolvedColor(0, 0, 0)


# ---------------------------------------------------------------------------
# Fill
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoFill:
    pass


@dataclass(frozen=True)
class SolidFill:
    color: ResolvedColor


@dataclass(frozen=True)
class GradientStop:
    offset: float   # percent, 0..100
    color: ResolvedColor


@dataclass(frozen=True)
class GradientFill:
    stops: tuple[GradientStop, ...]
    angle: float = 90.0   # degrees, 90 = top to bottom


@dataclass(frozen=True)
class ImageFill:
    media: MediaRef


FillSpec = Union[NoFill, SolidFill, GradientFill, ImageFill]


def is_visible_fill(fill: FillSpec | None) -> bool:
    return fill is not None and not isinstance(fill, NoFill)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SlideDimensions:
    width_px: float
    height_px: float


@dataclass(frozen=True)
class Transform2D:
    """Maps a container's child coordinate space to slide pixels."""

    offset_x: float = 0.0
    offset_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0


IDENTITY = Transform2D()


@dataclass(frozen=True)
class Placement:
    """An absolute pixel rect; rotation applies around the rect's own center."""

    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0

    @property
    def has_area(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextRun:
    text: str
    font_size_px: float
    color: ResolvedColor | None = None   # None: inherit the ambient text color
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class Paragraph:
    items: tuple[Union[TextRun, LineBreak], ...] = ()
    align: str = "left"   # left | center | right

    @property
    def runs(self) -> list[TextRun]:
        return [i for i in self.items if isinstance(i, TextRun)]

    @property
    def text(self) -> str:
        return "".join(i.text if isinstance(i, TextRun) else "\n" for i in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


# ---------------------------------------------------------------------------
# Shape tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Group:
    """Children already carry the group's composed transform in their placements."""

    children: tuple["ShapeNode", ...]


@dataclass(frozen=True)
class Picture:
    placement: Placement
    media: MediaRef


@dataclass(frozen=True)
class Shape:
    placement: Placement
    fill: FillSpec | None = None
    paragraphs: tuple[Paragraph, ...] = ()
    anchor: str = "top"   # top | center | bottom
    has_text_body: bool = False


ShapeNode = Union[Group, Picture, Shape]


# ---------------------------------------------------------------------------
# Draw primitives
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilledRect:
    rect: Placement
    fill: FillSpec


@dataclass(frozen=True)
class PlacedImage:
    rect: Placement
    media: MediaRef


@dataclass(frozen=True)
class TextBlock:
    rect: Placement
    paragraphs: tuple[Paragraph, ...]
    anchor: str = "top"

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.paragraphs)


DrawPrimitive = Union[FilledRect, PlacedImage, TextBlock]


@dataclass(frozen=True)
class SlideRenderModel:
    index: int              # 1-based presentation position
    part_name: str
    width: float
    height: float
    background: FillSpec
    draw_order: tuple[DrawPrimitive, ...] = ()
    losses: tuple[str, ...] = field(default=(), compare=False)

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [p for p in self.draw_order if isinstance(p, TextBlock)]
