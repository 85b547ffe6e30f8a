"""
units.py — EMU → pixel conversion and nested group transform composition.

Child coordinates of a group are declared in the group's own child space
(chOff/chExt). Composition maps them into slide pixels root-to-leaf; rotation
is carried per node and never feeds into descendant offsets.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from slidepress.core.package.xmlq import find_child, int_attr
from slidepress.core.resolve.model import Placement, Transform2D

EMU_PER_INCH = 914400
PX_PER_INCH = 96
ROT_UNITS_PER_DEGREE = 60000


def emu_to_px(value: float) -> float:
    return value * PX_PER_INCH / EMU_PER_INCH


@dataclass(frozen=True)
class Xfrm:
    """Declared geometry of one node, still in EMU."""

    off_x: int = 0
    off_y: int = 0
    ext_cx: int = 0
    ext_cy: int = 0
    ch_off_x: int = 0
    ch_off_y: int = 0
    ch_ext_cx: int = 0
    ch_ext_cy: int = 0
    rot: int = 0            # 60000ths of a degree

    @property
    def rotation(self) -> float:
        return self.rot / ROT_UNITS_PER_DEGREE


def read_xfrm(el: Any) -> Xfrm | None:
    """Read an a:xfrm / p:xfrm element. Malformed numbers raise PartialResolutionLoss."""
    if el is None:
        return None
    off = find_child(el, "off")
    ext = find_child(el, "ext")
    ch_off = find_child(el, "chOff")
    ch_ext = find_child(el, "chExt")
    return Xfrm(
        off_x=int_attr(off, "x", 0) or 0,
        off_y=int_attr(off, "y", 0) or 0,
        ext_cx=int_attr(ext, "cx", 0) or 0,
        ext_cy=int_attr(ext, "cy", 0) or 0,
        ch_off_x=int_attr(ch_off, "x", 0) or 0,
        ch_off_y=int_attr(ch_off, "y", 0) or 0,
        ch_ext_cx=int_attr(ch_ext, "cx", 0) or 0,
        ch_ext_cy=int_attr(ch_ext, "cy", 0) or 0,
        rot=int_attr(el, "rot", 0) or 0,
    )


def compose_child_transform(parent: Transform2D, xfrm: Xfrm) -> Placement:
    """Absolute pixel rect of a node whose geometry is declared in `parent`'s space."""
    return Placement(
        x=parent.offset_x + emu_to_px(xfrm.off_x) * parent.scale_x,
        y=parent.offset_y + emu_to_px(xfrm.off_y) * parent.scale_y,
        width=emu_to_px(xfrm.ext_cx) * parent.scale_x,
        height=emu_to_px(xfrm.ext_cy) * parent.scale_y,
        rotation=xfrm.rotation,
    )


def compose_group_transform(parent: Transform2D, xfrm: Xfrm) -> Transform2D:
    """Child-space mapping of a group: its chOff lands on its own resolved offset."""
    own = compose_child_transform(parent, xfrm)
    # undeclared child extent: children use the group's own units
    fx = xfrm.ext_cx / xfrm.ch_ext_cx if xfrm.ch_ext_cx else 1.0
    fy = xfrm.ext_cy / xfrm.ch_ext_cy if xfrm.ch_ext_cy else 1.0
    scale_x = parent.scale_x * fx
    scale_y = parent.scale_y * fy
    return Transform2D(
        offset_x=own.x - emu_to_px(xfrm.ch_off_x) * scale_x,
        offset_y=own.y - emu_to_px(xfrm.ch_off_y) * scale_y,
        scale_x=scale_x,
        scale_y=scale_y,
        rotation=own.rotation,
    )
