"""Package I/O: zip entries, relationship maps, media lookup, XML queries."""

from __future__ import annotations

from slidepress.core.package.archive import MediaRef, Package, Relationship

__all__ = [
    "MediaRef",
    "Package",
    "Relationship",
]
